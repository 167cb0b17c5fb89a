"""
Axis and direction model for seisquery.

A volume has three logical axes: two horizontal (inline, crossline) and one
vertical sample axis. Requests name an axis either by index (i, j, k) or by
annotation (inline, crossline, depth/time/sample); Direction resolves such a
name to the axis role and the coordinate system line numbers are given in.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum

from seisquery.core.exceptions import InvalidArgumentError


class AxisRole(str, Enum):
    """Logical role of an axis in the volume."""
    INLINE = "inline"
    CROSSLINE = "crossline"
    SAMPLE = "sample"


class CoordinateSystem(str, Enum):
    """Coordinate systems positions can be expressed in."""
    INDEX = "ij"
    ANNOTATION = "ilxl"
    WORLD = "cdp"

    @classmethod
    def parse(cls, value: "str | CoordinateSystem") -> "CoordinateSystem":
        if isinstance(value, CoordinateSystem):
            return value
        key = str(value).strip().lower()
        for member in cls:
            if key in (member.value, member.name.lower()):
                return member
        raise InvalidArgumentError(
            f"coordinate system not recognized: '{value}', "
            "valid options are: ij, ilxl, cdp"
        )


class AxisName(str, Enum):
    """Axis names accepted in requests."""
    I = "i"
    J = "j"
    K = "k"
    INLINE = "inline"
    CROSSLINE = "crossline"
    DEPTH = "depth"
    TIME = "time"
    SAMPLE = "sample"


_ROLES = {
    AxisName.I: AxisRole.INLINE,
    AxisName.INLINE: AxisRole.INLINE,
    AxisName.J: AxisRole.CROSSLINE,
    AxisName.CROSSLINE: AxisRole.CROSSLINE,
    AxisName.K: AxisRole.SAMPLE,
    AxisName.DEPTH: AxisRole.SAMPLE,
    AxisName.TIME: AxisRole.SAMPLE,
    AxisName.SAMPLE: AxisRole.SAMPLE,
}

_INDEX_NAMES = frozenset({AxisName.I, AxisName.J, AxisName.K})


@dataclass(frozen=True)
class Axis:
    """
    One axis of a regularly sampled volume.

    Annotation values are min, min + stepsize, ..., max; index values run
    0 .. nsamples - 1. `dimension` is the position of the axis in the
    store's storage order.
    """

    role: AxisRole
    annotation: str
    unit: str
    min: float
    max: float
    nsamples: int
    stepsize: float
    dimension: int

    def __post_init__(self) -> None:
        if self.nsamples < 1:
            raise InvalidArgumentError(
                f"Axis {self.annotation} must have at least one sample, got {self.nsamples}"
            )
        if self.nsamples > 1 and not self.stepsize > 0:
            raise InvalidArgumentError(
                f"Axis {self.annotation} has non-positive stepsize {self.stepsize}"
            )
        expected_max = self.min + self.stepsize * (self.nsamples - 1)
        tolerance = 1e-6 * max(1.0, abs(expected_max), abs(self.max))
        if abs(expected_max - self.max) > tolerance:
            raise InvalidArgumentError(
                f"Axis {self.annotation} is inconsistent: "
                f"min + stepsize * (nsamples - 1) = {expected_max}, max = {self.max}"
            )

    @classmethod
    def from_range(
        cls,
        role: AxisRole,
        annotation: str,
        unit: str,
        min: float,
        max: float,
        nsamples: int,
        dimension: int,
    ) -> "Axis":
        """Create an axis, deriving the stepsize from its extent."""
        stepsize = (max - min) / (nsamples - 1) if nsamples > 1 else 1.0
        return cls(role, annotation, unit, min, max, nsamples, stepsize, dimension)

    def to_index(self, annotation: float) -> float:
        """Fractional index of an annotation value."""
        return (annotation - self.min) / self.stepsize

    def to_annotation(self, index: float) -> float:
        """Annotation value at a (fractional) index."""
        return self.min + index * self.stepsize

    def subset(self, lower: int, upper: int) -> "Axis":
        """Axis restricted to the half-open index range [lower, upper)."""
        return replace(
            self,
            min=self.to_annotation(lower),
            max=self.to_annotation(upper - 1),
            nsamples=upper - lower,
        )

    def describe_range(self) -> str:
        return f"[{self.min:g}:{self.max:g}:{self.stepsize:g}]"

    def as_dict(self) -> dict:
        return {
            "annotation": self.annotation,
            "min": self.min,
            "max": self.max,
            "samples": self.nsamples,
            "stepsize": self.stepsize,
            "unit": self.unit,
        }


class Direction:
    """A requested axis name resolved to role and coordinate system."""

    __slots__ = ("name",)

    def __init__(self, name: "str | AxisName"):
        if isinstance(name, AxisName):
            self.name = name
            return
        try:
            self.name = AxisName(str(name).strip().lower())
        except ValueError:
            raise InvalidArgumentError(
                f"invalid direction '{name}', valid options are: "
                "i, j, k, inline, crossline or depth/time/sample"
            ) from None

    @property
    def role(self) -> AxisRole:
        return _ROLES[self.name]

    @property
    def coordinate_system(self) -> CoordinateSystem:
        if self.name in _INDEX_NAMES:
            return CoordinateSystem.INDEX
        return CoordinateSystem.ANNOTATION

    def is_iline(self) -> bool:
        return self.role is AxisRole.INLINE

    def is_xline(self) -> bool:
        return self.role is AxisRole.CROSSLINE

    def is_sample(self) -> bool:
        return self.role is AxisRole.SAMPLE

    def to_index(self, axis: Axis, value: float) -> float:
        """Index of a line number given in this direction's coordinate system."""
        if self.coordinate_system is CoordinateSystem.INDEX:
            return float(value)
        return axis.to_index(value)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Direction) and other.name is self.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __repr__(self) -> str:
        return f"Direction({self.name.value!r})"

    def __str__(self) -> str:
        if self.name in _INDEX_NAMES:
            return self.name.value.upper()
        return self.name.value.capitalize()


def is_integral(value: float, tolerance: float = 1e-6) -> bool:
    return math.isclose(value, round(value), abs_tol=tolerance)
