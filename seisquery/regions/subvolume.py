"""
Subvolumes and slice regions.

A SubVolume is one half-open index Bound per axis. build_slice turns a
slice request (direction, line number, caller bounds) into a SubVolume
fixed to a single line along the slice axis.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable

from pydantic import ValidationError

from seisquery.config.models import SliceBoundModel
from seisquery.core.exceptions import InvalidArgumentError, OutOfRangeError
from seisquery.core.validation import validate_unit
from seisquery.geometry.axis import Axis, AxisRole, CoordinateSystem, Direction, is_integral
from seisquery.geometry.metadata import VolumeMetadata
from seisquery.utils.logging import get_logger

logger = get_logger(__name__)

SAMPLE_SIZE = 4  # float32

_LINE_TOLERANCE = 1e-6


@dataclass(frozen=True)
class Bound:
    """Half-open index range [lower, upper)."""

    lower: int
    upper: int

    @classmethod
    def full(cls, axis: Axis) -> "Bound":
        return cls(0, axis.nsamples)

    @classmethod
    def single(cls, index: int) -> "Bound":
        return cls(index, index + 1)

    @property
    def size(self) -> int:
        return self.upper - self.lower

    def intersect(self, other: "Bound") -> "Bound":
        lower = max(self.lower, other.lower)
        return Bound(lower, max(lower, min(self.upper, other.upper)))

    def fits(self, axis: Axis) -> bool:
        return 0 <= self.lower <= self.upper <= axis.nsamples


@dataclass(frozen=True)
class SubVolume:
    """One Bound per axis, in logical (inline, crossline, sample) order."""

    iline: Bound
    xline: Bound
    sample: Bound

    @classmethod
    def full(cls, metadata: VolumeMetadata) -> "SubVolume":
        return cls(
            Bound.full(metadata.iline),
            Bound.full(metadata.xline),
            Bound.full(metadata.sample),
        )

    @property
    def bounds(self) -> tuple[Bound, Bound, Bound]:
        return (self.iline, self.xline, self.sample)

    @property
    def shape(self) -> tuple[int, int, int]:
        return tuple(b.size for b in self.bounds)

    @property
    def size(self) -> int:
        return math.prod(self.shape)

    @property
    def nbytes(self) -> int:
        return self.size * SAMPLE_SIZE

    def bound(self, role: AxisRole) -> Bound:
        return {AxisRole.INLINE: self.iline, AxisRole.CROSSLINE: self.xline, AxisRole.SAMPLE: self.sample}[role]

    def with_bound(self, role: AxisRole, bound: Bound) -> "SubVolume":
        bounds = {AxisRole.INLINE: self.iline, AxisRole.CROSSLINE: self.xline, AxisRole.SAMPLE: self.sample}
        bounds[role] = bound
        return SubVolume(bounds[AxisRole.INLINE], bounds[AxisRole.CROSSLINE], bounds[AxisRole.SAMPLE])

    def validate(self, metadata: VolumeMetadata) -> None:
        for bound, axis in zip(self.bounds, metadata.axes):
            if not bound.fits(axis):
                raise OutOfRangeError(
                    f"Bound [{bound.lower}, {bound.upper}) does not fit axis "
                    f"{axis.annotation} with {axis.nsamples} samples"
                )


@dataclass(frozen=True)
class SliceRegion:
    """
    A resolved slice: the subvolume to read plus the axes of the 2D result.

    The result is laid out [y, x]: inline slices are crossline x sample,
    crossline slices inline x sample and sample slices inline x crossline.
    """

    metadata: VolumeMetadata
    direction: Direction
    index: int
    subvolume: SubVolume

    def _bounded(self, role: AxisRole) -> Axis:
        bound = self.subvolume.bound(role)
        return self.metadata.axis_for_role(role).subset(bound.lower, bound.upper)

    @property
    def x_axis(self) -> Axis:
        if self.direction.is_sample():
            return self._bounded(AxisRole.CROSSLINE)
        return self._bounded(AxisRole.SAMPLE)

    @property
    def y_axis(self) -> Axis:
        if self.direction.is_iline():
            return self._bounded(AxisRole.CROSSLINE)
        return self._bounded(AxisRole.INLINE)

    @property
    def shape(self) -> list[int]:
        return [self.y_axis.nsamples, self.x_axis.nsamples]

    @property
    def geospatial(self) -> list[list[float]]:
        """World corners of the slice: two for vertical slices, four for sample slices."""
        i, j = self.subvolume.iline, self.subvolume.xline
        if self.direction.is_iline():
            corners = [(i.lower, j.lower), (i.lower, j.upper - 1)]
        elif self.direction.is_xline():
            corners = [(i.lower, j.lower), (i.upper - 1, j.lower)]
        else:
            corners = [
                (i.lower, j.lower),
                (i.upper - 1, j.lower),
                (i.upper - 1, j.upper - 1),
                (i.lower, j.upper - 1),
            ]
        positions = [[ci, cj, 0.0] for ci, cj in corners]
        world = self.metadata.transformer.index_to_world(positions)
        return world[:, :2].tolist()

    def as_dict(self) -> dict[str, Any]:
        return {
            "format": "<f4",
            "shape": self.shape,
            "x": self.x_axis.as_dict(),
            "y": self.y_axis.as_dict(),
            "geospatial": self.geospatial,
        }


def _bound_model(bound: "SliceBoundModel | dict") -> SliceBoundModel:
    if isinstance(bound, SliceBoundModel):
        return bound
    try:
        return SliceBoundModel.model_validate(bound)
    except ValidationError as exc:
        raise InvalidArgumentError(f"Invalid slice bound {bound}: {exc}") from exc


def _line_index(
    metadata: VolumeMetadata,
    direction: Direction,
    lineno: float,
    strict: bool,
) -> int:
    axis = metadata.get_axis(direction)
    index = direction.to_index(axis, lineno)
    if direction.coordinate_system is CoordinateSystem.INDEX:
        valid = f"[0:{axis.nsamples - 1}:1]"
    else:
        valid = axis.describe_range()

    # Line numbers outside the first and last line are never snapped inwards
    if not -_LINE_TOLERANCE <= index <= axis.nsamples - 1 + _LINE_TOLERANCE:
        raise OutOfRangeError(f"Invalid lineno: {lineno:g}, valid range: {valid}")

    snapped = min(int(math.floor(index + 0.5)), axis.nsamples - 1)
    if not is_integral(index, _LINE_TOLERANCE):
        if strict:
            raise OutOfRangeError(f"Invalid lineno: {lineno:g}, valid range: {valid}")
        logger.debug(f"Line {lineno:g} is between lines, snapping to index {snapped}")
    return max(snapped, 0)


def _caller_bound(metadata: VolumeMetadata, bound: SliceBoundModel) -> tuple[AxisRole, Bound]:
    """Convert an inclusive caller bound to a half-open index Bound."""
    direction = Direction(bound.direction)
    validate_unit(direction, metadata.sample.unit)
    axis = metadata.get_axis(direction)
    lower = direction.to_index(axis, bound.lower)
    upper = direction.to_index(axis, bound.upper)
    # Tolerate float noise from the annotation conversion
    lower_idx = math.ceil(lower - 1e-6)
    upper_idx = math.floor(upper + 1e-6) + 1
    return direction.role, Bound(lower_idx, upper_idx)


def build_slice(
    metadata: VolumeMetadata,
    direction: "Direction | str",
    lineno: float,
    bounds: Iterable["SliceBoundModel | dict"] = (),
    strict_lineno: bool | None = None,
) -> SliceRegion:
    """
    Resolve a slice request against the volume geometry.

    Args:
        metadata: Volume geometry
        direction: Axis the slice is fixed along
        lineno: Line number in the direction's coordinate system
        bounds: Inclusive caller bounds on the other axes. Bounds on the
            slice axis are ignored; the last bound given for an axis wins.
        strict_lineno: Reject off-grid line numbers instead of snapping.
            Defaults to settings.query.strict_lineno.

    Raises:
        UnitMismatchError: Direction (or bound direction) does not match
            the vertical unit
        OutOfRangeError: Line number outside the axis, or empty bounds
        InvalidArgumentError: Malformed direction or bound
    """
    if strict_lineno is None:
        from seisquery.settings import get_settings

        strict_lineno = get_settings().query.strict_lineno

    direction = direction if isinstance(direction, Direction) else Direction(direction)
    validate_unit(direction, metadata.sample.unit)

    index = _line_index(metadata, direction, lineno, strict_lineno)

    requested: dict[AxisRole, Bound] = {}
    for raw in bounds:
        model = _bound_model(raw)
        role, bound = _caller_bound(metadata, model)
        if role is direction.role:
            logger.debug(f"Ignoring bound on slice axis {model.direction}")
            continue
        requested[role] = bound

    subvolume = SubVolume.full(metadata).with_bound(direction.role, Bound.single(index))
    for role, bound in requested.items():
        axis = metadata.axis_for_role(role)
        clipped = bound.intersect(Bound.full(axis))
        if clipped.size == 0:
            raise OutOfRangeError(
                f"Bound [{bound.lower}, {bound.upper}) on {axis.annotation} "
                f"does not intersect the volume, valid range: {axis.describe_range()}"
            )
        subvolume = subvolume.with_bound(role, clipped)

    logger.debug(f"Slice {direction} {lineno:g} -> index {index}, shape {subvolume.shape}")
    return SliceRegion(metadata=metadata, direction=direction, index=index, subvolume=subvolume)
