"""
Validation helpers shared by the region builders and the horizon engine.

Unit compatibility of vertical requests, horizontal boundary rules and
vertical window bounds.
"""

from __future__ import annotations

from types import MappingProxyType

import numpy as np
from numpy.typing import NDArray

from seisquery.core.exceptions import (
    InvalidArgumentError,
    OutOfRangeError,
    UnitMismatchError,
)
from seisquery.geometry.axis import Axis, AxisName, Direction

# Vertical units accepted per requested axis name. Names not listed here
# (index and horizontal names) accept any unit.
ACCEPTED_UNITS = MappingProxyType(
    {
        AxisName.DEPTH: frozenset({"m", "ft", "ftUS"}),
        AxisName.TIME: frozenset({"ms", "s"}),
        AxisName.SAMPLE: frozenset({"unitless"}),
    }
)

# Anything up to half a voxel outside the first/last sample is still inside.
HALF_VOXEL = 0.5


def unit_matches(direction: Direction, unit: str) -> bool:
    accepted = ACCEPTED_UNITS.get(direction.name)
    return accepted is None or unit in accepted


def validate_unit(direction: Direction, unit: str) -> None:
    """Raise UnitMismatchError if `direction` cannot address a `unit` axis."""
    if not unit_matches(direction, unit):
        raise UnitMismatchError(str(direction), unit)


def in_horizontal_range(position: NDArray | float, axis: Axis) -> NDArray | bool:
    """True where -0.5 <= position < nsamples - 0.5."""
    position = np.asarray(position)
    inside = (position >= -HALF_VOXEL) & (position < axis.nsamples - HALF_VOXEL)
    return inside if inside.ndim else bool(inside)


def check_horizontal(position: float, axis: Axis, dimension: int, label: str) -> None:
    """Raise OutOfRangeError naming `label` and the offending dimension."""
    if not in_horizontal_range(position, axis):
        raise OutOfRangeError(
            f"Coordinate {label} is out of boundaries in dimension {dimension}."
        )


def check_vertical_window(
    top: float,
    bottom: float,
    axis: Axis,
    row: int,
    col: int,
) -> None:
    """
    Verify that a window [top, bottom] (fractional indices) fits the sample axis.

    The whole request fails if any single cell's window does not fit.
    """
    if in_horizontal_range(top, axis) and in_horizontal_range(bottom, axis):
        return
    request_top = axis.to_annotation(top)
    request_bottom = axis.to_annotation(bottom)
    raise OutOfRangeError(
        f"Vertical window is out of vertical bounds at row: {row} col: {col}. "
        f"Request: [{request_top:g}, {request_bottom:g}]. "
        f"Seismic bounds: [{axis.min:g}, {axis.max:g}]"
    )


def check_positive_window(above: float, below: float) -> None:
    if above < 0 or below < 0:
        raise InvalidArgumentError(
            "Above and below must be positive. "
            f"Above was {above:f}, below was {below:f}"
        )
