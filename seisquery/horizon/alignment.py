"""
Alignment of two surfaces on the same grid.

The two surfaces need not agree, cell by cell, on which one is shallower.
A majority vote over the cells where both hold data decides which surface
is globally on top; the merged surface takes the shallower value per cell,
so the top never exceeds the bottom even where a cell disagrees with the
vote.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

import numpy as np

from seisquery.core.exceptions import UnsupportedGeometryError
from seisquery.geometry.surface import RegularSurface
from seisquery.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AlignmentResult:
    merged: RegularSurface
    primary_is_top: bool


def _check_grid(primary: RegularSurface, secondary: RegularSurface) -> None:
    if not primary.same_grid(secondary):
        raise UnsupportedGeometryError(
            "Surfaces have different grid geometry: "
            f"primary {primary!r}, secondary {secondary!r}"
        )


def _both_present(primary: RegularSurface, secondary: RegularSurface) -> np.ndarray:
    return ~primary.missing_mask() & ~secondary.missing_mask()


def _merge(
    primary: RegularSurface,
    secondary: RegularSurface,
    both: np.ndarray,
    values: np.ndarray,
) -> RegularSurface:
    fill = min(primary.fillvalue, secondary.fillvalue)
    merged = np.where(both, values, np.float32(fill))
    return replace(primary, values=merged.astype(np.float32), fillvalue=fill)


def align_surfaces(primary: RegularSurface, secondary: RegularSurface) -> AlignmentResult:
    """
    Merge two surfaces and decide whether the primary is on top.

    Cells where only one surface has data do not vote and hold the lower of
    the two fillvalues in the merged surface. Cells where the surfaces are
    equal do not vote either; a tied vote makes the primary the top.

    Raises:
        UnsupportedGeometryError: The surfaces do not share a grid
    """
    _check_grid(primary, secondary)
    both = _both_present(primary, secondary)
    p, s = primary.values, secondary.values

    primary_above = int(np.count_nonzero(both & (p < s)))
    secondary_above = int(np.count_nonzero(both & (s < p)))
    primary_is_top = primary_above >= secondary_above

    merged = _merge(primary, secondary, both, np.minimum(p, s))
    logger.debug(
        f"Surface alignment: primary above in {primary_above} cells, "
        f"secondary above in {secondary_above} cells"
    )
    return AlignmentResult(merged=merged, primary_is_top=primary_is_top)


def bounding_surfaces(
    primary: RegularSurface,
    secondary: RegularSurface,
) -> tuple[RegularSurface, RegularSurface]:
    """
    Elementwise (top, bottom) of two surfaces on the primary's grid.

    Cells where either surface is missing hold the lower of the two
    fillvalues in both.
    """
    _check_grid(primary, secondary)
    both = _both_present(primary, secondary)
    p, s = primary.values, secondary.values
    top = _merge(primary, secondary, both, np.minimum(p, s))
    bottom = _merge(primary, secondary, both, np.maximum(p, s))
    return top, bottom
