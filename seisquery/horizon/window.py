"""
Vertical sampling window around a reference depth/time.

A window holds a number of samples above and below a reference, spaced
by `stepsize` (annotation units). `margin` is the number of extra native
samples read beyond the window edges so that resampling has support there.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

from seisquery.core.exceptions import InvalidArgumentError, OutOfRangeError
from seisquery.core.validation import check_positive_window
from seisquery.geometry.axis import Axis

# Float noise allowed when counting whole steps in an interval
_STEP_TOLERANCE = 1e-6


def _whole_steps(distance: float, stepsize: float) -> int:
    return int(math.floor(distance / stepsize + _STEP_TOLERANCE))


@dataclass(frozen=True)
class VerticalWindow:
    """
    Window of `samples_above + samples_below + 1` samples.

    Args:
        above: Distance above the reference, annotation units, >= 0
        below: Distance below the reference, annotation units, >= 0
        stepsize: Distance between samples in the window
        margin: Extra native samples to read on each side
    """

    above: float
    below: float
    stepsize: float
    margin: int = 0
    samples_above: int = field(init=False)
    samples_below: int = field(init=False)

    def __post_init__(self) -> None:
        check_positive_window(self.above, self.below)
        if not self.stepsize > 0:
            raise InvalidArgumentError(f"Window stepsize must be positive, got {self.stepsize}")
        if self.margin < 0:
            raise InvalidArgumentError(f"Window margin must be non-negative, got {self.margin}")
        object.__setattr__(self, "samples_above", int(round(self.above / self.stepsize)))
        object.__setattr__(self, "samples_below", int(round(self.below / self.stepsize)))

    @classmethod
    def spanning(
        cls,
        reference: float,
        top: float,
        bottom: float,
        stepsize: float,
        margin: int = 0,
    ) -> "VerticalWindow":
        """Largest window around `reference` whose samples stay within [top, bottom]."""
        if not stepsize > 0:
            raise InvalidArgumentError(f"Window stepsize must be positive, got {stepsize}")
        above = _whole_steps(reference - top, stepsize)
        below = _whole_steps(bottom - reference, stepsize)
        return cls(above * stepsize, below * stepsize, stepsize, margin)

    def _with_counts(self, samples_above: int, samples_below: int) -> "VerticalWindow":
        return VerticalWindow(
            samples_above * self.stepsize,
            samples_below * self.stepsize,
            self.stepsize,
            self.margin,
        )

    def size(self) -> int:
        return self.samples_above + self.samples_below + 1

    def squeeze(self, axis: Axis, reference: float | None = None) -> "VerticalWindow":
        """
        Shrink the window so that it fits the sample axis.

        With a reference, both counts are reduced to the largest values that
        keep reference - above and reference + below inside [min, max].
        Without a reference (one window shared by every cell of a horizon)
        each count is clipped once against the full axis extent.

        Raises:
            OutOfRangeError: The reference itself lies outside the axis
        """
        if reference is None:
            extent = _whole_steps(axis.max - axis.min, self.stepsize)
            return self._with_counts(
                min(self.samples_above, extent),
                min(self.samples_below, extent),
            )

        if not axis.min <= reference <= axis.max:
            raise OutOfRangeError(
                f"Reference {reference:g} is outside the vertical axis "
                f"[{axis.min:g}, {axis.max:g}]"
            )
        return self._with_counts(
            min(self.samples_above, _whole_steps(reference - axis.min, self.stepsize)),
            min(self.samples_below, _whole_steps(axis.max - reference, self.stepsize)),
        )

    def index_offsets(self) -> NDArray[np.int64]:
        """Sample offsets relative to the reference, -above .. below."""
        return np.arange(-self.samples_above, self.samples_below + 1, dtype=np.int64)

    def positions(self, reference: float) -> NDArray[np.float64]:
        """Annotation positions of the window samples around `reference`."""
        return reference + self.index_offsets() * self.stepsize

    def top(self, reference: float) -> float:
        return reference - self.samples_above * self.stepsize

    def bottom(self, reference: float) -> float:
        return reference + self.samples_below * self.stepsize
