"""
Regular surfaces: depth/time height maps on a rotated world grid.

Row index steps along the rotated x-axis by `xinc`, column index along the
rotated y-axis by `yinc`. Cells equal to `fillvalue` carry no data.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import ArrayLike, NDArray

from seisquery.core.exceptions import InvalidArgumentError

if TYPE_CHECKING:
    from seisquery.config.models import SurfaceModel


GRID_TOLERANCE = 1e-4


@dataclass(frozen=True, eq=False)
class RegularSurface:
    """A row-major grid of float32 values positioned in world space."""

    values: NDArray[np.float32]
    xori: float
    yori: float
    xinc: float
    yinc: float
    rotation: float
    fillvalue: float

    def __post_init__(self) -> None:
        values = np.array(self.values, dtype=np.float32, copy=True)
        if values.ndim != 2 or values.shape[0] < 1 or values.shape[1] < 1:
            raise InvalidArgumentError(
                f"Surface values must be a non-empty 2D grid, got shape {values.shape}"
            )
        values.flags.writeable = False
        object.__setattr__(self, "values", values)
        # Compare in float32, the precision cell values are stored in
        object.__setattr__(self, "fillvalue", float(np.float32(self.fillvalue)))

    @classmethod
    def from_model(cls, model: "SurfaceModel") -> "RegularSurface":
        return cls(
            values=np.asarray(model.values, dtype=np.float32),
            xori=model.xori,
            yori=model.yori,
            xinc=model.xinc,
            yinc=model.yinc,
            rotation=model.rotation,
            fillvalue=model.fill_value,
        )

    @property
    def nrows(self) -> int:
        return self.values.shape[0]

    @property
    def ncols(self) -> int:
        return self.values.shape[1]

    @property
    def shape(self) -> tuple[int, int]:
        return self.values.shape

    @property
    def size(self) -> int:
        return self.values.size

    def value(self, row: int, col: int) -> float:
        return float(self.values[row, col])

    def missing_mask(self) -> NDArray[np.bool_]:
        """True for cells holding the fillvalue."""
        return self.values == np.float32(self.fillvalue)

    def coordinate(self, row: float, col: float) -> tuple[float, float]:
        """World (x, y) of a grid cell."""
        theta = math.radians(self.rotation)
        cos_t, sin_t = math.cos(theta), math.sin(theta)
        x = self.xori + row * self.xinc * cos_t - col * self.yinc * sin_t
        y = self.yori + row * self.xinc * sin_t + col * self.yinc * cos_t
        return x, y

    def coordinates(self) -> NDArray[np.float64]:
        """World (x, y) of every cell, shape (nrows, ncols, 2)."""
        theta = math.radians(self.rotation)
        cos_t, sin_t = math.cos(theta), math.sin(theta)
        rows, cols = np.meshgrid(
            np.arange(self.nrows, dtype=np.float64),
            np.arange(self.ncols, dtype=np.float64),
            indexing="ij",
        )
        out = np.empty((self.nrows, self.ncols, 2), dtype=np.float64)
        out[..., 0] = self.xori + rows * self.xinc * cos_t - cols * self.yinc * sin_t
        out[..., 1] = self.yori + rows * self.xinc * sin_t + cols * self.yinc * cos_t
        return out

    def same_grid(self, other: "RegularSurface", tolerance: float = GRID_TOLERANCE) -> bool:
        """True if both surfaces share dimensions, origin, increments and rotation."""
        if self.shape != other.shape:
            return False
        ours = (self.xori, self.yori, self.xinc, self.yinc, self.rotation)
        theirs = (other.xori, other.yori, other.xinc, other.yinc, other.rotation)
        return all(math.isclose(a, b, rel_tol=tolerance, abs_tol=tolerance) for a, b in zip(ours, theirs))

    def with_values(self, values: ArrayLike) -> "RegularSurface":
        """Same grid, new values."""
        return replace(self, values=np.asarray(values, dtype=np.float32))

    def shifted(self, delta: float) -> "RegularSurface":
        """Add `delta` to every cell that is not the fillvalue."""
        missing = self.missing_mask()
        shifted = np.where(missing, self.values, self.values + np.float32(delta))
        return self.with_values(shifted)

    def __repr__(self) -> str:
        return (
            f"RegularSurface(shape={self.shape}, origin=({self.xori}, {self.yori}), "
            f"inc=({self.xinc}, {self.yinc}), rotation={self.rotation}, "
            f"fillvalue={self.fillvalue})"
        )
