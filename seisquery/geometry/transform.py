"""
Coordinate transforms between index, annotation and world space.

Index space addresses samples by their storage index, annotation space by
inline/crossline numbers and sample time/depth, and world space by projected
(x, y) coordinates. All positions are (..., 3) arrays ordered
(inline, crossline, sample) in index/annotation space and (x, y, z) in world
space, where z is the sample annotation.

The transformer places the first sample at index 0. Reads, on the other hand,
address voxel centres, so the first sample is at 0.5. Callers add
VOXEL_CENTER_OFFSET to the horizontal coordinates after transforming and
before issuing a read.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import ArrayLike, NDArray

from seisquery.geometry.axis import Axis, CoordinateSystem

VOXEL_CENTER_OFFSET = 0.5


@dataclass(frozen=True)
class CoordinateTransformer:
    """
    Affine mapping of a rotated, regularly spaced survey grid.

    Args:
        iline, xline, sample: The volume's axes
        origin: World position of index (0, 0)
        inline_spacing: World distance between consecutive inlines
        crossline_spacing: World distance between consecutive crosslines
        rotation: Angle of the inline axis, degrees counter-clockwise from world X
    """

    iline: Axis
    xline: Axis
    sample: Axis
    origin: tuple[float, float]
    inline_spacing: float
    crossline_spacing: float
    rotation: float
    _forward: NDArray[np.float64] = field(init=False, repr=False, compare=False)
    _inverse: NDArray[np.float64] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        theta = math.radians(self.rotation)
        cos_t, sin_t = math.cos(theta), math.sin(theta)
        # Columns are the world vectors of one index step along inline / crossline
        forward = np.array(
            [
                [self.inline_spacing * cos_t, -self.crossline_spacing * sin_t],
                [self.inline_spacing * sin_t, self.crossline_spacing * cos_t],
            ],
            dtype=np.float64,
        )
        object.__setattr__(self, "_forward", forward)
        object.__setattr__(self, "_inverse", np.linalg.inv(forward))

    @property
    def _annotation_min(self) -> NDArray[np.float64]:
        return np.array([self.iline.min, self.xline.min, self.sample.min])

    @property
    def _annotation_step(self) -> NDArray[np.float64]:
        return np.array([self.iline.stepsize, self.xline.stepsize, self.sample.stepsize])

    # ------------------------------------------------------------------
    # Index <-> annotation
    # ------------------------------------------------------------------

    def index_to_annotation(self, positions: ArrayLike) -> NDArray[np.float64]:
        p = _as_positions(positions)
        return self._annotation_min + p * self._annotation_step

    def annotation_to_index(self, positions: ArrayLike) -> NDArray[np.float64]:
        p = _as_positions(positions)
        return (p - self._annotation_min) / self._annotation_step

    # ------------------------------------------------------------------
    # Index <-> world
    # ------------------------------------------------------------------

    def index_to_world(self, positions: ArrayLike) -> NDArray[np.float64]:
        p = _as_positions(positions)
        out = np.empty_like(p)
        horizontal = p[..., :2] @ self._forward.T
        out[..., 0] = horizontal[..., 0] + self.origin[0]
        out[..., 1] = horizontal[..., 1] + self.origin[1]
        out[..., 2] = self.sample.to_annotation(p[..., 2])
        return out

    def world_to_index(self, positions: ArrayLike) -> NDArray[np.float64]:
        p = _as_positions(positions)
        out = np.empty_like(p)
        shifted = np.stack(
            [p[..., 0] - self.origin[0], p[..., 1] - self.origin[1]], axis=-1
        )
        horizontal = shifted @ self._inverse.T
        out[..., 0] = horizontal[..., 0]
        out[..., 1] = horizontal[..., 1]
        out[..., 2] = self.sample.to_index(p[..., 2])
        return out

    # ------------------------------------------------------------------
    # Annotation <-> world
    # ------------------------------------------------------------------

    def annotation_to_world(self, positions: ArrayLike) -> NDArray[np.float64]:
        return self.index_to_world(self.annotation_to_index(positions))

    def world_to_annotation(self, positions: ArrayLike) -> NDArray[np.float64]:
        return self.index_to_annotation(self.world_to_index(positions))

    # ------------------------------------------------------------------
    # Generic
    # ------------------------------------------------------------------

    def to_index(self, positions: ArrayLike, system: CoordinateSystem) -> NDArray[np.float64]:
        """Transform positions given in `system` to index space."""
        if system is CoordinateSystem.INDEX:
            return _as_positions(positions).copy()
        if system is CoordinateSystem.ANNOTATION:
            return self.annotation_to_index(positions)
        return self.world_to_index(positions)

    def convert(
        self,
        positions: ArrayLike,
        source: CoordinateSystem,
        target: CoordinateSystem,
    ) -> NDArray[np.float64]:
        """Transform positions between any two coordinate systems."""
        index = self.to_index(positions, source)
        if target is CoordinateSystem.INDEX:
            return index
        if target is CoordinateSystem.ANNOTATION:
            return self.index_to_annotation(index)
        return self.index_to_world(index)


def _as_positions(positions: ArrayLike) -> NDArray[np.float64]:
    p = np.asarray(positions, dtype=np.float64)
    if p.shape[-1:] != (3,):
        raise ValueError(f"positions must have shape (..., 3), got {p.shape}")
    return p
