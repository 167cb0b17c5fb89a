"""Fence regions: full vertical traces at a list of horizontal points."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike, NDArray

from seisquery.core.exceptions import InvalidArgumentError
from seisquery.core.validation import check_horizontal, in_horizontal_range
from seisquery.geometry.axis import CoordinateSystem
from seisquery.geometry.metadata import VolumeMetadata
from seisquery.geometry.transform import VOXEL_CENTER_OFFSET
from seisquery.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class FenceRegion:
    """
    Trace coordinates of a fence.

    `coordinates` holds one voxel-centre (inline, crossline, 0) index
    position per point. Points outside the volume are only allowed when a
    fillvalue is given; they are flagged False in `valid`.
    """

    coordinates: NDArray[np.float64]
    valid: NDArray[np.bool_]
    nsamples: int
    fillvalue: float | None = None

    @property
    def npoints(self) -> int:
        return len(self.coordinates)

    @property
    def shape(self) -> list[int]:
        return [self.npoints, self.nsamples]


def _as_points(points: ArrayLike) -> NDArray[np.float64]:
    try:
        xy = np.asarray(points, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        # Ragged or non-numeric input: name the first point that is not a pair
        for i, point in enumerate(points if isinstance(points, (list, tuple)) else ()):
            if not isinstance(point, (list, tuple, np.ndarray)) or len(point) != 2:
                raise InvalidArgumentError(
                    f"invalid coordinate {point!r} at position {i}, expected [x y] pair"
                ) from exc
        raise InvalidArgumentError(f"Fence coordinates must be numeric: {exc}") from exc

    if xy.size == 0:
        raise InvalidArgumentError("Fence must contain at least one coordinate")
    if xy.ndim == 2 and xy.shape[1] != 2:
        raise InvalidArgumentError(
            f"invalid coordinate {xy[0].tolist()} at position 0, expected [x y] pair"
        )
    if xy.ndim != 2:
        raise InvalidArgumentError(
            f"Fence coordinates must be a list of [x y] pairs, got shape {xy.shape}"
        )
    return xy


def build_fence(
    metadata: VolumeMetadata,
    coordinate_system: "CoordinateSystem | str",
    points: ArrayLike,
    fillvalue: float | None = None,
) -> FenceRegion:
    """
    Transform fence points to voxel-centre index coordinates.

    Raises:
        InvalidArgumentError: Empty fence or a point that is not an (x, y) pair
        OutOfRangeError: A point outside the volume when no fillvalue is given
    """
    system = CoordinateSystem.parse(coordinate_system)
    xy = _as_points(points)

    positions = np.zeros((len(xy), 3), dtype=np.float64)
    positions[:, :2] = xy
    index = metadata.transformer.to_index(positions, system)
    index[:, 2] = 0.0

    valid = in_horizontal_range(index[:, 0], metadata.iline) & in_horizontal_range(
        index[:, 1], metadata.xline
    )

    if fillvalue is None and not valid.all():
        first = int(np.argmin(valid))
        x, y = xy[first]
        label = f"({x:g},{y:g})"
        check_horizontal(index[first, 0], metadata.iline, 0, label)
        check_horizontal(index[first, 1], metadata.xline, 1, label)

    index[:, :2] += VOXEL_CENTER_OFFSET
    if not valid.all():
        logger.debug(f"Fence: {int((~valid).sum())} of {len(xy)} points outside the volume")

    return FenceRegion(
        coordinates=index,
        valid=valid,
        nsamples=metadata.sample.nsamples,
        fillvalue=fillvalue,
    )
