"""
In-memory and Zarr-backed volume stores.

Both keep the samples in storage order, as described by each axis'
`dimension`, and only ever index the backing array with basic slices so
that a zarr.Array can be used in place of a numpy array. Blocks are
transposed to logical (inline, crossline, sample) order after reading.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

import numpy as np
import zarr
from numpy.typing import NDArray
from scipy import ndimage

from seisquery.config.models import InterpolationMethod, VolumeDescription
from seisquery.core.exceptions import InvalidArgumentError, UnsupportedGeometryError
from seisquery.geometry.metadata import VolumeMetadata
from seisquery.regions.subvolume import SubVolume
from seisquery.store.base import to_payload
from seisquery.utils.logging import get_logger

logger = get_logger(__name__)

DESCRIPTION_ATTR = "seisquery"

# Edge padding applied before cubic prefiltering, as scipy does for mode="nearest"
_SPLINE_PAD = 12

_SPLINE_ORDER = {
    InterpolationMethod.LINEAR: 1,
    InterpolationMethod.CUBIC: 3,
}


class ArrayVolumeStore:
    """
    Volume store over a 3D array.

    Nearest interpolation snaps voxel-centre positions with floor. Linear
    interpolation reads the enclosing block and interpolates with
    scipy.ndimage.map_coordinates; cubic interpolation uses spline
    coefficients of the whole volume, computed once on first use.
    Angular and triangular interpolation are not supported.

    Args:
        data: Samples in storage order, numpy or zarr array
        description: Geometry of the volume
    """

    def __init__(self, data: Any, description: VolumeDescription):
        if data.ndim != 3:
            raise UnsupportedGeometryError(
                f"Unsupported volume, expected 3 dimensions, got {data.ndim}"
            )
        self._data = data
        self._description = description
        self._metadata = VolumeMetadata.from_description(description)
        storage_shape = [0, 0, 0]
        for axis in self._metadata.axes:
            storage_shape[axis.dimension] = axis.nsamples
        if tuple(data.shape) != tuple(storage_shape):
            raise UnsupportedGeometryError(
                f"Array shape {tuple(data.shape)} does not match described shape {tuple(storage_shape)}"
            )
        self._order = tuple(axis.dimension for axis in self._metadata.axes)
        self._coefficients: NDArray[np.float64] | None = None
        self._lock = threading.Lock()

    @property
    def shape(self) -> tuple[int, int, int]:
        """Logical (inline, crossline, sample) shape."""
        return self._metadata.shape

    def describe(self) -> VolumeDescription:
        return self._description

    # ------------------------------------------------------------------
    # Block access
    # ------------------------------------------------------------------

    def _read_block(self, lower: tuple[int, ...], upper: tuple[int, ...]) -> NDArray[np.float32]:
        """Logical-order block [lower, upper) read with basic slicing."""
        selection: list[slice] = [slice(None)] * 3
        for axis, lo, hi in zip(self._metadata.axes, lower, upper):
            selection[axis.dimension] = slice(lo, hi)
        block = np.asarray(self._data[tuple(selection)], dtype=np.float32)
        return np.transpose(block, self._order)

    def _spline_coefficients(self) -> NDArray[np.float64]:
        with self._lock:
            if self._coefficients is None:
                logger.debug("Computing cubic spline coefficients for the volume")
                full = self._read_block((0, 0, 0), self.shape).astype(np.float64)
                padded = np.pad(full, _SPLINE_PAD, mode="edge")
                self._coefficients = ndimage.spline_filter(padded, order=3, mode="mirror")
            return self._coefficients

    def _interpolate(
        self,
        positions: NDArray[np.float64],
        interpolation: InterpolationMethod,
    ) -> NDArray[np.float32]:
        """
        Interpolate at (N, 3) sample-centred index positions.

        Positions use the transform convention: the first sample is at 0.
        """
        order = _SPLINE_ORDER[interpolation]
        if order == 3:
            values = ndimage.map_coordinates(
                self._spline_coefficients(),
                (positions + _SPLINE_PAD).T,
                order=3,
                mode="mirror",
                prefilter=False,
            )
            return values.astype(np.float32)

        shape = np.array(self.shape)
        lower = np.clip(np.floor(positions.min(axis=0)).astype(int), 0, shape - 1)
        upper = np.clip(np.floor(positions.max(axis=0)).astype(int) + 2, 1, shape)
        block = self._read_block(tuple(lower), tuple(upper))
        local = (positions - lower).T
        values = ndimage.map_coordinates(block, local, order=1, mode="nearest")
        return values.astype(np.float32)

    # ------------------------------------------------------------------
    # VolumeStore
    # ------------------------------------------------------------------

    def probe_extent(self, region: SubVolume) -> int:
        return region.nbytes

    def read_region(self, region: SubVolume) -> bytes:
        region.validate(self._metadata)
        lower = tuple(b.lower for b in region.bounds)
        upper = tuple(b.upper for b in region.bounds)
        return to_payload(self._read_block(lower, upper))

    def read_traces(
        self,
        coordinates: NDArray[np.float64],
        interpolation: InterpolationMethod,
    ) -> bytes:
        interpolation = _check_interpolation(interpolation)
        coordinates = np.asarray(coordinates, dtype=np.float64).reshape(-1, 3)
        nsamples = self.shape[2]
        if len(coordinates) == 0:
            return b""

        if interpolation is InterpolationMethod.NEAREST:
            ii = self._snap(coordinates[:, 0], 0)
            jj = self._snap(coordinates[:, 1], 1)
            block = self._read_block(
                (ii.min(), jj.min(), 0), (ii.max() + 1, jj.max() + 1, nsamples)
            )
            return to_payload(block[ii - ii.min(), jj - jj.min(), :])

        n = len(coordinates)
        positions = np.empty((n, nsamples, 3), dtype=np.float64)
        positions[..., 0] = coordinates[:, 0, None] - 0.5
        positions[..., 1] = coordinates[:, 1, None] - 0.5
        positions[..., 2] = np.arange(nsamples, dtype=np.float64)[None, :]
        values = self._interpolate(positions.reshape(-1, 3), interpolation)
        return to_payload(values.reshape(n, nsamples))

    def read_samples(
        self,
        coordinates: NDArray[np.float64],
        interpolation: InterpolationMethod,
    ) -> bytes:
        interpolation = _check_interpolation(interpolation)
        coordinates = np.asarray(coordinates, dtype=np.float64).reshape(-1, 3)
        if len(coordinates) == 0:
            return b""

        if interpolation is InterpolationMethod.NEAREST:
            snapped = [self._snap(coordinates[:, d], d) for d in range(3)]
            lower = tuple(int(s.min()) for s in snapped)
            upper = tuple(int(s.max()) + 1 for s in snapped)
            block = self._read_block(lower, upper)
            local = tuple(s - lo for s, lo in zip(snapped, lower))
            return to_payload(block[local])

        return to_payload(self._interpolate(coordinates - 0.5, interpolation))

    def _snap(self, centres: NDArray[np.float64], axis: int) -> NDArray[np.intp]:
        return np.clip(np.floor(centres).astype(np.intp), 0, self.shape[axis] - 1)


def _check_interpolation(interpolation: "InterpolationMethod | str") -> InterpolationMethod:
    interpolation = InterpolationMethod.parse(interpolation)
    if interpolation in (InterpolationMethod.ANGULAR, InterpolationMethod.TRIANGULAR):
        raise InvalidArgumentError(
            f"interpolation method '{interpolation.value}' is not supported by array volumes"
        )
    return interpolation


class ZarrVolumeStore(ArrayVolumeStore):
    """
    Volume store over a Zarr array.

    The array's attributes hold the volume description under the
    "seisquery" key.
    """

    def __init__(self, array: zarr.Array, description: VolumeDescription, path: Path | None = None):
        super().__init__(array, description)
        self.path = path

    @classmethod
    def open(cls, path: Path | str) -> "ZarrVolumeStore":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Zarr array not found: {path}")

        logger.debug(f"Opening Zarr volume: {path}")
        array = zarr.open_array(str(path), mode="r")
        attrs = dict(array.attrs)
        if DESCRIPTION_ATTR not in attrs:
            raise UnsupportedGeometryError(
                f"Zarr array {path} has no '{DESCRIPTION_ATTR}' description attribute"
            )
        description = VolumeDescription.model_validate(attrs[DESCRIPTION_ATTR])
        store = cls(array, description, path=path)
        ni, nj, nk = store.shape
        logger.info(f"Opened volume {path.name}: {ni} x {nj} x {nk} samples")
        return store

    @staticmethod
    def create(
        path: Path | str,
        data: NDArray[np.float32],
        description: VolumeDescription,
        chunks: tuple[int, int, int] | None = None,
    ) -> "ZarrVolumeStore":
        """Write `data` (storage order) and its description to a new Zarr array."""
        path = Path(path)
        data = np.asarray(data, dtype=np.float32)
        array = zarr.open_array(
            str(path),
            mode="w",
            shape=data.shape,
            chunks=chunks or data.shape,
            dtype="float32",
        )
        array[...] = data
        array.attrs[DESCRIPTION_ATTR] = description.model_dump(mode="json", by_alias=True)
        return ZarrVolumeStore.open(path)
