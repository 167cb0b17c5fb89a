"""
Opened volume: immutable metadata coupled with its store.

Every read of the engine goes through Volume, which checks payload sizes
and turns failures raised by the store into StoreFailureError.
"""

from __future__ import annotations

from typing import Callable, TypeVar

import numpy as np
from numpy.typing import NDArray

from seisquery.config.models import InterpolationMethod
from seisquery.core.exceptions import SeisQueryError, StoreFailureError
from seisquery.geometry.metadata import VolumeMetadata
from seisquery.regions.subvolume import SubVolume
from seisquery.store.base import SAMPLE_DTYPE, VolumeStore, from_payload
from seisquery.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class Volume:
    """A volume store with resolved metadata. Safe to share between threads."""

    def __init__(self, store: VolumeStore):
        self.store = store
        self.metadata = VolumeMetadata.from_description(
            self._call("describe", store.describe)
        )

    def _call(self, operation: str, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except SeisQueryError:
            raise
        except Exception as exc:
            raise StoreFailureError(
                f"Store failed during {operation}: {exc}",
                details=type(exc).__name__,
            ) from exc

    def _decode(self, operation: str, payload: bytes, shape: tuple[int, ...]) -> NDArray[np.float32]:
        expected = int(np.prod(shape)) * SAMPLE_DTYPE.itemsize
        if len(payload) != expected:
            raise StoreFailureError(
                f"Store returned {len(payload)} bytes for {operation}, expected {expected}"
            )
        return from_payload(payload, shape)

    def probe_extent(self, region: SubVolume) -> int:
        return self._call("probe_extent", lambda: self.store.probe_extent(region))

    def read_region(self, region: SubVolume) -> NDArray[np.float32]:
        """Samples of `region` shaped (inline, crossline, sample)."""
        payload = self._call("read_region", lambda: self.store.read_region(region))
        return self._decode("read_region", payload, region.shape)

    def read_traces(
        self,
        coordinates: NDArray[np.float64],
        interpolation: InterpolationMethod = InterpolationMethod.NEAREST,
    ) -> NDArray[np.float32]:
        """Full traces at voxel-centre positions, shaped (N, nsamples)."""
        coordinates = np.asarray(coordinates, dtype=np.float64).reshape(-1, 3)
        payload = self._call(
            "read_traces", lambda: self.store.read_traces(coordinates, interpolation)
        )
        return self._decode(
            "read_traces", payload, (len(coordinates), self.metadata.sample.nsamples)
        )

    def read_samples(
        self,
        coordinates: NDArray[np.float64],
        interpolation: InterpolationMethod = InterpolationMethod.NEAREST,
    ) -> NDArray[np.float32]:
        """One sample per voxel-centre position, shaped (N,)."""
        coordinates = np.asarray(coordinates, dtype=np.float64).reshape(-1, 3)
        payload = self._call(
            "read_samples", lambda: self.store.read_samples(coordinates, interpolation)
        )
        return self._decode("read_samples", payload, (len(coordinates),))

    def __repr__(self) -> str:
        ni, nj, nk = self.metadata.shape
        return f"Volume({type(self.store).__name__}, shape=({ni}, {nj}, {nk}))"
