"""
Volume store abstraction.

A store performs the actual reads against storage. Positions passed to
the trace and sample reads are index coordinates in logical
(inline, crossline, sample) order, addressing voxel centres: the first
sample of an axis is at 0.5. Every payload is little-endian float32.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

import numpy as np
from numpy.typing import NDArray

from seisquery.config.models import InterpolationMethod, VolumeDescription

if TYPE_CHECKING:
    from seisquery.regions.subvolume import SubVolume


SAMPLE_DTYPE = np.dtype("<f4")


@runtime_checkable
class VolumeStore(Protocol):
    """Capability consumed by the query engine."""

    def describe(self) -> VolumeDescription:
        """Geometry and provenance of the stored volume."""
        ...

    def probe_extent(self, region: "SubVolume") -> int:
        """Size in bytes of the payload read_region would return."""
        ...

    def read_region(self, region: "SubVolume") -> bytes:
        """Samples of a subvolume, C order over (inline, crossline, sample)."""
        ...

    def read_traces(
        self,
        coordinates: NDArray[np.float64],
        interpolation: InterpolationMethod,
    ) -> bytes:
        """Full vertical traces at (N, 3) horizontal positions; the vertical coordinate is ignored."""
        ...

    def read_samples(
        self,
        coordinates: NDArray[np.float64],
        interpolation: InterpolationMethod,
    ) -> bytes:
        """One sample per (N, 3) position."""
        ...


def to_payload(samples: NDArray) -> bytes:
    return np.ascontiguousarray(samples, dtype=SAMPLE_DTYPE).tobytes()


def from_payload(payload: bytes, shape: tuple[int, ...] | int) -> NDArray[np.float32]:
    """Decode a payload into a native float32 array of `shape`."""
    samples = np.frombuffer(payload, dtype=SAMPLE_DTYPE)
    return samples.astype(np.float32).reshape(shape)
