"""Sample-wise combination of two volumes with identical geometry."""

from __future__ import annotations

import operator
from typing import Callable

import numpy as np
from numpy.typing import NDArray

from seisquery.config.models import BinaryOperator, InterpolationMethod, VolumeDescription
from seisquery.core.exceptions import UnsupportedGeometryError
from seisquery.regions.subvolume import SubVolume
from seisquery.store.base import SAMPLE_DTYPE, VolumeStore, to_payload
from seisquery.utils.logging import get_logger

logger = get_logger(__name__)

_OPERATORS: dict[BinaryOperator, Callable[[NDArray, NDArray], NDArray]] = {
    BinaryOperator.ADDITION: operator.add,
    BinaryOperator.SUBTRACTION: operator.sub,
    BinaryOperator.MULTIPLICATION: operator.mul,
    BinaryOperator.DIVISION: operator.truediv,
}


def _geometry(description: VolumeDescription) -> tuple:
    return (
        tuple((a.name, a.unit, a.min, a.max, a.nsamples) for a in description.axes),
        tuple(description.origin),
        description.inline_spacing,
        description.crossline_spacing,
        description.rotation,
    )


class CombinedVolumeStore:
    """
    Store whose samples are `operator(a, b)` of two stores.

    Metadata is taken from the first store. Division by zero follows IEEE
    semantics (inf / nan) and is not an error.
    """

    def __init__(self, a: VolumeStore, b: VolumeStore, binary_operator: "BinaryOperator | str"):
        self.a = a
        self.b = b
        self.operator = BinaryOperator(binary_operator)
        if _geometry(a.describe()) != _geometry(b.describe()):
            raise UnsupportedGeometryError(
                "Cannot combine volumes with different geometry"
            )
        logger.debug(f"Combining volumes with {self.operator.value}")

    def describe(self) -> VolumeDescription:
        return self.a.describe()

    def probe_extent(self, region: SubVolume) -> int:
        return self.a.probe_extent(region)

    def _combine(self, left: bytes, right: bytes) -> bytes:
        x = np.frombuffer(left, dtype=SAMPLE_DTYPE)
        y = np.frombuffer(right, dtype=SAMPLE_DTYPE)
        with np.errstate(divide="ignore", invalid="ignore"):
            return to_payload(_OPERATORS[self.operator](x, y))

    def read_region(self, region: SubVolume) -> bytes:
        return self._combine(self.a.read_region(region), self.b.read_region(region))

    def read_traces(
        self,
        coordinates: NDArray[np.float64],
        interpolation: InterpolationMethod,
    ) -> bytes:
        return self._combine(
            self.a.read_traces(coordinates, interpolation),
            self.b.read_traces(coordinates, interpolation),
        )

    def read_samples(
        self,
        coordinates: NDArray[np.float64],
        interpolation: InterpolationMethod,
    ) -> bytes:
        return self._combine(
            self.a.read_samples(coordinates, interpolation),
            self.b.read_samples(coordinates, interpolation),
        )
