"""
Statistical attributes over horizon traces.

Every attribute reduces one cell's trace to a single float written at a
fixed position of a shared output buffer. The buffer holds one
nrows x ncols map per requested attribute, back to back.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Callable, Iterable, Sequence

import numpy as np
from numpy.typing import NDArray
from scipy.interpolate import CubicSpline

from seisquery.core.exceptions import InvalidArgumentError
from seisquery.geometry.surface import RegularSurface
from seisquery.horizon.horizon import Horizon
from seisquery.horizon.window import VerticalWindow
from seisquery.pipeline.chunks import RowChunk
from seisquery.utils.logging import get_logger

logger = get_logger(__name__)


class AttributeKind(str, Enum):
    """The closed set of attributes."""
    VALUE = "samplevalue"
    MIN = "min"
    MINAT = "minat"
    MAX = "max"
    MAXAT = "maxat"
    MAXABS = "maxabs"
    MAXABSAT = "maxabsat"
    MEAN = "mean"
    MEANABS = "meanabs"
    MEANPOS = "meanpos"
    MEANNEG = "meanneg"
    MEDIAN = "median"
    RMS = "rms"
    VAR = "var"
    SD = "sd"
    SUMPOS = "sumpos"
    SUMNEG = "sumneg"

    @classmethod
    def parse(cls, name: "str | AttributeKind") -> "AttributeKind":
        if isinstance(name, AttributeKind):
            return name
        key = str(name).strip().lower()
        if key == "value":
            return cls.VALUE
        try:
            return cls(key)
        except ValueError:
            options = ", ".join(kind.value for kind in cls)
            raise InvalidArgumentError(
                f"invalid attribute '{name}', valid options are: {options}"
            ) from None


Reducer = Callable[[NDArray[np.float64], int], float]


def _mean_of(values: NDArray[np.float64]) -> float:
    return float(values.mean()) if values.size else 0.0


REDUCERS: "MappingProxyType[AttributeKind, Reducer]" = MappingProxyType(
    {
        AttributeKind.VALUE: lambda v, i: float(v[i]),
        AttributeKind.MIN: lambda v, i: float(v.min()),
        AttributeKind.MINAT: lambda v, i: float(np.argmin(v)),
        AttributeKind.MAX: lambda v, i: float(v.max()),
        AttributeKind.MAXAT: lambda v, i: float(np.argmax(v)),
        AttributeKind.MAXABS: lambda v, i: float(np.abs(v).max()),
        AttributeKind.MAXABSAT: lambda v, i: float(np.argmax(np.abs(v))),
        AttributeKind.MEAN: lambda v, i: float(v.mean()),
        AttributeKind.MEANABS: lambda v, i: _mean_of(np.abs(v)),
        AttributeKind.MEANPOS: lambda v, i: _mean_of(v[v > 0]),
        AttributeKind.MEANNEG: lambda v, i: _mean_of(v[v < 0]),
        AttributeKind.MEDIAN: lambda v, i: float(np.median(v)),
        AttributeKind.RMS: lambda v, i: float(np.sqrt(np.mean(v * v))),
        AttributeKind.VAR: lambda v, i: float(np.var(v)),
        AttributeKind.SD: lambda v, i: float(np.std(v)),
        AttributeKind.SUMPOS: lambda v, i: float(v[v > 0].sum()),
        AttributeKind.SUMNEG: lambda v, i: float(v[v < 0].sum()),
    }
)

# Location attributes resolve to index 0 on the constant trace of a missing cell
_ZERO_WHEN_MISSING = frozenset({AttributeKind.MINAT, AttributeKind.MAXAT, AttributeKind.MAXABSAT})


@dataclass(frozen=True)
class OutputLayout:
    """
    Offsets into one contiguous buffer holding `nattributes` maps.

    offset(a, r, c) = a * attribute_stride + r * row_stride + c
    """

    nattributes: int
    nrows: int
    ncols: int

    def __post_init__(self) -> None:
        if self.nattributes < 1 or self.nrows < 1 or self.ncols < 1:
            raise InvalidArgumentError(
                f"Invalid output layout {self.nattributes} x {self.nrows} x {self.ncols}"
            )

    @property
    def attribute_stride(self) -> int:
        return self.nrows * self.ncols

    @property
    def row_stride(self) -> int:
        return self.ncols

    @property
    def size(self) -> int:
        return self.nattributes * self.attribute_stride

    def offset(self, attribute: int, row: int, col: int) -> int:
        if not (0 <= attribute < self.nattributes and 0 <= row < self.nrows and 0 <= col < self.ncols):
            raise IndexError(
                f"({attribute}, {row}, {col}) outside layout "
                f"({self.nattributes}, {self.nrows}, {self.ncols})"
            )
        return attribute * self.attribute_stride + row * self.row_stride + col

    def allocate(self) -> NDArray[np.float32]:
        return np.zeros(self.size, dtype=np.float32)

    def views(self, buffer: NDArray[np.float32]) -> list[NDArray[np.float32]]:
        """One nrows x ncols view per attribute."""
        if buffer.shape != (self.size,):
            raise InvalidArgumentError(f"Buffer of shape {buffer.shape} does not match layout size {self.size}")
        stride = self.attribute_stride
        return [
            buffer[a * stride:(a + 1) * stride].reshape(self.nrows, self.ncols)
            for a in range(self.nattributes)
        ]


@dataclass(frozen=True)
class Attribute:
    """An attribute kind bound to its map in the output layout."""

    kind: AttributeKind
    layout_index: int

    def reduce(self, trace: NDArray[np.float64], index: int) -> float:
        return REDUCERS[self.kind](trace, index)


def bind_attributes(names: Iterable["str | AttributeKind"]) -> list[Attribute]:
    return [Attribute(AttributeKind.parse(name), i) for i, name in enumerate(names)]


def compute_cell(
    trace: NDArray | None,
    index: int,
    attributes: Sequence[Attribute],
    buffer: NDArray[np.float32],
    layout: OutputLayout,
    row: int,
    col: int,
    fillvalue: float = 0.0,
) -> None:
    """
    Write every attribute of one cell.

    A missing cell (trace None) gets `fillvalue` for every attribute except
    minat, maxat and maxabsat, which get 0.
    """
    if trace is None:
        for attribute in attributes:
            value = 0.0 if attribute.kind in _ZERO_WHEN_MISSING else fillvalue
            buffer[layout.offset(attribute.layout_index, row, col)] = value
        return

    trace = np.asarray(trace, dtype=np.float64)
    for attribute in attributes:
        buffer[layout.offset(attribute.layout_index, row, col)] = attribute.reduce(trace, index)


def resample_trace(
    samples: NDArray,
    positions_in: NDArray[np.float64],
    positions_out: NDArray[np.float64],
) -> NDArray[np.float64]:
    """
    Resample a trace from `positions_in` to `positions_out`.

    Cubic spline for three or more samples, linear for two, constant for one.
    """
    samples = np.asarray(samples, dtype=np.float64)
    positions_out = np.asarray(positions_out, dtype=np.float64)
    if len(samples) != len(positions_in):
        raise InvalidArgumentError(
            f"Got {len(samples)} samples for {len(positions_in)} positions"
        )
    if len(samples) == 0:
        raise InvalidArgumentError("Cannot resample an empty trace")
    if len(samples) == 1:
        return np.full(positions_out.shape, samples[0])
    if len(samples) == 2:
        return np.interp(positions_out, positions_in, samples)
    return CubicSpline(positions_in, samples)(positions_out)


def _on_grid(offsets: NDArray[np.float64], length: int) -> NDArray[np.int64] | None:
    """Integer native indices if every fractional offset is on the native grid."""
    rounded = np.rint(offsets)
    if not np.allclose(offsets, rounded, atol=1e-4):
        return None
    indices = rounded.astype(np.int64)
    if indices.min() < 0 or indices.max() >= length:
        return None
    return indices


def compute_chunk(
    horizon: Horizon,
    samples: NDArray[np.float32],
    top: RegularSurface,
    bottom: RegularSurface,
    attributes: Sequence[Attribute],
    buffer: NDArray[np.float32],
    layout: OutputLayout,
    stepsize: float,
    rows: RowChunk | None = None,
) -> None:
    """
    Reduce the cells of one chunk of a between-surfaces horizon.

    Each present cell's native run is resampled onto the grid
    reference + n * stepsize, restricted to [top, bottom], before reduction.
    Missing cells are written with the reference surface's fillvalue.
    """
    sample_axis = horizon.metadata.sample
    reference = horizon.surface
    fillvalue = reference.fillvalue

    for cell in horizon.cells(samples, rows):
        row, col = cell.row, cell.col
        if cell.samples is None:
            compute_cell(None, 0, attributes, buffer, layout, row, col, fillvalue)
            continue

        ref = float(reference.values[row, col])
        window = VerticalWindow.spanning(
            ref, float(top.values[row, col]), float(bottom.values[row, col]), stepsize
        )
        positions = window.positions(ref)
        native = sample_axis.to_annotation(cell.first_sample + np.arange(len(cell.samples)))

        indices = _on_grid(sample_axis.to_index(positions) - cell.first_sample, len(cell.samples))
        if indices is not None:
            trace = np.asarray(cell.samples, dtype=np.float64)[indices]
        else:
            trace = resample_trace(cell.samples, native, positions)
        compute_cell(trace, window.samples_above, attributes, buffer, layout, row, col, fillvalue)
