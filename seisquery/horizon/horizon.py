"""
Horizon: a surface, a vertical sampling rule and an offset table.

The offset table maps every surface cell (row-major) to a run in one flat
sample buffer. Missing cells (fillvalue, or outside the volume laterally)
have runs of length 0. The table is built once, in a single pass, before
any chunk is read; chunks then address disjoint slices of the buffer.

Two kinds of horizons exist:

- along a surface: every present cell has a run of the same length, one
  sample per window position around the surface value;
- between surfaces: every present cell covers the native samples from
  its top to its bottom value, plus a margin, so run lengths vary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

import numpy as np
from numpy.typing import NDArray

from seisquery.config.models import InterpolationMethod
from seisquery.core.exceptions import InvalidArgumentError, UnsupportedGeometryError
from seisquery.core.validation import check_vertical_window, in_horizontal_range
from seisquery.geometry.metadata import VolumeMetadata
from seisquery.geometry.surface import RegularSurface
from seisquery.geometry.transform import VOXEL_CENTER_OFFSET
from seisquery.horizon.window import VerticalWindow
from seisquery.pipeline.chunks import ChunkPlan, RowChunk, plan_row_chunks
from seisquery.store.volume import Volume
from seisquery.utils.logging import get_logger

logger = get_logger(__name__)


class OffsetTable:
    """
    Cumulative run offsets, one more entry than there are cells.

    Cell c occupies [offsets[c], offsets[c + 1]) of the sample buffer.
    """

    def __init__(self, offsets: NDArray[np.int64]):
        offsets = np.array(offsets, dtype=np.int64, copy=True)
        if offsets.ndim != 1 or len(offsets) < 1 or offsets[0] != 0:
            raise InvalidArgumentError("Offset table must be 1D and start at 0")
        if np.any(np.diff(offsets) < 0):
            raise InvalidArgumentError("Offset table must be non-decreasing")
        offsets.flags.writeable = False
        self._offsets = offsets

    @classmethod
    def from_lengths(cls, lengths: NDArray[np.int64]) -> "OffsetTable":
        offsets = np.zeros(len(lengths) + 1, dtype=np.int64)
        np.cumsum(lengths, out=offsets[1:])
        return cls(offsets)

    @property
    def offsets(self) -> NDArray[np.int64]:
        return self._offsets

    @property
    def hsize(self) -> int:
        return len(self._offsets) - 1

    @property
    def total(self) -> int:
        return int(self._offsets[-1])

    @property
    def lengths(self) -> NDArray[np.int64]:
        return np.diff(self._offsets)

    def start(self, cell: int) -> int:
        return int(self._offsets[cell])

    def length(self, cell: int) -> int:
        """Run length of a cell, 0 when missing."""
        return int(self._offsets[cell + 1] - self._offsets[cell])

    def cell_range(self, row_from: int, row_to: int, ncols: int) -> tuple[int, int]:
        """Buffer range [begin, end) covering rows [row_from, row_to)."""
        return self.start(row_from * ncols), self.start(row_to * ncols)

    def __len__(self) -> int:
        return len(self._offsets)

    def __repr__(self) -> str:
        return f"OffsetTable(hsize={self.hsize}, total={self.total})"


@dataclass(frozen=True)
class HorizonCell:
    """One cell's run within a chunk buffer."""

    row: int
    col: int
    samples: NDArray[np.float32] | None  # None when missing
    first_sample: int = 0  # Native sample index of samples[0], between-surface runs only


def _index_positions(metadata: VolumeMetadata, surface: RegularSurface) -> NDArray[np.float64]:
    """Index-space (i, j) of every surface cell, shape (rows, cols, 2)."""
    xy = surface.coordinates()
    positions = np.zeros(xy.shape[:2] + (3,), dtype=np.float64)
    positions[..., :2] = xy
    return metadata.transformer.world_to_index(positions)[..., :2]


def _first_failing(mask: NDArray[np.bool_]) -> tuple[int, int]:
    row, col = np.argwhere(mask)[0]
    return int(row), int(col)


class Horizon:
    """
    Surface cells resolved to sample coordinates.

    Use `along_surface` or `between_surfaces` to build one; the constructor
    takes the already resolved parts.
    """

    def __init__(
        self,
        metadata: VolumeMetadata,
        surface: RegularSurface,
        offsets: OffsetTable,
        coordinates: NDArray[np.float64],
        window: VerticalWindow | None = None,
        first_sample: NDArray[np.int64] | None = None,
    ):
        if offsets.hsize != surface.size:
            raise InvalidArgumentError(
                f"Offset table covers {offsets.hsize} cells, surface has {surface.size}"
            )
        if len(coordinates) != offsets.total:
            raise InvalidArgumentError(
                f"Offset table addresses {offsets.total} samples, got {len(coordinates)} coordinates"
            )
        coordinates.flags.writeable = False
        self.metadata = metadata
        self.surface = surface
        self.offsets = offsets
        self.coordinates = coordinates
        self.window = window
        self.first_sample = first_sample

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def along_surface(
        cls,
        metadata: VolumeMetadata,
        surface: RegularSurface,
        window: VerticalWindow,
    ) -> "Horizon":
        """
        Horizon with one window of `window.size()` samples around every cell.

        Cells holding the fillvalue or lying outside the volume laterally are
        missing. A window that leaves the sample axis at any present cell
        fails the whole request.

        Raises:
            OutOfRangeError: Some cell's window exceeds the vertical axis
        """
        sample = metadata.sample
        values = surface.values.astype(np.float64)
        index = _index_positions(metadata, surface)

        inside = in_horizontal_range(index[..., 0], metadata.iline) & in_horizontal_range(
            index[..., 1], metadata.xline
        )
        present = ~surface.missing_mask() & inside

        top = sample.to_index(values - window.samples_above * window.stepsize)
        bottom = sample.to_index(values + window.samples_below * window.stepsize)
        fits = in_horizontal_range(top, sample) & in_horizontal_range(bottom, sample)
        bad = present & ~fits
        if bad.any():
            row, col = _first_failing(bad)
            check_vertical_window(top[row, col], bottom[row, col], sample, row, col)

        size = window.size()
        lengths = np.where(present, size, 0).ravel()
        offsets = OffsetTable.from_lengths(lengths)

        cells = np.flatnonzero(present.ravel())
        ncells = len(cells)
        coordinates = np.empty((ncells, size, 3), dtype=np.float64)
        coordinates[..., 0] = index[..., 0].ravel()[cells, None] + VOXEL_CENTER_OFFSET
        coordinates[..., 1] = index[..., 1].ravel()[cells, None] + VOXEL_CENTER_OFFSET
        depths = values.ravel()[cells, None] + window.index_offsets()[None, :] * window.stepsize
        coordinates[..., 2] = sample.to_index(depths) + VOXEL_CENTER_OFFSET

        logger.debug(
            f"Horizon along surface: {ncells}/{surface.size} cells present, "
            f"{size} samples per cell"
        )
        return cls(
            metadata,
            surface,
            offsets,
            coordinates.reshape(-1, 3),
            window=window,
        )

    @classmethod
    def between_surfaces(
        cls,
        metadata: VolumeMetadata,
        reference: RegularSurface,
        top: RegularSurface,
        bottom: RegularSurface,
        margin: int = 0,
    ) -> "Horizon":
        """
        Horizon covering the native samples between `top` and `bottom`.

        Each present cell's run spans floor(index(top)) - margin to
        ceil(index(bottom)) + margin, clipped to the sample axis. A cell is
        missing when any of the three surfaces holds its fillvalue there, or
        when it lies outside the volume laterally.

        Raises:
            UnsupportedGeometryError: The surfaces do not share a grid
            InvalidArgumentError: top below bottom, or reference outside them
            OutOfRangeError: Some cell's interval exceeds the vertical axis
        """
        for name, other in (("top", top), ("bottom", bottom)):
            if not reference.same_grid(other):
                raise UnsupportedGeometryError(
                    f"Surfaces have different grid geometry: reference {reference!r}, {name} {other!r}"
                )

        sample = metadata.sample
        index = _index_positions(metadata, reference)
        inside = in_horizontal_range(index[..., 0], metadata.iline) & in_horizontal_range(
            index[..., 1], metadata.xline
        )
        missing = reference.missing_mask() | top.missing_mask() | bottom.missing_mask()
        present = ~missing & inside

        ref_values = reference.values.astype(np.float64)
        top_values = top.values.astype(np.float64)
        bottom_values = bottom.values.astype(np.float64)

        inverted = present & (top_values > bottom_values)
        if inverted.any():
            row, col = _first_failing(inverted)
            raise InvalidArgumentError(
                f"Top surface is below bottom surface at row: {row} col: {col}"
            )
        outside = present & ((ref_values < top_values) | (ref_values > bottom_values))
        if outside.any():
            row, col = _first_failing(outside)
            raise InvalidArgumentError(
                f"Reference surface is not between top and bottom at row: {row} col: {col}"
            )

        top_index = sample.to_index(top_values)
        bottom_index = sample.to_index(bottom_values)
        fits = in_horizontal_range(top_index, sample) & in_horizontal_range(bottom_index, sample)
        bad = present & ~fits
        if bad.any():
            row, col = _first_failing(bad)
            check_vertical_window(top_index[row, col], bottom_index[row, col], sample, row, col)

        last = sample.nsamples - 1
        first = np.clip(np.floor(top_index).astype(np.int64) - margin, 0, last)
        final = np.clip(np.ceil(bottom_index).astype(np.int64) + margin, 0, last)
        lengths = np.where(present, final - first + 1, 0).ravel()
        offsets = OffsetTable.from_lengths(lengths)

        first_sample = np.where(present, first, -1).ravel()
        cells = np.repeat(np.arange(reference.size), lengths)
        within = np.arange(offsets.total, dtype=np.int64) - offsets.offsets[cells]
        coordinates = np.empty((offsets.total, 3), dtype=np.float64)
        coordinates[:, 0] = index[..., 0].ravel()[cells] + VOXEL_CENTER_OFFSET
        coordinates[:, 1] = index[..., 1].ravel()[cells] + VOXEL_CENTER_OFFSET
        coordinates[:, 2] = first_sample[cells] + within + VOXEL_CENTER_OFFSET

        logger.debug(
            f"Horizon between surfaces: {int(present.sum())}/{reference.size} cells present, "
            f"{offsets.total} samples"
        )
        return cls(
            metadata,
            reference,
            offsets,
            coordinates,
            first_sample=first_sample,
        )

    # ------------------------------------------------------------------
    # Chunking
    # ------------------------------------------------------------------

    @property
    def nrows(self) -> int:
        return self.surface.nrows

    @property
    def ncols(self) -> int:
        return self.surface.ncols

    @property
    def is_uniform(self) -> bool:
        """True when every present cell has a run of window.size() samples."""
        return self.window is not None

    def plan_chunks(self, rows_per_chunk: int = 0) -> ChunkPlan:
        return plan_row_chunks(self.nrows, rows_per_chunk)

    def _rows(self, rows: RowChunk | None) -> RowChunk:
        if rows is None:
            return RowChunk(0, self.nrows)
        if rows.stop > self.nrows:
            raise InvalidArgumentError(
                f"Row range [{rows.start}, {rows.stop}) exceeds surface with {self.nrows} rows"
            )
        return rows

    def coordinates_for(self, rows: RowChunk | None = None) -> NDArray[np.float64]:
        rows = self._rows(rows)
        begin, end = self.offsets.cell_range(rows.start, rows.stop, self.ncols)
        return self.coordinates[begin:end]

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def read(
        self,
        volume: Volume,
        interpolation: InterpolationMethod = InterpolationMethod.NEAREST,
        rows: RowChunk | None = None,
    ) -> NDArray[np.float32]:
        """Flat samples of the cells in `rows`, in offset-table order."""
        coordinates = self.coordinates_for(rows)
        if len(coordinates) == 0:
            return np.empty(0, dtype=np.float32)
        return volume.read_samples(coordinates, interpolation)

    def cells(
        self,
        samples: NDArray[np.float32],
        rows: RowChunk | None = None,
    ) -> Iterator[HorizonCell]:
        """Walk the cells of `rows` in row-major order with their runs from `samples`."""
        rows = self._rows(rows)
        ncols = self.ncols
        base = self.offsets.start(rows.start * ncols)
        for cell in range(rows.start * ncols, rows.stop * ncols):
            row, col = divmod(cell, ncols)
            length = self.offsets.length(cell)
            if length == 0:
                yield HorizonCell(row, col, None)
                continue
            begin = self.offsets.start(cell) - base
            first = int(self.first_sample[cell]) if self.first_sample is not None else 0
            yield HorizonCell(row, col, samples[begin:begin + length], first)

    def fill_output(
        self,
        samples: NDArray[np.float32],
        out: NDArray[np.float32],
        fillvalue: float,
        rows: RowChunk | None = None,
    ) -> None:
        """
        Copy the runs of `rows` into the rectangular (rows, cols, size) output.

        Missing cells get their whole run set to `fillvalue`.
        """
        if not self.is_uniform:
            raise InvalidArgumentError("Only horizons along a surface have a rectangular output")
        rows = self._rows(rows)
        size = self.window.size()
        if out.shape != (self.nrows, self.ncols, size):
            raise InvalidArgumentError(
                f"Output shape {out.shape} does not match horizon {(self.nrows, self.ncols, size)}"
            )
        first, last = rows.cells(self.ncols)
        present = self.offsets.lengths[first:last] > 0
        target = out[rows.start:rows.stop].reshape(-1, size)
        target[~present] = np.float32(fillvalue)
        target[present] = samples.reshape(-1, size)

    def __repr__(self) -> str:
        return (
            f"Horizon(shape={self.surface.shape}, "
            f"{'uniform' if self.is_uniform else 'variable'} runs, {self.offsets!r})"
        )
