"""
Row-chunk planning and execution for horizon requests.

A surface is split into contiguous row ranges. Chunks write disjoint
parts of the shared output buffers, so they can run on a thread pool
without locking.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterator, Sequence, TypeVar

from seisquery.core.exceptions import InvalidArgumentError
from seisquery.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RowChunk:
    """Surface rows [start, stop)."""

    start: int
    stop: int  # Exclusive

    def __post_init__(self) -> None:
        if not 0 <= self.start <= self.stop:
            raise InvalidArgumentError(f"Invalid row range [{self.start}, {self.stop})")

    @property
    def nrows(self) -> int:
        return self.stop - self.start

    def cells(self, ncols: int) -> tuple[int, int]:
        """Row-major cell range [first, last) covered by the chunk."""
        return self.start * ncols, self.stop * ncols

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.start, self.stop))


@dataclass
class ChunkPlan:
    """Complete, non-overlapping cover of [0, nrows)."""

    chunks: list[RowChunk]
    nrows: int

    @property
    def n_chunks(self) -> int:
        return len(self.chunks)

    def __iter__(self) -> Iterator[RowChunk]:
        return iter(self.chunks)

    def __len__(self) -> int:
        return len(self.chunks)


def plan_row_chunks(nrows: int, rows_per_chunk: int = 0) -> ChunkPlan:
    """
    Split [0, nrows) into chunks of at most `rows_per_chunk` rows.

    Args:
        nrows: Number of surface rows
        rows_per_chunk: Chunk height; 0 or less yields a single chunk
    """
    if nrows < 0:
        raise InvalidArgumentError(f"Number of rows must be non-negative, got {nrows}")
    if rows_per_chunk <= 0 or rows_per_chunk >= nrows:
        chunks = [RowChunk(0, nrows)]
    else:
        chunks = [
            RowChunk(start, min(start + rows_per_chunk, nrows))
            for start in range(0, nrows, rows_per_chunk)
        ]
    logger.debug(f"Chunk plan: {nrows} rows in {len(chunks)} chunk(s)")
    return ChunkPlan(chunks=chunks, nrows=nrows)


def validate_chunks(chunks: Sequence[RowChunk], nrows: int) -> None:
    """Raise InvalidArgumentError unless chunks are in-range and disjoint."""
    covered: list[tuple[int, int]] = sorted((c.start, c.stop) for c in chunks)
    previous = 0
    for start, stop in covered:
        if stop > nrows:
            raise InvalidArgumentError(f"Row range [{start}, {stop}) exceeds {nrows} rows")
        if start < previous:
            raise InvalidArgumentError(f"Row range [{start}, {stop}) overlaps another chunk")
        previous = stop


def run_chunks(
    chunks: Sequence[RowChunk],
    fn: Callable[[RowChunk], T],
    max_workers: int = 1,
) -> list[T]:
    """
    Run `fn` on every chunk and return the results in chunk order.

    Every chunk is awaited before returning; if any failed, the first
    failure in chunk order is re-raised and no result is returned.
    """
    if max_workers <= 1 or len(chunks) <= 1:
        return [fn(chunk) for chunk in chunks]

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="seisquery") as executor:
        futures: list[Future[T]] = [executor.submit(fn, chunk) for chunk in chunks]
        errors = [f.exception() for f in futures]

    failed = [e for e in errors if e is not None]
    if failed:
        logger.debug(f"{len(failed)} of {len(chunks)} chunk(s) failed")
        raise failed[0]
    return [f.result() for f in futures]
