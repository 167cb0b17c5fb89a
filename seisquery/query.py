"""
Client operations on an opened volume.

Each operation validates its input, resolves the request against the
volume geometry, reads from the store and returns a result object. Any
failure raises a SeisQueryError and no partial output is returned.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Sequence, TypeVar

import numpy as np
from numpy.typing import ArrayLike, NDArray
from pydantic import ValidationError

from seisquery.config.models import InterpolationMethod, SliceBoundModel, SurfaceModel
from seisquery.core.exceptions import InvalidArgumentError
from seisquery.core.validation import check_positive_window
from seisquery.geometry.axis import Axis
from seisquery.geometry.surface import RegularSurface
from seisquery.horizon import alignment
from seisquery.horizon.attributes import (
    AttributeKind,
    OutputLayout,
    bind_attributes,
    compute_chunk,
)
from seisquery.horizon.horizon import Horizon
from seisquery.horizon.window import VerticalWindow
from seisquery.pipeline.chunks import RowChunk, plan_row_chunks, run_chunks, validate_chunks
from seisquery.regions.fence import build_fence
from seisquery.regions.subvolume import SliceRegion, build_slice
from seisquery.settings import get_settings
from seisquery.store.array_store import ZarrVolumeStore
from seisquery.store.base import SAMPLE_DTYPE, VolumeStore
from seisquery.store.volume import Volume
from seisquery.utils.logging import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

SurfaceLike = RegularSurface | SurfaceModel | dict


# =============================================================================
# Results
# =============================================================================


@dataclass
class SliceResult:
    """2D slice laid out [y, x]."""

    data: NDArray[np.float32]
    region: SliceRegion

    @property
    def shape(self) -> list[int]:
        return list(self.data.shape)

    @property
    def x(self) -> Axis:
        return self.region.x_axis

    @property
    def y(self) -> Axis:
        return self.region.y_axis

    @property
    def geospatial(self) -> list[list[float]]:
        return self.region.geospatial

    def to_bytes(self) -> bytes:
        return self.data.astype(SAMPLE_DTYPE).tobytes()


@dataclass
class FenceResult:
    """One trace per fence point, shaped (npoints, nsamples)."""

    data: NDArray[np.float32]

    @property
    def shape(self) -> list[int]:
        return list(self.data.shape)

    def to_bytes(self) -> bytes:
        return self.data.astype(SAMPLE_DTYPE).tobytes()


@dataclass
class HorizonResult:
    """Samples around a surface, shaped (rows, cols, window size)."""

    data: NDArray[np.float32]
    window: VerticalWindow
    rows: RowChunk

    @property
    def shape(self) -> list[int]:
        return list(self.data.shape)

    def to_bytes(self) -> bytes:
        return self.data.astype(SAMPLE_DTYPE).tobytes()


@dataclass
class AttributeResult:
    """One rows x cols map per requested attribute, in one contiguous buffer."""

    buffer: NDArray[np.float32]
    layout: OutputLayout
    kinds: list[AttributeKind]
    rows: RowChunk

    @property
    def maps(self) -> dict[str, NDArray[np.float32]]:
        views = self.layout.views(self.buffer)
        return {kind.value: view for kind, view in zip(self.kinds, views)}

    def to_bytes(self) -> list[bytes]:
        """One little-endian payload per attribute, in request order."""
        return [view.astype(SAMPLE_DTYPE).tobytes() for view in self.layout.views(self.buffer)]


# =============================================================================
# Helpers
# =============================================================================


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()))
        message = error.get("msg", "")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


def operation(fn: F) -> F:
    """Turn pydantic validation failures into InvalidArgumentError."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except ValidationError as exc:
            raise InvalidArgumentError(_validation_message(exc)) from exc

    return wrapper  # type: ignore[return-value]


def _surface(surface: SurfaceLike) -> RegularSurface:
    if isinstance(surface, RegularSurface):
        return surface
    if isinstance(surface, SurfaceModel):
        return RegularSurface.from_model(surface)
    return RegularSurface.from_model(SurfaceModel.model_validate(surface))


def _interpolation(value: "InterpolationMethod | str | None") -> InterpolationMethod:
    if value is None:
        value = get_settings().query.default_interpolation
    return InterpolationMethod.parse(value)


def _row_range(rows: "RowChunk | tuple[int, int] | None", nrows: int) -> RowChunk:
    if rows is None:
        return RowChunk(0, nrows)
    chunk = rows if isinstance(rows, RowChunk) else RowChunk(*rows)
    if chunk.stop > nrows or chunk.nrows == 0:
        raise InvalidArgumentError(
            f"Invalid row range [{chunk.start}, {chunk.stop}) for surface with {nrows} rows"
        )
    return chunk


def _chunks_of(target: RowChunk) -> list[RowChunk]:
    rows_per_chunk = get_settings().horizon.rows_per_chunk
    plan = plan_row_chunks(target.nrows, rows_per_chunk)
    chunks = [RowChunk(target.start + c.start, target.start + c.stop) for c in plan]
    # Chunks write disjoint rows of shared output buffers
    validate_chunks(chunks, target.stop)
    return chunks


def _run(chunks: Sequence[RowChunk], fn: Callable[[RowChunk], None]) -> None:
    run_chunks(chunks, fn, get_settings().horizon.max_workers)


def open_volume(source: "VolumeStore | Path | str") -> Volume:
    """Open a Zarr volume by path, or wrap an existing store."""
    if isinstance(source, (str, Path)):
        return Volume(ZarrVolumeStore.open(source))
    return Volume(source)


# =============================================================================
# Metadata
# =============================================================================


def metadata(volume: Volume) -> dict[str, Any]:
    """Axes, bounding box and provenance of the volume."""
    return volume.metadata.as_dict()


# =============================================================================
# Slice
# =============================================================================


@operation
def slice_metadata(
    volume: Volume,
    direction: str,
    lineno: float,
    bounds: Iterable[SliceBoundModel | dict] = (),
) -> dict[str, Any]:
    return build_slice(volume.metadata, direction, lineno, list(bounds)).as_dict()


@operation
def slice(
    volume: Volume,
    direction: str,
    lineno: float,
    bounds: Iterable[SliceBoundModel | dict] = (),
) -> SliceResult:
    """
    Fetch a 2D slice through the volume.

    Args:
        volume: Opened volume
        direction: i, j, k, inline, crossline, depth, time or sample
        lineno: Line number in the direction's coordinate system
        bounds: Inclusive bounds on the other axes
    """
    region = build_slice(volume.metadata, direction, lineno, list(bounds))
    block = volume.read_region(region.subvolume)
    if region.direction.is_iline():
        data = block[0, :, :]
    elif region.direction.is_xline():
        data = block[:, 0, :]
    else:
        data = block[:, :, 0]
    logger.info(f"Slice {region.direction} {lineno}: shape {list(data.shape)}")
    return SliceResult(data=np.ascontiguousarray(data), region=region)


# =============================================================================
# Fence
# =============================================================================


def fence_metadata(volume: Volume, npoints: int) -> dict[str, Any]:
    return {"format": "<f4", "shape": [npoints, volume.metadata.sample.nsamples]}


@operation
def fence(
    volume: Volume,
    coordinate_system: str,
    points: ArrayLike,
    interpolation: "InterpolationMethod | str | None" = None,
    fillvalue: float | None = None,
) -> FenceResult:
    """
    Fetch full traces along an arbitrary polyline of points.

    Without a fillvalue every point must lie inside the volume. With one,
    points outside yield traces of fillvalue.
    """
    method = _interpolation(interpolation)
    region = build_fence(volume.metadata, coordinate_system, points, fillvalue)
    data = np.empty((region.npoints, region.nsamples), dtype=np.float32)
    if region.valid.any():
        data[region.valid] = volume.read_traces(region.coordinates[region.valid], method)
    if not region.valid.all():
        data[~region.valid] = np.float32(fillvalue)
    logger.info(f"Fence: {region.npoints} points, {method.value} interpolation")
    return FenceResult(data=data)


# =============================================================================
# Horizon
# =============================================================================


@operation
def horizon(
    volume: Volume,
    surface: SurfaceLike,
    above: float = 0.0,
    below: float = 0.0,
    interpolation: "InterpolationMethod | str | None" = None,
    fillvalue: float | None = None,
    rows: "RowChunk | tuple[int, int] | None" = None,
) -> HorizonResult:
    """
    Fetch a window of samples around every cell of a surface.

    The window is squeezed once against the sample axis so that all cells
    share one run length. Cells holding the surface fillvalue or lying
    outside the volume get `fillvalue` (default: the surface's) for their
    whole run.

    Args:
        rows: Restrict the computation and output to these surface rows
    """
    method = _interpolation(interpolation)
    regular = _surface(surface)
    sample = volume.metadata.sample
    window = VerticalWindow(above, below, sample.stepsize).squeeze(sample)
    resolved = Horizon.along_surface(volume.metadata, regular, window)

    fill = regular.fillvalue if fillvalue is None else fillvalue
    target = _row_range(rows, resolved.nrows)
    out = np.empty((resolved.nrows, resolved.ncols, window.size()), dtype=np.float32)

    def process(chunk: RowChunk) -> None:
        samples = resolved.read(volume, method, chunk)
        resolved.fill_output(samples, out, fill, chunk)

    _run(_chunks_of(target), process)
    logger.info(
        f"Horizon: {regular.nrows} x {regular.ncols} cells, rows [{target.start}, {target.stop}), "
        f"{window.size()} samples per cell"
    )
    return HorizonResult(data=out[target.start:target.stop], window=window, rows=target)


# =============================================================================
# Attributes
# =============================================================================


def attribute_metadata(nrows: int, ncols: int) -> dict[str, Any]:
    return {"format": "<f4", "shape": [nrows, ncols]}


@operation
def attribute(
    volume: Volume,
    reference: SurfaceLike,
    top: SurfaceLike,
    bottom: SurfaceLike,
    attributes: Sequence[str | AttributeKind],
    stepsize: float | None = None,
    interpolation: "InterpolationMethod | str | None" = None,
    rows: "RowChunk | tuple[int, int] | None" = None,
) -> AttributeResult:
    """
    Compute attributes in the interval between `top` and `bottom`.

    Traces are resampled onto reference + n * stepsize (native stepsize by
    default); the value attribute is the sample at the reference.

    Args:
        rows: Restrict the computation and output to these surface rows
    """
    if not attributes:
        raise InvalidArgumentError("At least one attribute must be requested")
    bound = bind_attributes(attributes)
    method = _interpolation(interpolation)
    reference, top, bottom = _surface(reference), _surface(top), _surface(bottom)

    sample = volume.metadata.sample
    if stepsize is None or stepsize == 0:
        stepsize = sample.stepsize
    if stepsize < 0:
        raise InvalidArgumentError(f"Stepsize must be positive, got {stepsize}")

    margin = get_settings().attribute.interpolation_margin
    resolved = Horizon.between_surfaces(volume.metadata, reference, top, bottom, margin)

    target = _row_range(rows, resolved.nrows)
    layout = OutputLayout(len(bound), resolved.nrows, resolved.ncols)
    buffer = layout.allocate()

    def process(chunk: RowChunk) -> None:
        samples = resolved.read(volume, method, chunk)
        compute_chunk(resolved, samples, top, bottom, bound, buffer, layout, stepsize, chunk)

    _run(_chunks_of(target), process)

    kinds = [a.kind for a in bound]
    if target.nrows != resolved.nrows:
        views = layout.views(buffer)
        buffer = np.concatenate([v[target.start:target.stop].ravel() for v in views])
        layout = OutputLayout(len(bound), target.nrows, resolved.ncols)

    logger.info(
        f"Attributes {', '.join(k.value for k in kinds)}: "
        f"{resolved.nrows} x {resolved.ncols} cells, stepsize {stepsize:g}"
    )
    return AttributeResult(buffer=buffer, layout=layout, kinds=kinds, rows=target)


@operation
def attribute_along_surface(
    volume: Volume,
    surface: SurfaceLike,
    above: float,
    below: float,
    attributes: Sequence[str | AttributeKind],
    stepsize: float | None = None,
    interpolation: "InterpolationMethod | str | None" = None,
    rows: "RowChunk | tuple[int, int] | None" = None,
) -> AttributeResult:
    """Attributes in a window from `above` over to `below` under a surface."""
    check_positive_window(above, below)
    regular = _surface(surface)
    return attribute(
        volume,
        regular,
        regular.shifted(-above),
        regular.shifted(below),
        attributes,
        stepsize=stepsize,
        interpolation=interpolation,
        rows=rows,
    )


@operation
def attribute_between_surfaces(
    volume: Volume,
    primary: SurfaceLike,
    secondary: SurfaceLike,
    attributes: Sequence[str | AttributeKind],
    stepsize: float | None = None,
    interpolation: "InterpolationMethod | str | None" = None,
    rows: "RowChunk | tuple[int, int] | None" = None,
) -> AttributeResult:
    """Attributes between two surfaces, referenced to the primary."""
    primary, secondary = _surface(primary), _surface(secondary)
    top, bottom = alignment.bounding_surfaces(primary, secondary)
    return attribute(
        volume,
        primary,
        top,
        bottom,
        attributes,
        stepsize=stepsize,
        interpolation=interpolation,
        rows=rows,
    )


# =============================================================================
# Surface alignment
# =============================================================================


@operation
def align_surfaces(primary: SurfaceLike, secondary: SurfaceLike) -> alignment.AlignmentResult:
    return alignment.align_surfaces(_surface(primary), _surface(secondary))
