"""Horizon extraction, attributes and surface alignment."""

from seisquery.horizon.alignment import AlignmentResult, align_surfaces, bounding_surfaces
from seisquery.horizon.attributes import (
    REDUCERS,
    Attribute,
    AttributeKind,
    OutputLayout,
    compute_cell,
    resample_trace,
)
from seisquery.horizon.horizon import Horizon, OffsetTable
from seisquery.horizon.window import VerticalWindow

__all__ = [
    "AlignmentResult",
    "Attribute",
    "AttributeKind",
    "Horizon",
    "OffsetTable",
    "OutputLayout",
    "REDUCERS",
    "VerticalWindow",
    "align_surfaces",
    "bounding_surfaces",
    "compute_cell",
    "resample_trace",
]
