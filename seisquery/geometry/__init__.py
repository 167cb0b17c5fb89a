"""Geometry model: axes, coordinate transforms, surfaces and volume metadata."""

from seisquery.geometry.axis import Axis, AxisName, AxisRole, CoordinateSystem, Direction
from seisquery.geometry.boundingbox import BoundingBox
from seisquery.geometry.surface import RegularSurface
from seisquery.geometry.transform import VOXEL_CENTER_OFFSET, CoordinateTransformer

__all__ = [
    "Axis",
    "AxisName",
    "AxisRole",
    "BoundingBox",
    "CoordinateSystem",
    "CoordinateTransformer",
    "Direction",
    "RegularSurface",
    "VOXEL_CENTER_OFFSET",
]
