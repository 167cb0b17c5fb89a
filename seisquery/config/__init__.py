"""Request and description models."""

from seisquery.config.models import (
    AttributeRequest,
    AxisDescription,
    BetweenSurfacesRequest,
    BinaryOperator,
    FenceRequest,
    HorizonRequest,
    InterpolationMethod,
    SliceBoundModel,
    SliceRequest,
    SurfaceModel,
    VolumeDescription,
)

__all__ = [
    "AttributeRequest",
    "AxisDescription",
    "BetweenSurfacesRequest",
    "BinaryOperator",
    "FenceRequest",
    "HorizonRequest",
    "InterpolationMethod",
    "SliceBoundModel",
    "SliceRequest",
    "SurfaceModel",
    "VolumeDescription",
]
