"""
seisquery - Query engine for regularly sampled 3D seismic volumes

Slices, fences, horizons and horizon attributes read from Zarr-backed
volumes, addressed in index, annotation or world coordinates.
"""

__version__ = "0.1.0"

from seisquery.core.exceptions import (
    ErrorKind,
    InvalidArgumentError,
    OutOfRangeError,
    SeisQueryError,
    StoreFailureError,
    UnitMismatchError,
    UnsupportedGeometryError,
)
from seisquery.query import open_volume
from seisquery.settings import (
    ApplicationSettings,
    get_settings,
    load_settings,
    reset_settings,
    save_settings,
)

__all__ = [
    "__version__",
    "open_volume",
    # Errors
    "ErrorKind",
    "InvalidArgumentError",
    "OutOfRangeError",
    "SeisQueryError",
    "StoreFailureError",
    "UnitMismatchError",
    "UnsupportedGeometryError",
    # Settings
    "ApplicationSettings",
    "get_settings",
    "load_settings",
    "reset_settings",
    "save_settings",
]
