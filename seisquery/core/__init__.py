"""Error types and validation shared across seisquery."""

from seisquery.core.exceptions import (
    ErrorKind,
    InvalidArgumentError,
    OutOfRangeError,
    SeisQueryError,
    StoreFailureError,
    UnitMismatchError,
    UnsupportedGeometryError,
)

__all__ = [
    "ErrorKind",
    "InvalidArgumentError",
    "OutOfRangeError",
    "SeisQueryError",
    "StoreFailureError",
    "UnitMismatchError",
    "UnsupportedGeometryError",
]
