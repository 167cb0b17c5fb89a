"""
seisquery exception classes.

Every failure surfaced by the engine is a SeisQueryError carrying one of the
ErrorKind values. A request either completes with full output or raises one of
these; no partial result is ever returned alongside an error.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Category of a request failure."""
    INVALID_ARGUMENT = "invalid_argument"
    UNSUPPORTED_GEOMETRY = "unsupported_geometry"
    UNIT_MISMATCH = "unit_mismatch"
    OUT_OF_RANGE = "out_of_range"
    STORE_FAILURE = "store_failure"


# ============================================================================
# Base Exception
# ============================================================================

class SeisQueryError(Exception):
    """Base exception class for all seisquery errors."""

    kind: ErrorKind = ErrorKind.INVALID_ARGUMENT

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        full_message = f"{message}\nDetails: {details}" if details else message
        super().__init__(full_message)


# ============================================================================
# Request Errors
# ============================================================================

class InvalidArgumentError(SeisQueryError):
    """Malformed or unsupported request parameters."""

    kind = ErrorKind.INVALID_ARGUMENT


class UnitMismatchError(SeisQueryError):
    """Requested axis does not agree with the volume's vertical unit."""

    kind = ErrorKind.UNIT_MISMATCH

    def __init__(self, direction: str, unit: str):
        super().__init__(
            f"Cannot fetch {direction.lower()} slice for volume with "
            f"vertical axis unit: {unit}"
        )
        self.direction = direction
        self.unit = unit


class OutOfRangeError(SeisQueryError):
    """Requested geometry falls outside the volume."""

    kind = ErrorKind.OUT_OF_RANGE


# ============================================================================
# Geometry and Storage Errors
# ============================================================================

class UnsupportedGeometryError(SeisQueryError):
    """Unrecognised dimensionality, axis naming or mismatching grids."""

    kind = ErrorKind.UNSUPPORTED_GEOMETRY


class StoreFailureError(SeisQueryError):
    """The volume store failed to deliver the requested samples."""

    kind = ErrorKind.STORE_FAILURE
