"""
Pydantic request and description models for seisquery.

Everything that crosses the client boundary is validated here before the
engine sees it: surfaces, slice bounds, request parameters and the volume
description a store reports.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from seisquery.core.exceptions import InvalidArgumentError


# =============================================================================
# Enumerations
# =============================================================================


class InterpolationMethod(str, Enum):
    """Interpolation used by the store when reading between voxel centres."""
    NEAREST = "nearest"
    LINEAR = "linear"
    CUBIC = "cubic"
    ANGULAR = "angular"
    TRIANGULAR = "triangular"

    @classmethod
    def parse(cls, value: "str | InterpolationMethod | None") -> "InterpolationMethod":
        if isinstance(value, InterpolationMethod):
            return value
        key = (value or "").strip().lower()
        if key == "":
            return cls.NEAREST
        try:
            return cls(key)
        except ValueError:
            raise InvalidArgumentError(
                f"invalid interpolation method '{value}', valid options are: "
                "nearest, linear, cubic, angular or triangular"
            ) from None


class BinaryOperator(str, Enum):
    """Sample-wise operator combining two volumes."""
    ADDITION = "addition"
    SUBTRACTION = "subtraction"
    MULTIPLICATION = "multiplication"
    DIVISION = "division"


# =============================================================================
# Volume description
# =============================================================================


class AxisDescription(BaseModel):
    """One storage dimension as reported by a store."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Axis annotation name, e.g. Inline or Time")
    unit: str = Field(default="unitless", description="Axis unit")
    min: float = Field(description="Annotation of the first sample")
    max: float = Field(description="Annotation of the last sample")
    nsamples: int = Field(ge=1, description="Number of samples along the axis")


class VolumeDescription(BaseModel):
    """
    Geometry and provenance of a stored volume.

    `axes` are listed in storage order; the position in the list is the
    axis' storage dimension.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    axes: list[AxisDescription]
    origin: tuple[float, float] = (0.0, 0.0)
    inline_spacing: float = Field(default=1.0, gt=0)
    crossline_spacing: float = Field(default=1.0, gt=0)
    rotation: float = 0.0
    crs: str = ""
    input_file_name: str = Field(default="", alias="inputFileName")
    import_time_stamp: str = Field(default="", alias="importTimeStamp")


# =============================================================================
# Surfaces
# =============================================================================


class SurfaceModel(BaseModel):
    """A regular surface as sent by a client."""
    model_config = ConfigDict(populate_by_name=True)

    values: list[list[float]] = Field(description="Height map, rows of equal length")
    rotation: float = Field(description="Rotation of the x-axis, counter-clockwise, in degrees")
    xori: float = Field(description="X-coordinate of the origin")
    yori: float = Field(description="Y-coordinate of the origin")
    xinc: float = Field(description="Distance between rows")
    yinc: float = Field(description="Distance between columns")
    fill_value: float = Field(alias="fillValue", description="Marks cells without data")

    @field_validator("values")
    @classmethod
    def _rectangular(cls, values: list[list[float]]) -> list[list[float]]:
        if not values or not values[0]:
            raise ValueError("Surface must have at least one row and one column")
        ncols = len(values[0])
        for i, row in enumerate(values):
            if len(row) != ncols:
                raise ValueError(
                    "Surface rows are not of the same length. "
                    f"Row 0 has {ncols} elements. Row {i} has {len(row)} elements"
                )
        return values


# =============================================================================
# Requests
# =============================================================================


class SliceBoundModel(BaseModel):
    """Inclusive constraint on one axis, in that axis' coordinate system."""
    model_config = ConfigDict(frozen=True)

    direction: str
    lower: float
    upper: float

    @model_validator(mode="after")
    def _ordered(self) -> "SliceBoundModel":
        if self.lower > self.upper:
            raise ValueError(
                f"Bound lower ({self.lower}) is larger than upper ({self.upper}) "
                f"for direction {self.direction}"
            )
        return self


class SliceRequest(BaseModel):
    direction: str
    lineno: float
    bounds: list[SliceBoundModel] = Field(default_factory=list)


class FenceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    coordinate_system: str = Field(alias="coordinateSystem")
    coordinates: list[list[float]]
    interpolation: InterpolationMethod = InterpolationMethod.NEAREST
    fill_value: float | None = Field(default=None, alias="fillValue")

    @field_validator("interpolation", mode="before")
    @classmethod
    def _interpolation(cls, value: Any) -> InterpolationMethod:
        return InterpolationMethod.parse(value)

    @field_validator("coordinates")
    @classmethod
    def _pairs(cls, coordinates: list[list[float]]) -> list[list[float]]:
        if not coordinates:
            raise ValueError("Fence must contain at least one coordinate")
        for i, point in enumerate(coordinates):
            if len(point) != 2:
                raise ValueError(
                    f"invalid coordinate {point} at position {i}, expected [x y] pair"
                )
        return coordinates


class HorizonRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    surface: SurfaceModel
    above: float = 0.0
    below: float = 0.0
    interpolation: InterpolationMethod = InterpolationMethod.NEAREST
    fill_value: float | None = Field(default=None, alias="fillValue")

    @field_validator("interpolation", mode="before")
    @classmethod
    def _interpolation(cls, value: Any) -> InterpolationMethod:
        return InterpolationMethod.parse(value)


class AttributeRequest(BaseModel):
    """Attributes along a single surface, window given by above/below."""
    model_config = ConfigDict(populate_by_name=True)

    surface: SurfaceModel
    above: float = 0.0
    below: float = 0.0
    stepsize: float = Field(default=0.0, ge=0)
    attributes: list[str] = Field(min_length=1)
    interpolation: InterpolationMethod = InterpolationMethod.NEAREST

    @field_validator("interpolation", mode="before")
    @classmethod
    def _interpolation(cls, value: Any) -> InterpolationMethod:
        return InterpolationMethod.parse(value)


class BetweenSurfacesRequest(BaseModel):
    """Attributes in the interval between two surfaces."""
    model_config = ConfigDict(populate_by_name=True)

    primary_surface: SurfaceModel = Field(alias="primarySurface")
    secondary_surface: SurfaceModel = Field(alias="secondarySurface")
    stepsize: float = Field(default=0.0, ge=0)
    attributes: list[str] = Field(min_length=1)
    interpolation: InterpolationMethod = InterpolationMethod.NEAREST

    @field_validator("interpolation", mode="before")
    @classmethod
    def _interpolation(cls, value: Any) -> InterpolationMethod:
        return InterpolationMethod.parse(value)
