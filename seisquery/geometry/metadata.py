"""
Immutable volume metadata: axes, coordinate transformer and provenance.

Built once when a volume is opened and shared read-only by every request on
that volume.
"""

from __future__ import annotations

from dataclasses import dataclass

from seisquery.config.models import VolumeDescription
from seisquery.core.exceptions import UnsupportedGeometryError
from seisquery.geometry.axis import Axis, AxisRole, Direction
from seisquery.geometry.boundingbox import BoundingBox
from seisquery.geometry.transform import CoordinateTransformer
from seisquery.utils.logging import get_logger

logger = get_logger(__name__)

EXPECTED_DIMENSIONALITY = 3

_AXIS_NAMES = {
    "inline": AxisRole.INLINE,
    "crossline": AxisRole.CROSSLINE,
    "sample": AxisRole.SAMPLE,
    "time": AxisRole.SAMPLE,
    "depth": AxisRole.SAMPLE,
}


@dataclass(frozen=True)
class VolumeMetadata:
    """Geometry of an opened volume."""

    iline: Axis
    xline: Axis
    sample: Axis
    transformer: CoordinateTransformer
    crs: str = ""
    input_file_name: str = ""
    import_time_stamp: str = ""

    @classmethod
    def from_description(cls, description: VolumeDescription) -> "VolumeMetadata":
        """
        Resolve a store's description into named axes.

        Raises:
            UnsupportedGeometryError: Not three dimensions, or the axis names do
                not resolve to Inline, Crossline and Sample|Time|Depth.
        """
        ndims = len(description.axes)
        if ndims != EXPECTED_DIMENSIONALITY:
            raise UnsupportedGeometryError(
                f"Unsupported volume, expected {EXPECTED_DIMENSIONALITY} dimensions, got {ndims}"
            )

        axes: dict[AxisRole, Axis] = {}
        for dimension, desc in enumerate(description.axes):
            role = _AXIS_NAMES.get(desc.name.strip().lower())
            if role is None or role in axes:
                names = ", ".join(a.name for a in description.axes)
                raise UnsupportedGeometryError(
                    "Unsupported axis in volume, expected "
                    f"(Sample|Time|Depth, Crossline, Inline) but got ({names})"
                )
            axes[role] = Axis.from_range(
                role=role,
                annotation=desc.name,
                unit=desc.unit,
                min=desc.min,
                max=desc.max,
                nsamples=desc.nsamples,
                dimension=dimension,
            )

        iline = axes[AxisRole.INLINE]
        xline = axes[AxisRole.CROSSLINE]
        sample = axes[AxisRole.SAMPLE]
        transformer = CoordinateTransformer(
            iline=iline,
            xline=xline,
            sample=sample,
            origin=tuple(description.origin),
            inline_spacing=description.inline_spacing,
            crossline_spacing=description.crossline_spacing,
            rotation=description.rotation,
        )
        logger.debug(
            f"Volume axes: inline {iline.describe_range()}, "
            f"crossline {xline.describe_range()}, "
            f"{sample.annotation.lower()} {sample.describe_range()} {sample.unit}"
        )
        return cls(
            iline=iline,
            xline=xline,
            sample=sample,
            transformer=transformer,
            crs=description.crs,
            input_file_name=description.input_file_name,
            import_time_stamp=description.import_time_stamp,
        )

    @property
    def axes(self) -> tuple[Axis, Axis, Axis]:
        return (self.iline, self.xline, self.sample)

    @property
    def shape(self) -> tuple[int, int, int]:
        return (self.iline.nsamples, self.xline.nsamples, self.sample.nsamples)

    @property
    def bounding_box(self) -> BoundingBox:
        return BoundingBox(self.transformer)

    def get_axis(self, direction: Direction) -> Axis:
        if direction.is_iline():
            return self.iline
        if direction.is_xline():
            return self.xline
        return self.sample

    def axis_for_role(self, role: AxisRole) -> Axis:
        return {AxisRole.INLINE: self.iline, AxisRole.CROSSLINE: self.xline, AxisRole.SAMPLE: self.sample}[role]

    def as_dict(self) -> dict:
        return {
            "crs": self.crs,
            "inputFileName": self.input_file_name,
            "importTimeStamp": self.import_time_stamp,
            "boundingBox": self.bounding_box.as_dict(),
            "axis": [axis.as_dict() for axis in self.axes],
        }
