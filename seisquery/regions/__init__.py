"""Region builders: subvolumes, slices and fences."""

from seisquery.regions.fence import FenceRegion, build_fence
from seisquery.regions.subvolume import Bound, SliceRegion, SubVolume, build_slice

__all__ = [
    "Bound",
    "FenceRegion",
    "SliceRegion",
    "SubVolume",
    "build_fence",
    "build_slice",
]
