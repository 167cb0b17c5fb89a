"""Volume stores and the opened-volume handle."""

from seisquery.store.array_store import ArrayVolumeStore, ZarrVolumeStore
from seisquery.store.base import VolumeStore
from seisquery.store.combined import CombinedVolumeStore
from seisquery.store.volume import Volume

__all__ = [
    "ArrayVolumeStore",
    "CombinedVolumeStore",
    "Volume",
    "VolumeStore",
    "ZarrVolumeStore",
]
