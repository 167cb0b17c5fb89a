"""Survey bounding box in index, annotation and world coordinates."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from seisquery.geometry.transform import CoordinateTransformer


@dataclass(frozen=True)
class BoundingBox:
    """
    The four horizontal corners of a volume.

    Corners are ordered (0, 0), (ni-1, 0), (ni-1, nj-1), (0, nj-1) in every
    coordinate system.
    """

    transformer: CoordinateTransformer

    def _index_corners(self) -> NDArray[np.float64]:
        ni = self.transformer.iline.nsamples - 1
        nj = self.transformer.xline.nsamples - 1
        return np.array(
            [[0, 0, 0], [ni, 0, 0], [ni, nj, 0], [0, nj, 0]],
            dtype=np.float64,
        )

    @property
    def index(self) -> list[list[float]]:
        return self._index_corners()[:, :2].tolist()

    @property
    def annotation(self) -> list[list[float]]:
        corners = self.transformer.index_to_annotation(self._index_corners())
        return corners[:, :2].tolist()

    @property
    def world(self) -> list[list[float]]:
        corners = self.transformer.index_to_world(self._index_corners())
        return corners[:, :2].tolist()

    def as_dict(self) -> dict[str, list[list[float]]]:
        return {"ij": self.index, "ilxl": self.annotation, "cdp": self.world}
