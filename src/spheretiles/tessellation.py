"""Common interface of the spherical tessellation schemes.

A tessellation divides the unit sphere into ``num_tiles`` tiles numbered
``0 .. num_tiles - 1``. Each scheme supplies the forward mapping (tile
index to center) and the inverse mapping (point to tile index); the
region queries here work in terms of those two.
"""

from __future__ import annotations

import logging
import operator
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Callable

import numpy as np

from spheretiles.coords import LatLon, Point, as_unit_vector, vector_to_latlon

logger = logging.getLogger(__name__)

# Called with the unit vector of a tile center.
TilePredicate = Callable[[np.ndarray], bool]


class SphericalTessellation(ABC):
    """A partition of the unit sphere into indexed tiles."""

    @property
    @abstractmethod
    def num_tiles(self) -> int:
        """Total number of tiles, fixed at construction."""

    @abstractmethod
    def tile_index(self, point: Point) -> int:
        """Index of the tile containing ``point`` (a LatLon or a vector)."""

    @abstractmethod
    def tile_center_vector(self, index: int) -> np.ndarray:
        """Unit vector to the center of tile ``index``."""

    def __len__(self) -> int:
        return self.num_tiles

    def tile_center(self, index: int) -> LatLon:
        """Latitude/longitude of the center of tile ``index``."""
        return vector_to_latlon(self.tile_center_vector(index))

    def tile_centers(self) -> np.ndarray:
        """Unit vectors to every tile center, shape (num_tiles, 3)."""
        return np.array(
            [self.tile_center_vector(i) for i in range(self.num_tiles)]
        )

    def _check_index(self, index: int) -> int:
        """Validate a tile index and return it as a plain int.

        Raises:
            IndexError: If ``index`` is not an integer in [0, num_tiles).
        """
        try:
            i = operator.index(index)
        except TypeError:
            raise IndexError(f"Tile index must be an integer, got {index!r}") from None
        if not 0 <= i < self.num_tiles:
            raise IndexError(
                f"Tile index {i} out of range [0, {self.num_tiles})"
            )
        return i

    def matching_tiles(self, predicate: TilePredicate) -> set[int]:
        """Return every tile whose center satisfies ``predicate``.

        Tests all tiles, so it costs O(num_tiles) predicate calls.
        Schemes with adjacency information provide faster queries.
        """
        return {
            i
            for i in range(self.num_tiles)
            if predicate(self.tile_center_vector(i))
        }

    def distance_map(self, point: Point) -> list[tuple[float, int]]:
        """All tiles as (angular distance, index) pairs, nearest first."""
        p = as_unit_vector(point)
        centers = self.tile_centers()
        cross = np.linalg.norm(np.cross(centers, p), axis=1)
        angles = np.arctan2(cross, centers @ p)
        order = np.argsort(angles, kind="stable")
        return [(float(angles[i]), int(i)) for i in order]

    def map_tiles(self, other: SphericalTessellation) -> dict[int, set[int]]:
        """Group the tiles of ``other`` by the tile of this tessellation
        containing their centers.

        Intended for aggregating a finer tessellation into a coarser one,
        though any pair works.

        Returns:
            Mapping from a tile index of ``self`` to the set of tile
            indices of ``other`` whose centers lie inside it. Tiles of
            ``self`` that contain no center are absent.
        """
        grouped: dict[int, set[int]] = defaultdict(set)
        for other_tile in range(other.num_tiles):
            this_tile = self.tile_index(other.tile_center_vector(other_tile))
            grouped[this_tile].add(other_tile)
        logger.debug(
            "Mapped %d tiles onto %d of %d tiles",
            other.num_tiles,
            len(grouped),
            self.num_tiles,
        )
        return dict(grouped)
