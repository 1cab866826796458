"""Equal-area spiral tessellation of the sphere.

Implements the scheme of Abrate, "Spiral Tessellation on the Sphere"
(https://www.researchgate.net/publication/230745267). A curve winds ``n``
times from the north pole to the south pole; the band between successive
turns is cut into ``m`` quadrilaterals of identical area, and the two
regions left over at the poles form tiles ``0`` and ``m + 1``.

Names follow the paper where possible: ``n`` turns, ``m`` non-polar tiles,
``t`` the curve parameter in [-pi/2, pi/2].
"""

from __future__ import annotations

import logging
import math
from collections import deque
from itertools import chain
from typing import Callable, Sequence

import numpy as np
from matplotlib.path import Path

from spheretiles.coords import (
    LatLon,
    Point,
    as_latlon,
    as_unit_vector,
    vector_to_latlon,
)
from spheretiles.projection import StereographicProjection
from spheretiles.tessellation import SphericalTessellation, TilePredicate

logger = logging.getLogger(__name__)

_HALF_PI = math.pi / 2.0

# Absorbs rounding at tile boundaries in the inverse lookup.
_EPS = 1e-12

_NORTH_POLE = np.array([0.0, 0.0, 1.0])
_SOUTH_POLE = np.array([0.0, 0.0, -1.0])
for _pole in (_NORTH_POLE, _SOUTH_POLE):
    _pole.flags.writeable = False


class AbrateTessellation(SphericalTessellation):
    """Spiral tessellation with ``m + 2`` tiles of (nearly) equal area.

    Tile 0 is the north polar cap and tile ``m + 1`` the south polar cap.
    Tiles ``1 .. m`` are quadrilaterals numbered along the spiral from
    north to south; consecutive indices share a side.

    Vertex numbering of a quadrilateral tile:

    ====  =========================
    0     upper left (northwest)
    1     upper right (northeast)
    2     lower right (southeast)
    3     lower left (southwest)
    ====  =========================

    Args:
        n: Number of spiral turns.
        m: Number of non-polar tiles.
    """

    def __init__(self, n: int, m: int):
        if n < 1:
            raise ValueError(f"number of spiral turns must be positive, got {n}")
        if m < 1:
            raise ValueError(f"number of non-polar tiles must be positive, got {m}")
        self._n = int(n)
        self._m = int(m)

        self._cos_half_turn = math.cos(math.pi / (2.0 * self._n))
        # latitude spacing between successive turns
        self._band = math.pi / self._n
        # curve parameter at the end of the last tile's northern edge
        self._last = _HALF_PI - self._band
        self._nudge = 0.05 * self._band

    @classmethod
    def from_num_tiles(cls, num_tiles: int) -> AbrateTessellation:
        """Build the tessellation closest to ``num_tiles`` tiles.

        The actual tile count differs slightly; check :attr:`num_tiles`.

        Raises:
            ValueError: If no tessellation with that many tiles exists.
        """
        if num_tiles < 1:
            raise ValueError(f"number of tiles must be positive, got {num_tiles}")
        tile_area = 4.0 * math.pi / num_tiles
        side = math.sqrt(tile_area)
        # eq. 6 and 7, rounding half up
        n = math.floor(math.pi / side + 0.5)
        m = math.floor(4.0 * math.pi * math.sin(side) / tile_area**1.5 + 0.5)
        if n < 1 or m < 1:
            raise ValueError(f"Cannot tessellate the sphere into {num_tiles} tiles")
        logger.debug(
            "Requested %d tiles: n=%d, m=%d (%d tiles)", num_tiles, n, m, m + 2
        )
        return cls(n, m)

    def __repr__(self) -> str:
        return f"AbrateTessellation(n={self._n}, m={self._m})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AbrateTessellation):
            return NotImplemented
        return (self._n, self._m) == (other._n, other._m)

    def __hash__(self) -> int:
        return hash((AbrateTessellation, self._n, self._m))

    @property
    def n(self) -> int:
        """Number of spiral turns."""
        return self._n

    @property
    def m(self) -> int:
        """Number of non-polar tiles (``num_tiles - 2``)."""
        return self._m

    @property
    def num_tiles(self) -> int:
        return self._m + 2

    @property
    def tile_area(self) -> float:
        """Area of every non-polar tile, in steradians."""
        return 4.0 * self._n * math.sin(math.pi / self._n) / self._m

    # --- the spiral ---

    def _gamma(self, t: float) -> np.ndarray:
        """Point on the spiral at parameter ``t`` (eq. 1)."""
        if t < -_HALF_PI:
            return _NORTH_POLE
        if t > _HALF_PI:
            return _SOUTH_POLE
        n = self._n
        cos_t = math.cos(t)
        angle = n * math.pi + 2.0 * n * t
        return np.array([cos_t * math.cos(angle), cos_t * math.sin(angle), -math.sin(t)])

    def _t(self, tile: int) -> float:
        """Spiral parameter where the northern edge of ``tile`` starts (eq. 4)."""
        n, m = self._n, self._m
        return math.acos(self._cos_half_turn * (1.0 - 2.0 * (tile - 1.0) / m)) - (
            n + 1.0
        ) * math.pi / (2.0 * n)

    # --- forward mapping ---

    def tile_vertex_vector(self, tile: int, vnum: int) -> np.ndarray:
        """Unit vector to vertex ``vnum`` (0-3) of ``tile``.

        Both polar tiles return their pole for every vertex.

        Raises:
            IndexError: If ``tile`` is out of range.
            ValueError: If ``vnum`` is not 0, 1, 2 or 3.
        """
        tile = self._check_index(tile)
        if vnum not in (0, 1, 2, 3):
            raise ValueError(f"vertex number must be 0-3, got {vnum}")
        if tile == 0:
            return _NORTH_POLE
        if tile == self._m + 1:
            return _SOUTH_POLE

        mytile = tile + 1 if vnum in (1, 2) else tile
        tadd = self._band if vnum in (2, 3) else 0.0
        return self._gamma(self._t(mytile) + tadd)

    def tile_vertex(self, tile: int, vnum: int) -> LatLon:
        """Latitude/longitude of vertex ``vnum`` of ``tile``."""
        return vector_to_latlon(self.tile_vertex_vector(tile, vnum))

    def tile_vertices(self, tile: int) -> np.ndarray:
        """The four vertices of ``tile`` in order NW, NE, SE, SW, shape (4, 3)."""
        return np.array([self.tile_vertex_vector(tile, v) for v in range(4)])

    def tile_center_vector(self, index: int) -> np.ndarray:
        tile = self._check_index(index)
        if tile == 0:
            return _NORTH_POLE
        if tile == self._m + 1:
            return _SOUTH_POLE
        total = self.tile_vertices(tile).sum(axis=0)
        return total / np.linalg.norm(total)

    # --- inverse mapping ---

    def tile_index(self, point: Point) -> int:
        """Index of the tile containing ``point``.

        Closed form: find the spiral turn directly north of the point at
        the same longitude, then invert eq. 4 there. A point on a shared
        edge belongs to the tile whose western or northern edge it is.
        """
        lv = as_latlon(point)
        n, m = self._n, self._m
        if lv.lat >= _HALF_PI - _EPS:
            return 0
        if lv.lat <= -_HALF_PI + _EPS:
            return m + 1

        k = math.floor((n * math.pi - lv.lon - 2.0 * n * lv.lat) / (2.0 * math.pi) + _EPS)
        tt = lv.lon / (2.0 * n) + (math.pi / n) * k - _HALF_PI
        idx = (
            m
            * (self._cos_half_turn - math.cos(tt + (n + 1.0) * math.pi / (2.0 * n)))
            / (2.0 * self._cos_half_turn)
            + 1.0
        )
        return min(m + 1, max(0, math.floor(idx + _EPS)))

    def _resolve(self, t: float) -> int:
        """Tile whose northern edge contains spiral parameter ``t``.

        Looks up a point just south of the curve, inside the band below it.
        """
        lv = vector_to_latlon(self._gamma(t))
        return self.tile_index(LatLon(lv.lat - self._nudge, lv.lon))

    # --- adjacency ---

    def left_tile(self, tile: int) -> int:
        """Tile to the west along the spiral (across side 3-0)."""
        return max(0, self._check_index(tile) - 1)

    def right_tile(self, tile: int) -> int:
        """Tile to the east along the spiral (across side 1-2)."""
        return min(self._m + 1, self._check_index(tile) + 1)

    def above_tiles(self, tile: int) -> range:
        """Tiles north of ``tile``, across side 0-1, as a contiguous range."""
        tile = self._check_index(tile)
        m = self._m
        if tile == 0:
            return range(0)
        if tile == m + 1:
            start = self._last - self._band
            lo = 1 if start <= -_HALF_PI else self._resolve(start)
            return range(lo, m + 1)

        s1 = self._t(tile) - self._band
        s2 = self._t(tile + 1) - self._band
        if s2 <= -_HALF_PI:
            # the whole northern edge borders the polar cap
            return range(0, 1)
        lo = 0 if s1 <= -_HALF_PI else self._resolve(s1)
        hi = self._resolve(s2)
        return range(lo, hi + 1)

    def below_tiles(self, tile: int) -> range:
        """Tiles south of ``tile``, across side 2-3, as a contiguous range."""
        tile = self._check_index(tile)
        m = self._m
        if tile == m + 1:
            return range(0)
        if tile == 0:
            end = -_HALF_PI + self._band
            hi = m if end >= self._last else self._resolve(end)
            return range(1, hi + 1)

        s1 = self._t(tile) + self._band
        s2 = self._t(tile + 1) + self._band
        if s1 >= self._last:
            # the whole southern edge borders the polar cap
            return range(m + 1, m + 2)
        lo = self._resolve(s1)
        hi = m + 1 if s2 > self._last else self._resolve(s2)
        return range(lo, hi + 1)

    # --- region queries ---

    def _spiral_run(self, tile: int, accepts: Callable[[int], bool]) -> list[int]:
        """Accepted tiles reached by walking east and west from ``tile``."""
        run = [tile]
        for step in (self.right_tile, self.left_tile):
            current = tile
            while True:
                following = step(current)
                if following == current or not accepts(following):
                    break
                run.append(following)
                current = following
        return run

    def matching_tiles(
        self, predicate: TilePredicate, seed: int | None = None
    ) -> set[int]:
        """Return tiles whose centers satisfy ``predicate``.

        Without ``seed`` every tile is tested. With ``seed`` only the
        contiguous region containing it is collected: runs of accepted
        tiles along the spiral are grown band by band through
        :meth:`above_tiles` and :meth:`below_tiles` until nothing new is
        accepted. Each tile is tested at most once.

        Args:
            predicate: Called with the unit vector of a tile center.
            seed: A tile inside the region, or None for a full scan.

        Returns:
            The matching tile indices; empty if ``seed`` itself fails.
        """
        if seed is None:
            return super().matching_tiles(predicate)
        seed = self._check_index(seed)

        tested: dict[int, bool] = {}

        def accepts(tile: int) -> bool:
            result = tested.get(tile)
            if result is None:
                result = tested[tile] = bool(predicate(self.tile_center_vector(tile)))
            return result

        if not accepts(seed):
            logger.debug("Seed tile %d does not satisfy the predicate", seed)
            return set()

        matches: set[int] = set()
        pending = deque([seed])
        while pending:
            tile = pending.popleft()
            if tile in matches or not accepts(tile):
                continue
            run = self._spiral_run(tile, accepts)
            matches.update(run)
            for member in run:
                for neighbor in chain(self.above_tiles(member), self.below_tiles(member)):
                    if neighbor not in matches and tested.get(neighbor) is not False:
                        pending.append(neighbor)

        logger.debug(
            "Flood fill from tile %d matched %d tiles after %d tests",
            seed,
            len(matches),
            len(tested),
        )
        return matches

    def tiles_within(self, polygon: Sequence[Point]) -> set[int]:
        """Return tiles whose centers lie inside a spherical polygon.

        The outline is projected stereographically about its centroid and
        tile centers are tested against the projected outline, starting
        from the tile containing the centroid.

        Args:
            polygon: Vertices in order, as LatLons or vectors. The outline
                is closed implicitly.

        Returns:
            Matching tile indices; empty for fewer than 3 vertices.

        Raises:
            ValueError: If the vertices average to the zero vector.
        """
        outline = [as_latlon(p) for p in polygon]
        if len(outline) < 3:
            return set()

        mean = np.mean([as_unit_vector(p) for p in outline], axis=0)
        if np.linalg.norm(mean) < _EPS:
            raise ValueError("Polygon centroid is undefined (vertices average to zero)")
        center = vector_to_latlon(mean)

        projection = StereographicProjection(center)
        xy = projection.forward_many(outline)
        path = Path(np.vstack([xy, xy[:1]]), closed=True)

        def inside(vector: np.ndarray) -> bool:
            x, y = projection.forward(vector)
            return math.isfinite(x) and bool(path.contains_point((x, y)))

        seed = self.tile_index(center)
        if not inside(self.tile_center_vector(seed)):
            # concave outline, or smaller than a tile
            logger.debug(
                "Center of seed tile %d is outside the polygon, scanning all tiles",
                seed,
            )
            return self.matching_tiles(inside)
        return self.matching_tiles(inside, seed=seed)
