"""Fibonacci point-set tessellation and its closed-form inverse lookup.

Points follow the golden-ratio spiral; the tile of a query point is the
nearest generated point, found without a scan using the method of

    Keinert, B., Innmann, M., Saenger, M., Stamminger, M. 2015.
    Spherical Fibonacci Mapping. ACM Trans. Graph. 34, 6, Article 193.
    doi:10.1145/2816795.2818131
"""

from __future__ import annotations

import logging
import math
import threading
from concurrent.futures import Future
from dataclasses import dataclass

import numpy as np

from spheretiles.coords import LatLon, Point, as_unit_vector
from spheretiles.tessellation import SphericalTessellation

logger = logging.getLogger(__name__)

GOLDEN_RATIO = (1.0 + math.sqrt(5.0)) / 2.0

# Rows per block of the pairwise neighbor search; bounds the temporary
# (block, num_tiles) matrix.
_NEIGHBOR_BLOCK = 512


def _madfrac(a: float, b: float) -> float:
    """Fractional part of a*b, in [0, 1) for negative products too."""
    ab = a * b
    return ab - math.floor(ab)


@dataclass(frozen=True)
class DistanceStats:
    """Summary of nearest-neighbor distances, in degrees."""

    count: int
    min: float
    max: float
    mean: float
    std: float
    median: float

    @classmethod
    def from_values(cls, values: np.ndarray) -> DistanceStats:
        return cls(
            count=int(values.size),
            min=float(np.min(values)),
            max=float(np.max(values)),
            mean=float(np.mean(values)),
            std=float(np.std(values, ddof=1)) if values.size > 1 else 0.0,
            median=float(np.median(values)),
        )

    def __str__(self) -> str:
        return (
            f"n: {self.count}\n"
            f"min: {self.min:.6f}\n"
            f"max: {self.max:.6f}\n"
            f"mean: {self.mean:.6f}\n"
            f"std dev: {self.std:.6f}\n"
            f"median: {self.median:.6f}"
        )


class FibonacciSphere(SphericalTessellation):
    """``num_points`` points spread quasi-uniformly over the unit sphere.

    Point ``i`` has longitude ``2*pi*frac(i*(phi - 1))`` in [0, 2*pi) and
    ``z = 1 - (2i + 1)/N``, so the sine of latitude is evenly spaced.
    Each point is the center of the tile made of everything closer to it
    than to any other point.
    """

    def __init__(self, num_points: int):
        if num_points < 1:
            raise ValueError(f"number of points must be positive, got {num_points}")
        self._n = int(num_points)

        idx = np.arange(self._n, dtype=float)
        frac = idx * (GOLDEN_RATIO - 1.0)
        frac -= np.floor(frac)
        lon = 2.0 * np.pi * frac
        z = 1.0 - (2.0 * idx + 1.0) / self._n
        sin_theta = np.sqrt(1.0 - z * z)

        self._lat = np.arcsin(z)
        self._lon = lon
        self._xyz = np.column_stack(
            [np.cos(lon) * sin_theta, np.sin(lon) * sin_theta, z]
        )
        for arr in (self._lat, self._lon, self._xyz):
            arr.flags.writeable = False

        self._distance_lock = threading.Lock()
        self._distance_future: Future | None = None
        logger.debug("Generated Fibonacci sphere with %d points", self._n)

    def __repr__(self) -> str:
        return f"FibonacciSphere(num_points={self._n})"

    @property
    def num_tiles(self) -> int:
        return self._n

    def tile_center(self, index: int) -> LatLon:
        i = self._check_index(index)
        return LatLon(float(self._lat[i]), float(self._lon[i]))

    def tile_center_vector(self, index: int) -> np.ndarray:
        return self._xyz[self._check_index(index)]

    def tile_centers(self) -> np.ndarray:
        return self._xyz

    def tile_index(self, point: Point) -> int:
        return self.nearest(point)[1]

    def _local_to_global(self, cos_theta: float) -> np.ndarray:
        """Basis of the local lattice around colatitude theta (columns)."""
        n = self._n
        sin2_theta = 1.0 - cos_theta * cos_theta
        arg = n * math.pi * math.sqrt(5.0) * sin2_theta
        if arg > 0.0:
            # zone number, eq. 5
            k = max(2, math.floor(math.log(arg) / math.log(GOLDEN_RATIO + 1.0)))
        else:
            k = 2

        fk = GOLDEN_RATIO**k / math.sqrt(5.0)
        f0 = round(fk)
        f1 = round(fk * GOLDEN_RATIO)

        return np.array(
            [
                [
                    2.0 * math.pi * (_madfrac(f0 + 1, GOLDEN_RATIO - 1.0) - (GOLDEN_RATIO - 1.0)),
                    2.0 * math.pi * (_madfrac(f1 + 1, GOLDEN_RATIO - 1.0) - (GOLDEN_RATIO - 1.0)),
                ],
                [-2.0 * f0 / n, -2.0 * f1 / n],
            ]
        )

    def nearest(self, point: Point) -> tuple[float, int]:
        """Find the generated point closest to ``point``.

        Evaluates the four lattice corners around the query in the local
        Fibonacci grid instead of scanning every point.

        Returns:
            (angular distance in radians, tile index)
        """
        p = as_unit_vector(point)
        n = self._n
        rcp_n = 1.0 / n

        # the seam sits on the atan2 branch cut
        phi = min(math.atan2(p[1], p[0]), math.pi)
        cos_theta = float(p[2])

        basis = self._local_to_global(cos_theta)
        uv = np.array([phi, cos_theta - (1.0 - rcp_n)])
        c = np.floor(np.linalg.solve(basis, uv))

        best_d2 = math.inf
        best = 0
        for s in range(4):
            corner = c + np.array([s % 2, s // 2], dtype=float)
            ct = float(basis[1] @ corner) + (1.0 - rcp_n)
            # reflect overshoots past the poles back onto the sphere
            ct = min(1.0, max(-1.0, ct)) * 2.0 - ct
            i = math.floor(n * 0.5 * (1.0 - ct))
            i = min(n - 1, max(0, i))

            d2 = float(np.sum((self._xyz[i] - p) ** 2))
            if d2 < best_d2:
                best_d2 = d2
                best = i

        chord = math.sqrt(best_d2)
        return 2.0 * math.asin(min(1.0, chord / 2.0)), best

    def _compute_closest_neighbor_distances(self) -> np.ndarray:
        xyz = self._xyz
        out = np.empty(self._n)
        if self._n == 1:
            out[0] = math.pi
            return out
        for start in range(0, self._n, _NEIGHBOR_BLOCK):
            stop = min(start + _NEIGHBOR_BLOCK, self._n)
            dots = xyz[start:stop] @ xyz.T
            rows = np.arange(stop - start)
            dots[rows, rows + start] = -np.inf
            best = np.argmax(dots, axis=1)
            diff = xyz[best] - xyz[start:stop]
            chord = np.linalg.norm(diff, axis=1)
            out[start:stop] = 2.0 * np.arcsin(np.minimum(1.0, chord / 2.0))
        return out

    def closest_neighbor_distances(self) -> np.ndarray:
        """Angular distance (radians) from each point to its nearest neighbor.

        Computed on first use and shared afterwards. Concurrent first
        callers wait for a single computation instead of repeating it.
        """
        with self._distance_lock:
            future = self._distance_future
            owner = future is None
            if owner:
                future = self._distance_future = Future()

        if owner:
            logger.debug("Computing nearest-neighbor distances for %d points", self._n)
            try:
                distances = self._compute_closest_neighbor_distances()
                distances.flags.writeable = False
            except BaseException as exc:
                # let a later call try again
                with self._distance_lock:
                    self._distance_future = None
                future.set_exception(exc)
                raise
            future.set_result(distances)
        return future.result()

    def closest_neighbor_distance(self, index: int) -> float:
        """Distance (radians) from tile ``index`` to its nearest neighbor."""
        return float(self.closest_neighbor_distances()[self._check_index(index)])

    def distance_stats(self) -> DistanceStats:
        """Statistics of the nearest-neighbor distances, in degrees."""
        return DistanceStats.from_values(np.degrees(self.closest_neighbor_distances()))
