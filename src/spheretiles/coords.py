"""Points on the unit sphere: latitude/longitude pairs and Cartesian vectors.

Every tessellation lookup accepts either form. Angles are in radians;
longitudes produced here lie in (-pi, pi].
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np


@dataclass(frozen=True)
class LatLon:
    """Latitudinal coordinates of a point (radians).

    The radius is carried along for callers that have one, but the
    tessellations only ever look at the direction.
    """

    lat: float
    lon: float
    radius: float = 1.0

    @classmethod
    def from_degrees(cls, lat_deg: float, lon_deg: float) -> LatLon:
        return cls(math.radians(lat_deg), math.radians(lon_deg))

    def to_degrees(self) -> tuple[float, float]:
        """Return (latitude, longitude) in degrees."""
        return math.degrees(self.lat), math.degrees(self.lon)


Point = Union[LatLon, Sequence[float], np.ndarray]


def latlon_to_vector(lat: float, lon: float) -> np.ndarray:
    """Unit vector pointing at (lat, lon)."""
    cos_lat = math.cos(lat)
    return np.array(
        [cos_lat * math.cos(lon), cos_lat * math.sin(lon), math.sin(lat)]
    )


def vector_to_latlon(vector: Sequence[float] | np.ndarray) -> LatLon:
    """Latitudinal coordinates of a Cartesian vector.

    Latitude uses atan2 rather than asin so that vectors along the z axis
    map to exactly +/- pi/2.

    Raises:
        ValueError: If the vector has zero length.
    """
    x, y, z = (float(c) for c in vector)
    rho = math.hypot(x, y)
    radius = math.hypot(rho, z)
    if radius == 0.0:
        raise ValueError("Cannot convert the zero vector to latitude/longitude")
    return LatLon(math.atan2(z, rho), math.atan2(y, x), radius)


def as_unit_vector(point: Point) -> np.ndarray:
    """Normalize either point form to a unit vector of shape (3,)."""
    if isinstance(point, LatLon):
        return latlon_to_vector(point.lat, point.lon)
    vec = np.asarray(point, dtype=float).reshape(3)
    norm = np.linalg.norm(vec)
    if norm == 0.0:
        raise ValueError("Cannot normalize the zero vector")
    return vec / norm


def as_latlon(point: Point) -> LatLon:
    """Normalize either point form to a LatLon."""
    if isinstance(point, LatLon):
        return point
    return vector_to_latlon(point)


def separation(a: Point, b: Point) -> float:
    """Angle in radians between two points, accurate at all separations."""
    va = as_unit_vector(a)
    vb = as_unit_vector(b)
    return math.atan2(float(np.linalg.norm(np.cross(va, vb))), float(va @ vb))
