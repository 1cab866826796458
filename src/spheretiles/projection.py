"""Stereographic projection onto the plane tangent at a chosen center.

Follows Snyder (1987), "Map Projections: A Working Manual", equations
21-2 to 21-4 (forward) and 20-14, 20-15, 21-15 (inverse), with k0 = 1.
Used to turn point-in-spherical-polygon tests into planar ones.
"""

from __future__ import annotations

import math
from typing import Iterable

import numpy as np

from spheretiles.coords import LatLon, Point, as_latlon


class StereographicProjection:
    """Conformal projection of the sphere onto a plane tangent at ``center``.

    The center maps to the origin. The antipode of the center has no image;
    :meth:`forward` returns ``(inf, inf)`` for it.
    """

    def __init__(self, center: Point, radius: float = 1.0):
        center = as_latlon(center)
        if radius <= 0:
            raise ValueError(f"radius must be positive, got {radius}")
        self._center = LatLon(center.lat, center.lon)
        self._radius = radius
        self._k0 = 1.0
        self._sin_lat0 = math.sin(center.lat)
        self._cos_lat0 = math.cos(center.lat)

    @property
    def center(self) -> LatLon:
        return self._center

    @property
    def radius(self) -> float:
        return self._radius

    def forward(self, point: Point) -> tuple[float, float]:
        """Project a point on the sphere to plane coordinates (x, y)."""
        lv = as_latlon(point)
        sin_lat = math.sin(lv.lat)
        cos_lat = math.cos(lv.lat)
        dlon = lv.lon - self._center.lon
        cos_dlon = math.cos(dlon)

        denom = 1.0 + self._sin_lat0 * sin_lat + self._cos_lat0 * cos_lat * cos_dlon
        if denom <= 0.0:
            return math.inf, math.inf

        k = 2.0 * self._k0 / denom
        x = self._radius * k * cos_lat * math.sin(dlon)
        y = self._radius * k * (
            self._cos_lat0 * sin_lat - self._sin_lat0 * cos_lat * cos_dlon
        )
        return x, y

    def forward_many(self, points: Iterable[Point]) -> np.ndarray:
        """Project several points; returns an array of shape (k, 2)."""
        xy = [self.forward(p) for p in points]
        return np.array(xy, dtype=float).reshape(-1, 2)

    def inverse(self, x: float, y: float) -> LatLon:
        """Map plane coordinates back to the sphere."""
        rho = math.hypot(x, y)
        if rho == 0.0:
            return self._center

        c = 2.0 * math.atan(rho / (2.0 * self._radius * self._k0))
        sin_c = math.sin(c)
        cos_c = math.cos(c)

        sin_lat = cos_c * self._sin_lat0 + y * sin_c * self._cos_lat0 / rho
        lat = math.asin(max(-1.0, min(1.0, sin_lat)))
        lon = self._center.lon + math.atan2(
            x * sin_c,
            rho * self._cos_lat0 * cos_c - y * self._sin_lat0 * sin_c,
        )
        # wrap into (-pi, pi]
        lon = math.pi - (math.pi - lon) % (2.0 * math.pi)
        return LatLon(lat, lon)
