"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from ..models.domain import GeoPoint

EARTH_RADIUS_M = 6_371_000.0
METERS_PER_DEGREE_LAT = EARTH_RADIUS_M * math.pi / 180.0


def haversine_meters(a: GeoPoint, b: GeoPoint) -> float:
    """Compute great-circle distance between two points using the Haversine formula."""

    phi1, phi2 = math.radians(a.latitude), math.radians(b.latitude)
    d_phi = math.radians(b.latitude - a.latitude)
    d_lambda = math.radians(b.longitude - a.longitude)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Rounding can push h just past 1.0 for antipodal points.
    h = min(max(h, 0.0), 1.0)
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_M * c


def haversine_meters_many(
    center: GeoPoint,
    latitudes: Sequence[float],
    longitudes: Sequence[float],
) -> np.ndarray:
    """Vectorised haversine from one center to many points."""

    lat = np.radians(np.asarray(latitudes, dtype=float))
    lon = np.radians(np.asarray(longitudes, dtype=float))
    phi1 = math.radians(center.latitude)
    lambda1 = math.radians(center.longitude)

    h = np.sin((lat - phi1) / 2) ** 2 + math.cos(phi1) * np.cos(lat) * np.sin((lon - lambda1) / 2) ** 2
    h = np.clip(h, 0.0, 1.0)
    return EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h))


def travel_minutes(distance_meters: float, speed_m_per_min: float) -> int:
    """Whole minutes needed to cover the distance at the given speed."""

    if speed_m_per_min <= 0:
        raise ValueError("speed_m_per_min must be > 0")
    return int(math.ceil(distance_meters / speed_m_per_min))


def bounding_box(center: GeoPoint, radius_meters: float) -> tuple[float, float, float, float]:
    """Return (lat_min, lat_max, lon_min, lon_max) enclosing the circle.

    Longitudes are not wrapped; callers handle spans crossing +/-180. When the
    circle reaches a pole the full longitude range is returned.
    """

    d_lat = radius_meters / METERS_PER_DEGREE_LAT
    lat_min = center.latitude - d_lat
    lat_max = center.latitude + d_lat
    if lat_min <= -90.0 or lat_max >= 90.0:
        return max(lat_min, -90.0), min(lat_max, 90.0), -180.0, 180.0

    # Widest longitude span occurs at the latitude edge closest to a pole.
    edge_lat = max(abs(lat_min), abs(lat_max))
    d_lon = radius_meters / (METERS_PER_DEGREE_LAT * math.cos(math.radians(edge_lat)))
    if d_lon >= 180.0:
        return lat_min, lat_max, -180.0, 180.0
    return lat_min, lat_max, center.longitude - d_lon, center.longitude + d_lon


def offset_point(origin: GeoPoint, north_meters: float = 0.0, east_meters: float = 0.0) -> GeoPoint:
    """Shift a point by a small local offset (equirectangular approximation)."""

    lat = origin.latitude + north_meters / METERS_PER_DEGREE_LAT
    lon = origin.longitude + east_meters / (METERS_PER_DEGREE_LAT * math.cos(math.radians(origin.latitude)))
    return GeoPoint(latitude=lat, longitude=lon)
