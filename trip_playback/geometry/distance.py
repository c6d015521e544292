"""Great-circle distance and bearing helpers."""

from __future__ import annotations

import math
from typing import List, Optional, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..models import IndexedPosition, LngLat, Polyline
from .models import RouteVariance

MetricArray = NDArray[np.float64]

# Mean Earth radius in metres.
EARTH_RADIUS_M = 6_371_000.0


def calculate_distance(p1: LngLat, p2: LngLat) -> float:
    """Return the haversine distance in metres between two ``(lng, lat)`` points."""

    lng1, lat1 = p1
    lng2, lat2 = p2
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lng / 2) ** 2
    )
    a = min(max(a, 0.0), 1.0)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def haversine_array(
    lng1: ArrayLike,
    lat1: ArrayLike,
    lng2: ArrayLike,
    lat2: ArrayLike,
) -> MetricArray:
    """Vectorised haversine distance in metres."""

    lng1 = np.asarray(lng1, dtype=float)
    lat1 = np.asarray(lat1, dtype=float)
    lng2 = np.asarray(lng2, dtype=float)
    lat2 = np.asarray(lat2, dtype=float)
    d_lat = np.radians(lat2 - lat1)
    d_lng = np.radians(lng2 - lng1)
    a = (
        np.sin(d_lat / 2) ** 2
        + np.cos(np.radians(lat1)) * np.cos(np.radians(lat2)) * np.sin(d_lng / 2) ** 2
    )
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def compute_bearing(p1: LngLat, p2: LngLat) -> float:
    """Return the initial bearing in degrees ``[0, 360)`` from ``p1`` towards ``p2``."""

    lng1, lat1 = p1
    lng2, lat2 = p2
    d_lng = math.radians(lng2 - lng1)
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    y = math.sin(d_lng) * math.cos(lat2_rad)
    x = math.cos(lat1_rad) * math.sin(lat2_rad) - math.sin(lat1_rad) * math.cos(
        lat2_rad
    ) * math.cos(d_lng)
    bearing = math.degrees(math.atan2(y, x))
    if bearing < 0:
        bearing += 360.0
    return bearing


def calculate_polyline_distance(polyline: Sequence[LngLat]) -> float:
    """Return the total length of a ``(lng, lat)`` polyline in metres."""

    if len(polyline) < 2:
        return 0.0
    coords = np.asarray(polyline, dtype=float)
    legs = haversine_array(coords[:-1, 0], coords[:-1, 1], coords[1:, 0], coords[1:, 1])
    return float(np.sum(legs))


def compute_cumulative_distances(gps: Sequence[IndexedPosition]) -> List[float]:
    """Return distance travelled (metres) up to each sample; the first entry is 0."""

    if not gps:
        return []
    lngs = np.fromiter((pos.lng for pos in gps), dtype=float, count=len(gps))
    lats = np.fromiter((pos.lat for pos in gps), dtype=float, count=len(gps))
    legs = haversine_array(lngs[:-1], lats[:-1], lngs[1:], lats[1:])
    cumulative = np.concatenate(([0.0], np.cumsum(legs)))
    return cumulative.tolist()


def compute_route_variance(
    actual: Sequence[LngLat], planned: Optional[Polyline]
) -> RouteVariance:
    """Compare the driven distance with the planned route length."""

    actual_distance = calculate_polyline_distance(actual)
    if not planned:
        return RouteVariance(
            planned_distance=0.0,
            actual_distance=actual_distance,
            variance=0.0,
            variance_percent=0.0,
        )
    planned_distance = calculate_polyline_distance(planned)
    variance = actual_distance - planned_distance
    percent = (variance / planned_distance) * 100 if planned_distance > 0 else 0.0
    return RouteVariance(
        planned_distance=planned_distance,
        actual_distance=actual_distance,
        variance=variance,
        variance_percent=percent,
    )
