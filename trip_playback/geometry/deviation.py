"""Closest-point queries and off-route detection against a planned polyline."""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np

from ..models import IndexedPosition, LngLat, Polyline
from .distance import calculate_distance, haversine_array
from .models import ClosestPoint, DeviationSegment


def closest_point_on_polyline(point: LngLat, polyline: Sequence[LngLat]) -> ClosestPoint:
    """Return the nearest point on ``polyline`` to ``point``.

    Every segment is considered: the query point is projected onto the segment
    in lng/lat space (clamped to its endpoints) and the projection with the
    smallest haversine distance wins. Ties resolve to the earliest segment.
    An empty polyline yields an infinite distance and segment index -1; a
    single vertex is treated as the whole route.
    """

    if len(polyline) == 0:
        return ClosestPoint(point=(0.0, 0.0), distance=float("inf"), segment_index=-1)
    if len(polyline) == 1:
        only = (float(polyline[0][0]), float(polyline[0][1]))
        return ClosestPoint(
            point=only, distance=calculate_distance(point, only), segment_index=0
        )

    vertices = np.asarray(polyline, dtype=float)
    starts = vertices[:-1]
    deltas = vertices[1:] - starts
    lengths_sq = np.einsum("ij,ij->i", deltas, deltas)
    px, py = float(point[0]), float(point[1])
    dots = (px - starts[:, 0]) * deltas[:, 0] + (py - starts[:, 1]) * deltas[:, 1]
    # Zero-length segments collapse onto their start vertex.
    t = np.divide(dots, lengths_sq, out=np.zeros_like(dots), where=lengths_sq > 0)
    t = np.clip(t, 0.0, 1.0)
    candidates = starts + t[:, None] * deltas
    distances = haversine_array(px, py, candidates[:, 0], candidates[:, 1])

    best = int(np.argmin(distances))
    return ClosestPoint(
        point=(float(candidates[best, 0]), float(candidates[best, 1])),
        distance=float(distances[best]),
        segment_index=best,
    )


def detect_deviations(
    actual: Sequence[IndexedPosition],
    planned: Optional[Polyline],
    threshold_m: float = 100.0,
    *,
    id_prefix: str = "deviation",
) -> List[DeviationSegment]:
    """Group consecutive off-route samples into deviation segments.

    Single streaming pass: a sample further than ``threshold_m`` from the
    planned route opens or extends the current segment; a sample at or under
    the threshold closes it. No smoothing and no minimum length are applied.

    Args:
        actual: Time-sorted GPS samples.
        planned: Planned route as ``(lng, lat)`` points.
        threshold_m: Off-route distance in metres.
        id_prefix: Segment ids are ``"<id_prefix>-<start index>"``.

    Returns:
        Deviation segments in trace order. Empty when either input is empty.
    """

    if not planned or not actual:
        return []

    deviations: List[DeviationSegment] = []
    current: Optional[DeviationSegment] = None

    for idx, sample in enumerate(actual):
        point = (sample.lng, sample.lat)
        closest = closest_point_on_polyline(point, planned)
        distance = closest.distance
        if distance > threshold_m:
            if current is None:
                current = DeviationSegment(
                    id=f"{id_prefix}-{idx}",
                    start_index=idx,
                    end_index=idx,
                    start_time=sample.timestamp,
                    end_time=sample.timestamp,
                    coordinates=[point],
                    planned_coordinates=[closest.point],
                    max_deviation=distance,
                    total_deviation=distance,
                )
            else:
                current.end_index = idx
                current.end_time = sample.timestamp
                current.coordinates.append(point)
                current.planned_coordinates.append(closest.point)
                current.max_deviation = max(current.max_deviation, distance)
                current.total_deviation += distance
        elif current is not None:
            deviations.append(current)
            current = None

    if current is not None:
        deviations.append(current)
    return deviations
