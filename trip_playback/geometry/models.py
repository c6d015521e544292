"""Dataclasses returned by the geometry/query kernel."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from ..models import LngLat


@dataclass(frozen=True, slots=True)
class InterpolatedPosition:
    """Vehicle position resolved for an arbitrary playback instant."""

    lat: float
    lng: float
    heading: float
    speed: float
    timestamp: float
    index: int
    ratio: float


@dataclass(frozen=True, slots=True)
class ClosestPoint:
    """Nearest location on a polyline to a query point."""

    point: LngLat
    distance: float
    segment_index: int


@dataclass(slots=True)
class DeviationSegment:
    """Contiguous run of GPS samples that stray beyond the route threshold."""

    id: str
    start_index: int
    end_index: int
    start_time: int
    end_time: int
    coordinates: List[LngLat] = field(default_factory=list)
    planned_coordinates: List[LngLat] = field(default_factory=list)
    max_deviation: float = 0.0
    total_deviation: float = 0.0

    @property
    def sample_count(self) -> int:
        return self.end_index - self.start_index + 1


@dataclass(frozen=True, slots=True)
class RouteVariance:
    """Planned versus actual route length comparison."""

    planned_distance: float
    actual_distance: float
    variance: float
    variance_percent: float
