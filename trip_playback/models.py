"""Dataclasses describing raw playback input and the normalized trip."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Tuple

LngLat = Tuple[float, float]
Polyline = List[LngLat]

EventType = Literal["arrival", "departure", "delay", "proof", "deviation"]
StopStatus = Literal["completed", "delayed", "missed"]


# ---------------------------------------------------------------------------
# Raw input supplied by the data service
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class RawEvent:
    """A recorded driver event as stored by the data service."""

    id: str
    timestamp: datetime
    event_type: str
    location: LngLat = (0.0, 0.0)
    driver_id: Optional[str] = None
    driver_name: Optional[str] = None
    batch_id: Optional[str] = None
    facility_id: Optional[str] = None
    facility_name: Optional[str] = None
    driver_status: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class StopAnalytics:
    """A facility visit reconstructed from arrival/departure events."""

    facility_id: str
    facility_name: str
    stop_index: int
    arrival_time: datetime
    departure_time: Optional[datetime] = None
    duration: int = 0  # seconds
    proof_captured: bool = False
    delayed: bool = False


@dataclass(slots=True)
class TripAnalytics:
    """Trip level aggregates."""

    batch_id: str
    driver_id: Optional[str]
    start_time: datetime
    end_time: Optional[datetime]
    total_duration: int
    moving_time: int
    idle_time: int
    total_distance: int
    stops_count: int
    completed_stops: int
    avg_stop_duration: int
    max_stop_duration: int
    delays: int
    stops: List[StopAnalytics] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class TimeRange:
    start: datetime
    end: datetime


@dataclass(slots=True)
class RawPlaybackData:
    """Everything the data service hands over for one trip."""

    events: List[RawEvent] = field(default_factory=list)
    stop_analytics: List[StopAnalytics] = field(default_factory=list)
    analytics: Optional[TripAnalytics] = None
    time_range: Optional[TimeRange] = None


# ---------------------------------------------------------------------------
# Normalized trip
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class IndexedPosition:
    """A retained GPS sample with derived heading (degrees) and speed (m/s)."""

    timestamp: int
    lat: float
    lng: float
    heading: float = 0.0
    speed: float = 0.0
    accuracy: float = 10.0


@dataclass(frozen=True, slots=True)
class IndexedEvent:
    """A discrete event positioned on the playback timeline."""

    id: str
    type: EventType
    start_time: int
    location: LngLat
    end_time: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class EnhancedStop:
    """Stop analytics enriched with a GPS location and a derived status."""

    facility_id: str
    facility_name: str
    stop_index: int
    arrival_time: int
    departure_time: Optional[int]
    duration: int
    proof_captured: bool
    delayed: bool
    location: LngLat
    actual_arrival: int
    dwell_time: int
    status: StopStatus


EventMap = Dict[int, List[IndexedEvent]]


@dataclass(frozen=True, slots=True)
class NormalizedTrip:
    """Immutable, time-indexed trip used for one playback session."""

    id: str
    batch_id: str
    start_time: int
    end_time: int
    gps: List[IndexedPosition]
    events: List[IndexedEvent]
    stops: List[EnhancedStop]
    planned_route: Optional[Polyline]
    analytics: TripAnalytics
    cumulative_distances: List[float]
    event_start_map: EventMap
    event_end_map: EventMap

    @property
    def duration_ms(self) -> int:
        return self.end_time - self.start_time

    @property
    def total_distance_m(self) -> float:
        return self.cumulative_distances[-1] if self.cumulative_distances else 0.0

    def find_event(self, event_id: str) -> Optional[IndexedEvent]:
        for event in self.events:
            if event.id == event_id:
                return event
        return None

    def find_stop(self, facility_id: str) -> Optional[EnhancedStop]:
        for stop in self.stops:
            if stop.facility_id == facility_id:
                return stop
        return None


@dataclass(frozen=True, slots=True)
class RenderSnapshot:
    """Everything a renderer needs for one frame."""

    timestamp: float
    lat: float
    lng: float
    heading: float
    speed: float
    index: int
    ratio: float
    distance_traveled: float
    progress: float
    active_events: List[IndexedEvent] = field(default_factory=list)


__all__ = [
    "LngLat",
    "Polyline",
    "EventType",
    "StopStatus",
    "RawEvent",
    "StopAnalytics",
    "TripAnalytics",
    "TimeRange",
    "RawPlaybackData",
    "IndexedPosition",
    "IndexedEvent",
    "EnhancedStop",
    "EventMap",
    "NormalizedTrip",
    "RenderSnapshot",
]
