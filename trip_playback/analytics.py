"""Derive stop and trip analytics from an ordered list of raw driver events."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from .geometry import calculate_distance
from .models import (
    LngLat,
    RawEvent,
    RawPlaybackData,
    StopAnalytics,
    TimeRange,
    TripAnalytics,
)
from .utils import as_utc

LOGGER = logging.getLogger(__name__)


def _seconds_between(start: datetime, end: datetime) -> int:
    return round((as_utc(end) - as_utc(start)).total_seconds())


def calculate_stop_analytics(
    events: Iterable[RawEvent],
    *,
    now: Optional[datetime] = None,
) -> List[StopAnalytics]:
    """Pair arrival/departure events into stops.

    Proof and delay events flag the stop currently open. A stop still open at
    the end of the list is kept with no departure and a duration measured up
    to ``now``.
    """

    stops: List[StopAnalytics] = []
    current: Optional[StopAnalytics] = None
    stop_index = 0

    for event in events:
        if event.event_type == "ARRIVED_AT_STOP":
            current = StopAnalytics(
                facility_id=event.facility_id or f"stop-{stop_index}",
                facility_name=event.facility_name or f"Stop {stop_index + 1}",
                stop_index=stop_index,
                arrival_time=event.timestamp,
            )
        elif current is None:
            continue
        elif event.event_type == "PROOF_CAPTURED":
            current.proof_captured = True
        elif event.event_type == "DELAY_REPORTED":
            current.delayed = True
        elif event.event_type == "DEPARTED_STOP":
            current.departure_time = event.timestamp
            current.duration = _seconds_between(current.arrival_time, event.timestamp)
            stops.append(current)
            current = None
            stop_index += 1

    if current is not None:
        reference = now or datetime.now(timezone.utc)
        current.departure_time = None
        current.duration = _seconds_between(current.arrival_time, reference)
        stops.append(current)

    return stops


def _estimate_distance(events: Iterable[RawEvent]) -> float:
    total = 0.0
    last: Optional[LngLat] = None
    for event in events:
        lng, lat = event.location
        if lng != 0 and lat != 0:
            if last is not None:
                total += calculate_distance(last, (lng, lat))
            last = (lng, lat)
    return total


def calculate_trip_analytics(
    events: Sequence[RawEvent],
    stops: Sequence[StopAnalytics],
    batch_id: str,
    *,
    now: Optional[datetime] = None,
) -> Optional[TripAnalytics]:
    """Aggregate trip statistics; ``None`` without a ``ROUTE_STARTED`` event."""

    if not events:
        return None
    start_event = next((e for e in events if e.event_type == "ROUTE_STARTED"), None)
    end_event = next((e for e in events if e.event_type == "ROUTE_COMPLETED"), None)
    if start_event is None:
        LOGGER.debug("No ROUTE_STARTED event for batch %s", batch_id)
        return None

    start_time = start_event.timestamp
    end_time = end_event.timestamp if end_event else (now or datetime.now(timezone.utc))
    total_duration = _seconds_between(start_time, end_time)
    stop_time = sum(stop.duration for stop in stops)

    completed = sum(1 for stop in stops if stop.departure_time is not None)
    avg_stop = round(stop_time / completed) if completed > 0 else 0
    max_stop = max((stop.duration for stop in stops), default=0)

    return TripAnalytics(
        batch_id=batch_id,
        driver_id=events[0].driver_id,
        start_time=start_time,
        end_time=end_event.timestamp if end_event else None,
        total_duration=total_duration,
        moving_time=total_duration - stop_time,
        idle_time=stop_time,
        total_distance=round(_estimate_distance(events)),
        stops_count=len(stops),
        completed_stops=completed,
        avg_stop_duration=avg_stop,
        max_stop_duration=max_stop,
        delays=sum(1 for stop in stops if stop.delayed),
        stops=list(stops),
    )


def build_playback_data(
    events: Iterable[RawEvent],
    batch_id: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> RawPlaybackData:
    """Assemble :class:`RawPlaybackData` the way the data service would.

    Events are ordered by timestamp; the time range spans the first and last
    event. An empty event list yields an empty payload.
    """

    ordered = sorted(events, key=lambda event: as_utc(event.timestamp))
    if not ordered:
        return RawPlaybackData()

    stops = calculate_stop_analytics(ordered, now=now)
    resolved_batch = batch_id or ordered[0].batch_id or ""
    analytics = calculate_trip_analytics(ordered, stops, resolved_batch, now=now)
    return RawPlaybackData(
        events=ordered,
        stop_analytics=stops,
        analytics=analytics,
        time_range=TimeRange(start=ordered[0].timestamp, end=ordered[-1].timestamp),
    )
