"""Derive the renderable frame for a playback instant.

Snapshots are recomputed from the immutable trip on every tick; nothing is
carried over between frames, so a seek anywhere on the timeline yields the
same result as playing up to that point.
"""

from __future__ import annotations

from typing import List

from ..geometry import binary_search_position, calculate_distance, interpolate_position
from ..models import IndexedEvent, NormalizedTrip, RenderSnapshot
from ..utils import clamp


def active_events(trip: NormalizedTrip, time: float) -> List[IndexedEvent]:
    """Events whose span ``[start, end or start]`` contains ``time``."""

    active: List[IndexedEvent] = []
    for event in trip.events:
        if event.start_time > time:
            # Events are sorted by start time.
            break
        end = event.end_time if event.end_time is not None else event.start_time
        if time <= end:
            active.append(event)
    return active


def events_starting_at(trip: NormalizedTrip, time: int) -> List[IndexedEvent]:
    return list(trip.event_start_map.get(time, []))


def events_ending_at(trip: NormalizedTrip, time: int) -> List[IndexedEvent]:
    return list(trip.event_end_map.get(time, []))


def events_until(trip: NormalizedTrip, time: float) -> List[IndexedEvent]:
    """All events that have started at or before ``time``."""

    return [event for event in trip.events if event.start_time <= time]


def distance_traveled(trip: NormalizedTrip, index: int, ratio: float) -> float:
    """Distance along the trace: prefix sum to ``index`` plus the partial leg."""

    if index < 0 or not trip.cumulative_distances:
        return 0.0
    travelled = trip.cumulative_distances[index]
    if index + 1 < len(trip.gps):
        prev, nxt = trip.gps[index], trip.gps[index + 1]
        leg = calculate_distance((prev.lng, prev.lat), (nxt.lng, nxt.lat))
        travelled += ratio * leg
    return travelled


def derive_snapshot(trip: NormalizedTrip, current_time: float) -> RenderSnapshot:
    """Resolve ``current_time`` against ``trip`` into a :class:`RenderSnapshot`."""

    index = binary_search_position(trip.gps, current_time)
    position = interpolate_position(current_time, trip.gps, index)
    duration = trip.end_time - trip.start_time
    progress = (
        clamp((current_time - trip.start_time) / duration * 100, 0.0, 100.0)
        if duration > 0
        else 0.0
    )
    if position is None:
        return RenderSnapshot(
            timestamp=current_time,
            lat=0.0,
            lng=0.0,
            heading=0.0,
            speed=0.0,
            index=-1,
            ratio=0.0,
            distance_traveled=0.0,
            progress=progress,
            active_events=active_events(trip, current_time),
        )
    return RenderSnapshot(
        timestamp=current_time,
        lat=position.lat,
        lng=position.lng,
        heading=position.heading,
        speed=position.speed,
        index=position.index,
        ratio=position.ratio,
        distance_traveled=distance_traveled(trip, position.index, position.ratio),
        progress=progress,
        active_events=active_events(trip, current_time),
    )
