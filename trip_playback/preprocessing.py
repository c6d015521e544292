"""Turn raw playback data into a time-indexed :class:`NormalizedTrip`.

Preprocessing runs once per trip, synchronously, before playback starts:

1. Extract, clean, sort and de-duplicate GPS samples; derive heading/speed.
2. Validate the trace against the declared time range (warnings only).
3. Re-type raw events into timeline events.
4. Compute cumulative distances and enrich stops with GPS locations.
5. Detect deviations from the planned route and merge them as events.
6. Build timestamp-keyed event activation maps.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from bisect import bisect_left
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .config import (
    DEFAULT_GPS_ACCURACY_M,
    DEVIATION_SEVERITY_HIGH_M,
    DEVIATION_SEVERITY_MEDIUM_M,
    DEVIATION_THRESHOLD_M,
    GPS_BOUNDARY_TOLERANCE_MS,
    GPS_GAP_WARNING_MS,
    PLAYBACK_MAX_GPS_POINTS,
)
from .geometry import (
    DeviationSegment,
    calculate_distance,
    compute_bearing,
    compute_cumulative_distances,
    detect_deviations,
)
from .models import (
    EnhancedStop,
    EventMap,
    EventType,
    IndexedEvent,
    IndexedPosition,
    NormalizedTrip,
    Polyline,
    RawEvent,
    RawPlaybackData,
    StopAnalytics,
    TimeRange,
)
from .utils import to_epoch_ms

LOGGER = logging.getLogger(__name__)

# Data-service event kinds understood by the timeline. Anything else is dropped.
EVENT_TYPE_MAP: Dict[str, EventType] = {
    "ARRIVED_AT_STOP": "arrival",
    "DEPARTED_STOP": "departure",
    "DELAY_REPORTED": "delay",
    "PROOF_CAPTURED": "proof",
}


def preprocess_trip(
    raw: RawPlaybackData,
    trip_id: str,
    planned_route: Optional[Polyline] = None,
    *,
    deviation_threshold_m: float = DEVIATION_THRESHOLD_M,
    max_points: Optional[int] = PLAYBACK_MAX_GPS_POINTS,
) -> Optional[NormalizedTrip]:
    """Build a :class:`NormalizedTrip` from raw data-service output.

    Args:
        raw: Events, stop analytics, trip analytics and time range for a trip.
        trip_id: Batch identifier the trip was requested for.
        planned_route: Optional ``(lng, lat)`` polyline of the planned route.
            When supplied, off-route stretches become ``deviation`` events.
        deviation_threshold_m: Off-route distance threshold in metres.
        max_points: Cap on retained GPS samples; ``None`` keeps all samples.

    Returns:
        The normalized trip, or ``None`` when there is nothing to replay
        (no usable time range, no events, no analytics or no valid GPS samples).
    """

    if raw.time_range is None or not raw.events or raw.analytics is None:
        LOGGER.error(
            "Trip %s has no replayable data (time_range=%s events=%d analytics=%s)",
            trip_id,
            raw.time_range is not None,
            len(raw.events),
            raw.analytics is not None,
        )
        return None

    start_time = to_epoch_ms(raw.time_range.start)
    end_time = to_epoch_ms(raw.time_range.end)
    if end_time < start_time:
        LOGGER.error(
            "Trip %s time range ends before it starts (start=%d end=%d)",
            trip_id,
            start_time,
            end_time,
        )
        return None

    gps = extract_gps_positions(raw.events, max_points=max_points)
    if not gps:
        LOGGER.error("Trip %s has no valid GPS positions", trip_id)
        return None

    validate_gps_data(gps, raw.time_range)

    indexed_events = transform_events(raw.events)
    _warn_events_outside_range(indexed_events, start_time, end_time)
    cumulative = compute_cumulative_distances(gps)
    stops = create_enhanced_stops(raw.stop_analytics, gps)

    deviations: List[DeviationSegment] = []
    if planned_route:
        deviations = detect_deviations(
            gps,
            planned_route,
            deviation_threshold_m,
            id_prefix=f"{trip_id}-deviation",
        )
    all_events = sorted(
        indexed_events + [deviation_to_event(dev) for dev in deviations],
        key=lambda event: event.start_time,
    )
    start_map, end_map = build_event_maps(all_events)

    trip = NormalizedTrip(
        id=raw.analytics.batch_id,
        batch_id=trip_id,
        start_time=start_time,
        end_time=end_time,
        gps=gps,
        events=all_events,
        stops=stops,
        planned_route=list(planned_route) if planned_route else None,
        analytics=raw.analytics,
        cumulative_distances=cumulative,
        event_start_map=start_map,
        event_end_map=end_map,
    )
    LOGGER.info(
        "Trip %s normalized: gps=%d events=%d stops=%d deviations=%d duration_min=%.1f distance_km=%.2f",
        trip_id,
        len(gps),
        len(all_events),
        len(stops),
        len(deviations),
        (end_time - start_time) / 60000,
        cumulative[-1] / 1000,
    )
    return trip


def _valid_coordinate(lng: float, lat: float) -> bool:
    if lng == 0 and lat == 0:
        return False
    if not math.isfinite(lng) or not math.isfinite(lat):
        return False
    return -90 <= lat <= 90 and -180 <= lng <= 180


def extract_gps_positions(
    events: Iterable[RawEvent],
    *,
    max_points: Optional[int] = None,
    accuracy_m: float = DEFAULT_GPS_ACCURACY_M,
) -> List[IndexedPosition]:
    """Return cleaned, time-sorted GPS samples with derived heading and speed.

    Samples at ``(0, 0)``, with non-finite coordinates, or outside the valid
    latitude/longitude range are discarded. Exact timestamp collisions keep
    the first occurrence.
    """

    samples: List[IndexedPosition] = []
    for event in events:
        try:
            lng, lat = float(event.location[0]), float(event.location[1])
        except (TypeError, ValueError, IndexError):
            continue
        if not _valid_coordinate(lng, lat):
            continue
        samples.append(
            IndexedPosition(
                timestamp=to_epoch_ms(event.timestamp),
                lat=lat,
                lng=lng,
                accuracy=accuracy_m,
            )
        )

    samples.sort(key=lambda pos: pos.timestamp)
    unique: List[IndexedPosition] = []
    for pos in samples:
        if unique and unique[-1].timestamp == pos.timestamp:
            continue
        unique.append(pos)

    if max_points is not None:
        unique = downsample_gps(unique, max_points)

    derived: List[IndexedPosition] = []
    for idx, pos in enumerate(unique):
        if idx == 0:
            derived.append(pos)
            continue
        prev = unique[idx - 1]
        origin = (prev.lng, prev.lat)
        target = (pos.lng, pos.lat)
        elapsed_s = (pos.timestamp - prev.timestamp) / 1000
        speed = calculate_distance(origin, target) / elapsed_s if elapsed_s > 0 else 0.0
        derived.append(
            dataclasses.replace(
                pos, heading=compute_bearing(origin, target), speed=speed
            )
        )
    return derived


def validate_gps_data(gps: Sequence[IndexedPosition], time_range: TimeRange) -> bool:
    """Log data-quality warnings for the trace; only an empty trace is invalid."""

    if not gps:
        return False

    start_time = to_epoch_ms(time_range.start)
    end_time = to_epoch_ms(time_range.end)
    first, last = gps[0], gps[-1]

    if abs(first.timestamp - start_time) > GPS_BOUNDARY_TOLERANCE_MS:
        LOGGER.warning(
            "First GPS point not aligned with trip start (offset=%.1fs)",
            (first.timestamp - start_time) / 1000,
        )
    if abs(last.timestamp - end_time) > GPS_BOUNDARY_TOLERANCE_MS:
        LOGGER.warning(
            "Last GPS point not aligned with trip end (offset=%.1fs)",
            (last.timestamp - end_time) / 1000,
        )

    for idx in range(1, len(gps)):
        gap = gps[idx].timestamp - gps[idx - 1].timestamp
        if gap > GPS_GAP_WARNING_MS:
            LOGGER.warning(
                "Large GPS gap detected: %.1f minutes before sample %d",
                gap / 60000,
                idx,
            )
    return True


def _warn_events_outside_range(
    events: Sequence[IndexedEvent], start_time: int, end_time: int
) -> None:
    outside = [e for e in events if e.start_time < start_time or e.start_time > end_time]
    if outside:
        LOGGER.warning(
            "%d events fall outside the trip time range (first id=%s)",
            len(outside),
            outside[0].id,
        )


def transform_events(events: Iterable[RawEvent]) -> List[IndexedEvent]:
    """Re-type raw events into instant timeline events; unknown kinds are skipped."""

    indexed: List[IndexedEvent] = []
    for event in events:
        event_type = EVENT_TYPE_MAP.get(event.event_type)
        if event_type is None:
            continue
        metadata = event.metadata or {}
        indexed.append(
            IndexedEvent(
                id=event.id,
                type=event_type,
                start_time=to_epoch_ms(event.timestamp),
                end_time=None,
                location=(event.location[0], event.location[1]),
                metadata={
                    "stop_id": event.facility_id,
                    "facility_name": event.facility_name,
                    "reason": metadata.get("reason"),
                    "duration": metadata.get("duration"),
                    "severity": metadata.get("severity"),
                },
            )
        )
    return indexed


def deviation_severity(max_deviation_m: float) -> str:
    if max_deviation_m > DEVIATION_SEVERITY_HIGH_M:
        return "high"
    if max_deviation_m > DEVIATION_SEVERITY_MEDIUM_M:
        return "medium"
    return "low"


def deviation_to_event(deviation: DeviationSegment) -> IndexedEvent:
    """Express a deviation segment as a ranged ``deviation`` timeline event."""

    location = deviation.coordinates[0] if deviation.coordinates else (0.0, 0.0)
    return IndexedEvent(
        id=deviation.id,
        type="deviation",
        start_time=deviation.start_time,
        end_time=deviation.end_time,
        location=location,
        metadata={
            "duration": (deviation.end_time - deviation.start_time) / 1000,
            "severity": deviation_severity(deviation.max_deviation),
            "max_deviation_m": deviation.max_deviation,
            "total_deviation_m": deviation.total_deviation,
            "start_index": deviation.start_index,
            "end_index": deviation.end_index,
        },
    )


def build_event_maps(events: Iterable[IndexedEvent]) -> Tuple[EventMap, EventMap]:
    """Return (start map, end map) multi-maps keyed by exact timestamp."""

    start_map: EventMap = {}
    end_map: EventMap = {}
    for event in events:
        start_map.setdefault(event.start_time, []).append(event)
        if event.end_time is not None:
            end_map.setdefault(event.end_time, []).append(event)
    return start_map, end_map


def _nearest_sample(gps: Sequence[IndexedPosition], timestamp: int) -> IndexedPosition:
    idx = bisect_left(gps, timestamp, key=lambda pos: pos.timestamp)
    if idx <= 0:
        return gps[0]
    if idx >= len(gps):
        return gps[-1]
    before, after = gps[idx - 1], gps[idx]
    # Equidistant samples resolve to the earlier one.
    if timestamp - before.timestamp <= after.timestamp - timestamp:
        return before
    return after


def _stop_status(stop: StopAnalytics) -> str:
    if stop.departure_time is None:
        return "missed"
    if stop.delayed:
        return "delayed"
    return "completed"


def create_enhanced_stops(
    stop_analytics: Iterable[StopAnalytics],
    gps: Sequence[IndexedPosition],
) -> List[EnhancedStop]:
    """Attach the GPS location nearest in time to each stop's arrival."""

    if not gps:
        return []
    enhanced: List[EnhancedStop] = []
    for stop in stop_analytics:
        arrival = to_epoch_ms(stop.arrival_time)
        departure = (
            to_epoch_ms(stop.departure_time) if stop.departure_time is not None else None
        )
        nearest = _nearest_sample(gps, arrival)
        enhanced.append(
            EnhancedStop(
                facility_id=stop.facility_id,
                facility_name=stop.facility_name,
                stop_index=stop.stop_index,
                arrival_time=arrival,
                departure_time=departure,
                duration=stop.duration,
                proof_captured=stop.proof_captured,
                delayed=stop.delayed,
                location=(nearest.lng, nearest.lat),
                actual_arrival=arrival,
                dwell_time=stop.duration,
                status=_stop_status(stop),
            )
        )
    return enhanced


def downsample_gps(
    gps: Sequence[IndexedPosition], max_points: int = 50_000
) -> List[IndexedPosition]:
    """Thin a GPS series by fixed-interval sampling, always keeping both endpoints.

    The result may hold ``max_points + 1`` samples when the final sample has
    to be appended. Deterministic for a given input.
    """

    if len(gps) <= max_points:
        return list(gps)
    interval = math.ceil(len(gps) / max(max_points, 1))
    downsampled = list(gps[::interval])
    if downsampled[-1] is not gps[-1]:
        downsampled.append(gps[-1])
    LOGGER.info("Downsampled GPS trace %d -> %d points", len(gps), len(downsampled))
    return downsampled
