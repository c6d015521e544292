"""Global pytest fixtures & helpers.

Adds project root to path and provides reusable factories for raw events,
GPS traces and normalized trips so test modules stay short.
"""
from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence, Tuple

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from trip_playback.models import (
    IndexedPosition,
    NormalizedTrip,
    RawEvent,
    RawPlaybackData,
    StopAnalytics,
    TimeRange,
    TripAnalytics,
)
from trip_playback.preprocessing import preprocess_trip
from trip_playback.utils import to_epoch_ms

T0 = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)
T0_MS = to_epoch_ms(T0)

# Metres per degree of latitude on the haversine sphere.
METRES_PER_DEG_LAT = 6_371_000.0 * 3.141592653589793 / 180.0


# --- Factory helpers -------------------------------------------------
def make_event(
    event_id: str,
    offset_s: float,
    event_type: str = "GPS_PING",
    location: Tuple[float, float] = (-0.1, 51.5),
    **kwargs,
) -> RawEvent:
    return RawEvent(
        id=event_id,
        timestamp=T0 + timedelta(seconds=offset_s),
        event_type=event_type,
        location=location,
        **kwargs,
    )


def make_analytics(batch_id: str = "batch-1", **overrides) -> TripAnalytics:
    values = dict(
        batch_id=batch_id,
        driver_id="driver-1",
        start_time=T0,
        end_time=None,
        total_duration=0,
        moving_time=0,
        idle_time=0,
        total_distance=0,
        stops_count=0,
        completed_stops=0,
        avg_stop_duration=0,
        max_stop_duration=0,
        delays=0,
    )
    values.update(overrides)
    return TripAnalytics(**values)


def make_raw(
    events: Sequence[RawEvent],
    *,
    duration_s: Optional[float] = None,
    stops: Sequence[StopAnalytics] = (),
    batch_id: str = "batch-1",
) -> RawPlaybackData:
    if duration_s is None:
        duration_s = max(
            ((e.timestamp - T0).total_seconds() for e in events), default=0.0
        )
    return RawPlaybackData(
        events=list(events),
        stop_analytics=list(stops),
        analytics=make_analytics(batch_id),
        time_range=TimeRange(start=T0, end=T0 + timedelta(seconds=duration_s)),
    )


def northbound_events(
    count: int,
    *,
    step_s: float = 10.0,
    lng: float = -0.1,
    lat0: float = 51.5,
    dlat: float = 0.0005,
) -> List[RawEvent]:
    return [
        make_event(f"gps-{idx}", idx * step_s, location=(lng, lat0 + idx * dlat))
        for idx in range(count)
    ]


def make_positions(
    timestamps: Sequence[int],
    *,
    lat0: float = 51.5,
    lng: float = -0.1,
    dlat: float = 0.001,
) -> List[IndexedPosition]:
    return [
        IndexedPosition(timestamp=ts, lat=lat0 + idx * dlat, lng=lng)
        for idx, ts in enumerate(timestamps)
    ]


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def event_factory() -> Callable[..., RawEvent]:
    return make_event


@pytest.fixture
def raw_factory() -> Callable[..., RawPlaybackData]:
    return make_raw


@pytest.fixture
def northbound() -> Callable[..., List[RawEvent]]:
    return northbound_events


@pytest.fixture
def positions_factory() -> Callable[..., List[IndexedPosition]]:
    return make_positions


@pytest.fixture
def two_point_trip() -> NormalizedTrip:
    """Ten minute trip with GPS only at the start and the end."""

    events = [
        make_event("gps-start", 0, location=(-0.1, 51.5)),
        make_event("gps-end", 600, location=(-0.09, 51.51)),
    ]
    trip = preprocess_trip(make_raw(events, duration_s=600), "batch-1")
    assert trip is not None
    return trip


@pytest.fixture
def delivery_trip() -> NormalizedTrip:
    """Five minute northbound trip with one completed stop and a proof event."""

    events = northbound_events(31)
    events += [
        make_event(
            "arr-1",
            60,
            "ARRIVED_AT_STOP",
            location=(-0.1, 51.503),
            facility_id="fac-1",
            facility_name="Depot North",
        ),
        make_event(
            "proof-1",
            90,
            "PROOF_CAPTURED",
            location=(-0.1, 51.5045),
            facility_id="fac-1",
        ),
        make_event(
            "dep-1",
            120,
            "DEPARTED_STOP",
            location=(-0.1, 51.506),
            facility_id="fac-1",
        ),
    ]
    stops = [
        StopAnalytics(
            facility_id="fac-1",
            facility_name="Depot North",
            stop_index=0,
            arrival_time=T0 + timedelta(seconds=60),
            departure_time=T0 + timedelta(seconds=120),
            duration=60,
            proof_captured=True,
        )
    ]
    trip = preprocess_trip(make_raw(events, duration_s=300, stops=stops), "batch-1")
    assert trip is not None
    return trip


@pytest.fixture
def detour_events() -> List[RawEvent]:
    """Eastbound trace along latitude 51.5 that strays 150 m north on samples 3-7."""

    offset = 150 / METRES_PER_DEG_LAT
    return [
        make_event(
            f"gps-{idx}",
            idx * 10,
            location=(-0.19 + idx * 0.015, 51.5 + (offset if 3 <= idx <= 7 else 0.0)),
        )
        for idx in range(12)
    ]
