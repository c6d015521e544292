"""Tests for stop and trip analytics derived from raw events."""

from __future__ import annotations

from datetime import timedelta

import pytest

from trip_playback.analytics import (
    build_playback_data,
    calculate_stop_analytics,
    calculate_trip_analytics,
)


@pytest.fixture
def route_events(event_factory):
    return [
        event_factory("start", 0, "ROUTE_STARTED", location=(-0.1, 51.5), driver_id="drv-7"),
        event_factory("arr-1", 300, "ARRIVED_AT_STOP", location=(-0.1, 51.51), facility_id="f1", facility_name="North"),
        event_factory("pod-1", 360, "PROOF_CAPTURED", location=(-0.1, 51.51)),
        event_factory("dep-1", 420, "DEPARTED_STOP", location=(-0.1, 51.51)),
        event_factory("arr-2", 900, "ARRIVED_AT_STOP", location=(-0.1, 51.52)),
        event_factory("delay-2", 930, "DELAY_REPORTED", location=(-0.1, 51.52)),
        event_factory("dep-2", 1_200, "DEPARTED_STOP", location=(-0.1, 51.52)),
        event_factory("done", 1_500, "ROUTE_COMPLETED", location=(-0.1, 51.53)),
    ]


def test_stops_pair_arrivals_with_departures(route_events) -> None:
    stops = calculate_stop_analytics(route_events)

    assert [s.facility_id for s in stops] == ["f1", "stop-1"]
    assert [s.facility_name for s in stops] == ["North", "Stop 2"]
    assert [s.duration for s in stops] == [120, 300]
    assert stops[0].proof_captured is True
    assert stops[0].delayed is False
    assert stops[1].delayed is True
    assert [s.stop_index for s in stops] == [0, 1]


def test_open_stop_measured_to_now(event_factory) -> None:
    arrival = event_factory("arr", 0, "ARRIVED_AT_STOP")
    now = arrival.timestamp + timedelta(minutes=7)
    (stop,) = calculate_stop_analytics([arrival], now=now)
    assert stop.departure_time is None
    assert stop.duration == 420


def test_events_before_first_arrival_are_ignored(event_factory) -> None:
    events = [
        event_factory("pod", 0, "PROOF_CAPTURED"),
        event_factory("dep", 10, "DEPARTED_STOP"),
    ]
    assert calculate_stop_analytics(events) == []


def test_trip_analytics(route_events) -> None:
    stops = calculate_stop_analytics(route_events)
    analytics = calculate_trip_analytics(route_events, stops, "batch-42")

    assert analytics is not None
    assert analytics.batch_id == "batch-42"
    assert analytics.driver_id == "drv-7"
    assert analytics.total_duration == 1_500
    assert analytics.idle_time == 420
    assert analytics.moving_time == 1_080
    assert analytics.stops_count == 2
    assert analytics.completed_stops == 2
    assert analytics.avg_stop_duration == 210
    assert analytics.max_stop_duration == 300
    assert analytics.delays == 1
    # Three 0.01 degree steps north.
    assert analytics.total_distance == pytest.approx(3_336, abs=2)


def test_trip_analytics_requires_route_start(event_factory) -> None:
    events = [event_factory("ping", 0)]
    assert calculate_trip_analytics(events, [], "b") is None
    assert calculate_trip_analytics([], [], "b") is None


def test_build_playback_data_orders_events(route_events) -> None:
    shuffled = list(reversed(route_events))
    raw = build_playback_data(shuffled, "batch-42")

    assert [e.id for e in raw.events] == [e.id for e in route_events]
    assert raw.time_range is not None
    assert raw.time_range.start == route_events[0].timestamp
    assert raw.time_range.end == route_events[-1].timestamp
    assert raw.analytics is not None
    assert raw.analytics.batch_id == "batch-42"
    assert len(raw.stop_analytics) == 2


def test_build_playback_data_empty() -> None:
    raw = build_playback_data([])
    assert raw.events == []
    assert raw.analytics is None
    assert raw.time_range is None
