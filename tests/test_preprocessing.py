"""Tests for turning raw playback data into a normalized trip."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import timedelta

import pytest

from trip_playback.geometry import calculate_distance
from trip_playback.models import RawPlaybackData, StopAnalytics, TimeRange
from trip_playback.preprocessing import (
    build_event_maps,
    create_enhanced_stops,
    deviation_severity,
    extract_gps_positions,
    preprocess_trip,
    transform_events,
    validate_gps_data,
)


# --- Empty / degraded input --------------------------------------------
def test_missing_time_range_returns_none(raw_factory, northbound, caplog) -> None:
    raw = replace(raw_factory(northbound(3)), time_range=None)
    with caplog.at_level(logging.ERROR, logger="trip_playback.preprocessing"):
        assert preprocess_trip(raw, "batch-1") is None
    assert "no replayable data" in caplog.text


def test_inverted_time_range_returns_none(raw_factory, northbound, caplog) -> None:
    raw = raw_factory(northbound(3))
    start = raw.time_range.start
    raw = replace(
        raw, time_range=TimeRange(start=start + timedelta(seconds=60), end=start)
    )
    with caplog.at_level(logging.ERROR, logger="trip_playback.preprocessing"):
        assert preprocess_trip(raw, "batch-1") is None
    assert "ends before it starts" in caplog.text


def test_zero_length_time_range_is_replayable(raw_factory, event_factory) -> None:
    trip = preprocess_trip(
        raw_factory([event_factory("only", 0)], duration_s=0), "batch-1"
    )
    assert trip is not None
    assert trip.duration_ms == 0


def test_missing_analytics_returns_none(raw_factory, northbound) -> None:
    raw = replace(raw_factory(northbound(3)), analytics=None)
    assert preprocess_trip(raw, "batch-1") is None


def test_no_events_returns_none() -> None:
    assert preprocess_trip(RawPlaybackData(), "batch-1") is None


def test_no_valid_gps_returns_none(raw_factory, event_factory, caplog) -> None:
    events = [
        event_factory("a", 0, location=(0.0, 0.0)),
        event_factory("b", 10, location=(float("nan"), 51.5)),
        event_factory("c", 20, location=(-0.1, 95.0)),
        event_factory("d", 30, location=(200.0, 51.5)),
    ]
    with caplog.at_level(logging.ERROR, logger="trip_playback.preprocessing"):
        assert preprocess_trip(raw_factory(events, duration_s=30), "batch-1") is None
    assert "no valid GPS positions" in caplog.text


# --- GPS extraction -----------------------------------------------------
def test_extract_filters_sorts_and_dedupes(event_factory) -> None:
    events = [
        event_factory("late", 20, location=(-0.1, 51.502)),
        event_factory("zero", 5, location=(0.0, 0.0)),
        event_factory("first", 0, location=(-0.1, 51.5)),
        event_factory("dup-a", 10, location=(-0.1, 51.501)),
        event_factory("dup-b", 10, location=(-0.2, 51.9)),
    ]
    gps = extract_gps_positions(events)

    assert [pos.lat for pos in gps] == [51.5, 51.501, 51.502]
    timestamps = [pos.timestamp for pos in gps]
    assert timestamps == sorted(set(timestamps))
    assert all(pos.accuracy == 10.0 for pos in gps)


def test_extract_derives_heading_and_speed(northbound) -> None:
    gps = extract_gps_positions(northbound(4, step_s=10.0, dlat=0.001))

    assert gps[0].heading == 0.0
    assert gps[0].speed == 0.0
    leg = calculate_distance((gps[0].lng, gps[0].lat), (gps[1].lng, gps[1].lat))
    for pos in gps[1:]:
        assert pos.heading == pytest.approx(0.0, abs=1e-6)
        assert pos.speed == pytest.approx(leg / 10.0, rel=1e-6)


def test_extract_applies_point_cap(northbound) -> None:
    gps = extract_gps_positions(northbound(30), max_points=10)
    assert len(gps) <= 11
    first, last = northbound(30)[0], northbound(30)[-1]
    assert gps[0].lat == first.location[1]
    assert gps[-1].lat == last.location[1]


# --- Validation warnings -------------------------------------------------
def test_validation_warns_but_keeps_trip(raw_factory, event_factory, caplog) -> None:
    events = [
        event_factory("a", 120, location=(-0.1, 51.5)),
        event_factory("b", 130, location=(-0.1, 51.501)),
        event_factory("c", 600, location=(-0.1, 51.502)),
    ]
    raw = raw_factory(events, duration_s=900)
    with caplog.at_level(logging.WARNING, logger="trip_playback.preprocessing"):
        trip = preprocess_trip(raw, "batch-1")

    assert trip is not None
    assert "not aligned with trip start" in caplog.text
    assert "not aligned with trip end" in caplog.text
    assert "Large GPS gap" in caplog.text


def test_validate_gps_data_empty(raw_factory, northbound) -> None:
    raw = raw_factory(northbound(2))
    assert validate_gps_data([], raw.time_range) is False


def test_events_outside_range_are_reported(raw_factory, northbound, event_factory, caplog) -> None:
    events = northbound(5) + [event_factory("late-delay", 500, "DELAY_REPORTED")]
    with caplog.at_level(logging.WARNING, logger="trip_playback.preprocessing"):
        trip = preprocess_trip(raw_factory(events, duration_s=40), "batch-1")
    assert trip is not None
    assert trip.find_event("late-delay") is not None
    assert "outside the trip time range" in caplog.text


# --- Events and maps ------------------------------------------------------
def test_transform_events_maps_known_types(event_factory) -> None:
    events = [
        event_factory("ping", 0),
        event_factory("arr", 10, "ARRIVED_AT_STOP", facility_id="fac-1", facility_name="Depot"),
        event_factory("dep", 20, "DEPARTED_STOP", facility_id="fac-1"),
        event_factory("late", 30, "DELAY_REPORTED", metadata={"reason": "traffic"}),
        event_factory("pod", 40, "PROOF_CAPTURED"),
        event_factory("done", 50, "ROUTE_COMPLETED"),
    ]
    indexed = transform_events(events)

    assert [(e.id, e.type) for e in indexed] == [
        ("arr", "arrival"),
        ("dep", "departure"),
        ("late", "delay"),
        ("pod", "proof"),
    ]
    assert all(e.end_time is None for e in indexed)
    assert indexed[0].metadata["stop_id"] == "fac-1"
    assert indexed[0].metadata["facility_name"] == "Depot"
    assert indexed[2].metadata["reason"] == "traffic"


def test_event_maps_group_by_timestamp(delivery_trip) -> None:
    start_map, end_map = build_event_maps(delivery_trip.events)
    assert start_map == delivery_trip.event_start_map
    assert end_map == delivery_trip.event_end_map

    arrival = delivery_trip.find_event("arr-1")
    assert arrival is not None
    assert arrival in start_map[arrival.start_time]
    assert all(
        event.end_time == key for key, bucket in end_map.items() for event in bucket
    )


def test_trip_shape(delivery_trip) -> None:
    trip = delivery_trip
    assert trip.id == "batch-1"
    assert trip.batch_id == "batch-1"
    assert trip.duration_ms == 300_000
    assert len(trip.cumulative_distances) == len(trip.gps)
    assert trip.cumulative_distances[0] == 0.0
    assert [e.start_time for e in trip.events] == sorted(e.start_time for e in trip.events)
    assert trip.planned_route is None
    assert not [e for e in trip.events if e.type == "deviation"]


# --- Stops ------------------------------------------------------------------
def test_enhanced_stop_location_and_status(delivery_trip) -> None:
    (stop,) = delivery_trip.stops
    assert stop.status == "completed"
    assert stop.dwell_time == 60
    assert stop.actual_arrival == stop.arrival_time
    assert stop.departure_time - stop.arrival_time == 60_000
    # Sample 6 of the northbound trace is recorded at the arrival instant.
    assert stop.location == (-0.1, 51.5 + 6 * 0.0005)


def test_stop_status_variants(northbound, raw_factory) -> None:
    raw = raw_factory(northbound(10))
    gps = extract_gps_positions(raw.events)
    start = raw.time_range.start
    stops = [
        StopAnalytics("a", "A", 0, start, start + timedelta(seconds=20), 20),
        StopAnalytics("b", "B", 1, start + timedelta(seconds=30), start + timedelta(seconds=40), 10, delayed=True),
        StopAnalytics("c", "C", 2, start + timedelta(seconds=55)),
    ]
    enhanced = create_enhanced_stops(stops, gps)

    assert [s.status for s in enhanced] == ["completed", "delayed", "missed"]
    assert enhanced[2].departure_time is None
    # 55 s sits between the 50 s and 60 s samples; the earlier one wins.
    assert enhanced[2].location == (gps[5].lng, gps[5].lat)


def test_enhanced_stops_without_gps() -> None:
    assert create_enhanced_stops([], []) == []


# --- Deviations ---------------------------------------------------------------
@pytest.mark.parametrize(
    "distance, expected",
    [(150.0, "low"), (200.0, "low"), (200.1, "medium"), (500.0, "medium"), (650.0, "high")],
)
def test_deviation_severity_bands(distance: float, expected: str) -> None:
    assert deviation_severity(distance) == expected


def test_deviation_events_are_merged(raw_factory, detour_events) -> None:
    planned = [(-0.2, 51.5), (0.0, 51.5)]
    raw = raw_factory(detour_events, duration_s=110)
    trip = preprocess_trip(raw, "batch-1", planned)

    assert trip is not None
    deviations = [e for e in trip.events if e.type == "deviation"]
    assert len(deviations) == 1
    deviation = deviations[0]
    assert deviation.id == "batch-1-deviation-3"
    assert deviation.start_time == trip.start_time + 30_000
    assert deviation.end_time == trip.start_time + 70_000
    assert deviation.metadata["severity"] == "low"
    assert deviation.metadata["duration"] == 40
    assert deviation.metadata["max_deviation_m"] == pytest.approx(150.0, rel=1e-6)
    assert deviation in trip.event_start_map[deviation.start_time]
    assert deviation in trip.event_end_map[deviation.end_time]
    assert trip.planned_route == planned


def test_preprocessing_is_reproducible(raw_factory, detour_events) -> None:
    planned = [(-0.2, 51.5), (0.0, 51.5)]
    raw = raw_factory(detour_events, duration_s=110)
    assert preprocess_trip(raw, "batch-1", planned) == preprocess_trip(raw, "batch-1", planned)


def test_deviation_threshold_is_configurable(raw_factory, detour_events) -> None:
    planned = [(-0.2, 51.5), (0.0, 51.5)]
    raw = raw_factory(detour_events, duration_s=110)
    trip = preprocess_trip(raw, "batch-1", planned, deviation_threshold_m=200.0)
    assert trip is not None
    assert not [e for e in trip.events if e.type == "deviation"]
