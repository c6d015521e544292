"""Preprocess an exported trip and replay it on the command line.

Usage examples:

    # Summarise a trip export
    python -m trip_playback.tools.replay_trip trip_events.json

    # Check against a planned route and print a frame every 30 seconds
    python -m trip_playback.tools.replay_trip trip_events.json \
        --planned-route route.json --step-seconds 30

    # Resolve a single instant and write an Excel report
    python -m trip_playback.tools.replay_trip trip_events.json \
        --at 2025-03-01T09:30:00Z --excel trip_report.xlsx
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from ..config import DEVIATION_THRESHOLD_M
from ..errors import TripDataError
from ..loader import load_planned_route, load_playback_data
from ..models import NormalizedTrip, Polyline, RenderSnapshot
from ..playback import PlaybackController
from ..preprocessing import preprocess_trip
from ..reporting import write_trip_report
from ..utils import (
    format_distance,
    from_epoch_ms,
    parse_timestamp,
    speed_to_kmh,
    to_epoch_ms,
)

LOGGER = logging.getLogger("replay_trip")


def _describe(snapshot: RenderSnapshot) -> str:
    active = ",".join(f"{e.type}:{e.id}" for e in snapshot.active_events) or "-"
    return (
        f"{from_epoch_ms(snapshot.timestamp).isoformat()} "
        f"lat={snapshot.lat:.6f} lng={snapshot.lng:.6f} "
        f"heading={snapshot.heading:.0f} speed={speed_to_kmh(snapshot.speed):.1f}km/h "
        f"travelled={format_distance(snapshot.distance_traveled)} "
        f"progress={snapshot.progress:.1f}% events={active}"
    )


def replay(
    trip: NormalizedTrip,
    *,
    at: Optional[float] = None,
    step_seconds: Optional[float] = None,
) -> list[RenderSnapshot]:
    """Drive a controller over ``trip`` and collect the resulting frames.

    With ``at`` a single seek is performed. With ``step_seconds`` playback is
    simulated with fixed-size ticks until the trip auto-pauses at its end.
    """

    controller = PlaybackController()
    controller.set_trip_data(trip)
    frames: list[RenderSnapshot] = []

    if at is not None:
        controller.set_current_time(at)
        snapshot = controller.snapshot()
        if snapshot is not None:
            frames.append(snapshot)
        return frames

    if step_seconds is None or step_seconds <= 0:
        return frames

    controller.play()
    first = controller.snapshot()
    if first is not None:
        frames.append(first)
    while controller.is_playing:
        controller.tick(step_seconds * 1000)
        snapshot = controller.snapshot()
        if snapshot is not None:
            frames.append(snapshot)
    return frames


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Normalize a recorded trip export and replay it frame by frame."
    )
    parser.add_argument("events", type=Path, help="JSON export of driver event rows")
    parser.add_argument("--planned-route", type=Path)
    parser.add_argument("--batch-id")
    parser.add_argument(
        "--threshold-m",
        type=float,
        default=DEVIATION_THRESHOLD_M,
        help=f"Off-route threshold in metres (default: {DEVIATION_THRESHOLD_M:g})",
    )
    parser.add_argument("--at", help="ISO-8601 instant to resolve")
    parser.add_argument("--step-seconds", type=float)
    parser.add_argument("--excel", type=Path, help="Optional Excel report path")
    parser.add_argument(
        "--include-gps",
        action="store_true",
        help="Add the full GPS trace as a sheet in the Excel report",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point used via ``python -m trip_playback.tools.replay_trip``."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    )

    at_ms: Optional[int] = None
    if args.at:
        at_dt = parse_timestamp(args.at)
        if at_dt is None:
            LOGGER.error("Could not parse --at value '%s'", args.at)
            return 1
        at_ms = to_epoch_ms(at_dt)

    try:
        raw = load_playback_data(args.events, args.batch_id)
        planned: Optional[Polyline] = (
            load_planned_route(args.planned_route) if args.planned_route else None
        )
    except (TripDataError, FileNotFoundError) as exc:
        LOGGER.error("Failed to load trip data: %s", exc)
        return 1

    trip_id = args.batch_id or (raw.analytics.batch_id if raw.analytics else "")
    trip = preprocess_trip(
        raw,
        trip_id,
        planned,
        deviation_threshold_m=args.threshold_m,
    )
    if trip is None:
        LOGGER.error("Nothing to replay for %s", args.events)
        return 1

    for frame in replay(trip, at=at_ms, step_seconds=args.step_seconds):
        LOGGER.info("%s", _describe(frame))

    if args.excel:
        args.excel.parent.mkdir(parents=True, exist_ok=True)
        write_trip_report(args.excel, trip, include_gps=args.include_gps)
        LOGGER.info("Trip report written to %s", args.excel)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
