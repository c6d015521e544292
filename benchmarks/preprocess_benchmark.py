"""Benchmark trip preprocessing and per-frame derivation on long GPS traces."""

from __future__ import annotations

import argparse
import statistics
import sys
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Late imports rely on the adjusted sys.path above.
from trip_playback.analytics import build_playback_data  # noqa: E402
from trip_playback.models import Polyline, RawEvent, RawPlaybackData  # noqa: E402
from trip_playback.playback import derive_snapshot  # noqa: E402
from trip_playback.preprocessing import preprocess_trip  # noqa: E402


@dataclass(slots=True)
class StageDurations:
    """Timing measurements (in seconds) for one benchmark iteration."""

    preprocess: float
    frames: float

    @property
    def total(self) -> float:
        return self.preprocess + self.frames


@dataclass(slots=True)
class BenchmarkSummary:
    """Aggregated statistics for multiple benchmark iterations."""

    point_count: int
    iterations: int
    retained_points: int
    mean_preprocess_ms: float
    mean_frames_ms: float
    mean_total_ms: float
    worst_total_ms: float


def _build_events(point_count: int) -> List[RawEvent]:
    """Generate a northbound trace sampled every two seconds."""

    start = datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc)
    events = [
        RawEvent(id="start", timestamp=start, event_type="ROUTE_STARTED", batch_id="bench")
    ]
    for idx in range(point_count):
        events.append(
            RawEvent(
                id=f"gps-{idx}",
                timestamp=start + timedelta(seconds=2 * idx),
                event_type="GPS_PING",
                location=(-122.0 + (idx % 7) * 1e-6, 37.0 + idx * 1.2e-5),
                batch_id="bench",
            )
        )
    return events


def _planned_route(point_count: int) -> Polyline:
    return [(-122.0, 37.0), (-122.0, 37.0 + point_count * 1.2e-5)]


def _run_iteration(
    raw: RawPlaybackData, route: Polyline, frame_count: int
) -> tuple[StageDurations, int]:
    start = time.perf_counter()
    trip = preprocess_trip(raw, "bench", route)
    preprocess = time.perf_counter() - start
    if trip is None:
        raise RuntimeError("Synthetic trip failed to preprocess")

    start = time.perf_counter()
    step = trip.duration_ms / max(frame_count, 1)
    for idx in range(frame_count):
        _ = derive_snapshot(trip, trip.start_time + idx * step)
    frames = time.perf_counter() - start
    return StageDurations(preprocess=preprocess, frames=frames), len(trip.gps)


def run_benchmark(point_count: int, iterations: int, frame_count: int) -> BenchmarkSummary:
    """Benchmark preprocessing plus ``frame_count`` snapshot derivations."""

    if point_count < 10000:
        raise ValueError("point_count must be at least 10,000")
    if iterations <= 0:
        raise ValueError("iterations must be positive")

    raw = build_playback_data(_build_events(point_count), "bench")
    route = _planned_route(point_count)

    durations: List[StageDurations] = []
    retained = 0
    for _ in range(iterations):
        result, retained = _run_iteration(raw, route, frame_count)
        durations.append(result)

    return BenchmarkSummary(
        point_count=point_count,
        iterations=iterations,
        retained_points=retained,
        mean_preprocess_ms=statistics.fmean(d.preprocess for d in durations) * 1000.0,
        mean_frames_ms=statistics.fmean(d.frames for d in durations) * 1000.0,
        mean_total_ms=statistics.fmean(d.total for d in durations) * 1000.0,
        worst_total_ms=max(d.total for d in durations) * 1000.0,
    )


def _format_summary(summary: BenchmarkSummary) -> Dict[str, float]:
    return {
        "point_count": summary.point_count,
        "iterations": summary.iterations,
        "retained_points": summary.retained_points,
        "mean_preprocess_ms": summary.mean_preprocess_ms,
        "mean_frames_ms": summary.mean_frames_ms,
        "mean_total_ms": summary.mean_total_ms,
        "worst_total_ms": summary.worst_total_ms,
    }


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Benchmark trip preprocessing with long GPS traces",
    )
    parser.add_argument("--points", type=int, default=60000)
    parser.add_argument("--iterations", type=int, default=3)
    parser.add_argument(
        "--frames",
        type=int,
        default=3600,
        help="Snapshots derived per iteration (one minute at 60 fps by default)",
    )
    return parser.parse_args()


def main() -> None:
    """Entry point when running the module as a script."""

    args = _parse_args()
    summary = run_benchmark(args.points, args.iterations, args.frames)
    for key, value in _format_summary(summary).items():
        if key in {"point_count", "iterations", "retained_points"}:
            print(f"{key}: {value}")
        else:
            print(f"{key}: {value:.3f}")


if __name__ == "__main__":
    main()
