"""Time lookups over a sorted GPS series."""

from __future__ import annotations

from bisect import bisect_right
from typing import Optional, Sequence

from ..models import IndexedPosition
from .models import InterpolatedPosition


def binary_search_position(gps: Sequence[IndexedPosition], time: float) -> int:
    """Return the index of the last sample at or before ``time``.

    Returns -1 when ``time`` precedes the first sample (or ``gps`` is empty)
    and the last index when ``time`` is at or after the final sample.
    """

    if not gps or time < gps[0].timestamp:
        return -1
    if time >= gps[-1].timestamp:
        return len(gps) - 1
    return bisect_right(gps, time, key=lambda pos: pos.timestamp) - 1


def _lerp(start: float, end: float, ratio: float) -> float:
    # Weighted form keeps both endpoints exact.
    return start * (1.0 - ratio) + end * ratio


def _lerp_heading(start: float, end: float, ratio: float) -> float:
    delta = end - start
    if delta > 180:
        delta -= 360
    elif delta < -180:
        delta += 360
    heading = (start + delta * ratio) % 360.0
    return heading


def interpolate_position(
    time: float,
    gps: Sequence[IndexedPosition],
    index: int,
) -> Optional[InterpolatedPosition]:
    """Interpolate the vehicle position at ``time`` between ``gps[index]`` and its successor.

    Args:
        time: Playback instant in epoch milliseconds.
        gps: Time-sorted GPS samples.
        index: Result of :func:`binary_search_position` for ``time``.

    Returns:
        The interpolated position. When ``index`` is negative the vehicle is
        parked at the first sample (ratio 0); when there is no following
        sample the last known position is returned with ratio 1. ``None``
        only when ``gps`` is empty.
    """

    if not gps:
        return None
    if index < 0:
        first = gps[0]
        return InterpolatedPosition(
            lat=first.lat,
            lng=first.lng,
            heading=first.heading,
            speed=first.speed,
            timestamp=time,
            index=-1,
            ratio=0.0,
        )
    index = min(index, len(gps) - 1)
    prev = gps[index]
    if index + 1 >= len(gps):
        return InterpolatedPosition(
            lat=prev.lat,
            lng=prev.lng,
            heading=prev.heading,
            speed=prev.speed,
            timestamp=time,
            index=index,
            ratio=1.0,
        )

    nxt = gps[index + 1]
    span = nxt.timestamp - prev.timestamp
    ratio = (time - prev.timestamp) / span if span > 0 else 0.0
    ratio = min(max(ratio, 0.0), 1.0)
    return InterpolatedPosition(
        lat=_lerp(prev.lat, nxt.lat, ratio),
        lng=_lerp(prev.lng, nxt.lng, ratio),
        heading=_lerp_heading(prev.heading, nxt.heading, ratio),
        speed=_lerp(prev.speed, nxt.speed, ratio),
        timestamp=time,
        index=index,
        ratio=ratio,
    )
