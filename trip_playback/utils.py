"""General utility helpers shared across modules."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are taken as UTC)."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_epoch_ms(value: datetime) -> int:
    """Convert a datetime to integer epoch milliseconds."""

    return (as_utc(value) - _EPOCH) // _ONE_MS


def from_epoch_ms(value: float) -> datetime:
    """Convert epoch milliseconds back to an aware UTC datetime."""

    return _EPOCH + timedelta(milliseconds=value)


def parse_timestamp(raw: Any) -> datetime | None:
    """Parse an ISO-8601 string (``Z`` suffix allowed) or datetime into UTC."""

    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return as_utc(raw)
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def format_duration(seconds: float) -> str:
    """Format seconds as ``12s``, ``4m 5s``, ``45m``, ``1h 23m`` or ``2h``."""

    if seconds < 60:
        return f"{round(seconds)}s"
    minutes = int(seconds // 60)
    if minutes < 60:
        secs = round(seconds % 60)
        return f"{minutes}m {secs}s" if secs > 0 else f"{minutes}m"
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}m" if mins > 0 else f"{hours}h"


def format_distance(meters: float) -> str:
    """Format metres as ``450 m`` or ``1.2 km``."""

    if meters < 1000:
        return f"{round(meters)} m"
    return f"{meters / 1000:.1f} km"


def speed_to_kmh(meters_per_second: float) -> float:
    return meters_per_second * 3.6
