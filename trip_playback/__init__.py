"""Historical trip playback engine."""

from .errors import InvalidPlaybackSpeedError, TripDataError, TripPlaybackError
from .models import (
    EnhancedStop,
    IndexedEvent,
    IndexedPosition,
    NormalizedTrip,
    RawEvent,
    RawPlaybackData,
    RenderSnapshot,
    StopAnalytics,
    TimeRange,
    TripAnalytics,
)
from .preprocessing import downsample_gps, preprocess_trip
from .playback import PlaybackController, PlaybackState, apply, derive_snapshot

__all__ = [
    "InvalidPlaybackSpeedError",
    "TripDataError",
    "TripPlaybackError",
    "EnhancedStop",
    "IndexedEvent",
    "IndexedPosition",
    "NormalizedTrip",
    "RawEvent",
    "RawPlaybackData",
    "RenderSnapshot",
    "StopAnalytics",
    "TimeRange",
    "TripAnalytics",
    "downsample_gps",
    "preprocess_trip",
    "PlaybackController",
    "PlaybackState",
    "apply",
    "derive_snapshot",
]
