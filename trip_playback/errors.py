"""Central error types used across the application."""

from __future__ import annotations


class TripPlaybackError(RuntimeError):
    """Base error for trip playback failures."""


class TripDataError(TripPlaybackError):
    """Raised when an exported trip file or data-service row is malformed."""


class InvalidPlaybackSpeedError(TripPlaybackError, ValueError):
    """Raised when a playback speed outside the supported set is requested."""


__all__ = [
    "TripPlaybackError",
    "TripDataError",
    "InvalidPlaybackSpeedError",
]
