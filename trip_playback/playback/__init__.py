"""Playback state machine, session controller and per-frame derivation."""

from .state import (
    Action,
    ClearTrip,
    CycleSpeed,
    JumpToEvent,
    JumpToStop,
    Pause,
    Play,
    PlaybackState,
    Reset,
    SelectTrip,
    SetCurrentTime,
    SetProgress,
    SetSpeed,
    SetTripData,
    SkipBackward,
    SkipForward,
    Tick,
    TogglePlayPause,
    apply,
)
from .snapshot import (
    active_events,
    derive_snapshot,
    distance_traveled,
    events_ending_at,
    events_starting_at,
    events_until,
)
from .controller import FrameClock, PlaybackController

__all__ = [
    "Action",
    "ClearTrip",
    "CycleSpeed",
    "JumpToEvent",
    "JumpToStop",
    "Pause",
    "Play",
    "PlaybackState",
    "Reset",
    "SelectTrip",
    "SetCurrentTime",
    "SetProgress",
    "SetSpeed",
    "SetTripData",
    "SkipBackward",
    "SkipForward",
    "Tick",
    "TogglePlayPause",
    "apply",
    "active_events",
    "derive_snapshot",
    "distance_traveled",
    "events_ending_at",
    "events_starting_at",
    "events_until",
    "FrameClock",
    "PlaybackController",
]
