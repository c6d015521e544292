"""Reducer-style playback state machine.

``PlaybackState`` is immutable; :func:`apply` returns the next state for an
action and never mutates its input. ``current_time`` only ever changes
through this module, and every seek is clamped into the trip bounds.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Type, Union

from ..config import PLAYBACK_SKIP_SECONDS, PLAYBACK_SPEEDS
from ..errors import InvalidPlaybackSpeedError
from ..models import NormalizedTrip
from ..utils import clamp

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PlaybackState:
    trip: Optional[NormalizedTrip] = None
    selected_trip_id: Optional[str] = None
    current_time: float = 0
    is_playing: bool = False
    speed: int = 1
    highlighted_event_id: Optional[str] = None
    highlighted_stop_id: Optional[str] = None

    @property
    def at_end(self) -> bool:
        return self.trip is not None and self.current_time >= self.trip.end_time

    @property
    def progress(self) -> float:
        """Percentage of the trip elapsed, 0-100."""

        if self.trip is None or self.trip.duration_ms <= 0:
            return 0.0
        elapsed = self.current_time - self.trip.start_time
        return clamp(elapsed / self.trip.duration_ms * 100, 0.0, 100.0)


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class SelectTrip:
    trip_id: Optional[str]


@dataclass(frozen=True, slots=True)
class SetTripData:
    trip: NormalizedTrip


@dataclass(frozen=True, slots=True)
class ClearTrip:
    pass


@dataclass(frozen=True, slots=True)
class SetCurrentTime:
    time: float


@dataclass(frozen=True, slots=True)
class TogglePlayPause:
    pass


@dataclass(frozen=True, slots=True)
class Play:
    pass


@dataclass(frozen=True, slots=True)
class Pause:
    pass


@dataclass(frozen=True, slots=True)
class SetSpeed:
    multiplier: int


@dataclass(frozen=True, slots=True)
class CycleSpeed:
    pass


@dataclass(frozen=True, slots=True)
class JumpToEvent:
    event_id: str


@dataclass(frozen=True, slots=True)
class JumpToStop:
    facility_id: str


@dataclass(frozen=True, slots=True)
class SkipForward:
    seconds: float = PLAYBACK_SKIP_SECONDS


@dataclass(frozen=True, slots=True)
class SkipBackward:
    seconds: float = PLAYBACK_SKIP_SECONDS


@dataclass(frozen=True, slots=True)
class Tick:
    elapsed_ms: float


@dataclass(frozen=True, slots=True)
class SetProgress:
    percent: float


@dataclass(frozen=True, slots=True)
class Reset:
    pass


Action = Union[
    SelectTrip,
    SetTripData,
    ClearTrip,
    SetCurrentTime,
    TogglePlayPause,
    Play,
    Pause,
    SetSpeed,
    CycleSpeed,
    JumpToEvent,
    JumpToStop,
    SkipForward,
    SkipBackward,
    Tick,
    SetProgress,
    Reset,
]


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------
def _seek(state: PlaybackState, time: float, **changes) -> PlaybackState:
    """Clamp ``time`` into the trip and auto-pause when the end is reached."""

    trip = state.trip
    if trip is None:
        return state
    clamped = clamp(time, trip.start_time, trip.end_time)
    if clamped == trip.end_time:
        changes["is_playing"] = False
    return dataclasses.replace(state, current_time=clamped, **changes)


def _select_trip(state: PlaybackState, action: SelectTrip) -> PlaybackState:
    if action.trip_id == state.selected_trip_id:
        return state
    return PlaybackState(selected_trip_id=action.trip_id, speed=state.speed)


def _set_trip_data(state: PlaybackState, action: SetTripData) -> PlaybackState:
    trip = action.trip
    return PlaybackState(
        trip=trip,
        selected_trip_id=trip.batch_id,
        current_time=trip.start_time,
        is_playing=False,
        speed=state.speed,
    )


def _clear_trip(state: PlaybackState, action: ClearTrip) -> PlaybackState:
    return PlaybackState(speed=state.speed)


def _set_current_time(state: PlaybackState, action: SetCurrentTime) -> PlaybackState:
    return _seek(state, action.time)


def _play(state: PlaybackState, action: Play) -> PlaybackState:
    trip = state.trip
    if trip is None:
        return state
    if state.at_end:
        return dataclasses.replace(state, current_time=trip.start_time, is_playing=True)
    return dataclasses.replace(state, is_playing=True)


def _pause(state: PlaybackState, action: Pause) -> PlaybackState:
    if not state.is_playing:
        return state
    return dataclasses.replace(state, is_playing=False)


def _toggle_play_pause(state: PlaybackState, action: TogglePlayPause) -> PlaybackState:
    if state.trip is None:
        return state
    if state.is_playing and not state.at_end:
        return dataclasses.replace(state, is_playing=False)
    return _play(state, Play())


def _set_speed(state: PlaybackState, action: SetSpeed) -> PlaybackState:
    if action.multiplier not in PLAYBACK_SPEEDS:
        raise InvalidPlaybackSpeedError(
            f"Unsupported playback speed {action.multiplier!r}; "
            f"expected one of {PLAYBACK_SPEEDS}"
        )
    return dataclasses.replace(state, speed=action.multiplier)


def _cycle_speed(state: PlaybackState, action: CycleSpeed) -> PlaybackState:
    try:
        position = PLAYBACK_SPEEDS.index(state.speed)
    except ValueError:
        position = -1
    next_speed = PLAYBACK_SPEEDS[(position + 1) % len(PLAYBACK_SPEEDS)]
    return dataclasses.replace(state, speed=next_speed)


def _jump_to_event(state: PlaybackState, action: JumpToEvent) -> PlaybackState:
    if state.trip is None:
        return state
    event = state.trip.find_event(action.event_id)
    if event is None:
        LOGGER.debug("Jump ignored: unknown event %s", action.event_id)
        return state
    return _seek(
        state,
        event.start_time,
        is_playing=False,
        highlighted_event_id=event.id,
        highlighted_stop_id=None,
    )


def _jump_to_stop(state: PlaybackState, action: JumpToStop) -> PlaybackState:
    if state.trip is None:
        return state
    stop = state.trip.find_stop(action.facility_id)
    if stop is None:
        LOGGER.debug("Jump ignored: unknown stop %s", action.facility_id)
        return state
    return _seek(
        state,
        stop.arrival_time,
        is_playing=False,
        highlighted_stop_id=stop.facility_id,
        highlighted_event_id=None,
    )


def _skip_forward(state: PlaybackState, action: SkipForward) -> PlaybackState:
    return _seek(state, state.current_time + action.seconds * 1000)


def _skip_backward(state: PlaybackState, action: SkipBackward) -> PlaybackState:
    return _seek(state, state.current_time - action.seconds * 1000)


def _tick(state: PlaybackState, action: Tick) -> PlaybackState:
    if not state.is_playing or state.trip is None:
        return state
    return _seek(state, state.current_time + action.elapsed_ms * state.speed)


def _set_progress(state: PlaybackState, action: SetProgress) -> PlaybackState:
    trip = state.trip
    if trip is None:
        return state
    percent = clamp(action.percent, 0.0, 100.0)
    return _seek(state, trip.start_time + trip.duration_ms * percent / 100)


def _reset(state: PlaybackState, action: Reset) -> PlaybackState:
    if state.trip is None:
        return dataclasses.replace(state, is_playing=False, speed=1)
    return PlaybackState(
        trip=state.trip,
        selected_trip_id=state.selected_trip_id,
        current_time=state.trip.start_time,
    )


_HANDLERS: Dict[Type, Callable[[PlaybackState, object], PlaybackState]] = {
    SelectTrip: _select_trip,
    SetTripData: _set_trip_data,
    ClearTrip: _clear_trip,
    SetCurrentTime: _set_current_time,
    TogglePlayPause: _toggle_play_pause,
    Play: _play,
    Pause: _pause,
    SetSpeed: _set_speed,
    CycleSpeed: _cycle_speed,
    JumpToEvent: _jump_to_event,
    JumpToStop: _jump_to_stop,
    SkipForward: _skip_forward,
    SkipBackward: _skip_backward,
    Tick: _tick,
    SetProgress: _set_progress,
    Reset: _reset,
}


def apply(state: PlaybackState, action: Action) -> PlaybackState:
    """Return the state that results from applying ``action`` to ``state``."""

    handler = _HANDLERS.get(type(action))
    if handler is None:
        raise TypeError(f"Unknown playback action: {action!r}")
    return handler(state, action)
