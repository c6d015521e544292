"""Session object owning one playback state, plus a wall-clock frame driver."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from ..config import PLAYBACK_SKIP_SECONDS
from ..models import NormalizedTrip, RenderSnapshot
from .snapshot import derive_snapshot
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

LOGGER = logging.getLogger(__name__)


class PlaybackController:
    """Single writer of the playback timeline for one replay view.

    Callers construct and own the controller; every change goes through
    :meth:`dispatch`, and consumers read :meth:`snapshot` rather than the raw
    trip arrays.
    """

    def __init__(self, state: Optional[PlaybackState] = None) -> None:
        self._state = state or PlaybackState()
        self._resumes = 0

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def trip(self) -> Optional[NormalizedTrip]:
        return self._state.trip

    @property
    def current_time(self) -> float:
        return self._state.current_time

    @property
    def is_playing(self) -> bool:
        return self._state.is_playing

    @property
    def speed(self) -> int:
        return self._state.speed

    @property
    def progress(self) -> float:
        return self._state.progress

    @property
    def resume_count(self) -> int:
        """Number of times playback went from paused to playing."""
        return self._resumes

    def dispatch(self, action: Action) -> PlaybackState:
        previous = self._state
        self._state = apply(previous, action)
        if self._state.is_playing and not previous.is_playing:
            self._resumes += 1
        return self._state

    def snapshot(self) -> Optional[RenderSnapshot]:
        """Frame for the current time, or ``None`` when no trip is loaded."""

        if self._state.trip is None:
            return None
        return derive_snapshot(self._state.trip, self._state.current_time)

    # Convenience wrappers -------------------------------------------------
    def select_trip(self, trip_id: Optional[str]) -> PlaybackState:
        return self.dispatch(SelectTrip(trip_id))

    def set_trip_data(self, trip: NormalizedTrip) -> PlaybackState:
        LOGGER.debug("Loading trip %s into playback", trip.batch_id)
        return self.dispatch(SetTripData(trip))

    def clear_trip(self) -> PlaybackState:
        return self.dispatch(ClearTrip())

    def set_current_time(self, value: float) -> PlaybackState:
        return self.dispatch(SetCurrentTime(value))

    def toggle_play_pause(self) -> PlaybackState:
        return self.dispatch(TogglePlayPause())

    def play(self) -> PlaybackState:
        return self.dispatch(Play())

    def pause(self) -> PlaybackState:
        return self.dispatch(Pause())

    def set_speed(self, multiplier: int) -> PlaybackState:
        return self.dispatch(SetSpeed(multiplier))

    def cycle_speed(self) -> PlaybackState:
        return self.dispatch(CycleSpeed())

    def jump_to_event(self, event_id: str) -> PlaybackState:
        return self.dispatch(JumpToEvent(event_id))

    def jump_to_stop(self, facility_id: str) -> PlaybackState:
        return self.dispatch(JumpToStop(facility_id))

    def skip_forward(self, seconds: float = PLAYBACK_SKIP_SECONDS) -> PlaybackState:
        return self.dispatch(SkipForward(seconds))

    def skip_backward(self, seconds: float = PLAYBACK_SKIP_SECONDS) -> PlaybackState:
        return self.dispatch(SkipBackward(seconds))

    def tick(self, elapsed_ms: float) -> PlaybackState:
        return self.dispatch(Tick(elapsed_ms))

    def set_progress(self, percent: float) -> PlaybackState:
        return self.dispatch(SetProgress(percent))

    def reset(self) -> PlaybackState:
        return self.dispatch(Reset())


class FrameClock:
    """Feed wall-clock elapsed time into a controller once per frame.

    ``clock`` returns seconds from a monotonic source and can be swapped out
    in tests.
    """

    def __init__(
        self,
        controller: PlaybackController,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._controller = controller
        self._clock = clock
        self._last: Optional[float] = None
        self._resumes = controller.resume_count

    def start(self) -> None:
        self._last = self._clock()
        self._resumes = self._controller.resume_count

    def frame(self) -> Optional[RenderSnapshot]:
        """Advance by the time since the previous frame and return the new snapshot."""

        now = self._clock()
        # Time spent paused never reaches the timeline.
        resumes = self._controller.resume_count
        if self._last is None or not self._controller.is_playing or resumes != self._resumes:
            self._last = now
            self._resumes = resumes
        elapsed_ms = (now - self._last) * 1000
        self._last = now
        self._controller.tick(elapsed_ms)
        return self._controller.snapshot()
