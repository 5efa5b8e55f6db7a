"""
Playback scheduler for the timeline.
Advances the model's current time once per frame and grows the duration
when playback runs into the end.
"""

import logging
import time
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .config import TimelineSettings
from .events import ChangeEvent, ChangeKind
from .timeline_model import TimelineModel

logger = logging.getLogger(__name__)


class PlaybackState(Enum):
    STOPPED = "stopped"
    PLAYING = "playing"


class PlaybackScheduler:
    """
    Drives a TimelineModel's playhead.

    Call update() every frame (it reads the clock), or tick(delta) when the
    host already knows the frame delta. Time is written back through
    model.set_current_time so listeners see ordinary time changes.
    """

    def __init__(
        self,
        model: TimelineModel,
        settings: Optional[TimelineSettings] = None,
        clock: Callable[[], float] = time.monotonic,
        auto_extend: Optional[bool] = None,
        lookahead_window: Optional[float] = None,
        extension_padding: Optional[float] = None,
    ):
        self.model = model
        settings = settings or model.settings
        self.clock = clock
        self.state: PlaybackState = PlaybackState.STOPPED

        self.auto_extend = settings.auto_extend if auto_extend is None else auto_extend
        self.lookahead_window = settings.lookahead_window if lookahead_window is None else lookahead_window
        self.extension_padding = settings.extension_padding if extension_padding is None else extension_padding

        self._last_tick: float = 0.0  # Clock reading at play() or the last update()
        self.loop_count: int = 0

    @property
    def is_playing(self) -> bool:
        return self.state == PlaybackState.PLAYING

    def play(self) -> bool:
        """Start or resume playback from the current time."""
        if self.is_playing:
            return False
        self._last_tick = self.clock()
        self.state = PlaybackState.PLAYING
        logger.info(f"Playing from {self.model.current_time:.2f}s")
        self._publish(ChangeKind.PLAY)
        return True

    def pause(self) -> bool:
        """Pause playback, keeping the current time."""
        if not self.is_playing:
            return False
        self.state = PlaybackState.STOPPED
        logger.info(f"Paused at {self.model.current_time:.2f}s")
        self._publish(ChangeKind.PAUSE)
        return True

    def stop(self):
        """Stop playback and rewind to 0."""
        self.state = PlaybackState.STOPPED
        self.model.set_current_time(0.0)
        logger.info("Stopped")
        self._publish(ChangeKind.STOP)

    def toggle_play_pause(self) -> PlaybackState:
        if self.is_playing:
            self.pause()
        else:
            self.play()
        return self.state

    def seek(self, position: float) -> float:
        """Jump to a time; seeking past the end grows the duration."""
        self._last_tick = self.clock()
        new_time = self.model.set_current_time(position, extend=True)
        logger.debug(f"Seeked to {new_time:.2f}s")
        return new_time

    def tick(self, delta: float) -> float:
        """
        Advance playback by ``delta`` seconds.

        Args:
            delta: Elapsed seconds since the previous frame (negative means 0)

        Returns:
            The model's current time after the tick
        """
        if not self.is_playing:
            return self.model.current_time

        next_time = self.model.current_time + max(0.0, delta)

        if self.auto_extend and next_time >= self.model.duration - self.lookahead_window:
            self.model.extend_duration_if_needed(next_time, self.extension_padding)

        # Duration is read again here since the extension above may have moved it
        if next_time >= self.model.duration:
            next_time = 0.0
            self.loop_count += 1
            logger.info(f"Playback reached the end, looping (loop {self.loop_count})")
            self._publish(ChangeKind.PLAYBACK_LOOPED, {"loopCount": self.loop_count})

        return self.model.set_current_time(next_time, extend=False)

    def update(self) -> float:
        """Advance by the wall-clock time since play() or the previous update()."""
        if not self.is_playing:
            return self.model.current_time
        now = self.clock()
        delta = now - self._last_tick
        self._last_tick = now
        return self.tick(delta)

    def get_status(self) -> Dict[str, Any]:
        """Get current playback status for broadcasting."""
        return {
            "state": self.state.value,
            "current_time": self.model.current_time,
            "duration": self.model.duration,
            "time_scale": self.model.time_scale,
            "auto_extend": self.auto_extend,
            "loop_count": self.loop_count,
        }

    def _publish(self, kind: ChangeKind, values: Optional[Dict[str, Any]] = None):
        payload = {"time": self.model.current_time}
        payload.update(values or {})
        self.model.notifier.publish(ChangeEvent(kind, (), payload))
