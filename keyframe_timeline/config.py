"""Engine configuration via pydantic-settings."""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

_logger = logging.getLogger(__name__)


class TimelineSettings(BaseSettings):
    """Timeline engine settings loaded from environment variables.

    All variables are prefixed with ``KEYFRAME_TIMELINE_`` (e.g.
    ``KEYFRAME_TIMELINE_EXTENSION_PADDING``).
    """

    # Timeline length in seconds for a fresh model (10 minutes)
    default_duration: float = 600.0

    # Zoom limits
    default_time_scale: float = 1.0
    min_time_scale: float = 0.1
    max_time_scale: float = 10.0

    # Keyframe hit testing
    keyframe_tolerance: float = 0.1
    exact_match_epsilon: float = 0.001

    # Playback tail policy
    lookahead_window: float = 1.0
    extension_padding: float = 10.0
    auto_extend: bool = True

    # Size of the recent unparseable-color history
    color_warning_history: int = 100

    # Logging
    env: str = "development"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="KEYFRAME_TIMELINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def model_post_init(self, __context: object) -> None:
        """Reject inverted zoom limits and keep the default scale inside them."""
        if self.min_time_scale <= 0:
            raise ValueError("KEYFRAME_TIMELINE_MIN_TIME_SCALE must be positive")
        if self.min_time_scale > self.max_time_scale:
            raise ValueError(
                "KEYFRAME_TIMELINE_MIN_TIME_SCALE must not exceed KEYFRAME_TIMELINE_MAX_TIME_SCALE"
            )
        clamped = max(self.min_time_scale, min(self.default_time_scale, self.max_time_scale))
        if clamped != self.default_time_scale:
            _logger.warning(
                "default_time_scale %s outside [%s, %s], using %s",
                self.default_time_scale,
                self.min_time_scale,
                self.max_time_scale,
                clamped,
            )
            self.default_time_scale = clamped
        if self.default_duration < 0:
            raise ValueError("KEYFRAME_TIMELINE_DEFAULT_DURATION must not be negative")


@lru_cache(maxsize=1)
def get_settings() -> TimelineSettings:
    """Return a cached ``TimelineSettings`` instance."""
    return TimelineSettings()
