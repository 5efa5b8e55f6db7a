"""Shared pytest fixtures for the timeline engine test suite."""

from __future__ import annotations

import logging
from typing import List

import pytest

from keyframe_timeline.config import TimelineSettings, get_settings
from keyframe_timeline.events import ChangeEvent
from keyframe_timeline.timeline_model import TimelineModel


# ---------------------------------------------------------------------------
# Settings override
# ---------------------------------------------------------------------------

@pytest.fixture()
def settings() -> TimelineSettings:
    # _env_file=None keeps a developer's .env out of the tests
    return TimelineSettings(_env_file=None)


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Model + event recording
# ---------------------------------------------------------------------------

@pytest.fixture()
def model(settings) -> TimelineModel:
    return TimelineModel(settings=settings)


@pytest.fixture()
def events(model) -> List[ChangeEvent]:
    """Every event the model publishes, in order."""
    received: List[ChangeEvent] = []
    model.subscribe(received.append)
    return received


@pytest.fixture()
def tweened_layer(model):
    """A layer with x: 0 -> 100 between t=0 and t=10 joined by a linear tween.

    Returns (layer, start_keyframe, end_keyframe, tween).
    """
    layer = model.add_layer(name="Box")
    k1 = model.add_keyframe(layer.id, 0, {"x": 0})
    k2 = model.add_keyframe(layer.id, 10, {"x": 100})
    tween = model.add_motion_tween(layer.id, k1.id, k2.id, "linear")
    return layer, k1, k2, tween


@pytest.fixture()
def root_logger():
    """Restore root logger handlers/level after configure_logging() runs."""
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield root
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)
