"""
Unit tests for the playback scheduler.

Uses a mocked clock for deterministic timing tests.
"""

from unittest.mock import MagicMock

import pytest

from keyframe_timeline.events import ChangeKind
from keyframe_timeline.playback import PlaybackScheduler, PlaybackState


@pytest.fixture()
def clock():
    fake = MagicMock()
    fake.return_value = 1000.0
    return fake


@pytest.fixture()
def scheduler(model, clock):
    return PlaybackScheduler(model, clock=clock)


class TestPlaybackControls:

    def test_initial_state(self, scheduler):
        assert scheduler.state == PlaybackState.STOPPED
        assert not scheduler.is_playing

    def test_play_pause_publish(self, scheduler, events):
        assert scheduler.play() is True
        assert scheduler.play() is False
        assert scheduler.pause() is True
        assert scheduler.pause() is False
        assert [e.kind for e in events] == [ChangeKind.PLAY, ChangeKind.PAUSE]

    def test_pause_keeps_time(self, scheduler, model):
        scheduler.play()
        scheduler.tick(2.5)
        scheduler.pause()
        assert model.current_time == pytest.approx(2.5)
        assert scheduler.tick(1.0) == pytest.approx(2.5)

    def test_stop_rewinds(self, scheduler, model, events):
        scheduler.play()
        scheduler.tick(3)
        scheduler.stop()
        assert model.current_time == 0
        assert scheduler.state == PlaybackState.STOPPED
        assert events[-1].kind == ChangeKind.STOP

    def test_toggle(self, scheduler):
        assert scheduler.toggle_play_pause() == PlaybackState.PLAYING
        assert scheduler.toggle_play_pause() == PlaybackState.STOPPED

    def test_seek_past_end_extends(self, scheduler, model, settings):
        scheduler.seek(650)
        assert model.current_time == 650
        assert model.duration == 650 + settings.extension_padding


class TestTick:

    def test_tick_advances(self, scheduler, model):
        scheduler.play()
        assert scheduler.tick(0.5) == pytest.approx(0.5)
        assert scheduler.tick(0.25) == pytest.approx(0.75)

    def test_negative_delta_is_zero(self, scheduler, model):
        scheduler.play()
        scheduler.tick(1)
        assert scheduler.tick(-5) == pytest.approx(1)

    def test_auto_extend_near_end(self, scheduler, model, settings):
        model.set_current_time(599.5)
        scheduler.play()
        new_time = scheduler.tick(0.6)
        assert new_time == pytest.approx(600.1)
        assert model.duration == pytest.approx(600.1 + settings.extension_padding)

    def test_no_extension_outside_lookahead(self, scheduler, model):
        scheduler.play()
        scheduler.tick(10)
        assert model.duration == 600

    def test_loops_without_auto_extend(self, model, clock, events):
        model.set_duration(10)
        scheduler = PlaybackScheduler(model, clock=clock, auto_extend=False)
        model.set_current_time(9.5)
        scheduler.play()
        assert scheduler.tick(1.0) == 0
        assert model.duration == 10
        assert scheduler.loop_count == 1
        assert ChangeKind.PLAYBACK_LOOPED in [e.kind for e in events]

    def test_extension_is_honoured_before_loop_check(self, model, clock):
        model.set_duration(10)
        scheduler = PlaybackScheduler(model, clock=clock, extension_padding=5)
        model.set_current_time(9.8)
        scheduler.play()
        assert scheduler.tick(0.4) == pytest.approx(10.2)
        assert scheduler.loop_count == 0

    def test_zero_padding_loops_at_end(self, model, clock):
        model.set_duration(10)
        scheduler = PlaybackScheduler(model, clock=clock, extension_padding=0)
        model.set_current_time(9.8)
        scheduler.play()
        # Duration grows to exactly the next time, which still counts as the end
        assert scheduler.tick(0.4) == 0
        assert model.duration == pytest.approx(10.2)


class TestUpdate:

    def test_update_uses_clock_delta(self, scheduler, model, clock):
        scheduler.play()
        clock.return_value = 1002.0
        assert scheduler.update() == pytest.approx(2.0)
        clock.return_value = 1002.5
        assert scheduler.update() == pytest.approx(2.5)

    def test_update_while_stopped_does_nothing(self, scheduler, model, clock):
        clock.return_value = 2000.0
        assert scheduler.update() == 0

    def test_status(self, scheduler):
        scheduler.play()
        scheduler.tick(1)
        status = scheduler.get_status()
        assert status["state"] == "playing"
        assert status["current_time"] == pytest.approx(1)
        assert status["duration"] == 600
        assert status["loop_count"] == 0
