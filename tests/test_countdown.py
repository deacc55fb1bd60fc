"""
Unit Tests for CountdownScheduler and tickers
"""

from threading import Event

import pytest

from exam_app.core.services.countdown import CountdownScheduler, ThreadingTicker, timer_band

from conftest import ManualTicker


@pytest.fixture
def recorder():
    class Recorder:
        def __init__(self):
            self.expired = 0
            self.periods = []
            self.ticks = []

        def on_expired(self, period):
            self.expired += 1
            self.periods.append(period)

        def on_tick(self, remaining):
            self.ticks.append(remaining)

    return Recorder()


class TestCountdownScheduler:
    """Tests for the per-question countdown."""

    def test_tick_decrements_once_per_tick(self, recorder):
        ticker = ManualTicker()
        scheduler = CountdownScheduler(ticker, recorder.on_expired, recorder.on_tick)
        scheduler.start(3)
        ticker.fire(2)
        assert scheduler.remaining == 1
        assert recorder.ticks == [2, 1]
        assert recorder.expired == 0

    def test_reaching_zero_fires_expired_once(self, recorder):
        ticker = ManualTicker()
        scheduler = CountdownScheduler(ticker, recorder.on_expired, recorder.on_tick)
        scheduler.start(2)
        ticker.fire(5)
        assert recorder.expired == 1
        assert scheduler.remaining == 0

    def test_restart_resets_limit_without_restarting_ticker(self, recorder):
        ticker = ManualTicker()
        scheduler = CountdownScheduler(ticker, recorder.on_expired)
        scheduler.start(1)
        ticker.fire()
        scheduler.restart(45)
        assert scheduler.remaining == 45
        assert ticker.start_count == 1
        ticker.fire(45)
        assert recorder.expired == 2
        assert recorder.periods == [1, 2]

    def test_stop_prevents_further_ticks(self, recorder):
        ticker = ManualTicker()
        scheduler = CountdownScheduler(ticker, recorder.on_expired, recorder.on_tick)
        scheduler.start(5)
        scheduler.stop()
        assert not ticker.active
        assert not scheduler.is_running()

    def test_stray_tick_after_stop_is_ignored(self, recorder):
        """A tick already queued when stop() ran must not reach the owner."""
        ticker = ManualTicker()
        scheduler = CountdownScheduler(ticker, recorder.on_expired, recorder.on_tick)
        scheduler.start(1)
        scheduler.stop()
        scheduler.tick()
        assert recorder.ticks == []
        assert recorder.expired == 0

    def test_stop_when_not_running_is_noop(self, recorder):
        ticker = ManualTicker()
        CountdownScheduler(ticker, recorder.on_expired).stop()
        assert ticker.stop_count == 0


class TestThreadingTicker:
    def test_calls_back_until_stopped(self):
        fired = Event()
        ticker = ThreadingTicker(interval=0.01)
        ticker.start(fired.set)
        assert fired.wait(2.0)
        ticker.stop()
        assert not ticker.is_active()


class TestTimerBand:
    @pytest.mark.parametrize(
        ("seconds", "band"),
        [(30, "normal"), (11, "normal"), (10, "warning"), (6, "warning"), (5, "critical"), (0, "critical")],
    )
    def test_band_boundaries(self, seconds, band):
        assert timer_band(seconds) == band
