"""Per-question countdown driven by a pluggable one-second ticker."""

from __future__ import annotations

import logging
from threading import Event, Lock, Thread
from typing import Callable, Protocol

from exam_app.constants.exam_constants import (
    TICK_INTERVAL_SECONDS,
    TIMER_CRITICAL_SECONDS,
    TIMER_WARNING_SECONDS,
)

logger = logging.getLogger(__name__)


class Ticker(Protocol):
    """Periodic callback source. Qt sessions use a QTimer, servers a thread."""

    def start(self, callback: Callable[[], None]) -> None: ...

    def stop(self) -> None: ...


class ThreadingTicker:
    """Calls ``callback`` every ``interval`` seconds on a daemon thread.

    ``stop`` never joins, so it is safe to call from inside the callback.
    """

    def __init__(self, interval: float = TICK_INTERVAL_SECONDS, name: str = "ExamTicker") -> None:
        self._interval = interval
        self._name = name
        self._stop_event: Event | None = None

    def start(self, callback: Callable[[], None]) -> None:
        self.stop()
        stop_event = Event()
        self._stop_event = stop_event

        def run() -> None:
            while not stop_event.wait(self._interval):
                callback()

        Thread(target=run, name=self._name, daemon=True).start()

    def stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
            self._stop_event = None

    def is_active(self) -> bool:
        return self._stop_event is not None


class CountdownScheduler:
    """Owns the countdown for the current question of one session.

    Every :meth:`start` or :meth:`restart` opens a new countdown period.
    ``on_expired`` fires once per period with that period's number, so the
    owner can drop an expiry that lost a race with a manual advance.
    """

    def __init__(
        self,
        ticker: Ticker,
        on_expired: Callable[[int], None],
        on_tick: Callable[[int], None] | None = None,
    ) -> None:
        self._ticker = ticker
        self._on_expired = on_expired
        self._on_tick = on_tick
        self._lock = Lock()
        self._running = False
        self._expired = False
        self._remaining = 0
        self._period = 0

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def period(self) -> int:
        return self._period

    def is_running(self) -> bool:
        return self._running

    def start(self, seconds: int) -> None:
        with self._lock:
            self._remaining = max(0, int(seconds))
            self._expired = False
            self._period += 1
            was_running = self._running
            self._running = True
        if not was_running:
            self._ticker.start(self.tick)

    def restart(self, seconds: int) -> None:
        """Reset the countdown for a new question, keeping the ticker alive."""
        self.start(seconds)

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._running = False
        self._ticker.stop()

    def tick(self) -> None:
        with self._lock:
            # Ticks queued before stop() must not reach the session.
            if not self._running or self._expired:
                return
            self._remaining = max(0, self._remaining - 1)
            remaining = self._remaining
            period = self._period
            fire = remaining == 0
            if fire:
                self._expired = True

        if self._on_tick is not None:
            self._on_tick(remaining)
        if fire:
            logger.debug("Countdown period %d expired", period)
            self._on_expired(period)


def timer_band(seconds_remaining: int) -> str:
    """Colour band for the countdown display: normal, warning or critical."""
    if seconds_remaining > TIMER_WARNING_SECONDS:
        return "normal"
    if seconds_remaining > TIMER_CRITICAL_SECONDS:
        return "warning"
    return "critical"
