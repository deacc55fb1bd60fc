"""QTimer-backed ticker so countdown callbacks run on the GUI thread."""

from __future__ import annotations

from typing import Callable

from PySide6.QtCore import QObject, QTimer

from exam_app.constants.exam_constants import TICK_INTERVAL_SECONDS


class QtTicker(QObject):
    """Implements the countdown ``Ticker`` protocol with a repeating QTimer."""

    def __init__(self, parent: QObject | None = None, interval_seconds: float = TICK_INTERVAL_SECONDS) -> None:
        super().__init__(parent)
        self._callback: Callable[[], None] | None = None
        self._timer = QTimer(self)
        self._timer.setInterval(int(interval_seconds * 1000))
        self._timer.timeout.connect(self._on_timeout)

    def start(self, callback: Callable[[], None]) -> None:
        self._callback = callback
        self._timer.start()

    def stop(self) -> None:
        self._timer.stop()
        self._callback = None

    def is_active(self) -> bool:
        return self._timer.isActive()

    def _on_timeout(self) -> None:
        if self._callback is not None:
            self._callback()
