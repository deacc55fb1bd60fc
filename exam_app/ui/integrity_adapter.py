"""Translates Qt window events into integrity monitor signals."""

from __future__ import annotations

import logging
from typing import Callable

from PySide6.QtCore import QEvent, QObject, Qt

from exam_app.core.services.integrity_monitor import IntegrityMonitor

logger = logging.getLogger(__name__)


class IntegrityEventFilter(QObject):
    """Event filter installed on the candidate window.

    Losing activation (another window took focus) is reported as focus lost;
    hiding or minimising the window is reported as visibility lost. The
    monitor decides whether a report counts, so events outside a running
    exam are ignored there.
    """

    def __init__(
        self,
        monitor_provider: Callable[[], IntegrityMonitor | None],
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._monitor_provider = monitor_provider

    def eventFilter(self, watched: QObject, event: QEvent) -> bool:  # noqa: N802 - Qt API
        event_type = event.type()
        if event_type == QEvent.WindowDeactivate:
            self._report(lambda monitor: monitor.report_focus_lost())
        elif event_type == QEvent.Hide:
            self._report(lambda monitor: monitor.report_visibility_lost())
        elif event_type == QEvent.WindowStateChange:
            if watched.isWidgetType() and watched.windowState() & Qt.WindowMinimized:
                self._report(lambda monitor: monitor.report_visibility_lost())
        return super().eventFilter(watched, event)

    def _report(self, send: Callable[[IntegrityMonitor], bool]) -> None:
        monitor = self._monitor_provider()
        if monitor is not None and send(monitor):
            logger.warning("Integrity violation reported by the candidate window")
