"""One-shot detector for candidates leaving the exam surface."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Callable

from exam_app.core.models import ViolationKind

logger = logging.getLogger(__name__)


class IntegrityMonitor:
    """Turns platform focus/visibility signals into a single ``on_violation`` call.

    Adapters (Qt event filter, browser page) call :meth:`report`; only the
    first signal while armed is forwarded.
    """

    def __init__(self, on_violation: Callable[[ViolationKind], None]) -> None:
        self._on_violation = on_violation
        self._lock = Lock()
        self._armed = False
        self._violation: ViolationKind | None = None

    def arm(self) -> None:
        with self._lock:
            self._armed = True
            self._violation = None

    def disarm(self) -> None:
        with self._lock:
            self._armed = False

    def is_armed(self) -> bool:
        return self._armed

    @property
    def violation(self) -> ViolationKind | None:
        return self._violation

    def report(self, kind: ViolationKind) -> bool:
        """Record a signal; return True if it triggered the violation."""
        with self._lock:
            if not self._armed or self._violation is not None:
                return False
            self._violation = kind
        logger.warning("Integrity violation detected: %s", kind.value)
        self._on_violation(kind)
        return True

    def report_visibility_lost(self) -> bool:
        return self.report(ViolationKind.VISIBILITY_LOST)

    def report_focus_lost(self) -> bool:
        return self.report(ViolationKind.FOCUS_LOST)
