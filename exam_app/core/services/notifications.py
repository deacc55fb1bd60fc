"""Outbound notifications for submissions and integrity violations.

Delivery is best effort. Sinks raise :class:`TransientNotifyError` when an
event cannot be delivered and :func:`deliver_notification` logs the failure
instead of letting it reach the submission path. The webhook sink posts from
its own worker thread so a slow endpoint never holds up a session.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
import logging
from typing import Any, Protocol

import httpx

from exam_app.constants.about import APP_NAME
from exam_app.constants.network_constants import WEBHOOK_TIMEOUT_SECONDS
from exam_app.core.errors import TransientNotifyError
from exam_app.core.models import ViolationKind, utc_now

logger = logging.getLogger(__name__)

_COLOR_PASSED = 0x00FF00
_COLOR_FAILED = 0xFF0000
_COLOR_WARNING = 0xFFA500

_VIOLATION_TITLES = {
    ViolationKind.VISIBILITY_LOST: ("Tab switch detected", "The candidate switched away from the exam tab.", _COLOR_FAILED),
    ViolationKind.FOCUS_LOST: ("Focus loss detected", "The exam window lost focus during the exam.", _COLOR_WARNING),
}


@dataclass(slots=True, frozen=True)
class SubmissionEvent:
    candidate_id: str
    display_name: str
    exam_type_name: str
    score: int
    total: int
    percentage: float
    passed: bool
    passing_threshold: float
    result_id: str | None
    occurred_at: datetime = field(default_factory=utc_now)


@dataclass(slots=True, frozen=True)
class ViolationEvent:
    candidate_id: str
    display_name: str
    exam_type_name: str
    kind: ViolationKind
    email: str | None = None
    occurred_at: datetime = field(default_factory=utc_now)


NotificationEvent = SubmissionEvent | ViolationEvent


class NotificationSink(Protocol):
    def notify(self, event: NotificationEvent) -> None: ...


class LoggingNotificationSink:
    """Writes events to the application log."""

    def notify(self, event: NotificationEvent) -> None:
        if isinstance(event, SubmissionEvent):
            logger.info(
                "Exam %s by %s: %d/%d (%.1f%%) %s",
                event.exam_type_name,
                event.display_name,
                event.score,
                event.total,
                event.percentage,
                "passed" if event.passed else "failed",
            )
        else:
            logger.warning(
                "Integrity violation by %s during %s: %s",
                event.display_name,
                event.exam_type_name,
                event.kind.value,
            )


class RecordingNotificationSink:
    """Keeps every event in memory; handy for tests and the admin console."""

    def __init__(self) -> None:
        self.events: list[NotificationEvent] = []

    def notify(self, event: NotificationEvent) -> None:
        self.events.append(event)


class WebhookNotificationSink:
    """Posts Discord-style embeds to the configured webhook URLs.

    :meth:`notify` only queues the post; a single worker thread delivers
    queued events in order and logs the ones that fail. :meth:`send` is the
    blocking delivery used by that worker.
    """

    def __init__(
        self,
        submission_url: str | None,
        alert_url: str | None,
        client: httpx.Client | None = None,
        timeout: float = WEBHOOK_TIMEOUT_SECONDS,
    ) -> None:
        self._submission_url = submission_url
        self._alert_url = alert_url
        self._client = client or httpx.Client(timeout=timeout)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ExamWebhook")

    def notify(self, event: NotificationEvent) -> None:
        future = self._executor.submit(self.send, event)
        future.add_done_callback(_log_delivery_failure)

    def send(self, event: NotificationEvent) -> None:
        if isinstance(event, SubmissionEvent):
            self._post(self._submission_url, build_submission_payload(event))
        else:
            self._post(self._alert_url, build_violation_payload(event))

    def close(self) -> None:
        """Wait for queued posts, then release the HTTP client."""
        self._executor.shutdown(wait=True)
        self._client.close()

    def _post(self, url: str | None, payload: dict[str, Any]) -> None:
        if not url:
            raise TransientNotifyError("Webhook URL not configured.")
        try:
            response = self._client.post(url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransientNotifyError(f"Webhook delivery failed: {exc}") from exc


def _log_delivery_failure(future: Future) -> None:
    exc = future.exception()
    if isinstance(exc, TransientNotifyError):
        logger.warning("Notification not delivered: %s", exc)
    elif exc is not None:
        logger.error("Webhook worker raised unexpectedly", exc_info=exc)


def build_submission_payload(event: SubmissionEvent) -> dict[str, Any]:
    verdict = "Passed" if event.passed else "Not passed"
    return {
        "embeds": [
            {
                "title": f"Exam {verdict}",
                "color": _COLOR_PASSED if event.passed else _COLOR_FAILED,
                "fields": [
                    {"name": "Candidate", "value": event.display_name, "inline": True},
                    {"name": "Exam type", "value": event.exam_type_name, "inline": True},
                    {
                        "name": "Score",
                        "value": f"{event.score}/{event.total} ({event.percentage:.1f}%)",
                        "inline": True,
                    },
                    {"name": "Passing threshold", "value": f"{event.passing_threshold:g}%", "inline": True},
                    {"name": "Result ID", "value": event.result_id or "N/A", "inline": True},
                ],
                "timestamp": event.occurred_at.isoformat(),
                "footer": {"text": f"{APP_NAME} - Exam System"},
            }
        ]
    }


def build_violation_payload(event: ViolationEvent) -> dict[str, Any]:
    title, description, color = _VIOLATION_TITLES[event.kind]
    return {
        "embeds": [
            {
                "title": title,
                "description": description,
                "color": color,
                "fields": [
                    {"name": "Candidate", "value": event.display_name or "N/A", "inline": True},
                    {"name": "Candidate ID", "value": event.candidate_id, "inline": True},
                    {"name": "Email", "value": event.email or "N/A", "inline": True},
                    {"name": "Exam type", "value": event.exam_type_name, "inline": True},
                    {"name": "Violation", "value": event.kind.value, "inline": True},
                ],
                "timestamp": event.occurred_at.isoformat(),
                "footer": {"text": f"{APP_NAME} - Integrity Monitor"},
            }
        ]
    }


def deliver_notification(sink: NotificationSink | None, event: NotificationEvent) -> bool:
    """Send ``event`` through ``sink``; failures are logged and reported as False."""
    if sink is None:
        return False
    try:
        sink.notify(event)
    except TransientNotifyError as exc:
        logger.warning("Notification not delivered: %s", exc)
        return False
    except Exception:
        logger.exception("Notification sink raised unexpectedly")
        return False
    return True
