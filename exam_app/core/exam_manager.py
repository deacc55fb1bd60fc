"""Facade shared by the API server and the Qt window.

Owns the catalog, token authorizer, stores and notifier, and keeps one
:class:`ExamSession` per candidate id.
"""

from __future__ import annotations

import logging
from pathlib import Path
from threading import Lock
from typing import Callable

from exam_app.config import AppSettings
from exam_app.constants.exam_constants import DEFAULT_SAMPLE_SIZE
from exam_app.core.errors import InvalidTransitionError
from exam_app.core.exam_generator import ExamGenerator
from exam_app.core.exam_session import ExamSession
from exam_app.core.models import Candidate, ExamType, Result, SessionState
from exam_app.core.question_importer import load_catalog_from_directory
from exam_app.core.services.authorization import AccessToken, InMemoryTokenAuthorizer
from exam_app.core.services.catalog import ExamCatalog
from exam_app.core.services.countdown import ThreadingTicker, Ticker
from exam_app.core.services.identity import IdentityProvider, StaticIdentityProvider
from exam_app.core.services.notifications import (
    LoggingNotificationSink,
    NotificationSink,
    WebhookNotificationSink,
)
from exam_app.core.services.result_store import InMemoryResultStore, JsonResultStore
from exam_app.core.services.snapshot_store import (
    InMemorySnapshotStore,
    JsonFileSnapshotStore,
    SnapshotStore,
)

logger = logging.getLogger(__name__)

TickerFactory = Callable[[], Ticker]


class ExamManager:
    """Facade for exam services: Catalog, Tokens, Stores, Notifications and Sessions."""

    def __init__(
        self,
        catalog: ExamCatalog,
        authorizer: InMemoryTokenAuthorizer,
        snapshot_store: SnapshotStore,
        result_store: InMemoryResultStore | JsonResultStore,
        notifier: NotificationSink | None = None,
        identity: IdentityProvider | None = None,
        ticker_factory: TickerFactory | None = None,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
        generator: ExamGenerator | None = None,
    ) -> None:
        self._lock = Lock()
        self._catalog = catalog
        self._authorizer = authorizer
        self._snapshot_store = snapshot_store
        self._result_store = result_store
        self._notifier = notifier
        self._identity = identity or StaticIdentityProvider()
        self._ticker_factory = ticker_factory or ThreadingTicker
        self._sample_size = sample_size
        self._generator = generator
        self._sessions: dict[str, ExamSession] = {}

    @classmethod
    def in_memory(cls, **kwargs) -> "ExamManager":
        """Manager backed entirely by process-local stores."""
        kwargs.setdefault("catalog", ExamCatalog())
        kwargs.setdefault("authorizer", InMemoryTokenAuthorizer())
        kwargs.setdefault("snapshot_store", InMemorySnapshotStore())
        kwargs.setdefault("result_store", InMemoryResultStore())
        return cls(**kwargs)

    @classmethod
    def from_settings(cls, settings: AppSettings, ticker_factory: TickerFactory | None = None) -> "ExamManager":
        catalog = ExamCatalog()
        catalog_dir = Path(settings.catalog_dir)
        if catalog_dir.is_dir():
            load_catalog_from_directory(catalog_dir, catalog)
        else:
            logger.warning("Catalog directory %s not found; no exams loaded", catalog_dir)

        notifier: NotificationSink
        if settings.webhooks_enabled:
            notifier = WebhookNotificationSink(
                settings.submission_webhook_url, settings.alert_webhook_url
            )
        else:
            notifier = LoggingNotificationSink()

        return cls(
            catalog=catalog,
            authorizer=InMemoryTokenAuthorizer(),
            snapshot_store=JsonFileSnapshotStore(settings.snapshot_dir),
            result_store=JsonResultStore(settings.results_dir),
            notifier=notifier,
            identity=StaticIdentityProvider(set(settings.privileged_ids)),
            ticker_factory=ticker_factory,
            sample_size=settings.sample_size,
        )

    # --- Collaborators ---

    @property
    def catalog(self) -> ExamCatalog:
        return self._catalog

    @property
    def authorizer(self) -> InMemoryTokenAuthorizer:
        return self._authorizer

    @property
    def result_store(self) -> InMemoryResultStore | JsonResultStore:
        return self._result_store

    def list_exam_types(self) -> list[ExamType]:
        return self._catalog.list_exam_types()

    def issue_token(self, candidate_id: str, exam_type_id: int, created_by: str) -> AccessToken:
        self._catalog.get_exam_type(exam_type_id)
        return self._authorizer.issue_token(candidate_id, exam_type_id, created_by)

    def list_results(self, archived: bool | None = None) -> list[Result]:
        return self._result_store.list_results(archived)

    # --- Sessions ---

    def resolve_candidate(self, candidate_id: str, display_name: str | None = None) -> Candidate:
        return self._identity.get_candidate(candidate_id, display_name)

    def session_for(self, candidate: Candidate, ticker: Ticker | None = None) -> ExamSession:
        """Return the candidate's session, creating it (and recovering a snapshot) on first use."""
        with self._lock:
            session = self._sessions.get(candidate.candidate_id)
            if session is not None:
                return session
            session = self._create_session(candidate, ticker)
            self._sessions[candidate.candidate_id] = session
        if session.recover():
            logger.info("Resumed stored attempt for %s", candidate.candidate_id)
        return session

    def reset_session(self, candidate: Candidate, ticker: Ticker | None = None) -> ExamSession:
        """Start over at type selection once the previous attempt has finished."""
        with self._lock:
            previous = self._sessions.get(candidate.candidate_id)
            if previous is not None:
                if previous.state in (SessionState.IN_PROGRESS, SessionState.SUBMITTING):
                    raise InvalidTransitionError("The current attempt has not finished yet.")
                previous.close()
            session = self._create_session(candidate, ticker)
            self._sessions[candidate.candidate_id] = session
            return session

    def close(self) -> None:
        """Stop every session's timers. Snapshots stay on disk for recovery."""
        with self._lock:
            sessions = list(self._sessions.values())
        for session in sessions:
            session.close()
        if isinstance(self._notifier, WebhookNotificationSink):
            self._notifier.close()

    def _create_session(self, candidate: Candidate, ticker: Ticker | None) -> ExamSession:
        return ExamSession(
            candidate=candidate,
            catalog=self._catalog,
            authorizer=self._authorizer,
            snapshot_store=self._snapshot_store,
            result_store=self._result_store,
            notifier=self._notifier,
            ticker=ticker or self._ticker_factory(),
            generator=self._generator,
            sample_size=self._sample_size,
        )
