"""Persistence for in-progress session snapshots, keyed by candidate id."""

from __future__ import annotations

from datetime import datetime, timedelta
import json
import logging
import os
from pathlib import Path
import re
from threading import Lock
from typing import Callable, Protocol

from exam_app.constants.exam_constants import SNAPSHOT_TTL_SECONDS
from exam_app.core.errors import PersistenceError
from exam_app.core.models import SessionSnapshot, utc_now

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class SnapshotStore(Protocol):
    def save(self, candidate_id: str, snapshot: SessionSnapshot) -> None: ...

    def load(self, candidate_id: str) -> SessionSnapshot | None: ...

    def clear(self, candidate_id: str) -> None: ...


class _ExpiringSnapshotStore:
    """Shared staleness handling: snapshots older than the TTL are discarded on load."""

    def __init__(self, ttl_seconds: int = SNAPSHOT_TTL_SECONDS, clock: Clock | None = None) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or utc_now

    def _is_expired(self, snapshot: SessionSnapshot) -> bool:
        return self._clock() - snapshot.saved_at > self._ttl


class InMemorySnapshotStore(_ExpiringSnapshotStore):
    """Process-local store, used by tests and single-run deployments."""

    def __init__(self, ttl_seconds: int = SNAPSHOT_TTL_SECONDS, clock: Clock | None = None) -> None:
        super().__init__(ttl_seconds, clock)
        self._lock = Lock()
        self._snapshots: dict[str, dict] = {}

    def save(self, candidate_id: str, snapshot: SessionSnapshot) -> None:
        # Stored as plain data so later mutation of the live session cannot leak in.
        with self._lock:
            self._snapshots[candidate_id] = snapshot.to_dict()

    def load(self, candidate_id: str) -> SessionSnapshot | None:
        with self._lock:
            data = self._snapshots.get(candidate_id)
            if data is None:
                return None
            snapshot = SessionSnapshot.from_dict(data)
            if self._is_expired(snapshot):
                logger.info("Discarding expired snapshot for candidate %s", candidate_id)
                del self._snapshots[candidate_id]
                return None
            return snapshot

    def clear(self, candidate_id: str) -> None:
        with self._lock:
            self._snapshots.pop(candidate_id, None)


_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class JsonFileSnapshotStore(_ExpiringSnapshotStore):
    """One JSON document per candidate inside ``directory``."""

    def __init__(
        self,
        directory: Path,
        ttl_seconds: int = SNAPSHOT_TTL_SECONDS,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(ttl_seconds, clock)
        self._directory = Path(directory)
        self._lock = Lock()

    def _path_for(self, candidate_id: str) -> Path:
        safe_id = _UNSAFE_FILENAME_CHARS.sub("_", candidate_id)
        return self._directory / f"exam_state_{safe_id}.json"

    def save(self, candidate_id: str, snapshot: SessionSnapshot) -> None:
        path = self._path_for(candidate_id)
        tmp_path = path.with_suffix(".json.tmp")
        with self._lock:
            try:
                self._directory.mkdir(parents=True, exist_ok=True)
                tmp_path.write_text(json.dumps(snapshot.to_dict()), encoding="utf-8")
                os.replace(tmp_path, path)
            except OSError as exc:
                raise PersistenceError(f"Could not save exam state: {exc}") from exc

    def load(self, candidate_id: str) -> SessionSnapshot | None:
        path = self._path_for(candidate_id)
        with self._lock:
            if not path.exists():
                return None
            try:
                snapshot = SessionSnapshot.from_dict(json.loads(path.read_text(encoding="utf-8")))
            except (OSError, ValueError, KeyError, TypeError) as exc:
                logger.warning("Discarding unreadable snapshot for candidate %s: %s", candidate_id, exc)
                path.unlink(missing_ok=True)
                return None
            if self._is_expired(snapshot):
                logger.info("Discarding expired snapshot for candidate %s", candidate_id)
                path.unlink(missing_ok=True)
                return None
            return snapshot

    def clear(self, candidate_id: str) -> None:
        with self._lock:
            try:
                self._path_for(candidate_id).unlink(missing_ok=True)
            except OSError as exc:
                raise PersistenceError(f"Could not clear exam state: {exc}") from exc
