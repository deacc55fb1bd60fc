"""Storage for finished exam results."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from threading import Lock
from typing import Protocol
from uuid import uuid4

from exam_app.core.errors import PersistenceError
from exam_app.core.models import Result

logger = logging.getLogger(__name__)


class ResultStore(Protocol):
    def save_result(self, result: Result) -> str:
        """Persist ``result`` and return its generated id; raise PersistenceError on failure."""
        ...


class InMemoryResultStore:
    def __init__(self) -> None:
        self._lock = Lock()
        self._results: dict[str, dict] = {}

    def save_result(self, result: Result) -> str:
        result_id = uuid4().hex
        data = result.to_dict()
        data["result_id"] = result_id
        with self._lock:
            self._results[result_id] = data
        return result_id

    def get_result(self, result_id: str) -> Result | None:
        with self._lock:
            data = self._results.get(result_id)
        return Result.from_dict(data) if data is not None else None

    def list_results(self, archived: bool | None = None) -> list[Result]:
        with self._lock:
            results = [Result.from_dict(data) for data in self._results.values()]
        if archived is not None:
            results = [r for r in results if r.is_archived == archived]
        return sorted(results, key=lambda r: r.submitted_at, reverse=True)

    def archive_result(self, result_id: str) -> None:
        with self._lock:
            if result_id not in self._results:
                raise KeyError(f"Unknown result {result_id}")
            self._results[result_id]["is_archived"] = True


class JsonResultStore:
    """One JSON document per result inside ``directory``."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)
        self._lock = Lock()

    def _path_for(self, result_id: str) -> Path:
        return self._directory / f"{result_id}.json"

    def _write(self, path: Path, data: dict) -> None:
        tmp_path = path.with_suffix(".json.tmp")
        self._directory.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.replace(tmp_path, path)

    def save_result(self, result: Result) -> str:
        result_id = uuid4().hex
        data = result.to_dict()
        data["result_id"] = result_id
        with self._lock:
            try:
                self._write(self._path_for(result_id), data)
            except OSError as exc:
                raise PersistenceError(f"Could not save exam result: {exc}") from exc
        logger.info("Stored result %s for candidate %s", result_id, result.candidate_id)
        return result_id

    def get_result(self, result_id: str) -> Result | None:
        path = self._path_for(result_id)
        with self._lock:
            if not path.exists():
                return None
            return Result.from_dict(json.loads(path.read_text(encoding="utf-8")))

    def list_results(self, archived: bool | None = None) -> list[Result]:
        with self._lock:
            if not self._directory.exists():
                return []
            results = [
                Result.from_dict(json.loads(path.read_text(encoding="utf-8")))
                for path in self._directory.glob("*.json")
            ]
        if archived is not None:
            results = [r for r in results if r.is_archived == archived]
        return sorted(results, key=lambda r: r.submitted_at, reverse=True)

    def archive_result(self, result_id: str) -> None:
        path = self._path_for(result_id)
        with self._lock:
            if not path.exists():
                raise KeyError(f"Unknown result {result_id}")
            data = json.loads(path.read_text(encoding="utf-8"))
            data["is_archived"] = True
            try:
                self._write(path, data)
            except OSError as exc:
                raise PersistenceError(f"Could not archive exam result: {exc}") from exc
