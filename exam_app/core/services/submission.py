"""Scores a finished attempt and persists its result exactly once."""

from __future__ import annotations

import copy
import logging
from threading import Lock
from typing import Mapping

from exam_app.core.errors import PersistenceError
from exam_app.core.models import AnswerValue, Candidate, ExamType, GeneratedExam, Result
from exam_app.core.scoring import calculate_exam_result, is_passed
from exam_app.core.services.notifications import (
    NotificationSink,
    SubmissionEvent,
    deliver_notification,
)
from exam_app.core.services.result_store import ResultStore
from exam_app.core.services.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


class SubmissionEngine:
    """Owns the submission lock for one session.

    The lock is taken without blocking: a caller that finds it held, or finds
    the result already persisted, returns ``None`` without side effects. A
    failed save releases the lock but keeps the scored result so a retry
    persists the same answers.
    """

    def __init__(
        self,
        result_store: ResultStore,
        snapshot_store: SnapshotStore,
        notifier: NotificationSink | None = None,
    ) -> None:
        self._result_store = result_store
        self._snapshot_store = snapshot_store
        self._notifier = notifier
        self._lock = Lock()
        self._pending: Result | None = None
        self._completed: Result | None = None

    @property
    def pending_result(self) -> Result | None:
        return self._pending

    @property
    def completed_result(self) -> Result | None:
        return self._completed

    def is_completed(self) -> bool:
        return self._completed is not None

    def is_locked(self) -> bool:
        return self._lock.locked()

    def submit(
        self,
        candidate: Candidate,
        answers: Mapping[int, AnswerValue],
        exam: GeneratedExam,
        exam_type: ExamType,
    ) -> Result | None:
        if not self._lock.acquire(blocking=False):
            logger.info("Submission already in progress for %s; ignoring", candidate.candidate_id)
            return None
        try:
            if self._completed is not None:
                logger.info("Result already stored for %s; ignoring", candidate.candidate_id)
                return None

            result = self._pending
            if result is None:
                result = self._score(candidate, answers, exam, exam_type)
                self._pending = result

            try:
                result.result_id = self._result_store.save_result(result)
            except PersistenceError:
                logger.warning("Could not store result for %s; retry is possible", candidate.candidate_id)
                raise

            self._completed = result
            self._pending = None
            logger.info(
                "Stored result %s for %s: %d/%d (%.2f%%) %s",
                result.result_id,
                candidate.candidate_id,
                result.score,
                result.total_questions,
                result.percentage,
                "passed" if result.passed else "failed",
            )
        finally:
            self._lock.release()

        self._clear_snapshot(candidate.candidate_id)
        deliver_notification(
            self._notifier,
            SubmissionEvent(
                candidate_id=candidate.candidate_id,
                display_name=candidate.display_name,
                exam_type_name=exam_type.name,
                score=result.score,
                total=result.total_questions,
                percentage=result.percentage,
                passed=result.passed,
                passing_threshold=exam_type.passing_threshold,
                result_id=result.result_id,
            ),
        )
        return result

    def _score(
        self,
        candidate: Candidate,
        answers: Mapping[int, AnswerValue],
        exam: GeneratedExam,
        exam_type: ExamType,
    ) -> Result:
        frozen_answers = copy.deepcopy(dict(answers))
        exam_score = calculate_exam_result(frozen_answers, exam)
        return Result(
            candidate_id=candidate.candidate_id,
            exam_type_id=exam_type.id,
            score=exam_score.score,
            total_questions=exam_score.total,
            percentage=exam_score.percentage,
            passed=is_passed(exam_score.percentage, exam_type.passing_threshold),
            passing_threshold=exam_type.passing_threshold,
            answers=frozen_answers,
            exam=GeneratedExam.from_dict(exam.to_dict()),
            details=exam_score.details,
        )

    def _clear_snapshot(self, candidate_id: str) -> None:
        try:
            self._snapshot_store.clear(candidate_id)
        except PersistenceError as exc:
            logger.warning("Could not clear snapshot for %s: %s", candidate_id, exc)
