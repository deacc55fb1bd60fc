"""State machine for a single candidate's exam attempt.

Three event sources can end the question loop: the candidate pressing Next
on the last question, the countdown expiring, and the integrity monitor.
All of them go through :meth:`ExamSession._submit`, which hands the answers
to the :class:`SubmissionEngine` and its at-most-once lock.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from threading import RLock

from exam_app.constants.exam_constants import DEFAULT_SAMPLE_SIZE, NO_ANSWER
from exam_app.core.errors import (
    AuthorizationError,
    EmptyPoolError,
    InvalidTransitionError,
    PersistenceError,
)
from exam_app.core.exam_generator import ExamGenerator
from exam_app.core.models import (
    AnswerValue,
    Candidate,
    ExamType,
    GeneratedExam,
    GeneratedQuestion,
    Question,
    Result,
    SessionSnapshot,
    SessionState,
    ViolationKind,
)
from exam_app.core.scoring import is_answered
from exam_app.core.services.authorization import AuthorizationService
from exam_app.core.services.catalog import CatalogService
from exam_app.core.services.countdown import CountdownScheduler, ThreadingTicker, Ticker
from exam_app.core.services.integrity_monitor import IntegrityMonitor
from exam_app.core.services.notifications import (
    NotificationSink,
    ViolationEvent,
    deliver_notification,
)
from exam_app.core.services.result_store import ResultStore
from exam_app.core.services.snapshot_store import SnapshotStore
from exam_app.core.services.submission import SubmissionEngine

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SessionView:
    """Consistent read of a session taken under its lock."""

    state: SessionState
    exam_type: ExamType | None
    question_index: int
    question_count: int
    question: GeneratedQuestion | None
    answer: AnswerValue | None
    can_advance: bool
    time_remaining: int
    violation: ViolationKind | None
    submission_error: PersistenceError | None
    result: Result | None


class ExamSession:
    """Runs one attempt: type selection, token gate, timed questions, submission."""

    def __init__(
        self,
        candidate: Candidate,
        catalog: CatalogService,
        authorizer: AuthorizationService,
        snapshot_store: SnapshotStore,
        result_store: ResultStore,
        notifier: NotificationSink | None = None,
        ticker: Ticker | None = None,
        generator: ExamGenerator | None = None,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
    ) -> None:
        self._lock = RLock()
        self._candidate = candidate
        self._catalog = catalog
        self._authorizer = authorizer
        self._snapshot_store = snapshot_store
        self._notifier = notifier
        self._generator = generator or ExamGenerator()
        self._sample_size = sample_size

        self._state = SessionState.TYPE_SELECTION
        self._pending_exam_type: ExamType | None = None
        self._exam_type: ExamType | None = None
        self._exam: GeneratedExam | None = None
        self._index: int = 0
        self._answers: dict[int, AnswerValue] = {}
        self._result: Result | None = None
        self._submission_error: PersistenceError | None = None

        self._submission = SubmissionEngine(result_store, snapshot_store, notifier)
        self._countdown = CountdownScheduler(
            ticker or ThreadingTicker(),
            on_expired=self.handle_timeout,
            on_tick=self._on_tick,
        )
        self._integrity = IntegrityMonitor(self._handle_violation)

    # --- Queries ---

    @property
    def candidate(self) -> Candidate:
        return self._candidate

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def exam_type(self) -> ExamType | None:
        return self._exam_type or self._pending_exam_type

    @property
    def exam(self) -> GeneratedExam | None:
        return self._exam

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def question_count(self) -> int:
        return len(self._exam) if self._exam is not None else 0

    @property
    def current_question(self) -> GeneratedQuestion | None:
        if self._exam is None or self._state is not SessionState.IN_PROGRESS:
            return None
        return self._exam.questions[self._index]

    @property
    def answers(self) -> dict[int, AnswerValue]:
        with self._lock:
            return {
                qid: list(value) if isinstance(value, list) else value
                for qid, value in self._answers.items()
            }

    @property
    def time_remaining(self) -> int:
        return self._countdown.remaining if self._state is SessionState.IN_PROGRESS else 0

    @property
    def result(self) -> Result | None:
        return self._result

    @property
    def submission_error(self) -> PersistenceError | None:
        return self._submission_error

    @property
    def violation(self) -> ViolationKind | None:
        return self._integrity.violation

    @property
    def integrity_monitor(self) -> IntegrityMonitor:
        return self._integrity

    @property
    def countdown(self) -> CountdownScheduler:
        return self._countdown

    def current_answer(self) -> AnswerValue | None:
        with self._lock:
            question = self.current_question
            if question is None:
                return None
            value = self._answers.get(question.question_id)
            return list(value) if isinstance(value, list) else value

    def can_advance(self) -> bool:
        with self._lock:
            question = self.current_question
            return question is not None and is_answered(self._answers.get(question.question_id))

    def view(self) -> SessionView:
        """Read every displayed field in one step so ticks cannot interleave."""
        with self._lock:
            return SessionView(
                state=self._state,
                exam_type=self.exam_type,
                question_index=self._index,
                question_count=self.question_count,
                question=self.current_question,
                answer=self.current_answer(),
                can_advance=self.can_advance(),
                time_remaining=self.time_remaining,
                violation=self.violation,
                submission_error=self._submission_error,
                result=self._result,
            )

    def list_exam_types(self) -> list[ExamType]:
        return self._catalog.list_exam_types()

    # --- Transitions ---

    def recover(self) -> bool:
        """Resume from a stored snapshot; return True when a session was restored."""
        with self._lock:
            if self._state is not SessionState.TYPE_SELECTION:
                return False
            candidate_id = self._candidate.candidate_id
            try:
                snapshot = self._snapshot_store.load(candidate_id)
            except PersistenceError as exc:
                logger.warning("Could not read snapshot for %s: %s", candidate_id, exc)
                return False
            if snapshot is None:
                return False
            if not snapshot.exam.questions or not 0 <= snapshot.current_index < len(snapshot.exam):
                logger.warning("Discarding inconsistent snapshot for %s", candidate_id)
                self._clear_snapshot()
                return False

            self._exam_type = snapshot.exam_type
            self._exam = snapshot.exam
            self._index = snapshot.current_index
            self._answers = dict(snapshot.answers)
            self._state = SessionState.IN_PROGRESS
            self._integrity.arm()
            self._countdown.start(snapshot.time_remaining)
            logger.info(
                "Recovered %s exam for %s at question %d/%d",
                snapshot.exam_type.name,
                candidate_id,
                self._index + 1,
                len(snapshot.exam),
            )
            return True

    def select_exam_type(self, exam_type_id: int) -> SessionState:
        with self._lock:
            self._require_state(SessionState.TYPE_SELECTION)
            exam_type = self._catalog.get_exam_type(exam_type_id)
            if self._candidate.privileged:
                logger.info("Privileged candidate %s skips token gate", self._candidate.candidate_id)
                self._start_exam(exam_type)
            else:
                self._pending_exam_type = exam_type
                self._state = SessionState.AWAITING_AUTHORIZATION
                logger.info(
                    "Candidate %s selected %s; awaiting token",
                    self._candidate.candidate_id,
                    exam_type.name,
                )
            return self._state

    def cancel_authorization(self) -> None:
        with self._lock:
            self._require_state(SessionState.AWAITING_AUTHORIZATION)
            self._pending_exam_type = None
            self._state = SessionState.TYPE_SELECTION

    def authorize(self, token: str) -> SessionState:
        with self._lock:
            self._require_state(SessionState.AWAITING_AUTHORIZATION)
            cleaned = (token or "").strip()
            if not cleaned:
                raise AuthorizationError("Please enter an access token.")

            exam_type = self._pending_exam_type
            if exam_type is None:
                raise InvalidTransitionError("Select an exam type before entering a token.")
            # Load the pool first so an empty exam type does not burn the token.
            pool = self._catalog.list_questions(exam_type.id)
            if not pool:
                raise EmptyPoolError(f"No questions are available for {exam_type.name}.")

            outcome = self._authorizer.verify_and_consume_token(
                cleaned, self._candidate.candidate_id, exam_type.id
            )
            if not outcome.success:
                logger.info("Token rejected for %s: %s", self._candidate.candidate_id, outcome.error)
                raise AuthorizationError(outcome.error or "Invalid token. Check it and try again.")

            self._start_exam(exam_type, pool)
            return self._state

    def select_option(self, option_index: int) -> AnswerValue:
        """Select (single-choice) or toggle (multi-choice) an option of the current question."""
        with self._lock:
            self._require_state(SessionState.IN_PROGRESS)
            question = self._exam.questions[self._index]
            if not 0 <= option_index < len(question.options):
                raise ValueError(f"Option index {option_index} out of range")

            qid = question.question_id
            if question.is_multiple_choice:
                previous = self._answers.get(qid)
                selected = list(previous) if isinstance(previous, list) else []
                if option_index in selected:
                    selected.remove(option_index)
                else:
                    selected.append(option_index)
                self._answers[qid] = selected
            else:
                self._answers[qid] = option_index

            self._save_snapshot()
            value = self._answers[qid]
            return list(value) if isinstance(value, list) else value

    def next(self) -> SessionState:
        """Manual advance. Raises if the current question is unanswered."""
        with self._lock:
            if self._state in (SessionState.SUBMITTING, SessionState.COMPLETED):
                logger.info("Ignoring Next for %s in state %s", self._candidate.candidate_id, self._state.value)
                return self._state
            self._require_state(SessionState.IN_PROGRESS)
            if not self.can_advance():
                raise InvalidTransitionError("Select an answer before continuing.")
            self._advance()
            if self._submission_error is not None:
                raise self._submission_error
            return self._state

    def handle_timeout(self, period: int | None = None) -> None:
        """Countdown expiry: record NO_ANSWER if needed and take the Next path.

        ``period`` is the countdown period that expired. An expiry whose
        question was already left through Next is dropped.
        """
        with self._lock:
            if self._state is not SessionState.IN_PROGRESS:
                return
            if period is not None and period != self._countdown.period:
                logger.debug("Dropping stale expiry for %s", self._candidate.candidate_id)
                return
            question = self._exam.questions[self._index]
            if not is_answered(self._answers.get(question.question_id)):
                self._answers[question.question_id] = NO_ANSWER
            logger.info(
                "Time expired for %s on question %d/%d",
                self._candidate.candidate_id,
                self._index + 1,
                len(self._exam),
            )
            self._advance()

    def report_violation(self, kind: ViolationKind) -> bool:
        return self._integrity.report(kind)

    def retry_submission(self) -> Result | None:
        with self._lock:
            if self._state is SessionState.COMPLETED:
                return self._result
            self._require_state(SessionState.SUBMITTING)
            self._attempt_submission()
            if self._submission_error is not None:
                raise self._submission_error
            return self._result

    def close(self) -> None:
        """Stop timers and monitoring when the candidate navigates away.

        The snapshot is left in place so the attempt can be recovered.
        """
        with self._lock:
            self._countdown.stop()
            self._integrity.disarm()

    # --- Internals ---

    def _require_state(self, *allowed: SessionState) -> None:
        if self._state not in allowed:
            expected = ", ".join(state.value for state in allowed)
            raise InvalidTransitionError(
                f"Operation requires state {expected}; session is {self._state.value}."
            )

    def _start_exam(self, exam_type: ExamType, pool: list[Question] | None = None) -> None:
        if pool is None:
            pool = self._catalog.list_questions(exam_type.id)
        exam = self._generator.generate(pool, self._sample_size, exam_type_id=exam_type.id)

        self._exam_type = exam_type
        self._pending_exam_type = None
        self._exam = exam
        self._index = 0
        self._answers = {}
        self._state = SessionState.IN_PROGRESS
        self._integrity.arm()
        self._countdown.start(exam.questions[0].time_limit_seconds)
        self._save_snapshot()
        logger.info(
            "Started %s exam for %s with %d questions",
            exam_type.name,
            self._candidate.candidate_id,
            len(exam),
        )

    def _advance(self) -> None:
        if self._index >= len(self._exam) - 1:
            self._submit()
            return
        self._index += 1
        self._countdown.restart(self._exam.questions[self._index].time_limit_seconds)
        self._save_snapshot()

    def _handle_violation(self, kind: ViolationKind) -> None:
        with self._lock:
            if self._state is not SessionState.IN_PROGRESS:
                return
            self._clear_snapshot()
            for question in self._exam.questions:
                if not is_answered(self._answers.get(question.question_id)):
                    self._answers[question.question_id] = NO_ANSWER
            event = ViolationEvent(
                candidate_id=self._candidate.candidate_id,
                display_name=self._candidate.display_name,
                exam_type_name=self._exam_type.name,
                kind=kind,
                email=self._candidate.email,
            )
            self._submit()
        # The penalized attempt is stored before the alert goes out.
        deliver_notification(self._notifier, event)

    def _submit(self) -> None:
        self._state = SessionState.SUBMITTING
        self._countdown.stop()
        self._integrity.disarm()
        self._attempt_submission()

    def _attempt_submission(self) -> None:
        try:
            result = self._submission.submit(
                self._candidate, self._answers, self._exam, self._exam_type
            )
        except PersistenceError as exc:
            self._submission_error = exc
            return
        self._submission_error = None
        if result is not None:
            self._result = result
            self._state = SessionState.COMPLETED
            logger.info("Exam completed for %s", self._candidate.candidate_id)

    def _on_tick(self, remaining: int) -> None:
        with self._lock:
            self._save_snapshot()

    def _save_snapshot(self) -> None:
        # Writes arriving after the loop has ended must not resurrect the attempt.
        if self._state is not SessionState.IN_PROGRESS:
            return
        snapshot = SessionSnapshot(
            exam=self._exam,
            exam_type=self._exam_type,
            current_index=self._index,
            answers=dict(self._answers),
            time_remaining=self._countdown.remaining,
        )
        try:
            self._snapshot_store.save(self._candidate.candidate_id, snapshot)
        except PersistenceError as exc:
            logger.warning("Snapshot not saved for %s: %s", self._candidate.candidate_id, exc)

    def _clear_snapshot(self) -> None:
        try:
            self._snapshot_store.clear(self._candidate.candidate_id)
        except PersistenceError as exc:
            logger.warning("Could not clear snapshot for %s: %s", self._candidate.candidate_id, exc)
