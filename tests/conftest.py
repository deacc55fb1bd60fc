"""Shared fixtures for the exam engine tests."""

from __future__ import annotations

from datetime import timedelta
import random

import pytest

from exam_app.core.errors import PersistenceError
from exam_app.core.exam_generator import ExamGenerator
from exam_app.core.exam_session import ExamSession
from exam_app.core.models import Candidate, ExamType, GeneratedQuestion, Question, utc_now
from exam_app.core.services.authorization import InMemoryTokenAuthorizer
from exam_app.core.services.catalog import ExamCatalog
from exam_app.core.services.notifications import RecordingNotificationSink
from exam_app.core.services.result_store import InMemoryResultStore
from exam_app.core.services.snapshot_store import InMemorySnapshotStore


TRAINEE = ExamType(id=1, name="Trainee", passing_threshold=50.0)
SENIOR = ExamType(id=2, name="Senior", passing_threshold=75.0)
EMPTY = ExamType(id=3, name="Empty")
MULTI = ExamType(id=4, name="Multi", passing_threshold=50.0)


class ManualTicker:
    """Ticker driven by the test instead of wall-clock time."""

    def __init__(self) -> None:
        self.callback = None
        self.start_count = 0
        self.stop_count = 0

    def start(self, callback) -> None:
        self.callback = callback
        self.start_count += 1

    def stop(self) -> None:
        self.callback = None
        self.stop_count += 1

    @property
    def active(self) -> bool:
        return self.callback is not None

    def fire(self, times: int = 1) -> None:
        for _ in range(times):
            if self.callback is None:
                return
            self.callback()


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self) -> None:
        self.now = utc_now()

    def __call__(self):
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FlakyResultStore(InMemoryResultStore):
    """Fails the first ``failures`` saves with PersistenceError."""

    def __init__(self, failures: int = 1) -> None:
        super().__init__()
        self.failures = failures
        self.attempts = 0

    def save_result(self, result):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise PersistenceError("Result store unavailable")
        return super().save_result(result)


def make_pool(
    exam_type_id: int,
    count: int,
    first_id: int = 1,
    time_limit: int = 30,
    multiple: bool = False,
) -> list[Question]:
    questions = []
    for offset in range(count):
        question_id = first_id + offset
        questions.append(
            Question(
                id=question_id,
                exam_type_id=exam_type_id,
                prompt=f"Question {question_id}?",
                options=[f"right {question_id}", f"wrong {question_id}a", f"other {question_id}", f"wrong {question_id}b"],
                correct_indices=[0, 2] if multiple else [0],
                is_multiple_choice=multiple,
                # Vary limits so a restart to the next question's limit is observable.
                time_limit_seconds=time_limit + offset,
            )
        )
    return questions


def correct_answer(question: GeneratedQuestion):
    if question.is_multiple_choice:
        return list(question.correct_indices)
    return question.correct_indices[0]


def wrong_answer(question: GeneratedQuestion) -> int:
    return next(i for i in range(len(question.options)) if i not in question.correct_indices)


@pytest.fixture
def catalog() -> ExamCatalog:
    catalog = ExamCatalog()
    for exam_type in (TRAINEE, SENIOR, EMPTY, MULTI):
        catalog.add_exam_type(exam_type)
    catalog.load_questions(TRAINEE.id, make_pool(TRAINEE.id, 10, first_id=1))
    catalog.load_questions(SENIOR.id, make_pool(SENIOR.id, 12, first_id=101))
    catalog.load_questions(MULTI.id, make_pool(MULTI.id, 3, first_id=301, multiple=True))
    return catalog


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def authorizer(clock) -> InMemoryTokenAuthorizer:
    return InMemoryTokenAuthorizer(clock=clock)


@pytest.fixture
def snapshot_store(clock) -> InMemorySnapshotStore:
    return InMemorySnapshotStore(clock=clock)


@pytest.fixture
def result_store() -> InMemoryResultStore:
    return InMemoryResultStore()


@pytest.fixture
def notifier() -> RecordingNotificationSink:
    return RecordingNotificationSink()


@pytest.fixture
def ticker() -> ManualTicker:
    return ManualTicker()


@pytest.fixture
def candidate() -> Candidate:
    return Candidate(candidate_id="cand-1", display_name="Casey", email="casey@example.com")


@pytest.fixture
def privileged_candidate() -> Candidate:
    return Candidate(candidate_id="boss", display_name="Supervisor", privileged=True)


@pytest.fixture
def make_session(catalog, authorizer, snapshot_store, result_store, notifier, ticker, candidate):
    """Factory building sessions that share the fixture collaborators."""

    def factory(**overrides) -> ExamSession:
        options = {
            "candidate": candidate,
            "catalog": catalog,
            "authorizer": authorizer,
            "snapshot_store": snapshot_store,
            "result_store": result_store,
            "notifier": notifier,
            "ticker": ticker,
            "generator": ExamGenerator(random.Random(1234)),
        }
        options.update(overrides)
        return ExamSession(**options)

    return factory


@pytest.fixture
def started_session(make_session, privileged_candidate):
    """A privileged session already in progress on the Trainee exam."""
    session = make_session(candidate=privileged_candidate)
    session.select_exam_type(TRAINEE.id)
    return session
