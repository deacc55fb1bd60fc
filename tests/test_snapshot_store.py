"""
Unit Tests for snapshot stores

In-memory and JSON file stores share expiry and idempotent clear semantics.
"""

import pytest

from exam_app.core.models import ExamType, GeneratedExam, GeneratedQuestion, SessionSnapshot
from exam_app.core.services.snapshot_store import InMemorySnapshotStore, JsonFileSnapshotStore

from conftest import FakeClock


def _snapshot(clock: FakeClock, index: int = 0) -> SessionSnapshot:
    question = GeneratedQuestion(
        question_id=7,
        prompt="Q?",
        options=["x", "y"],
        correct_indices=[1],
        option_order=[1, 0],
        is_multiple_choice=False,
        time_limit_seconds=30,
    )
    multi = GeneratedQuestion(
        question_id=8,
        prompt="Pick two",
        options=["a", "b", "c"],
        correct_indices=[0, 2],
        option_order=[0, 1, 2],
        is_multiple_choice=True,
        time_limit_seconds=45,
    )
    return SessionSnapshot(
        exam=GeneratedExam(exam_type_id=1, questions=[question, multi]),
        exam_type=ExamType(id=1, name="Trainee", passing_threshold=50.0),
        current_index=index,
        answers={7: 1, 8: [0, 2]},
        time_remaining=12,
        saved_at=clock(),
    )


@pytest.fixture(params=["memory", "json"])
def store_and_clock(request, tmp_path):
    clock = FakeClock()
    if request.param == "memory":
        return InMemorySnapshotStore(clock=clock), clock
    return JsonFileSnapshotStore(tmp_path / "snapshots", clock=clock), clock


class TestSnapshotStore:
    """Behaviour shared by every snapshot store."""

    def test_load_when_nothing_saved_then_none(self, store_and_clock):
        store, _clock = store_and_clock
        assert store.load("nobody") is None

    def test_save_then_load_returns_same_state(self, store_and_clock):
        store, clock = store_and_clock
        store.save("cand-1", _snapshot(clock, index=1))
        loaded = store.load("cand-1")
        assert loaded.current_index == 1
        assert loaded.answers == {7: 1, 8: [0, 2]}
        assert loaded.time_remaining == 12
        assert loaded.exam.questions[1].correct_indices == [0, 2]

    def test_save_is_last_write_wins(self, store_and_clock):
        store, clock = store_and_clock
        store.save("cand-1", _snapshot(clock, index=0))
        store.save("cand-1", _snapshot(clock, index=1))
        assert store.load("cand-1").current_index == 1

    def test_clear_twice_is_noop_and_load_returns_none(self, store_and_clock):
        """clear is idempotent and safe without a snapshot."""
        store, clock = store_and_clock
        store.save("cand-1", _snapshot(clock))
        store.clear("cand-1")
        store.clear("cand-1")
        assert store.load("cand-1") is None

    def test_clear_when_never_saved_then_noop(self, store_and_clock):
        store, _clock = store_and_clock
        store.clear("ghost")

    def test_load_when_older_than_an_hour_then_discarded(self, store_and_clock):
        """Stale snapshots are never resumed."""
        store, clock = store_and_clock
        store.save("cand-1", _snapshot(clock))
        clock.advance(3601)
        assert store.load("cand-1") is None
        clock.advance(-3601)
        assert store.load("cand-1") is None

    def test_load_when_within_window_then_resumed(self, store_and_clock):
        store, clock = store_and_clock
        store.save("cand-1", _snapshot(clock))
        clock.advance(3599)
        assert store.load("cand-1") is not None

    def test_snapshots_are_isolated_per_candidate(self, store_and_clock):
        store, clock = store_and_clock
        store.save("a", _snapshot(clock, index=0))
        store.save("b", _snapshot(clock, index=1))
        store.clear("a")
        assert store.load("a") is None
        assert store.load("b").current_index == 1


class TestJsonFileSnapshotStore:
    def test_load_when_file_corrupt_then_removed_and_none(self, tmp_path):
        store = JsonFileSnapshotStore(tmp_path)
        path = tmp_path / "exam_state_cand-1.json"
        path.write_text("{not json", encoding="utf-8")
        assert store.load("cand-1") is None
        assert not path.exists()

    def test_candidate_id_is_sanitized_for_file_name(self, tmp_path):
        clock = FakeClock()
        store = JsonFileSnapshotStore(tmp_path, clock=clock)
        store.save("../evil/id", _snapshot(clock))
        assert [p.name for p in tmp_path.iterdir()] == ["exam_state_.._evil_id.json"]
        assert store.load("../evil/id") is not None
