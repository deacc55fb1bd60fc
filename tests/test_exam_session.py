"""
Unit Tests for ExamSession

State transitions, countdown handling, integrity violations, submission and
recovery, driven through a manual ticker.
"""

import time
from threading import Thread

import pytest

from exam_app.constants.exam_constants import NO_ANSWER
from exam_app.core.errors import (
    AuthorizationError,
    EmptyPoolError,
    InvalidTransitionError,
    PersistenceError,
)
from exam_app.core.models import SessionState, ViolationKind
from exam_app.core.services.notifications import SubmissionEvent, ViolationEvent

from conftest import EMPTY, MULTI, SENIOR, TRAINEE, FlakyResultStore, correct_answer, wrong_answer


def _answer_current(session, correct: bool = True) -> None:
    question = session.current_question
    if question.is_multiple_choice:
        for index in correct_answer(question):
            session.select_option(index)
    else:
        session.select_option(correct_answer(question) if correct else wrong_answer(question))


def _finish(session, correct_count: int) -> None:
    for index in range(session.question_count):
        _answer_current(session, correct=index < correct_count)
        session.next()


class TestTypeSelectionAndAuthorization:
    """TypeSelection -> AwaitingAuthorization -> InProgress."""

    def test_select_exam_type_awaits_token(self, make_session):
        session = make_session()
        assert session.select_exam_type(TRAINEE.id) is SessionState.AWAITING_AUTHORIZATION
        assert session.exam_type == TRAINEE
        assert session.exam is None

    def test_privileged_candidate_skips_token_gate(self, started_session, ticker):
        assert started_session.state is SessionState.IN_PROGRESS
        assert started_session.question_count == 10
        assert ticker.active
        assert started_session.integrity_monitor.is_armed()

    def test_valid_token_starts_exam_and_is_consumed(self, make_session, authorizer, candidate):
        token = authorizer.issue_token(candidate.candidate_id, TRAINEE.id, created_by="admin")
        session = make_session()
        session.select_exam_type(TRAINEE.id)
        assert session.authorize(token.token) is SessionState.IN_PROGRESS
        assert session.time_remaining == session.current_question.time_limit_seconds
        assert authorizer.list_tokens()[0].used

    def test_consumed_token_is_rejected_and_state_unchanged(self, make_session, authorizer, candidate):
        """A token already used by a prior attempt does not verify again."""
        token = authorizer.issue_token(candidate.candidate_id, TRAINEE.id, created_by="admin")
        assert authorizer.verify_and_consume_token(token.token, candidate.candidate_id, TRAINEE.id).success

        session = make_session()
        session.select_exam_type(TRAINEE.id)
        with pytest.raises(AuthorizationError, match="already been used"):
            session.authorize(token.token)
        assert session.state is SessionState.AWAITING_AUTHORIZATION

    def test_token_for_other_exam_type_is_rejected(self, make_session, authorizer, candidate):
        token = authorizer.issue_token(candidate.candidate_id, SENIOR.id, created_by="admin")
        session = make_session()
        session.select_exam_type(TRAINEE.id)
        with pytest.raises(AuthorizationError):
            session.authorize(token.token)
        assert session.state is SessionState.AWAITING_AUTHORIZATION
        assert not authorizer.list_tokens()[0].used

    def test_blank_token_is_rejected(self, make_session):
        session = make_session()
        session.select_exam_type(TRAINEE.id)
        with pytest.raises(AuthorizationError):
            session.authorize("   ")

    def test_cancel_returns_to_type_selection(self, make_session):
        session = make_session()
        session.select_exam_type(TRAINEE.id)
        session.cancel_authorization()
        assert session.state is SessionState.TYPE_SELECTION
        assert session.exam_type is None

    def test_empty_pool_does_not_consume_token(self, make_session, authorizer, candidate):
        token = authorizer.issue_token(candidate.candidate_id, EMPTY.id, created_by="admin")
        session = make_session()
        session.select_exam_type(EMPTY.id)
        with pytest.raises(EmptyPoolError):
            session.authorize(token.token)
        assert session.state is SessionState.AWAITING_AUTHORIZATION
        assert not authorizer.list_tokens()[0].used

    def test_empty_pool_blocks_privileged_start(self, make_session, privileged_candidate):
        session = make_session(candidate=privileged_candidate)
        with pytest.raises(EmptyPoolError):
            session.select_exam_type(EMPTY.id)
        assert session.state is SessionState.TYPE_SELECTION

    def test_unknown_exam_type_raises_key_error(self, make_session):
        with pytest.raises(KeyError):
            make_session().select_exam_type(999)

    def test_authorize_outside_awaiting_state_is_invalid(self, make_session):
        with pytest.raises(InvalidTransitionError):
            make_session().authorize("token")

    def test_authorize_without_selected_type_is_refused(self, make_session):
        session = make_session()
        session.select_exam_type(TRAINEE.id)
        session._pending_exam_type = None
        with pytest.raises(InvalidTransitionError):
            session.authorize("some-token")


class TestAnswering:
    """Option selection and manual advance."""

    def test_single_choice_replaces_previous_selection(self, started_session):
        started_session.select_option(1)
        started_session.select_option(3)
        assert started_session.current_answer() == 3

    def test_multi_choice_toggles_membership(self, make_session, privileged_candidate):
        session = make_session(candidate=privileged_candidate)
        session.select_exam_type(MULTI.id)
        session.select_option(0)
        session.select_option(2)
        session.select_option(0)
        assert session.current_answer() == [2]

    def test_next_without_answer_is_refused(self, started_session):
        assert not started_session.can_advance()
        with pytest.raises(InvalidTransitionError):
            started_session.next()
        assert started_session.current_index == 0

    def test_multi_choice_with_everything_deselected_cannot_advance(self, make_session, privileged_candidate):
        session = make_session(candidate=privileged_candidate)
        session.select_exam_type(MULTI.id)
        session.select_option(1)
        session.select_option(1)
        assert not session.can_advance()

    def test_option_index_out_of_range(self, started_session):
        with pytest.raises(ValueError):
            started_session.select_option(9)

    def test_next_advances_and_resets_timer(self, started_session, ticker):
        ticker.fire(4)
        _answer_current(started_session)
        started_session.next()
        assert started_session.current_index == 1
        assert started_session.time_remaining == started_session.exam.questions[1].time_limit_seconds

    def test_each_mutation_saves_snapshot(self, started_session, snapshot_store, privileged_candidate):
        started_session.select_option(2)
        snapshot = snapshot_store.load(privileged_candidate.candidate_id)
        question_id = started_session.current_question.question_id
        assert snapshot.answers == {question_id: 2}
        assert snapshot.current_index == 0


class TestSessionView:
    def test_view_matches_current_question(self, started_session):
        _answer_current(started_session)
        view = started_session.view()
        assert view.state is SessionState.IN_PROGRESS
        assert view.question_index == 0
        assert view.question == started_session.exam.questions[0]
        assert view.answer == started_session.current_answer()
        assert view.can_advance

    def test_view_waits_for_a_transition_in_progress(self, started_session):
        """A read that starts mid-transition sees the state after it, not a mix."""
        _answer_current(started_session)
        views = []
        worker = Thread(target=lambda: views.append(started_session.view()))
        with started_session._lock:
            worker.start()
            worker.join(timeout=0.05)
            assert views == []
            started_session.next()
        worker.join(timeout=5)

        second = started_session.exam.questions[1]
        assert views[0].question_index == 1
        assert views[0].question == second
        assert views[0].time_remaining == second.time_limit_seconds
        assert views[0].answer is None


class TestCountdown:
    def test_timeout_records_no_answer_and_advances(self, started_session, ticker):
        """The timer reaching zero injects NO_ANSWER and starts the next question's limit."""
        first = started_session.current_question
        ticker.fire(first.time_limit_seconds)

        assert started_session.answers[first.question_id] == NO_ANSWER
        assert started_session.current_index == 1
        next_limit = started_session.exam.questions[1].time_limit_seconds
        assert started_session.time_remaining == next_limit
        ticker.fire(1)
        assert started_session.time_remaining == next_limit - 1

    def test_timeout_keeps_existing_selection(self, started_session, ticker):
        first = started_session.current_question
        started_session.select_option(1)
        ticker.fire(first.time_limit_seconds)
        assert started_session.answers[first.question_id] == 1

    def test_timeouts_on_every_question_submit_zero_score(self, started_session, ticker, result_store):
        for question in list(started_session.exam.questions):
            ticker.fire(question.time_limit_seconds)
        assert started_session.state is SessionState.COMPLETED
        assert started_session.result.score == 0
        assert not ticker.active
        assert len(result_store.list_results()) == 1

    def test_expiry_racing_next_is_not_applied_to_following_question(self, started_session, ticker):
        """An expiry decided for question 1 must not skip question 2 after Next wins the lock."""
        first = started_session.current_question
        ticker.fire(first.time_limit_seconds - 1)
        started_session.select_option(correct_answer(first))

        worker = Thread(target=ticker.fire)
        with started_session._lock:
            worker.start()
            deadline = time.monotonic() + 5
            while started_session.countdown.remaining != 0 and time.monotonic() < deadline:
                time.sleep(0.001)
            started_session.next()
        worker.join(timeout=5)

        second = started_session.exam.questions[1]
        assert started_session.current_index == 1
        assert second.question_id not in started_session.answers
        assert started_session.time_remaining == second.time_limit_seconds

    def test_expiry_from_earlier_period_is_dropped(self, started_session):
        stale_period = started_session.countdown.period
        _answer_current(started_session)
        started_session.next()
        started_session.handle_timeout(stale_period)
        assert started_session.current_index == 1
        assert started_session.current_question.question_id not in started_session.answers


class TestSubmission:
    """Completion through the last Next."""

    def test_half_correct_passes_trainee_threshold(self, started_session, result_store, notifier):
        _finish(started_session, correct_count=5)
        result = started_session.result
        assert started_session.state is SessionState.COMPLETED
        assert result.percentage == 50.0
        assert result.passed
        assert result.passing_threshold == 50.0
        assert [type(e) for e in notifier.events] == [SubmissionEvent]
        assert result_store.get_result(result.result_id) is not None

    def test_seventy_percent_fails_senior_threshold(self, make_session, privileged_candidate):
        session = make_session(candidate=privileged_candidate)
        session.select_exam_type(SENIOR.id)
        _finish(session, correct_count=7)
        assert session.result.percentage == 70.0
        assert not session.result.passed

    def test_completion_clears_snapshot_and_stops_timer(self, started_session, snapshot_store, ticker, privileged_candidate):
        _finish(started_session, correct_count=10)
        assert snapshot_store.load(privileged_candidate.candidate_id) is None
        assert not ticker.active
        assert not started_session.integrity_monitor.is_armed()

    def test_timeout_and_next_on_last_question_store_one_result(self, started_session, ticker, result_store):
        """Exactly one result even if the timer and Next fire together."""
        for _ in range(started_session.question_count - 1):
            _answer_current(started_session)
            started_session.next()
        _answer_current(started_session)
        started_session.next()
        started_session.handle_timeout()
        started_session.countdown.tick()
        assert started_session.next() is SessionState.COMPLETED
        assert len(result_store.list_results()) == 1

    def test_failed_save_is_retryable_without_reanswering(self, make_session, privileged_candidate, ticker):
        store = FlakyResultStore(failures=1)
        session = make_session(candidate=privileged_candidate, result_store=store)
        session.select_exam_type(TRAINEE.id)
        for _ in range(session.question_count - 1):
            _answer_current(session)
            session.next()
        _answer_current(session)

        with pytest.raises(PersistenceError):
            session.next()
        assert session.state is SessionState.SUBMITTING
        assert session.submission_error is not None
        assert not ticker.active

        result = session.retry_submission()
        assert session.state is SessionState.COMPLETED
        assert session.submission_error is None
        assert result.score == 10
        assert len(store.list_results()) == 1

    def test_operations_after_completion_are_refused(self, started_session):
        _finish(started_session, correct_count=10)
        with pytest.raises(InvalidTransitionError):
            started_session.select_option(0)
        assert started_session.current_question is None


class TestIntegrityViolation:
    def test_focus_loss_penalizes_remaining_questions(self, started_session, notifier, snapshot_store, privileged_candidate):
        """3 of 10 answered (2 correct), focus lost: 20%, failed, one alert."""
        _answer_current(started_session, correct=True)
        started_session.next()
        _answer_current(started_session, correct=True)
        started_session.next()
        _answer_current(started_session, correct=False)
        started_session.next()

        assert started_session.report_violation(ViolationKind.FOCUS_LOST)
        assert not started_session.report_violation(ViolationKind.VISIBILITY_LOST)

        result = started_session.result
        assert started_session.state is SessionState.COMPLETED
        assert result.score == 2
        assert result.percentage == 20.0
        assert not result.passed
        assert sum(1 for value in result.answers.values() if value == NO_ANSWER) == 7
        violations = [e for e in notifier.events if isinstance(e, ViolationEvent)]
        assert len(violations) == 1
        assert violations[0].kind is ViolationKind.FOCUS_LOST
        assert violations[0].exam_type_name == TRAINEE.name
        assert snapshot_store.load(privileged_candidate.candidate_id) is None

    def test_violation_counts_only_answers_given_before_it(self, started_session):
        for _ in range(5):
            _answer_current(started_session)
            started_session.next()
        started_session.integrity_monitor.report_visibility_lost()
        assert started_session.result.percentage == 50.0
        assert started_session.violation is ViolationKind.VISIBILITY_LOST

    def test_stray_tick_after_violation_does_not_resubmit(self, started_session, ticker, result_store):
        started_session.report_violation(ViolationKind.VISIBILITY_LOST)
        assert not ticker.active
        started_session.countdown.tick()
        started_session.handle_timeout()
        assert len(result_store.list_results()) == 1

    def test_violation_outside_exam_is_ignored(self, make_session, notifier):
        session = make_session()
        assert not session.report_violation(ViolationKind.FOCUS_LOST)
        assert notifier.events == []

    def test_violation_alert_is_sent_after_result_is_stored(self, make_session, privileged_candidate, result_store):
        seen = []

        class StoreWatchingSink:
            def notify(self, event):
                if isinstance(event, ViolationEvent):
                    seen.append(len(result_store.list_results()))

        session = make_session(candidate=privileged_candidate, notifier=StoreWatchingSink())
        session.select_exam_type(TRAINEE.id)
        session.report_violation(ViolationKind.FOCUS_LOST)
        assert seen == [1]


class TestRecovery:
    def test_recover_resumes_cursor_answers_and_time(self, started_session, make_session, ticker, privileged_candidate):
        _answer_current(started_session)
        started_session.next()
        started_session.select_option(1)
        ticker.fire(5)
        expected_answers = started_session.answers
        expected_remaining = started_session.time_remaining
        started_session.close()
        assert not ticker.active

        resumed = make_session(candidate=privileged_candidate)
        assert resumed.recover()
        assert resumed.state is SessionState.IN_PROGRESS
        assert resumed.current_index == 1
        assert resumed.answers == expected_answers
        assert resumed.time_remaining == expected_remaining
        assert resumed.exam.to_dict() == started_session.exam.to_dict()
        assert ticker.active

    def test_recover_ignores_expired_snapshot(self, started_session, make_session, clock, privileged_candidate):
        started_session.close()
        clock.advance(3601)
        resumed = make_session(candidate=privileged_candidate)
        assert not resumed.recover()
        assert resumed.state is SessionState.TYPE_SELECTION

    def test_recover_without_snapshot_returns_false(self, make_session):
        assert not make_session().recover()

    def test_late_snapshot_write_after_completion_is_ignored(self, started_session, snapshot_store, privileged_candidate):
        _finish(started_session, correct_count=10)
        started_session._on_tick(3)
        assert snapshot_store.load(privileged_candidate.candidate_id) is None
