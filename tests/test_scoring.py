"""
Unit Tests for scoring

Answer checking, percentage rounding and pass/fail evaluation.
"""

import pytest

from exam_app.constants.exam_constants import NO_ANSWER
from exam_app.core.models import GeneratedExam, GeneratedQuestion
from exam_app.core.scoring import calculate_exam_result, check_answer, is_answered, is_passed


def _exam(count: int) -> GeneratedExam:
    questions = [
        GeneratedQuestion(
            question_id=i + 1,
            prompt=f"Q{i + 1}",
            options=["a", "b", "c", "d"],
            correct_indices=[0],
            option_order=[0, 1, 2, 3],
            is_multiple_choice=False,
            time_limit_seconds=30,
        )
        for i in range(count)
    ]
    return GeneratedExam(exam_type_id=1, questions=questions)


def _answers(exam: GeneratedExam, correct: int) -> dict:
    return {
        q.question_id: (0 if index < correct else 1)
        for index, q in enumerate(exam.questions)
    }


class TestCheckAnswer:
    """Tests for check_answer."""

    def test_single_choice_when_matching_then_correct(self):
        assert check_answer(2, [2], False)

    def test_single_choice_when_different_then_incorrect(self):
        assert not check_answer(1, [2], False)

    def test_no_answer_sentinel_is_always_incorrect(self):
        assert not check_answer(NO_ANSWER, [0], False)
        assert not check_answer(NO_ANSWER, [0, 1], True)

    def test_multi_choice_when_same_set_any_order_then_correct(self):
        assert check_answer([3, 0], [0, 3], True)

    @pytest.mark.parametrize("selection", [[0], [0, 1, 3], [1, 2], []])
    def test_multi_choice_when_subset_superset_or_disjoint_then_incorrect(self, selection):
        """No partial credit for multi-choice questions."""
        assert not check_answer(selection, [0, 3], True)

    def test_single_choice_when_list_given_then_incorrect(self):
        assert not check_answer([0], [0], False)


class TestIsAnswered:
    @pytest.mark.parametrize("value", [None, NO_ANSWER, []])
    def test_gaps_are_unanswered(self, value):
        assert not is_answered(value)

    @pytest.mark.parametrize("value", [0, 3, [1]])
    def test_selections_are_answered(self, value):
        assert is_answered(value)


class TestCalculateExamResult:
    """Tests for calculate_exam_result and is_passed."""

    def test_half_correct_with_threshold_50_passes(self):
        """10 questions, 5 correct, threshold 50 passes."""
        exam = _exam(10)
        score = calculate_exam_result(_answers(exam, 5), exam)
        assert score.score == 5
        assert score.percentage == 50.0
        assert is_passed(score.percentage, 50.0)

    def test_seven_of_ten_with_threshold_75_fails(self):
        exam = _exam(10)
        score = calculate_exam_result(_answers(exam, 7), exam)
        assert score.percentage == 70.0
        assert not is_passed(score.percentage, 75.0)

    def test_percentage_rounded_to_two_decimals(self):
        exam = _exam(3)
        score = calculate_exam_result(_answers(exam, 1), exam)
        assert score.percentage == 33.33

    def test_missing_answers_count_as_timeouts(self):
        exam = _exam(2)
        score = calculate_exam_result({1: 0}, exam)
        assert score.score == 1
        assert [d.is_timeout for d in score.details] == [False, True]
        assert score.details[1].answer == NO_ANSWER

    def test_details_record_each_question(self):
        exam = _exam(2)
        score = calculate_exam_result({1: 0, 2: 3}, exam)
        assert [(d.question_id, d.is_correct) for d in score.details] == [(1, True), (2, False)]
        assert score.details[1].correct_indices == [0]

    def test_empty_exam_scores_zero(self):
        score = calculate_exam_result({}, GeneratedExam(exam_type_id=1, questions=[]))
        assert score.total == 0
        assert score.percentage == 0.0
