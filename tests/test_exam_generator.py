"""
Unit Tests for ExamGenerator

Sampling without replacement, option shuffling and correct-index remapping.
"""

import random

import pytest

from exam_app.core.errors import EmptyPoolError
from exam_app.core.exam_generator import ExamGenerator
from exam_app.core.models import Question

from conftest import make_pool


class TestExamGenerator:
    """Tests for ExamGenerator.generate."""

    def test_generate_when_pool_empty_then_raises_empty_pool(self):
        """An empty pool cannot produce an exam."""
        with pytest.raises(EmptyPoolError):
            ExamGenerator().generate([], 10)

    def test_generate_when_sample_size_not_positive_then_raises(self):
        with pytest.raises(ValueError):
            ExamGenerator().generate(make_pool(1, 3), 0)

    def test_generate_when_pool_larger_then_samples_requested_count(self):
        """Exactly sample_size distinct questions are drawn."""
        exam = ExamGenerator(random.Random(7)).generate(make_pool(1, 25), 10)
        ids = [q.question_id for q in exam.questions]
        assert len(ids) == 10
        assert len(set(ids)) == 10

    def test_generate_when_pool_smaller_then_uses_whole_pool(self):
        exam = ExamGenerator(random.Random(7)).generate(make_pool(1, 4), 10)
        assert sorted(q.question_id for q in exam.questions) == [1, 2, 3, 4]

    def test_generate_keeps_exam_type_and_time_limits(self):
        pool = make_pool(5, 6, time_limit=20)
        exam = ExamGenerator(random.Random(3)).generate(pool, 6, exam_type_id=5)
        limits = {q.id: q.time_limit_seconds for q in pool}
        assert exam.exam_type_id == 5
        for question in exam.questions:
            assert question.time_limit_seconds == limits[question.question_id]

    @pytest.mark.parametrize("seed", range(20))
    def test_shuffle_never_changes_which_texts_are_correct(self, seed):
        """Option texts at the correct indices match the authored correct texts."""
        pool = make_pool(1, 10) + make_pool(1, 5, first_id=50, multiple=True)
        by_id = {q.id: q for q in pool}
        exam = ExamGenerator(random.Random(seed)).generate(pool, 15)

        for generated in exam.questions:
            original = by_id[generated.question_id]
            expected = {original.options[i] for i in original.correct_indices}
            actual = {generated.options[i] for i in generated.correct_indices}
            assert actual == expected
            assert sorted(generated.options) == sorted(original.options)
            assert [original.options[i] for i in generated.option_order] == generated.options

    def test_generate_twice_then_order_differs(self):
        """Independent draws do not reproduce the same exam."""
        pool = make_pool(1, 10)
        first = ExamGenerator(random.Random(1)).generate(pool, 10)
        second = ExamGenerator(random.Random(2)).generate(pool, 10)
        first_layout = [(q.question_id, q.options) for q in first.questions]
        second_layout = [(q.question_id, q.options) for q in second.questions]
        assert first_layout != second_layout

    def test_generate_does_not_mutate_pool(self):
        pool = make_pool(1, 3)
        before = [list(q.options) for q in pool]
        ExamGenerator(random.Random(9)).generate(pool, 3)
        assert [q.options for q in pool] == before

    def test_generate_when_correct_index_out_of_range_then_raises(self):
        broken = Question(
            id=1,
            exam_type_id=1,
            prompt="?",
            options=["a", "b"],
            correct_indices=[4],
        )
        with pytest.raises(ValueError, match="only 2 options"):
            ExamGenerator().generate([broken], 1)
