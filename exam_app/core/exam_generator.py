"""Draws a randomized exam from a question pool."""

from __future__ import annotations

import logging
import random
from typing import Sequence

from exam_app.constants.exam_constants import DEFAULT_SAMPLE_SIZE
from exam_app.core.errors import EmptyPoolError
from exam_app.core.models import GeneratedExam, GeneratedQuestion, Question

logger = logging.getLogger(__name__)


class ExamGenerator:
    """Samples questions without replacement and shuffles their options."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def set_seed(self, seed: int | None) -> None:
        self._rng.seed(seed)

    def generate(
        self,
        question_pool: Sequence[Question],
        sample_size: int = DEFAULT_SAMPLE_SIZE,
        exam_type_id: int | None = None,
    ) -> GeneratedExam:
        if not question_pool:
            raise EmptyPoolError("Question pool is empty.")
        if sample_size <= 0:
            raise ValueError("Sample size must be a positive integer.")

        count = min(sample_size, len(question_pool))
        selected = self._rng.sample(list(question_pool), count)
        questions = [self._shuffle_question(question) for question in selected]

        type_id = exam_type_id if exam_type_id is not None else selected[0].exam_type_id
        logger.info(
            "Generated exam for type %s with %d of %d pooled questions",
            type_id,
            count,
            len(question_pool),
        )
        return GeneratedExam(exam_type_id=type_id, questions=questions)

    def _shuffle_question(self, question: Question) -> GeneratedQuestion:
        _validate_question(question)

        combined = list(zip(question.options, range(len(question.options))))
        self._rng.shuffle(combined)
        shuffled_options = [item[0] for item in combined]
        option_order = [item[1] for item in combined]

        # Map each authored correct index to its displayed position.
        correct_indices = sorted(option_order.index(index) for index in set(question.correct_indices))

        return GeneratedQuestion(
            question_id=question.id,
            prompt=question.prompt,
            options=shuffled_options,
            correct_indices=correct_indices,
            option_order=option_order,
            is_multiple_choice=question.is_multiple_choice,
            time_limit_seconds=question.time_limit_seconds,
        )


def _validate_question(question: Question) -> None:
    if not isinstance(question.options, (list, tuple)) or len(question.options) < 2:
        raise ValueError(f"Question {question.id} has invalid or missing options array.")
    if not question.correct_indices:
        raise ValueError(f"Question {question.id} has no correct answer.")
    for index in question.correct_indices:
        if not 0 <= index < len(question.options):
            raise ValueError(
                f"Question {question.id} marks option {index} correct but has only "
                f"{len(question.options)} options."
            )
