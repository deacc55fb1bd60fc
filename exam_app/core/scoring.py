"""Answer checking and exam scoring."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from exam_app.constants.exam_constants import NO_ANSWER
from exam_app.core.models import AnswerValue, GeneratedExam, QuestionOutcome


@dataclass(slots=True)
class ExamScore:
    """Raw scoring output before pass/fail is applied."""

    score: int
    total: int
    percentage: float
    details: list[QuestionOutcome] = field(default_factory=list)


def is_answered(value: AnswerValue | None) -> bool:
    """Return True when ``value`` is a real selection rather than a gap or NO_ANSWER."""
    if value is None or value == NO_ANSWER:
        return False
    if isinstance(value, list):
        return len(value) > 0
    return True


def check_answer(
    value: AnswerValue | None,
    correct_indices: list[int],
    is_multiple_choice: bool,
) -> bool:
    """Compare a candidate answer with the correct indices.

    Multi-choice answers must match the correct set exactly, in any order;
    partial selections earn nothing.
    """
    if not is_answered(value):
        return False

    if is_multiple_choice:
        if not isinstance(value, list):
            return False
        return sorted(value) == sorted(correct_indices)

    if isinstance(value, (list, bool)) or not correct_indices:
        return False
    return value == correct_indices[0]


def calculate_exam_result(
    answers: Mapping[int, AnswerValue],
    exam: GeneratedExam,
) -> ExamScore:
    total = len(exam.questions)
    details: list[QuestionOutcome] = []
    correct_count = 0

    for question in exam.questions:
        answer = answers.get(question.question_id, NO_ANSWER)
        is_correct = check_answer(answer, question.correct_indices, question.is_multiple_choice)
        if is_correct:
            correct_count += 1
        details.append(
            QuestionOutcome(
                question_id=question.question_id,
                prompt=question.prompt,
                answer=answer,
                correct_indices=list(question.correct_indices),
                is_correct=is_correct,
                is_timeout=answer == NO_ANSWER,
            )
        )

    percentage = round(correct_count / total * 100, 2) if total else 0.0
    return ExamScore(score=correct_count, total=total, percentage=percentage, details=details)


def is_passed(percentage: float, passing_threshold: float) -> bool:
    return percentage >= passing_threshold
