"""Exam types and their question pools."""

from __future__ import annotations

from threading import Lock
from typing import Protocol

from exam_app.constants.exam_constants import MAX_OPTION_COUNT, MIN_OPTION_COUNT
from exam_app.core.models import ExamType, Question


class CatalogService(Protocol):
    def list_exam_types(self) -> list[ExamType]: ...

    def get_exam_type(self, exam_type_id: int) -> ExamType: ...

    def list_questions(self, exam_type_id: int) -> list[Question]: ...


class ExamCatalog:
    """In-memory catalog that validates questions as they are added."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._exam_types: dict[int, ExamType] = {}
        self._questions: dict[int, list[Question]] = {}
        self._question_counter: int = 0

    def add_exam_type(self, exam_type: ExamType) -> None:
        if not exam_type.name.strip():
            raise ValueError("Exam type name must not be empty.")
        if not 0 <= exam_type.passing_threshold <= 100:
            raise ValueError("Passing threshold must be between 0 and 100.")
        with self._lock:
            self._exam_types[exam_type.id] = exam_type
            self._questions.setdefault(exam_type.id, [])

    def add_question(self, question: Question) -> Question:
        with self._lock:
            if question.exam_type_id not in self._exam_types:
                raise KeyError(f"Unknown exam type {question.exam_type_id}")
            prepared = self._prepare_question(question)
            self._questions[question.exam_type_id].append(prepared)
            return prepared

    def load_questions(self, exam_type_id: int, questions: list[Question]) -> None:
        """Replace the pool of ``exam_type_id``."""
        with self._lock:
            if exam_type_id not in self._exam_types:
                raise KeyError(f"Unknown exam type {exam_type_id}")
            self._questions[exam_type_id] = [
                self._prepare_question(q, exam_type_id=exam_type_id) for q in questions
            ]

    def list_exam_types(self) -> list[ExamType]:
        with self._lock:
            return sorted(self._exam_types.values(), key=lambda t: t.id)

    def get_exam_type(self, exam_type_id: int) -> ExamType:
        with self._lock:
            try:
                return self._exam_types[exam_type_id]
            except KeyError:
                raise KeyError(f"Unknown exam type {exam_type_id}") from None

    def list_questions(self, exam_type_id: int) -> list[Question]:
        with self._lock:
            if exam_type_id not in self._exam_types:
                raise KeyError(f"Unknown exam type {exam_type_id}")
            return list(self._questions[exam_type_id])

    def _prepare_question(self, question: Question, exam_type_id: int | None = None) -> Question:
        options = self._validate_options(question.options)
        correct = self._validate_correct_indices(question.correct_indices, len(options))
        if not question.is_multiple_choice and len(correct) != 1:
            raise ValueError("Single-choice questions must have exactly one correct option.")

        cleaned_prompt = question.prompt.strip()
        if not cleaned_prompt:
            raise ValueError("Question text must not be empty.")

        question_id = question.id if question.id > 0 else self._next_question_id()
        self._question_counter = max(self._question_counter, question_id)

        return Question(
            id=question_id,
            exam_type_id=exam_type_id if exam_type_id is not None else question.exam_type_id,
            prompt=cleaned_prompt,
            options=options,
            correct_indices=correct,
            is_multiple_choice=question.is_multiple_choice,
            time_limit_seconds=self._normalize_time_limit(question.time_limit_seconds),
        )

    def _next_question_id(self) -> int:
        self._question_counter += 1
        return self._question_counter

    @staticmethod
    def _validate_options(options: list[str]) -> list[str]:
        if not MIN_OPTION_COUNT <= len(options) <= MAX_OPTION_COUNT:
            raise ValueError(
                f"Each question must have between {MIN_OPTION_COUNT} and {MAX_OPTION_COUNT} options."
            )
        cleaned = [option.strip() for option in options]
        if any(not option for option in cleaned):
            raise ValueError("Option text cannot be empty.")
        return cleaned

    @staticmethod
    def _validate_correct_indices(indices: list[int], option_count: int) -> list[int]:
        unique = sorted(set(indices))
        if not unique:
            raise ValueError("Each question needs at least one correct option.")
        if any(not 0 <= index < option_count for index in unique):
            raise ValueError("Correct option index is out of range.")
        return unique

    @staticmethod
    def _normalize_time_limit(time_limit_seconds: int) -> int:
        if not isinstance(time_limit_seconds, int):
            raise ValueError("Time limit must be provided as an integer number of seconds.")
        if time_limit_seconds <= 0:
            raise ValueError("Time limit must be a positive integer.")
        return time_limit_seconds
