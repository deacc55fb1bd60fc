"""Domain models for the exam session engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from exam_app.constants.exam_constants import (
    DEFAULT_PASSING_THRESHOLD,
    DEFAULT_TIME_LIMIT_SECONDS,
    NO_ANSWER,
)

# A single option index, a list of indices for multi-choice, or NO_ANSWER.
AnswerValue = int | list[int]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionState(Enum):
    """Lifecycle of a single exam attempt."""

    TYPE_SELECTION = "type_selection"
    AWAITING_AUTHORIZATION = "awaiting_authorization"
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    COMPLETED = "completed"


class ViolationKind(str, Enum):
    """Integrity signals that terminate a running exam."""

    VISIBILITY_LOST = "tab_switch"
    FOCUS_LOST = "window_blur"


@dataclass(slots=True, frozen=True)
class Candidate:
    """The user taking an exam, as supplied by the identity provider."""

    candidate_id: str
    display_name: str
    privileged: bool = False
    email: str | None = None


@dataclass(slots=True, frozen=True)
class ExamType:
    """Catalog entry describing one kind of exam."""

    id: int
    name: str
    passing_threshold: float = DEFAULT_PASSING_THRESHOLD
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "passing_threshold": self.passing_threshold,
            "description": self.description,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> ExamType:
        return ExamType(
            id=int(data["id"]),
            name=data["name"],
            passing_threshold=float(data.get("passing_threshold", DEFAULT_PASSING_THRESHOLD)),
            description=data.get("description", ""),
        )


@dataclass(slots=True)
class Question:
    """Catalog question with its options in authored order."""

    id: int
    exam_type_id: int
    prompt: str
    options: list[str]
    correct_indices: list[int]
    is_multiple_choice: bool = False
    time_limit_seconds: int = DEFAULT_TIME_LIMIT_SECONDS


@dataclass(slots=True)
class GeneratedQuestion:
    """A question as presented in one session, with options in shuffled order.

    ``option_order[i]`` is the authored index of the option displayed at
    position ``i``; ``correct_indices`` refer to displayed positions.
    """

    question_id: int
    prompt: str
    options: list[str]
    correct_indices: list[int]
    option_order: list[int]
    is_multiple_choice: bool
    time_limit_seconds: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "question_id": self.question_id,
            "prompt": self.prompt,
            "options": list(self.options),
            "correct_indices": list(self.correct_indices),
            "option_order": list(self.option_order),
            "is_multiple_choice": self.is_multiple_choice,
            "time_limit_seconds": self.time_limit_seconds,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> GeneratedQuestion:
        return GeneratedQuestion(
            question_id=int(data["question_id"]),
            prompt=data["prompt"],
            options=list(data["options"]),
            correct_indices=[int(i) for i in data["correct_indices"]],
            option_order=[int(i) for i in data["option_order"]],
            is_multiple_choice=bool(data["is_multiple_choice"]),
            time_limit_seconds=int(data["time_limit_seconds"]),
        )


@dataclass(slots=True)
class GeneratedExam:
    """Randomized, self-contained exam instance for one session."""

    exam_type_id: int
    questions: list[GeneratedQuestion]
    generated_at: datetime = field(default_factory=utc_now)

    def __len__(self) -> int:
        return len(self.questions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "exam_type_id": self.exam_type_id,
            "questions": [q.to_dict() for q in self.questions],
            "generated_at": self.generated_at.isoformat(),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> GeneratedExam:
        return GeneratedExam(
            exam_type_id=int(data["exam_type_id"]),
            questions=[GeneratedQuestion.from_dict(q) for q in data["questions"]],
            generated_at=datetime.fromisoformat(data["generated_at"]),
        )


def encode_answers(answers: dict[int, AnswerValue]) -> dict[str, AnswerValue]:
    """JSON object keys must be strings."""
    return {
        str(question_id): list(value) if isinstance(value, list) else value
        for question_id, value in answers.items()
    }


def decode_answers(data: dict[str, Any]) -> dict[int, AnswerValue]:
    decoded: dict[int, AnswerValue] = {}
    for key, value in data.items():
        if isinstance(value, list):
            decoded[int(key)] = [int(v) for v in value]
        else:
            decoded[int(key)] = int(value)
    return decoded


@dataclass(slots=True)
class SessionSnapshot:
    """Recovery record for an in-progress session."""

    exam: GeneratedExam
    exam_type: ExamType
    current_index: int
    answers: dict[int, AnswerValue]
    time_remaining: int
    saved_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "exam": self.exam.to_dict(),
            "exam_type": self.exam_type.to_dict(),
            "current_index": self.current_index,
            "answers": encode_answers(self.answers),
            "time_remaining": self.time_remaining,
            "saved_at": self.saved_at.isoformat(),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> SessionSnapshot:
        return SessionSnapshot(
            exam=GeneratedExam.from_dict(data["exam"]),
            exam_type=ExamType.from_dict(data["exam_type"]),
            current_index=int(data["current_index"]),
            answers=decode_answers(data.get("answers", {})),
            time_remaining=int(data["time_remaining"]),
            saved_at=datetime.fromisoformat(data["saved_at"]),
        )


@dataclass(slots=True)
class QuestionOutcome:
    """Scoring detail for one question of a finished exam."""

    question_id: int
    prompt: str
    answer: AnswerValue
    correct_indices: list[int]
    is_correct: bool
    is_timeout: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "question_id": self.question_id,
            "prompt": self.prompt,
            "answer": list(self.answer) if isinstance(self.answer, list) else self.answer,
            "correct_indices": list(self.correct_indices),
            "is_correct": self.is_correct,
            "is_timeout": self.is_timeout,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> QuestionOutcome:
        answer = data.get("answer", NO_ANSWER)
        return QuestionOutcome(
            question_id=int(data["question_id"]),
            prompt=data["prompt"],
            answer=[int(a) for a in answer] if isinstance(answer, list) else int(answer),
            correct_indices=[int(i) for i in data["correct_indices"]],
            is_correct=bool(data["is_correct"]),
            is_timeout=bool(data["is_timeout"]),
        )


@dataclass(slots=True)
class Result:
    """Final outcome of a completed session."""

    candidate_id: str
    exam_type_id: int
    score: int
    total_questions: int
    percentage: float
    passed: bool
    passing_threshold: float
    answers: dict[int, AnswerValue]
    exam: GeneratedExam
    details: list[QuestionOutcome] = field(default_factory=list)
    is_archived: bool = False
    submitted_at: datetime = field(default_factory=utc_now)
    result_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "result_id": self.result_id,
            "candidate_id": self.candidate_id,
            "exam_type_id": self.exam_type_id,
            "score": self.score,
            "total_questions": self.total_questions,
            "percentage": self.percentage,
            "passed": self.passed,
            "passing_threshold": self.passing_threshold,
            "answers": encode_answers(self.answers),
            "exam": self.exam.to_dict(),
            "details": [d.to_dict() for d in self.details],
            "is_archived": self.is_archived,
            "submitted_at": self.submitted_at.isoformat(),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Result:
        return Result(
            result_id=data.get("result_id"),
            candidate_id=data["candidate_id"],
            exam_type_id=int(data["exam_type_id"]),
            score=int(data["score"]),
            total_questions=int(data["total_questions"]),
            percentage=float(data["percentage"]),
            passed=bool(data["passed"]),
            passing_threshold=float(data["passing_threshold"]),
            answers=decode_answers(data.get("answers", {})),
            exam=GeneratedExam.from_dict(data["exam"]),
            details=[QuestionOutcome.from_dict(d) for d in data.get("details", [])],
            is_archived=bool(data.get("is_archived", False)),
            submitted_at=datetime.fromisoformat(data["submitted_at"]),
        )
