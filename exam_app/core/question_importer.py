"""Utilities for importing exam catalogs from human-friendly text files.

One file describes one exam type. Blocks are separated by blank lines or
'---'. The first block is the exam header, every following block is a
question:

    EXAM: Trainee
    ID: 1
    THRESHOLD: 50
    DESCRIPTION: Entry exam for new trainees (optional)

    Q: Question text (supports markdown). Additional lines until the
       next marker are treated as part of the question.
    A: First option text
    B: Second option text
    C: Third option text            (two to eight options, A-H)
    CORRECT: B            or        CORRECT: A, C
    MULTIPLE: yes                   (optional - implied by several CORRECT letters)
    TIMELIMIT: seconds              (optional - defaults to 30)
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path

from exam_app.constants.exam_constants import (
    DEFAULT_PASSING_THRESHOLD,
    DEFAULT_TIME_LIMIT_SECONDS,
    MAX_OPTION_COUNT,
    MIN_OPTION_COUNT,
)
from exam_app.core.models import ExamType, Question
from exam_app.core.services.catalog import ExamCatalog

logger = logging.getLogger(__name__)


class QuestionImportError(Exception):
    """Raised when an exam definition cannot be parsed."""


@dataclass(slots=True)
class ImportedExam:
    """Container for an imported exam type and its question pool."""

    source_path: Path | None
    exam_type: ExamType
    questions: list[Question]


_OPTION_ORDER = [chr(ord("A") + i) for i in range(MAX_OPTION_COUNT)]
_TRUE_VALUES = {"yes", "true", "1", "y"}
_FALSE_VALUES = {"no", "false", "0", "n"}


def load_exam_from_file(file_path: Path) -> ImportedExam:
    text = file_path.read_text(encoding="utf-8")
    imported = parse_exam_text(text)
    imported.source_path = file_path
    return imported


def load_catalog_from_directory(directory: Path, catalog: ExamCatalog | None = None) -> ExamCatalog:
    """Import every ``*.txt`` file in ``directory`` into ``catalog``."""
    catalog = catalog or ExamCatalog()
    for file_path in sorted(Path(directory).glob("*.txt")):
        imported = load_exam_from_file(file_path)
        catalog.add_exam_type(imported.exam_type)
        catalog.load_questions(imported.exam_type.id, imported.questions)
        logger.info(
            "Loaded exam %s (%d questions) from %s",
            imported.exam_type.name,
            len(imported.questions),
            file_path.name,
        )
    return catalog


def parse_exam_text(text: str) -> ImportedExam:
    blocks = _split_blocks(text)
    if not blocks:
        raise QuestionImportError("Exam file is empty.")

    exam_type = _parse_header(blocks[0])
    questions = [_parse_block(block, exam_type.id) for block in blocks[1:]]
    if not questions:
        raise QuestionImportError("Exam file did not contain any questions.")
    return ImportedExam(source_path=None, exam_type=exam_type, questions=questions)


def _split_blocks(text: str) -> list[str]:
    blocks: list[str] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if stripped == "---":
            if current_block:
                blocks.append("\n".join(current_block).strip())
                current_block = []
            continue
        if stripped:
            current_block.append(raw_line)
        elif current_block:
            blocks.append("\n".join(current_block).strip())
            current_block = []
    if current_block:
        blocks.append("\n".join(current_block).strip())
    return [block for block in blocks if block]


def _parse_header(block: str) -> ExamType:
    fields: dict[str, str] = {}
    for raw_line in block.splitlines():
        line = raw_line.strip()
        if ":" not in line:
            raise QuestionImportError(f"Malformed header line: '{line}'.")
        key, value = line.split(":", 1)
        fields[key.strip().upper()] = value.strip()

    name = fields.get("EXAM")
    if not name:
        raise QuestionImportError("Exam header must start with 'EXAM: <name>'.")
    try:
        exam_type_id = int(fields.get("ID", ""))
    except ValueError as exc:
        raise QuestionImportError("Exam header needs an integer ID.") from exc

    threshold = DEFAULT_PASSING_THRESHOLD
    if "THRESHOLD" in fields:
        try:
            threshold = float(fields["THRESHOLD"].rstrip("%"))
        except ValueError as exc:
            raise QuestionImportError("THRESHOLD must be a number between 0 and 100.") from exc
        if not 0 <= threshold <= 100:
            raise QuestionImportError("THRESHOLD must be a number between 0 and 100.")

    return ExamType(
        id=exam_type_id,
        name=name,
        passing_threshold=threshold,
        description=fields.get("DESCRIPTION", ""),
    )


def _parse_block(block: str, exam_type_id: int) -> Question:
    question_lines: list[str] = []
    options: dict[str, str] = {}
    correct_letters: list[str] = []
    multiple: bool | None = None
    time_limit_seconds = DEFAULT_TIME_LIMIT_SECONDS
    current_section: str | None = None

    for raw_line in block.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        upper = line.upper()
        if upper.startswith("Q:"):
            question_lines = [line[2:].strip()]
            current_section = "Q"
            continue

        if upper.startswith("CORRECT:"):
            raw_value = line.split(":", 1)[1]
            correct_letters = [part.strip().upper() for part in raw_value.split(",") if part.strip()]
            current_section = None
            continue

        if upper.startswith("MULTIPLE:"):
            raw_value = line.split(":", 1)[1].strip().lower()
            if raw_value in _TRUE_VALUES:
                multiple = True
            elif raw_value in _FALSE_VALUES:
                multiple = False
            else:
                raise QuestionImportError("MULTIPLE must be yes or no.")
            current_section = None
            continue

        if upper.startswith("TIMELIMIT:"):
            raw_value = line.split(":", 1)[1].strip()
            try:
                parsed_value = int(raw_value)
            except ValueError as exc:
                raise QuestionImportError("TIMELIMIT must be an integer number of seconds.") from exc
            if parsed_value <= 0:
                raise QuestionImportError("TIMELIMIT must be a positive integer.")
            time_limit_seconds = parsed_value
            current_section = None
            continue

        if len(line) > 2 and line[0].upper() in _OPTION_ORDER and line[1] == ":":
            letter = line[0].upper()
            options[letter] = line[2:].strip()
            current_section = letter
            continue

        if current_section == "Q":
            question_lines.append(line)
        elif current_section in _OPTION_ORDER:
            options[current_section] = options[current_section] + f"\n{line}"
        else:
            raise QuestionImportError(
                f"Encountered text outside of a known section: '{line}'."
            )

    if not question_lines:
        raise QuestionImportError("Question text missing (Q: ...)")

    letters = _OPTION_ORDER[: len(options)]
    if len(options) < MIN_OPTION_COUNT or sorted(options) != letters:
        raise QuestionImportError(
            f"Options must be consecutive letters starting at A ({MIN_OPTION_COUNT}-{MAX_OPTION_COUNT} options)."
        )
    option_list = [options[letter].strip() for letter in letters]
    if any(not opt for opt in option_list):
        raise QuestionImportError("Option text cannot be empty.")

    if not correct_letters:
        raise QuestionImportError("CORRECT must name at least one option.")
    unknown = [letter for letter in correct_letters if letter not in letters]
    if unknown:
        raise QuestionImportError(f"CORRECT refers to unknown option(s): {', '.join(unknown)}.")
    correct_indices = sorted({letters.index(letter) for letter in correct_letters})

    is_multiple_choice = multiple if multiple is not None else len(correct_indices) > 1
    if not is_multiple_choice and len(correct_indices) > 1:
        raise QuestionImportError("Single-choice questions must have exactly one CORRECT option.")

    question_text = "\n".join(question_lines).strip()
    if not question_text:
        raise QuestionImportError("Question text cannot be empty.")

    return Question(
        id=0,  # assigned by ExamCatalog when the pool is loaded
        exam_type_id=exam_type_id,
        prompt=question_text,
        options=option_list,
        correct_indices=correct_indices,
        is_multiple_choice=is_multiple_choice,
        time_limit_seconds=time_limit_seconds,
    )
