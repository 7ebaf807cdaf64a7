"""Quiz authoring: a mutable draft that yields a :class:`Quiz` once valid."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from .importer import BulkImportResult, parse_bulk_questions
from .models import (
    DEFAULT_POINTS,
    Difficulty,
    ModelError,
    Question,
    QuestionType,
    Quiz,
    new_id,
    utc_now,
)

__all__ = [
    "CATEGORY_OPTIONS",
    "DEFAULT_TIME_LIMIT_MINUTES",
    "QuizDraft",
    "QuizValidationError",
    "validate_question",
]

DEFAULT_TIME_LIMIT_MINUTES = 30

CATEGORY_OPTIONS: tuple[str, ...] = (
    "Programming",
    "Science",
    "History",
    "Mathematics",
    "Literature",
    "Geography",
    "General Knowledge",
    "Technology",
    "Business",
    "Arts",
)

_TRUE_FALSE_ANSWERS = {"true", "false"}


class QuizValidationError(ValueError):
    """Raised when a question or quiz is rejected at save time."""

    def __init__(self, problems: Sequence[str]) -> None:
        self.problems = tuple(problems)
        super().__init__("; ".join(self.problems))


def validate_question(question: Question) -> list[str]:
    """Return the problems that block saving an individually authored question.

    Bulk-imported questions skip these checks.
    """

    problems: list[str] = []
    if question.type is QuestionType.MULTIPLE_CHOICE:
        options = [opt for opt in question.options or () if opt.strip()]
        if len(options) < 2:
            problems.append(
                "Multiple-choice questions need at least two options."
            )
        elif question.correct_answer not in options:
            problems.append("The correct answer must be one of the options.")
    elif question.type is QuestionType.TRUE_FALSE:
        if question.correct_answer.lower() not in _TRUE_FALSE_ANSWERS:
            problems.append(
                "True/false questions need 'true' or 'false' as the answer."
            )
    return problems


@dataclass
class QuizDraft:
    """Mutable quiz under construction."""

    title: str = ""
    description: str = ""
    category: str = ""
    difficulty: Difficulty = Difficulty.EASY
    time_limit_minutes: int = DEFAULT_TIME_LIMIT_MINUTES
    questions: list[Question] = field(default_factory=list)

    def add_question(
        self,
        prompt: str,
        correct_answer: str,
        *,
        type: QuestionType = QuestionType.MULTIPLE_CHOICE,
        options: Optional[Sequence[str]] = None,
        points: int = DEFAULT_POINTS,
    ) -> Question:
        prompt = (prompt or "").strip()
        correct_answer = (correct_answer or "").strip()
        problems: list[str] = []
        if not prompt:
            problems.append("Question text is required.")
        if not correct_answer:
            problems.append("A correct answer is required.")
        if problems:
            raise QuizValidationError(problems)

        kept_options: Optional[tuple[str, ...]] = None
        if type is QuestionType.MULTIPLE_CHOICE:
            kept_options = tuple(
                opt.strip() for opt in options or () if opt.strip()
            )
        try:
            question = Question(
                id=new_id("q"),
                type=type,
                prompt=prompt,
                correct_answer=correct_answer,
                options=kept_options,
                points=points,
            )
        except ModelError as exc:
            raise QuizValidationError([str(exc)]) from exc

        problems = validate_question(question)
        if problems:
            raise QuizValidationError(problems)
        self.questions.append(question)
        return question

    def import_bulk(
        self, text: str, *, logger: Optional[logging.Logger] = None
    ) -> BulkImportResult:
        """Parse ``text`` and append its questions when any were found."""

        outcome = parse_bulk_questions(text, logger=logger)
        if outcome.ok:
            self.questions.extend(outcome.questions)
        return outcome

    def remove_question(self, index: int) -> Question:
        try:
            return self.questions.pop(index)
        except IndexError as exc:
            raise QuizValidationError(
                [f"No question at position {index}."]
            ) from exc

    @property
    def total_points(self) -> int:
        return sum(question.points for question in self.questions)

    def problems(self) -> list[str]:
        found: list[str] = []
        for label, value in (
            ("title", self.title),
            ("description", self.description),
            ("category", self.category),
        ):
            if not (value or "").strip():
                found.append(f"Quiz {label} is required.")
        if (
            isinstance(self.time_limit_minutes, bool)
            or not isinstance(self.time_limit_minutes, int)
            or self.time_limit_minutes < 1
        ):
            found.append("Time limit must be a positive number of minutes.")
        if not self.questions:
            found.append("Add at least one question.")
        return found

    def build(self, *, now: Optional[datetime] = None) -> Quiz:
        """Return the finished :class:`Quiz` or raise with every problem."""

        problems = self.problems()
        if problems:
            raise QuizValidationError(problems)
        return Quiz(
            id=new_id("quiz"),
            title=self.title.strip(),
            description=self.description.strip(),
            category=self.category.strip(),
            difficulty=self.difficulty,
            time_limit_minutes=self.time_limit_minutes,
            questions=tuple(self.questions),
            created_at=now or utc_now(),
        )
