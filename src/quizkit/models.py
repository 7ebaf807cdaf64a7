"""Record types shared by the importer, session machine and scorer.

Records are frozen dataclasses. Construction enforces the structural
invariants every consumer relies on; the stricter authoring rules live in
:mod:`quizkit.authoring` so leniently imported questions stay representable.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

__all__ = [
    "DEFAULT_POINTS",
    "Difficulty",
    "ModelError",
    "Question",
    "QuestionType",
    "Quiz",
    "QuizResult",
    "new_id",
    "percentage_of",
    "utc_now",
]

DEFAULT_POINTS = 10


class ModelError(ValueError):
    """Raised when a record violates its invariants or cannot be decoded."""


class QuestionType(Enum):
    """Supported question kinds."""

    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    SHORT_ANSWER = "short-answer"

    @classmethod
    def from_value(cls, value: str) -> "QuestionType":
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise ModelError(
            f"Unknown question type '{value}'. Expected one of: {expected}."
        )


class Difficulty(Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"

    @classmethod
    def from_value(cls, value: str) -> "Difficulty":
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise ModelError(
            f"Unknown difficulty '{value}'. Expected one of: {expected}."
        )


def new_id(prefix: str) -> str:
    """Return a unique identifier such as ``bulk_3f2a...``."""

    return f"{prefix}_{uuid.uuid4().hex}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def percentage_of(score: int, total: int) -> int:
    """Whole-number percentage rounded half up; 0 when ``total`` is 0."""

    if total <= 0:
        return 0
    return int(math.floor(score * 100 / total + 0.5))


@dataclass(frozen=True)
class Question:
    """A single quiz question.

    ``options`` is a tuple for multiple-choice questions (possibly with
    fewer than two entries when imported leniently) and ``None`` otherwise.
    """

    id: str
    type: QuestionType
    prompt: str
    correct_answer: str
    options: tuple[str, ...] | None = None
    points: int = DEFAULT_POINTS

    def __post_init__(self) -> None:
        if not isinstance(self.type, QuestionType):
            object.__setattr__(
                self, "type", QuestionType.from_value(self.type)
            )
        if not str(self.id):
            raise ModelError("Question id must not be empty.")
        if not self.prompt or not self.prompt.strip():
            raise ModelError("Question prompt must not be empty.")
        if not self.correct_answer:
            raise ModelError("Question correct answer must not be empty.")
        if (
            isinstance(self.points, bool)
            or not isinstance(self.points, int)
            or self.points < 1
        ):
            raise ModelError(
                f"Question points must be a positive integer, got "
                f"{self.points!r}."
            )
        if self.type is QuestionType.MULTIPLE_CHOICE:
            object.__setattr__(self, "options", tuple(self.options or ()))
        elif self.options is not None:
            raise ModelError(
                f"Options are only allowed on multiple-choice questions "
                f"(question {self.id} is {self.type.value})."
            )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "prompt": self.prompt,
            "correct_answer": self.correct_answer,
            "points": self.points,
        }
        if self.options is not None:
            data["options"] = list(self.options)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Question":
        try:
            options = data.get("options")
            return cls(
                id=str(data["id"]),
                type=QuestionType.from_value(data["type"]),
                prompt=str(data["prompt"]),
                correct_answer=str(data["correct_answer"]),
                options=tuple(str(o) for o in options)
                if options is not None
                else None,
                points=int(data.get("points", DEFAULT_POINTS)),
            )
        except KeyError as exc:
            raise ModelError(f"Question record missing field {exc}") from exc
        except (TypeError, ValueError) as exc:
            if isinstance(exc, ModelError):
                raise
            raise ModelError(f"Invalid question record: {exc}") from exc


@dataclass(frozen=True)
class Quiz:
    """An authored quiz; ``questions`` order drives navigation."""

    id: str
    title: str
    description: str
    category: str
    difficulty: Difficulty
    time_limit_minutes: int
    questions: tuple[Question, ...]
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        object.__setattr__(self, "questions", tuple(self.questions))
        if not isinstance(self.difficulty, Difficulty):
            object.__setattr__(
                self, "difficulty", Difficulty.from_value(self.difficulty)
            )
        if (
            isinstance(self.time_limit_minutes, bool)
            or not isinstance(self.time_limit_minutes, int)
            or self.time_limit_minutes < 1
        ):
            raise ModelError(
                "Quiz time limit must be a positive number of minutes, got "
                f"{self.time_limit_minutes!r}."
            )
        seen: set[str] = set()
        for question in self.questions:
            if question.id in seen:
                raise ModelError(f"Duplicate question id '{question.id}'.")
            seen.add(question.id)

    @property
    def total_points(self) -> int:
        return sum(question.points for question in self.questions)

    @property
    def is_takeable(self) -> bool:
        return len(self.questions) >= 1

    def question(self, question_id: str) -> Question | None:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "difficulty": self.difficulty.value,
            "time_limit_minutes": self.time_limit_minutes,
            "questions": [question.to_dict() for question in self.questions],
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Quiz":
        try:
            return cls(
                id=str(data["id"]),
                title=str(data["title"]),
                description=str(data.get("description", "")),
                category=str(data.get("category", "")),
                difficulty=Difficulty.from_value(
                    data.get("difficulty", Difficulty.EASY.value)
                ),
                time_limit_minutes=int(data["time_limit_minutes"]),
                questions=tuple(
                    Question.from_dict(item)
                    for item in data.get("questions") or ()
                ),
                created_at=_parse_timestamp(data["created_at"]),
            )
        except KeyError as exc:
            raise ModelError(f"Quiz record missing field {exc}") from exc
        except (TypeError, ValueError) as exc:
            if isinstance(exc, ModelError):
                raise
            raise ModelError(f"Invalid quiz record: {exc}") from exc


@dataclass(frozen=True)
class QuizResult:
    """Outcome of one completed session. Created once, never edited."""

    id: str
    quiz_id: str
    student_identifier: str
    score: int
    total_points: int
    completed_at: datetime
    answers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "answers", MappingProxyType(dict(self.answers))
        )
        if not 0 <= self.score <= self.total_points:
            raise ModelError(
                f"Score {self.score} outside 0..{self.total_points}."
            )

    @property
    def percentage(self) -> int:
        return percentage_of(self.score, self.total_points)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "quiz_id": self.quiz_id,
            "student_identifier": self.student_identifier,
            "score": self.score,
            "total_points": self.total_points,
            "completed_at": self.completed_at.isoformat(),
            "answers": dict(self.answers),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "QuizResult":
        try:
            return cls(
                id=str(data["id"]),
                quiz_id=str(data["quiz_id"]),
                student_identifier=str(data["student_identifier"]),
                score=int(data["score"]),
                total_points=int(data["total_points"]),
                completed_at=_parse_timestamp(data["completed_at"]),
                answers={
                    str(key): str(value)
                    for key, value in (data.get("answers") or {}).items()
                },
            )
        except KeyError as exc:
            raise ModelError(f"Result record missing field {exc}") from exc
        except (TypeError, ValueError, AttributeError) as exc:
            if isinstance(exc, ModelError):
                raise
            raise ModelError(f"Invalid result record: {exc}") from exc


def _parse_timestamp(value: object) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
