"""Builders for quiz records used across the test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence

from quizkit.models import Difficulty, Question, QuestionType, Quiz

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def mcq(
    qid: str,
    answer: str = "Paris",
    *,
    options: Sequence[str] = ("London", "Paris"),
    points: int = 10,
    prompt: Optional[str] = None,
) -> Question:
    return Question(
        id=qid,
        type=QuestionType.MULTIPLE_CHOICE,
        prompt=prompt or f"Question {qid}?",
        correct_answer=answer,
        options=tuple(options),
        points=points,
    )


def true_false(qid: str, answer: str = "true", *, points: int = 5) -> Question:
    return Question(
        id=qid,
        type=QuestionType.TRUE_FALSE,
        prompt=f"Statement {qid}.",
        correct_answer=answer,
        points=points,
    )


def short_answer(
    qid: str, answer: str = "JavaScript", *, points: int = 15
) -> Question:
    return Question(
        id=qid,
        type=QuestionType.SHORT_ANSWER,
        prompt=f"Describe {qid}.",
        correct_answer=answer,
        points=points,
    )


def make_quiz(
    questions: Sequence[Question],
    *,
    quiz_id: str = "quiz_1",
    title: str = "Sample Quiz",
    minutes: int = 1,
) -> Quiz:
    return Quiz(
        id=quiz_id,
        title=title,
        description="A quiz used in tests.",
        category="Geography",
        difficulty=Difficulty.EASY,
        time_limit_minutes=minutes,
        questions=tuple(questions),
        created_at=FIXED_NOW,
    )
