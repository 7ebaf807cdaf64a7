"""Deterministic scoring and result review helpers."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

from .models import Question, Quiz, QuizResult, percentage_of

__all__ = [
    "QuestionReview",
    "ResultsSummary",
    "ScoreBand",
    "ScoreBreakdown",
    "is_correct",
    "partition_quizzes",
    "review_result",
    "score_quiz",
    "summarize_results",
]


@dataclass(frozen=True)
class ScoreBreakdown:
    score: int
    total_points: int
    correct_ids: tuple[str, ...] = ()

    @property
    def percentage(self) -> int:
        return percentage_of(self.score, self.total_points)


@dataclass(frozen=True)
class QuestionReview:
    """Per-question outcome shown when reviewing a result."""

    question: Question
    answer: str | None
    is_correct: bool

    @property
    def points_earned(self) -> int:
        return self.question.points if self.is_correct else 0

    @property
    def answered(self) -> bool:
        return bool(self.answer)


class ScoreBand(Enum):
    """Coarse feedback bucket for a percentage score."""

    EXCELLENT = "Excellent!"
    GOOD = "Good Job!"
    KEEP_PRACTICING = "Keep Practicing!"

    @classmethod
    def for_percentage(cls, percentage: float) -> "ScoreBand":
        if percentage >= 80:
            return cls.EXCELLENT
        if percentage >= 60:
            return cls.GOOD
        return cls.KEEP_PRACTICING

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True)
class ResultsSummary:
    attempts: int
    average_percentage: int


def is_correct(question: Question, answer: str | None) -> bool:
    """Exact match ignoring case only; no trimming, no partial credit."""

    if not answer:
        return False
    return answer.lower() == question.correct_answer.lower()


def score_quiz(quiz: Quiz, answers: Mapping[str, str]) -> ScoreBreakdown:
    """Sum the points of every correctly answered question in ``quiz``."""

    score = 0
    correct: list[str] = []
    for question in quiz.questions:
        if is_correct(question, answers.get(question.id)):
            score += question.points
            correct.append(question.id)
    return ScoreBreakdown(
        score=score,
        total_points=quiz.total_points,
        correct_ids=tuple(correct),
    )


def review_result(
    quiz: Quiz, result: QuizResult
) -> tuple[QuestionReview, ...]:
    return tuple(
        QuestionReview(
            question=question,
            answer=result.answers.get(question.id),
            is_correct=is_correct(question, result.answers.get(question.id)),
        )
        for question in quiz.questions
    )


def summarize_results(results: Sequence[QuizResult]) -> ResultsSummary:
    """Attempt count and the rounded mean of per-result percentages."""

    if not results:
        return ResultsSummary(attempts=0, average_percentage=0)
    total = 0.0
    for result in results:
        if result.total_points:
            total += result.score * 100 / result.total_points
    mean = total / len(results)
    return ResultsSummary(
        attempts=len(results),
        average_percentage=int(math.floor(mean + 0.5)),
    )


def partition_quizzes(
    quizzes: Iterable[Quiz], results: Iterable[QuizResult]
) -> tuple[list[Quiz], list[Quiz]]:
    """Split ``quizzes`` into ``(available, completed)`` for ``results``."""

    done = {result.quiz_id for result in results}
    available: list[Quiz] = []
    completed: list[Quiz] = []
    for quiz in quizzes:
        (completed if quiz.id in done else available).append(quiz)
    return available, completed
