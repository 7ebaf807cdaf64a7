"""Timed quiz-taking session state machine.

The machine is expressed twice over:

* :class:`SessionState` plus the module-level transition functions
  (:func:`start`, :func:`set_answer`, :func:`next_question`,
  :func:`previous_question`, :func:`tick`, :func:`submit`). Each takes a
  state and returns the next one, handing back the *same* object when the
  call is not valid for the current status or position.
* :class:`QuizSession`, the controller UI layers drive. It owns the
  countdown :class:`~quizkit.timer.Ticker`, turns the terminal state into a
  single :class:`~quizkit.models.QuizResult` and logs transitions.

Lifecycle: ``NOT_STARTED -> IN_PROGRESS -> SUBMITTED``. Nothing leaves
``SUBMITTED``.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Callable, Mapping, Optional

from . import scoring
from .models import Question, Quiz, QuizResult, new_id, utc_now
from .timer import Ticker

__all__ = [
    "DEFAULT_STUDENT",
    "EmptyQuizError",
    "QuizSession",
    "SessionState",
    "SessionStatus",
    "format_time",
    "initial_state",
    "next_question",
    "previous_question",
    "set_answer",
    "start",
    "submit",
    "tick",
]

DEFAULT_STUDENT = "Anonymous"

CompletionCallback = Callable[[QuizResult], None]


class EmptyQuizError(ValueError):
    """Raised when a session is requested for a quiz without questions."""


class SessionStatus(Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    SUBMITTED = "submitted"


def format_time(seconds: int) -> str:
    """Render a countdown as ``m:ss``."""

    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"


@dataclass(frozen=True)
class SessionState:
    """Immutable snapshot of one attempt at ``quiz``."""

    quiz: Quiz
    status: SessionStatus = SessionStatus.NOT_STARTED
    current_index: int = 0
    answers: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({})
    )
    remaining_seconds: int = 0
    breakdown: Optional[scoring.ScoreBreakdown] = None
    completed_at: Optional[datetime] = None
    expired: bool = False

    @property
    def total_questions(self) -> int:
        return len(self.quiz.questions)

    @property
    def current_question(self) -> Question:
        return self.quiz.questions[self.current_index]

    @property
    def is_first(self) -> bool:
        return self.current_index == 0

    @property
    def is_last(self) -> bool:
        return self.current_index == self.total_questions - 1

    @property
    def progress_percent(self) -> float:
        return (self.current_index + 1) / self.total_questions * 100

    def is_answered(self, question_id: str) -> bool:
        return bool(self.answers.get(question_id))

    @property
    def answered_count(self) -> int:
        return sum(
            1 for question in self.quiz.questions
            if self.is_answered(question.id)
        )

    @property
    def questions_remaining(self) -> int:
        return self.total_questions - self.answered_count

    def answer_for(self, question_id: str) -> Optional[str]:
        return self.answers.get(question_id)

    @property
    def time_display(self) -> str:
        return format_time(self.remaining_seconds)


def initial_state(quiz: Quiz) -> SessionState:
    if not quiz.is_takeable:
        raise EmptyQuizError(
            f"Quiz '{quiz.title}' has no questions and cannot be taken."
        )
    return SessionState(
        quiz=quiz, remaining_seconds=quiz.time_limit_minutes * 60
    )


def start(state: SessionState) -> SessionState:
    if state.status is not SessionStatus.NOT_STARTED:
        return state
    return dataclasses.replace(
        state,
        status=SessionStatus.IN_PROGRESS,
        current_index=0,
        answers=MappingProxyType({}),
        remaining_seconds=state.quiz.time_limit_minutes * 60,
    )


def set_answer(state: SessionState, value: str) -> SessionState:
    """Record ``value`` for the current question without moving on."""

    if state.status is not SessionStatus.IN_PROGRESS:
        return state
    answers = dict(state.answers)
    answers[state.current_question.id] = value
    return dataclasses.replace(state, answers=MappingProxyType(answers))


def next_question(state: SessionState) -> SessionState:
    if state.status is not SessionStatus.IN_PROGRESS or state.is_last:
        return state
    return dataclasses.replace(state, current_index=state.current_index + 1)


def previous_question(state: SessionState) -> SessionState:
    if state.status is not SessionStatus.IN_PROGRESS or state.is_first:
        return state
    return dataclasses.replace(state, current_index=state.current_index - 1)


def submit(
    state: SessionState, *, now: Optional[datetime] = None
) -> SessionState:
    """Score the current answers and enter ``SUBMITTED``.

    Calling this on an already submitted state returns it unchanged, so the
    score is computed at most once per attempt.
    """

    if state.status is not SessionStatus.IN_PROGRESS:
        return state
    return dataclasses.replace(
        state,
        status=SessionStatus.SUBMITTED,
        breakdown=scoring.score_quiz(state.quiz, state.answers),
        completed_at=now or utc_now(),
    )


def tick(
    state: SessionState, *, now: Optional[datetime] = None
) -> SessionState:
    """Advance the countdown by one second, submitting when it runs out."""

    if state.status is not SessionStatus.IN_PROGRESS:
        return state
    remaining = state.remaining_seconds - 1
    if remaining > 0:
        return dataclasses.replace(state, remaining_seconds=remaining)
    expired = dataclasses.replace(state, remaining_seconds=0, expired=True)
    return submit(expired, now=now)


class QuizSession:
    """Drives a :class:`SessionState` on behalf of a UI layer.

    Invalid calls are tolerated as no-ops. Once submitted (by :meth:`submit`
    or by the countdown) the ticker is disarmed, a single
    :class:`QuizResult` is built and ``on_complete`` is invoked exactly once.
    """

    def __init__(
        self,
        quiz: Quiz,
        *,
        ticker: Ticker,
        student_identifier: str = DEFAULT_STUDENT,
        on_complete: Optional[CompletionCallback] = None,
        now: Callable[[], datetime] = utc_now,
        result_id_factory: Optional[Callable[[], str]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._state = initial_state(quiz)
        self._ticker = ticker
        self._student = student_identifier or DEFAULT_STUDENT
        self._on_complete = on_complete
        self._now = now
        self._make_result_id = result_id_factory or (lambda: new_id("result"))
        self._logger = logger or logging.getLogger(__name__)
        self._result: Optional[QuizResult] = None
        self._closed = False

    # Queries -------------------------------------------------------------
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def quiz(self) -> Quiz:
        return self._state.quiz

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    @property
    def current_index(self) -> int:
        return self._state.current_index

    @property
    def current_question(self) -> Question:
        return self._state.current_question

    @property
    def answers(self) -> Mapping[str, str]:
        return self._state.answers

    @property
    def remaining_seconds(self) -> int:
        return self._state.remaining_seconds

    @property
    def progress_percent(self) -> float:
        return self._state.progress_percent

    @property
    def answered_count(self) -> int:
        return self._state.answered_count

    def is_answered(self, question_id: str) -> bool:
        return self._state.is_answered(question_id)

    @property
    def result(self) -> Optional[QuizResult]:
        return self._result

    @property
    def closed(self) -> bool:
        return self._closed

    # Transitions ---------------------------------------------------------
    def start(self) -> None:
        if self._apply(start(self._state), "start"):
            self._ticker.arm(self.tick)
            self._logger.info(
                "Quiz session started",
                extra={
                    "quiz_id": self.quiz.id,
                    "student": self._student,
                    "question_count": self._state.total_questions,
                    "remaining_seconds": self._state.remaining_seconds,
                },
            )

    def set_answer(self, value: str) -> None:
        self._apply(set_answer(self._state, value), "set_answer")

    def next(self) -> None:
        self._apply(next_question(self._state), "next")

    def previous(self) -> None:
        self._apply(previous_question(self._state), "previous")

    def tick(self) -> None:
        self._apply(tick(self._state, now=self._now()), "tick")
        self._finish_if_submitted()

    def submit(self) -> Optional[QuizResult]:
        self._apply(submit(self._state, now=self._now()), "submit")
        self._finish_if_submitted()
        return self._result

    def close(self) -> None:
        """Tear the session down without submitting."""

        self._ticker.cancel()
        if self._closed:
            return
        self._closed = True
        if self._state.status is SessionStatus.IN_PROGRESS:
            self._logger.info(
                "Quiz session abandoned",
                extra={
                    "quiz_id": self.quiz.id,
                    "student": self._student,
                    "answered": self._state.answered_count,
                },
            )

    # Internals -----------------------------------------------------------
    def _apply(self, candidate: SessionState, action: str) -> bool:
        if self._closed or candidate is self._state:
            self._logger.debug(
                "Ignored session transition",
                extra={
                    "action": action,
                    "status": self._state.status.value,
                    "current_index": self._state.current_index,
                },
            )
            return False
        self._state = candidate
        return True

    def _finish_if_submitted(self) -> None:
        state = self._state
        if (
            state.status is not SessionStatus.SUBMITTED
            or self._result is not None
        ):
            return
        self._ticker.cancel()
        assert state.breakdown is not None and state.completed_at is not None
        self._result = QuizResult(
            id=self._make_result_id(),
            quiz_id=state.quiz.id,
            student_identifier=self._student,
            score=state.breakdown.score,
            total_points=state.breakdown.total_points,
            completed_at=state.completed_at,
            answers=dict(state.answers),
        )
        self._logger.info(
            "Quiz session expired" if state.expired else "Quiz submitted",
            extra={
                "quiz_id": state.quiz.id,
                "result_id": self._result.id,
                "student": self._student,
                "score": self._result.score,
                "total_points": self._result.total_points,
                "answered": state.answered_count,
            },
        )
        if self._on_complete is not None:
            self._on_complete(self._result)
