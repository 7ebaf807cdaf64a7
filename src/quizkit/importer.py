"""Line-oriented bulk question import.

Authors paste blocks such as::

    Q: What is the capital of France?
    A) London
    B) Paris
    Answer: Paris
    Points: 10

and :func:`parse_bulk_questions` turns them into :class:`Question` records.
Malformed input never raises; the caller gets a :class:`BulkImportResult`
holding either questions or a :class:`ParseDiagnostic`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Optional

from .models import DEFAULT_POINTS, Question, QuestionType, new_id

__all__ = [
    "BULK_IMPORT_EXAMPLE",
    "NO_QUESTIONS_FOUND",
    "BulkImportResult",
    "ParseDiagnostic",
    "infer_question_type",
    "parse_bulk_questions",
]

NO_QUESTIONS_FOUND = "no valid questions found"

BULK_IMPORT_EXAMPLE = """\
Q: What is the capital of France?
A) London
B) Berlin
C) Paris
D) Madrid
Answer: Paris
Points: 10

Q: The Earth is flat.
Type: true-false
Answer: false
Points: 5

Q: What programming language is known for web development?
Type: short-answer
Answer: JavaScript
Points: 15
"""

IdFactory = Callable[[], str]

_QUESTION_RE = re.compile(r"^(?:q|question):\s*(?P<rest>.*)$", re.IGNORECASE)
_OPTION_RE = re.compile(r"^[a-d]\)\s*(?P<rest>.*)$", re.IGNORECASE)
_ANSWER_RE = re.compile(r"^(?:answer|correct):\s*(?P<rest>.*)$", re.IGNORECASE)
_POINTS_RE = re.compile(r"^points:\s*(?P<rest>.*)$", re.IGNORECASE)
_TYPE_RE = re.compile(r"^type:\s*(?P<rest>.*)$", re.IGNORECASE)
_LEADING_INT_RE = re.compile(r"^[+-]?\d+")


@dataclass(frozen=True)
class ParseDiagnostic:
    """Non-exception failure signal returned when nothing could be imported."""

    reason: str
    message: str


@dataclass(frozen=True)
class BulkImportResult:
    questions: tuple[Question, ...] = ()
    diagnostic: Optional[ParseDiagnostic] = None
    discarded: int = 0
    ignored_lines: tuple[int, ...] = ()

    @property
    def ok(self) -> bool:
        return self.diagnostic is None


@dataclass
class _QuestionDraft:
    """In-progress question; every field may still be missing."""

    prompt: Optional[str] = None
    type: QuestionType = QuestionType.MULTIPLE_CHOICE
    options: list[str] = field(default_factory=list)
    correct_answer: Optional[str] = None
    points: Optional[int] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.prompt) and bool(self.correct_answer)

    @property
    def is_blank(self) -> bool:
        return (
            self.prompt is None
            and self.correct_answer is None
            and self.points is None
            and not self.options
        )

    def commit(self, question_id: str) -> Optional[Question]:
        if not self.is_complete:
            return None
        is_mcq = self.type is QuestionType.MULTIPLE_CHOICE
        return Question(
            id=question_id,
            type=self.type,
            prompt=str(self.prompt),
            correct_answer=str(self.correct_answer),
            options=tuple(self.options) if is_mcq else None,
            points=self.points or DEFAULT_POINTS,
        )


def infer_question_type(raw: str) -> QuestionType:
    """Map a ``Type:`` directive value onto a :class:`QuestionType`."""

    lowered = raw.strip().lower()
    if "true" in lowered or "false" in lowered:
        return QuestionType.TRUE_FALSE
    if "short" in lowered or "text" in lowered:
        return QuestionType.SHORT_ANSWER
    return QuestionType.MULTIPLE_CHOICE


def _parse_points(raw: str) -> Optional[int]:
    match = _LEADING_INT_RE.match(raw.strip())
    if not match:
        return None
    value = int(match.group(0))
    return value if value > 0 else None


def parse_bulk_questions(
    text: str,
    *,
    id_factory: Optional[IdFactory] = None,
    logger: Optional[logging.Logger] = None,
) -> BulkImportResult:
    """Parse pasted bulk-import ``text`` into questions.

    - ``Q:``/``Question:`` starts a question, committing the previous one
      when it has both a prompt and an answer (otherwise it is dropped).
    - ``A)``..``D)`` append options in read order, whatever the letter.
    - ``Answer:``/``Correct:`` and ``Points:`` overwrite earlier values.
    - ``Type:`` picks the question type; multiple-choice by default.
    Keywords are case-insensitive and blank lines are ignored. The answer is
    not checked against the options.
    """

    log = logger or logging.getLogger(__name__)
    make_id = id_factory or (lambda: new_id("bulk"))

    committed: list[Question] = []
    ignored: list[int] = []
    discarded = 0
    draft = _QuestionDraft()

    def finish(current: _QuestionDraft) -> None:
        nonlocal discarded
        question = current.commit(make_id()) if current.is_complete else None
        if question is not None:
            committed.append(question)
        elif not current.is_blank:
            discarded += 1

    for lineno, raw_line in enumerate((text or "").splitlines(), start=1):
        line = raw_line.strip()
        if not line:
            continue

        match = _QUESTION_RE.match(line)
        if match:
            finish(draft)
            draft = _QuestionDraft(prompt=match.group("rest").strip())
            continue

        match = _OPTION_RE.match(line)
        if match:
            draft.options.append(match.group("rest").strip())
            continue

        match = _ANSWER_RE.match(line)
        if match:
            draft.correct_answer = match.group("rest").strip()
            continue

        match = _POINTS_RE.match(line)
        if match:
            points = _parse_points(match.group("rest"))
            if points is not None:
                draft.points = points
            continue

        match = _TYPE_RE.match(line)
        if match:
            draft.type = infer_question_type(match.group("rest"))
            continue

        ignored.append(lineno)

    finish(draft)

    if not committed:
        log.info(
            "Bulk import produced no questions",
            extra={"discarded": discarded, "ignored_lines": len(ignored)},
        )
        return BulkImportResult(
            diagnostic=ParseDiagnostic(
                reason=NO_QUESTIONS_FOUND,
                message="No valid questions found. Please check the format.",
            ),
            discarded=discarded,
            ignored_lines=tuple(ignored),
        )

    log.info(
        "Bulk import parsed questions",
        extra={
            "committed": len(committed),
            "discarded": discarded,
            "ignored_lines": len(ignored),
        },
    )
    return BulkImportResult(
        questions=tuple(committed),
        discarded=discarded,
        ignored_lines=tuple(ignored),
    )
