"""Rich-powered terminal front end for a timed quiz session.

The loop reads one command per prompt, feeds it to a
:class:`~quizkit.session.QuizSession` and re-renders. Elapsed wall time is
delivered to the session through a :class:`~quizkit.timer.ClockTicker`
polled after every input, so a quiz that runs out of time while the student
is typing is submitted as soon as the line comes back.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Literal, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import Question, QuestionType, Quiz, QuizResult, utc_now
from .scoring import ScoreBand, review_result
from .session import DEFAULT_STUDENT, QuizSession, SessionStatus
from .timer import ClockTicker

InputProvider = Callable[[], str]
ExitAction = Literal["submitted", "expired", "quit"]

_LOW_TIME_SECONDS = 300


@dataclass(frozen=True)
class SessionCommand:
    """Normalized user command parsed from console input."""

    type: Literal["next", "prev", "submit", "quit", "answer"]
    value: Optional[str] = None


@dataclass(frozen=True)
class ConsoleSessionResult:
    result: Optional[QuizResult]
    exit_action: ExitAction


def parse_session_command(raw: Optional[str]) -> Optional[SessionCommand]:
    """Parse raw input; anything that is not a command is an answer.

    A leading ``=`` forces the rest of the line to be taken as an answer, so
    ``=next`` answers "next" instead of moving on.
    """

    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    if text.startswith("="):
        value = text[1:].strip()
        return SessionCommand("answer", value) if value else None
    lowered = text.lower()
    if lowered in {"n", "next"}:
        return SessionCommand("next")
    if lowered in {"p", "prev", "previous"}:
        return SessionCommand("prev")
    if lowered in {"s", "submit"}:
        return SessionCommand("submit")
    if lowered in {"q", "quit", "exit"}:
        return SessionCommand("quit")
    return SessionCommand("answer", text)


def resolve_answer(question: Question, raw: str) -> Optional[str]:
    """Translate typed input into the stored answer for ``question``.

    Multiple-choice accepts the option text itself, an option letter or a
    1-based number; option text wins when the input could be either, so an
    option such as ``"2000"`` or ``"X"`` stays selectable. True/false accepts
    ``t``/``f``/``true``/``false``. Returns ``None`` when the input cannot be
    an answer to this question.
    """

    text = raw.strip()
    if question.type is QuestionType.MULTIPLE_CHOICE:
        options = question.options or ()
        for option in options:
            if option == text:
                return option
        for option in options:
            if option.lower() == text.lower():
                return option
        index = None
        if len(text) == 1 and text.isalpha():
            index = ord(text.upper()) - ord("A")
        elif text.isdigit():
            index = int(text) - 1
        if index is not None and 0 <= index < len(options):
            return options[index]
        return None
    if question.type is QuestionType.TRUE_FALSE:
        lowered = text.lower()
        if lowered in {"t", "true"}:
            return "true"
        if lowered in {"f", "false"}:
            return "false"
        return None
    return raw


def run_quiz_session(
    quiz: Quiz,
    console: Console,
    input_provider: InputProvider,
    *,
    student: str = DEFAULT_STUDENT,
    clock: Callable[[], float] = time.monotonic,
    now: Callable[[], datetime] = utc_now,
    logger: Optional[logging.Logger] = None,
) -> ConsoleSessionResult:
    """Run an interactive, timed session for ``quiz`` on ``console``."""

    ticker = ClockTicker(clock)
    session = QuizSession(
        quiz,
        ticker=ticker,
        student_identifier=student,
        now=now,
        logger=logger,
    )
    _render_intro(console, quiz)
    session.start()

    try:
        while session.status is SessionStatus.IN_PROGRESS:
            _render_question(console, session)
            try:
                raw = input_provider()
            except (EOFError, KeyboardInterrupt, StopIteration):
                console.print("\n[bold yellow]Session interrupted.[/]")
                break
            ticker.poll()
            if session.status is not SessionStatus.IN_PROGRESS:
                console.print(
                    "\n[bold red]Time's up![/] Submitting your answers."
                )
                break
            command = parse_session_command(raw)
            if command is None:
                console.print("[red]Unrecognized command. Try again.[/]")
                continue
            if _apply_command(command, session, console):
                break
    finally:
        session.close()

    result = session.result
    if result is None:
        console.print("[bold yellow]Ending session without submission.[/]")
        return ConsoleSessionResult(None, "quit")

    exit_action: ExitAction = (
        "expired" if session.state.expired else "submitted"
    )
    _render_summary(console, quiz, result)
    return ConsoleSessionResult(result, exit_action)


def _apply_command(
    command: SessionCommand, session: QuizSession, console: Console
) -> bool:
    """Apply ``command``; return True when the loop should stop."""

    if command.type == "next":
        if session.state.is_last:
            console.print("[dim]Already at the last question.[/]")
        session.next()
        return False
    if command.type == "prev":
        if session.state.is_first:
            console.print("[dim]Already at the first question.[/]")
        session.previous()
        return False
    if command.type == "quit":
        return True
    if command.type == "submit":
        session.submit()
        return True
    if command.type == "answer" and command.value is not None:
        question = session.current_question
        value = resolve_answer(question, command.value)
        if value is None:
            console.print(
                "[red]'%s' is not a valid answer for this question.[/red]"
                % escape(command.value)
            )
            return False
        session.set_answer(value)
        console.print(f"Answer recorded: [bold]{escape(value)}[/].")
    return False


def _render_intro(console: Console, quiz: Quiz) -> None:
    table = Table(show_header=False, box=box.SIMPLE, expand=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Questions", str(len(quiz.questions)))
    table.add_row("Minutes", str(quiz.time_limit_minutes))
    table.add_row("Total points", str(quiz.total_points))
    console.print(
        Panel(
            Text(quiz.description or "", style="dim"),
            title=Text(quiz.title),
            subtitle=Text(f"{quiz.category} · {quiz.difficulty.value}"),
            border_style="cyan",
        )
    )
    console.print(table)
    console.print(
        Text(
            "The quiz is submitted automatically when time runs out.",
            style="yellow",
        )
    )


def _render_question(console: Console, session: QuizSession) -> None:
    state = session.state
    question = state.current_question
    clock_style = (
        "bold red" if state.remaining_seconds < _LOW_TIME_SECONDS else "bold"
    )
    header = Text.assemble(
        (f"Question {state.current_index + 1}", "bold cyan"),
        (f" / {state.total_questions}", "dim"),
        ("  ", ""),
        (state.time_display, clock_style),
    )
    console.print()
    console.rule(header)
    console.print(Text(question.prompt, style="bold"))
    console.print(Text(f"Points: {question.points}", style="dim"))

    selected = state.answer_for(question.id)
    if question.type is QuestionType.SHORT_ANSWER:
        console.print(Text(f"Your answer: {selected or '—'}"))
    else:
        if question.type is QuestionType.TRUE_FALSE:
            choices = [("T", "true"), ("F", "false")]
        else:
            choices = [
                (chr(ord("A") + idx), option)
                for idx, option in enumerate(question.options or ())
            ]
        table = Table(show_header=False, box=box.SIMPLE, expand=True)
        table.add_column("Key", justify="center", style="cyan")
        table.add_column("Choice")
        for key, value in choices:
            label = Text(("• " if value == selected else "  ") + value)
            if value == selected:
                label.stylize("bold green")
            table.add_row(key, label)
        console.print(table)

    remaining = state.questions_remaining
    status = (
        "All questions answered!"
        if remaining == 0
        else f"{remaining} questions remaining"
    )
    console.print(
        Text(
            f"Answered {state.answered_count}/{state.total_questions} | "
            f"{status} | Commands: n (next), p (prev), submit, quit",
            style="dim",
        )
    )


def _render_summary(console: Console, quiz: Quiz, result: QuizResult) -> None:
    band = ScoreBand.for_percentage(result.percentage)
    reviews = review_result(quiz, result)
    console.print()
    console.rule(Text("Quiz Summary", style="bold magenta"))

    overview = Table(show_header=False, box=box.MINIMAL_DOUBLE_HEAD)
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Score", f"{result.score}/{result.total_points}")
    overview.add_row("Percentage", f"{result.percentage}%")
    overview.add_row(
        "Correct answers",
        f"{sum(1 for r in reviews if r.is_correct)}/{len(reviews)}",
    )
    overview.add_row("Result", band.label)
    console.print(overview)

    table = Table(title="Responses", box=box.SIMPLE, expand=True)
    table.add_column("#", justify="right")
    table.add_column("Question", overflow="fold")
    table.add_column("Your answer")
    table.add_column("Correct answer")
    table.add_column("Points", justify="right")
    for idx, review in enumerate(reviews, start=1):
        table.add_row(
            str(idx),
            Text(review.question.prompt),
            Text(review.answer or "—"),
            Text(review.question.correct_answer),
            f"{review.points_earned}/{review.question.points}",
        )
    console.print(table)
