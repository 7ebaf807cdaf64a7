"""Command line entry point: ``quizkit <command> [args...]``."""

from __future__ import annotations

import argparse
import logging
import sys
from importlib import metadata
from pathlib import Path
from typing import Callable, Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from .authoring import QuizDraft, QuizValidationError
from .console import run_quiz_session
from .core import config as core_config
from .core import workspace as workspace_mod
from .core.logging import configure_logger
from .models import Difficulty, ModelError
from .scoring import ScoreBand, partition_quizzes, summarize_results
from .session import EmptyQuizError
from .settings import (
    CONFIG_TEMPLATE,
    LoadResult,
    SettingsError,
    SettingsOverrides,
    default_config_path,
    load_settings,
)
from .store import QuizStore, StoreError

CommandHandler = Callable[[argparse.Namespace, "CommandContext"], int]


class CommandContext:
    """Settings, storage and output shared by command handlers."""

    def __init__(
        self,
        loaded: LoadResult,
        *,
        console: Console,
        input_provider: Callable[[], str],
        logger: logging.Logger,
    ) -> None:
        self.loaded = loaded
        self.settings = loaded.settings
        self.store = QuizStore(loaded.data_dir)
        self.console = console
        self.input_provider = input_provider
        self.logger = logger


def _cmd_init(args: argparse.Namespace, ctx: CommandContext) -> int:
    path = default_config_path(ctx.loaded.layout)
    try:
        core_config.write_toml_template(
            path, template=CONFIG_TEMPLATE, overwrite=bool(args.force)
        )
    except core_config.TomlConfigError:
        ctx.console.print(
            f"quizkit.toml already exists at {escape(str(path))}"
        )
        return 0
    layout = ctx.loaded.layout
    ctx.console.print(f"Workspace ready at {escape(str(layout.home))}")
    for name, directory in layout.items():
        ctx.console.print(f"  {name}/ -> {escape(str(directory))}")
    ctx.console.print(f"Created template {escape(str(path))}")
    return 0


def _cmd_import(args: argparse.Namespace, ctx: CommandContext) -> int:
    source: Path = args.file
    try:
        text = source.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        ctx.console.print(
            f"[red]Error:[/] cannot read {escape(str(source))}: "
            f"{escape(str(exc))}"
        )
        return 2

    draft = QuizDraft(
        title=args.title,
        description=args.description,
        category=args.category,
        difficulty=(
            Difficulty.from_value(args.difficulty)
            if args.difficulty
            else ctx.settings.difficulty
        ),
        time_limit_minutes=(
            args.time_limit
            if args.time_limit is not None
            else ctx.settings.time_limit_minutes
        ),
    )
    outcome = draft.import_bulk(text, logger=ctx.logger)
    if not outcome.ok:
        assert outcome.diagnostic is not None
        ctx.console.print(f"[red]{outcome.diagnostic.message}[/]")
        return 1

    try:
        quiz = draft.build()
    except QuizValidationError as exc:
        for problem in exc.problems:
            ctx.console.print(f"[red]Error:[/] {escape(problem)}")
        return 2

    ctx.store.save_quiz(quiz)
    ctx.logger.info(
        "Quiz imported",
        extra={
            "quiz_id": quiz.id,
            "source": source,
            "question_count": len(quiz.questions),
            "discarded": outcome.discarded,
        },
    )

    table = Table(title=Text(quiz.title), box=box.SIMPLE, expand=True)
    table.add_column("#", justify="right")
    table.add_column("Type")
    table.add_column("Question", overflow="fold")
    table.add_column("Answer")
    table.add_column("Points", justify="right")
    for idx, question in enumerate(quiz.questions, start=1):
        table.add_row(
            str(idx),
            question.type.value,
            Text(question.prompt),
            Text(question.correct_answer),
            str(question.points),
        )
    ctx.console.print(table)
    ctx.console.print(
        f"Successfully imported {len(quiz.questions)} questions "
        f"as quiz {quiz.id}."
    )
    if outcome.discarded:
        ctx.console.print(
            f"[yellow]Skipped {outcome.discarded} incomplete question(s).[/]"
        )
    return 0


def _cmd_list(args: argparse.Namespace, ctx: CommandContext) -> int:
    quizzes = ctx.store.load_quizzes()
    if not quizzes:
        ctx.console.print("No quizzes found. Run 'quizkit import' first.")
        return 1
    student = args.student or ctx.settings.student
    available, completed = partition_quizzes(
        quizzes, ctx.store.load_results(student)
    )
    table = Table(box=box.SIMPLE, expand=True)
    table.add_column("ID")
    table.add_column("Title")
    table.add_column("Category")
    table.add_column("Difficulty")
    table.add_column("Questions", justify="right")
    table.add_column("Minutes", justify="right")
    table.add_column("Status")
    for label, group in (("available", available), ("completed", completed)):
        for quiz in group:
            table.add_row(
                Text(quiz.id),
                Text(quiz.title),
                Text(quiz.category),
                quiz.difficulty.value,
                str(len(quiz.questions)),
                str(quiz.time_limit_minutes),
                label,
            )
    ctx.console.print(table)
    return 0


def _cmd_take(args: argparse.Namespace, ctx: CommandContext) -> int:
    quiz = ctx.store.get_quiz(args.quiz_id)
    if quiz is None:
        ctx.console.print(
            f"[red]Error:[/] no quiz with id {escape(args.quiz_id)}"
        )
        return 1
    student = args.student or ctx.settings.student
    try:
        outcome = run_quiz_session(
            quiz,
            ctx.console,
            ctx.input_provider,
            student=student,
            logger=ctx.logger.getChild("session"),
        )
    except EmptyQuizError as exc:
        ctx.console.print(f"[red]Error:[/] {escape(str(exc))}")
        return 1
    if outcome.result is None:
        return 1
    ctx.store.save_result(outcome.result)
    return 0


def _cmd_results(args: argparse.Namespace, ctx: CommandContext) -> int:
    results = ctx.store.load_results(args.student)
    if not results:
        ctx.console.print("No results recorded yet.")
        return 1
    titles = {quiz.id: quiz.title for quiz in ctx.store.load_quizzes()}
    table = Table(box=box.SIMPLE, expand=True)
    table.add_column("Completed")
    table.add_column("Student")
    table.add_column("Quiz")
    table.add_column("Score", justify="right")
    table.add_column("%", justify="right")
    table.add_column("Result")
    for result in sorted(results, key=lambda r: r.completed_at):
        table.add_row(
            result.completed_at.strftime("%Y-%m-%d %H:%M"),
            Text(result.student_identifier),
            Text(titles.get(result.quiz_id, result.quiz_id)),
            f"{result.score}/{result.total_points}",
            str(result.percentage),
            ScoreBand.for_percentage(result.percentage).label,
        )
    ctx.console.print(table)
    summary = summarize_results(results)
    ctx.console.print(
        f"Attempts: {summary.attempts}  "
        f"Average score: {summary.average_percentage}%"
    )
    return 0


_HANDLERS: dict[str, CommandHandler] = {
    "init": _cmd_init,
    "import": _cmd_import,
    "list": _cmd_list,
    "take": _cmd_take,
    "results": _cmd_results,
}


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="quizkit",
        description="Author, take and score timed quizzes from the terminal.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument(
        "-V", "--version", action="store_true", help="Show version and exit"
    )
    p.add_argument(
        "--workspace",
        type=Path,
        help=(
            "Workspace root (defaults to QUIZKIT_DATA_HOME or "
            "~/.quizkit-data)"
        ),
    )
    p.add_argument("--config", type=Path, help="Path to a quizkit.toml file")
    p.add_argument("--log-level", help="Log level for the JSON log file")
    p.add_argument(
        "--verbose", action="store_true", default=None, help="Log to stderr"
    )
    sub = p.add_subparsers(dest="command")

    sp_init = sub.add_parser(
        "init", help="Create the workspace and a quizkit.toml template"
    )
    sp_init.add_argument(
        "--force", action="store_true", help="Overwrite an existing config"
    )

    sp_import = sub.add_parser(
        "import", help="Create a quiz from a bulk-import text file"
    )
    sp_import.add_argument("file", type=Path)
    sp_import.add_argument("--title", required=True)
    sp_import.add_argument("--description", required=True)
    sp_import.add_argument("--category", required=True)
    sp_import.add_argument(
        "--difficulty",
        choices=[d.value for d in Difficulty],
        help="Defaults to [authoring].difficulty",
    )
    sp_import.add_argument(
        "--time-limit",
        type=int,
        help="Minutes; defaults to [authoring].time_limit_minutes",
    )

    sp_list = sub.add_parser("list", help="List stored quizzes")
    sp_list.add_argument("--student")

    sp_take = sub.add_parser("take", help="Take a quiz in the terminal")
    sp_take.add_argument("quiz_id")
    sp_take.add_argument("--student")

    sp_results = sub.add_parser("results", help="Show recorded results")
    sp_results.add_argument("--student")
    return p


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    console: Optional[Console] = None,
    input_provider: Optional[Callable[[], str]] = None,
) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    out = console or Console()

    if args.version:
        try:
            version = metadata.version("quizkit")
        except metadata.PackageNotFoundError:
            version = "unknown"
        out.print(version)
        return 0
    if not args.command:
        parser.print_help()
        return 2

    try:
        loaded = load_settings(
            config_path=args.config,
            overrides=SettingsOverrides(
                student=getattr(args, "student", None),
                log_level=args.log_level,
                verbose=args.verbose,
            ),
            workspace_path=args.workspace,
        )
    except SettingsError as exc:
        sys.stderr.write(f"Error: {exc}\n")
        return 2

    logger, _ = configure_logger(
        "quizkit",
        log_dir=loaded.log_dir,
        level=loaded.settings.log_level,
        verbose=loaded.settings.verbose,
    )
    logger.debug("quizkit CLI invoked", extra={"command": args.command})

    ctx = CommandContext(
        loaded,
        console=out,
        input_provider=input_provider or (lambda: out.input("> ")),
        logger=logger,
    )
    try:
        return _HANDLERS[args.command](args, ctx)
    except (StoreError, ModelError, workspace_mod.WorkspaceError) as exc:
        logger.error("Command failed", extra={"command": args.command})
        sys.stderr.write(f"Error: {exc}\n")
        return 2


if __name__ == "__main__":  # pragma: no cover - manual invocation guard
    raise SystemExit(main())
