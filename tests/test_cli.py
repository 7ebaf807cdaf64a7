from __future__ import annotations

import json

import pytest
from rich.console import Console

from quizkit import cli
from quizkit.importer import BULK_IMPORT_EXAMPLE
from quizkit.store import QuizStore


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "QUIZKIT_DATA_HOME",
        "QUIZKIT_CONFIG",
        "QUIZKIT_STUDENT",
        "QUIZKIT_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


def make_console() -> Console:
    return Console(record=True, width=200, force_terminal=True)


def make_provider(commands: list[str]):
    iterator = iter(commands)

    def _provider() -> str:
        return next(iterator)

    return _provider


def run_cli(ws, *args, commands=None):
    console = make_console()
    code = cli.main(
        ["--workspace", str(ws), *args],
        console=console,
        input_provider=make_provider(commands or []),
    )
    return code, console.export_text()


def import_example(ws, workspace, **extra):
    source = workspace.write("bulk.txt", BULK_IMPORT_EXAMPLE)
    args = [
        "import",
        str(source),
        "--title",
        "General",
        "--description",
        "Mixed questions",
        "--category",
        "General Knowledge",
    ]
    for key, value in extra.items():
        args.extend([f"--{key.replace('_', '-')}", str(value)])
    return run_cli(ws, *args)


def only_quiz(ws):
    (quiz,) = QuizStore(ws.resolve() / "data").load_quizzes()
    return quiz


def test_no_command_prints_help(capsys) -> None:
    assert cli.main([], console=make_console()) == 2
    assert "usage: quizkit" in capsys.readouterr().out


def test_version_flag() -> None:
    console = make_console()
    assert cli.main(["--version"], console=console) == 0
    assert console.export_text().strip()


def test_init_writes_template_once(tmp_path) -> None:
    ws = tmp_path / "ws"

    code, output = run_cli(ws, "init")
    assert code == 0
    assert "Created template" in output
    for name in ("config", "logs", "data"):
        assert f"{name}/ -> {ws.resolve() / name}" in output
    config = ws / "config" / "quizkit.toml"
    assert "[authoring]" in config.read_text(encoding="utf-8")

    code, output = run_cli(ws, "init")
    assert code == 0
    assert "already exists" in output

    config.write_text("# edited\n", encoding="utf-8")
    code, _ = run_cli(ws, "init", "--force")
    assert code == 0
    assert "[session]" in config.read_text(encoding="utf-8")


def test_import_creates_quiz(tmp_path, workspace) -> None:
    ws = tmp_path / "ws"

    code, output = import_example(ws, workspace, difficulty="Hard")

    assert code == 0
    quiz = only_quiz(ws)
    assert f"Successfully imported 3 questions as quiz {quiz.id}." in output
    assert quiz.title == "General"
    assert quiz.difficulty.value == "Hard"
    assert quiz.time_limit_minutes == 30
    assert quiz.total_points == 30

    log_path = ws / "logs" / "quizkit.log"
    messages = [
        json.loads(line)["message"]
        for line in log_path.read_text(encoding="utf-8").splitlines()
    ]
    assert "Quiz imported" in messages


def test_import_uses_configured_time_limit(tmp_path, workspace) -> None:
    ws = tmp_path / "ws"
    config = ws / "config" / "quizkit.toml"
    config.parent.mkdir(parents=True)
    config.write_text(
        "[authoring]\ntime_limit_minutes = 12\n", encoding="utf-8"
    )

    code, _ = import_example(ws, workspace)

    assert code == 0
    assert only_quiz(ws).time_limit_minutes == 12


def test_import_without_questions_reports_diagnostic(
    tmp_path, workspace
) -> None:
    ws = tmp_path / "ws"
    source = workspace.write("empty.txt", "just some notes\n")

    code, output = run_cli(
        ws,
        "import",
        str(source),
        "--title",
        "T",
        "--description",
        "D",
        "--category",
        "Science",
    )

    assert code == 1
    assert "No valid questions found. Please check the format." in output
    assert QuizStore(ws.resolve() / "data").load_quizzes() == []


def test_import_missing_file(tmp_path) -> None:
    code, output = run_cli(
        tmp_path / "ws",
        "import",
        str(tmp_path / "missing.txt"),
        "--title",
        "T",
        "--description",
        "D",
        "--category",
        "Science",
    )
    assert code == 2
    assert "cannot read" in output


def test_import_blank_title_is_rejected(tmp_path, workspace) -> None:
    ws = tmp_path / "ws"
    source = workspace.write("bulk.txt", BULK_IMPORT_EXAMPLE)

    code, output = run_cli(
        ws,
        "import",
        str(source),
        "--title",
        " ",
        "--description",
        "D",
        "--category",
        "Science",
    )

    assert code == 2
    assert "Quiz title is required." in output


def test_list_take_and_results(tmp_path, workspace) -> None:
    ws = tmp_path / "ws"

    code, output = run_cli(ws, "list")
    assert code == 1
    assert "No quizzes found" in output

    import_example(ws, workspace)
    quiz = only_quiz(ws)

    code, output = run_cli(ws, "list", "--student", "Ana")
    assert code == 0
    assert "General" in output
    assert "available" in output

    code, output = run_cli(
        ws,
        "take",
        quiz.id,
        "--student",
        "Ana",
        commands=["c", "n", "f", "n", "JavaScript", "submit"],
    )
    assert code == 0
    assert "Quiz Summary" in output
    assert "Excellent!" in output

    code, output = run_cli(ws, "list", "--student", "Ana")
    assert "completed" in output
    assert "available" not in output

    code, output = run_cli(ws, "results", "--student", "Ana")
    assert code == 0
    assert "Excellent!" in output
    assert "Attempts: 1  Average score: 100%" in output


def test_take_quit_records_nothing(tmp_path, workspace) -> None:
    ws = tmp_path / "ws"
    import_example(ws, workspace)
    quiz = only_quiz(ws)

    code, output = run_cli(ws, "take", quiz.id, commands=["q"])

    assert code == 1
    assert "Ending session without submission." in output
    assert QuizStore(ws.resolve() / "data").load_results() == []


def test_take_unknown_quiz(tmp_path) -> None:
    code, output = run_cli(tmp_path / "ws", "take", "quiz_missing")
    assert code == 1
    assert "no quiz with id quiz_missing" in output


def test_results_empty(tmp_path) -> None:
    code, output = run_cli(tmp_path / "ws", "results")
    assert code == 1
    assert "No results recorded yet." in output


def test_invalid_config_exits_with_error(tmp_path, capsys) -> None:
    ws = tmp_path / "ws"
    config = ws / "config" / "quizkit.toml"
    config.parent.mkdir(parents=True)
    config.write_text("[logging]\nlevel = 'loud'\n", encoding="utf-8")

    code, _ = run_cli(ws, "list")

    assert code == 2
    assert "Unknown log level" in capsys.readouterr().err


def test_corrupt_store_exits_with_error(tmp_path, capsys) -> None:
    ws = tmp_path / "ws"
    data = ws / "data"
    data.mkdir(parents=True)
    (data / "quizzes.jsonl").write_text("{broken\n", encoding="utf-8")

    code, _ = run_cli(ws, "list")

    assert code == 2
    assert "invalid JSON record" in capsys.readouterr().err


def test_bracketed_quiz_text_survives_import_take_and_results(
    tmp_path, workspace
) -> None:
    ws = tmp_path / "ws"
    source = workspace.write(
        "tags.txt",
        "Q: What does [/i] close?\n"
        "Type: short-answer\n"
        "Answer: [/b] and [/i]\n"
        "Points: 4\n",
    )

    code, output = run_cli(
        ws,
        "import",
        str(source),
        "--title",
        "Tags [/b]",
        "--description",
        "Closing [/i] tags",
        "--category",
        "Markup",
    )
    assert code == 0
    assert "What does [/i] close?" in output
    assert "Tags [/b]" in output
    quiz = only_quiz(ws)

    code, output = run_cli(ws, "list")
    assert code == 0
    assert "Tags [/b]" in output

    code, output = run_cli(
        ws,
        "take",
        quiz.id,
        "--student",
        "[b]Ana",
        commands=["[/b] and [/i]", "submit"],
    )
    assert code == 0
    assert "Quiz Summary" in output
    (result,) = QuizStore(ws.resolve() / "data").load_results()
    assert result.score == 4
    assert result.student_identifier == "[b]Ana"

    code, output = run_cli(ws, "results", "--student", "[b]Ana")
    assert code == 0
    assert "[b]Ana" in output
    assert "Tags [/b]" in output
