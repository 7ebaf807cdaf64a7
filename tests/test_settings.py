from __future__ import annotations

import pytest

from quizkit.models import Difficulty
from quizkit.settings import (
    CONFIG_ENV,
    CONFIG_TEMPLATE,
    SettingsError,
    SettingsOverrides,
    default_config_path,
    load_settings,
)


def write_config(loaded_home, text: str):
    path = loaded_home / "config" / "quizkit.toml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_without_config(tmp_path) -> None:
    loaded = load_settings(env={}, workspace_path=tmp_path)

    settings = loaded.settings
    assert settings.student == "Anonymous"
    assert settings.time_limit_minutes == 30
    assert settings.difficulty is Difficulty.EASY
    assert settings.log_level == "INFO"
    assert settings.verbose is False
    assert loaded.config_path is None
    assert loaded.data_dir == tmp_path.resolve() / "data"
    assert loaded.log_dir.is_dir()


def test_template_parses_to_defaults(tmp_path) -> None:
    write_config(tmp_path, CONFIG_TEMPLATE)

    loaded = load_settings(env={}, workspace_path=tmp_path)

    assert loaded.config_path == default_config_path(loaded.layout)
    assert loaded.settings.student == "Anonymous"
    assert loaded.settings.time_limit_minutes == 30


def test_precedence_cli_over_env_over_file(tmp_path) -> None:
    write_config(
        tmp_path,
        '[session]\nstudent = "File"\n\n[logging]\nlevel = "warning"\n'
        "verbose = true\n",
    )
    env = {"QUIZKIT_STUDENT": "Env", "QUIZKIT_LOG_LEVEL": "error"}

    from_env = load_settings(env=env, workspace_path=tmp_path).settings
    assert from_env.student == "Env"
    assert from_env.log_level == "ERROR"
    assert from_env.verbose is True

    from_cli = load_settings(
        env=env,
        workspace_path=tmp_path,
        overrides=SettingsOverrides(
            student="Cli", log_level="debug", verbose=False
        ),
    ).settings
    assert from_cli.student == "Cli"
    assert from_cli.log_level == "DEBUG"
    assert from_cli.verbose is False

    from_file = load_settings(env={}, workspace_path=tmp_path).settings
    assert from_file.student == "File"
    assert from_file.log_level == "WARNING"


def test_authoring_section_is_applied(tmp_path) -> None:
    write_config(
        tmp_path,
        '[authoring]\ntime_limit_minutes = 45\ndifficulty = "hard"\n',
    )

    settings = load_settings(env={}, workspace_path=tmp_path).settings

    assert settings.time_limit_minutes == 45
    assert settings.difficulty is Difficulty.HARD


def test_explicit_config_path_must_exist(tmp_path) -> None:
    with pytest.raises(SettingsError, match="not found"):
        load_settings(
            env={},
            workspace_path=tmp_path,
            config_path=tmp_path / "missing.toml",
        )


def test_config_env_variable_is_used(tmp_path) -> None:
    custom = tmp_path / "elsewhere.toml"
    custom.write_text('[session]\nstudent = "Env File"\n', encoding="utf-8")

    loaded = load_settings(
        env={CONFIG_ENV: str(custom)}, workspace_path=tmp_path / "ws"
    )

    assert loaded.config_path == custom
    assert loaded.settings.student == "Env File"


@pytest.mark.parametrize(
    "text,match",
    [
        ("[session]\nname = 'x'\n", "Unknown configuration key"),
        ("[authoring]\ntime_limit_minutes = 0\n", "positive integer"),
        ("[authoring]\ndifficulty = 'brutal'\n", "Unknown difficulty"),
        ("[logging]\nlevel = 'loud'\n", "Unknown log level"),
        ("[session]\nstudent = '  '\n", "non-empty"),
        ("[session\n", "parse"),
    ],
)
def test_invalid_config_raises(tmp_path, text, match) -> None:
    write_config(tmp_path, text)

    with pytest.raises(SettingsError, match=match):
        load_settings(env={}, workspace_path=tmp_path)


def test_workspace_errors_become_settings_errors(tmp_path) -> None:
    target = tmp_path / "file"
    target.write_text("x", encoding="utf-8")

    with pytest.raises(SettingsError):
        load_settings(env={}, workspace_path=target)
