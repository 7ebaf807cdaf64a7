"""Configuration loader for the quizkit command line."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional

from .authoring import DEFAULT_TIME_LIMIT_MINUTES
from .core import config as core_config
from .core import workspace as workspace_mod
from .models import Difficulty, ModelError
from .session import DEFAULT_STUDENT

CONFIG_FILENAME = "quizkit.toml"
CONFIG_ENV = "QUIZKIT_CONFIG"
ENV_PREFIX = "QUIZKIT_"

_DEFAULT_LOG_LEVEL = "INFO"
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

CONFIG_TEMPLATE = """\
# quizkit configuration

[session]
# Name recorded on results when --student is not given.
student = "{student}"

[authoring]
# Defaults applied to quizzes created with `quizkit import`.
time_limit_minutes = {time_limit}
difficulty = "{difficulty}"

[logging]
level = "{level}"
verbose = false
""".format(
    student=DEFAULT_STUDENT,
    time_limit=DEFAULT_TIME_LIMIT_MINUTES,
    difficulty=Difficulty.EASY.value,
    level=_DEFAULT_LOG_LEVEL,
)


class SettingsError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class QuizkitSettings:
    """Fully resolved settings for one CLI invocation."""

    student: str
    time_limit_minutes: int
    difficulty: Difficulty
    log_level: str
    verbose: bool


@dataclass(frozen=True)
class SettingsOverrides:
    """CLI-sourced values applied on top of env and file options."""

    student: Optional[str] = None
    log_level: Optional[str] = None
    verbose: Optional[bool] = None


@dataclass(frozen=True)
class LoadResult:
    settings: QuizkitSettings
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]

    @property
    def data_dir(self) -> Path:
        return self.layout.path_for("data")

    @property
    def log_dir(self) -> Path:
        return self.layout.path_for("logs")


def default_config_path(layout: workspace_mod.WorkspaceLayout) -> Path:
    return layout.path_for("config") / CONFIG_FILENAME


def load_settings(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[SettingsOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Resolve settings with precedence CLI > env > TOML > defaults.

    A missing default config file is fine; a missing file that was asked for
    explicitly (argument or ``QUIZKIT_CONFIG``) is an error.
    """

    overrides = overrides or SettingsOverrides()
    env_map = os.environ if env is None else env

    try:
        layout = workspace_mod.ensure_workspace(
            env=env_map, path=workspace_path
        )
    except workspace_mod.WorkspaceError as exc:
        raise SettingsError(str(exc)) from exc

    explicit = config_path or _env_path(env_map)
    requested = explicit or default_config_path(layout)
    loaded: Optional[Path] = None
    if requested.exists():
        loaded = requested
    elif explicit is not None:
        raise SettingsError(f"Config file not found: {requested}")

    try:
        table = core_config.load_with_defaults(loaded, _default_table())
    except core_config.TomlConfigError as exc:
        raise SettingsError(str(exc)) from exc

    student = _pick_first(
        overrides.student,
        _env_string(env_map, "STUDENT"),
        table["session"]["student"],
    )
    log_level = _pick_first(
        overrides.log_level,
        _env_string(env_map, "LOG_LEVEL"),
        table["logging"]["level"],
    )
    verbose = _pick_first(overrides.verbose, table["logging"]["verbose"])

    settings = QuizkitSettings(
        student=_require_text(student, "session.student"),
        time_limit_minutes=_require_positive_int(
            table["authoring"]["time_limit_minutes"],
            "authoring.time_limit_minutes",
        ),
        difficulty=_parse_difficulty(table["authoring"]["difficulty"]),
        log_level=_normalize_log_level(log_level),
        verbose=bool(verbose),
    )
    return LoadResult(settings=settings, layout=layout, config_path=loaded)


def _default_table() -> MutableMapping[str, MutableMapping[str, Any]]:
    return {
        "session": {"student": DEFAULT_STUDENT},
        "authoring": {
            "time_limit_minutes": DEFAULT_TIME_LIMIT_MINUTES,
            "difficulty": Difficulty.EASY.value,
        },
        "logging": {"level": _DEFAULT_LOG_LEVEL, "verbose": False},
    }


def _env_path(env_map: Mapping[str, str]) -> Optional[Path]:
    candidate = (env_map.get(CONFIG_ENV) or "").strip()
    return Path(candidate).expanduser() if candidate else None


def _env_string(env_map: Mapping[str, str], suffix: str) -> Optional[str]:
    value = env_map.get(ENV_PREFIX + suffix)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _pick_first(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def _require_text(value: object, key: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise SettingsError(f"'{key}' must be a non-empty string.")
    return value.strip()


def _require_positive_int(value: object, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise SettingsError(f"'{key}' must be a positive integer.")
    return value


def _parse_difficulty(value: object) -> Difficulty:
    try:
        return Difficulty.from_value(str(value))
    except ModelError as exc:
        raise SettingsError(str(exc)) from exc


def _normalize_log_level(value: object) -> str:
    level = str(value).strip().upper()
    if level not in _LOG_LEVELS:
        expected = ", ".join(sorted(_LOG_LEVELS))
        raise SettingsError(
            f"Unknown log level '{value}'. Expected one of: {expected}."
        )
    return level
