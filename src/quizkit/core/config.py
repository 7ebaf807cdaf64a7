"""TOML helpers shared by the quizkit settings loader."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Mapping, MutableMapping

try:  # Python >= 3.11 ships ``tomllib`` in the stdlib.
    import tomllib
except ModuleNotFoundError as exc:  # pragma: no cover
    raise RuntimeError("Python 3.11+ is required for tomllib.") from exc

__all__ = [
    "TomlConfigError",
    "load_toml",
    "load_with_defaults",
    "merge_defaults",
    "write_toml_template",
]


class TomlConfigError(RuntimeError):
    """Raised when a config file cannot be read, parsed or merged."""


def load_toml(path: Path) -> Mapping[str, Any]:
    """Parse the TOML document at ``path``.

    IO and syntax problems surface as :class:`TomlConfigError`.
    """

    try:
        raw = path.read_bytes()
    except FileNotFoundError as exc:
        raise TomlConfigError(f"Config file not found: {path}") from exc
    except OSError as exc:
        raise TomlConfigError(f"Cannot read config {path}: {exc}") from exc
    try:
        return tomllib.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        raise TomlConfigError(f"Failed to parse {path.name}: {exc}") from exc


def merge_defaults(
    base: MutableMapping[str, Any],
    override: Mapping[str, Any],
    *,
    path: str = "",
) -> None:
    """Overlay ``override`` onto ``base`` in place.

    Every key must already exist in ``base`` and keep the kind of value the
    default has (table, boolean, integer or string).
    """

    for key, value in override.items():
        dotted = f"{path}{key}"
        if key not in base:
            raise TomlConfigError(f"Unknown configuration key '{dotted}'.")
        default = base[key]
        if isinstance(default, MutableMapping):
            if not isinstance(value, Mapping):
                raise TomlConfigError(
                    f"Expected a [{dotted}] table, found "
                    f"{type(value).__name__}."
                )
            merge_defaults(default, value, path=f"{dotted}.")
        elif _kind(default) != _kind(value):
            raise TomlConfigError(
                f"'{dotted}' must be {_kind(default)}, found "
                f"{_kind(value)}."
            )
        else:
            base[key] = value


def load_with_defaults(
    path: Path | None, defaults: Mapping[str, Any]
) -> dict[str, Any]:
    """Return a deep copy of ``defaults`` overlaid with the TOML at ``path``.

    ``path=None`` yields the defaults untouched.
    """

    table: dict[str, Any] = copy.deepcopy(dict(defaults))
    if path is not None:
        merge_defaults(table, load_toml(path))
    return table


def write_toml_template(
    path: Path,
    *,
    template: str,
    overwrite: bool = False,
    mode: int = 0o600,
) -> Path:
    """Write ``template`` to ``path``; existing files need ``overwrite``."""

    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with path.open("w" if overwrite else "x", encoding="utf-8") as fh:
            fh.write(template)
    except FileExistsError as exc:
        raise TomlConfigError(f"Config already exists: {path}") from exc
    try:
        path.chmod(mode)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
    return path


def _kind(value: Any) -> str:
    if isinstance(value, bool):
        return "a boolean"
    if isinstance(value, int):
        return "an integer"
    if isinstance(value, str):
        return "a string"
    if isinstance(value, Mapping):
        return "a table"
    return f"a {type(value).__name__}"
