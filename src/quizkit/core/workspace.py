"""Workspace layout for quizkit configuration, logs and stored data.

A workspace is one root directory holding ``config/`` (``quizkit.toml``),
``logs/`` (JSON log files) and ``data/`` (quiz and result stores).
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

WORKSPACE_ENV = "QUIZKIT_DATA_HOME"
DEFAULT_WORKSPACE = Path.home() / ".quizkit-data"

SUBDIRECTORIES = ("config", "logs", "data")


class WorkspaceError(RuntimeError):
    """Raised when the workspace cannot be located or created."""


@dataclass(frozen=True)
class WorkspaceLayout:
    """Resolved workspace paths and which of them were created just now."""

    home: Path
    directories: Mapping[str, Path]
    created: Mapping[str, bool]

    def path_for(self, key: str) -> Path:
        if key not in self.directories:
            known = ", ".join(self.directories)
            raise WorkspaceError(
                f"Unknown workspace directory '{key}' (known: {known})."
            )
        return self.directories[key]

    def items(self) -> tuple[tuple[str, Path], ...]:
        return tuple(self.directories.items())


def ensure_workspace(
    *,
    env: Mapping[str, str] | None = None,
    path: Path | None = None,
    create: bool = True,
) -> WorkspaceLayout:
    """Resolve (and by default create) the quizkit workspace.

    The root is ``path`` when given, else ``$QUIZKIT_DATA_HOME``, else
    ``~/.quizkit-data``. Only the implicit default root falls back to a
    directory under the system temp dir when it is not writable.
    """

    env_map = os.environ if env is None else env
    root, explicit = _resolve_root(env_map, path)

    roots = [root]
    if create and not explicit and _fallback_base() != root:
        roots.append(_fallback_base())

    denied: PermissionError | None = None
    for candidate in roots:
        try:
            return _build_layout(candidate, create=create)
        except PermissionError as exc:
            denied = exc
    raise WorkspaceError(f"Unable to prepare workspace at {root}") from denied


def _fallback_base() -> Path:
    return Path(tempfile.gettempdir()) / "quizkit-data"


def _resolve_root(
    env: Mapping[str, str], override: Path | None
) -> tuple[Path, bool]:
    from_env = (env.get(WORKSPACE_ENV) or "").strip()
    if override is not None:
        chosen, explicit = Path(override), True
    elif from_env:
        chosen, explicit = Path(from_env), True
    else:
        chosen, explicit = DEFAULT_WORKSPACE, False
    return chosen.expanduser().resolve(), explicit


def _build_layout(root: Path, *, create: bool) -> WorkspaceLayout:
    if root.exists() and not root.is_dir():
        raise WorkspaceError(f"Workspace path is not a directory: {root}")

    created = {"home": _ensure_dir(root) if create else False}
    directories = {}
    for name in SUBDIRECTORIES:
        target = root / name
        created[name] = _ensure_dir(target) if create else False
        if target.exists() and not target.is_dir():
            raise WorkspaceError(
                f"Workspace entry '{name}' is not a directory: {target}"
            )
        directories[name] = target

    return WorkspaceLayout(
        home=root,
        directories=MappingProxyType(directories),
        created=MappingProxyType(created),
    )


def _ensure_dir(path: Path) -> bool:
    """Create ``path`` (mode 0700) and report whether it was missing."""

    if path.is_dir():
        return False
    if path.exists():
        raise WorkspaceError(f"Expected a directory at {path}")
    path.mkdir(parents=True, exist_ok=True)
    try:
        path.chmod(0o700)
    except (PermissionError, NotImplementedError):
        pass
    return True
