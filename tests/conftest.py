from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
ROOT = TESTS_DIR.parent
# Make src/ importable without an editable install
for extra in (TESTS_DIR, ROOT / "src"):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from fixtures import (  # noqa: E402
    FakeClock,
    ManualTicker,
    WorkspaceBuilder,
    make_quiz,
    mcq,
    short_answer,
    true_false,
)
from quizkit.core import logging as core_logging  # noqa: E402


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a helper bound to pytest's per-test tmp directory."""

    return WorkspaceBuilder(tmp_path)


@pytest.fixture
def ticker() -> ManualTicker:
    return ManualTicker()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(start=100.0)


@pytest.fixture
def sample_quiz():
    """Three questions worth 10 + 5 + 15 points with a one minute limit."""

    return make_quiz(
        [mcq("q1"), true_false("q2", "false"), short_answer("q3")],
        minutes=1,
    )


@pytest.fixture(autouse=True)
def _release_quizkit_logger() -> Iterator[None]:
    yield
    core_logging.release_logger(logging.getLogger("quizkit"))
