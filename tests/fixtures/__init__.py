"""Shared testing fixtures for the quizkit test suite."""

from .quizzes import (  # noqa: F401
    FIXED_NOW,
    make_quiz,
    mcq,
    short_answer,
    true_false,
)
from .ticker import FakeClock, ManualTicker  # noqa: F401
from .workspace import WorkspaceBuilder  # noqa: F401

__all__ = [
    "FIXED_NOW",
    "FakeClock",
    "ManualTicker",
    "WorkspaceBuilder",
    "make_quiz",
    "mcq",
    "short_answer",
    "true_false",
]
