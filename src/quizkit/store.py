"""JSONL storage for quizzes and results used by the command line tools.

The session machine and scorer never touch this module; it is the storage
collaborator the CLI plugs in.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional, Sequence

from .models import ModelError, Quiz, QuizResult

__all__ = [
    "QUIZZES_FILENAME",
    "RESULTS_FILENAME",
    "QuizStore",
    "StoreError",
    "read_jsonl",
    "write_jsonl",
]

QUIZZES_FILENAME = "quizzes.jsonl"
RESULTS_FILENAME = "results.jsonl"


class StoreError(RuntimeError):
    """Raised when stored records cannot be read or decoded."""


def read_jsonl(path: Path) -> List[dict]:
    data: List[dict] = []
    p = Path(path)
    if not p.exists():
        return data
    with p.open("r", encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as exc:
                raise StoreError(
                    f"{p}:{lineno}: invalid JSON record ({exc.msg})"
                ) from exc
            if not isinstance(record, dict):
                raise StoreError(
                    f"{p}:{lineno}: expected a JSON object, found "
                    f"{type(record).__name__}"
                )
            data.append(record)
    return data


def write_jsonl(path: Path, records: Sequence[dict]) -> None:
    """Atomically replace the contents of ``path`` with ``records``."""

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_suffix(p.suffix + ".tmp")
    try:
        with tmp.open("w", encoding="utf-8") as fh:
            for rec in records:
                fh.write(json.dumps(rec, ensure_ascii=False))
                fh.write("\n")
        tmp.replace(p)
    finally:
        tmp.unlink(missing_ok=True)


def _append_jsonl(path: Path, record: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(record, ensure_ascii=False))
        fh.write("\n")


class QuizStore:
    """Quizzes and results kept as two JSONL files under ``root``."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    @property
    def quizzes_path(self) -> Path:
        return self.root / QUIZZES_FILENAME

    @property
    def results_path(self) -> Path:
        return self.root / RESULTS_FILENAME

    def load_quizzes(self) -> List[Quiz]:
        return [
            self._decode(Quiz.from_dict, record, self.quizzes_path)
            for record in read_jsonl(self.quizzes_path)
        ]

    def get_quiz(self, quiz_id: str) -> Optional[Quiz]:
        for quiz in self.load_quizzes():
            if quiz.id == quiz_id:
                return quiz
        return None

    def save_quiz(self, quiz: Quiz) -> None:
        """Insert ``quiz`` or replace the stored quiz with the same id."""

        records = [
            record
            for record in read_jsonl(self.quizzes_path)
            if record.get("id") != quiz.id
        ]
        records.append(quiz.to_dict())
        write_jsonl(self.quizzes_path, records)

    def save_result(self, result: QuizResult) -> None:
        _append_jsonl(self.results_path, result.to_dict())

    def load_results(self, student: Optional[str] = None) -> List[QuizResult]:
        results = [
            self._decode(QuizResult.from_dict, record, self.results_path)
            for record in read_jsonl(self.results_path)
        ]
        if student is None:
            return results
        return [r for r in results if r.student_identifier == student]

    @staticmethod
    def _decode(factory, record: dict, path: Path):
        try:
            return factory(record)
        except ModelError as exc:
            raise StoreError(f"{path}: {exc}") from exc
