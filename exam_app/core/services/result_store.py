"""Append-only store of exam results."""

from __future__ import annotations

import logging
from pathlib import Path
from threading import Lock

from exam_app.core.exam_serializer import result_from_dict, result_to_dict
from exam_app.core.models import ExamResult
from exam_app.core.services.json_file_store import JsonFileStore

logger = logging.getLogger(__name__)


class ResultStore:
    """Keeps every submitted result in submission order."""

    def __init__(self, path: Path | None = None) -> None:
        self._lock = Lock()
        self._store = JsonFileStore(path)
        self._results: list[ExamResult] = [result_from_dict(item) for item in self._store.load()]

    def append(self, result: ExamResult) -> None:
        with self._lock:
            updated = [*self._results, result]
            self._store.save([result_to_dict(item) for item in updated])
            self._results = updated
        logger.info(
            "Recorded result for exam %s: %d/%d",
            result.exam_id,
            result.score,
            result.total_questions,
        )

    def list_all(self) -> list[ExamResult]:
        with self._lock:
            return list(self._results)

    def list_for_exam(self, exam_id: str) -> list[ExamResult]:
        with self._lock:
            return [result for result in self._results if result.exam_id == exam_id]
