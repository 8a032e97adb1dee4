"""Service for storing and retrieving exams."""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from threading import Lock

from exam_app.core.exam_serializer import exam_from_dict, exam_to_dict
from exam_app.core.models import Exam, QuestionType
from exam_app.core.services.json_file_store import JsonFileStore

logger = logging.getLogger(__name__)


class ExamRepository:
    """Keyed exam store; re-saving an id replaces it in place, a new id appends."""

    def __init__(self, path: Path | None = None) -> None:
        self._lock = Lock()
        self._store = JsonFileStore(path)
        self._exams: list[Exam] = [exam_from_dict(item) for item in self._store.load()]

    def list(self) -> list[Exam]:
        """Return copies of all exams in insertion order."""
        with self._lock:
            return [copy.deepcopy(exam) for exam in self._exams]

    def get_by_id(self, exam_id: str) -> Exam | None:
        with self._lock:
            index = self._index_of(exam_id)
            if index < 0:
                return None
            return copy.deepcopy(self._exams[index])

    def upsert(self, exam: Exam) -> None:
        self._validate(exam)
        stored = copy.deepcopy(exam)
        with self._lock:
            updated = list(self._exams)
            index = self._index_of(exam.id)
            if index >= 0:
                updated[index] = stored
            else:
                updated.append(stored)
            self._store.save([exam_to_dict(item) for item in updated])
            self._exams = updated
        logger.info("Saved exam %s (%d question(s))", exam.id, len(exam.questions))

    def delete(self, exam_id: str) -> None:
        with self._lock:
            remaining = [exam for exam in self._exams if exam.id != exam_id]
            if len(remaining) == len(self._exams):
                return
            self._store.save([exam_to_dict(item) for item in remaining])
            self._exams = remaining
        logger.info("Deleted exam %s", exam_id)

    def _index_of(self, exam_id: str) -> int:
        return next((i for i, exam in enumerate(self._exams) if exam.id == exam_id), -1)

    @staticmethod
    def _validate(exam: Exam) -> None:
        if not exam.id.strip():
            raise ValueError("Exam id must not be empty.")
        seen: set[str] = set()
        for question in exam.questions:
            if question.id in seen:
                raise ValueError(f"Duplicate question id '{question.id}'.")
            seen.add(question.id)
            if question.type is QuestionType.MCQ and question.correct_option_count() > 1:
                raise ValueError(
                    f"Question '{question.id}' marks more than one option as correct."
                )
