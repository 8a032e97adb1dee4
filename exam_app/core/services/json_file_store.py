"""Atomic JSON list persistence shared by the exam and result stores."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
import tempfile
from typing import Any

logger = logging.getLogger(__name__)


class JsonFileStore:
    """Reads and writes a JSON array, replacing the file atomically on save.

    With `path=None` records only live in memory.
    """

    def __init__(self, path: Path | None) -> None:
        self._path = path
        self._memory: list[dict[str, Any]] = []

    @property
    def path(self) -> Path | None:
        return self._path

    def load(self) -> list[dict[str, Any]]:
        if self._path is None:
            return list(self._memory)
        if not self._path.exists():
            return []
        text = self._path.read_text(encoding="utf-8")
        if not text.strip():
            return []
        data = json.loads(text)
        if not isinstance(data, list):
            raise ValueError(f"{self._path} must contain a JSON array.")
        return data

    def save(self, records: list[dict[str, Any]]) -> None:
        if self._path is None:
            self._memory = list(records)
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(records, handle, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Wrote %d record(s) to %s", len(records), self._path)
