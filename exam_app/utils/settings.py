"""Environment-driven settings for the exam application."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from exam_app.constants.exam_constants import DEFAULT_ADMIN_ACCESS_KEY
from exam_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT

_DEFAULT_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


@dataclass(slots=True, frozen=True)
class AppSettings:
    """Runtime settings resolved once at start-up."""

    data_dir: Path
    gemini_api_key: str | None = None
    admin_access_key: str = DEFAULT_ADMIN_ACCESS_KEY
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    @property
    def exams_path(self) -> Path:
        return self.data_dir / "exams.json"

    @property
    def results_path(self) -> Path:
        return self.data_dir / "results.json"

    @classmethod
    def from_env(cls) -> "AppSettings":
        raw_port = os.environ.get("EXAM_APP_PORT")
        try:
            port = int(raw_port) if raw_port else DEFAULT_PORT
        except ValueError as exc:
            raise ValueError(f"EXAM_APP_PORT must be an integer, got {raw_port!r}.") from exc
        return cls(
            data_dir=Path(os.environ.get("EXAM_APP_DATA_DIR", _DEFAULT_DATA_DIR)),
            gemini_api_key=os.environ.get("GEMINI_API_KEY") or None,
            admin_access_key=os.environ.get("EXAM_APP_ADMIN_KEY", DEFAULT_ADMIN_ACCESS_KEY),
            host=os.environ.get("EXAM_APP_HOST", DEFAULT_HOST),
            port=port,
        )
