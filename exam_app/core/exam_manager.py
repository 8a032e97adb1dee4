"""Business logic shared by the API: exams, drafts, sessions and results."""

from __future__ import annotations

from collections.abc import Iterable
import logging
from pathlib import Path
import random
from threading import Event, Lock
from typing import BinaryIO

from exam_app.constants.exam_constants import DEFAULT_EXAM_DURATION_SECONDS
from exam_app.core.app_state import AppEvent, AppState, UserRole, ViewState, apply_event
from exam_app.core.exam_editor import ExamEditor
from exam_app.core.ingestion.content_ingestion import (
    ContentIngestionService,
    StatusCallback,
    gate_topic,
)
from exam_app.core.ingestion.gemini_client import GeminiClient
from exam_app.core.models import Exam, ExamResult, StudentAnswer
from exam_app.core.scoring import score_exam
from exam_app.core.services.exam_repository import ExamRepository
from exam_app.core.services.exam_session import ExamSession, TimerFactory
from exam_app.core.services.exam_timer import ExamTimer
from exam_app.core.services.result_store import ResultStore
from exam_app.core.session_builder import build_session
from exam_app.utils.settings import AppSettings

logger = logging.getLogger(__name__)


class ExamManager:
    """Facade over the repository, result store, ingestion and live sessions.

    Navigation follows the transition table in `app_state`; operations that
    the current view does not allow raise ValueError, and admin-only
    operations raise PermissionError for anyone else.
    """

    def __init__(
        self,
        repository: ExamRepository,
        results: ResultStore,
        ingestion: ContentIngestionService,
        admin_access_key: str,
        duration_seconds: int = DEFAULT_EXAM_DURATION_SECONDS,
        timer_factory: TimerFactory | None = ExamTimer,
        rng: random.Random | None = None,
    ) -> None:
        self._lock = Lock()

        # Services
        self._repository = repository
        self._results = results
        self._ingestion = ingestion

        self._admin_access_key = admin_access_key
        self._duration_seconds = duration_seconds
        self._timer_factory = timer_factory
        self._rng = rng

        self._state = AppState()
        self._draft: Exam | None = None
        self._import_cancel: Event | None = None
        self._sessions: dict[str, ExamSession] = {}
        self._session_results: dict[str, ExamResult] = {}
        self._last_result: ExamResult | None = None

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "ExamManager":
        api_key = settings.gemini_api_key
        factory = (lambda: GeminiClient(api_key)) if api_key else None
        return cls(
            repository=ExamRepository(settings.exams_path),
            results=ResultStore(settings.results_path),
            ingestion=ContentIngestionService(factory),
            admin_access_key=settings.admin_access_key,
        )

    # --- Navigation ---

    def get_app_state(self) -> AppState:
        with self._lock:
            return self._state

    def login_admin(self, access_key: str) -> bool:
        with self._lock:
            if access_key != self._admin_access_key:
                logger.warning("Rejected admin login attempt")
                return False
            self._state = apply_event(self._state, AppEvent.ADMIN_LOGIN)
            return True

    def enter_as_student(self) -> None:
        with self._lock:
            self._state = apply_event(self._state, AppEvent.STUDENT_ENTER)

    def open_gate_explorer(self) -> None:
        with self._lock:
            self._state = apply_event(self._state, AppEvent.OPEN_GATE_EXPLORER)

    def leave_gate_explorer(self) -> None:
        with self._lock:
            self._state = apply_event(self._state, AppEvent.LEAVE_GATE_EXPLORER)

    def back_to_dashboard(self) -> None:
        with self._lock:
            self._state = apply_event(self._state, AppEvent.BACK_TO_DASHBOARD)

    def logout(self) -> None:
        with self._lock:
            active = self._sessions.pop(self._state.active_session_id or "", None)
            if active is not None:
                active.exit()
            self._draft = None
            self._state = apply_event(self._state, AppEvent.LOGOUT)

    # --- Exam Repository Delegation ---

    def list_exams(self) -> list[Exam]:
        """All stored exams, newest first."""
        return sorted(self._repository.list(), key=lambda exam: exam.created_at, reverse=True)

    def get_exam(self, exam_id: str) -> Exam | None:
        return self._repository.get_by_id(exam_id)

    def save_exam(self, exam: Exam) -> None:
        with self._lock:
            self._require_admin()
        self._repository.upsert(exam)

    def delete_exam(self, exam_id: str) -> None:
        with self._lock:
            self._require_admin()
        self._repository.delete(exam_id)

    # --- Drafts ---

    def import_pdfs(
        self,
        files: Iterable[tuple[str, str | Path | BinaryIO]],
        on_status: StatusCallback | None = None,
        cancel_event: Event | None = None,
    ) -> Exam:
        """Build a draft from uploaded PDFs and open it in the editor.

        Nothing is stored; a failed import leaves the repository untouched.
        """
        with self._lock:
            self._require_admin()
            self._require_view(ViewState.ADMIN_DASHBOARD)
            if self._import_cancel is not None:
                raise RuntimeError("Another PDF import is already running.")
            cancel = cancel_event or Event()
            self._import_cancel = cancel
        try:
            draft = self._ingestion.ingest_pdf_files(files, on_status=on_status, cancel_event=cancel)
        finally:
            with self._lock:
                self._import_cancel = None
        self._open_draft(draft)
        return draft

    def cancel_import(self) -> bool:
        """Ask a running PDF import to stop at its next checkpoint.

        A model call already in flight is not interrupted; its answer is
        discarded. Returns False when no import is running.
        """
        with self._lock:
            self._require_admin()
            if self._import_cancel is None:
                return False
            self._import_cancel.set()
        logger.info("PDF import cancellation requested")
        return True

    def edit_exam(self, exam_id: str) -> Exam:
        exam = self._repository.get_by_id(exam_id)
        if exam is None:
            raise KeyError(exam_id)
        with self._lock:
            self._require_admin()
            self._require_view(ViewState.ADMIN_DASHBOARD)
        self._open_draft(exam)
        return exam

    def get_draft(self) -> Exam | None:
        with self._lock:
            return self._draft

    def edit_draft(self) -> ExamEditor:
        """Return an editor over the current draft; apply it with `replace_draft`."""
        with self._lock:
            if self._draft is None:
                raise RuntimeError("No draft exam is open.")
            return ExamEditor(self._draft)

    def replace_draft(self, exam: Exam) -> None:
        with self._lock:
            if self._draft is None:
                raise RuntimeError("No draft exam is open.")
            if exam.id != self._draft.id:
                raise ValueError("Draft id cannot change while editing.")
            self._draft = exam

    def save_draft(self) -> Exam:
        with self._lock:
            self._require_admin()
            if self._draft is None:
                raise RuntimeError("No draft exam is open.")
            draft = self._draft
        self._repository.upsert(draft)
        with self._lock:
            self._draft = None
            self._state = apply_event(self._state, AppEvent.CLOSE_EDITOR)
        return draft

    def discard_draft(self) -> None:
        with self._lock:
            self._draft = None
            self._state = apply_event(self._state, AppEvent.CLOSE_EDITOR)

    # --- Sessions ---

    def start_session(self, exam_id: str) -> ExamSession:
        exam = self._repository.get_by_id(exam_id)
        if exam is None:
            raise KeyError(exam_id)
        return self._begin_session(build_session(exam, self._rng))

    def start_gate_session(
        self,
        branch_code: str,
        year: int,
        on_status: StatusCallback | None = None,
    ) -> ExamSession:
        """Generate a GATE paper for the topic and start it without storing it."""
        with self._lock:
            self._require_view(ViewState.GATE_EXPLORER)
        topic = gate_topic(branch_code, year)
        exam = self._ingestion.generate_topic_exam(topic, on_status=on_status)
        return self._begin_session(exam)

    def get_session(self, session_id: str) -> ExamSession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def submit_session(self, session_id: str) -> ExamResult:
        with self._lock:
            session = self._sessions.get(session_id)
            finished = self._session_results.get(session_id)
        if session is None:
            if finished is not None:
                return finished
            raise KeyError(session_id)
        # Scoring runs in `_record_submission`; a timer expiry may already have done it.
        if session.submit() is None and not session.wait_for_submission(timeout=5.0):
            raise RuntimeError("Exam session ended without a submission.")
        with self._lock:
            return self._session_results[session_id]

    def exit_session(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
            if session is None:
                raise KeyError(session_id)
            session.exit()
            if self._state.active_session_id == session_id:
                self._state = apply_event(self._state, AppEvent.EXIT_EXAM)

    def get_session_result(self, session_id: str) -> ExamResult | None:
        with self._lock:
            return self._session_results.get(session_id)

    # --- Results ---

    def get_last_result(self) -> ExamResult | None:
        with self._lock:
            return self._last_result

    def list_results(self, exam_id: str | None = None) -> list[ExamResult]:
        if exam_id is None:
            return self._results.list_all()
        return self._results.list_for_exam(exam_id)

    # --- Internals ---

    def _open_draft(self, draft: Exam) -> None:
        with self._lock:
            self._draft = draft
            self._state = apply_event(self._state, AppEvent.OPEN_DRAFT, draft_exam_id=draft.id)

    def _begin_session(self, session_exam: Exam) -> ExamSession:
        session = ExamSession(
            session_exam,
            duration_seconds=self._duration_seconds,
            on_submit=self._record_submission,
            timer_factory=self._timer_factory,
        )
        with self._lock:
            if self._state.role is not UserRole.STUDENT:
                raise PermissionError("Only students can take exams.")
            self._state = apply_event(
                self._state, AppEvent.START_EXAM, session_id=session.session_id
            )
            self._sessions[session.session_id] = session
        logger.info(
            "Prepared session %s for exam %s with %d question(s)",
            session.session_id,
            session_exam.id,
            len(session_exam.questions),
        )
        return session

    def _record_submission(self, session: ExamSession, answers: list[StudentAnswer]) -> None:
        result = score_exam(session.exam, answers)
        with self._lock:
            self._sessions.pop(session.session_id, None)
            self._session_results[session.session_id] = result
            self._last_result = result
            if self._state.active_session_id == session.session_id:
                self._state = apply_event(self._state, AppEvent.FINISH_EXAM)
        try:
            self._results.append(result)
        except OSError:
            logger.exception(
                "Could not store result for session %s; keeping it in memory only",
                session.session_id,
            )

    def _require_admin(self) -> None:
        if self._state.role is not UserRole.ADMIN:
            raise PermissionError("Administrator access is required.")

    def _require_view(self, view: ViewState) -> None:
        if self._state.view is not view:
            raise ValueError(
                f"Operation not available from {self._state.view.value}."
            )
