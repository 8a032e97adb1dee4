"""FastAPI server exposing exam authoring and exam taking."""

from __future__ import annotations

from threading import Thread
from typing import Any, Literal

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from pydantic import BaseModel
import uvicorn

from exam_app.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION
from exam_app.constants.ingestion_constants import GATE_BRANCHES, GATE_YEARS
from exam_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from exam_app.core.app_state import AppState, UserRole
from exam_app.core.exam_manager import ExamManager
from exam_app.core.exam_serializer import ExamRecord, exam_to_dict, result_to_dict
from exam_app.core.ingestion.content_ingestion import IngestionCancelled, IngestionError
from exam_app.core.markdown_math_renderer import renderer
from exam_app.core.models import ActionResult, Exam
from exam_app.core.services.exam_session import ExamSession


class LoginPayload(BaseModel):
    access_key: str


class StartSessionPayload(BaseModel):
    exam_id: str


class GateSessionPayload(BaseModel):
    branch: str
    year: int


class AcknowledgePayload(BaseModel):
    agreed_to_instructions: bool = False


class AnswerPayload(BaseModel):
    """Exactly one of the two fields is expected, matching the question type."""

    selected_option_id: str | None = None
    numeric_input: str | None = None


class NavigatePayload(BaseModel):
    index: int | None = None
    direction: Literal["next", "prev"] | None = None


def _get_exam_manager_dependency(exam_manager: ExamManager):
    def dependency() -> ExamManager:
        return exam_manager

    return dependency


def _state_payload(state: AppState) -> dict[str, object]:
    return {
        "role": state.role.value,
        "view": state.view.value,
        "active_session_id": state.active_session_id,
        "draft_exam_id": state.draft_exam_id,
    }


def _exam_summary(exam: Exam) -> dict[str, object]:
    """Student-safe listing entry; carries no answer keys."""
    return {
        "id": exam.id,
        "title": exam.title,
        "createdAt": exam.created_at,
        "questionCount": len(exam.questions),
        "maxQuestionsToAttempt": exam.max_questions_to_attempt,
    }


def _session_payload(session: ExamSession) -> dict[str, object]:
    payload = session.snapshot()
    current = payload.get("current_question")
    if isinstance(current, dict):
        payload["current_question"] = renderer.decorate_question(current)
    return payload


def _action_payload(outcome: ActionResult, session: ExamSession) -> dict[str, object]:
    return {
        "accepted": outcome.accepted,
        "message": outcome.message,
        "session": _session_payload(session),
    }


def _translate(exc: Exception) -> HTTPException:
    if isinstance(exc, KeyError):
        return HTTPException(status_code=404, detail=f"Not found: {exc.args[0] if exc.args else ''}")
    if isinstance(exc, PermissionError):
        return HTTPException(status_code=403, detail=str(exc))
    if isinstance(exc, IngestionCancelled):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, IngestionError):
        return HTTPException(status_code=502, detail=str(exc))
    if isinstance(exc, (ValueError, IndexError)):
        return HTTPException(status_code=422, detail=str(exc))
    return HTTPException(status_code=409, detail=str(exc))


_HANDLED = (KeyError, PermissionError, IngestionError, ValueError, IndexError, RuntimeError)


def create_api_app(exam_manager: ExamManager) -> FastAPI:
    """Create a FastAPI application wired to the provided exam manager."""
    app = FastAPI(title=f"{APP_NAME} API", version=APP_VERSION)
    manager_dep = _get_exam_manager_dependency(exam_manager)

    def _session_or_404(manager: ExamManager, session_id: str) -> ExamSession:
        session = manager.get_session(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail="Exam session not found.")
        return session

    @app.get("/")
    def about() -> dict[str, object]:
        return {"name": APP_NAME, "version": APP_VERSION, "license": APP_LICENSE, "about": APP_ABOUT_TEXT}

    # --- Navigation ---

    @app.get("/api/state")
    def get_state(manager: ExamManager = Depends(manager_dep)) -> dict[str, object]:
        return _state_payload(manager.get_app_state())

    @app.post("/admin/login")
    def admin_login(payload: LoginPayload, manager: ExamManager = Depends(manager_dep)) -> dict[str, object]:
        try:
            accepted = manager.login_admin(payload.access_key)
        except _HANDLED as exc:
            raise _translate(exc) from exc
        if not accepted:
            raise HTTPException(status_code=401, detail="Incorrect Access Key. Please try again.")
        return _state_payload(manager.get_app_state())

    @app.post("/api/student/enter")
    def student_enter(manager: ExamManager = Depends(manager_dep)) -> dict[str, object]:
        try:
            manager.enter_as_student()
        except _HANDLED as exc:
            raise _translate(exc) from exc
        return _state_payload(manager.get_app_state())

    @app.post("/api/logout")
    def logout(manager: ExamManager = Depends(manager_dep)) -> dict[str, object]:
        manager.logout()
        return _state_payload(manager.get_app_state())

    @app.post("/api/results/back")
    def back_to_dashboard(manager: ExamManager = Depends(manager_dep)) -> dict[str, object]:
        try:
            manager.back_to_dashboard()
        except _HANDLED as exc:
            raise _translate(exc) from exc
        return _state_payload(manager.get_app_state())

    # --- Exams ---

    @app.get("/api/exams")
    def list_exams(manager: ExamManager = Depends(manager_dep)) -> list[dict[str, object]]:
        return [_exam_summary(exam) for exam in manager.list_exams()]

    @app.get("/api/exams/{exam_id}")
    def get_exam(exam_id: str, manager: ExamManager = Depends(manager_dep)) -> dict[str, Any]:
        if manager.get_app_state().role is not UserRole.ADMIN:
            raise HTTPException(status_code=403, detail="Administrator access is required.")
        exam = manager.get_exam(exam_id)
        if exam is None:
            raise HTTPException(status_code=404, detail="Exam not found.")
        return exam_to_dict(exam)

    @app.post("/api/exams", status_code=201)
    def create_exam(payload: ExamRecord, manager: ExamManager = Depends(manager_dep)) -> dict[str, Any]:
        try:
            exam = payload.to_exam()
            manager.save_exam(exam)
        except _HANDLED as exc:
            raise _translate(exc) from exc
        return exam_to_dict(exam)

    @app.put("/api/exams/{exam_id}")
    def update_exam(
        exam_id: str,
        payload: ExamRecord,
        manager: ExamManager = Depends(manager_dep),
    ) -> dict[str, Any]:
        if payload.id != exam_id:
            raise HTTPException(status_code=422, detail="Exam id in body does not match the URL.")
        try:
            exam = payload.to_exam()
            manager.save_exam(exam)
        except _HANDLED as exc:
            raise _translate(exc) from exc
        return exam_to_dict(exam)

    @app.delete("/api/exams/{exam_id}")
    def delete_exam(exam_id: str, manager: ExamManager = Depends(manager_dep)) -> dict[str, object]:
        try:
            manager.delete_exam(exam_id)
        except _HANDLED as exc:
            raise _translate(exc) from exc
        return {"deleted": exam_id}

    @app.post("/api/exams/upload", status_code=201)
    def upload_exam(
        files: list[UploadFile] = File(...),
        manager: ExamManager = Depends(manager_dep),
    ) -> dict[str, Any]:
        statuses: list[str] = []
        try:
            draft = manager.import_pdfs(
                [(upload.filename or "upload.pdf", upload.file) for upload in files],
                on_status=statuses.append,
            )
        except _HANDLED as exc:
            raise _translate(exc) from exc
        return {"draft": exam_to_dict(draft), "statuses": statuses}

    @app.post("/api/exams/upload/cancel")
    def cancel_upload(manager: ExamManager = Depends(manager_dep)) -> dict[str, object]:
        try:
            cancelled = manager.cancel_import()
        except _HANDLED as exc:
            raise _translate(exc) from exc
        return {"cancelled": cancelled}

    @app.post("/api/exams/{exam_id}/edit")
    def edit_exam(exam_id: str, manager: ExamManager = Depends(manager_dep)) -> dict[str, Any]:
        try:
            draft = manager.edit_exam(exam_id)
        except _HANDLED as exc:
            raise _translate(exc) from exc
        return exam_to_dict(draft)

    # --- Draft editor ---

    @app.get("/api/draft")
    def get_draft(manager: ExamManager = Depends(manager_dep)) -> dict[str, Any]:
        draft = manager.get_draft()
        if draft is None:
            raise HTTPException(status_code=404, detail="No draft exam is open.")
        return exam_to_dict(draft)

    @app.put("/api/draft")
    def replace_draft(payload: ExamRecord, manager: ExamManager = Depends(manager_dep)) -> dict[str, Any]:
        try:
            exam = payload.to_exam()
            if any(q.correct_option_count() > 1 for q in exam.questions):
                raise ValueError("A question can only have one correct option.")
            manager.replace_draft(exam)
        except _HANDLED as exc:
            raise _translate(exc) from exc
        return exam_to_dict(exam)

    @app.post("/api/draft/questions/{question_index}/options/{option_index}/toggle-correct")
    def toggle_correct_option(
        question_index: int,
        option_index: int,
        manager: ExamManager = Depends(manager_dep),
    ) -> dict[str, Any]:
        try:
            editor = manager.edit_draft()
            editor.toggle_correct_option(question_index, option_index)
            exam = editor.build()
            manager.replace_draft(exam)
        except _HANDLED as exc:
            raise _translate(exc) from exc
        return exam_to_dict(exam)

    @app.post("/api/draft/save")
    def save_draft(manager: ExamManager = Depends(manager_dep)) -> dict[str, Any]:
        try:
            exam = manager.save_draft()
        except _HANDLED as exc:
            raise _translate(exc) from exc
        return exam_to_dict(exam)

    @app.post("/api/draft/discard")
    def discard_draft(manager: ExamManager = Depends(manager_dep)) -> dict[str, object]:
        try:
            manager.discard_draft()
        except _HANDLED as exc:
            raise _translate(exc) from exc
        return _state_payload(manager.get_app_state())

    # --- GATE explorer ---

    @app.get("/api/gate/catalogue")
    def gate_catalogue() -> dict[str, object]:
        return {
            "branches": [{"id": code, "name": name} for code, name in GATE_BRANCHES.items()],
            "years": list(GATE_YEARS),
        }

    @app.post("/api/gate/open")
    def open_gate(manager: ExamManager = Depends(manager_dep)) -> dict[str, object]:
        try:
            manager.open_gate_explorer()
        except _HANDLED as exc:
            raise _translate(exc) from exc
        return _state_payload(manager.get_app_state())

    @app.post("/api/gate/leave")
    def leave_gate(manager: ExamManager = Depends(manager_dep)) -> dict[str, object]:
        try:
            manager.leave_gate_explorer()
        except _HANDLED as exc:
            raise _translate(exc) from exc
        return _state_payload(manager.get_app_state())

    @app.post("/api/gate/sessions", status_code=201)
    def start_gate_session(
        payload: GateSessionPayload,
        manager: ExamManager = Depends(manager_dep),
    ) -> dict[str, object]:
        try:
            session = manager.start_gate_session(payload.branch, payload.year)
        except _HANDLED as exc:
            raise _translate(exc) from exc
        return _session_payload(session)

    # --- Sessions ---

    @app.post("/api/sessions", status_code=201)
    def start_session(
        payload: StartSessionPayload,
        manager: ExamManager = Depends(manager_dep),
    ) -> dict[str, object]:
        try:
            session = manager.start_session(payload.exam_id)
        except _HANDLED as exc:
            raise _translate(exc) from exc
        return _session_payload(session)

    @app.get("/api/sessions/{session_id}")
    def get_session(session_id: str, manager: ExamManager = Depends(manager_dep)) -> dict[str, object]:
        return _session_payload(_session_or_404(manager, session_id))

    @app.post("/api/sessions/{session_id}/start")
    def begin_session(
        session_id: str,
        payload: AcknowledgePayload,
        manager: ExamManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = _session_or_404(manager, session_id)
        try:
            session.start(payload.agreed_to_instructions)
        except _HANDLED as exc:
            raise _translate(exc) from exc
        return _session_payload(session)

    @app.post("/api/sessions/{session_id}/answer")
    def record_answer(
        session_id: str,
        payload: AnswerPayload,
        manager: ExamManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = _session_or_404(manager, session_id)
        try:
            if payload.selected_option_id is not None:
                session.select_option(payload.selected_option_id)
            elif payload.numeric_input is not None:
                session.enter_numeric(payload.numeric_input)
            else:
                raise ValueError("Provide selected_option_id or numeric_input.")
        except _HANDLED as exc:
            raise _translate(exc) from exc
        return _session_payload(session)

    def _palette_action(manager: ExamManager, session_id: str, action: str) -> dict[str, object]:
        session = _session_or_404(manager, session_id)
        try:
            outcome = getattr(session, action)()
        except _HANDLED as exc:
            raise _translate(exc) from exc
        return _action_payload(outcome, session)

    @app.post("/api/sessions/{session_id}/clear")
    def clear_response(session_id: str, manager: ExamManager = Depends(manager_dep)) -> dict[str, object]:
        return _palette_action(manager, session_id, "clear_response")

    @app.post("/api/sessions/{session_id}/save-next")
    def save_and_next(session_id: str, manager: ExamManager = Depends(manager_dep)) -> dict[str, object]:
        return _palette_action(manager, session_id, "save_and_next")

    @app.post("/api/sessions/{session_id}/save-mark-review")
    def save_and_mark(session_id: str, manager: ExamManager = Depends(manager_dep)) -> dict[str, object]:
        return _palette_action(manager, session_id, "save_and_mark_for_review")

    @app.post("/api/sessions/{session_id}/mark-review-next")
    def mark_and_next(session_id: str, manager: ExamManager = Depends(manager_dep)) -> dict[str, object]:
        return _palette_action(manager, session_id, "mark_for_review_and_next")

    @app.post("/api/sessions/{session_id}/navigate")
    def navigate(
        session_id: str,
        payload: NavigatePayload,
        manager: ExamManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = _session_or_404(manager, session_id)
        try:
            if payload.index is not None:
                session.go_to(payload.index)
            elif payload.direction == "next":
                session.next()
            elif payload.direction == "prev":
                session.previous()
            else:
                raise ValueError("Provide an index or a direction.")
        except _HANDLED as exc:
            raise _translate(exc) from exc
        return _session_payload(session)

    @app.post("/api/sessions/{session_id}/submit")
    def submit_session(session_id: str, manager: ExamManager = Depends(manager_dep)) -> dict[str, object]:
        try:
            result = manager.submit_session(session_id)
        except _HANDLED as exc:
            raise _translate(exc) from exc
        return result_to_dict(result)

    @app.get("/api/sessions/{session_id}/result")
    def get_session_result(session_id: str, manager: ExamManager = Depends(manager_dep)) -> dict[str, object]:
        result = manager.get_session_result(session_id)
        if result is None:
            raise HTTPException(status_code=404, detail="No result for this session yet.")
        return result_to_dict(result)

    @app.delete("/api/sessions/{session_id}")
    def exit_session(session_id: str, manager: ExamManager = Depends(manager_dep)) -> dict[str, object]:
        try:
            manager.exit_session(session_id)
        except _HANDLED as exc:
            raise _translate(exc) from exc
        return _state_payload(manager.get_app_state())

    # --- Results ---

    @app.get("/api/results")
    def list_results(
        exam_id: str | None = None,
        manager: ExamManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        return [result_to_dict(result) for result in manager.list_results(exam_id)]

    return app


def start_api_server(
    exam_manager: ExamManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> Thread:
    """Start the FastAPI server in a background daemon thread."""
    app = create_api_app(exam_manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)

    def run_server() -> None:
        server.run()

    thread = Thread(target=run_server, name="ExamApiServer", daemon=True)
    thread.start()
    return thread
