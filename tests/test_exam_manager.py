from __future__ import annotations

import pytest

from conftest import FakeGenerator, make_exam
from exam_app.core.app_state import UserRole, ViewState
from exam_app.core.exam_manager import ExamManager
from exam_app.core.ingestion import content_ingestion
from exam_app.core.ingestion.content_ingestion import (
    ContentIngestionService,
    IngestionCancelled,
    IngestionError,
)
from exam_app.core.models import QuestionType
from exam_app.core.services.exam_repository import ExamRepository
from exam_app.core.services.exam_session import SessionPhase
from exam_app.core.services.result_store import ResultStore


@pytest.fixture
def stocked(manager: ExamManager) -> ExamManager:
    assert manager.login_admin("letmein")
    manager.save_exam(make_exam(question_count=5, cap=3))
    manager.logout()
    return manager


@pytest.fixture
def fake_pdf(monkeypatch):
    monkeypatch.setattr(
        content_ingestion, "extract_text_from_pdf", lambda source: "\n--- Page 1 ---\nQ1"
    )


def _answer_correctly(session) -> None:
    for index in range(session.question_count):
        session.go_to(index)
        question = session.get_current_question()
        session.select_option(f"{question.id}-b")


def test_wrong_access_key_is_rejected(manager):
    assert manager.login_admin("nope") is False
    assert manager.get_app_state().role is UserRole.NONE


def test_only_admins_store_exams(manager):
    manager.enter_as_student()
    with pytest.raises(PermissionError):
        manager.save_exam(make_exam())
    with pytest.raises(PermissionError):
        manager.delete_exam("exam-1")


def test_exams_are_listed_newest_first(manager):
    manager.login_admin("letmein")
    manager.save_exam(make_exam(exam_id="old", created_at=1))
    manager.save_exam(make_exam(exam_id="new", created_at=2))

    assert [exam.id for exam in manager.list_exams()] == ["new", "old"]


def test_session_respects_question_cap_and_leaves_exam_untouched(stocked):
    stocked.enter_as_student()

    session = stocked.start_session("exam-1")

    assert session.question_count == 3
    assert len(stocked.get_exam("exam-1").questions) == 5
    assert stocked.get_app_state().view is ViewState.EXAM_TAKER
    assert stocked.get_app_state().active_session_id == session.session_id


def test_admin_cannot_take_exams(stocked):
    stocked.login_admin("letmein")
    with pytest.raises(PermissionError):
        stocked.start_session("exam-1")


def test_unknown_exam_cannot_be_started(stocked):
    stocked.enter_as_student()
    with pytest.raises(KeyError):
        stocked.start_session("missing")


def test_submit_scores_records_and_shows_result(stocked):
    stocked.enter_as_student()
    session = stocked.start_session("exam-1")
    session.start(True)
    _answer_correctly(session)

    result = stocked.submit_session(session.session_id)

    assert (result.score, result.total_questions) == (3, 3)
    assert stocked.get_last_result() == result
    assert stocked.get_session_result(session.session_id) == result
    assert stocked.list_results("exam-1") == [result]
    assert stocked.get_app_state().view is ViewState.EXAM_RESULT
    assert stocked.get_session(session.session_id) is None
    assert stocked.submit_session(session.session_id) == result
    assert len(stocked.list_results()) == 1


def test_timer_expiry_records_result_once():
    manager = ExamManager(
        repository=ExamRepository(),
        results=ResultStore(),
        ingestion=ContentIngestionService(None),
        admin_access_key="k",
        duration_seconds=1,
        timer_factory=None,
    )
    manager.login_admin("k")
    manager.save_exam(make_exam(question_count=2))
    manager.logout()
    manager.enter_as_student()
    session = manager.start_session("exam-1")
    session.start(True)

    session.tick()
    session.tick()

    assert session.submitted_by_timer
    assert len(manager.list_results()) == 1
    assert manager.submit_session(session.session_id).score == 0
    assert manager.get_app_state().view is ViewState.EXAM_RESULT


def test_exit_session_discards_attempt(stocked):
    stocked.enter_as_student()
    session = stocked.start_session("exam-1")

    stocked.exit_session(session.session_id)

    assert session.phase is SessionPhase.EXITED
    assert stocked.list_results() == []
    assert stocked.get_app_state().view is ViewState.STUDENT_DASHBOARD
    with pytest.raises(KeyError):
        stocked.exit_session(session.session_id)


def test_logout_abandons_active_session(stocked):
    stocked.enter_as_student()
    session = stocked.start_session("exam-1")
    session.start(True)

    stocked.logout()

    assert session.phase is SessionPhase.EXITED
    assert stocked.get_app_state().role is UserRole.NONE


def test_pdf_import_opens_unsaved_draft(manager, fake_pdf):
    manager.login_admin("letmein")

    draft = manager.import_pdfs([("paper.pdf", "paper.pdf")])

    assert manager.get_draft() == draft
    assert manager.get_app_state().view is ViewState.EXAM_EDITOR
    assert manager.get_app_state().draft_exam_id == draft.id
    assert manager.list_exams() == []

    saved = manager.save_draft()

    assert manager.get_exam(saved.id) == draft
    assert manager.get_draft() is None
    assert manager.get_app_state().view is ViewState.ADMIN_DASHBOARD


def test_failed_import_keeps_dashboard(fake_pdf):
    manager = ExamManager(
        repository=ExamRepository(),
        results=ResultStore(),
        ingestion=ContentIngestionService(lambda: FakeGenerator(error=RuntimeError("boom"))),
        admin_access_key="k",
        timer_factory=None,
    )
    manager.login_admin("k")

    with pytest.raises(IngestionError):
        manager.import_pdfs([("paper.pdf", "paper.pdf")])
    assert manager.get_app_state().view is ViewState.ADMIN_DASHBOARD
    assert manager.get_draft() is None


def test_draft_editing_and_discard(stocked):
    stocked.login_admin("letmein")
    stocked.edit_exam("exam-1")

    editor = stocked.edit_draft()
    editor.set_title("Revised")
    stocked.replace_draft(editor.build())
    assert stocked.get_draft().title == "Revised"

    other = make_exam(exam_id="other")
    with pytest.raises(ValueError):
        stocked.replace_draft(other)

    stocked.discard_draft()
    assert stocked.get_exam("exam-1").title == "Physics Mock"
    with pytest.raises(RuntimeError):
        stocked.edit_draft()


def test_editing_unknown_exam_raises(manager):
    manager.login_admin("letmein")
    with pytest.raises(KeyError):
        manager.edit_exam("missing")


def test_gate_session_runs_generated_exam_without_storing(manager, generator):
    manager.enter_as_student()
    manager.open_gate_explorer()

    session = manager.start_gate_session("PH", 2023)

    assert '"GATE Physics 2023 Exam"' in generator.prompts[0][0]
    assert [q.type for q in session.exam.questions] == [QuestionType.MCQ, QuestionType.INTEGER]
    assert manager.list_exams() == []
    assert manager.get_app_state().view is ViewState.EXAM_TAKER

    session.start(True)
    session.select_option(session.exam.questions[0].options[1].id)
    session.go_to(1)
    session.enter_numeric("8.0")
    assert manager.submit_session(session.session_id).score == 2


def test_gate_session_requires_explorer_view(manager):
    manager.enter_as_student()
    with pytest.raises(ValueError):
        manager.start_gate_session("PH", 2023)


class UnwritableResultStore(ResultStore):
    def append(self, result) -> None:
        raise OSError("disk full")


def test_unwritable_result_store_still_finishes_the_attempt():
    manager = ExamManager(
        repository=ExamRepository(),
        results=UnwritableResultStore(),
        ingestion=ContentIngestionService(None),
        admin_access_key="k",
        timer_factory=None,
    )
    manager.login_admin("k")
    manager.save_exam(make_exam(question_count=2))
    manager.logout()
    manager.enter_as_student()
    session = manager.start_session("exam-1")
    session.start(True)
    _answer_correctly(session)

    result = manager.submit_session(session.session_id)

    assert result.score == 2
    assert manager.get_session(session.session_id) is None
    assert manager.get_last_result() == result
    state = manager.get_app_state()
    assert state.view is ViewState.EXAM_RESULT
    assert state.active_session_id is None
    assert manager.submit_session(session.session_id) == result


def test_running_import_can_be_cancelled(manager, fake_pdf, generator):
    manager.login_admin("letmein")
    assert manager.cancel_import() is False

    def cancel_while_extracting(message: str) -> None:
        if message.startswith("Extracting"):
            assert manager.cancel_import() is True

    with pytest.raises(IngestionCancelled):
        manager.import_pdfs([("paper.pdf", "paper.pdf")], on_status=cancel_while_extracting)

    assert generator.prompts == []
    assert manager.get_draft() is None
    assert manager.get_app_state().view is ViewState.ADMIN_DASHBOARD
    assert manager.cancel_import() is False


def test_students_cannot_cancel_imports(manager):
    manager.enter_as_student()
    with pytest.raises(PermissionError):
        manager.cancel_import()
