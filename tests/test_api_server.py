from __future__ import annotations

from fastapi.testclient import TestClient
import pytest

from conftest import FakeGenerator, make_exam
from exam_app.core.exam_manager import ExamManager
from exam_app.core.exam_serializer import exam_to_dict
from exam_app.core.ingestion import content_ingestion
from exam_app.core.ingestion.content_ingestion import ContentIngestionService
from exam_app.core.services.exam_repository import ExamRepository
from exam_app.core.services.result_store import ResultStore
from exam_app.server.api_server import create_api_app


@pytest.fixture
def client(manager: ExamManager) -> TestClient:
    return TestClient(create_api_app(manager))


@pytest.fixture
def admin(client: TestClient) -> TestClient:
    response = client.post("/admin/login", json={"access_key": "letmein"})
    assert response.status_code == 200
    return client


@pytest.fixture
def student(admin: TestClient) -> TestClient:
    assert admin.post("/api/exams", json=exam_to_dict(make_exam(question_count=3))).status_code == 201
    admin.post("/api/logout")
    assert admin.post("/api/student/enter").json()["view"] == "STUDENT_DASHBOARD"
    return admin


def _start(client: TestClient) -> dict:
    response = client.post("/api/sessions", json={"exam_id": "exam-1"})
    assert response.status_code == 201
    session = response.json()
    started = client.post(
        f"/api/sessions/{session['session_id']}/start", json={"agreed_to_instructions": True}
    )
    assert started.status_code == 200
    return started.json()


def test_about(client):
    assert client.get("/").json()["name"] == "ExamDesk"


def test_login_with_wrong_key_is_unauthorized(client):
    response = client.post("/admin/login", json={"access_key": "guess"})

    assert response.status_code == 401
    assert client.get("/api/state").json()["role"] == "NONE"


def test_admin_creates_and_reads_exam(admin):
    record = exam_to_dict(make_exam(question_count=2, cap=1))

    created = admin.post("/api/exams", json=record)

    assert created.status_code == 201
    assert admin.get("/api/exams/exam-1").json() == record


def test_invalid_exam_is_unprocessable(admin):
    record = exam_to_dict(make_exam(question_count=1))
    record["questions"][0]["options"][0]["isCorrect"] = True

    assert admin.post("/api/exams", json=record).status_code == 422


def test_put_requires_matching_id(admin):
    record = exam_to_dict(make_exam())
    assert admin.put("/api/exams/other", json=record).status_code == 422


def test_students_see_summaries_only(student):
    listing = student.get("/api/exams").json()

    assert listing == [
        {
            "id": "exam-1",
            "title": "Physics Mock",
            "createdAt": make_exam().created_at,
            "questionCount": 3,
            "maxQuestionsToAttempt": None,
        }
    ]
    assert student.get("/api/exams/exam-1").status_code == 403
    assert student.delete("/api/exams/exam-1").status_code == 403


def test_session_requires_acknowledged_instructions(student):
    session = student.post("/api/sessions", json={"exam_id": "exam-1"}).json()

    response = student.post(f"/api/sessions/{session['session_id']}/start", json={})

    assert response.status_code == 422
    assert session["phase"] == "instructions"


def test_session_view_hides_answer_key_and_renders_html(student):
    session = _start(student)

    question = session["current_question"]
    assert "html" in question
    assert all("is_correct" not in option for option in question["options"])
    assert session["palette"][0]["status"] == "not_answered"
    assert session["time_left_display"] == "03:00:00"


def test_full_attempt_through_the_api(student):
    session = _start(student)
    sid = session["session_id"]

    rejected = student.post(f"/api/sessions/{sid}/save-mark-review").json()
    assert rejected["accepted"] is False
    assert rejected["session"]["current_question_index"] == 0

    for index in range(session["question_count"]):
        view = student.post(f"/api/sessions/{sid}/navigate", json={"index": index}).json()
        qid = view["current_question"]["id"]
        answered = student.post(f"/api/sessions/{sid}/answer", json={"selected_option_id": f"{qid}-b"})
        assert answered.json()["current_answer"] == f"{qid}-b"

    result = student.post(f"/api/sessions/{sid}/submit")

    assert result.status_code == 200
    assert result.json()["score"] == 3
    assert result.json()["totalQuestions"] == 3
    assert student.get(f"/api/sessions/{sid}/result").json() == result.json()
    assert student.get("/api/state").json()["view"] == "EXAM_RESULT"
    assert len(student.get("/api/results", params={"exam_id": "exam-1"}).json()) == 1
    assert student.post("/api/results/back").json()["view"] == "STUDENT_DASHBOARD"


def test_bad_actions_map_to_http_errors(student):
    sid = _start(student)["session_id"]

    assert student.post(f"/api/sessions/{sid}/navigate", json={"index": 99}).status_code == 422
    assert student.post(f"/api/sessions/{sid}/answer", json={"selected_option_id": "nope"}).status_code == 422
    assert student.post(f"/api/sessions/{sid}/start", json={"agreed_to_instructions": True}).status_code == 409
    assert student.get("/api/sessions/unknown").status_code == 404
    assert student.post("/api/sessions", json={"exam_id": "missing"}).status_code == 404


def test_exit_session_returns_to_dashboard(student):
    sid = _start(student)["session_id"]

    state = student.delete(f"/api/sessions/{sid}").json()

    assert state["view"] == "STUDENT_DASHBOARD"
    assert student.get(f"/api/sessions/{sid}").status_code == 404


def test_upload_edit_and_save_draft(admin, monkeypatch):
    monkeypatch.setattr(content_ingestion, "extract_text_from_pdf", lambda source: "Q1 text")

    response = admin.post(
        "/api/exams/upload",
        files=[("files", ("paper.pdf", b"%PDF-1.4", "application/pdf"))],
    )

    assert response.status_code == 201
    body = response.json()
    assert body["statuses"][0] == "Processing 1 file(s)..."
    draft = body["draft"]
    assert admin.get("/api/state").json()["view"] == "EXAM_EDITOR"

    toggled = admin.post("/api/draft/questions/0/options/0/toggle-correct").json()
    assert [o["isCorrect"] for o in toggled["questions"][0]["options"]] == [True, False]

    saved = admin.post("/api/draft/save")
    assert saved.status_code == 200
    assert admin.get(f"/api/exams/{draft['id']}").json()["questions"][0]["options"][0]["isCorrect"]
    assert admin.get("/api/draft").status_code == 404


def test_draft_with_two_correct_options_is_rejected(admin):
    admin.post("/api/exams", json=exam_to_dict(make_exam(question_count=1)))
    draft = admin.post("/api/exams/exam-1/edit").json()
    draft["questions"][0]["options"][0]["isCorrect"] = True

    assert admin.put("/api/draft", json=draft).status_code == 422
    assert admin.post("/api/draft/discard").json()["view"] == "ADMIN_DASHBOARD"


def test_failed_ingestion_is_bad_gateway(monkeypatch):
    monkeypatch.setattr(content_ingestion, "extract_text_from_pdf", lambda source: "text")
    manager = ExamManager(
        repository=ExamRepository(),
        results=ResultStore(),
        ingestion=ContentIngestionService(lambda: FakeGenerator(error=RuntimeError("quota"))),
        admin_access_key="k",
        timer_factory=None,
    )
    client = TestClient(create_api_app(manager))
    client.post("/admin/login", json={"access_key": "k"})

    response = client.post("/api/exams/upload", files=[("files", ("a.pdf", b"x", "application/pdf"))])

    assert response.status_code == 502


def test_gate_catalogue_and_session(client, generator):
    catalogue = client.get("/api/gate/catalogue").json()
    assert {"id": "PH", "name": "Physics"} in catalogue["branches"]
    assert 2019 in catalogue["years"]

    client.post("/api/student/enter")
    assert client.post("/api/gate/sessions", json={"branch": "PH", "year": 2023}).status_code == 422
    client.post("/api/gate/open")

    response = client.post("/api/gate/sessions", json={"branch": "PH", "year": 2023})

    assert response.status_code == 201
    assert response.json()["question_count"] == 2
    assert client.get("/api/exams").json() == []


def test_upload_cancelled_mid_import_is_a_conflict(admin, manager, monkeypatch, generator):
    def extract_then_cancel(source):
        manager.cancel_import()
        return "Q1 text"

    monkeypatch.setattr(content_ingestion, "extract_text_from_pdf", extract_then_cancel)

    response = admin.post("/api/exams/upload", files=[("files", ("a.pdf", b"x", "application/pdf"))])

    assert response.status_code == 409
    assert generator.prompts == []
    assert admin.post("/api/exams/upload/cancel").json() == {"cancelled": False}
    assert admin.get("/api/state").json()["view"] == "ADMIN_DASHBOARD"


def test_exam_records_accept_string_flags(admin):
    record = exam_to_dict(make_exam(question_count=1))
    record["questions"][0]["options"][1]["isCorrect"] = "false"

    created = admin.post("/api/exams", json=record)

    assert created.status_code == 201
    assert not any(o["isCorrect"] for o in created.json()["questions"][0]["options"])
