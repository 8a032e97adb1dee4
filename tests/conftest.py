from __future__ import annotations

import pytest

from exam_app.core.ingestion.content_ingestion import ContentIngestionService
from exam_app.core.exam_manager import ExamManager
from exam_app.core.models import Exam, Option, Question, QuestionType
from exam_app.core.services.exam_repository import ExamRepository
from exam_app.core.services.result_store import ResultStore


def make_mcq(question_id: str, correct: str | None = "b", text: str | None = None) -> Question:
    return Question(
        id=question_id,
        text=text or f"Question {question_id}",
        type=QuestionType.MCQ,
        options=[
            Option(id=f"{question_id}-{label}", text=label.upper(), is_correct=(label == correct))
            for label in ("a", "b", "c", "d")
        ],
    )


def make_integer(question_id: str, correct_answer: str | None = "10") -> Question:
    return Question(
        id=question_id,
        text=f"Numeric {question_id}",
        type=QuestionType.INTEGER,
        correct_answer=correct_answer,
    )


def make_exam(
    question_count: int = 4,
    exam_id: str = "exam-1",
    cap: int | None = None,
    created_at: int = 1_700_000_000_000,
) -> Exam:
    return Exam(
        id=exam_id,
        title="Physics Mock",
        created_at=created_at,
        instructions=["Total duration of examination is 180 minutes."],
        questions=[make_mcq(f"q{i}") for i in range(question_count)],
        max_questions_to_attempt=cap,
    )


class FakeGenerator:
    """Stands in for the Gemini client and records the prompts it receives."""

    def __init__(self, payload: object = None, error: Exception | None = None) -> None:
        self.payload = payload
        self.error = error
        self.prompts: list[tuple[str, float]] = []

    def generate_json(self, prompt: str, temperature: float) -> object:
        self.prompts.append((prompt, temperature))
        if self.error is not None:
            raise self.error
        return self.payload


GENERATED_PAYLOAD = {
    "title": "GATE Physics 2023 Exam",
    "instructions": ["Each question carries one mark."],
    "questions": [
        {"text": "What is 2 + 2?", "type": "MCQ", "options": ["3", "4"], "correctOptionIndex": 1},
        {"text": "Speed of light exponent?", "type": "INTEGER", "options": [], "correctAnswer": 8},
    ],
}


@pytest.fixture
def exam() -> Exam:
    return make_exam()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator(payload=GENERATED_PAYLOAD)


@pytest.fixture
def manager(generator: FakeGenerator) -> ExamManager:
    return ExamManager(
        repository=ExamRepository(),
        results=ResultStore(),
        ingestion=ContentIngestionService(lambda: generator),
        admin_access_key="letmein",
        timer_factory=None,
    )
