"""Domain models for the exam application."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class QuestionType(str, Enum):
    """How a question is answered and scored."""

    MCQ = "MCQ"
    INTEGER = "INTEGER"


class QuestionStatus(str, Enum):
    """Per-question palette status inside a live exam session."""

    NOT_VISITED = "not_visited"
    NOT_ANSWERED = "not_answered"
    ANSWERED = "answered"
    MARKED_FOR_REVIEW = "marked_for_review"
    ANSWERED_MARKED_FOR_REVIEW = "answered_marked_for_review"


@dataclass(slots=True)
class Option:
    """Answer option of a multiple-choice question."""

    id: str
    text: str
    image_url: str | None = None
    is_correct: bool = False  # Only visible to authoring and scoring code


@dataclass(slots=True)
class Question:
    """Exam question; `options` matter for MCQ, `correct_answer` for INTEGER."""

    id: str
    text: str
    type: QuestionType = QuestionType.MCQ
    options: list[Option] = field(default_factory=list)
    image_url: str | None = None
    correct_answer: str | None = None

    def find_option(self, option_id: str) -> Option | None:
        return next((option for option in self.options if option.id == option_id), None)

    def correct_option_count(self) -> int:
        return sum(1 for option in self.options if option.is_correct)


@dataclass(slots=True)
class Exam:
    """Stored exam record, also used as the shape of a live session."""

    id: str
    title: str
    created_at: int  # Epoch milliseconds
    instructions: list[str] = field(default_factory=list)
    questions: list[Question] = field(default_factory=list)
    max_questions_to_attempt: int | None = None


@dataclass(slots=True, frozen=True)
class StudentAnswer:
    """Answer captured for one question: an option id or a numeric string."""

    question_id: str
    selected_option_id: str | None = None
    numeric_input: str | None = None


@dataclass(slots=True, frozen=True)
class ExamResult:
    """Immutable outcome of a submitted exam session."""

    exam_id: str
    score: int
    total_questions: int
    answers: tuple[StudentAnswer, ...]
    timestamp: int = field(compare=False)


@dataclass(slots=True, frozen=True)
class ActionResult:
    """Outcome of a session action that may be rejected by validation."""

    accepted: bool
    message: str | None = None


ACCEPTED = ActionResult(accepted=True)
