"""Validation of the exam JSON returned by the language model.

The model's response is untrusted: every field may be missing, mistyped or
empty. These schemas apply defaults at the boundary so the rest of the
application only ever sees well-formed domain objects.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from exam_app.core.models import Option, Question, QuestionType

logger = logging.getLogger(__name__)


class IngestedQuestion(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    text: str = ""
    type: str = QuestionType.MCQ.value
    options: list[str] = Field(default_factory=list)
    correct_option_index: int | None = Field(default=None, alias="correctOptionIndex")
    correct_answer: str | None = Field(default=None, alias="correctAnswer")

    @field_validator("text", "type", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("options", mode="before")
    @classmethod
    def _coerce_options(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [str(item) for item in value if item is not None]

    @field_validator("correct_answer", mode="before")
    @classmethod
    def _stringify_answer(cls, value: Any) -> str | None:
        if value is None or isinstance(value, bool):
            return None
        text = str(value).strip()
        return text or None

    @field_validator("correct_option_index", mode="before")
    @classmethod
    def _tolerate_index(cls, value: Any) -> int | None:
        if isinstance(value, bool):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    def to_question(self, question_id: str) -> Question:
        question_type = QuestionType.INTEGER if self.type.strip().upper() == "INTEGER" else QuestionType.MCQ
        options = [
            Option(
                id=f"opt-{question_id}-{index}",
                text=text,
                is_correct=self.correct_option_index == index,
            )
            for index, text in enumerate(self.options)
        ]
        return Question(
            id=question_id,
            text=self.text.strip(),
            type=question_type,
            options=options,
            correct_answer=self.correct_answer,
        )


class IngestedExam(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = ""
    instructions: list[str] = Field(default_factory=list)
    questions: list[IngestedQuestion] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _title_to_str(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("instructions", mode="before")
    @classmethod
    def _coerce_instructions(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [str(item) for item in value if item is not None and str(item).strip()]

    @field_validator("questions", mode="before")
    @classmethod
    def _drop_non_objects(cls, value: Any) -> list[Any]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    def to_questions(self) -> list[Question]:
        batch = uuid4().hex[:8]
        questions: list[Question] = []
        for index, item in enumerate(self.questions):
            if not item.text.strip():
                logger.warning("Skipping extracted question %d without text", index)
                continue
            questions.append(item.to_question(f"q-{batch}-{index}"))
        return questions


def parse_payload(raw: Any) -> IngestedExam:
    """Validate a decoded JSON document; anything but an object yields an empty exam."""
    if not isinstance(raw, dict):
        logger.warning("Model returned %s instead of a JSON object", type(raw).__name__)
        return IngestedExam()
    return IngestedExam.model_validate(raw)
