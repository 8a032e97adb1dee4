"""Conversion between domain records and their JSON storage form.

Records use the camelCase keys the browser client has always stored
(`createdAt`, `maxQuestionsToAttempt`, `isCorrect`, ...), so existing
exports load unchanged. The pydantic record models below are the single
schema for both the JSON files and the HTTP API. Optional fields are
omitted when unset; an absent `maxQuestionsToAttempt` key therefore reads
back as None while an explicit 0 stays 0.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationError

from exam_app.core.models import Exam, ExamResult, Option, Question, QuestionType, StudentAnswer


class ExamFormatError(Exception):
    """Raised when a stored record cannot be turned back into a domain object."""


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class OptionRecord(_Record):
    id: str
    text: str
    image_url: str | None = Field(default=None, alias="imageUrl")
    is_correct: bool = Field(default=False, alias="isCorrect")


class QuestionRecord(_Record):
    id: str
    text: str
    type: QuestionType = QuestionType.MCQ
    options: list[OptionRecord] = Field(default_factory=list)
    image_url: str | None = Field(default=None, alias="imageUrl")
    correct_answer: str | None = Field(default=None, alias="correctAnswer")


class ExamRecord(_Record):
    """Full exam record as stored on disk and sent by the authoring screens."""

    id: str
    title: str
    created_at: int = Field(alias="createdAt")
    instructions: list[str] = Field(default_factory=list)
    questions: list[QuestionRecord] = Field(default_factory=list)
    max_questions_to_attempt: StrictInt | None = Field(default=None, alias="maxQuestionsToAttempt")

    @classmethod
    def from_exam(cls, exam: Exam) -> "ExamRecord":
        return cls(
            id=exam.id,
            title=exam.title,
            created_at=exam.created_at,
            instructions=list(exam.instructions),
            questions=[
                QuestionRecord(
                    id=question.id,
                    text=question.text,
                    type=question.type,
                    options=[
                        OptionRecord(
                            id=option.id,
                            text=option.text,
                            image_url=option.image_url,
                            is_correct=option.is_correct,
                        )
                        for option in question.options
                    ],
                    image_url=question.image_url,
                    correct_answer=question.correct_answer,
                )
                for question in exam.questions
            ],
            max_questions_to_attempt=exam.max_questions_to_attempt,
        )

    def to_exam(self) -> Exam:
        return Exam(
            id=self.id,
            title=self.title,
            created_at=self.created_at,
            instructions=list(self.instructions),
            questions=[
                Question(
                    id=question.id,
                    text=question.text,
                    type=question.type,
                    options=[
                        Option(
                            id=option.id,
                            text=option.text,
                            image_url=option.image_url,
                            is_correct=option.is_correct,
                        )
                        for option in question.options
                    ],
                    image_url=question.image_url,
                    correct_answer=question.correct_answer,
                )
                for question in self.questions
            ],
            max_questions_to_attempt=self.max_questions_to_attempt,
        )


class AnswerRecord(_Record):
    question_id: str = Field(alias="questionId")
    selected_option_id: str | None = Field(default=None, alias="selectedOptionId")
    numeric_input: str | None = Field(default=None, alias="numericInput")


class ResultRecord(_Record):
    exam_id: str = Field(alias="examId")
    score: int
    total_questions: int = Field(alias="totalQuestions")
    answers: list[AnswerRecord] = Field(default_factory=list)
    timestamp: int

    @classmethod
    def from_result(cls, result: ExamResult) -> "ResultRecord":
        return cls(
            exam_id=result.exam_id,
            score=result.score,
            total_questions=result.total_questions,
            answers=[
                AnswerRecord(
                    question_id=answer.question_id,
                    selected_option_id=answer.selected_option_id,
                    numeric_input=answer.numeric_input,
                )
                for answer in result.answers
            ],
            timestamp=result.timestamp,
        )

    def to_result(self) -> ExamResult:
        return ExamResult(
            exam_id=self.exam_id,
            score=self.score,
            total_questions=self.total_questions,
            answers=tuple(
                StudentAnswer(
                    question_id=answer.question_id,
                    selected_option_id=answer.selected_option_id,
                    numeric_input=answer.numeric_input,
                )
                for answer in self.answers
            ),
            timestamp=self.timestamp,
        )


def exam_to_dict(exam: Exam) -> dict[str, Any]:
    return ExamRecord.from_exam(exam).to_dict()


def exam_from_dict(data: Any) -> Exam:
    try:
        return ExamRecord.model_validate(data).to_exam()
    except ValidationError as exc:
        raise ExamFormatError(f"Invalid exam record: {exc}") from exc


def result_to_dict(result: ExamResult) -> dict[str, Any]:
    return ResultRecord.from_result(result).to_dict()


def result_from_dict(data: Any) -> ExamResult:
    try:
        return ResultRecord.model_validate(data).to_result()
    except ValidationError as exc:
        raise ExamFormatError(f"Invalid result record: {exc}") from exc
