"""Draft editing operations used by administrators before an exam is saved."""

from __future__ import annotations

import copy
from uuid import uuid4

from exam_app.constants.exam_constants import (
    NEW_INSTRUCTION_TEXT,
    NEW_OPTION_LABELS,
    NEW_QUESTION_TEXT,
)
from exam_app.core.models import Exam, Option, Question, QuestionType


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex[:12]}"


class ExamEditor:
    """Mutates a private copy of an exam; `build()` hands back the result.

    Questions and options are addressed by position, mirroring the editor
    form. Every change to option correctness goes through
    `toggle_correct_option`, so an MCQ question never ends up with two
    correct options.
    """

    def __init__(self, exam: Exam) -> None:
        self._exam = copy.deepcopy(exam)

    def build(self) -> Exam:
        return copy.deepcopy(self._exam)

    # --- Exam level ---

    def set_title(self, title: str) -> None:
        cleaned = title.strip()
        if not cleaned:
            raise ValueError("Exam title must not be empty.")
        self._exam.title = cleaned

    def set_max_questions_to_attempt(self, value: int | None) -> None:
        """Positive values cap the session; anything else means all questions."""
        self._exam.max_questions_to_attempt = value if value is not None and value > 0 else None

    def add_instruction(self, text: str = NEW_INSTRUCTION_TEXT) -> int:
        self._exam.instructions.append(text)
        return len(self._exam.instructions) - 1

    def update_instruction(self, index: int, text: str) -> None:
        self._check_index(index, len(self._exam.instructions), "Instruction")
        self._exam.instructions[index] = text

    def delete_instruction(self, index: int) -> None:
        self._check_index(index, len(self._exam.instructions), "Instruction")
        self._exam.instructions.pop(index)

    # --- Questions ---

    def add_question(self) -> Question:
        question = Question(
            id=_new_id("q"),
            text=NEW_QUESTION_TEXT,
            type=QuestionType.MCQ,
            options=[Option(id=_new_id("opt"), text=label) for label in NEW_OPTION_LABELS],
        )
        self._exam.questions.append(question)
        return question

    def delete_question(self, index: int) -> None:
        self._question(index)
        self._exam.questions.pop(index)

    def update_question_text(self, index: int, text: str) -> None:
        self._question(index).text = text

    def set_question_type(self, index: int, question_type: QuestionType) -> None:
        # Options stay in place when switching to INTEGER; scoring ignores them.
        self._question(index).type = QuestionType(question_type)

    def set_correct_answer(self, index: int, answer: str) -> None:
        self._question(index).correct_answer = answer.strip() or None

    def set_question_image(self, index: int, image_url: str | None) -> None:
        self._question(index).image_url = image_url or None

    # --- Options ---

    def add_option(self, question_index: int, text: str) -> Option:
        option = Option(id=_new_id("opt"), text=text)
        self._question(question_index).options.append(option)
        return option

    def delete_option(self, question_index: int, option_index: int) -> None:
        question = self._question(question_index)
        self._check_index(option_index, len(question.options), "Option")
        question.options.pop(option_index)

    def update_option_text(self, question_index: int, option_index: int, text: str) -> None:
        self._option(question_index, option_index).text = text

    def set_option_image(self, question_index: int, option_index: int, image_url: str | None) -> None:
        self._option(question_index, option_index).image_url = image_url or None

    def toggle_correct_option(self, question_index: int, option_index: int) -> None:
        """Flip one option's correctness and clear every other option."""
        question = self._question(question_index)
        self._check_index(option_index, len(question.options), "Option")
        currently_correct = question.options[option_index].is_correct
        for idx, option in enumerate(question.options):
            option.is_correct = (not currently_correct) if idx == option_index else False

    # --- Helpers ---

    def _question(self, index: int) -> Question:
        self._check_index(index, len(self._exam.questions), "Question")
        return self._exam.questions[index]

    def _option(self, question_index: int, option_index: int) -> Option:
        question = self._question(question_index)
        self._check_index(option_index, len(question.options), "Option")
        return question.options[option_index]

    @staticmethod
    def _check_index(index: int, length: int, label: str) -> None:
        if not 0 <= index < length:
            raise IndexError(f"{label} index {index} out of range")
