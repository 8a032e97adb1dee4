"""Scoring of submitted exam sessions."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import logging
import math
import time

from exam_app.core.models import Exam, ExamResult, Question, QuestionType, StudentAnswer

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class GradedQuestion:
    """Per-question verdict; `anomaly` describes bad data rather than a wrong answer."""

    question_id: str
    is_correct: bool
    answered: bool
    anomaly: str | None = None


def grade_answers(session: Exam, answers: Sequence[StudentAnswer]) -> list[GradedQuestion]:
    """Grade every question of the session against the submitted answers.

    The first answer recorded for a question id wins; later duplicates are
    reported as anomalies and ignored.
    """
    first_by_question: dict[str, StudentAnswer] = {}
    duplicates: set[str] = set()
    for answer in answers:
        if answer.question_id in first_by_question:
            duplicates.add(answer.question_id)
            continue
        first_by_question[answer.question_id] = answer

    graded: list[GradedQuestion] = []
    for question in session.questions:
        answer = first_by_question.get(question.id)
        if answer is None:
            graded.append(GradedQuestion(question_id=question.id, is_correct=False, answered=False))
            continue
        is_correct, anomaly = _grade_one(question, answer)
        if question.id in duplicates:
            anomaly = anomaly or "duplicate answers submitted"
        if anomaly:
            logger.warning(
                "Data-integrity anomaly on question %s of exam %s: %s",
                question.id,
                session.id,
                anomaly,
            )
        graded.append(
            GradedQuestion(
                question_id=question.id,
                is_correct=is_correct,
                answered=True,
                anomaly=anomaly,
            )
        )
    return graded


def score_exam(
    session: Exam,
    answers: Sequence[StudentAnswer],
    *,
    timestamp: int | None = None,
) -> ExamResult:
    """Count correct answers for the session's questions and build the result record."""
    graded = grade_answers(session, answers)
    score = sum(1 for row in graded if row.is_correct)
    return ExamResult(
        exam_id=session.id,
        score=score,
        total_questions=len(session.questions),
        answers=tuple(answers),
        timestamp=timestamp if timestamp is not None else int(time.time() * 1000),
    )


def _grade_one(question: Question, answer: StudentAnswer) -> tuple[bool, str | None]:
    if question.type is QuestionType.INTEGER:
        return _grade_numeric(question, answer)
    if not answer.selected_option_id:
        return False, None
    option = question.find_option(answer.selected_option_id)
    if option is None:
        return False, f"unknown option id '{answer.selected_option_id}'"
    return option.is_correct, None


def _grade_numeric(question: Question, answer: StudentAnswer) -> tuple[bool, str | None]:
    if not answer.numeric_input or not question.correct_answer:
        return False, None
    submitted = _parse_number(answer.numeric_input)
    if submitted is None:
        return False, f"malformed numeric input {answer.numeric_input!r}"
    expected = _parse_number(question.correct_answer)
    if expected is None:
        return False, f"malformed correct answer {question.correct_answer!r}"
    # Exact float equality: "10" and "10.0" match, 0.1 + 0.2 style drift does not.
    return submitted == expected, None


def _parse_number(raw: str) -> float | None:
    try:
        value = float(raw.strip())
    except ValueError:
        return None
    if math.isnan(value):
        return None
    return value
