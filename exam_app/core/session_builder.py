"""Builds the per-attempt view of a stored exam."""

from __future__ import annotations

from dataclasses import replace
import random

from exam_app.core.models import Exam, Question

_default_rng = random.Random()


def effective_question_cap(exam: Exam) -> int:
    """Return how many questions a session of `exam` will contain."""
    total = len(exam.questions)
    cap = exam.max_questions_to_attempt
    if isinstance(cap, int) and not isinstance(cap, bool) and 0 < cap < total:
        return cap
    return total


def shuffle_questions(questions: list[Question], rng: random.Random | None = None) -> list[Question]:
    """Return a Fisher-Yates shuffled copy of `questions`."""
    rng = rng or _default_rng
    shuffled = list(questions)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def build_session(exam: Exam, rng: random.Random | None = None) -> Exam:
    """Shuffle the exam's questions and apply its cap.

    The stored exam is left untouched; only the `questions` list of the
    returned exam differs from the parent.
    """
    shuffled = shuffle_questions(exam.questions, rng)
    return replace(exam, questions=shuffled[: effective_question_cap(exam)])
