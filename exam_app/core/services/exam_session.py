"""State machine for a single student's attempt at an exam."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
import logging
from threading import Event, RLock
from uuid import uuid4

from exam_app.constants.exam_constants import (
    DEFAULT_EXAM_DURATION_SECONDS,
    SAVE_AND_MARK_REQUIRES_ANSWER_MESSAGE,
)
from exam_app.core.models import (
    ACCEPTED,
    ActionResult,
    Exam,
    Question,
    QuestionStatus,
    QuestionType,
    StudentAnswer,
)
from exam_app.core.services.exam_timer import ExamTimer

logger = logging.getLogger(__name__)

SubmitCallback = Callable[["ExamSession", list[StudentAnswer]], None]
TimerFactory = Callable[[Callable[[], None]], ExamTimer]


class SessionPhase(str, Enum):
    INSTRUCTIONS = "instructions"
    STARTED = "started"
    SUBMITTED = "submitted"
    EXITED = "exited"


class ExamSession:
    """Tracks navigation, answers, palette status and the countdown of one attempt.

    User actions and timer ticks are serialized through one lock. Submission
    is one-shot: whichever of a manual submit or the timer expiry runs first
    wins and the other becomes a no-op.
    """

    def __init__(
        self,
        exam: Exam,
        session_id: str | None = None,
        duration_seconds: int = DEFAULT_EXAM_DURATION_SECONDS,
        on_submit: SubmitCallback | None = None,
        timer_factory: TimerFactory | None = ExamTimer,
    ) -> None:
        if duration_seconds < 0:
            raise ValueError("Exam duration cannot be negative.")
        self._lock = RLock()
        self.session_id = session_id or uuid4().hex
        self.exam = exam
        self._on_submit = on_submit
        self._timer_factory = timer_factory
        self._timer: ExamTimer | None = None

        self._phase = SessionPhase.INSTRUCTIONS
        self._current_index = 0
        self._answers: dict[str, str] = {}
        self._status: dict[str, QuestionStatus] = {
            question.id: QuestionStatus.NOT_VISITED for question in exam.questions
        }
        self._time_left = duration_seconds
        self._submitted_by_timer = False
        self._submission_complete = Event()

    # --- Read-only state ---

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def has_started(self) -> bool:
        return self._phase is not SessionPhase.INSTRUCTIONS

    @property
    def is_finished(self) -> bool:
        return self._phase in (SessionPhase.SUBMITTED, SessionPhase.EXITED)

    @property
    def submitted_by_timer(self) -> bool:
        return self._submitted_by_timer

    @property
    def current_question_index(self) -> int:
        return self._current_index

    @property
    def time_left(self) -> int:
        return self._time_left

    @property
    def question_count(self) -> int:
        return len(self.exam.questions)

    def get_current_question(self) -> Question | None:
        if not self.exam.questions:
            return None
        return self.exam.questions[self._current_index]

    def get_answers(self) -> dict[str, str]:
        with self._lock:
            return dict(self._answers)

    def get_answer(self, question_id: str) -> str | None:
        with self._lock:
            return self._answers.get(question_id)

    def get_status(self, question_id: str) -> QuestionStatus:
        with self._lock:
            return self._status[question_id]

    def get_question_statuses(self) -> dict[str, QuestionStatus]:
        with self._lock:
            return dict(self._status)

    def status_counts(self) -> dict[QuestionStatus, int]:
        with self._lock:
            counts = {status: 0 for status in QuestionStatus}
            for status in self._status.values():
                counts[status] += 1
            return counts

    def format_time_left(self) -> str:
        seconds = max(0, self._time_left)
        hours, remainder = divmod(seconds, 3600)
        minutes, secs = divmod(remainder, 60)
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"

    # --- Lifecycle ---

    def start(self, agreed_to_instructions: bool) -> None:
        """Leave the instructions screen. Requires the acknowledgement."""
        with self._lock:
            if self._phase is not SessionPhase.INSTRUCTIONS:
                raise RuntimeError("Exam has already started.")
            if not agreed_to_instructions:
                raise ValueError("Instructions must be acknowledged before starting the exam.")
            self._phase = SessionPhase.STARTED
            self._visit_current()
            if self._timer_factory is not None:
                self._timer = self._timer_factory(self.tick)
                self._timer.start()
        logger.info("Session %s started for exam %s", self.session_id, self.exam.id)

    def tick(self) -> None:
        """Account for one elapsed second; submits when time runs out."""
        with self._lock:
            if self._phase is not SessionPhase.STARTED:
                return
            if self._time_left > 0:
                self._time_left -= 1
            if self._time_left > 0:
                return
            logger.info("Time is up for session %s; submitting.", self.session_id)
            answers = self._mark_submitted(by_timer=True)
        if answers is not None:
            self._complete_submission(answers)

    def submit(self) -> list[StudentAnswer] | None:
        """End the attempt and hand the collected answers on.

        Returns None when the session had already ended.
        """
        with self._lock:
            answers = self._mark_submitted(by_timer=False)
        if answers is None:
            return None
        self._complete_submission(answers)
        return answers

    def wait_for_submission(self, timeout: float | None = None) -> bool:
        """Block until a submission, manual or timed, has been fully handed on."""
        return self._submission_complete.wait(timeout)

    def exit(self) -> None:
        """Leave the exam without submitting."""
        with self._lock:
            if self.is_finished:
                return
            self._phase = SessionPhase.EXITED
        self._stop_timer()
        logger.info("Session %s exited without submission", self.session_id)

    # --- Answer capture ---

    def select_option(self, option_id: str) -> None:
        with self._lock:
            question = self._require_current_question()
            if question.type is not QuestionType.MCQ:
                raise ValueError("Only multiple-choice questions accept an option.")
            if question.find_option(option_id) is None:
                raise ValueError(f"Unknown option '{option_id}' for question '{question.id}'.")
            self._answers[question.id] = option_id

    def enter_numeric(self, value: str) -> None:
        with self._lock:
            question = self._require_current_question()
            if question.type is not QuestionType.INTEGER:
                raise ValueError("Only numeric questions accept a typed answer.")
            cleaned = value.strip()
            if cleaned:
                self._answers[question.id] = cleaned
            else:
                self._answers.pop(question.id, None)

    # --- Palette actions ---

    def save_and_next(self) -> ActionResult:
        with self._lock:
            question = self._require_current_question()
            if question.id in self._answers:
                self._status[question.id] = QuestionStatus.ANSWERED
            else:
                self._status[question.id] = QuestionStatus.NOT_ANSWERED
            self._advance()
            return ACCEPTED

    def clear_response(self) -> ActionResult:
        with self._lock:
            question = self._require_current_question()
            self._answers.pop(question.id, None)
            self._status[question.id] = QuestionStatus.NOT_ANSWERED
            return ACCEPTED

    def save_and_mark_for_review(self) -> ActionResult:
        with self._lock:
            question = self._require_current_question()
            if question.id not in self._answers:
                return ActionResult(accepted=False, message=SAVE_AND_MARK_REQUIRES_ANSWER_MESSAGE)
            self._status[question.id] = QuestionStatus.ANSWERED_MARKED_FOR_REVIEW
            self._advance()
            return ACCEPTED

    def mark_for_review_and_next(self) -> ActionResult:
        with self._lock:
            question = self._require_current_question()
            if question.id in self._answers:
                self._status[question.id] = QuestionStatus.ANSWERED_MARKED_FOR_REVIEW
            else:
                self._status[question.id] = QuestionStatus.MARKED_FOR_REVIEW
            self._advance()
            return ACCEPTED

    # --- Navigation ---

    def go_to(self, index: int) -> None:
        with self._lock:
            self._require_started()
            if not 0 <= index < self.question_count:
                raise IndexError(f"Question index {index} out of range")
            self._current_index = index
            self._visit_current()

    def next(self) -> None:
        with self._lock:
            self._require_started()
            self._advance()

    def previous(self) -> None:
        with self._lock:
            self._require_started()
            if self._current_index > 0:
                self._current_index -= 1
                self._visit_current()

    # --- Views ---

    def snapshot(self) -> dict[str, object]:
        """Student-facing view of the session; never exposes answer keys."""
        with self._lock:
            current = self.get_current_question()
            return {
                "session_id": self.session_id,
                "exam_id": self.exam.id,
                "title": self.exam.title,
                "instructions": list(self.exam.instructions),
                "phase": self._phase.value,
                "has_started": self.has_started,
                "submitted_by_timer": self._submitted_by_timer,
                "current_question_index": self._current_index,
                "question_count": self.question_count,
                "time_left": self._time_left,
                "time_left_display": self.format_time_left(),
                "palette": [
                    {"question_id": q.id, "status": self._status[q.id].value}
                    for q in self.exam.questions
                ],
                "status_counts": {
                    status.value: count for status, count in self.status_counts().items()
                },
                "current_question": _student_view(current) if current else None,
                "current_answer": self._answers.get(current.id) if current else None,
            }

    # --- Internals ---

    def _require_started(self) -> None:
        if self._phase is not SessionPhase.STARTED:
            raise RuntimeError(f"Exam session is not in progress (phase: {self._phase.value}).")

    def _require_current_question(self) -> Question:
        self._require_started()
        question = self.get_current_question()
        if question is None:
            raise IndexError("Exam session has no questions.")
        return question

    def _visit_current(self) -> None:
        question = self.get_current_question()
        if question is not None and self._status[question.id] is QuestionStatus.NOT_VISITED:
            self._status[question.id] = QuestionStatus.NOT_ANSWERED

    def _advance(self) -> None:
        if self._current_index < self.question_count - 1:
            self._current_index += 1
            self._visit_current()

    def _mark_submitted(self, by_timer: bool) -> list[StudentAnswer] | None:
        if self.is_finished:
            return None
        self._phase = SessionPhase.SUBMITTED
        self._submitted_by_timer = by_timer
        return self._collect_answers()

    def _complete_submission(self, answers: list[StudentAnswer]) -> None:
        self._stop_timer()
        logger.info(
            "Session %s submitted with %d answer(s)", self.session_id, len(answers)
        )
        try:
            if self._on_submit is not None:
                self._on_submit(self, answers)
        finally:
            self._submission_complete.set()

    def _collect_answers(self) -> list[StudentAnswer]:
        collected: list[StudentAnswer] = []
        for question in self.exam.questions:
            value = self._answers.get(question.id)
            if value is None:
                continue
            if question.type is QuestionType.INTEGER:
                collected.append(StudentAnswer(question_id=question.id, numeric_input=value))
            else:
                collected.append(StudentAnswer(question_id=question.id, selected_option_id=value))
        return collected

    def _stop_timer(self) -> None:
        if self._timer is not None:
            self._timer.stop()


def _student_view(question: Question) -> dict[str, object]:
    return {
        "id": question.id,
        "text": question.text,
        "image_url": question.image_url,
        "type": question.type.value,
        "options": [
            {"id": option.id, "text": option.text, "image_url": option.image_url}
            for option in question.options
        ]
        if question.type is QuestionType.MCQ
        else [],
    }
