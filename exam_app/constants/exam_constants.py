"""Exam-related constants shared across the core and API layers."""

DEFAULT_EXAM_DURATION_SECONDS: int = 180 * 60
TIMER_TICK_INTERVAL_SECONDS: float = 1.0

SAVE_AND_MARK_REQUIRES_ANSWER_MESSAGE: str = "Please select an option to Save & Mark for Review"
DEFAULT_ADMIN_ACCESS_KEY: str = "admin123"

NEW_QUESTION_TEXT: str = "New Question"
NEW_INSTRUCTION_TEXT: str = "New instruction"
NEW_OPTION_LABELS: tuple[str, ...] = ("Option A", "Option B")
