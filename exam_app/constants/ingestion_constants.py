"""Limits and catalogue data for AI-backed content ingestion."""

GEMINI_MODEL_NAME: str = "gemini-2.5-flash"
GEMINI_TIMEOUT_SECONDS: float = 120.0
MAX_PROMPT_TEXT_CHARS: int = 30_000
PARSE_TEMPERATURE: float = 0.1
GENERATE_TEMPERATURE: float = 0.5
GENERATED_QUESTION_COUNT: int = 15

UNTITLED_EXAM_TITLE: str = "Untitled Exam"
COMBINED_EXAM_TITLE: str = "Combined Exam Bank"

PARSE_FAILURE_MESSAGE: str = "Failed to parse exam content using AI."
GENERATE_FAILURE_MESSAGE: str = "Failed to generate exam content using AI."
EXTRACT_FAILURE_MESSAGE: str = "Failed to extract text from PDF. Please ensure the file is a valid PDF."
MISSING_API_KEY_MESSAGE: str = "API Key is missing."

GATE_BRANCHES: dict[str, str] = {
    "AE": "Aerospace Engineering",
    "PH": "Physics",
    "CS": "Computer Science",
    "EE": "Electrical Engineering",
    "EC": "Electronics & Comm.",
    "CE": "Civil Engineering",
}
GATE_YEARS: tuple[int, ...] = (2024, 2023, 2022, 2021, 2020, 2019)
