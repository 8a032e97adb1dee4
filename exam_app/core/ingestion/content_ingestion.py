"""Turns uploaded papers or a topic name into a draft exam.

Ingestion never touches the repository: it hands back an unsaved draft and
the administrator decides whether to keep it. Every failure, whether the
PDF could not be read or the model call broke, surfaces as a single
IngestionError carrying a user-facing message.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
import logging
from pathlib import Path
from threading import Event
import time
from typing import BinaryIO
from uuid import uuid4

from pydantic import ValidationError

from exam_app.constants.ingestion_constants import (
    COMBINED_EXAM_TITLE,
    EXTRACT_FAILURE_MESSAGE,
    GATE_BRANCHES,
    GATE_YEARS,
    GENERATE_FAILURE_MESSAGE,
    GENERATE_TEMPERATURE,
    GENERATED_QUESTION_COUNT,
    MAX_PROMPT_TEXT_CHARS,
    MISSING_API_KEY_MESSAGE,
    PARSE_FAILURE_MESSAGE,
    PARSE_TEMPERATURE,
    UNTITLED_EXAM_TITLE,
)
from exam_app.core.ingestion.gemini_client import JsonGenerator
from exam_app.core.ingestion.payload import IngestedExam, parse_payload
from exam_app.core.ingestion.pdf_extractor import combine_documents, extract_text_from_pdf
from exam_app.core.models import Exam

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], None]

_PARSE_PROMPT = """
You are an expert exam parser.
Analyze the following text extracted from a PDF exam.
Extract the Exam Title, the Instructions, and all Questions.

Respond with a JSON object with the keys "title" (string), "instructions"
(array of strings) and "questions" (array). Each question has "text",
"type" ("MCQ" or "INTEGER"), "options" (array of strings),
"correctOptionIndex" (integer or null) and "correctAnswer" (string or null).

Determine the 'type' of each question:
- 'MCQ': If the question has multiple choice options (A, B, C, D).
- 'INTEGER': If the question asks for a numerical value, integer, or calculation result without options.

For MCQ questions:
- Extract all options.
- If the correct answer is indicated, set correctOptionIndex (zero-based), otherwise -1.

For INTEGER questions:
- Leave 'options' array empty.
- If the answer key is present in the text, extract the numeric value into 'correctAnswer'.

Here is the text:
{text}
"""

_GENERATE_PROMPT = """
Create a comprehensive mock exam for the following topic: "{topic}".

Respond with a JSON object with the keys "title", "instructions" and
"questions", where each question has "text", "type" ("MCQ" or "INTEGER"),
"options", "correctOptionIndex" and "correctAnswer".

Requirements:
1. Title should be "{topic}".
2. Include standard GATE-style instructions.
3. Generate {count} high-quality questions.
4. Mix 'MCQ' (Multiple Choice) and 'INTEGER' (Numerical Answer Type) questions. Roughly 70% MCQ and 30% Integer.
5. For Integer questions, provide the exact numeric answer in 'correctAnswer'.
6. For MCQ questions, ensure one option is correct.
"""


class IngestionError(Exception):
    """Raised when a draft exam could not be produced; the message is user-facing."""


class IngestionCancelled(IngestionError):
    """Raised when the caller cancelled an ingestion in progress."""


def gate_topic(branch_code: str, year: int) -> str:
    """Topic string for a GATE paper, e.g. 'GATE Physics 2023 Exam'."""
    branch_name = GATE_BRANCHES.get(branch_code.upper())
    if branch_name is None:
        raise ValueError(f"Unknown GATE branch '{branch_code}'.")
    if year not in GATE_YEARS:
        raise ValueError(f"No GATE paper available for {year}.")
    return f"GATE {branch_name} {year} Exam"


def build_draft_exam(payload: IngestedExam, fallback_title: str, id_prefix: str = "exam") -> Exam:
    """Create an unsaved exam from validated model output, filling in defaults."""
    return Exam(
        id=f"{id_prefix}-{uuid4().hex}",
        title=payload.title.strip() or fallback_title,
        created_at=int(time.time() * 1000),
        instructions=list(payload.instructions),
        questions=payload.to_questions(),
        max_questions_to_attempt=None,
    )


class ContentIngestionService:
    """Extracts or generates exam content through a JSON-producing model."""

    def __init__(self, generator_factory: Callable[[], JsonGenerator] | None) -> None:
        self._generator_factory = generator_factory

    def parse_from_documents(self, raw_text: str) -> IngestedExam:
        prompt = _PARSE_PROMPT.format(text=raw_text[:MAX_PROMPT_TEXT_CHARS])
        return self._run(prompt, PARSE_TEMPERATURE, PARSE_FAILURE_MESSAGE)

    def generate_by_topic(self, topic: str) -> IngestedExam:
        cleaned = topic.strip()
        if not cleaned:
            raise ValueError("Topic must not be empty.")
        prompt = _GENERATE_PROMPT.format(topic=cleaned, count=GENERATED_QUESTION_COUNT)
        return self._run(prompt, GENERATE_TEMPERATURE, GENERATE_FAILURE_MESSAGE)

    def ingest_pdf_files(
        self,
        files: Iterable[tuple[str, str | Path | BinaryIO]],
        on_status: StatusCallback | None = None,
        cancel_event: Event | None = None,
    ) -> Exam:
        """Extract every PDF, send the combined text to the model, return a draft."""
        report = on_status or (lambda message: None)
        file_list = list(files)
        if not file_list:
            raise ValueError("At least one PDF file is required.")

        report(f"Processing {len(file_list)} file(s)...")
        documents: list[tuple[str, str]] = []
        for position, (name, source) in enumerate(file_list, start=1):
            _check_cancelled(cancel_event)
            report(f"Extracting text from {name} ({position}/{len(file_list)})...")
            try:
                documents.append((name, extract_text_from_pdf(source)))
            except Exception as exc:  # noqa: BLE001
                logger.exception("PDF extraction failed for %s", name)
                raise IngestionError(EXTRACT_FAILURE_MESSAGE) from exc

        _check_cancelled(cancel_event)
        report("Analyzing combined content with Gemini AI...")
        payload = self.parse_from_documents(combine_documents(documents))
        _check_cancelled(cancel_event)

        if len(file_list) == 1:
            fallback = Path(file_list[0][0]).stem or UNTITLED_EXAM_TITLE
        else:
            fallback = COMBINED_EXAM_TITLE
        return build_draft_exam(payload, fallback_title=fallback, id_prefix="exam")

    def generate_topic_exam(
        self,
        topic: str,
        on_status: StatusCallback | None = None,
    ) -> Exam:
        report = on_status or (lambda message: None)
        report(f"Retrieving {topic}...")
        payload = self.generate_by_topic(topic)
        return build_draft_exam(payload, fallback_title=topic.strip(), id_prefix="gate")

    def _run(self, prompt: str, temperature: float, failure_message: str) -> IngestedExam:
        if self._generator_factory is None:
            raise IngestionError(MISSING_API_KEY_MESSAGE)
        try:
            generator = self._generator_factory()
            raw = generator.generate_json(prompt, temperature)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Model call failed")
            raise IngestionError(failure_message) from exc
        try:
            return parse_payload(raw)
        except ValidationError as exc:
            logger.warning("Model output failed validation: %s", exc)
            raise IngestionError(failure_message) from exc


def _check_cancelled(cancel_event: Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise IngestionCancelled("Exam import was cancelled.")
