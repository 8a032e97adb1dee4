"""Thin wrapper around the Gemini SDK that returns decoded JSON."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout
import json
import logging
from typing import Any, Protocol

import google.generativeai as genai

from exam_app.constants.ingestion_constants import GEMINI_MODEL_NAME, GEMINI_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class JsonGenerator(Protocol):
    """Anything that turns a prompt into a decoded JSON document."""

    def generate_json(self, prompt: str, temperature: float) -> Any: ...


class GeminiClient:
    """Calls Gemini in JSON mode with a hard timeout."""

    def __init__(
        self,
        api_key: str,
        model_name: str = GEMINI_MODEL_NAME,
        timeout_seconds: float = GEMINI_TIMEOUT_SECONDS,
    ) -> None:
        if not api_key:
            raise ValueError("A Gemini API key is required.")
        genai.configure(api_key=api_key)
        self._model = genai.GenerativeModel(model_name)
        self._timeout = timeout_seconds

    def generate_json(self, prompt: str, temperature: float) -> Any:
        def _call() -> Any:
            return self._model.generate_content(
                prompt,
                generation_config={
                    "response_mime_type": "application/json",
                    "temperature": temperature,
                },
            )

        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(_call)
        try:
            response = future.result(timeout=self._timeout)
        except FuturesTimeout as exc:
            future.cancel()
            raise TimeoutError(f"Gemini did not answer within {self._timeout:.0f}s.") from exc
        finally:
            executor.shutdown(wait=False)

        text = getattr(response, "text", None) or "{}"
        logger.debug("Gemini returned %d characters", len(text))
        return json.loads(text)
