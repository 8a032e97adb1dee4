"""Plain-text extraction from uploaded PDF question papers."""

from __future__ import annotations

from collections.abc import Iterable
import logging
from pathlib import Path
from typing import BinaryIO

import pdfplumber

logger = logging.getLogger(__name__)


def extract_text_from_pdf(source: str | Path | BinaryIO) -> str:
    """Return the text of every page, each preceded by a `--- Page N ---` header."""
    parts: list[str] = []
    with pdfplumber.open(source) as pdf:
        for page_number, page in enumerate(pdf.pages, start=1):
            page_text = page.extract_text() or ""
            parts.append(f"\n--- Page {page_number} ---\n{page_text}")
    logger.debug("Extracted %d page(s) from PDF", len(parts))
    return "".join(parts)


def combine_documents(documents: Iterable[tuple[str, str]]) -> str:
    """Join (file name, text) pairs into one prompt body with file markers."""
    return "".join(
        f"\n\n--- FILE START: {name} ---\n{text}\n--- FILE END ---\n" for name, text in documents
    )
