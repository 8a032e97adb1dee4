"""Markdown + LaTeX rendering for question and option text.

Extracted papers are full of formulas ($x^2$, \\frac{a}{b}). Text is turned
into HTML here and MathJax typesets the math in the browser, so the API only
ships fragments and never a rendered image.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt


@dataclass(slots=True)
class MarkdownMathRenderer:
    """Converts markdown-with-math into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str) -> str:
        sanitized = markdown_text.strip()
        if not sanitized:
            return "<p><em>No content provided.</em></p>"
        return self._markdown.render(sanitized)

    def render_inline(self, markdown_text: str) -> str:
        """Render without the wrapping paragraph, for option labels."""
        return self._markdown.renderInline(markdown_text.strip())

    def decorate_question(self, question_view: dict[str, object]) -> dict[str, object]:
        """Add `html` fields to a student-facing question payload."""
        decorated = dict(question_view)
        decorated["html"] = self.render_fragment(str(question_view.get("text") or ""))
        options = question_view.get("options") or []
        decorated["options"] = [
            {**option, "html": self.render_inline(str(option.get("text") or ""))}
            for option in options  # type: ignore[union-attr]
        ]
        return decorated


renderer = MarkdownMathRenderer()
# Shared instance; MarkdownIt is safe for concurrent read-only renders.
