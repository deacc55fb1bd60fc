"""Question rendering utilities for displaying exam questions."""

from __future__ import annotations

from exam_app.core.markdown_math_renderer import renderer


def render_question_document(prompt: str, font_size: int = 14) -> str:
    """Render an exam prompt (Markdown and LaTeX) as a full HTML document.

    Options are rendered by the question panel as buttons, so only the prompt
    goes through QWebEngineView.
    """
    return renderer.render_full_document(prompt.strip() or "(No question text)", font_size=font_size)
