"""Qt UI components for the candidate application."""

from .candidate_main_window import CandidateMainWindow
from .dialog_helpers import show_error, show_info, show_warning
from .question_renderer import render_question_document

__all__ = [
    "CandidateMainWindow",
    "show_error",
    "show_info",
    "show_warning",
    "render_question_document",
]
