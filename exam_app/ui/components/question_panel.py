"""Component presenting the current question with its countdown."""

from __future__ import annotations

from typing import Callable

from PySide6.QtWebEngineWidgets import QWebEngineView
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QProgressBar,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from exam_app.constants.ui_constants import (
    FINISH_EXAM_BUTTON,
    MULTIPLE_CHOICE_HINT,
    NEXT_QUESTION_BUTTON,
    QUESTION_COUNTER_TEMPLATE,
    TIMER_TEMPLATE,
)
from exam_app.core.exam_session import ExamSession
from exam_app.core.models import GeneratedQuestion
from exam_app.core.services.countdown import timer_band
from exam_app.styling.styles import Styles
from exam_app.ui.question_renderer import render_question_document


class QuestionPanel(QWidget):
    """UI component for answering one question at a time."""

    def __init__(
        self,
        on_option: Callable[[int], None],
        on_next: Callable[[], None],
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.on_option = on_option
        self.on_next = on_next
        self._question_id: int | None = None
        self._option_buttons: list[QPushButton] = []
        self._font_size: int = 14
        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        header_row = QHBoxLayout()
        self.counter_label = QLabel("", self)
        self.counter_label.setStyleSheet(Styles.get_large_label_style())
        header_row.addWidget(self.counter_label)
        header_row.addStretch()
        self.timer_label = QLabel("", self)
        header_row.addWidget(self.timer_label)
        layout.addLayout(header_row)

        self.timer_progress = QProgressBar(self)
        self.timer_progress.setTextVisible(False)
        layout.addWidget(self.timer_progress)

        self.prompt_view = QWebEngineView(self)
        layout.addWidget(self.prompt_view, stretch=1)

        self.hint_label = QLabel(MULTIPLE_CHOICE_HINT, self)
        self.hint_label.setVisible(False)
        layout.addWidget(self.hint_label)

        self.options_layout = QVBoxLayout()
        layout.addLayout(self.options_layout)

        button_row = QHBoxLayout()
        button_row.addStretch()
        self.next_button = QPushButton(NEXT_QUESTION_BUTTON, self)
        self.next_button.clicked.connect(self.on_next)
        button_row.addWidget(self.next_button)
        layout.addLayout(button_row)

    def set_font_size(self, font_size: int) -> None:
        self._font_size = font_size
        self._question_id = None

    def update_from_session(self, session: ExamSession) -> None:
        question = session.current_question
        if question is None:
            return
        if question.question_id != self._question_id:
            self._show_question(question)

        self.counter_label.setText(
            QUESTION_COUNTER_TEMPLATE.format(
                current=session.current_index + 1,
                total=session.question_count,
            )
        )
        remaining = session.time_remaining
        self.timer_label.setText(TIMER_TEMPLATE.format(seconds=remaining))
        self.timer_label.setStyleSheet(Styles.get_timer_label_style(timer_band(remaining)))
        self.timer_progress.setValue(remaining)

        answer = session.current_answer()
        selected = set(answer) if isinstance(answer, list) else {answer}
        for index, button in enumerate(self._option_buttons):
            button.setChecked(index in selected)

        is_last = session.current_index + 1 == session.question_count
        self.next_button.setText(FINISH_EXAM_BUTTON if is_last else NEXT_QUESTION_BUTTON)
        self.next_button.setEnabled(session.can_advance())

    def _show_question(self, question: GeneratedQuestion) -> None:
        self._question_id = question.question_id
        self.prompt_view.setHtml(render_question_document(question.prompt, font_size=self._font_size))
        self.hint_label.setVisible(question.is_multiple_choice)
        self.timer_progress.setRange(0, question.time_limit_seconds)

        for button in self._option_buttons:
            self.options_layout.removeWidget(button)
            button.deleteLater()
        self._option_buttons = []
        for index, option in enumerate(question.options):
            letter = chr(ord("A") + index)
            button = QPushButton(f"{letter}. {option}", self)
            button.setCheckable(True)
            button.clicked.connect(lambda _checked=False, idx=index: self.on_option(idx))
            self.options_layout.addWidget(button)
            self._option_buttons.append(button)
