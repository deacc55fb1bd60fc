"""Component showing the outcome of a finished attempt."""

from __future__ import annotations

from typing import Callable

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QLabel, QPushButton, QVBoxLayout, QWidget

from exam_app.constants.ui_constants import (
    BACK_TO_SELECTION_BUTTON,
    RESULT_FAILED,
    RESULT_PASSED,
    RESULT_SCORE_TEMPLATE,
    RESULT_THRESHOLD_TEMPLATE,
    RETRY_SUBMISSION_BUTTON,
)
from exam_app.core.models import Result
from exam_app.styling.styles import Styles


class ResultPanel(QWidget):
    """Shows the verdict, or a retry button while a submission is pending."""

    def __init__(
        self,
        on_retry: Callable[[], None],
        on_back: Callable[[], None],
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.on_retry = on_retry
        self.on_back = on_back
        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)
        layout.addStretch()

        self.verdict_label = QLabel("", self)
        self.verdict_label.setAlignment(Qt.AlignCenter)
        layout.addWidget(self.verdict_label)

        self.score_label = QLabel("", self)
        self.score_label.setAlignment(Qt.AlignCenter)
        self.score_label.setStyleSheet(Styles.get_large_label_style())
        layout.addWidget(self.score_label)

        self.threshold_label = QLabel("", self)
        self.threshold_label.setAlignment(Qt.AlignCenter)
        layout.addWidget(self.threshold_label)

        self.retry_button = QPushButton(RETRY_SUBMISSION_BUTTON, self)
        self.retry_button.clicked.connect(self.on_retry)
        self.retry_button.setVisible(False)
        layout.addWidget(self.retry_button)

        self.back_button = QPushButton(BACK_TO_SELECTION_BUTTON, self)
        self.back_button.clicked.connect(self.on_back)
        layout.addWidget(self.back_button)
        layout.addStretch()

    def show_pending(self, error_message: str | None) -> None:
        self.verdict_label.setStyleSheet(Styles.get_large_label_style())
        self.verdict_label.setText("Submitting…")
        self.score_label.setText(error_message or "")
        self.threshold_label.setText("")
        self.retry_button.setVisible(error_message is not None)
        self.back_button.setVisible(False)

    def show_result(self, result: Result) -> None:
        self.verdict_label.setText(RESULT_PASSED if result.passed else RESULT_FAILED)
        self.verdict_label.setStyleSheet(Styles.get_verdict_style(result.passed))
        self.score_label.setText(
            RESULT_SCORE_TEMPLATE.format(
                score=result.score,
                total=result.total_questions,
                percentage=result.percentage,
            )
        )
        self.threshold_label.setText(RESULT_THRESHOLD_TEMPLATE.format(threshold=result.passing_threshold))
        self.retry_button.setVisible(False)
        self.back_button.setVisible(True)
