"""Modal dialog collecting the one-time access token."""

from __future__ import annotations

from typing import Callable

from PySide6.QtWidgets import (
    QDialog,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from exam_app.constants.ui_constants import (
    TOKEN_DIALOG_CANCEL,
    TOKEN_DIALOG_PROMPT,
    TOKEN_DIALOG_TITLE,
    TOKEN_DIALOG_VERIFY,
    TOKEN_EMPTY_MESSAGE,
)


class TokenDialog(QDialog):
    """Asks for a token and hands it to ``verify``.

    ``verify`` returns an error message to display, or ``None`` when the token
    was accepted, in which case the dialog closes.
    """

    def __init__(
        self,
        exam_type_name: str,
        verify: Callable[[str], str | None],
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle(TOKEN_DIALOG_TITLE)
        self.setModal(True)
        self._verify = verify

        layout = QVBoxLayout()
        self.setLayout(layout)

        layout.addWidget(QLabel(f"<b>{exam_type_name}</b>", self))
        prompt = QLabel(TOKEN_DIALOG_PROMPT, self)
        prompt.setWordWrap(True)
        layout.addWidget(prompt)

        self.token_input = QLineEdit(self)
        self.token_input.returnPressed.connect(self._handle_verify)
        layout.addWidget(self.token_input)

        self.error_label = QLabel("", self)
        self.error_label.setStyleSheet("color: #D13438;")
        self.error_label.setWordWrap(True)
        layout.addWidget(self.error_label)

        button_row = QHBoxLayout()
        button_row.addStretch()
        cancel_button = QPushButton(TOKEN_DIALOG_CANCEL, self)
        cancel_button.clicked.connect(self.reject)
        button_row.addWidget(cancel_button)
        self.verify_button = QPushButton(TOKEN_DIALOG_VERIFY, self)
        self.verify_button.setDefault(True)
        self.verify_button.clicked.connect(self._handle_verify)
        button_row.addWidget(self.verify_button)
        layout.addLayout(button_row)

    def _handle_verify(self) -> None:
        token = self.token_input.text().strip()
        if not token:
            self.error_label.setText(TOKEN_EMPTY_MESSAGE)
            return
        self.verify_button.setEnabled(False)
        error = self._verify(token)
        self.verify_button.setEnabled(True)
        if error is None:
            self.accept()
        else:
            self.error_label.setText(error)
