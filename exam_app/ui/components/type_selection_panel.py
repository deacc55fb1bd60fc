"""Component listing the exam types a candidate can start."""

from __future__ import annotations

from typing import Callable

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QLabel,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from exam_app.constants.ui_constants import (
    START_EXAM_BUTTON,
    TYPE_SELECTION_EMPTY,
    TYPE_SELECTION_TITLE,
)
from exam_app.core.models import ExamType
from exam_app.styling.styles import Styles


class TypeSelectionPanel(QWidget):
    """UI component for choosing an exam type."""

    def __init__(
        self,
        on_start: Callable[[int], None],
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.on_start = on_start
        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        title = QLabel(TYPE_SELECTION_TITLE, self)
        title.setStyleSheet(Styles.get_large_label_style())
        layout.addWidget(title)

        self.empty_label = QLabel(TYPE_SELECTION_EMPTY, self)
        self.empty_label.setVisible(False)
        layout.addWidget(self.empty_label)

        self.type_list = QListWidget(self)
        self.type_list.itemSelectionChanged.connect(self._update_button_state)
        self.type_list.itemDoubleClicked.connect(lambda _item: self._handle_start())
        layout.addWidget(self.type_list, stretch=1)

        self.start_button = QPushButton(START_EXAM_BUTTON, self)
        self.start_button.setEnabled(False)
        self.start_button.clicked.connect(self._handle_start)
        layout.addWidget(self.start_button)

    def set_exam_types(self, exam_types: list[ExamType]) -> None:
        self.type_list.clear()
        for exam_type in exam_types:
            label = f"{exam_type.name}  (pass mark {exam_type.passing_threshold:g}%)"
            if exam_type.description:
                label += f"\n{exam_type.description}"
            item = QListWidgetItem(label)
            item.setData(Qt.UserRole, exam_type.id)
            self.type_list.addItem(item)
        self.empty_label.setVisible(not exam_types)
        self._update_button_state()

    def _update_button_state(self) -> None:
        self.start_button.setEnabled(self.type_list.currentItem() is not None)

    def _handle_start(self) -> None:
        item = self.type_list.currentItem()
        if item is None:
            return
        self.on_start(int(item.data(Qt.UserRole)))
