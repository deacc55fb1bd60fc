"""Qt main window guiding one candidate through an exam attempt."""

from __future__ import annotations

from enum import Enum, auto
import logging

from PySide6.QtCore import QTimer
from PySide6.QtGui import QCloseEvent
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from exam_app.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION, HELP_TEXT
from exam_app.constants.ui_constants import (
    CANNOT_START_TITLE,
    STATE_REFRESH_INTERVAL_MS,
    SUBMISSION_FAILED_TITLE,
    VIOLATION_MESSAGE,
    VIOLATION_TITLE,
    WINDOW_TITLE,
)
from exam_app.core.errors import (
    AuthorizationError,
    EmptyPoolError,
    InvalidTransitionError,
    PersistenceError,
)
from exam_app.core.exam_manager import ExamManager
from exam_app.core.exam_session import ExamSession
from exam_app.core.models import Candidate, SessionState
from exam_app.styling.styles import Styles
from exam_app.ui.components.question_panel import QuestionPanel
from exam_app.ui.components.result_panel import ResultPanel
from exam_app.ui.components.token_dialog import TokenDialog
from exam_app.ui.components.type_selection_panel import TypeSelectionPanel
from exam_app.ui.dialog_helpers import show_error, show_info, show_warning
from exam_app.ui.integrity_adapter import IntegrityEventFilter
from exam_app.ui.qt_ticker import QtTicker

logger = logging.getLogger(__name__)


class CandidateView(Enum):
    """Page of the stacked widget currently shown."""

    TYPE_SELECTION = auto()
    QUESTION = auto()
    RESULT = auto()


class CandidateMainWindow(QMainWindow):
    """Main Qt window mirroring the state of the candidate's ExamSession."""

    def __init__(self, exam_manager: ExamManager, candidate: Candidate) -> None:
        super().__init__()
        self.setWindowTitle(f"{WINDOW_TITLE} - {candidate.display_name}")

        self.exam_manager = exam_manager
        self.candidate = candidate
        self.ticker = QtTicker(self)
        self.session: ExamSession = exam_manager.session_for(candidate, ticker=self.ticker)

        self._view: CandidateView | None = None
        self._last_state: SessionState | None = None

        self._build_ui()
        self._configure_refresh_timer()
        self.setStyleSheet(Styles.get_main_window_style())
        self.installEventFilter(IntegrityEventFilter(lambda: self.session.integrity_monitor, self))
        self.type_selection_panel.set_exam_types(self.exam_manager.list_exam_types())
        self._refresh_state()

    def _build_ui(self) -> None:
        central_widget = QWidget(self)
        self.setCentralWidget(central_widget)

        root_layout = QVBoxLayout()
        central_widget.setLayout(root_layout)

        header_row = QHBoxLayout()
        header_row.addWidget(QLabel(self.candidate.display_name, self))
        header_row.addStretch()
        self.help_button = QPushButton("Help", self)
        self.help_button.clicked.connect(lambda: show_info(self, f"{APP_NAME} Help", HELP_TEXT))
        header_row.addWidget(self.help_button)
        self.about_button = QPushButton(f"About {APP_NAME}", self)
        self.about_button.clicked.connect(self._handle_about)
        header_row.addWidget(self.about_button)
        root_layout.addLayout(header_row)

        self.view_stack = QStackedWidget(self)
        self.type_selection_panel = TypeSelectionPanel(on_start=self._handle_start, parent=self)
        self.question_panel = QuestionPanel(
            on_option=self._handle_option,
            on_next=self._handle_next,
            parent=self,
        )
        self.result_panel = ResultPanel(
            on_retry=self._handle_retry,
            on_back=self._handle_back,
            parent=self,
        )
        self.view_stack.addWidget(self.type_selection_panel)
        self.view_stack.addWidget(self.question_panel)
        self.view_stack.addWidget(self.result_panel)
        root_layout.addWidget(self.view_stack)

    def _configure_refresh_timer(self) -> None:
        self.refresh_timer = QTimer(self)
        self.refresh_timer.setInterval(STATE_REFRESH_INTERVAL_MS)
        self.refresh_timer.timeout.connect(self._refresh_state)
        self.refresh_timer.start()

    def _refresh_state(self) -> None:
        state = self.session.state
        if state is SessionState.IN_PROGRESS:
            self._set_view(CandidateView.QUESTION)
            self.question_panel.update_from_session(self.session)
        elif state is SessionState.SUBMITTING:
            self._set_view(CandidateView.RESULT)
            error = self.session.submission_error
            self.result_panel.show_pending(str(error) if error is not None else None)
        elif state is SessionState.COMPLETED:
            self._set_view(CandidateView.RESULT)
            if self.session.result is not None:
                self.result_panel.show_result(self.session.result)
        else:
            self._set_view(CandidateView.TYPE_SELECTION)

        ended_by_violation = (
            self._last_state is SessionState.IN_PROGRESS
            and state is not SessionState.IN_PROGRESS
            and self.session.violation is not None
        )
        self._last_state = state
        if ended_by_violation:
            show_warning(self, VIOLATION_TITLE, VIOLATION_MESSAGE)

    def _set_view(self, view: CandidateView) -> None:
        if view == self._view:
            return
        self._view = view
        in_exam = view == CandidateView.QUESTION
        self.help_button.setEnabled(not in_exam)
        self.about_button.setEnabled(not in_exam)
        index_map = {
            CandidateView.TYPE_SELECTION: 0,
            CandidateView.QUESTION: 1,
            CandidateView.RESULT: 2,
        }
        self.view_stack.setCurrentIndex(index_map[view])

    # --- Handlers ---

    def _handle_start(self, exam_type_id: int) -> None:
        try:
            state = self.session.select_exam_type(exam_type_id)
        except (EmptyPoolError, InvalidTransitionError) as exc:
            show_warning(self, CANNOT_START_TITLE, str(exc))
            return
        except KeyError as exc:
            show_error(self, CANNOT_START_TITLE, str(exc))
            return

        if state is SessionState.AWAITING_AUTHORIZATION:
            exam_type = self.session.exam_type
            dialog = TokenDialog(exam_type.name if exam_type else "", self._verify_token, self)
            if not dialog.exec() and self.session.state is SessionState.AWAITING_AUTHORIZATION:
                self.session.cancel_authorization()
        self._refresh_state()

    def _verify_token(self, token: str) -> str | None:
        try:
            self.session.authorize(token)
        except (AuthorizationError, EmptyPoolError) as exc:
            return str(exc)
        return None

    def _handle_option(self, option_index: int) -> None:
        try:
            self.session.select_option(option_index)
        except InvalidTransitionError:
            # The countdown moved on between the click and the handler.
            logger.debug("Option %d ignored; question no longer active", option_index)
        self._refresh_state()

    def _handle_next(self) -> None:
        try:
            self.session.next()
        except InvalidTransitionError as exc:
            logger.debug("Next ignored: %s", exc)
        except PersistenceError as exc:
            self._refresh_state()
            show_error(self, SUBMISSION_FAILED_TITLE, str(exc))
            return
        self._refresh_state()

    def _handle_retry(self) -> None:
        try:
            self.session.retry_submission()
        except PersistenceError as exc:
            show_error(self, SUBMISSION_FAILED_TITLE, str(exc))
        self._refresh_state()

    def _handle_back(self) -> None:
        try:
            self.session = self.exam_manager.reset_session(self.candidate, ticker=self.ticker)
        except InvalidTransitionError as exc:
            show_warning(self, APP_NAME, str(exc))
            return
        self._last_state = None
        self.type_selection_panel.set_exam_types(self.exam_manager.list_exam_types())
        self._refresh_state()

    def _handle_about(self) -> None:
        details = f"{APP_NAME} {APP_VERSION}\n\n{APP_ABOUT_TEXT}\n\nLicense: {APP_LICENSE}"
        show_info(self, f"About {APP_NAME}", details)

    def closeEvent(self, event: QCloseEvent) -> None:  # noqa: N802 - Qt API
        # Stop monitoring before the window hides so closing is not a violation.
        self.refresh_timer.stop()
        self.session.close()
        super().closeEvent(event)
