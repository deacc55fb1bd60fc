"""Application entry point for ExamQt."""

from __future__ import annotations

import socket
import sys

from PySide6.QtWidgets import QApplication

from exam_app.config import AppSettings
from exam_app.core.exam_manager import ExamManager
from exam_app.server.api_server import start_api_server
from exam_app.ui.candidate_main_window import CandidateMainWindow
from exam_app.utils.logging_config import configure_logging


def _determine_candidate_url(port: int) -> str:
    """Best-effort determination of the local IP for the browser candidate page."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("8.8.8.8", 80))
            ip_address = sock.getsockname()[0]
    except OSError:
        ip_address = "127.0.0.1"
    return f"http://{ip_address}:{port}/"


def main() -> None:
    """Initialize logging, start the API server, and launch the Qt candidate window."""
    logger = configure_logging()
    settings = AppSettings.from_env()
    logger.info("Starting ExamQt with catalog %s", settings.catalog_dir)

    exam_manager = ExamManager.from_settings(settings)
    start_api_server(exam_manager=exam_manager, host=settings.host, port=settings.port)
    logger.info("Candidate page available at %s", _determine_candidate_url(settings.port))

    app = QApplication(sys.argv)
    candidate = exam_manager.resolve_candidate(settings.candidate_id, settings.candidate_name)
    window = CandidateMainWindow(exam_manager=exam_manager, candidate=candidate)
    window.show()
    exit_code = app.exec()
    exam_manager.close()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
