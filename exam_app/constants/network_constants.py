"""Network configuration constants for the exam application."""

import os

DEFAULT_HOST: str = os.getenv("EXAMQT_HOST", "0.0.0.0")
DEFAULT_PORT: int = int(os.getenv("EXAMQT_PORT", "8000"))
CANDIDATE_ID_HEADER: str = "X-Candidate-Id"
CANDIDATE_NAME_HEADER: str = "X-Candidate-Name"
WEBHOOK_TIMEOUT_SECONDS: float = 5.0
