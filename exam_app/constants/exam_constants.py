"""Exam-related constants shared across core, server and UI layers."""

DEFAULT_SAMPLE_SIZE: int = 10
DEFAULT_TIME_LIMIT_SECONDS: int = 30
DEFAULT_PASSING_THRESHOLD: float = 75.0
SNAPSHOT_TTL_SECONDS: int = 60 * 60
TICK_INTERVAL_SECONDS: float = 1.0
TOKEN_EXPIRY_DAYS: int = 7

# Recorded for questions that timed out or were never answered.
NO_ANSWER: int = -1

MIN_OPTION_COUNT: int = 2
MAX_OPTION_COUNT: int = 8

TIMER_WARNING_SECONDS: int = 10
TIMER_CRITICAL_SECONDS: int = 5
