"""Exception taxonomy for the exam session engine."""

from __future__ import annotations


class ExamError(Exception):
    """Base class for errors raised by the exam engine."""


class EmptyPoolError(ExamError):
    """Raised when an exam type has no questions to draw from."""


class AuthorizationError(ExamError):
    """Raised when an access token is missing, invalid or already used."""


class PersistenceError(ExamError):
    """Raised when a snapshot or result cannot be written to its store."""


class TransientNotifyError(ExamError):
    """Raised by notification sinks when an event could not be delivered."""


class InvalidTransitionError(ExamError):
    """Raised when an operation is not allowed in the current session state."""
