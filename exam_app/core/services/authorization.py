"""One-time exam access tokens."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
import logging
from threading import Lock
from typing import Callable, Protocol
from uuid import uuid4

from exam_app.constants.exam_constants import TOKEN_EXPIRY_DAYS
from exam_app.core.models import utc_now

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class AuthorizationOutcome:
    success: bool
    error: str | None = None


@dataclass(slots=True)
class AccessToken:
    token: str
    candidate_id: str
    exam_type_id: int
    created_by: str
    expires_at: datetime
    used: bool = False
    created_at: datetime = field(default_factory=utc_now)
    used_at: datetime | None = None


class AuthorizationService(Protocol):
    def verify_and_consume_token(
        self, token: str, candidate_id: str, exam_type_id: int
    ) -> AuthorizationOutcome: ...


class InMemoryTokenAuthorizer:
    """Issues UUID tokens bound to one candidate and one exam type."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or utc_now
        self._lock = Lock()
        self._tokens: dict[str, AccessToken] = {}

    def issue_token(
        self,
        candidate_id: str,
        exam_type_id: int,
        created_by: str,
        expires_in_days: int = TOKEN_EXPIRY_DAYS,
    ) -> AccessToken:
        token = AccessToken(
            token=str(uuid4()),
            candidate_id=candidate_id,
            exam_type_id=exam_type_id,
            created_by=created_by,
            expires_at=self._clock() + timedelta(days=expires_in_days),
            created_at=self._clock(),
        )
        with self._lock:
            self._tokens[token.token] = token
        logger.info("Issued token for candidate %s, exam type %s", candidate_id, exam_type_id)
        return token

    def list_tokens(self) -> list[AccessToken]:
        with self._lock:
            return sorted(self._tokens.values(), key=lambda t: t.created_at, reverse=True)

    def revoke_token(self, token: str) -> bool:
        with self._lock:
            return self._tokens.pop(token, None) is not None

    def verify_and_consume_token(
        self, token: str, candidate_id: str, exam_type_id: int
    ) -> AuthorizationOutcome:
        with self._lock:
            entry = self._tokens.get(token.strip())
            if entry is None:
                return AuthorizationOutcome(False, "Invalid token. Check it and try again.")
            if entry.used:
                return AuthorizationOutcome(False, "This token has already been used.")
            if entry.expires_at <= self._clock():
                return AuthorizationOutcome(False, "This token has expired.")
            if entry.candidate_id != candidate_id:
                return AuthorizationOutcome(False, "This token was issued to another candidate.")
            if entry.exam_type_id != exam_type_id:
                return AuthorizationOutcome(False, "This token is not valid for the selected exam.")
            entry.used = True
            entry.used_at = self._clock()
        logger.info("Token consumed by candidate %s for exam type %s", candidate_id, exam_type_id)
        return AuthorizationOutcome(True)
