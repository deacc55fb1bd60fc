"""Candidate identity lookup."""

from __future__ import annotations

from typing import Protocol

from exam_app.core.models import Candidate


class IdentityProvider(Protocol):
    def get_candidate(self, candidate_id: str, display_name: str | None = None) -> Candidate: ...


class StaticIdentityProvider:
    """Resolves candidates from a fixed set of privileged ids.

    Unknown ids are treated as regular candidates so that anyone holding a
    valid token can sit an exam.
    """

    def __init__(self, privileged_ids: set[str] | None = None) -> None:
        self._privileged_ids = set(privileged_ids or ())

    def get_candidate(self, candidate_id: str, display_name: str | None = None) -> Candidate:
        cleaned_id = candidate_id.strip()
        if not cleaned_id:
            raise ValueError("Candidate id must not be empty.")
        return Candidate(
            candidate_id=cleaned_id,
            display_name=(display_name or "").strip() or cleaned_id,
            privileged=cleaned_id in self._privileged_ids,
        )
