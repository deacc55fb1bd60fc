"""Runtime settings resolved from the environment."""

from __future__ import annotations

from dataclasses import dataclass, field
import getpass
import os
from pathlib import Path

from exam_app.constants.exam_constants import DEFAULT_SAMPLE_SIZE
from exam_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT


def _split_ids(raw: str | None) -> frozenset[str]:
    if not raw:
        return frozenset()
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


def _default_candidate_id() -> str:
    try:
        return getpass.getuser()
    except OSError:
        return "candidate"


@dataclass(slots=True, frozen=True)
class AppSettings:
    """Locations, webhook targets and identities used to wire the services.

    Environment variables:
        EXAMQT_CATALOG_DIR     directory with ``*.txt`` exam definitions
        EXAMQT_DATA_DIR        root for ``snapshots/`` and ``results/``
        EXAMQT_SUBMISSION_WEBHOOK, EXAMQT_ALERT_WEBHOOK
        EXAMQT_PRIVILEGED_IDS  comma separated candidate ids that skip the token gate
        EXAMQT_CANDIDATE_ID, EXAMQT_CANDIDATE_NAME  identity of the desktop candidate
        EXAMQT_SAMPLE_SIZE     questions per generated exam
    """

    catalog_dir: Path = Path("exams")
    data_dir: Path = Path("exam_data")
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    submission_webhook_url: str | None = None
    alert_webhook_url: str | None = None
    privileged_ids: frozenset[str] = field(default_factory=frozenset)
    candidate_id: str = "candidate"
    candidate_name: str | None = None
    sample_size: int = DEFAULT_SAMPLE_SIZE

    @property
    def snapshot_dir(self) -> Path:
        return self.data_dir / "snapshots"

    @property
    def results_dir(self) -> Path:
        return self.data_dir / "results"

    @property
    def webhooks_enabled(self) -> bool:
        return bool(self.submission_webhook_url or self.alert_webhook_url)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "AppSettings":
        env = os.environ if environ is None else environ
        sample_size = int(env.get("EXAMQT_SAMPLE_SIZE", str(DEFAULT_SAMPLE_SIZE)))
        if sample_size <= 0:
            raise ValueError("EXAMQT_SAMPLE_SIZE must be a positive integer.")
        return cls(
            catalog_dir=Path(env.get("EXAMQT_CATALOG_DIR", "exams")),
            data_dir=Path(env.get("EXAMQT_DATA_DIR", "exam_data")),
            host=env.get("EXAMQT_HOST", DEFAULT_HOST),
            port=int(env.get("EXAMQT_PORT", str(DEFAULT_PORT))),
            submission_webhook_url=env.get("EXAMQT_SUBMISSION_WEBHOOK") or None,
            alert_webhook_url=env.get("EXAMQT_ALERT_WEBHOOK") or None,
            privileged_ids=_split_ids(env.get("EXAMQT_PRIVILEGED_IDS")),
            candidate_id=env.get("EXAMQT_CANDIDATE_ID") or _default_candidate_id(),
            candidate_name=env.get("EXAMQT_CANDIDATE_NAME") or None,
            sample_size=sample_size,
        )
