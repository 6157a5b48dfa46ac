"""
Completion payload assembly.

The payload is the training record for a finished attempt: who, when, how
well, and a snapshot of the content they saw. It is built once, stored
locally under the last-payload key, then sent to the ingestion endpoint.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from loguru import logger

from selfstudy.content.models import ModuleBundle
from selfstudy.exceptions import StorageError

from .attempt_store import FinalScore, Learner, Scores
from .scoring import mean_percent
from .storage import KeyValueStorage


@dataclass(frozen=True)
class ModuleMeta:
    """Per-module metadata forwarded unchanged into the payload."""

    id: str
    title: str
    outcomes: dict[str, Any] | None = None
    blueprint: dict[str, Any] | None = None
    content: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_bundle(cls, bundle: ModuleBundle) -> "ModuleMeta":
        return cls(
            id=bundle.manifest.id,
            title=bundle.manifest.title,
            outcomes=bundle.outcomes,
            blueprint=bundle.blueprint,
            content=[page.model_dump(mode="json") for page in bundle.pages],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "outcomes": self.outcomes,
            "blueprint": self.blueprint,
            "content": self.content,
        }


@dataclass(frozen=True)
class AttemptWindow:
    started_at: datetime
    completed_at: datetime

    @property
    def duration_sec(self) -> int:
        return max(0, int((self.completed_at - self.started_at).total_seconds()))

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "duration_sec": self.duration_sec,
        }


@dataclass(frozen=True)
class Payload:
    """Finalized training record for one attempt."""

    course_id: str
    learner: Learner
    attempt: AttemptWindow
    scores: Scores
    modules: list[ModuleMeta]
    user_agent: str
    ip_hash: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON body sent to the ingestion endpoint."""
        return {
            "course_id": self.course_id,
            "learner": self.learner.to_dict(),
            "attempt": self.attempt.to_dict(),
            "scores": self.scores.to_dict(),
            "metadata": {"modules": [m.to_dict() for m in self.modules]},
            "audit": {"user_agent": self.user_agent, "ip_hash": self.ip_hash},
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


def build_payload(
    course_id: str,
    learner: Learner,
    attempt_start: datetime,
    scores: Scores,
    user_agent: str,
    module_meta: list[ModuleMeta],
    pass_mark_percent: float,
    completed_at: datetime | None = None,
) -> Payload:
    """
    Build the completion payload.

    The final percent is the unweighted rounded mean of the module scores
    (0 when none were recorded); any final score already in ``scores`` is
    replaced.
    """
    percent = mean_percent(scores.modules.values())
    final = FinalScore(percent=percent, passed=percent >= pass_mark_percent)
    return Payload(
        course_id=course_id,
        learner=learner,
        attempt=AttemptWindow(
            started_at=attempt_start,
            completed_at=completed_at or datetime.now(timezone.utc),
        ),
        scores=Scores(modules=dict(scores.modules), final=final),
        modules=list(module_meta),
        user_agent=user_agent,
    )


def store_last_payload(storage: KeyValueStorage, key: str, payload: Payload) -> bool:
    """Write the payload snapshot read by the certificate view."""
    try:
        storage.set(key, payload.to_json())
    except StorageError as e:
        logger.error("Failed to persist last attempt payload: {}", e)
        return False
    return True


def read_last_payload(storage: KeyValueStorage, key: str) -> dict[str, Any] | None:
    """Read the most recently stored payload, or None if absent or unreadable."""
    try:
        raw = storage.get(key)
    except StorageError as e:
        logger.error("Failed to read last attempt payload: {}", e)
        return None
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Stored payload is not valid JSON: {}", e)
        return None
