"""
Attempt state for one learner working through one course.

The store owns a single immutable AttemptState snapshot and replaces it on
every action. Listeners registered with ``subscribe`` are called with the new
snapshot after each change; the persistence adapter is one such listener.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

from loguru import logger


@dataclass(frozen=True)
class Learner:
    """Learner identity captured at onboarding."""

    full_name: str
    position: str
    home_site: str

    def __post_init__(self) -> None:
        for name in ("full_name", "position", "home_site"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"Learner {name} must be a non-empty string")

    def to_dict(self) -> dict[str, str]:
        return {
            "full_name": self.full_name,
            "position": self.position,
            "home_site": self.home_site,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Learner":
        return cls(
            full_name=data["full_name"],
            position=data["position"],
            home_site=data["home_site"],
        )


@dataclass(frozen=True)
class FinalScore:
    percent: int
    passed: bool


@dataclass(frozen=True)
class Scores:
    """Per-module percentages plus the optional final result."""

    modules: dict[str, int] = field(default_factory=dict)
    final: FinalScore | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"modules": dict(self.modules)}
        if self.final is not None:
            data["final"] = {"percent": self.final.percent, "passed": self.final.passed}
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Scores":
        if not data:
            return cls()
        final = data.get("final")
        return cls(
            modules={str(k): int(v) for k, v in (data.get("modules") or {}).items()},
            final=FinalScore(percent=int(final["percent"]), passed=bool(final["passed"]))
            if final
            else None,
        )


@dataclass(frozen=True)
class AttemptState:
    """Serializable attempt snapshot."""

    learner: Learner | None = None
    module_index: int = 0
    page_index: int = 0
    scores: Scores = field(default_factory=Scores)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "learner": self.learner.to_dict() if self.learner else None,
            "module_index": self.module_index,
            "page_index": self.page_index,
            "scores": self.scores.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AttemptState":
        """Create from dictionary. Raises on malformed input."""
        if not isinstance(data, dict):
            raise TypeError("Attempt snapshot must be an object")
        learner = data.get("learner")
        module_index = int(data.get("module_index") or 0)
        page_index = int(data.get("page_index") or 0)
        if module_index < 0 or page_index < 0:
            raise ValueError("Attempt snapshot has negative indices")
        return cls(
            learner=Learner.from_dict(learner) if learner else None,
            module_index=module_index,
            page_index=page_index,
            scores=Scores.from_dict(data.get("scores")),
        )


Listener = Callable[[AttemptState], None]


class AttemptStore:
    """
    Owner of the attempt state.

    Actions:
    - set_learner: capture learner identity
    - to_page: move to a module/page position
    - set_module_score: record a module quiz percentage
    - set_final_score: record the course result
    - reset: back to a fresh attempt
    """

    def __init__(self, state: AttemptState | None = None):
        self._state = state or AttemptState()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> AttemptState:
        return self._state

    @property
    def learner(self) -> Learner | None:
        return self._state.learner

    @property
    def scores(self) -> Scores:
        return self._state.scores

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, state: AttemptState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    # =========================================================================
    # Actions
    # =========================================================================

    def set_learner(self, learner: Learner) -> None:
        self._commit(replace(self._state, learner=learner))

    def to_page(self, module_index: int, page_index: int) -> None:
        if module_index < 0 or page_index < 0:
            raise ValueError(f"Invalid position ({module_index}, {page_index})")
        self._commit(replace(self._state, module_index=module_index, page_index=page_index))

    def set_module_score(self, module_id: str, percent: int) -> None:
        modules = {**self._state.scores.modules, module_id: percent}
        scores = replace(self._state.scores, modules=modules)
        logger.debug("Module {} scored {}%", module_id, percent)
        self._commit(replace(self._state, scores=scores))

    def set_final_score(self, percent: int, pass_mark_percent: float) -> None:
        final = FinalScore(percent=percent, passed=percent >= pass_mark_percent)
        scores = replace(self._state.scores, final=final)
        self._commit(replace(self._state, scores=scores))

    def reset(self) -> None:
        self._commit(AttemptState())

    def hydrate(self, state: AttemptState) -> None:
        """Replace the state without notifying listeners (restore-on-start)."""
        self._state = state
