"""
Completion gate: may the learner use a completion page's primary action?

The gate is a pure function of the page requirements and the current scores.
Callers re-evaluate it whenever scores change; nothing here is cached.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from selfstudy.content.models import CompletionRequirements

from .attempt_store import Scores
from .scoring import mean_percent


@dataclass(frozen=True)
class GateStatus:
    required_modules: list[str] = field(default_factory=list)
    missing_modules: list[str] = field(default_factory=list)
    overall_percent: int = 0
    min_overall_percent: float | None = None
    meets_overall: bool = True
    ready: bool = True


def overall_percent(scores: Scores) -> int:
    """Final percent when recorded, else the rounded mean of module scores."""
    if scores.final is not None:
        return scores.final.percent
    return mean_percent(scores.modules.values())


def evaluate_gate(requires: CompletionRequirements | None, scores: Scores) -> GateStatus:
    required = list(requires.modules) if requires else []
    minimum = requires.min_overall_percent if requires else None

    missing = [module_id for module_id in required if module_id not in scores.modules]
    overall = overall_percent(scores)
    meets_overall = minimum is None or overall >= minimum

    return GateStatus(
        required_modules=required,
        missing_modules=missing,
        overall_percent=overall,
        min_overall_percent=minimum,
        meets_overall=meets_overall,
        ready=not missing and meets_overall,
    )
