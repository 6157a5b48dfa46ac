"""
Quiz sampling from question pools.

An empty (or missing) pool yields no questions; callers treat that as
"nothing to assess" rather than an error.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


def sample(pool: Sequence[T] | None, count: int, rng: random.Random | None = None) -> list[T]:
    """
    Draw up to ``count`` distinct questions from ``pool`` in random order.

    Args:
        pool: Candidate questions. Not modified.
        count: Requested number of questions
        rng: Optional random source for reproducible draws

    Returns:
        ``min(count, len(pool))`` items drawn without replacement
    """
    if not pool:
        return []
    k = max(0, min(count, len(pool)))
    return (rng or random).sample(list(pool), k)
