"""
Answer scoring for choice questions.

Both scorers return 1 for a correct answer and 0 otherwise. There is no
partial credit: a multi-choice answer must match the correct set exactly.
"""

import math
from collections.abc import Iterable


def score_single(picked: int, correct: int) -> int:
    """Score a single-choice answer by index equality."""
    return 1 if picked == correct else 0


def score_multi(picked: Iterable[int], correct: Iterable[int]) -> int:
    """Score a multi-choice answer by exact set equality."""
    a = sorted(set(picked))
    b = sorted(set(correct))
    if len(a) != len(b):
        return 0
    return 1 if all(x == y for x, y in zip(a, b)) else 0


def round_percent(value: float) -> int:
    """Round half up, so 12.5 -> 13 (``round`` would give 12)."""
    return math.floor(value + 0.5)


def mean_percent(values: Iterable[float]) -> int:
    """Rounded unweighted mean of percentages; 0 when there are none."""
    items = list(values)
    if not items:
        return 0
    return round_percent(sum(items) / len(items))
