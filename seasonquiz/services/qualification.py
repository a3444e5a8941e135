"""Qualification policy: turns (score, total, threshold) into pass/fail.

Pure functions, no I/O.  Percentages use half-up rounding to the nearest
integer, so ``1 / 8`` becomes 13 rather than Python's banker's 12.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal


@dataclass(frozen=True)
class Decision:
    percentage: int
    qualifies: bool


def percentage_of(score: int, total: int) -> int:
    """Return ``score / total * 100`` rounded half-up to an int."""
    if total <= 0:
        raise ValueError("total must be positive")
    if score < 0 or score > total:
        raise ValueError(f"score {score} outside 0..{total}")
    exact = Decimal(score) * 100 / Decimal(total)
    return int(exact.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def decide(score: int, total: int, threshold_percent: int) -> Decision:
    """Decide whether *score* out of *total* meets *threshold_percent*."""
    if threshold_percent < 0 or threshold_percent > 100:
        raise ValueError(f"threshold {threshold_percent} outside 0..100")
    percentage = percentage_of(score, total)
    return Decision(percentage=percentage, qualifies=percentage >= threshold_percent)


def minimum_correct(total: int, threshold_percent: int) -> int:
    """Smallest number of correct answers out of *total* that qualifies."""
    if total <= 0:
        raise ValueError("total must be positive")
    # Start from the exact bound and step down while rounding still qualifies.
    candidate = min(total, math.ceil(total * threshold_percent / 100))
    while candidate > 0 and decide(candidate - 1, total, threshold_percent).qualifies:
        candidate -= 1
    return candidate
