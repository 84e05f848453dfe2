"""Numeric helpers shared by the detectors."""
from typing import Optional, Sequence
import statistics

import Levenshtein


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0 for an empty sequence."""
    if not values:
        return 0.0
    return statistics.fmean(values)


def stddev(values: Sequence[float]) -> float:
    """Population standard deviation, 0 for an empty sequence."""
    if not values:
        return 0.0
    return statistics.pstdev(values)


def levenshtein(a: str, b: str) -> int:
    """Edit distance with unit cost for insertion, deletion and substitution."""
    return Levenshtein.distance(a, b)


def similarity(a: str, b: str) -> float:
    """Normalized similarity in [0, 1]; two empty strings are identical."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1 - levenshtein(a, b) / longest


def consistency(values: Sequence[float], average: float, default: float) -> float:
    """Score 0-100 of how tightly values cluster around their average.

    Args:
        values: Observations
        average: Reference average the spread is measured against
        default: Score returned when the average is not positive

    Returns:
        max(0, 100 - stddev / average * 100)
    """
    if average <= 0:
        return default
    return max(0.0, 100 - stddev(values) / average * 100)


def percent_change(current: float, previous: float) -> Optional[float]:
    """Relative change in percent, None when there is no previous amount."""
    if previous == 0:
        return None
    return (current - previous) / previous * 100
