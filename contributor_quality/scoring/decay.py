"""
Time-based decay toward the baseline score.

Recent merged work keeps a score where it is; stale history pulls it back
toward 500 so past merit and past infractions both fade.
"""

from collections.abc import Iterable
from datetime import datetime

from contributor_quality.scoring.normalizer import BASELINE_SCORE, round_half_up
from contributor_quality.snapshot import months_before

MIN_DECAY_FACTOR = 0.8
MAX_DECAY_FACTOR = 1.0

# Merges within this many months count as recent
RECENT_ACTIVITY_MONTHS = 3


def calculate_decay_factor(activity_dates: Iterable[datetime], now: datetime) -> float:
    """
    Calculate the decay factor from the share of recent activity.

    Returns 1.0 when every date is recent, 0.8 when none is, linear in
    between. No activity at all means no decay.
    """
    dates = list(activity_dates)
    if not dates:
        return MAX_DECAY_FACTOR

    recent_threshold = months_before(now, RECENT_ACTIVITY_MONTHS)
    recent = sum(1 for moment in dates if moment >= recent_threshold)
    recency_ratio = recent / len(dates)

    return MIN_DECAY_FACTOR + recency_ratio * (MAX_DECAY_FACTOR - MIN_DECAY_FACTOR)


def apply_decay_toward_baseline(score: float, decay_factor: float) -> int:
    """Shrink a score's distance from the baseline by the decay factor."""
    return round_half_up(BASELINE_SCORE + (score - BASELINE_SCORE) * decay_factor)


def calculate_decay_percentage(decay_factor: float) -> int:
    """Effective decay as a display percentage."""
    return round_half_up((1 - decay_factor) * 100)
