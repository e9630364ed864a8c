"""Score scale helpers."""

import math

BASELINE_SCORE = 500
MIN_SCORE = 0
MAX_SCORE = 1000


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity."""
    return int(math.floor(value + 0.5))


def normalize_score(weighted_sum: float) -> int:
    """
    Rescale a weighted metric sum (0-100) to the 0-1000 score scale.

    A neutral sum of 50 maps to the 500 baseline.
    """
    return round_half_up(weighted_sum * 10)


def clamp_score(score: float) -> int:
    """Clamp a score to [0, 1000]."""
    return int(max(MIN_SCORE, min(MAX_SCORE, score)))


def calculate_adjustment(score: int) -> int:
    """Distance of a score from the baseline."""
    return score - BASELINE_SCORE


def get_score_category(score: int) -> str:
    """Return the display category for a score."""
    if score >= 800:
        return "excellent"
    if score >= 600:
        return "good"
    if score >= 400:
        return "average"
    if score >= 200:
        return "low"
    return "poor"


def format_score(score: int) -> str:
    return f"{score}/{MAX_SCORE}"


def score_to_percentage(score: int) -> int:
    return round_half_up(score / MAX_SCORE * 100)
