"""
Shared metric types.
"""

from typing import NamedTuple

# Score assigned whenever a metric has nothing to measure
NEUTRAL_SCORE = 50.0


class MetricResult(NamedTuple):
    """A single normalized contributor metric."""

    name: str
    raw_value: float
    normalized_score: float  # 0-100
    weight: float
    weighted_score: float  # normalized_score * weight
    details: str
    data_point_count: int


class MetricCheck(NamedTuple):
    """Pass/fail outcome of a metric in threshold mode."""

    name: str
    raw_value: float
    threshold: float
    passed: bool
    details: str
    data_point_count: int


def build_result(
    name: str,
    raw_value: float,
    normalized_score: float,
    weight: float,
    details: str,
    data_point_count: int,
) -> MetricResult:
    """Create a MetricResult, clamping the score and deriving the weighted score."""
    score = max(0.0, min(100.0, float(normalized_score)))
    return MetricResult(
        name=name,
        raw_value=raw_value,
        normalized_score=score,
        weight=weight,
        weighted_score=score * weight,
        details=details,
        data_point_count=data_point_count,
    )


def neutral_result(
    name: str, raw_value: float, weight: float, details: str, data_point_count: int = 0
) -> MetricResult:
    """Create a neutral (50) MetricResult for metrics without usable data."""
    return build_result(name, raw_value, NEUTRAL_SCORE, weight, details, data_point_count)
