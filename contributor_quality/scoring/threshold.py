"""
Simplified pass/fail mode.

Instead of comparing the final score to a minimum, each metric's raw value is
compared to its own threshold and every required metric must pass. The score
itself is still computed by the weighted composer.
"""

from collections.abc import Sequence

from contributor_quality.config import MetricThresholds
from contributor_quality.metrics.base import MetricCheck, MetricResult

# Metrics where a lower raw value is better
_LOWER_IS_BETTER = {"negativeReactions"}


def check_metric(result: MetricResult, threshold: float) -> MetricCheck:
    """
    Compare a metric's raw value against its threshold.

    Metrics without data points always pass, so missing history never fails
    a contributor.
    """
    if result.data_point_count == 0:
        passed = True
        verdict = "no data, not evaluated"
    elif result.name in _LOWER_IS_BETTER:
        passed = result.raw_value <= threshold
        verdict = f"{'meets' if passed else 'above'} threshold <= {threshold:g}"
    else:
        passed = result.raw_value >= threshold
        verdict = f"{'meets' if passed else 'below'} threshold >= {threshold:g}"

    return MetricCheck(
        name=result.name,
        raw_value=result.raw_value,
        threshold=threshold,
        passed=passed,
        details=f"{result.details} ({verdict})",
        data_point_count=result.data_point_count,
    )


def check_all_metrics(
    metrics: Sequence[MetricResult], thresholds: MetricThresholds
) -> list[MetricCheck]:
    """Check every metric that has a configured threshold."""
    configured = thresholds._asdict()
    return [
        check_metric(result, configured[result.name])
        for result in metrics
        if result.name in configured
    ]


def determine_pass_status(
    checks: Sequence[MetricCheck], required_metrics: Sequence[str]
) -> bool:
    """A run passes when every required metric passes."""
    by_name = {check.name: check for check in checks}
    return all(by_name[name].passed for name in required_metrics if name in by_name)
