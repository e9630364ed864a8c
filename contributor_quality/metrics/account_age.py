"""Account age and activity consistency metrics."""

import math
from datetime import datetime
from typing import NamedTuple

from contributor_quality.config import ScoringConfig
from contributor_quality.metrics.base import MetricResult, build_result, neutral_result
from contributor_quality.snapshot import RawContributorSnapshot

AGE_METRIC_NAME = "accountAge"
CONSISTENCY_METRIC_NAME = "activityConsistency"


class AccountSummary(NamedTuple):
    """Account age and how evenly activity spreads across months."""

    created_at: datetime
    age_in_days: int
    months_with_activity: int
    total_months_in_window: int
    effective_months: int
    consistency_score: float


def extract_account(
    snapshot: RawContributorSnapshot, config: ScoringConfig
) -> AccountSummary:
    """
    Compute account age and activity consistency.

    Consistency is active months divided by the window length (at most 12),
    where the window is further shortened to the account's own age so young
    accounts are not measured against months they did not exist.
    """
    age_in_days = max(0, (snapshot.window_end - snapshot.created_at).days)

    first_day = snapshot.window_start.date()
    last_day = snapshot.window_end.date()
    active_months = {
        (day.date.year, day.date.month)
        for day in snapshot.contribution_days
        if day.count > 0 and first_day <= day.date <= last_day
    }

    total_months = min(config.analysis_window_months, 12)
    effective_months = min(total_months, math.ceil(age_in_days / 30))
    consistency = (
        min(1.0, len(active_months) / effective_months) if effective_months > 0 else 0.0
    )

    return AccountSummary(
        created_at=snapshot.created_at,
        age_in_days=age_in_days,
        months_with_activity=len(active_months),
        total_months_in_window=total_months,
        effective_months=effective_months,
        consistency_score=consistency,
    )


def is_new_account(summary: AccountSummary, threshold_days: int) -> bool:
    """Check if the account is younger than the configured threshold."""
    return summary.age_in_days < threshold_days


def _describe_age(age_in_days: int) -> str:
    if age_in_days >= 365:
        years = age_in_days // 365
        return f"Account is {years}+ year{'s' if years > 1 else ''} old ({age_in_days} days)"
    if age_in_days >= 30:
        return f"Account is {age_in_days // 30} months old ({age_in_days} days)"
    return f"Account is {age_in_days} days old"


def check_account_age(summary: AccountSummary, weight: float) -> MetricResult:
    """
    Evaluates account maturity. Young accounts are never penalized.

    Scoring:
    - 365+ days: 100
    - 180-364: 75
    - 90-179: 60
    - 30-89: 55
    - <30: 50 (neutral)
    """
    age = summary.age_in_days

    if age >= 365:
        score = 100.0
    elif age >= 180:
        score = 75.0
    elif age >= 90:
        score = 60.0
    elif age >= 30:
        score = 55.0
    else:
        score = 50.0

    return build_result(AGE_METRIC_NAME, age, score, weight, _describe_age(age), 1)


def check_activity_consistency(summary: AccountSummary, weight: float) -> MetricResult:
    """
    Evaluates how steadily the contributor is active month over month.

    Scoring:
    - Too new to evaluate: 50 (neutral)
    - 90%+ of months active: 100
    - 70%+: 85
    - 50%+: 70
    - 25%+: 55
    - otherwise: 50
    """
    active = summary.months_with_activity
    ratio = summary.consistency_score

    if summary.effective_months == 0:
        return neutral_result(
            CONSISTENCY_METRIC_NAME,
            ratio,
            weight,
            "Account too new to evaluate consistency",
            active,
        )

    if ratio >= 0.9:
        score = 100.0
    elif ratio >= 0.7:
        score = 85.0
    elif ratio >= 0.5:
        score = 70.0
    elif ratio >= 0.25:
        score = 55.0
    else:
        score = 50.0

    details = (
        f"Active in {active}/{summary.effective_months} months "
        f"({ratio * 100:.0f}% consistency)"
    )
    return build_result(CONSISTENCY_METRIC_NAME, ratio, score, weight, details, active)
