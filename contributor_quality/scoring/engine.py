"""
Scoring engine: turns a contributor snapshot into a ScoringResult.

Pipeline:
    snapshot -> extractors -> checkers (+ spam detector) -> compose()

compose() is a pure function: identical inputs always give an identical
result, and it never raises for well-formed metric results.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import NamedTuple

from contributor_quality.config import ScoringConfig
from contributor_quality.metrics.account_age import (
    AccountSummary,
    check_account_age,
    check_activity_consistency,
    extract_account,
)
from contributor_quality.metrics.base import NEUTRAL_SCORE, MetricCheck, MetricResult
from contributor_quality.metrics.code_review import (
    CodeReviewSummary,
    check_code_reviews,
    extract_code_reviews,
)
from contributor_quality.metrics.issue_engagement import (
    IssueEngagementSummary,
    check_issue_engagement,
    extract_issue_engagement,
)
from contributor_quality.metrics.pr_history import (
    PRHistorySummary,
    check_pr_merge_rate,
    extract_pr_history,
)
from contributor_quality.metrics.reactions import (
    ReactionSummary,
    check_negative_reactions,
    check_positive_reactions,
    extract_reactions,
)
from contributor_quality.metrics.repo_quality import (
    RepoQualitySummary,
    check_repo_quality,
    extract_repo_quality,
)
from contributor_quality.metrics.spam_detection import (
    SpamPenalty,
    calculate_spam_penalty,
    detect_spam_patterns,
)
from contributor_quality.scoring.decay import (
    apply_decay_toward_baseline,
    calculate_decay_factor,
)
from contributor_quality.scoring.normalizer import (
    BASELINE_SCORE,
    clamp_score,
    normalize_score,
    round_half_up,
)
from contributor_quality.scoring.threshold import (
    check_all_metrics,
    determine_pass_status,
)
from contributor_quality.snapshot import RawContributorSnapshot

# Fewer data points than this across all metrics counts as limited data
MIN_DATA_POINTS = 5

# Below this final score a generic recommendation is emitted if nothing else fired
LOW_SCORE_RECOMMENDATION_THRESHOLD = 300


class AllMetricsData(NamedTuple):
    """Every extractor summary for one snapshot."""

    pr_history: PRHistorySummary
    repo_quality: RepoQualitySummary
    reactions: ReactionSummary
    account: AccountSummary
    issue_engagement: IssueEngagementSummary
    code_reviews: CodeReviewSummary


class ScoringContext(NamedTuple):
    """Contributor and window metadata carried into the result."""

    username: str
    window_start: datetime
    window_end: datetime
    account_age_days: int


class ScoringResult(NamedTuple):
    """The final, immutable outcome of one evaluation."""

    score: int
    raw_score: int
    score_after_penalty: int
    decay_factor: float
    passed: bool
    threshold: int
    metrics: tuple[MetricResult, ...]
    spam_penalties: tuple[SpamPenalty, ...]
    spam_penalty_total: float
    recommendations: tuple[str, ...]
    username: str
    analyzed_at: datetime
    data_window_start: datetime
    data_window_end: datetime
    total_data_points: int
    is_new_account: bool
    has_limited_data: bool
    mode: str = "weighted"
    metric_checks: tuple[MetricCheck, ...] = ()
    is_trusted_user: bool = False
    was_whitelisted: bool = False


class ScoreAdjustment(NamedTuple):
    metric: str
    points: int
    reason: str


class ScoreBreakdown(NamedTuple):
    """Per-metric contributions relative to the baseline, before decay."""

    baseline_score: int
    positive_adjustments: tuple[ScoreAdjustment, ...]
    negative_adjustments: tuple[ScoreAdjustment, ...]
    spam_penalties: tuple[ScoreAdjustment, ...]
    final_score: int


def extract_all_metrics(
    snapshot: RawContributorSnapshot, config: ScoringConfig
) -> AllMetricsData:
    """Run every extractor over the snapshot."""
    return AllMetricsData(
        pr_history=extract_pr_history(snapshot, config),
        repo_quality=extract_repo_quality(snapshot, config),
        reactions=extract_reactions(snapshot, config),
        account=extract_account(snapshot, config),
        issue_engagement=extract_issue_engagement(snapshot, config),
        code_reviews=extract_code_reviews(snapshot, config),
    )


def calculate_all_metrics(
    metrics_data: AllMetricsData, config: ScoringConfig
) -> list[MetricResult]:
    """Normalize every summary into the 8 weighted metric results."""
    weights = config.weights
    return [
        check_pr_merge_rate(metrics_data.pr_history, weights.prMergeRate),
        check_repo_quality(metrics_data.repo_quality, weights.repoQuality),
        check_positive_reactions(metrics_data.reactions, weights.positiveReactions),
        check_negative_reactions(metrics_data.reactions, weights.negativeReactions),
        check_account_age(metrics_data.account, weights.accountAge),
        check_activity_consistency(metrics_data.account, weights.activityConsistency),
        check_issue_engagement(metrics_data.issue_engagement, weights.issueEngagement),
        check_code_reviews(metrics_data.code_reviews, weights.codeReviews),
    ]


def calculate_breakdown(
    metrics: Sequence[MetricResult], spam_penalty: float
) -> ScoreBreakdown:
    """Explain how each metric moved the score away from the baseline."""
    positive = tuple(
        ScoreAdjustment(
            m.name,
            round_half_up((m.normalized_score - NEUTRAL_SCORE) * m.weight * 10),
            m.details,
        )
        for m in metrics
        if m.normalized_score > NEUTRAL_SCORE
    )
    negative = tuple(
        ScoreAdjustment(
            m.name,
            round_half_up((NEUTRAL_SCORE - m.normalized_score) * m.weight * 10),
            m.details,
        )
        for m in metrics
        if m.normalized_score < NEUTRAL_SCORE
    )
    spam = (
        (
            ScoreAdjustment(
                "spamPatterns",
                round_half_up(spam_penalty),
                "Spam pattern detection penalty",
            ),
        )
        if spam_penalty > 0
        else ()
    )

    weighted_sum = sum(m.weighted_score for m in metrics)
    final_score = clamp_score(normalize_score(weighted_sum) - spam_penalty)

    return ScoreBreakdown(
        baseline_score=BASELINE_SCORE,
        positive_adjustments=positive,
        negative_adjustments=negative,
        spam_penalties=spam,
        final_score=final_score,
    )


def generate_recommendations(
    metrics: Sequence[MetricResult], score: int
) -> list[str]:
    """
    Build actionable recommendations from the metric results.

    At most one message per metric family. The generic fallback is only
    emitted when the score is low and nothing specific fired.
    """
    by_name = {m.name: m for m in metrics}
    recommendations: list[str] = []

    pr_metric = by_name.get("prMergeRate")
    if pr_metric and pr_metric.normalized_score < NEUTRAL_SCORE:
        recommendations.append(
            "Improve PR quality to increase merge rate. "
            "Focus on smaller, well-documented changes."
        )

    repo_metric = by_name.get("repoQuality")
    if repo_metric and repo_metric.raw_value == 0:
        recommendations.append(
            "Consider contributing to established open source projects "
            "with significant community adoption."
        )

    review_metric = by_name.get("codeReviews")
    if review_metric and review_metric.raw_value < 5:
        recommendations.append(
            "Participate in code reviews to demonstrate engagement with the community."
        )

    positive_metric = by_name.get("positiveReactions")
    negative_metric = by_name.get("negativeReactions")
    if (positive_metric and positive_metric.normalized_score < NEUTRAL_SCORE) or (
        negative_metric and negative_metric.normalized_score < NEUTRAL_SCORE
    ):
        recommendations.append(
            "Focus on constructive communication to improve community reception."
        )

    age_metric = by_name.get("accountAge")
    account_age = age_metric.raw_value if age_metric else None
    if account_age is not None and account_age < 30:
        recommendations.append(
            "Continue building your contribution history. "
            "New accounts naturally have limited data."
        )

    consistency_metric = by_name.get("activityConsistency")
    if (
        consistency_metric
        and consistency_metric.normalized_score < 60
        and account_age is not None
        and account_age >= 90
    ):
        recommendations.append(
            "Maintain consistent activity over time "
            "to build a stronger contribution profile."
        )

    if score < LOW_SCORE_RECOMMENDATION_THRESHOLD and not recommendations:
        recommendations.append(
            "Build your GitHub profile through meaningful contributions, "
            "code reviews, and community engagement."
        )

    return recommendations


def compose(
    metrics: Sequence[MetricResult],
    spam_penalties: Sequence[SpamPenalty],
    merged_pr_dates: Sequence[datetime],
    config: ScoringConfig,
    context: ScoringContext,
) -> ScoringResult:
    """
    Combine metric results into the final 0-1000 score.

    Steps:
    1. Weighted sum (0-100) rescaled to 0-1000
    2. Spam penalty subtracted (capped at 150)
    3. Decay toward 500 based on merge recency
    4. Clamp to [0, 1000]
    """
    weighted_sum = sum(m.weighted_score for m in metrics)
    raw_score = normalize_score(weighted_sum)

    penalty_total = calculate_spam_penalty(list(spam_penalties))
    score_after_penalty = round_half_up(raw_score - penalty_total)

    decay_factor = calculate_decay_factor(merged_pr_dates, context.window_end)
    final_score = clamp_score(
        apply_decay_toward_baseline(score_after_penalty, decay_factor)
    )

    metric_checks: tuple[MetricCheck, ...] = ()
    if config.scoring_mode == "threshold":
        metric_checks = tuple(check_all_metrics(metrics, config.thresholds))
        passed = determine_pass_status(metric_checks, config.required_metrics)
    else:
        passed = final_score >= config.minimum_score

    total_data_points = sum(m.data_point_count for m in metrics)

    return ScoringResult(
        score=final_score,
        raw_score=raw_score,
        score_after_penalty=score_after_penalty,
        decay_factor=decay_factor,
        passed=passed,
        threshold=config.minimum_score,
        metrics=tuple(metrics),
        spam_penalties=tuple(spam_penalties),
        spam_penalty_total=penalty_total,
        recommendations=tuple(generate_recommendations(metrics, final_score)),
        username=context.username,
        analyzed_at=context.window_end,
        data_window_start=context.window_start,
        data_window_end=context.window_end,
        total_data_points=total_data_points,
        is_new_account=context.account_age_days < config.new_account_threshold_days,
        has_limited_data=total_data_points < MIN_DATA_POINTS,
        mode=config.scoring_mode,
        metric_checks=metric_checks,
    )


def calculate_score(
    snapshot: RawContributorSnapshot, config: ScoringConfig
) -> ScoringResult:
    """Score a contributor snapshot end to end."""
    metrics_data = extract_all_metrics(snapshot, config)
    metrics = calculate_all_metrics(metrics_data, config)
    spam_penalties = detect_spam_patterns(metrics_data.pr_history, metrics_data.account)

    context = ScoringContext(
        username=snapshot.login,
        window_start=snapshot.window_start,
        window_end=snapshot.window_end,
        account_age_days=metrics_data.account.age_in_days,
    )
    return compose(
        metrics,
        spam_penalties,
        metrics_data.pr_history.merged_pr_dates,
        config,
        context,
    )
