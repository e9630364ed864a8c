"""PR history metric."""

from datetime import datetime
from typing import NamedTuple

from contributor_quality.config import ScoringConfig
from contributor_quality.metrics.base import MetricResult, build_result, neutral_result
from contributor_quality.snapshot import RawContributorSnapshot

METRIC_NAME = "prMergeRate"


class PRHistorySummary(NamedTuple):
    """PR activity inside the analysis window."""

    total_prs: int
    merged_prs: int
    closed_without_merge: int
    open_prs: int
    merge_rate: float
    average_pr_size: float
    very_short_prs: int
    merged_pr_dates: tuple[datetime, ...]

    @property
    def resolved_prs(self) -> int:
        return self.merged_prs + self.closed_without_merge


def extract_pr_history(
    snapshot: RawContributorSnapshot, config: ScoringConfig
) -> PRHistorySummary:
    """
    Summarize the contributor's pull requests created inside the window.

    The merge rate only counts resolved PRs (open ones are ignored) and is
    0 when nothing has been resolved yet.
    """
    prs = [pr for pr in snapshot.pull_requests if snapshot.in_window(pr.created_at)]

    merged = [pr for pr in prs if pr.merged]
    closed_without_merge = [pr for pr in prs if pr.state == "CLOSED" and not pr.merged]
    open_prs = [pr for pr in prs if pr.state == "OPEN"]

    total_lines = sum(pr.lines_changed for pr in prs)
    average_pr_size = total_lines / len(prs) if prs else 0.0
    very_short_prs = sum(
        1 for pr in prs if pr.lines_changed < config.short_pr_line_threshold
    )

    merged_dates = tuple(sorted(pr.merged_at for pr in merged if pr.merged_at))

    resolved = len(merged) + len(closed_without_merge)
    merge_rate = len(merged) / resolved if resolved > 0 else 0.0

    return PRHistorySummary(
        total_prs=len(prs),
        merged_prs=len(merged),
        closed_without_merge=len(closed_without_merge),
        open_prs=len(open_prs),
        merge_rate=merge_rate,
        average_pr_size=average_pr_size,
        very_short_prs=very_short_prs,
        merged_pr_dates=merged_dates,
    )


def check_pr_merge_rate(summary: PRHistorySummary, weight: float) -> MetricResult:
    """
    Evaluates how often the contributor's pull requests get merged.

    Scoring:
    - 90%+ merge rate: 100
    - 70-90%: 50 to 100 (linear)
    - 30-70%: 50 (neutral band)
    - <30%: 0 to 50 (linear)
    - No resolved PRs: 50 (neutral)
    """
    if summary.total_prs == 0:
        return neutral_result(
            METRIC_NAME, 0.0, weight, "No PR history found in analysis window"
        )

    if summary.resolved_prs == 0:
        return neutral_result(
            METRIC_NAME,
            0.0,
            weight,
            f"{summary.open_prs} open PR(s), none resolved yet",
            summary.total_prs,
        )

    merge_rate = summary.merge_rate
    counts = f"({summary.merged_prs}/{summary.resolved_prs} PRs merged)"

    if merge_rate >= 0.9:
        score = 100.0
        details = f"Excellent merge rate: {merge_rate * 100:.1f}% {counts}"
    elif merge_rate >= 0.7:
        score = 50 + ((merge_rate - 0.7) / 0.2) * 50
        details = f"Good merge rate: {merge_rate * 100:.1f}% {counts}"
    elif merge_rate >= 0.3:
        score = 50.0
        details = f"Average merge rate: {merge_rate * 100:.1f}% {counts}"
    else:
        score = (merge_rate / 0.3) * 50
        details = f"Low merge rate: {merge_rate * 100:.1f}% {counts}"

    return build_result(
        METRIC_NAME, merge_rate, score, weight, details, summary.total_prs
    )
