"""Issue engagement metric."""

from typing import NamedTuple

from contributor_quality.config import ScoringConfig
from contributor_quality.metrics.base import MetricResult, build_result, neutral_result
from contributor_quality.snapshot import RawContributorSnapshot

METRIC_NAME = "issueEngagement"


class IssueEngagementSummary(NamedTuple):
    """Issues opened in the window and the response they drew."""

    issues_created: int
    issues_with_comments: int
    issues_with_reactions: int
    average_comments_per_issue: float

    @property
    def engaged_issues(self) -> int:
        return max(self.issues_with_comments, self.issues_with_reactions)

    @property
    def engagement_rate(self) -> float:
        if self.issues_created == 0:
            return 0.0
        return self.engaged_issues / self.issues_created


def extract_issue_engagement(
    snapshot: RawContributorSnapshot, config: ScoringConfig
) -> IssueEngagementSummary:
    issues = [issue for issue in snapshot.issues if snapshot.in_window(issue.created_at)]
    total_comments = sum(issue.comment_count for issue in issues)

    return IssueEngagementSummary(
        issues_created=len(issues),
        issues_with_comments=sum(1 for issue in issues if issue.comment_count > 0),
        issues_with_reactions=sum(1 for issue in issues if issue.reaction_count > 0),
        average_comments_per_issue=total_comments / len(issues) if issues else 0.0,
    )


def check_issue_engagement(
    summary: IssueEngagementSummary, weight: float
) -> MetricResult:
    """
    Evaluates whether the contributor's issues draw a response.

    Scoring:
    - No issues: 50 (neutral)
    - 70%+ engaged with 3+ issues: 100
    - 50%+ engaged with 2+ issues: 75
    - 30%+ engaged: 60
    - otherwise: 50
    """
    created = summary.issues_created

    if created == 0:
        return neutral_result(
            METRIC_NAME, 0, weight, "No issues created in analysis window"
        )

    rate = summary.engagement_rate
    if rate >= 0.7 and created >= 3:
        score = 100.0
    elif rate >= 0.5 and created >= 2:
        score = 75.0
    elif rate >= 0.3:
        score = 60.0
    else:
        score = 50.0

    details = f"{created} issues created, {summary.engaged_issues} received engagement"
    if summary.average_comments_per_issue >= 3:
        details += f". Avg {summary.average_comments_per_issue:.1f} comments/issue"

    return build_result(METRIC_NAME, created, score, weight, details, created)
