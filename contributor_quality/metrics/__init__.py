"""
Contributor metrics.

Each metric module pairs an extractor (snapshot -> summary) with one or more
checkers (summary + weight -> MetricResult).
"""

from contributor_quality.metrics.account_age import (
    AccountSummary,
    check_account_age,
    check_activity_consistency,
    extract_account,
    is_new_account,
)
from contributor_quality.metrics.base import (
    NEUTRAL_SCORE,
    MetricCheck,
    MetricResult,
)
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

__all__ = [
    "NEUTRAL_SCORE",
    "AccountSummary",
    "CodeReviewSummary",
    "IssueEngagementSummary",
    "MetricCheck",
    "MetricResult",
    "PRHistorySummary",
    "ReactionSummary",
    "RepoQualitySummary",
    "SpamPenalty",
    "calculate_spam_penalty",
    "check_account_age",
    "check_activity_consistency",
    "check_code_reviews",
    "check_issue_engagement",
    "check_negative_reactions",
    "check_positive_reactions",
    "check_pr_merge_rate",
    "check_repo_quality",
    "detect_spam_patterns",
    "extract_account",
    "extract_code_reviews",
    "extract_issue_engagement",
    "extract_pr_history",
    "extract_reactions",
    "extract_repo_quality",
    "is_new_account",
]
