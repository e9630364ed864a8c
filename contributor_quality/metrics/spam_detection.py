"""
Spam pattern detection.

Each rule is evaluated independently and yields penalty points that are
subtracted from the raw score, outside of the weighted metrics.
"""

from typing import NamedTuple

from contributor_quality.metrics.account_age import AccountSummary
from contributor_quality.metrics.pr_history import PRHistorySummary

# Share of very short PRs that triggers the short-PR rule
SHORT_PR_RATIO = 0.7
# Closed-without-merge count and merge rate for the burst rule
BURST_CLOSED_COUNT = 10
BURST_MERGE_RATE = 0.2
# Account age and PR count for the new-account rule
NEW_ACCOUNT_DAYS = 7
NEW_ACCOUNT_PR_COUNT = 5

RULE_PENALTY_CAP = 75.0
NEW_ACCOUNT_PENALTY = 30.0
MAX_TOTAL_PENALTY = 150.0


class SpamPenalty(NamedTuple):
    """A triggered spam rule."""

    kind: str  # "short-prs", "burst-closed", "new-account-burst"
    points: float
    reason: str


def detect_spam_patterns(
    pr_history: PRHistorySummary, account: AccountSummary
) -> list[SpamPenalty]:
    """Return one penalty per triggered rule, in rule order."""
    penalties: list[SpamPenalty] = []

    if pr_history.total_prs > 0:
        short_ratio = pr_history.very_short_prs / pr_history.total_prs
        if short_ratio >= SHORT_PR_RATIO:
            penalties.append(
                SpamPenalty(
                    kind="short-prs",
                    points=min(50 + (short_ratio - SHORT_PR_RATIO) * 100, RULE_PENALTY_CAP),
                    reason=(
                        f"{short_ratio * 100:.0f}% of PRs have very few lines changed"
                    ),
                )
            )

    if (
        pr_history.closed_without_merge >= BURST_CLOSED_COUNT
        and pr_history.merge_rate < BURST_MERGE_RATE
    ):
        penalties.append(
            SpamPenalty(
                kind="burst-closed",
                points=min(50 + pr_history.closed_without_merge * 2, RULE_PENALTY_CAP),
                reason=(
                    f"{pr_history.closed_without_merge} PRs closed without merge "
                    f"({pr_history.merge_rate * 100:.0f}% merge rate)"
                ),
            )
        )

    if (
        account.age_in_days < NEW_ACCOUNT_DAYS
        and pr_history.total_prs > NEW_ACCOUNT_PR_COUNT
    ):
        penalties.append(
            SpamPenalty(
                kind="new-account-burst",
                points=NEW_ACCOUNT_PENALTY,
                reason=(
                    f"New account ({account.age_in_days} days) "
                    f"with {pr_history.total_prs} PRs"
                ),
            )
        )

    return penalties


def calculate_spam_penalty(penalties: list[SpamPenalty]) -> float:
    """Sum triggered penalties, capped at 150 points."""
    return min(sum(penalty.points for penalty in penalties), MAX_TOTAL_PENALTY)
