"""Community reaction metrics (positive and negative)."""

from typing import NamedTuple

from contributor_quality.config import ScoringConfig
from contributor_quality.metrics.base import MetricResult, build_result, neutral_result
from contributor_quality.snapshot import RawContributorSnapshot

POSITIVE_METRIC_NAME = "positiveReactions"
NEGATIVE_METRIC_NAME = "negativeReactions"

# Reactions below this count are too few to judge reception
MIN_REACTIONS = 5

# Both the REST shortcodes and the GraphQL enum names are accepted
POSITIVE_REACTIONS = frozenset(
    {"+1", "heart", "rocket", "hooray", "THUMBS_UP", "HEART", "ROCKET", "HOORAY"}
)
NEGATIVE_REACTIONS = frozenset({"-1", "confused", "THUMBS_DOWN", "CONFUSED"})


class ReactionSummary(NamedTuple):
    """Reactions received on the contributor's comments."""

    total_comments: int
    positive_reactions: int
    negative_reactions: int
    neutral_reactions: int
    positive_ratio: float

    @property
    def total_reactions(self) -> int:
        return self.positive_reactions + self.negative_reactions + self.neutral_reactions


def classify_reaction(content: str) -> str:
    """Return 'positive', 'negative' or 'neutral' for a reaction content value."""
    if content in POSITIVE_REACTIONS:
        return "positive"
    if content in NEGATIVE_REACTIONS:
        return "negative"
    return "neutral"


def extract_reactions(
    snapshot: RawContributorSnapshot, config: ScoringConfig
) -> ReactionSummary:
    """
    Partition every reaction on in-window comments.

    Comments without a timestamp are kept. The positive ratio defaults to
    0.5 when there are no reactions at all.
    """
    comments = [
        comment
        for comment in snapshot.comments
        if comment.created_at is None or snapshot.in_window(comment.created_at)
    ]

    tally = {"positive": 0, "negative": 0, "neutral": 0}
    for comment in comments:
        for content in comment.reactions:
            tally[classify_reaction(content)] += 1

    total = sum(tally.values())
    return ReactionSummary(
        total_comments=len(comments),
        positive_reactions=tally["positive"],
        negative_reactions=tally["negative"],
        neutral_reactions=tally["neutral"],
        positive_ratio=tally["positive"] / total if total > 0 else 0.5,
    )


def check_positive_reactions(summary: ReactionSummary, weight: float) -> MetricResult:
    """
    Evaluates how positively the community reacts to the contributor.

    Scoring:
    - <5 total reactions: 50 (insufficient data)
    - 80%+ positive: 100
    - 60-80%: 75
    - 40-60%: 50
    - <40%: 0 to 50 (linear)
    """
    total = summary.total_reactions
    ratio = summary.positive_ratio

    if total < MIN_REACTIONS:
        return neutral_result(
            POSITIVE_METRIC_NAME,
            ratio,
            weight,
            f"Insufficient reaction data ({total} reactions)",
            total,
        )

    percentage = f"{ratio * 100:.0f}%"
    if ratio >= 0.8:
        score = 100.0
        details = (
            f"Excellent reception: {percentage} positive reactions "
            f"({summary.positive_reactions} positive)"
        )
    elif ratio >= 0.6:
        score = 75.0
        details = f"Good reception: {percentage} positive reactions"
    elif ratio >= 0.4:
        score = 50.0
        details = f"Mixed reception: {percentage} positive reactions"
    else:
        score = (ratio / 0.4) * 50
        details = f"Poor reception: {percentage} positive reactions"

    return build_result(POSITIVE_METRIC_NAME, ratio, score, weight, details, total)


def check_negative_reactions(summary: ReactionSummary, weight: float) -> MetricResult:
    """
    Penalty-style metric for negative reactions.

    Scoring:
    - <5 total reactions: 50 (neutral)
    - <10% negative: 50 (no penalty)
    - 10-20%: 40
    - 20-30%: 25
    - 30%+: 25 down to 0 (linear)
    """
    total = summary.total_reactions

    if total < MIN_REACTIONS:
        return neutral_result(
            NEGATIVE_METRIC_NAME,
            0.0,
            weight,
            "Insufficient reaction data for negative metric",
            total,
        )

    ratio = summary.negative_reactions / total
    percentage = f"{ratio * 100:.0f}%"
    count = f"({summary.negative_reactions} negative)"

    if ratio < 0.1:
        score = 50.0
        details = f"Low negative reactions: {percentage}"
    elif ratio < 0.2:
        score = 40.0
        details = f"Some negative reactions: {percentage} {count}"
    elif ratio < 0.3:
        score = 25.0
        details = f"Notable negative reactions: {percentage} {count}"
    else:
        score = max(0.0, 25 - (ratio - 0.3) * 100)
        details = f"High negative reactions: {percentage} {count}"

    return build_result(NEGATIVE_METRIC_NAME, ratio, score, weight, details, total)
