"""Code review contribution metric."""

from typing import NamedTuple

from contributor_quality.config import ScoringConfig
from contributor_quality.metrics.base import MetricResult, build_result, neutral_result
from contributor_quality.snapshot import RawContributorSnapshot

METRIC_NAME = "codeReviews"


class CodeReviewSummary(NamedTuple):
    reviews_given: int


def extract_code_reviews(
    snapshot: RawContributorSnapshot, config: ScoringConfig
) -> CodeReviewSummary:
    # The calendar query is already bounded by the window start
    return CodeReviewSummary(reviews_given=max(0, snapshot.review_count))


def check_code_reviews(summary: CodeReviewSummary, weight: float) -> MetricResult:
    """
    Evaluates code reviews given to other people's pull requests.

    Scoring:
    - 20+ reviews: 100
    - 10-19: 80
    - 5-9: 65
    - 1-4: 55
    - 0: 50 (neutral)
    """
    reviews = summary.reviews_given

    if reviews == 0:
        return neutral_result(
            METRIC_NAME, 0, weight, "No code reviews given in analysis window"
        )

    if reviews >= 20:
        score, label = 100.0, "Excellent reviewer"
    elif reviews >= 10:
        score, label = 80.0, "Active reviewer"
    elif reviews >= 5:
        score, label = 65.0, "Some reviews"
    else:
        score, label = 55.0, "Few reviews"

    return build_result(
        METRIC_NAME,
        reviews,
        score,
        weight,
        f"{label}: {reviews} code reviews given",
        reviews,
    )
