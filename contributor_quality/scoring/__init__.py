"""
Score composition for Contributor Quality.
"""

from contributor_quality.scoring.decay import (
    apply_decay_toward_baseline,
    calculate_decay_factor,
)
from contributor_quality.scoring.engine import (
    ScoreBreakdown,
    ScoringContext,
    ScoringResult,
    calculate_all_metrics,
    calculate_breakdown,
    calculate_score,
    compose,
    extract_all_metrics,
    generate_recommendations,
)
from contributor_quality.scoring.threshold import check_all_metrics, determine_pass_status

__all__ = [
    "ScoreBreakdown",
    "ScoringContext",
    "ScoringResult",
    "apply_decay_toward_baseline",
    "calculate_all_metrics",
    "calculate_breakdown",
    "calculate_decay_factor",
    "calculate_score",
    "check_all_metrics",
    "compose",
    "determine_pass_status",
    "extract_all_metrics",
    "generate_recommendations",
]
