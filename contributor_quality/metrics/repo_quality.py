"""Repository quality metric."""

from typing import NamedTuple

from contributor_quality.config import ScoringConfig
from contributor_quality.metrics.base import MetricResult, build_result, neutral_result
from contributor_quality.snapshot import RawContributorSnapshot

METRIC_NAME = "repoQuality"


class RepoContribution(NamedTuple):
    """Merged work landed in one repository."""

    owner: str
    repo: str
    stars: int
    merged_pr_count: int


class RepoQualitySummary(NamedTuple):
    """Where the contributor's merged PRs landed."""

    contributed_repos: tuple[RepoContribution, ...]
    quality_repo_count: int
    minimum_stars: int
    average_repo_stars: float
    highest_star_repo: int


def extract_repo_quality(
    snapshot: RawContributorSnapshot, config: ScoringConfig
) -> RepoQualitySummary:
    """
    Group in-window merged PRs by target repository.

    PRs whose repository is unresolvable (deleted or private) are skipped.
    The highest star count seen for a repository is kept.
    """
    grouped: dict[str, RepoContribution] = {}

    for pr in snapshot.pull_requests:
        if not pr.merged or pr.repository is None:
            continue
        if not snapshot.in_window(pr.merged_at):
            continue

        key = pr.repository.full_name
        existing = grouped.get(key)
        if existing is None:
            grouped[key] = RepoContribution(
                owner=pr.repository.owner,
                repo=pr.repository.name,
                stars=pr.repository.stars,
                merged_pr_count=1,
            )
        else:
            grouped[key] = existing._replace(
                stars=max(existing.stars, pr.repository.stars),
                merged_pr_count=existing.merged_pr_count + 1,
            )

    repos = tuple(grouped.values())
    quality_count = sum(1 for repo in repos if repo.stars >= config.minimum_stars)
    total_stars = sum(repo.stars for repo in repos)

    return RepoQualitySummary(
        contributed_repos=repos,
        quality_repo_count=quality_count,
        minimum_stars=config.minimum_stars,
        average_repo_stars=total_stars / len(repos) if repos else 0.0,
        highest_star_repo=max((repo.stars for repo in repos), default=0),
    )


def check_repo_quality(summary: RepoQualitySummary, weight: float) -> MetricResult:
    """
    Evaluates merged contributions to well-starred repositories.

    Scoring:
    - 10+ quality repos: 100
    - 5-9: 75
    - 2-4: 65
    - 1: 55
    - 0: 50 (neutral)
    """
    count = summary.quality_repo_count
    repo_total = len(summary.contributed_repos)
    stars = summary.minimum_stars

    if repo_total == 0:
        return neutral_result(
            METRIC_NAME, 0, weight, "No merged PRs found in analysis window"
        )

    if count == 0:
        return neutral_result(
            METRIC_NAME,
            0,
            weight,
            f"Contributed to {repo_total} repos, none with {stars}+ stars",
            repo_total,
        )

    if count >= 10:
        score = 100.0
    elif count >= 5:
        score = 75.0
    elif count >= 2:
        score = 65.0
    else:
        score = 55.0

    details = f"Merged PRs in {count} repos with {stars}+ stars"
    if summary.highest_star_repo >= 1000:
        details += f". Highest: {summary.highest_star_repo:,} stars"

    return build_result(METRIC_NAME, count, score, weight, details, repo_total)
