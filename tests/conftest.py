"""Shared fixtures for Contributor Quality tests."""

from datetime import datetime, timedelta, timezone

import pytest

from contributor_quality.snapshot import (
    PullRequestRecord,
    RawContributorSnapshot,
    RepositoryRef,
    analysis_window_start,
)

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """Fixed evaluation time."""
    return NOW


@pytest.fixture
def make_snapshot():
    """Factory for snapshots covering the 12 months before NOW."""

    def _make(age_days=400, **fields):
        fields.setdefault("login", "octocat")
        fields.setdefault("created_at", NOW - timedelta(days=age_days))
        fields.setdefault("window_start", analysis_window_start(NOW, 12))
        fields.setdefault("window_end", NOW)
        return RawContributorSnapshot(**fields)

    return _make


@pytest.fixture
def make_pr():
    """Factory for pull requests created `days_ago` days before NOW."""

    def _make(
        merged=True,
        state=None,
        days_ago=10,
        lines=100,
        repo=("octo-org", "octo-repo", 500),
    ):
        created_at = NOW - timedelta(days=days_ago)
        return PullRequestRecord(
            state=state or ("MERGED" if merged else "CLOSED"),
            merged=merged,
            created_at=created_at,
            merged_at=created_at + timedelta(days=1) if merged else None,
            closed_at=created_at + timedelta(days=1) if state != "OPEN" else None,
            additions=lines,
            deletions=0,
            repository=RepositoryRef(*repo) if repo else None,
        )

    return _make
