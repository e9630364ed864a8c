"""
Raw contributor data fetched in a single pass.

Every record type here is an immutable NamedTuple. Timestamps are
timezone-aware UTC datetimes.
"""

from datetime import date, datetime, timezone
from typing import NamedTuple

from dateutil.relativedelta import relativedelta


class RepositoryRef(NamedTuple):
    """Target repository of a pull request."""

    owner: str
    name: str
    stars: int

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class PullRequestRecord(NamedTuple):
    """A pull request authored by the contributor."""

    state: str  # "OPEN", "CLOSED", "MERGED"
    merged: bool
    created_at: datetime
    merged_at: datetime | None = None
    closed_at: datetime | None = None
    additions: int = 0
    deletions: int = 0
    repository: RepositoryRef | None = None  # None when deleted or private

    @property
    def lines_changed(self) -> int:
        return self.additions + self.deletions


class ContributionDay(NamedTuple):
    """One day of the contribution calendar."""

    date: date
    count: int


class CommentRecord(NamedTuple):
    """An issue comment and the reactions it received."""

    created_at: datetime | None
    reactions: tuple[str, ...] = ()


class IssueRecord(NamedTuple):
    """An issue opened by the contributor."""

    created_at: datetime
    comment_count: int = 0
    reaction_count: int = 0


class RawContributorSnapshot(NamedTuple):
    """Everything fetched about one contributor for one scoring run."""

    login: str
    created_at: datetime
    window_start: datetime
    window_end: datetime
    pull_requests: tuple[PullRequestRecord, ...] = ()
    contribution_days: tuple[ContributionDay, ...] = ()
    review_count: int = 0
    comments: tuple[CommentRecord, ...] = ()
    issues: tuple[IssueRecord, ...] = ()

    def in_window(self, moment: datetime | None) -> bool:
        """Return True when a timestamp lies inside [window_start, window_end]."""
        if moment is None:
            return False
        return self.window_start <= moment <= self.window_end


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp (GitHub 'Z' suffix allowed) to aware UTC."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def months_before(moment: datetime, months: int) -> datetime:
    """Return the same wall-clock instant a number of calendar months earlier."""
    return moment - relativedelta(months=months)


def analysis_window_start(now: datetime, analysis_window_months: int) -> datetime:
    """Start of the trailing analysis window ending at ``now``."""
    return months_before(now, analysis_window_months)
