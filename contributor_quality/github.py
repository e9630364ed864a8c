"""
GitHub client for Contributor Quality.

Fetches everything needed to score one contributor with a single GraphQL
query and normalizes it into a RawContributorSnapshot. Requests go through a
retry loop that separates rate-limit, transient and fatal failures.
"""

import asyncio
import os
from collections.abc import Awaitable, Callable, Iterable
from datetime import date, datetime, timezone
from typing import Any, TypeVar

import httpx
from dotenv import load_dotenv

from contributor_quality.config import console
from contributor_quality.http_client import (
    _get_async_http_client,
    github_auth_headers,
)
from contributor_quality.rate_limit import (
    ErrorKind,
    RateLimitStatus,
    RetryPolicy,
    backoff_delay,
    calculate_wait_time,
    classify_error,
    parse_rate_limit,
    parse_rate_limit_headers,
    rate_limit_wait,
)
from contributor_quality.snapshot import (
    CommentRecord,
    ContributionDay,
    IssueRecord,
    PullRequestRecord,
    RawContributorSnapshot,
    RepositoryRef,
    months_before,
    parse_timestamp,
)

# Load environment variables
load_dotenv()

# GitHub API endpoint
GITHUB_GRAPHQL_API = "https://api.github.com/graphql"

# contributionsCollection rejects ranges longer than one year
CONTRIBUTIONS_MAX_MONTHS = 12

# Page sizes used by CONTRIBUTOR_DATA_QUERY
GRAPHQL_SAMPLE_LIMITS = {
    "pull_requests": 100,
    "issue_comments": 100,
    "comment_reactions": 10,
    "issues": 50,
    "issue_reactions": 20,
}

T = TypeVar("T")

CONTRIBUTOR_DATA_QUERY = """
query GetContributorData($username: String!, $contributionsFrom: DateTime!, $contributionsTo: DateTime!, $issueSearchQuery: String!) {
  user(login: $username) {
    login
    createdAt
    pullRequests(first: 100, orderBy: {field: CREATED_AT, direction: DESC}) {
      totalCount
      nodes {
        state
        merged
        mergedAt
        createdAt
        closedAt
        additions
        deletions
        repository {
          owner {
            login
          }
          name
          stargazerCount
        }
      }
    }
    contributionsCollection(from: $contributionsFrom, to: $contributionsTo) {
      contributionCalendar {
        weeks {
          contributionDays {
            contributionCount
            date
          }
        }
      }
      pullRequestReviewContributions(first: 1) {
        totalCount
      }
    }
    issueComments(first: 100, orderBy: {field: UPDATED_AT, direction: DESC}) {
      totalCount
      nodes {
        createdAt
        reactions(first: 10) {
          nodes {
            content
          }
        }
      }
    }
  }
  search(query: $issueSearchQuery, type: ISSUE, first: 50) {
    issueCount
    nodes {
      ... on Issue {
        createdAt
        comments {
          totalCount
        }
        reactions(first: 20) {
          totalCount
          nodes {
            content
          }
        }
      }
    }
  }
  rateLimit {
    remaining
    resetAt
    used
    limit
  }
}
"""

ORG_MEMBERSHIP_QUERY = """
query CheckOrgMembership($org: String!, $username: String!) {
  organization(login: $org) {
    membersWithRole(query: $username, first: 1) {
      nodes {
        login
      }
    }
  }
}
"""

RATE_LIMIT_QUERY = """
query GetRateLimit {
  rateLimit {
    remaining
    resetAt
    used
    limit
  }
}
"""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _format_datetime(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def contributions_range(since: datetime, now: datetime) -> tuple[datetime, datetime]:
    """Clamp the contribution calendar range to the most recent year."""
    return max(since, months_before(now, CONTRIBUTIONS_MAX_MONTHS)), now


def build_issue_search_query(username: str, since: datetime) -> str:
    """Search string for issues the user opened since the window start."""
    return f"author:{username} type:issue created:>={since.date().isoformat()}"


class GitHubClient:
    """GitHub GraphQL client with rate-limit aware retries.

    Each instance owns its own RateLimitStatus; use one client per
    contributor evaluation when running evaluations concurrently.
    """

    def __init__(
        self,
        token: str | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize GitHub client.

        Args:
            token: GitHub Personal Access Token. If not provided, reads from
                   GITHUB_TOKEN environment variable.
            retry_policy: Retry and wait bounds (defaults to RetryPolicy()).
            sleep: Awaitable used for every wait.
            clock: Returns the current UTC time.

        Raises:
            ValueError: If token is not provided and GITHUB_TOKEN env var is not set
        """
        self.token = token or os.getenv("GITHUB_TOKEN")
        if not self.token:
            raise ValueError(
                "GITHUB_TOKEN is required to fetch contributor data.\n"
                "\n"
                "To get started:\n"
                "1. Create a GitHub Personal Access Token (classic):\n"
                "   → https://github.com/settings/tokens/new\n"
                "2. Select scopes: 'read:user' and 'read:org'\n"
                "3. Set the token:\n"
                "   export GITHUB_TOKEN='your_token_here'  # Linux/macOS\n"
                "   or add to your .env file: GITHUB_TOKEN=your_token_here\n"
            )
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep
        self._clock = clock or _utcnow
        self.rate_limit: RateLimitStatus | None = None
        self.total_waited = 0.0

    async def _wait(
        self, seconds: float, reason: str, error: Exception | None = None
    ) -> None:
        """Sleep for `seconds`, respecting the policy deadline."""
        deadline = self.retry_policy.deadline
        if deadline is not None and self.total_waited + seconds > deadline:
            if error is not None:
                raise error
            raise TimeoutError(
                f"Waiting {seconds:.1f}s would exceed the {deadline:g}s deadline"
            )
        console.print(f"[dim]{reason}; waiting {seconds:.1f}s[/dim]")
        await self._sleep(seconds)
        self.total_waited += seconds

    async def _preflight(self) -> None:
        """Pause until reset when the last known quota is nearly exhausted."""
        wait = calculate_wait_time(
            self.rate_limit,
            self._clock(),
            self.retry_policy.low_water_mark,
            self.retry_policy.max_rate_limit_wait,
        )
        if wait > 0:
            remaining = self.rate_limit.remaining if self.rate_limit else 0
            await self._wait(wait, f"Rate limit low ({remaining} remaining)")
            # Quota is refreshed after reset; the next response reports it again
            self.rate_limit = None

    async def execute_with_retry(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Run `operation`, retrying rate-limit and transient failures.

        Raises:
            Exception: Fatal errors immediately; retryable errors once
                max_attempts is exhausted or the deadline would be passed.
        """
        policy = self.retry_policy
        for attempt in range(policy.max_attempts):
            await self._preflight()
            try:
                return await operation()
            except Exception as e:
                kind = classify_error(e)
                if kind is ErrorKind.FATAL or attempt + 1 >= policy.max_attempts:
                    raise

                if kind is ErrorKind.RATE_LIMIT:
                    delay = rate_limit_wait(
                        e, self.rate_limit, attempt, policy, self._clock()
                    )
                    reason = "Rate limit hit"
                else:
                    delay = backoff_delay(attempt, policy)
                    reason = f"Transient error ({e})"
                await self._wait(
                    delay,
                    f"{reason}, retry {attempt + 1}/{policy.max_attempts - 1}",
                    e,
                )

        # max_attempts < 1
        raise ValueError("RetryPolicy.max_attempts must be at least 1")

    async def _post_graphql(
        self, query: str, variables: dict[str, Any]
    ) -> dict[str, Any]:
        """
        Execute one GraphQL request against the GitHub API.

        Raises:
            httpx.HTTPStatusError: If API returns an error
        """
        client = await _get_async_http_client()
        response = await client.post(
            GITHUB_GRAPHQL_API,
            json={"query": query, "variables": variables},
            headers=github_auth_headers(self.token),
            timeout=30,
        )

        header_status = parse_rate_limit_headers(response.headers)
        if header_status is not None:
            self.rate_limit = header_status

        response.raise_for_status()
        data = response.json()

        if "errors" in data:
            raise httpx.HTTPStatusError(
                f"GitHub API Errors: {data['errors']}",
                request=response.request,
                response=response,
            )

        payload = data.get("data") or {}
        body_status = parse_rate_limit(payload.get("rateLimit"))
        if body_status is not None:
            self.rate_limit = body_status
        return payload

    async def query(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Execute a GraphQL query with retries and return its `data` object."""
        return await self.execute_with_retry(
            lambda: self._post_graphql(query, variables)
        )

    async def fetch_contributor_snapshot(
        self, username: str, since: datetime, now: datetime | None = None
    ) -> RawContributorSnapshot:
        """
        Fetch and normalize all data needed to score a contributor.

        Args:
            username: GitHub login
            since: Start of the analysis window
            now: End of the analysis window (defaults to the client clock)

        Returns:
            RawContributorSnapshot covering [since, now]

        Raises:
            ValueError: If the user does not exist or a required field is missing
            httpx.HTTPStatusError: If GitHub API returns an error
        """
        now = now or self._clock()
        contributions_from, contributions_to = contributions_range(since, now)
        variables = {
            "username": username,
            "contributionsFrom": _format_datetime(contributions_from),
            "contributionsTo": _format_datetime(contributions_to),
            "issueSearchQuery": build_issue_search_query(username, since),
        }
        data = await self.query(CONTRIBUTOR_DATA_QUERY, variables)

        user = data.get("user")
        if user is None:
            raise ValueError(f"User {username} not found or is inaccessible.")

        return normalize_contributor_data(
            user, data.get("search"), username, since, now
        )

    async def check_org_membership(self, username: str, orgs: Iterable[str]) -> bool:
        """
        Check whether the user is a member of any of the given organizations.

        Failures for a single organization are reported and treated as
        non-membership.
        """
        for org in orgs:
            try:
                data = await self.query(
                    ORG_MEMBERSHIP_QUERY, {"org": org, "username": username}
                )
            except httpx.HTTPError as e:
                console.print(
                    f"[yellow]⚠️  Could not check membership of {org}: {e}[/yellow]"
                )
                continue

            organization = data.get("organization") or {}
            members = (organization.get("membersWithRole") or {}).get("nodes") or []
            if any(
                (member or {}).get("login", "").lower() == username.lower()
                for member in members
            ):
                return True
        return False

    async def get_rate_limit(self) -> RateLimitStatus | None:
        """Fetch the current rate-limit status."""
        data = await self.query(RATE_LIMIT_QUERY, {})
        return parse_rate_limit(data.get("rateLimit"))


def _nodes(connection: dict[str, Any] | None) -> list[dict[str, Any]]:
    if not connection:
        return []
    return [node for node in connection.get("nodes") or [] if node]


def _parse_pull_request(node: dict[str, Any]) -> PullRequestRecord | None:
    created_at = parse_timestamp(node.get("createdAt"))
    if created_at is None:
        return None

    repository = None
    repo_info = node.get("repository")
    if repo_info and repo_info.get("owner"):
        repository = RepositoryRef(
            owner=repo_info["owner"].get("login", ""),
            name=repo_info.get("name", ""),
            stars=repo_info.get("stargazerCount") or 0,
        )

    return PullRequestRecord(
        state=node.get("state") or "OPEN",
        merged=bool(node.get("merged")),
        created_at=created_at,
        merged_at=parse_timestamp(node.get("mergedAt")),
        closed_at=parse_timestamp(node.get("closedAt")),
        additions=node.get("additions") or 0,
        deletions=node.get("deletions") or 0,
        repository=repository,
    )


def normalize_contributor_data(
    user: dict[str, Any],
    search: dict[str, Any] | None,
    username: str,
    since: datetime,
    now: datetime,
) -> RawContributorSnapshot:
    """
    Normalize a CONTRIBUTOR_DATA_QUERY response to a RawContributorSnapshot.

    Raises:
        ValueError: If the user's creation date is missing
    """
    created_at = parse_timestamp(user.get("createdAt"))
    if created_at is None:
        raise ValueError(f"GitHub response for {username} is missing createdAt.")

    pull_requests = tuple(
        pr
        for pr in (_parse_pull_request(node) for node in _nodes(user.get("pullRequests")))
        if pr is not None
    )

    collection = user.get("contributionsCollection") or {}
    calendar = collection.get("contributionCalendar") or {}
    contribution_days = tuple(
        ContributionDay(
            date=date.fromisoformat(day["date"]),
            count=day.get("contributionCount") or 0,
        )
        for week in calendar.get("weeks") or []
        for day in (week or {}).get("contributionDays") or []
        if day and day.get("date")
    )
    review_count = (collection.get("pullRequestReviewContributions") or {}).get(
        "totalCount"
    ) or 0

    comments = tuple(
        CommentRecord(
            created_at=parse_timestamp(node.get("createdAt")),
            reactions=tuple(
                reaction["content"]
                for reaction in _nodes(node.get("reactions"))
                if reaction.get("content")
            ),
        )
        for node in _nodes(user.get("issueComments"))
    )

    issues = []
    # Non-issue search hits come back as empty objects
    for node in _nodes(search):
        issue_created = parse_timestamp(node.get("createdAt"))
        if issue_created is None:
            continue
        reactions = node.get("reactions") or {}
        issues.append(
            IssueRecord(
                created_at=issue_created,
                comment_count=(node.get("comments") or {}).get("totalCount") or 0,
                reaction_count=reactions.get("totalCount")
                or len(_nodes(reactions)),
            )
        )

    return RawContributorSnapshot(
        login=user.get("login") or username,
        created_at=created_at,
        window_start=since,
        window_end=now,
        pull_requests=pull_requests,
        contribution_days=contribution_days,
        review_count=review_count,
        comments=comments,
        issues=tuple(issues),
    )
