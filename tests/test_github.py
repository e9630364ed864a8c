"""Tests for the GitHub client."""

import asyncio
from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from contributor_quality.github import (
    CONTRIBUTOR_DATA_QUERY,
    ORG_MEMBERSHIP_QUERY,
    GitHubClient,
    build_issue_search_query,
    contributions_range,
)
from contributor_quality.rate_limit import RateLimitStatus, RetryPolicy

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)
SINCE = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)
REQUEST = httpx.Request("POST", "https://api.github.com/graphql")

CONTRIBUTOR_RESPONSE = {
    "data": {
        "user": {
            "login": "octocat",
            "createdAt": "2020-01-01T00:00:00Z",
            "pullRequests": {
                "totalCount": 2,
                "nodes": [
                    {
                        "state": "MERGED",
                        "merged": True,
                        "mergedAt": "2025-05-02T00:00:00Z",
                        "createdAt": "2025-05-01T00:00:00Z",
                        "closedAt": "2025-05-02T00:00:00Z",
                        "additions": 120,
                        "deletions": 30,
                        "repository": {
                            "owner": {"login": "octo-org"},
                            "name": "octo-repo",
                            "stargazerCount": 4200,
                        },
                    },
                    {
                        "state": "CLOSED",
                        "merged": False,
                        "mergedAt": None,
                        "createdAt": "2025-04-01T00:00:00Z",
                        "closedAt": "2025-04-03T00:00:00Z",
                        "additions": 3,
                        "deletions": 1,
                        "repository": None,
                    },
                ],
            },
            "contributionsCollection": {
                "contributionCalendar": {
                    "weeks": [
                        {
                            "contributionDays": [
                                {"contributionCount": 0, "date": "2025-05-04"},
                                {"contributionCount": 6, "date": "2025-05-05"},
                            ]
                        }
                    ]
                },
                "pullRequestReviewContributions": {"totalCount": 7},
            },
            "issueComments": {
                "totalCount": 2,
                "nodes": [
                    {
                        "createdAt": "2025-05-10T00:00:00Z",
                        "reactions": {
                            "nodes": [{"content": "THUMBS_UP"}, {"content": "HEART"}]
                        },
                    },
                    {"createdAt": "2025-05-11T00:00:00Z", "reactions": {"nodes": []}},
                ],
            },
        },
        "search": {
            "issueCount": 1,
            "nodes": [
                {
                    "createdAt": "2025-03-01T00:00:00Z",
                    "comments": {"totalCount": 4},
                    "reactions": {"totalCount": 2, "nodes": []},
                },
                {},
            ],
        },
        "rateLimit": {
            "remaining": 4990,
            "resetAt": "2025-06-15T13:00:00Z",
            "used": 10,
            "limit": 5000,
        },
    }
}


class FakeSleep:
    """Records requested waits instead of sleeping."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


def _client(sleep=None, **policy):
    return GitHubClient(
        token="test_token",
        retry_policy=RetryPolicy(**policy),
        sleep=sleep or FakeSleep(),
        clock=lambda: NOW,
    )


def _response(payload, status_code=200, headers=None):
    return httpx.Response(status_code, json=payload, headers=headers, request=REQUEST)


def _mock_http(*responses):
    http_client = MagicMock()
    http_client.post = AsyncMock(side_effect=list(responses))
    return patch(
        "contributor_quality.github._get_async_http_client",
        new=AsyncMock(return_value=http_client),
    ), http_client


def test_client_requires_token():
    """Test that GitHubClient requires a token."""
    with patch.dict("os.environ", {}, clear=True):
        with pytest.raises(ValueError, match="GITHUB_TOKEN is required"):
            GitHubClient()


def test_client_reads_token_from_env():
    """Test that GitHubClient reads token from environment."""
    with patch.dict("os.environ", {"GITHUB_TOKEN": "env_token"}):
        assert GitHubClient().token == "env_token"


def test_issue_search_query():
    """Test the issue search string."""
    assert (
        build_issue_search_query("octocat", SINCE)
        == "author:octocat type:issue created:>=2024-06-15"
    )


def test_contributions_range_within_one_year():
    """Test a window of up to a year is passed through with both bounds."""
    assert contributions_range(SINCE, NOW) == (SINCE, NOW)


def test_contributions_range_clamps_long_windows():
    """Test windows longer than a year keep the most recent twelve months."""
    two_years_ago = datetime(2023, 6, 15, 12, 0, tzinfo=timezone.utc)
    assert contributions_range(two_years_ago, NOW) == (SINCE, NOW)


class TestExecuteWithRetry:
    """Test the retry loop."""

    def test_rate_limit_waits_until_reset(self):
        """Test a rate-limit error waits for the reported reset then succeeds."""
        sleep = FakeSleep()
        client = _client(sleep)
        client.rate_limit = RateLimitStatus(4000, 5000, 1000, NOW + timedelta(seconds=30))
        operation = AsyncMock(side_effect=[Exception("API rate limit exceeded"), "ok"])

        assert asyncio.run(client.execute_with_retry(operation)) == "ok"
        assert operation.await_count == 2
        assert len(sleep.calls) == 1
        assert 0 < sleep.calls[0] <= 30

    def test_fatal_error_is_not_retried(self):
        """Test fatal errors propagate immediately."""
        sleep = FakeSleep()
        operation = AsyncMock(side_effect=Exception("Not Found"))

        with pytest.raises(Exception, match="Not Found"):
            asyncio.run(_client(sleep).execute_with_retry(operation))
        assert operation.await_count == 1
        assert sleep.calls == []

    def test_transient_errors_back_off_then_give_up(self):
        """Test transient errors use exponential backoff up to max attempts."""
        sleep = FakeSleep()
        operation = AsyncMock(
            side_effect=httpx.ConnectError("connection reset", request=REQUEST)
        )

        with pytest.raises(httpx.ConnectError):
            asyncio.run(_client(sleep).execute_with_retry(operation))
        assert operation.await_count == 3
        assert sleep.calls == [1.0, 2.0]

    def test_transient_error_recovers(self):
        """Test a transient failure followed by success."""
        sleep = FakeSleep()
        operation = AsyncMock(side_effect=[Exception("socket hang up"), {"ok": True}])

        assert asyncio.run(_client(sleep).execute_with_retry(operation)) == {"ok": True}
        assert sleep.calls == [1.0]

    def test_preflight_wait_when_quota_is_low(self):
        """Test the client pauses before a request when quota is nearly used up."""
        sleep = FakeSleep()
        client = _client(sleep)
        client.rate_limit = RateLimitStatus(10, 5000, 4990, NOW + timedelta(seconds=20))
        operation = AsyncMock(return_value="ok")

        assert asyncio.run(client.execute_with_retry(operation)) == "ok"
        assert sleep.calls == [20.0]
        assert client.rate_limit is None

    def test_deadline_raises_last_error(self):
        """Test a wait past the deadline raises instead of sleeping."""
        sleep = FakeSleep()
        client = _client(sleep, deadline=10)
        client.rate_limit = RateLimitStatus(4000, 5000, 1000, NOW + timedelta(seconds=30))
        operation = AsyncMock(side_effect=Exception("API rate limit exceeded"))

        with pytest.raises(Exception, match="rate limit"):
            asyncio.run(client.execute_with_retry(operation))
        assert operation.await_count == 1
        assert sleep.calls == []


class TestFetchContributorSnapshot:
    """Test snapshot fetching and normalization."""

    def test_normalizes_response(self):
        """Test the GraphQL response is normalized into a snapshot."""
        mock_patch, http_client = _mock_http(_response(CONTRIBUTOR_RESPONSE))
        client = _client()

        with mock_patch:
            snapshot = asyncio.run(
                client.fetch_contributor_snapshot("octocat", SINCE, NOW)
            )

        request = http_client.post.call_args.kwargs["json"]
        assert request["query"] == CONTRIBUTOR_DATA_QUERY
        assert request["variables"] == {
            "username": "octocat",
            "contributionsFrom": "2024-06-15T12:00:00Z",
            "contributionsTo": "2025-06-15T12:00:00Z",
            "issueSearchQuery": "author:octocat type:issue created:>=2024-06-15",
        }

        assert snapshot.login == "octocat"
        assert snapshot.created_at == datetime(2020, 1, 1, tzinfo=timezone.utc)
        assert snapshot.window_start == SINCE
        assert snapshot.window_end == NOW

        merged, closed = snapshot.pull_requests
        assert merged.merged is True
        assert merged.repository.full_name == "octo-org/octo-repo"
        assert merged.repository.stars == 4200
        assert merged.lines_changed == 150
        assert closed.repository is None
        assert closed.merged_at is None

        assert [day.date for day in snapshot.contribution_days] == [
            date(2025, 5, 4),
            date(2025, 5, 5),
        ]
        assert snapshot.review_count == 7
        assert snapshot.comments[0].reactions == ("THUMBS_UP", "HEART")
        assert len(snapshot.issues) == 1
        assert snapshot.issues[0].comment_count == 4
        assert snapshot.issues[0].reaction_count == 2

        assert client.rate_limit.remaining == 4990

    def test_missing_user(self):
        """Test a missing user is a fatal error."""
        mock_patch, _ = _mock_http(_response({"data": {"user": None, "search": None}}))
        with mock_patch:
            with pytest.raises(ValueError, match="User ghost not found"):
                asyncio.run(_client().fetch_contributor_snapshot("ghost", SINCE, NOW))

    def test_graphql_errors_are_fatal(self):
        """Test GraphQL errors are raised without retrying."""
        mock_patch, http_client = _mock_http(
            _response({"errors": [{"type": "NOT_FOUND", "message": "Could not resolve to a User"}]})
        )
        with mock_patch:
            with pytest.raises(httpx.HTTPStatusError, match="GitHub API Errors"):
                asyncio.run(_client().fetch_contributor_snapshot("ghost", SINCE, NOW))
        assert http_client.post.await_count == 1

    def test_graphql_rate_limit_is_retried(self):
        """Test a RATE_LIMITED GraphQL error is retried."""
        sleep = FakeSleep()
        mock_patch, http_client = _mock_http(
            _response(
                {"errors": [{"type": "RATE_LIMITED", "message": "API rate limit exceeded for user ID 1."}]}
            ),
            _response(CONTRIBUTOR_RESPONSE),
        )
        with mock_patch:
            snapshot = asyncio.run(
                _client(sleep).fetch_contributor_snapshot("octocat", SINCE, NOW)
            )
        assert snapshot.login == "octocat"
        assert http_client.post.await_count == 2
        assert len(sleep.calls) == 1

    def test_server_error_is_retried(self):
        """Test a 502 response is retried."""
        sleep = FakeSleep()
        mock_patch, _ = _mock_http(
            _response({"message": "Bad Gateway"}, status_code=502),
            _response(CONTRIBUTOR_RESPONSE),
        )
        with mock_patch:
            snapshot = asyncio.run(
                _client(sleep).fetch_contributor_snapshot("octocat", SINCE, NOW)
            )
        assert snapshot.review_count == 7
        assert sleep.calls == [1.0]

    def test_graphql_timeout_is_retried(self):
        """Test a GraphQL timeout error is retried with backoff."""
        sleep = FakeSleep()
        mock_patch, http_client = _mock_http(
            _response(
                {
                    "errors": [
                        {
                            "message": "Something went wrong while executing your "
                            "query. This may be the result of a timeout, or it "
                            "could be a GitHub bug."
                        }
                    ]
                }
            ),
            _response(CONTRIBUTOR_RESPONSE),
        )
        with mock_patch:
            snapshot = asyncio.run(
                _client(sleep).fetch_contributor_snapshot("octocat", SINCE, NOW)
            )
        assert snapshot.login == "octocat"
        assert http_client.post.await_count == 2
        assert sleep.calls == [1.0]


class TestOrgMembership:
    """Test organization membership checks."""

    def test_member_of_second_org(self):
        """Test any listed organization is enough."""
        mock_patch, http_client = _mock_http(
            _response({"data": {"organization": None}}),
            _response(
                {"data": {"organization": {"membersWithRole": {"nodes": [{"login": "OctoCat"}]}}}}
            ),
        )
        with mock_patch:
            is_member = asyncio.run(
                _client().check_org_membership("octocat", ["missing-org", "octo-org"])
            )
        assert is_member is True
        request = http_client.post.call_args.kwargs["json"]
        assert request["query"] == ORG_MEMBERSHIP_QUERY
        assert request["variables"] == {"org": "octo-org", "username": "octocat"}

    def test_failures_are_not_membership(self):
        """Test per-organization failures count as non-membership."""
        mock_patch, _ = _mock_http(
            _response({"message": "Not Found"}, status_code=404),
            _response({"data": {"organization": {"membersWithRole": {"nodes": []}}}}),
        )
        with mock_patch:
            is_member = asyncio.run(
                _client().check_org_membership("octocat", ["private-org", "octo-org"])
            )
        assert is_member is False


def test_get_rate_limit():
    """Test fetching the current rate-limit status."""
    mock_patch, _ = _mock_http(
        _response(
            {
                "data": {
                    "rateLimit": {
                        "remaining": 42,
                        "resetAt": "2025-06-15T13:00:00Z",
                        "used": 4958,
                        "limit": 5000,
                    }
                }
            }
        )
    )
    with mock_patch:
        status = asyncio.run(_client().get_rate_limit())
    assert status.remaining == 42
    assert status.limit == 5000
