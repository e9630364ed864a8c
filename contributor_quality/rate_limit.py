"""
Rate-limit bookkeeping, error classification and retry scheduling.

Everything here is a pure function of its inputs; the GitHub client owns the
only RateLimitStatus and does the actual waiting.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, NamedTuple

import httpx

from contributor_quality.snapshot import parse_timestamp

DEFAULT_RATE_LIMIT = 5000

# Pause before a request once remaining quota drops below this
LOW_WATER_MARK = 100

# Longest single wait for a rate-limit reset, in seconds
MAX_WAIT_SECONDS = 60.0

_RATE_LIMIT_PATTERN = re.compile(
    r"rate limit|abuse detection|too many requests", re.IGNORECASE
)
_TRANSIENT_PATTERN = re.compile(
    r"econnreset|etimedout|enotfound|econnrefused|socket hang up|network error"
    r"|fetch failed|connection reset|timed out|timeout|temporarily unavailable"
    r"|\b50[0-4]\b|internal server error|bad gateway|service unavailable",
    re.IGNORECASE,
)


class ErrorKind(str, Enum):
    """How a failed request should be handled."""

    RATE_LIMIT = "rate-limit"
    TRANSIENT = "transient"
    FATAL = "fatal"


class RateLimitStatus(NamedTuple):
    """Quota snapshot reported by the API."""

    remaining: int
    limit: int
    used: int
    reset_at: datetime


class RetryPolicy(NamedTuple):
    """Bounds for the fetch client's retry loop."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    max_rate_limit_wait: float = MAX_WAIT_SECONDS
    low_water_mark: int = LOW_WATER_MARK
    deadline: float | None = None  # total seconds of waiting allowed


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_rate_limit(data: dict[str, Any] | None) -> RateLimitStatus | None:
    """
    Build a RateLimitStatus from a GraphQL ``rateLimit`` node.

    Returns:
        The status, or None when the node is missing or incomplete.
    """
    if not data:
        return None
    reset_at = parse_timestamp(data.get("resetAt"))
    if reset_at is None or data.get("remaining") is None:
        return None
    return RateLimitStatus(
        remaining=int(data["remaining"]),
        limit=int(data.get("limit") or DEFAULT_RATE_LIMIT),
        used=int(data.get("used") or 0),
        reset_at=reset_at,
    )


def parse_rate_limit_headers(headers: httpx.Headers) -> RateLimitStatus | None:
    """Build a RateLimitStatus from X-RateLimit-* response headers."""
    remaining = headers.get("x-ratelimit-remaining")
    reset = headers.get("x-ratelimit-reset")
    try:
        remaining_i = int(remaining) if remaining is not None else None
        reset_i = int(reset) if reset is not None else None
    except ValueError:
        return None
    if remaining_i is None or reset_i is None:
        return None

    limit = headers.get("x-ratelimit-limit")
    used = headers.get("x-ratelimit-used")
    return RateLimitStatus(
        remaining=remaining_i,
        limit=int(limit) if limit and limit.isdigit() else DEFAULT_RATE_LIMIT,
        used=int(used) if used and used.isdigit() else 0,
        reset_at=datetime.fromtimestamp(reset_i, tz=timezone.utc),
    )


def should_wait(status: RateLimitStatus | None, low_water_mark: int = LOW_WATER_MARK) -> bool:
    """Check whether remaining quota is below the low-water mark."""
    return status is not None and status.remaining < low_water_mark


def seconds_until(reset_at: datetime, now: datetime | None = None, max_wait: float = MAX_WAIT_SECONDS) -> float:
    """Seconds from now until reset_at, clamped to [0, max_wait]."""
    now = now or _utcnow()
    return max(0.0, min((reset_at - now).total_seconds(), max_wait))


def calculate_wait_time(
    status: RateLimitStatus | None,
    now: datetime | None = None,
    low_water_mark: int = LOW_WATER_MARK,
    max_wait: float = MAX_WAIT_SECONDS,
) -> float:
    """
    Calculate how long to pause before the next request.

    Returns:
        0 when quota is healthy or the reset already passed, otherwise the
        seconds until reset capped at max_wait.
    """
    if not should_wait(status, low_water_mark):
        return 0.0
    return seconds_until(status.reset_at, now, max_wait)


def is_rate_limit_error(error: object) -> bool:
    """Detect rate-limit failures by status code, headers or message."""
    if not isinstance(error, Exception):
        return False
    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        if response.status_code == 429:
            return True
        if (
            response.status_code == 403
            and response.headers.get("x-ratelimit-remaining") == "0"
        ):
            return True
    return bool(_RATE_LIMIT_PATTERN.search(str(error)))


def is_transient_error(error: object) -> bool:
    """Detect network hiccups and server-side (5xx) failures."""
    if not isinstance(error, Exception):
        return False
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, httpx.HTTPStatusError) and error.response.status_code >= 500:
        return True
    return bool(_TRANSIENT_PATTERN.search(str(error)))


def classify_error(error: object) -> ErrorKind:
    """Classify a failure into exactly one ErrorKind."""
    if is_rate_limit_error(error):
        return ErrorKind.RATE_LIMIT
    if is_transient_error(error):
        return ErrorKind.TRANSIENT
    return ErrorKind.FATAL


def backoff_delay(attempt: int, policy: RetryPolicy = RetryPolicy()) -> float:
    """Bounded exponential delay for the given zero-based attempt."""
    return min(policy.base_delay * (2**attempt), policy.max_delay)


def reset_from_error(error: Exception, now: datetime | None = None) -> float | None:
    """
    Read the reset delay carried by a failed HTTP response, if any.

    Uses Retry-After (seconds) first, then X-RateLimit-Reset (epoch).
    """
    if not isinstance(error, httpx.HTTPStatusError):
        return None
    headers = error.response.headers

    retry_after = headers.get("retry-after")
    if retry_after and retry_after.isdigit():
        return float(retry_after)

    status = parse_rate_limit_headers(headers)
    if status is not None:
        now = now or _utcnow()
        return max(0.0, (status.reset_at - now).total_seconds())
    return None


def rate_limit_wait(
    error: Exception,
    status: RateLimitStatus | None,
    attempt: int,
    policy: RetryPolicy = RetryPolicy(),
    now: datetime | None = None,
) -> float:
    """
    Wait time after a rate-limit error.

    The reset instant is known exactly (from the response or the last status),
    so the wait is the time until reset, capped. Unknown reset falls back to
    the exponential schedule.
    """
    now = now or _utcnow()
    delay = reset_from_error(error, now)
    if delay is None and status is not None:
        delay = (status.reset_at - now).total_seconds()
    if delay is None:
        return backoff_delay(attempt, policy)
    return max(0.0, min(delay, policy.max_rate_limit_wait))
