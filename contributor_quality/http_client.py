"""Shared HTTP client handling for GitHub API requests."""

import httpx

from contributor_quality import __version__
from contributor_quality.config import get_verify_ssl

# Sent with every request; GitHub rejects API calls without a User-Agent
GITHUB_DEFAULT_HEADERS = {
    "Accept": "application/vnd.github+json",
    "User-Agent": f"contributor-quality/{__version__}",
}

_async_http_client: httpx.AsyncClient | None = None
_async_http_client_verify_ssl: bool | None = None


def github_auth_headers(token: str) -> dict[str, str]:
    """Per-request headers for an authenticated GraphQL call."""
    return {
        "Authorization": f"bearer {token}",
        "Content-Type": "application/json",
    }


async def _get_async_http_client() -> httpx.AsyncClient:
    """Get or create the pooled GitHub client.

    Recreated when the --insecure setting changes or after it was closed.
    """
    global _async_http_client, _async_http_client_verify_ssl
    verify_ssl = get_verify_ssl()

    if (
        _async_http_client is None
        or _async_http_client.is_closed
        or _async_http_client_verify_ssl != verify_ssl
    ):
        if _async_http_client is not None and not _async_http_client.is_closed:
            await _async_http_client.aclose()

        _async_http_client = httpx.AsyncClient(
            headers=GITHUB_DEFAULT_HEADERS,
            verify=verify_ssl,
            timeout=30,
            limits=httpx.Limits(
                max_connections=10,
                max_keepalive_connections=5,
                keepalive_expiry=30.0,
            ),
        )
        _async_http_client_verify_ssl = verify_ssl
    return _async_http_client


async def close_async_http_client() -> None:
    """Close the pooled client once an evaluation is done."""
    global _async_http_client, _async_http_client_verify_ssl
    if _async_http_client is not None and not _async_http_client.is_closed:
        await _async_http_client.aclose()
    _async_http_client = None
    _async_http_client_verify_ssl = None
