"""Shared httpx client construction."""

import asyncio
from typing import Optional

import httpx

from site_audit.constants import DEFAULT_USER_AGENT, PROBE_TIMEOUT_SECONDS

# Errors that mean "the target could not be reached", never a programming bug
NETWORK_ERRORS = (httpx.HTTPError, httpx.InvalidURL, asyncio.TimeoutError)


def default_headers(user_agent: Optional[str] = None) -> dict:
    return {
        "User-Agent": user_agent or DEFAULT_USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    }


def create_http_client(
    user_agent: Optional[str] = None,
    timeout: float = PROBE_TIMEOUT_SECONDS,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create the AsyncClient used for one audit run.

    Args:
        user_agent: User agent header value
        timeout: Default per-request timeout in seconds
        transport: Optional transport override (tests use httpx.MockTransport)

    Returns:
        Configured httpx.AsyncClient; redirects are not followed by default
    """
    return httpx.AsyncClient(
        headers=default_headers(user_agent),
        timeout=timeout,
        follow_redirects=False,
        transport=transport,
    )
