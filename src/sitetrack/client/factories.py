"""Factory functions for creating listing sources."""

import os
from typing import Optional

import httpx

from sitetrack.client.http import (
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_TIMEOUT_SECONDS,
    HttpListingSource,
)

DEFAULT_API_URL = "http://localhost:3000/api"
DEFAULT_PAGE_SIZE = 100


def _env_number(name: str, default, cast):
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a number, got '{raw}'")


def resolve_page_size(page_size: Optional[int] = None) -> int:
    """Resolve the aggregation page size.

    Args:
        page_size: Explicit page size. If None, checks SITETRACK_PAGE_SIZE,
            then defaults to 100.
    """
    if page_size is None:
        page_size = _env_number("SITETRACK_PAGE_SIZE", DEFAULT_PAGE_SIZE, int)
    return page_size


def create_http_source(
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
    retry_attempts: Optional[int] = None,
    token: Optional[str] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> HttpListingSource:
    """Create an HTTP listing source.

    Args:
        base_url: API root URL. If None, checks SITETRACK_API_URL environment
            variable, then defaults to http://localhost:3000/api
        timeout: Per-request timeout in seconds (SITETRACK_TIMEOUT, default 30)
        retry_attempts: Attempts for transport failures (SITETRACK_RETRIES, default 3)
        token: Bearer token (SITETRACK_TOKEN, optional)
        http_client: Optional preconfigured httpx client

    Returns:
        HttpListingSource instance
    """
    if base_url is None:
        base_url = os.environ.get("SITETRACK_API_URL") or DEFAULT_API_URL

    if timeout is None:
        timeout = _env_number("SITETRACK_TIMEOUT", DEFAULT_TIMEOUT_SECONDS, float)

    if retry_attempts is None:
        retry_attempts = _env_number("SITETRACK_RETRIES", DEFAULT_RETRY_ATTEMPTS, int)

    if token is None:
        token = os.environ.get("SITETRACK_TOKEN") or None

    return HttpListingSource(
        base_url,
        timeout=timeout,
        retry_attempts=retry_attempts,
        token=token,
        http_client=http_client,
    )
