"""HTTP listing source backed by httpx."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from sitetrack.client.base import ListingSource
from sitetrack.domain.entities import Page, PaginationInfo, ResourceSpec
from sitetrack.domain.errors import FetchError, fetch_failed, http_status_error

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_RETRY_ATTEMPTS = 3


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def parse_pagination(payload: Any) -> Optional[PaginationInfo]:
    """Parse a pagination block; anything malformed yields None."""
    if not isinstance(payload, dict):
        return None
    page = _as_int(payload.get("page"))
    limit = _as_int(payload.get("limit"))
    total = _as_int(payload.get("total"))
    if page is None or limit is None or total is None:
        return None
    return PaginationInfo(
        page=page,
        limit=limit,
        total=total,
        total_pages=_as_int(payload.get("totalPages")),
    )


def parse_page(body: Any, items_key: str) -> Page:
    """Parse a listing envelope ``{<items_key>: [...], pagination?: {...}}``."""
    if not isinstance(body, dict):
        return Page(items=())
    raw_items = body.get(items_key)
    items: tuple = ()
    if isinstance(raw_items, list):
        items = tuple(item for item in raw_items if isinstance(item, dict))
    return Page(items=items, pagination=parse_pagination(body.get("pagination")))


def error_message(response: httpx.Response) -> str:
    """Best-effort user-facing message for a failed response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), str) and body["error"]:
        return body["error"]
    return http_status_error(response.status_code, response.reason_phrase)


class HttpListingSource(ListingSource):
    """Listing source talking to the dashboard REST API.

    Only transport failures (connection errors, timeouts) are retried; any
    HTTP status outside 2xx becomes a FetchError immediately.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        token: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize HTTP listing source.

        Args:
            base_url: API root, e.g. ``http://localhost:3000/api``
            timeout: Per-request timeout in seconds
            retry_attempts: Attempts per request for transport failures
            token: Optional bearer token sent with every request
            http_client: Optional preconfigured client (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.retry_attempts = max(1, retry_attempts)
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._headers = headers
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    def url_for(self, resource: ResourceSpec) -> str:
        return f"{self.base_url}/{resource.path.lstrip('/')}"

    async def _get(self, url: str, params: dict[str, Any]) -> httpx.Response:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
            stop=stop_after_attempt(self.retry_attempts),
            reraise=True,
        )
        return await retrying(self._client.get, url, params=params, headers=self._headers)

    async def fetch_page(
        self,
        resource: ResourceSpec,
        page: int,
        limit: int,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Page:
        url = self.url_for(resource)
        query: dict[str, Any] = {}
        if params:
            query.update({key: value for key, value in params.items() if value is not None})
        query["page"] = page
        query["limit"] = limit

        logger.debug("GET %s page=%s limit=%s", url, page, limit)
        try:
            response = await self._get(url, query)
        except httpx.HTTPError as e:
            raise FetchError(fetch_failed(url, e)) from e

        if not response.is_success:
            raise FetchError(error_message(response), status=response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise FetchError(fetch_failed(url, e), status=response.status_code) from e

        return parse_page(body, resource.items_key)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
