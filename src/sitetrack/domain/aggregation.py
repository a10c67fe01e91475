"""Multi-page listing aggregation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping, Optional

from sitetrack.domain.entities import (
    AggregationResult,
    AggregationStatus,
    Page,
    Record,
    ResourceSpec,
)
from sitetrack.domain.errors import (
    FetchError,
    StaleAggregationError,
    ValidationError,
    invalid_page_size,
)

if TYPE_CHECKING:
    from sitetrack.client.base import ListingSource

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


def declared_total_pages(page: Page) -> int:
    """Number of pages a first page says exist.

    A missing pagination block or missing ``totalPages`` both mean the
    first page is the whole listing.
    """
    if page.pagination is None or page.pagination.total_pages is None:
        return 1
    return max(1, page.pagination.total_pages)


class PageAggregator:
    """Gathers every page of a paginated listing into one collection.

    Pages are fetched one at a time in ascending order. A failure on the
    first page propagates; a failure on a later page is logged and the
    items gathered so far are returned with a PARTIAL status.

    Each call to load() starts a new generation. A run that finds itself
    superseded (by another load() or by reset()) raises
    StaleAggregationError and never touches ``result``.
    """

    def __init__(
        self,
        source: "ListingSource",
        resource: ResourceSpec,
        page_size: int = DEFAULT_PAGE_SIZE,
        params: Optional[Mapping[str, Any]] = None,
    ):
        """Initialize page aggregator.

        Args:
            source: Listing source used to fetch pages
            resource: Listing resource to aggregate
            page_size: Items requested per page
            params: Extra query parameters sent with every page request

        Raises:
            ValidationError: If page_size is not positive
        """
        if page_size <= 0:
            raise ValidationError(invalid_page_size(page_size))
        self.source = source
        self.resource = resource
        self.page_size = page_size
        self.params = dict(params or {})
        self.generation = 0
        self.target: Optional[str] = None
        self.result: Optional[AggregationResult] = None

    @property
    def is_loaded(self) -> bool:
        return self.result is not None

    def reset(self) -> None:
        """Discard the collection and invalidate any in-flight run."""
        self.generation += 1
        self.target = None
        self.result = None

    def _ensure_current(self, generation: int) -> None:
        if generation != self.generation:
            raise StaleAggregationError(generation, self.generation)

    async def _fetch(self, page: int, params: Mapping[str, Any]) -> Page:
        return await self.source.fetch_page(self.resource, page, self.page_size, params)

    async def load(
        self,
        target: Optional[str] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> AggregationResult:
        """Fetch all pages and replace the current collection.

        Args:
            target: Label of what this run is for (e.g. a material id)
            params: Extra query parameters for this run only

        Returns:
            AggregationResult for this run

        Raises:
            FetchError: If the first page cannot be fetched
            StaleAggregationError: If the run was superseded
        """
        self.generation += 1
        generation = self.generation
        self.target = target
        self.result = None

        query = {**self.params, **(params or {})}

        try:
            first = await self._fetch(1, query)
        except FetchError:
            self._ensure_current(generation)
            raise
        self._ensure_current(generation)

        items: list[Record] = list(first.items)
        total_pages = declared_total_pages(first)
        pages_fetched = 1
        error: Optional[FetchError] = None

        for page_number in range(2, total_pages + 1):
            try:
                page = await self._fetch(page_number, query)
            except FetchError as e:
                self._ensure_current(generation)
                logger.warning(
                    "Error fetching %s page %d of %d: %s; keeping %d items from %d pages",
                    self.resource.name,
                    page_number,
                    total_pages,
                    e,
                    len(items),
                    pages_fetched,
                )
                error = e
                break
            self._ensure_current(generation)
            items.extend(page.items)
            pages_fetched += 1

        if error is not None:
            status = AggregationStatus.PARTIAL
        elif not items:
            status = AggregationStatus.EMPTY
        else:
            status = AggregationStatus.COMPLETE

        result = AggregationResult(
            items=tuple(items),
            status=status,
            pages_fetched=pages_fetched,
            total_pages=total_pages,
            generation=generation,
            target=target,
            error=error,
        )
        self._ensure_current(generation)
        self.result = result
        logger.debug(
            "Aggregated %d %s from %d/%d pages (%s)",
            len(items),
            self.resource.name,
            pages_fetched,
            total_pages,
            status.value,
        )
        return result


async def fetch_all(
    source: "ListingSource",
    resource: ResourceSpec,
    page_size: int = DEFAULT_PAGE_SIZE,
    params: Optional[Mapping[str, Any]] = None,
) -> AggregationResult:
    """Aggregate a listing once with a throwaway aggregator."""
    aggregator = PageAggregator(source, resource, page_size=page_size, params=params)
    return await aggregator.load()
