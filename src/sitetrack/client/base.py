"""Abstract listing source interface."""

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

# Import entities directly to avoid circular import through domain/__init__.py
from sitetrack.domain.entities import Page, ResourceSpec


class ListingSource(ABC):
    """Abstract source of paginated listings for sitetrack."""

    @abstractmethod
    async def fetch_page(
        self,
        resource: ResourceSpec,
        page: int,
        limit: int,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Page:
        """Fetch one page of a listing.

        Raises:
            FetchError: If the request fails or returns a non-2xx status
        """
        pass

    async def aclose(self) -> None:
        """Release any resources held by the source."""
        pass

    async def __aenter__(self) -> "ListingSource":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
