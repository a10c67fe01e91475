"""Table view state: search, filters, sort and client-side pagination."""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Union

from sitetrack.domain.entities import Record, SortDirection
from sitetrack.domain.filters import (
    Criterion,
    FilterSet,
    TextSearch,
    apply_filters,
    count_active,
    paginate,
    sort_records,
    total_pages,
)

SEARCH = "search"
DEFAULT_PAGE_SIZE = 10


@dataclass(frozen=True)
class TableView:
    """Visible subset of a collection under one table state."""

    filtered: tuple[Record, ...]
    items: tuple[Record, ...]
    page: int
    page_size: int
    total_pages: int

    @property
    def total_items(self) -> int:
        return len(self.filtered)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class TableState:
    """User-adjustable view parameters over a record collection.

    Quick filters apply as soon as they are set. Advanced filters are
    edited in a draft copy and take effect only on apply_draft(), which
    replaces the applied copy in one assignment. Every change to what is
    visible sends the user back to page 1.

    The view is recomputed from scratch on each call to view(); nothing
    is cached between calls.
    """

    def __init__(
        self,
        search_fields: Sequence[str] = (),
        default_filters: Optional[FilterSet] = None,
        default_advanced: Optional[FilterSet] = None,
        sort_field: Optional[str] = None,
        sort_direction: Union[SortDirection, str] = SortDirection.ASC,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        """Initialize table state.

        Args:
            search_fields: Record fields matched by the search box
            default_filters: Quick filters in their default state
            default_advanced: Advanced panel filters in their default state
            sort_field: Initial sort field
            sort_direction: Initial sort direction
            page_size: Initial items per page
        """
        self.search_fields = tuple(search_fields)
        self._default_filters = default_filters or FilterSet()
        self._default_advanced = default_advanced or FilterSet()
        self._default_sort_field = sort_field
        self._default_sort_direction = SortDirection(sort_direction)
        self._default_page_size = max(1, page_size)
        self.version = 0
        self.reset()

    def _touch(self, reset_page: bool = True) -> None:
        self.version += 1
        if reset_page:
            self.page = 1

    def reset(self) -> None:
        """Restore every parameter to its default."""
        self.search_term = ""
        self.filters = self._default_filters
        self.draft_filters = self._default_advanced
        self.applied_filters = self._default_advanced
        self.sort_field = self._default_sort_field
        self.sort_direction = self._default_sort_direction
        self.page_size = self._default_page_size
        self._touch()

    # Search and quick filters
    def set_search(self, term: str) -> None:
        self.search_term = term or ""
        self._touch()

    def set_filter(self, name: str, criterion: Criterion) -> None:
        """Replace one quick filter and go back to the first page."""
        self.filters = self.filters.with_criterion(name, criterion)
        self._touch()

    def clear_filter(self, name: Optional[str] = None) -> None:
        """Restore one quick filter (or all of them) to its default."""
        if name is None:
            self.filters = self._default_filters
        elif name in self._default_filters:
            self.filters = self.filters.with_criterion(name, self._default_filters[name])
        else:
            self.filters = self.filters.without(name)
        self._touch()

    # Advanced filters
    def begin_edit(self) -> None:
        """Start editing the advanced panel from the applied filters."""
        self.draft_filters = self.applied_filters
        self.version += 1

    def set_draft(self, name: str, criterion: Criterion) -> None:
        """Change one advanced filter in the draft without applying it."""
        self.draft_filters = self.draft_filters.with_criterion(name, criterion)
        self.version += 1

    @property
    def is_draft_dirty(self) -> bool:
        return self.draft_filters != self.applied_filters

    def apply_draft(self) -> None:
        """Make the draft the applied advanced filters."""
        self.applied_filters = self.draft_filters
        self._touch()

    def reset_draft(self) -> None:
        """Restore both draft and applied advanced filters to defaults."""
        self.draft_filters = self._default_advanced
        self.applied_filters = self._default_advanced
        self._touch()

    @property
    def active_advanced_count(self) -> int:
        """Badge count for the advanced filter button."""
        return count_active(self.applied_filters)

    @property
    def active_filter_count(self) -> int:
        return count_active(self.combined_filters())

    # Sorting
    def set_sort(self, field: str, default_direction: Union[SortDirection, str] = SortDirection.ASC) -> None:
        """Sort by a field, toggling direction when it is already selected."""
        if self.sort_field == field:
            self.sort_direction = self.sort_direction.toggled()
        else:
            self.sort_field = field
            self.sort_direction = SortDirection(default_direction)
        self._touch()

    def set_sort_direction(self, direction: Union[SortDirection, str]) -> None:
        self.sort_direction = SortDirection(direction)
        self._touch()

    # Pagination
    def set_page(self, page: int) -> None:
        self.page = max(1, page)
        self._touch(reset_page=False)

    def set_page_size(self, page_size: int) -> None:
        self.page_size = max(1, page_size)
        self._touch()

    def total_pages(self, total_items: int) -> int:
        return total_pages(total_items, self.page_size)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    # Derivation
    def combined_filters(self) -> FilterSet:
        """Search, quick and applied advanced filters as one set."""
        combined = self.filters.merged(self.applied_filters)
        if self.search_fields:
            combined = combined.with_criterion(
                SEARCH, TextSearch(self.search_fields, self.search_term)
            )
        return combined

    def filter(self, records: Iterable[Record]) -> list[Record]:
        return sort_records(
            apply_filters(records, self.combined_filters()),
            self.sort_field,
            self.sort_direction,
        )

    def view(self, records: Iterable[Record]) -> TableView:
        """Filter, sort and paginate records under the current state.

        The reported page is clamped to the last available page.
        """
        filtered = self.filter(records)
        pages = self.total_pages(len(filtered))
        page = min(self.page, max(1, pages))
        return TableView(
            filtered=tuple(filtered),
            items=tuple(paginate(filtered, page, self.page_size)),
            page=page,
            page_size=self.page_size,
            total_pages=pages,
        )
