"""Domain model entities for sitetrack.

Records arrive from the listing API as plain JSON objects and are treated
as read-only mappings. The classes here describe everything derived from
them: pagination envelopes, aggregation results, and metric snapshots.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

Record = Mapping[str, Any]


class SortDirection(str, Enum):
    """Sort direction for table views."""

    ASC = "asc"
    DESC = "desc"

    def toggled(self) -> "SortDirection":
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


class AggregationStatus(str, Enum):
    """Completeness of a multi-page aggregation."""

    COMPLETE = "complete"
    PARTIAL = "partial"
    EMPTY = "empty"


@dataclass(frozen=True)
class ResourceSpec:
    """A paginated listing endpoint and the shape of its envelope."""

    name: str
    path: str
    items_key: str
    search_fields: tuple[str, ...] = ()
    date_field: Optional[str] = None


@dataclass(frozen=True)
class PaginationInfo:
    """Pagination envelope returned alongside a page of items."""

    page: int
    limit: int
    total: int
    total_pages: Optional[int]


@dataclass(frozen=True)
class Page:
    """One parsed page of a listing response."""

    items: tuple[Record, ...]
    pagination: Optional[PaginationInfo] = None


@dataclass(frozen=True)
class AggregationResult:
    """Merged items of every page gathered by one aggregation run."""

    items: tuple[Record, ...]
    status: AggregationStatus
    pages_fetched: int
    total_pages: int
    generation: int
    target: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def is_complete(self) -> bool:
        return self.status is not AggregationStatus.PARTIAL

    @property
    def is_partial(self) -> bool:
        return self.status is AggregationStatus.PARTIAL


@dataclass(frozen=True)
class CategoryShare:
    """Total and percentage of one category in a breakdown."""

    name: str
    total: float
    percentage: float


@dataclass(frozen=True)
class CategoryBreakdown:
    """Per-category totals over a collection."""

    total: float
    shares: tuple[CategoryShare, ...]

    def as_dict(self) -> dict[str, float]:
        return {share.name: share.total for share in self.shares}

    def get(self, name: str) -> Optional[CategoryShare]:
        for share in self.shares:
            if share.name == name:
                return share
        return None


@dataclass(frozen=True)
class ProgressInputs:
    """Inputs of the weighted site progress score.

    Missing timeline or milestone progress falls back to the completion
    percentage; missing quality falls back to the default quality score.
    """

    budget: float = 0.0
    spent: float = 0.0
    completion_percentage: float = 0.0
    budget_progress: Optional[float] = None
    timeline_progress: Optional[float] = None
    milestone_progress: Optional[float] = None
    quality_score: Optional[float] = None


@dataclass(frozen=True)
class LinkCounts:
    """Counts of records with and without a foreign-key reference."""

    linked: int
    unlinked: int

    @property
    def total(self) -> int:
        return self.linked + self.unlinked


@dataclass(frozen=True)
class LowStockAlert:
    """A material at or below its reorder level."""

    id: str
    name: str
    unit: str
    available: float
    reorder_level: float


@dataclass(frozen=True)
class ReceiptSummary:
    """Summary card values for a set of material receipts."""

    count: int
    total_net_weight: float
    total_quantity: float
    linked: int
    open: int


@dataclass(frozen=True)
class UsageSummary:
    """Utilised quantity of one material, overall and per work type."""

    total_quantity: float
    by_work_type: tuple[tuple[str, float], ...]


@dataclass(frozen=True)
class MonthlyTotals:
    """Category sums for one calendar month."""

    key: str
    label: str
    categories: Mapping[str, float]
    total: float


@dataclass(frozen=True)
class MetricsSnapshot:
    """Read-only metrics derived from a filtered collection.

    A new snapshot replaces the old one whenever its inputs change.
    """

    record_count: int
    amount_total: float
    breakdown: Optional[CategoryBreakdown] = None
    links: Optional[LinkCounts] = None
    extra: Mapping[str, Any] = field(default_factory=dict)
