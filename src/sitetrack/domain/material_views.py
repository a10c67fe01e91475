"""Per-material dialog services: receipts and work-progress utilization."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional

from sitetrack.client.resources import MATERIALS, RECEIPTS, WORK_PROGRESS
from sitetrack.domain.aggregation import DEFAULT_PAGE_SIZE, PageAggregator
from sitetrack.domain.entities import (
    AggregationResult,
    AggregationStatus,
    ReceiptSummary,
    Record,
    ResourceSpec,
    UsageSummary,
)
from sitetrack.domain.filters import get_field
from sitetrack.domain.metrics import entry_uses_material, receipt_summary, usage_by_work_type
from sitetrack.utils.date_parser import parse_record_date

if TYPE_CHECKING:
    from sitetrack.client.base import ListingSource

logger = logging.getLogger(__name__)


class MaterialDirectory:
    """Read-only lookup of current material names by id."""

    def __init__(self, names: Optional[Mapping[str, str]] = None):
        self._names = dict(names or {})

    @classmethod
    def from_records(cls, materials: Iterable[Record]) -> "MaterialDirectory":
        names = {}
        for material in materials:
            material_id = get_field(material, "id")
            name = get_field(material, "name")
            if material_id and name:
                names[material_id] = name
        return cls(names)

    def __contains__(self, material_id: object) -> bool:
        return material_id in self._names

    def __len__(self) -> int:
        return len(self._names)

    def name_for(self, material_id: Optional[str], fallback: Optional[str] = None) -> str:
        """Current name of a material, or ``fallback`` when unknown."""
        if material_id and material_id in self._names:
            return self._names[material_id]
        return fallback or ""

    def resolve(self, record: Record) -> Record:
        """Copy of a record with ``materialName`` set to the current name."""
        name = self.name_for(get_field(record, "materialId"), get_field(record, "materialName"))
        return {**record, "materialName": name}


def matches_site(record: Record, site: Optional[str]) -> bool:
    """True when the record belongs to ``site`` by id or by case-insensitive name."""
    if not site:
        return True
    if get_field(record, "siteId") == site:
        return True
    site_name = get_field(record, "siteName")
    return isinstance(site_name, str) and site_name.casefold() == site.casefold()


def newest_first(records: Iterable[Record], date_field: str) -> list[Record]:
    """Sort by a date field, most recent first; undated records go last."""

    def key(record: Record) -> date:
        return parse_record_date(get_field(record, date_field)) or date.min

    return sorted(records, key=key, reverse=True)


@dataclass(frozen=True)
class MaterialDialogView:
    """What a per-material dialog shows after loading."""

    material_id: str
    material_name: str
    site: Optional[str]
    records: tuple[Record, ...]
    status: AggregationStatus
    aggregation: AggregationResult

    @property
    def is_partial(self) -> bool:
        return self.aggregation.is_partial


@dataclass(frozen=True)
class MaterialReceiptsView(MaterialDialogView):
    summary: Optional[ReceiptSummary] = None


@dataclass(frozen=True)
class MaterialUtilizationView(MaterialDialogView):
    summary: Optional[UsageSummary] = None


class MaterialDialogService(ABC):
    """Loads every record of a listing and narrows it to one material.

    Each open() replaces the previous collection. close() discards it and
    invalidates any load still in flight, so a late response for a
    previous material can never surface.
    """

    resource: ResourceSpec
    date_field: str

    def __init__(
        self,
        source: "ListingSource",
        directory: Optional[MaterialDirectory] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        """Initialize dialog service.

        Args:
            source: Listing source used to fetch pages
            directory: Current material names, shared across dialogs
            page_size: Items requested per page
        """
        self.directory = directory or MaterialDirectory()
        self.aggregator = PageAggregator(source, self.resource, page_size=page_size)
        self.view: Optional[MaterialDialogView] = None

    @property
    def is_open(self) -> bool:
        return self.aggregator.target is not None

    def close(self) -> None:
        self.aggregator.reset()
        self.view = None

    @abstractmethod
    def select(self, records: Iterable[Record], material_id: str) -> list[Record]:
        """Records of the listing that belong to one material."""

    @abstractmethod
    def build_view(self, **fields: Any) -> MaterialDialogView:
        """Wrap the selected records and their summary in a view."""

    async def open(
        self,
        material_id: str,
        site: Optional[str] = None,
        material_name: Optional[str] = None,
    ) -> MaterialDialogView:
        """Load the listing and show the records of one material.

        Args:
            material_id: Material to show
            site: Optional site id or site name to narrow to
            material_name: Name to show when the directory does not know it

        Raises:
            FetchError: If the first page cannot be fetched
            StaleAggregationError: If another open() or close() superseded this one
        """
        self.view = None
        result = await self.aggregator.load(target=material_id)
        selected = [
            record
            for record in self.select(result.items, material_id)
            if matches_site(record, site)
        ]
        records = tuple(newest_first(selected, self.date_field))
        if result.is_partial:
            logger.info(
                "Showing partial %s for material %s: %d of %d pages loaded",
                self.resource.name,
                material_id,
                result.pages_fetched,
                result.total_pages,
            )
        self.view = self.build_view(
            material_id=material_id,
            material_name=self.directory.name_for(material_id, material_name),
            site=site,
            records=records,
            status=result.status,
            aggregation=result,
        )
        return self.view


class MaterialReceiptsService(MaterialDialogService):
    """Receipts of one material across all receipt pages."""

    resource = RECEIPTS
    date_field = "date"

    def select(self, records: Iterable[Record], material_id: str) -> list[Record]:
        return [
            self.directory.resolve(record)
            for record in records
            if get_field(record, "materialId") == material_id
        ]

    def build_view(self, **fields: Any) -> MaterialReceiptsView:
        return MaterialReceiptsView(summary=receipt_summary(fields["records"]), **fields)


class MaterialUtilizationService(MaterialDialogService):
    """Work progress entries that consumed one material."""

    resource = WORK_PROGRESS
    date_field = "workDate"

    def select(self, records: Iterable[Record], material_id: str) -> list[Record]:
        return [record for record in records if entry_uses_material(record, material_id)]

    def build_view(self, **fields: Any) -> MaterialUtilizationView:
        return MaterialUtilizationView(
            summary=usage_by_work_type(fields["records"], fields["material_id"]),
            **fields,
        )


async def load_material_directory(
    source: "ListingSource",
    page_size: int = DEFAULT_PAGE_SIZE,
) -> MaterialDirectory:
    """Build the material name directory from every page of materials."""
    aggregator = PageAggregator(source, MATERIALS, page_size=page_size)
    result = await aggregator.load()
    return MaterialDirectory.from_records(result.items)
