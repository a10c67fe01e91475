"""Domain layer for sitetrack application."""

from sitetrack.domain.aggregation import PageAggregator, fetch_all
from sitetrack.domain.material_views import (
    MaterialDirectory,
    MaterialReceiptsService,
    MaterialUtilizationService,
)
from sitetrack.domain.table_state import TableState

__all__ = [
    "PageAggregator",
    "fetch_all",
    "MaterialDirectory",
    "MaterialReceiptsService",
    "MaterialUtilizationService",
    "TableState",
]
