"""Derived metrics over record collections.

Every function here is pure: inputs are never mutated, and missing or
malformed fields count as zero (numbers) or as unmatched (categories)
instead of raising.
"""

from collections import OrderedDict
from datetime import date
from typing import Any, Iterable, Mapping, Optional, Sequence

from dateutil.relativedelta import relativedelta

from sitetrack.domain.entities import (
    CategoryBreakdown,
    CategoryShare,
    LinkCounts,
    LowStockAlert,
    MetricsSnapshot,
    MonthlyTotals,
    ProgressInputs,
    ReceiptSummary,
    Record,
    UsageSummary,
)
from sitetrack.domain.filters import get_field, sort_records
from sitetrack.utils.date_parser import parse_record_date
from sitetrack.utils.numbers import percentage, round_half_up, to_non_negative, to_number

EXPENSE_CATEGORIES = ("Labour", "Materials", "Equipment", "Transport", "Utilities", "Other")
OTHER = "Other"
UNKNOWN_WORK_TYPE = "Unknown"

BUDGET_WEIGHT = 0.4
TIMELINE_WEIGHT = 0.3
MILESTONE_WEIGHT = 0.2
QUALITY_WEIGHT = 0.1
DEFAULT_QUALITY_SCORE = 85.0

MIN_REORDER_LEVEL = 5.0
REORDER_CONSUMPTION_RATIO = 0.2
LOW_STOCK_ALERT_LIMIT = 6


def sum_field(records: Iterable[Record], field: str) -> float:
    """Sum a numeric field, treating absent values as 0."""
    return sum(to_number(get_field(record, field)) for record in records)


# Category breakdowns
def category_totals(
    records: Iterable[Record],
    categories: Sequence[str] = EXPENSE_CATEGORIES,
    amount_field: str = "amount",
    category_field: str = "category",
    other: Optional[str] = OTHER,
) -> "OrderedDict[str, float]":
    """Sum ``amount_field`` per category.

    Records whose category is absent or not in ``categories`` are added to
    ``other`` when it is one of the categories, and ignored otherwise.
    """
    totals: "OrderedDict[str, float]" = OrderedDict((name, 0.0) for name in categories)
    for record in records:
        category = get_field(record, category_field)
        if not isinstance(category, str) or category not in totals:
            if other is None or other not in totals:
                continue
            category = other
        totals[category] += to_number(get_field(record, amount_field))
    return totals


def category_breakdown(
    records: Iterable[Record],
    categories: Sequence[str] = EXPENSE_CATEGORIES,
    amount_field: str = "amount",
    category_field: str = "category",
    other: Optional[str] = OTHER,
) -> CategoryBreakdown:
    """Category totals with each category's share of the grand total.

    Percentages are rounded to one decimal and are 0 when the grand total
    is 0.
    """
    totals = category_totals(records, categories, amount_field, category_field, other)
    return breakdown_from_totals(totals)


def breakdown_from_totals(totals: Mapping[str, float]) -> CategoryBreakdown:
    grand_total = sum(totals.values())
    shares = tuple(
        CategoryShare(name=name, total=value, percentage=percentage(value, grand_total))
        for name, value in totals.items()
    )
    return CategoryBreakdown(total=grand_total, shares=shares)


def monthly_category_totals(
    records: Iterable[Record],
    today: date,
    months: int = 6,
    categories: Sequence[str] = EXPENSE_CATEGORIES,
    amount_field: str = "amount",
    category_field: str = "category",
    date_field: str = "date",
) -> list[MonthlyTotals]:
    """Per-month category sums for the last ``months`` months, oldest first.

    Records outside the window or with unparseable dates are skipped.
    Unknown categories are counted under "Other" when it is a category.
    """
    first_month = today.replace(day=1) - relativedelta(months=months - 1)
    buckets: "OrderedDict[str, dict[str, float]]" = OrderedDict()
    labels: dict[str, str] = {}
    for offset in range(months):
        month = first_month + relativedelta(months=offset)
        key = month.strftime("%Y-%m")
        buckets[key] = {name: 0.0 for name in categories}
        labels[key] = month.strftime("%b %Y")

    for record in records:
        record_date = parse_record_date(get_field(record, date_field))
        if record_date is None:
            continue
        bucket = buckets.get(record_date.strftime("%Y-%m"))
        if bucket is None:
            continue
        category = get_field(record, category_field)
        if not isinstance(category, str) or category not in bucket:
            if OTHER not in bucket:
                continue
            category = OTHER
        bucket[category] += to_number(get_field(record, amount_field))

    return [
        MonthlyTotals(key=key, label=labels[key], categories=values, total=sum(values.values()))
        for key, values in buckets.items()
    ]


# Site progress
def budget_utilization(spent: Any, budget: Any) -> float:
    """Spent as a percentage of budget; 0 when there is no budget."""
    budget_value = to_number(budget)
    if budget_value == 0:
        return 0.0
    return to_number(spent) / budget_value * 100


def timeline_progress(start: Any, end: Any, today: date) -> float:
    """Share of the planned schedule elapsed at ``today``, 0 to 100.

    Missing or unparseable dates give 0; an end on or before the start
    gives 100.
    """
    start_date = parse_record_date(start)
    end_date = parse_record_date(end)
    if start_date is None or end_date is None:
        return 0.0
    total_days = (end_date - start_date).days
    if total_days <= 0:
        return 100.0
    if today <= start_date:
        return 0.0
    if today >= end_date:
        return 100.0
    return round_half_up((today - start_date).days / total_days * 100)


def site_progress_score(inputs: ProgressInputs) -> int:
    """Weighted composite progress: 40% budget, 30% timeline, 20% milestones, 10% quality."""
    budget = inputs.budget_progress
    if budget is None:
        budget = budget_utilization(inputs.spent, inputs.budget)
    timeline = inputs.timeline_progress
    if timeline is None:
        timeline = inputs.completion_percentage
    milestone = inputs.milestone_progress
    if milestone is None:
        milestone = inputs.completion_percentage
    quality = inputs.quality_score
    if quality is None:
        quality = DEFAULT_QUALITY_SCORE

    score = (
        to_number(budget) * BUDGET_WEIGHT
        + to_number(timeline) * TIMELINE_WEIGHT
        + to_number(milestone) * MILESTONE_WEIGHT
        + to_number(quality) * QUALITY_WEIGHT
    )
    return int(round_half_up(score))


def progress_inputs_for_site(site: Record) -> ProgressInputs:
    """Build score inputs from a site record.

    Optional ``budgetProgress``, ``timelineProgress``, ``milestoneProgress``
    and ``qualityScore`` fields are used when present; absent ones take
    the fallbacks of site_progress_score.
    """

    def optional(field: str) -> Optional[float]:
        value = get_field(site, field)
        return None if value is None else to_number(value)

    return ProgressInputs(
        budget=to_number(get_field(site, "budget")),
        spent=to_number(get_field(site, "spent")),
        completion_percentage=to_number(get_field(site, "progress")),
        budget_progress=optional("budgetProgress"),
        timeline_progress=optional("timelineProgress"),
        milestone_progress=optional("milestoneProgress"),
        quality_score=optional("qualityScore"),
    )


def average_progress(sites: Iterable[Record], today: date) -> int:
    """Rounded mean site progress.

    Sites reporting 0 progress contribute their timeline progress instead.
    """
    values = []
    for site in sites:
        progress = to_number(get_field(site, "progress"))
        if progress == 0:
            progress = timeline_progress(
                get_field(site, "startDate"), get_field(site, "expectedEndDate"), today
            )
        values.append(progress)
    if not values:
        return 0
    return int(round_half_up(sum(values) / len(values)))


# Links and stock
def linked_counts(records: Iterable[Record], field: str) -> LinkCounts:
    """Count records with and without a value in ``field``."""
    linked = 0
    unlinked = 0
    for record in records:
        if get_field(record, field):
            linked += 1
        else:
            unlinked += 1
    return LinkCounts(linked=linked, unlinked=unlinked)


def reorder_level(consumed: Any) -> float:
    """Reorder level heuristic: 20% of consumption, never below 5."""
    return max(MIN_REORDER_LEVEL, to_number(consumed) * REORDER_CONSUMPTION_RATIO)


def is_low_stock(available: Any, level: Any) -> bool:
    return to_number(available) <= to_number(level)


def low_stock_alerts(
    materials: Iterable[Record],
    limit: Optional[int] = LOW_STOCK_ALERT_LIMIT,
) -> list[LowStockAlert]:
    """Materials at or below their reorder level, lowest stock first.

    An explicit ``reorderLevel`` on the material wins over the
    consumption heuristic.
    """
    alerts = []
    for material in materials:
        available = to_number(get_field(material, "quantity"))
        explicit_level = get_field(material, "reorderLevel")
        if explicit_level is not None:
            level = to_number(explicit_level)
        else:
            level = reorder_level(get_field(material, "consumedQuantity"))
        if not is_low_stock(available, level):
            continue
        alerts.append(
            LowStockAlert(
                id=str(get_field(material, "id") or ""),
                name=str(get_field(material, "name") or ""),
                unit=str(get_field(material, "unit") or ""),
                available=available,
                reorder_level=level,
            )
        )
    alerts.sort(key=lambda alert: alert.available)
    if limit is not None:
        alerts = alerts[:limit]
    return alerts


# Material receipts and usage
def receipt_summary(receipts: Sequence[Record]) -> ReceiptSummary:
    """Summary card values for a set of receipts."""
    links = linked_counts(receipts, "linkedPurchaseId")
    return ReceiptSummary(
        count=len(receipts),
        total_net_weight=sum_field(receipts, "netWeight"),
        total_quantity=sum_field(receipts, "quantity"),
        linked=links.linked,
        open=links.unlinked,
    )


def usage_by_work_type(entries: Iterable[Record], material_id: str) -> UsageSummary:
    """Quantity of one material consumed by work progress entries.

    Each entry lists its consumed materials under ``materials``; the
    breakdown is keyed by the entry's ``workType`` ("Unknown" when absent)
    and sorted by quantity, largest first.
    """
    total = 0.0
    by_type: "OrderedDict[str, float]" = OrderedDict()
    for entry in entries:
        consumed = get_field(entry, "materials")
        if not isinstance(consumed, list):
            continue
        quantity = sum(
            to_number(get_field(line, "quantity"))
            for line in consumed
            if isinstance(line, Mapping) and get_field(line, "materialId") == material_id
        )
        if quantity == 0:
            continue
        work_type = get_field(entry, "workType") or UNKNOWN_WORK_TYPE
        by_type[work_type] = by_type.get(work_type, 0.0) + quantity
        total += quantity
    ordered = sorted(by_type.items(), key=lambda item: item[1], reverse=True)
    return UsageSummary(total_quantity=total, by_work_type=tuple(ordered))


def entry_uses_material(entry: Record, material_id: str) -> bool:
    consumed = get_field(entry, "materials")
    if not isinstance(consumed, list):
        return False
    return any(
        isinstance(line, Mapping) and get_field(line, "materialId") == material_id
        for line in consumed
    )


def allocate_purchase_usage(
    purchases: Iterable[Record],
    usage_rows: Optional[Iterable[Record]],
) -> dict[str, float]:
    """Map purchase id to the quantity consumed from it.

    A usage row naming a known purchase is charged to that purchase. A row
    without one is spread over purchases of the same material in the
    order they are given, never beyond a purchase's remaining quantity.
    """
    usage: dict[str, float] = {}
    capacity: dict[str, float] = {}
    queues: dict[str, list[str]] = {}

    for purchase in purchases:
        purchase_id = get_field(purchase, "id")
        if not isinstance(purchase_id, str) or not purchase_id:
            continue
        capacity[purchase_id] = to_non_negative(get_field(purchase, "quantity"))
        material_id = get_field(purchase, "materialId")
        if isinstance(material_id, str) and material_id:
            queues.setdefault(material_id, []).append(purchase_id)

    def allocate(purchase_id: str, quantity: float) -> None:
        if quantity <= 0:
            return
        usage[purchase_id] = usage.get(purchase_id, 0.0) + quantity
        capacity[purchase_id] = max(0.0, capacity.get(purchase_id, 0.0) - quantity)

    for row in usage_rows or ():
        quantity = to_non_negative(get_field(row, "quantity"))
        if quantity <= 0:
            continue

        purchase_id = get_field(row, "purchaseId")
        if isinstance(purchase_id, str) and purchase_id in capacity:
            allocate(purchase_id, quantity)
            continue

        material_id = get_field(row, "materialId")
        remaining = quantity
        for candidate in queues.get(material_id, []) if isinstance(material_id, str) else []:
            if remaining <= 0:
                break
            available = capacity.get(candidate, 0.0)
            if available <= 0:
                continue
            allocated = min(available, remaining)
            allocate(candidate, allocated)
            remaining -= allocated

    return usage


# Snapshots
def metrics_snapshot(
    records: Sequence[Record],
    amount_field: str = "amount",
    categories: Optional[Sequence[str]] = None,
    category_field: str = "category",
    link_field: Optional[str] = None,
) -> MetricsSnapshot:
    """Build a fresh snapshot of the usual summary-card metrics."""
    breakdown = None
    if categories:
        breakdown = category_breakdown(records, categories, amount_field, category_field)
    links = linked_counts(records, link_field) if link_field else None
    return MetricsSnapshot(
        record_count=len(records),
        amount_total=sum_field(records, amount_field),
        breakdown=breakdown,
        links=links,
    )


def sites_by_score(sites: Iterable[Record]) -> list[tuple[Record, int]]:
    """Pair every site with its weighted progress score, best first."""
    scored = [
        {**site, "calculatedProgress": site_progress_score(progress_inputs_for_site(site))}
        for site in sites
    ]
    ranked = sort_records(scored, "calculatedProgress", "desc")
    return [(site, site["calculatedProgress"]) for site in ranked]


def usage_rows_from_entries(entries: Iterable[Record]) -> list[Record]:
    """Flatten the consumed-material lines of work progress entries."""
    rows = []
    for entry in entries:
        consumed = get_field(entry, "materials")
        if not isinstance(consumed, list):
            continue
        rows.extend(line for line in consumed if isinstance(line, Mapping))
    return rows
