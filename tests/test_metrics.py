"""Tests for derived metrics."""

from datetime import date

import pytest

from sitetrack.domain.entities import ProgressInputs
from sitetrack.domain.metrics import (
    EXPENSE_CATEGORIES,
    allocate_purchase_usage,
    average_progress,
    budget_utilization,
    category_breakdown,
    category_totals,
    linked_counts,
    low_stock_alerts,
    metrics_snapshot,
    monthly_category_totals,
    progress_inputs_for_site,
    receipt_summary,
    reorder_level,
    site_progress_score,
    sites_by_score,
    timeline_progress,
    usage_by_work_type,
    usage_rows_from_entries,
)


class TestCategoryBreakdown:
    def test_shares_rounded_to_one_decimal(self):
        records = [
            {"category": "Labour", "amount": 100},
            {"category": "Materials", "amount": 150},
            {"category": "Materials", "amount": "50"},
        ]

        breakdown = category_breakdown(records, ("Labour", "Materials", "Transport"))

        assert breakdown.total == 300
        assert [share.percentage for share in breakdown.shares] == [33.3, 66.7, 0.0]
        assert breakdown.as_dict() == {"Labour": 100, "Materials": 200, "Transport": 0}

    def test_zero_total_gives_zero_percentages(self):
        breakdown = category_breakdown([{"category": "Labour", "amount": 0}])

        assert breakdown.total == 0
        assert all(share.percentage == 0 for share in breakdown.shares)
        assert [share.name for share in breakdown.shares] == list(EXPENSE_CATEGORIES)

    def test_unknown_and_missing_categories_fall_into_other(self):
        records = [
            {"category": "Catering", "amount": 10},
            {"amount": 5},
            {"category": "Labour", "amount": None},
            {"category": "Labour", "amount": "abc"},
        ]

        totals = category_totals(records)

        assert totals["Other"] == 15
        assert totals["Labour"] == 0

    def test_unknown_categories_ignored_without_other(self):
        totals = category_totals([{"category": "Catering", "amount": 10}], ("Labour",))

        assert dict(totals) == {"Labour": 0}


class TestSiteProgress:
    def test_weighted_score_rounds_half_up(self):
        inputs = ProgressInputs(
            budget_progress=80,
            timeline_progress=60,
            milestone_progress=100,
            quality_score=85,
        )

        assert site_progress_score(inputs) == 79

    def test_defaults_fall_back_to_completion_and_quality(self):
        inputs = ProgressInputs(budget=1000, spent=500, completion_percentage=40)

        # 50*0.4 + 40*0.3 + 40*0.2 + 85*0.1
        assert site_progress_score(inputs) == 49

    def test_budget_utilization(self):
        assert budget_utilization(250, 1000) == 25
        assert budget_utilization(250, 0) == 0
        assert budget_utilization(None, "1000") == 0

    @pytest.mark.parametrize(
        "start,end,today,expected",
        [
            ("2024-01-01", "2024-01-11", date(2024, 1, 6), 50),
            ("2024-01-01", "2024-01-11", date(2023, 12, 1), 0),
            ("2024-01-01", "2024-01-11", date(2024, 6, 1), 100),
            ("2024-01-11", "2024-01-01", date(2024, 1, 5), 100),
            (None, "2024-01-11", date(2024, 1, 5), 0),
            ("garbage", "2024-01-11", date(2024, 1, 5), 0),
        ],
    )
    def test_timeline_progress(self, start, end, today, expected):
        assert timeline_progress(start, end, today) == expected

    def test_average_progress_uses_timeline_for_zero_progress(self):
        sites = [
            {"progress": 50},
            {"progress": 0, "startDate": "2024-01-01", "expectedEndDate": "2024-01-11"},
        ]

        assert average_progress(sites, date(2024, 1, 6)) == 50
        assert average_progress([], date(2024, 1, 6)) == 0

    def test_sites_by_score_best_first(self):
        sites = [
            {"id": "low", "budget": 100, "spent": 0, "progress": 0, "qualityScore": 0},
            {"id": "high", "budgetProgress": 100, "timelineProgress": 100, "milestoneProgress": 100},
        ]

        ranked = sites_by_score(sites)

        assert [(site["id"], score) for site, score in ranked] == [("high", 99), ("low", 0)]
        assert "calculatedProgress" not in sites[0]

    def test_site_without_timeline_uses_completion_not_dates(self):
        site = {
            "id": "tower",
            "budget": 100,
            "spent": 80,
            "progress": 100,
            "startDate": "2024-01-01",
            "expectedEndDate": "2024-12-31",
        }

        inputs = progress_inputs_for_site(site)

        assert inputs.timeline_progress is None
        # 80*0.4 + 100*0.3 + 100*0.2 + 85*0.1
        assert site_progress_score(inputs) == 91
        assert sites_by_score([site]) == [({**site, "calculatedProgress": 91}, 91)]


class TestLinksAndStock:
    def test_linked_counts(self):
        counts = linked_counts([{"p": "P1"}, {"p": None}, {}, {"p": ""}], "p")

        assert (counts.linked, counts.unlinked, counts.total) == (1, 3, 4)

    def test_reorder_level_has_floor(self):
        assert reorder_level(10) == 5
        assert reorder_level(200) == 40
        assert reorder_level(None) == 5

    def test_low_stock_alerts_sorted_and_limited(self):
        materials = [
            {"id": "a", "name": "Sand", "quantity": 3, "consumedQuantity": 10, "unit": "t"},
            {"id": "b", "name": "Steel", "quantity": 30, "consumedQuantity": 200},
            {"id": "c", "name": "Bricks", "quantity": 10, "reorderLevel": 8},
            {"id": "d", "name": "Cement", "quantity": 0},
            {"id": "e", "name": "Gravel", "quantity": 5},
        ]

        alerts = low_stock_alerts(materials)

        assert [alert.id for alert in alerts] == ["d", "a", "e", "b"]
        assert alerts[1].unit == "t"
        assert alerts[3].reorder_level == 40
        assert [alert.id for alert in low_stock_alerts(materials, limit=2)] == ["d", "a"]


class TestMaterialMetrics:
    def test_receipt_summary(self):
        receipts = [
            {"netWeight": 2.5, "quantity": 10, "linkedPurchaseId": "P1"},
            {"netWeight": "1.5", "quantity": 4},
            {"netWeight": None},
        ]

        summary = receipt_summary(receipts)

        assert summary.count == 3
        assert summary.total_net_weight == 4.0
        assert summary.total_quantity == 14
        assert (summary.linked, summary.open) == (1, 2)

    def test_usage_by_work_type(self):
        entries = [
            {"workType": "Foundation", "materials": [{"materialId": "M7", "quantity": 5}, {"materialId": "M1", "quantity": 99}]},
            {"workType": "Plastering", "materials": [{"materialId": "M7", "quantity": 12}]},
            {"workType": "Foundation", "materials": [{"materialId": "M7", "quantity": 3}]},
            {"materials": [{"materialId": "M7", "quantity": 1}]},
            {"workType": "Roofing", "materials": "n/a"},
        ]

        summary = usage_by_work_type(entries, "M7")

        assert summary.total_quantity == 21
        assert summary.by_work_type == (("Plastering", 12), ("Foundation", 8), ("Unknown", 1))

    def test_allocation_direct_then_fifo(self):
        purchases = [
            {"id": "P1", "materialId": "M1", "quantity": 10},
            {"id": "P2", "materialId": "M1", "quantity": 10},
            {"id": "P3", "materialId": "M2", "quantity": 5},
        ]
        rows = [
            {"purchaseId": "P3", "materialId": "M2", "quantity": 2},
            {"materialId": "M1", "quantity": 15},
            {"materialId": "M1", "quantity": 10},
            {"materialId": "M9", "quantity": 4},
        ]

        usage = allocate_purchase_usage(purchases, rows)

        assert usage == {"P3": 2, "P1": 10, "P2": 10}

    def test_allocation_without_usage(self):
        assert allocate_purchase_usage([{"id": "P1", "quantity": 3}], None) == {}

    def test_usage_rows_from_entries(self):
        entries = [
            {"materials": [{"materialId": "M1", "quantity": 2}, "junk"]},
            {"materials": None},
            {},
        ]

        assert usage_rows_from_entries(entries) == [{"materialId": "M1", "quantity": 2}]


def test_monthly_category_totals_window():
    expenses = [
        {"date": "2023-12-31", "category": "Labour", "amount": 999},
        {"date": "2024-01-05", "category": "Labour", "amount": 100},
        {"date": "2024-03-01", "category": "Transport", "amount": 40},
        {"date": "2024-03-20", "category": "Unknown", "amount": 10},
        {"date": None, "category": "Labour", "amount": 7},
    ]

    months = monthly_category_totals(expenses, date(2024, 3, 15), months=3)

    assert [month.key for month in months] == ["2024-01", "2024-02", "2024-03"]
    assert [month.label for month in months] == ["Jan 2024", "Feb 2024", "Mar 2024"]
    assert [month.total for month in months] == [100, 0, 50]
    assert months[2].categories["Other"] == 10


def test_metrics_snapshot():
    records = [
        {"category": "Labour", "amount": 30, "siteId": "S1"},
        {"category": "Utilities", "amount": 10},
    ]

    snapshot = metrics_snapshot(records, categories=EXPENSE_CATEGORIES, link_field="siteId")

    assert snapshot.record_count == 2
    assert snapshot.amount_total == 40
    assert snapshot.breakdown.get("Labour").percentage == 75.0
    assert snapshot.links.linked == 1
    assert metrics_snapshot([]).breakdown is None
