"""Tests for table view state."""

from datetime import date

from sitetrack.domain.entities import SortDirection
from sitetrack.domain.filters import DateRange, EnumFilter, FilterSet, MultiSelect
from sitetrack.domain.table_state import TableState

RECORDS = [
    {"id": f"R{i}", "vendorName": "Acme" if i % 3 else "Beta", "status": "open" if i % 2 else "closed", "qty": i}
    for i in range(1, 26)
]


def _table(**kwargs):
    kwargs.setdefault("search_fields", ("vendorName",))
    kwargs.setdefault("default_filters", FilterSet({"status": EnumFilter("status")}))
    kwargs.setdefault(
        "default_advanced",
        FilterSet({"vendor": MultiSelect("vendorName"), "date": DateRange("date")}),
    )
    return TableState(**kwargs)


def test_defaults_show_first_page_of_everything():
    table = _table()

    view = table.view(RECORDS)

    assert view.page == 1
    assert view.total_items == 25
    assert view.total_pages == 3
    assert [r["id"] for r in view.items] == [f"R{i}" for i in range(1, 11)]
    assert table.active_filter_count == 0


def test_changing_any_criterion_resets_page():
    table = _table()
    changes = [
        lambda: table.set_search("acme"),
        lambda: table.set_filter("status", EnumFilter("status", "open")),
        lambda: table.clear_filter("status"),
        lambda: table.set_sort("qty"),
        lambda: table.set_sort_direction("desc"),
        lambda: table.set_page_size(5),
        table.apply_draft,
        table.reset_draft,
    ]
    for change in changes:
        table.set_page(3)
        change()
        assert table.page == 1


def test_set_page_does_not_reset_and_is_clamped_to_one():
    table = _table()

    table.set_page(2)
    assert table.page == 2
    assert table.offset == 10

    table.set_page(-4)
    assert table.page == 1


def test_view_clamps_page_past_the_end():
    table = _table()
    table.set_page(9)

    view = table.view(RECORDS)

    assert view.page == 3
    assert [r["id"] for r in view.items] == [f"R{i}" for i in range(21, 26)]


def test_sort_toggles_on_same_field():
    table = _table()

    table.set_sort("qty", SortDirection.DESC)
    assert table.view(RECORDS).items[0]["id"] == "R25"

    table.set_sort("qty")
    assert table.sort_direction is SortDirection.ASC
    assert table.view(RECORDS).items[0]["id"] == "R1"

    table.set_sort("vendorName")
    assert table.sort_field == "vendorName"
    assert table.sort_direction is SortDirection.ASC


def test_draft_filters_apply_only_on_apply():
    table = _table()
    table.begin_edit()
    table.set_draft("vendor", MultiSelect("vendorName", {"Beta"}))

    assert table.is_draft_dirty
    assert table.view(RECORDS).total_items == 25
    assert table.active_advanced_count == 0

    table.apply_draft()

    assert not table.is_draft_dirty
    assert table.view(RECORDS).total_items == 8
    assert table.active_advanced_count == 1


def test_begin_edit_discards_unapplied_draft():
    table = _table()
    table.set_draft("vendor", MultiSelect("vendorName", {"Beta"}))

    table.begin_edit()

    assert not table.is_draft_dirty
    assert table.draft_filters["vendor"].values == frozenset()


def test_reset_draft_restores_defaults():
    table = _table()
    table.set_draft("date", DateRange("date", start=date(2024, 1, 1)))
    table.apply_draft()

    table.reset_draft()

    assert table.active_advanced_count == 0
    assert table.applied_filters == table.draft_filters


def test_search_quick_and_advanced_filters_combine():
    table = _table()
    table.set_search("ACME")
    table.set_filter("status", EnumFilter("status", "open"))
    table.set_draft("vendor", MultiSelect("vendorName", {"Acme", "Beta"}))
    table.apply_draft()

    view = table.view(RECORDS)

    assert all(r["vendorName"] == "Acme" and r["status"] == "open" for r in view.filtered)
    assert view.total_items == 9
    assert table.active_filter_count == 1 + 1 + 2


def test_view_does_not_mutate_input():
    records = list(RECORDS)
    table = _table(sort_field="qty", sort_direction="desc")

    table.view(records)

    assert records == RECORDS


def test_reset_restores_everything():
    table = _table(page_size=5)
    table.set_search("beta")
    table.set_sort("qty")
    table.set_page_size(20)
    table.set_page(2)

    table.reset()

    assert table.search_term == ""
    assert table.sort_field is None
    assert table.page_size == 5
    assert table.page == 1
