"""Tests for per-material dialog services."""

import asyncio

import pytest

from conftest import FakeListingApi, make_source, receipt
from sitetrack.client.base import ListingSource
from sitetrack.domain.entities import AggregationStatus
from sitetrack.domain.errors import FetchError, StaleAggregationError
from sitetrack.domain.material_views import (
    MaterialDialogService,
    MaterialDirectory,
    MaterialReceiptsService,
    MaterialUtilizationService,
    load_material_directory,
    matches_site,
    newest_first,
)


def _receipts_api():
    """250 receipts over 3 pages of 100; 12 of them for material M7."""
    records = []
    m7_indexes = {5, 40, 99, 100, 150, 180, 199, 200, 210, 230, 240, 249}
    for index in range(250):
        material = "M7" if index in m7_indexes else "M1"
        site = "S2" if index in (40, 210) else "S1"
        records.append(receipt(index, material_id=material, site_id=site))
    return FakeListingApi(
        {
            "receipts": records,
            "materials": [{"id": "M7", "name": "Cement OPC 53"}, {"id": "M1", "name": "Sand"}],
        }
    )


def _open(api, service_cls, material_id, site=None, page_size=100):
    async def run():
        async with make_source(api) as source:
            directory = await load_material_directory(source, page_size)
            service = service_cls(source, directory, page_size=page_size)
            return await service.open(material_id, site)

    return asyncio.run(run())


def test_receipts_dialog_aggregates_every_page():
    api = _receipts_api()

    view = _open(api, MaterialReceiptsService, "M7")

    assert len(view.records) == 12
    assert all(record["materialId"] == "M7" for record in view.records)
    assert view.status is AggregationStatus.COMPLETE
    assert api.pages_requested("receipts") == [1, 2, 3]
    assert view.summary.count == 12
    assert view.summary.total_quantity == 120
    assert view.summary.linked + view.summary.open == 12


def test_receipts_sorted_newest_first_with_current_names():
    view = _open(_receipts_api(), MaterialReceiptsService, "M7")

    dates = [record["date"] for record in view.records]
    assert dates == sorted(dates, reverse=True)
    assert view.material_name == "Cement OPC 53"
    assert {record["materialName"] for record in view.records} == {"Cement OPC 53"}


def test_receipts_narrowed_to_site_by_id_or_name():
    by_id = _open(_receipts_api(), MaterialReceiptsService, "M7", site="S2")
    by_name = _open(_receipts_api(), MaterialReceiptsService, "M7", site="river bridge")

    assert sorted(record["id"] for record in by_id.records) == ["R210", "R40"]
    assert by_name.records == by_id.records


def test_receipts_partial_when_later_page_fails():
    api = _receipts_api()
    api.fail("receipts", 3)

    view = _open(api, MaterialReceiptsService, "M7")

    assert view.is_partial
    assert view.status is AggregationStatus.PARTIAL
    assert {record["id"] for record in view.records} == {"R5", "R40", "R99", "R100", "R150", "R180", "R199"}


def test_receipts_first_page_failure_propagates():
    api = _receipts_api()
    api.fail("receipts", 1, status=500)

    with pytest.raises(FetchError):
        _open(api, MaterialReceiptsService, "M7")


def test_reopen_for_another_material_replaces_records():
    api = _receipts_api()

    async def run():
        async with make_source(api) as source:
            service = MaterialReceiptsService(source, page_size=100)
            first = await service.open("M7")
            second = await service.open("M1")
            return service, first, second

    service, first, second = asyncio.run(run())

    assert len(first.records) == 12
    assert len(second.records) == 238
    assert all(record["materialId"] == "M1" for record in second.records)
    assert service.view is second
    assert api.pages_requested("receipts") == [1, 2, 3, 1, 2, 3]


def test_close_discards_view():
    api = _receipts_api()

    async def run():
        async with make_source(api) as source:
            service = MaterialReceiptsService(source, page_size=100)
            await service.open("M7")
            assert service.is_open
            service.close()
            return service

    service = asyncio.run(run())

    assert service.view is None
    assert not service.is_open


class HeldSource(ListingSource):
    """Wraps a source and holds its first request until released."""

    def __init__(self, inner):
        self.inner = inner
        self.released = asyncio.Event()
        self.hold_next = True

    async def fetch_page(self, resource, page, limit, params=None):
        if self.hold_next:
            self.hold_next = False
            await self.released.wait()
        return await self.inner.fetch_page(resource, page, limit, params)

    async def aclose(self):
        await self.inner.aclose()


def test_superseded_open_never_shows_old_material():
    api = _receipts_api()

    async def run():
        async with HeldSource(make_source(api)) as source:
            service = MaterialReceiptsService(source, page_size=100)
            slow = asyncio.create_task(service.open("M7"))
            await asyncio.sleep(0)
            fast = await service.open("M1")
            source.released.set()
            with pytest.raises(StaleAggregationError):
                await slow
            return service, fast

    service, fast = asyncio.run(run())

    assert service.view is fast
    assert service.view.material_id == "M1"


def test_utilization_dialog_summarises_work_types():
    entries = [
        {"id": f"W{i}", "workDate": f"2024-02-{i + 1:02d}", "workType": "Slab" if i % 2 else "Column",
         "siteId": "S1", "materials": [{"materialId": "M7", "quantity": 2}]}
        for i in range(7)
    ]
    entries.append({"id": "W99", "workDate": "2024-03-01", "materials": [{"materialId": "M1", "quantity": 9}]})
    api = FakeListingApi({"work-progress": entries, "materials": []})

    view = _open(api, MaterialUtilizationService, "M7", page_size=3)

    assert [entry["id"] for entry in view.records] == [f"W{i}" for i in range(6, -1, -1)]
    assert view.summary.total_quantity == 14
    assert view.summary.by_work_type == (("Column", 8), ("Slab", 6))
    assert api.pages_requested("work-progress") == [1, 2, 3]
    assert view.material_name == ""


def test_material_directory_falls_back_to_stored_name():
    directory = MaterialDirectory.from_records([{"id": "M7", "name": "Cement"}, {"id": "M8"}])

    assert "M7" in directory
    assert len(directory) == 1
    assert directory.name_for("M8", "Stored") == "Stored"
    assert directory.resolve({"materialId": "M7", "materialName": "Old"})["materialName"] == "Cement"
    assert directory.resolve({"materialId": "M9", "materialName": "Old"})["materialName"] == "Old"


def test_matches_site_and_newest_first():
    record = {"siteId": "S1", "siteName": "North Tower"}

    assert matches_site(record, None)
    assert matches_site(record, "S1")
    assert matches_site(record, "NORTH TOWER")
    assert not matches_site(record, "S2")

    ordered = newest_first([{"d": "2024-01-01"}, {"d": None}, {"d": "2024-05-01"}], "d")
    assert [r["d"] for r in ordered] == ["2024-05-01", "2024-01-01", None]


def test_dialog_service_requires_select_and_build_view(source):
    with pytest.raises(TypeError):
        MaterialDialogService(source)

    class ReceiptsWithoutView(MaterialDialogService):
        resource = MaterialReceiptsService.resource
        date_field = "date"

        def select(self, records, material_id):
            return list(records)

    with pytest.raises(TypeError, match="build_view"):
        ReceiptsWithoutView(source)
