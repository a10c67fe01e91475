"""Shared pytest fixtures for sitetrack tests."""

import functools
import math

import httpx
import pytest
from click.testing import CliRunner

from sitetrack.client.http import HttpListingSource
from sitetrack.client.resources import RESOURCES

API_URL = "http://dashboard.test/api"


class FakeListingApi:
    """In-memory dashboard API serving paginated listing envelopes.

    Records are served per resource path. ``failures`` maps
    ``(path, page)`` to ``(status, body)`` for pages that should fail.
    """

    def __init__(self, resources=None):
        self.resources = {path: list(items) for path, items in (resources or {}).items()}
        self.failures = {}
        self.requests = []
        self.include_total_pages = True
        self.include_pagination = True

    def fail(self, path, page, status=500, body=None):
        self.failures[(path, page)] = (status, body if body is not None else {"error": "Server exploded"})

    def pages_requested(self, path):
        return [
            int(request.url.params["page"])
            for request in self.requests
            if request.url.path == f"/api/{path}"
        ]

    def _items_key(self, path):
        for spec in RESOURCES.values():
            if spec.path == path:
                return spec.items_key
        return "items"

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/api/")
        page = int(request.url.params.get("page", "1"))
        limit = int(request.url.params.get("limit", "10"))

        if (path, page) in self.failures:
            status, body = self.failures[(path, page)]
            return httpx.Response(status, json=body)

        items = self.resources.get(path, [])
        start = (page - 1) * limit
        body = {self._items_key(path): items[start:start + limit]}
        if self.include_pagination:
            pagination = {"page": page, "limit": limit, "total": len(items)}
            if self.include_total_pages:
                pagination["totalPages"] = math.ceil(len(items) / limit)
            body["pagination"] = pagination
        return httpx.Response(200, json=body)


def make_source(api, **kwargs) -> HttpListingSource:
    """HTTP listing source wired to a fake API through a mock transport."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(api))
    kwargs.setdefault("retry_attempts", 1)
    return HttpListingSource(API_URL, http_client=client, **kwargs)


def receipt(index, material_id="M7", site_id="S1", **fields):
    record = {
        "id": f"R{index}",
        "date": f"2024-{(index % 12) + 1:02d}-{(index % 28) + 1:02d}",
        "materialId": material_id,
        "materialName": "Old cement name",
        "siteId": site_id,
        "siteName": "North Tower" if site_id == "S1" else "River Bridge",
        "vehicleNumber": f"KA-01-{index:04d}",
        "vendorName": "Acme Supplies",
        "quantity": 10,
        "netWeight": 2.5,
        "linkedPurchaseId": f"P{index}" if index % 2 == 0 else None,
    }
    record.update(fields)
    return record


@pytest.fixture
def fake_api():
    """Empty fake API; tests fill ``resources`` as needed."""
    return FakeListingApi()


@pytest.fixture
def source(fake_api):
    """HTTP listing source backed by the fake API."""
    return make_source(fake_api)


@pytest.fixture
def cli_runner():
    return CliRunner()


@pytest.fixture
def cli_obj(fake_api):
    """Context object that points CLI commands at the fake API."""
    return {
        "source_factory": functools.partial(make_source, fake_api),
        "page_size": 5,
    }
