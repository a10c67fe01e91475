"""Listing resources exposed by the construction dashboard API."""

from sitetrack.domain.entities import ResourceSpec
from sitetrack.domain.errors import NotFoundError, unknown_resource

RECEIPTS = ResourceSpec(
    name="receipts",
    path="receipts",
    items_key="receipts",
    search_fields=("vehicleNumber", "materialName", "vendorName"),
    date_field="date",
)
WORK_PROGRESS = ResourceSpec(
    name="work-progress",
    path="work-progress",
    items_key="entries",
    search_fields=("workType", "description", "siteName"),
    date_field="workDate",
)
SITES = ResourceSpec(
    name="sites",
    path="sites",
    items_key="sites",
    search_fields=("name", "location"),
    date_field="startDate",
)
MATERIALS = ResourceSpec(
    name="materials",
    path="materials",
    items_key="materials",
    search_fields=("name", "category", "hsn"),
)
EXPENSES = ResourceSpec(
    name="expenses",
    path="expenses",
    items_key="expenses",
    search_fields=("description", "category", "siteName"),
    date_field="date",
)
PURCHASES = ResourceSpec(
    name="purchases",
    path="purchases",
    items_key="purchases",
    search_fields=("materialName", "vendorName", "vendorInvoiceNumber"),
    date_field="purchaseDate",
)
VEHICLES = ResourceSpec(
    name="vehicles",
    path="vehicles",
    items_key="vehicles",
    search_fields=("vehicleNumber", "type", "make", "model"),
)
VEHICLE_USAGE = ResourceSpec(
    name="vehicle-usage",
    path="vehicles/usage",
    items_key="records",
    search_fields=("vehicleNumber", "siteName", "purpose"),
    date_field="date",
)
VENDORS = ResourceSpec(
    name="vendors",
    path="vendors",
    items_key="vendors",
    search_fields=("name", "contactPerson", "email"),
)

RESOURCES: dict[str, ResourceSpec] = {
    spec.name: spec
    for spec in (
        RECEIPTS,
        WORK_PROGRESS,
        SITES,
        MATERIALS,
        EXPENSES,
        PURCHASES,
        VEHICLES,
        VEHICLE_USAGE,
        VENDORS,
    )
}


def get_resource(name: str) -> ResourceSpec:
    """Look up a registered resource by name.

    Raises:
        NotFoundError: If no resource has that name
    """
    try:
        return RESOURCES[name]
    except KeyError:
        raise NotFoundError(unknown_resource(name)) from None
