"""Material receipt commands."""

import click

from sitetrack.cli.date_filters import period_options, resolve_cli_date_range
from sitetrack.cli.output import (
    echo_page_footer,
    echo_partial_notice,
    format_quantity,
    truncate,
)
from sitetrack.cli.session import run_with_source
from sitetrack.client.resources import RECEIPTS
from sitetrack.domain.filters import (
    DateRange,
    FilterSet,
    MultiSelect,
    NumericRange,
    PresenceFilter,
)
from sitetrack.domain.material_views import MaterialReceiptsService, load_material_directory
from sitetrack.domain.table_state import TableState
from sitetrack.utils.numbers import parse_optional_amount


def receipt_table_state(page_size: int) -> TableState:
    """Table state matching the receipts screen defaults."""
    return TableState(
        search_fields=RECEIPTS.search_fields,
        default_filters=FilterSet({"status": PresenceFilter("linkedPurchaseId")}),
        default_advanced=FilterSet(
            {
                "vendors": MultiSelect("vendorName"),
                "vehicles": MultiSelect("vehicleNumber"),
                "date": DateRange("date"),
                "netWeight": NumericRange("netWeight"),
            }
        ),
        sort_field="date",
        sort_direction="desc",
        page_size=page_size,
    )


@click.command("receipts")
@click.argument("material_id")
@click.option("--site", help="Site id or name to narrow to")
@click.option("--search", default="", help="Search vehicle, material and vendor")
@click.option(
    "--status",
    type=click.Choice(["all", "linked", "open"], case_sensitive=False),
    default="all",
    help="Linked to a purchase, open, or all",
)
@click.option("--vendor", multiple=True, help="Vendor name (repeatable)")
@click.option("--vehicle", multiple=True, help="Vehicle number (repeatable)")
@period_options
@click.option("--min-weight", help="Minimum net weight")
@click.option("--max-weight", help="Maximum net weight")
@click.option("--sort", "sort_field", default="date", help="Field to sort by (default: date)")
@click.option("--asc", is_flag=True, help="Sort ascending instead of newest first")
@click.option("--page", type=click.IntRange(min=1), default=1, help="Page to show")
@click.option("--per-page", type=click.IntRange(min=1), default=10, help="Rows per page")
@click.pass_context
def receipts(
    ctx,
    material_id: str,
    site: str | None,
    search: str,
    status: str,
    vendor: tuple[str, ...],
    vehicle: tuple[str, ...],
    start_date: str | None,
    end_date: str | None,
    period_flags: dict[str, bool],
    min_weight: str | None,
    max_weight: str | None,
    sort_field: str,
    asc: bool,
    page: int,
    per_page: int,
):
    """Show every receipt of MATERIAL_ID with summary totals."""
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=period_flags
    )
    try:
        minimum = parse_optional_amount(min_weight)
        maximum = parse_optional_amount(max_weight)
    except ValueError as e:
        click.echo(f"Error: Invalid weight: {e}", err=True)
        ctx.exit(1)

    page_size = ctx.obj["page_size"]

    async def load(source):
        directory = await load_material_directory(source, page_size)
        service = MaterialReceiptsService(source, directory, page_size=page_size)
        return await service.open(material_id, site)

    dialog = run_with_source(ctx, load)
    echo_partial_notice(dialog.aggregation)

    table = receipt_table_state(per_page)
    table.set_search(search)
    table.set_filter("status", PresenceFilter("linkedPurchaseId", status.lower()))
    table.begin_edit()
    table.set_draft("vendors", MultiSelect("vendorName", frozenset(vendor)))
    table.set_draft("vehicles", MultiSelect("vehicleNumber", frozenset(vehicle)))
    table.set_draft("date", DateRange("date", start, end))
    table.set_draft("netWeight", NumericRange("netWeight", minimum, maximum))
    table.apply_draft()
    if sort_field != table.sort_field:
        table.set_sort(sort_field)
    table.set_sort_direction("asc" if asc else "desc")
    table.set_page(page)
    view = table.view(dialog.records)

    summary = dialog.summary
    name = dialog.material_name or material_id
    where = f" at {site}" if site else " across all sites"
    click.echo(f"\nMaterial receipts - {name}{where}")
    click.echo(
        f"Total receipts: {summary.count}   Total inward qty: {format_quantity(summary.total_quantity)}   "
        f"Net weight: {format_quantity(summary.total_net_weight)}   "
        f"Linked: {summary.linked}   Open: {summary.open}"
    )
    if table.active_advanced_count:
        click.echo(f"Advanced filters active: {table.active_advanced_count}")

    if not view.items:
        click.echo("No receipts found.")
        return

    click.echo("-" * 100)
    click.echo(
        f"{'Date':<12} {'Vehicle':<14} {'Site':<20} {'Vendor':<20} {'Qty':>10} {'Net wt':>10} {'Linked':<8}"
    )
    click.echo("-" * 100)
    for receipt in view.items:
        click.echo(
            f"{truncate(receipt.get('date'), 12):<12} "
            f"{truncate(receipt.get('vehicleNumber'), 14):<14} "
            f"{truncate(receipt.get('siteName'), 20):<20} "
            f"{truncate(receipt.get('vendorName'), 20):<20} "
            f"{format_quantity(receipt.get('quantity')):>10} "
            f"{format_quantity(receipt.get('netWeight')):>10} "
            f"{'yes' if receipt.get('linkedPurchaseId') else 'no':<8}"
        )
    echo_page_footer(view)


def register_commands(cli):
    """Register receipt commands with main CLI."""
    cli.add_command(receipts)
