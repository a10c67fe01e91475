"""Purchase consumption commands."""

import click

from sitetrack.cli.output import echo_partial_notice, format_quantity, truncate
from sitetrack.cli.session import run_with_source
from sitetrack.client.resources import PURCHASES, WORK_PROGRESS
from sitetrack.domain.aggregation import fetch_all
from sitetrack.domain.filters import get_field
from sitetrack.domain.metrics import allocate_purchase_usage, usage_rows_from_entries
from sitetrack.utils.numbers import to_number


@click.command("purchase-usage")
@click.option("--material", "material_id", help="Only purchases of this material id")
@click.pass_context
def purchase_usage(ctx, material_id: str | None):
    """Show how much of each purchase has been consumed by work progress."""
    page_size = ctx.obj["page_size"]

    async def load(source):
        purchases = await fetch_all(source, PURCHASES, page_size=page_size)
        entries = await fetch_all(source, WORK_PROGRESS, page_size=page_size)
        return purchases, entries

    purchases, entries = run_with_source(ctx, load)
    echo_partial_notice(purchases)
    echo_partial_notice(entries)

    usage = allocate_purchase_usage(purchases.items, usage_rows_from_entries(entries.items))
    rows = [
        purchase
        for purchase in purchases.items
        if material_id is None or get_field(purchase, "materialId") == material_id
    ]
    if not rows:
        click.echo("No purchases found.")
        return

    click.echo(f"\n{'Date':<12} {'Material':<24} {'Vendor':<20} {'Qty':>10} {'Used':>10} {'Left':>10}")
    click.echo("-" * 90)
    for purchase in rows:
        quantity = to_number(get_field(purchase, "quantity"))
        used = usage.get(get_field(purchase, "id"), 0.0)
        click.echo(
            f"{truncate(get_field(purchase, 'purchaseDate'), 12):<12} "
            f"{truncate(get_field(purchase, 'materialName'), 24):<24} "
            f"{truncate(get_field(purchase, 'vendorName'), 20):<20} "
            f"{format_quantity(quantity):>10} "
            f"{format_quantity(used):>10} "
            f"{format_quantity(max(0.0, quantity - used)):>10}"
        )


def register_commands(cli):
    """Register purchase commands with main CLI."""
    cli.add_command(purchase_usage)
