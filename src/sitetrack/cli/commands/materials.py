"""Material stock commands."""

import click

from sitetrack.cli.output import echo_partial_notice, format_quantity, truncate
from sitetrack.cli.session import run_with_source
from sitetrack.client.resources import MATERIALS
from sitetrack.domain.aggregation import fetch_all
from sitetrack.domain.metrics import LOW_STOCK_ALERT_LIMIT, low_stock_alerts


@click.command("low-stock")
@click.option(
    "--limit",
    type=click.IntRange(min=1),
    default=LOW_STOCK_ALERT_LIMIT,
    show_default=True,
    help="Maximum alerts to show",
)
@click.option("--site", help="Site id sent to the API as siteId")
@click.pass_context
def low_stock(ctx, limit: int, site: str | None):
    """List materials at or below their reorder level."""
    params = {"siteId": site} if site else None
    result = run_with_source(
        ctx,
        lambda source: fetch_all(source, MATERIALS, page_size=ctx.obj["page_size"], params=params),
    )
    echo_partial_notice(result)

    alerts = low_stock_alerts(result.items, limit=limit)
    if not alerts:
        click.echo("No materials are low on stock.")
        return

    click.echo(f"\n{'Material':<30} {'Available':>12} {'Reorder at':>12} {'Unit':<8}")
    click.echo("-" * 65)
    for alert in alerts:
        click.echo(
            f"{truncate(alert.name, 30):<30} "
            f"{format_quantity(alert.available):>12} "
            f"{format_quantity(alert.reorder_level):>12} "
            f"{truncate(alert.unit, 8):<8}"
        )


def register_commands(cli):
    """Register material commands with main CLI."""
    cli.add_command(low_stock)
