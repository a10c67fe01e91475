"""Material utilization command."""

from collections.abc import Mapping

import click

from sitetrack.cli.output import echo_partial_notice, format_quantity, truncate
from sitetrack.cli.session import run_with_source
from sitetrack.domain.filters import get_field
from sitetrack.domain.material_views import MaterialUtilizationService, load_material_directory
from sitetrack.utils.numbers import percentage, to_number


def consumed_quantity(entry, material_id: str) -> float:
    return sum(
        to_number(line.get("quantity"))
        for line in get_field(entry, "materials") or []
        if isinstance(line, Mapping) and line.get("materialId") == material_id
    )


@click.command("usage")
@click.argument("material_id")
@click.option("--site", help="Site id or name to narrow to")
@click.option("--limit", type=click.IntRange(min=1), default=20, help="Entries to show")
@click.pass_context
def usage(ctx, material_id: str, site: str | None, limit: int):
    """Show where MATERIAL_ID was consumed, by work type and by entry."""
    page_size = ctx.obj["page_size"]

    async def load(source):
        directory = await load_material_directory(source, page_size)
        service = MaterialUtilizationService(source, directory, page_size=page_size)
        return await service.open(material_id, site)

    dialog = run_with_source(ctx, load)
    echo_partial_notice(dialog.aggregation)

    summary = dialog.summary
    name = dialog.material_name or material_id
    where = f" at {site}" if site else " across all sites"
    click.echo(f"\nMaterial utilization - {name}{where}")
    click.echo(
        f"Entries: {len(dialog.records)}   Total utilized: {format_quantity(summary.total_quantity)}"
    )

    if not dialog.records:
        click.echo("No work progress entries use this material.")
        return

    click.echo(f"\n{'Work type':<24} {'Quantity':>12} {'Share':>8}")
    click.echo("-" * 46)
    for work_type, quantity in summary.by_work_type:
        share = percentage(quantity, summary.total_quantity)
        click.echo(f"{truncate(work_type, 24):<24} {format_quantity(quantity):>12} {share:>7.1f}%")

    click.echo(f"\n{'Date':<12} {'Site':<20} {'Work type':<20} {'Quantity':>10}")
    click.echo("-" * 65)
    for entry in dialog.records[:limit]:
        click.echo(
            f"{truncate(get_field(entry, 'workDate'), 12):<12} "
            f"{truncate(get_field(entry, 'siteName'), 20):<20} "
            f"{truncate(get_field(entry, 'workType'), 20):<20} "
            f"{format_quantity(consumed_quantity(entry, material_id)):>10}"
        )
    if len(dialog.records) > limit:
        click.echo(f"... {len(dialog.records) - limit} more")


def register_commands(cli):
    """Register usage command with main CLI."""
    cli.add_command(usage)
