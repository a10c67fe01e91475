"""Site progress commands."""

from datetime import date

import click

from sitetrack.cli.output import echo_partial_notice, format_amount, truncate
from sitetrack.cli.session import run_with_source
from sitetrack.client.resources import SITES
from sitetrack.domain.aggregation import fetch_all
from sitetrack.domain.filters import FilterSet, MultiSelect, TextSearch, apply_filters
from sitetrack.domain.metrics import average_progress, sites_by_score


@click.command("sites")
@click.option("--status", multiple=True, help="Site status (repeatable)")
@click.option("--search", default="", help="Search site name and location")
@click.pass_context
def sites(ctx, status: tuple[str, ...], search: str):
    """Rank sites by weighted progress score."""
    result = run_with_source(
        ctx, lambda source: fetch_all(source, SITES, page_size=ctx.obj["page_size"])
    )
    echo_partial_notice(result)

    criteria = FilterSet(
        {
            "search": TextSearch(SITES.search_fields, search),
            "status": MultiSelect("status", frozenset(status)),
        }
    )
    records = apply_filters(result.items, criteria)
    if not records:
        click.echo("No sites found.")
        return

    today = date.today()
    click.echo(f"\n{len(records)} sites, average progress {average_progress(records, today)}%")
    click.echo("-" * 84)
    click.echo(f"{'Site':<28} {'Status':<12} {'Budget':>14} {'Spent':>14} {'Score':>8}")
    click.echo("-" * 84)
    for site, score in sites_by_score(records):
        click.echo(
            f"{truncate(site.get('name'), 28):<28} "
            f"{truncate(site.get('status'), 12):<12} "
            f"{format_amount(site.get('budget')):>14} "
            f"{format_amount(site.get('spent')):>14} "
            f"{score:>7}%"
        )


def register_commands(cli):
    """Register site commands with main CLI."""
    cli.add_command(sites)
