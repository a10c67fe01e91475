"""Expense summary commands."""

from datetime import date

import click

from sitetrack.cli.date_filters import period_options, resolve_cli_date_range
from sitetrack.cli.output import echo_breakdown, echo_partial_notice, format_amount
from sitetrack.cli.session import run_with_source
from sitetrack.client.resources import EXPENSES
from sitetrack.domain.aggregation import fetch_all
from sitetrack.domain.filters import DateRange, FilterSet, MultiSelect, TextSearch, apply_filters
from sitetrack.domain.material_views import matches_site
from sitetrack.domain.metrics import (
    EXPENSE_CATEGORIES,
    metrics_snapshot,
    monthly_category_totals,
)


@click.command("expenses")
@period_options
@click.option("--site", help="Site id or name to narrow to")
@click.option(
    "--category",
    multiple=True,
    type=click.Choice(EXPENSE_CATEGORIES, case_sensitive=False),
    help="Expense category (repeatable)",
)
@click.option("--search", default="", help="Search description, category and site")
@click.option(
    "--monthly",
    type=click.IntRange(min=1, max=24),
    help="Also show per-month totals for the last N months",
)
@click.pass_context
def expenses(
    ctx,
    start_date: str | None,
    end_date: str | None,
    period_flags: dict[str, bool],
    site: str | None,
    category: tuple[str, ...],
    search: str,
    monthly: int | None,
):
    """Show expense totals broken down by category.

    Date options filter which expenses are counted. Without them, every
    expense is included.
    """
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=period_flags
    )
    canonical = {name.casefold(): name for name in EXPENSE_CATEGORIES}
    selected = frozenset(canonical[name.casefold()] for name in category)

    result = run_with_source(
        ctx, lambda source: fetch_all(source, EXPENSES, page_size=ctx.obj["page_size"])
    )
    echo_partial_notice(result)

    criteria = FilterSet(
        {
            "search": TextSearch(EXPENSES.search_fields, search),
            "category": MultiSelect("category", selected),
            "date": DateRange("date", start, end),
        }
    )
    records = [record for record in apply_filters(result.items, criteria) if matches_site(record, site)]
    snapshot = metrics_snapshot(records, categories=EXPENSE_CATEGORIES)

    if start or end:
        click.echo(
            f"\nExpenses from {start.isoformat() if start else 'the beginning'} "
            f"to {end.isoformat() if end else 'today'}"
        )
    else:
        click.echo("\nAll expenses")
    if site:
        click.echo(f"Site: {site}")
    click.echo(f"Records: {snapshot.record_count}   Total: {format_amount(snapshot.amount_total)}\n")
    echo_breakdown(snapshot.breakdown)

    if monthly:
        click.echo(f"\nLast {monthly} months")
        click.echo(f"{'Month':<10} {'Total':>16}")
        click.echo("-" * 27)
        for month in monthly_category_totals(records, date.today(), months=monthly):
            click.echo(f"{month.label:<10} {format_amount(month.total):>16}")


def register_commands(cli):
    """Register expense commands with main CLI."""
    cli.add_command(expenses)
