"""Shared CLI output helpers."""

from typing import Any, Optional

import click

from sitetrack.domain.entities import AggregationResult, CategoryBreakdown
from sitetrack.domain.table_state import TableView
from sitetrack.utils.numbers import to_number


def format_amount(value: Any) -> str:
    return f"{to_number(value):,.2f}"


def format_quantity(value: Any) -> str:
    number = to_number(value)
    if number.is_integer():
        return f"{number:,.0f}"
    return f"{number:,.2f}"


def truncate(value: Optional[Any], width: int) -> str:
    text = "" if value is None else str(value)
    return text if len(text) <= width else text[: width - 1] + "…"


def echo_partial_notice(result: AggregationResult) -> None:
    """Warn on stderr when only some pages could be loaded."""
    if result.is_partial:
        click.echo(
            f"Warning: showing partial data ({result.pages_fetched} of "
            f"{result.total_pages} pages loaded): {result.error}",
            err=True,
        )


def echo_page_footer(view: TableView) -> None:
    if view.total_pages > 1:
        click.echo(
            f"Page {view.page} of {view.total_pages} "
            f"({view.total_items} matching record{'s' if view.total_items != 1 else ''})"
        )


def echo_breakdown(breakdown: CategoryBreakdown, title: str = "Category") -> None:
    click.echo(f"{title:<20} {'Amount':>16} {'Share':>8}")
    click.echo("-" * 46)
    for share in breakdown.shares:
        click.echo(
            f"{share.name:<20} {format_amount(share.total):>16} {share.percentage:>7.1f}%"
        )
    click.echo("-" * 46)
    click.echo(f"{'Total':<20} {format_amount(breakdown.total):>16}")
