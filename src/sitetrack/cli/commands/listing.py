"""Generic listing command."""

import click

from sitetrack.cli.output import echo_page_footer, echo_partial_notice, truncate
from sitetrack.cli.session import run_with_source
from sitetrack.client.resources import RESOURCES, get_resource
from sitetrack.domain.aggregation import fetch_all
from sitetrack.domain.filters import MultiSelect
from sitetrack.domain.table_state import TableState


def parse_pairs(ctx, option: str, pairs: tuple[str, ...]) -> dict[str, list[str]]:
    """Parse repeated KEY=VALUE options into a dict of value lists."""
    parsed: dict[str, list[str]] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            click.echo(f"Error: {option} expects KEY=VALUE, got '{pair}'", err=True)
            ctx.exit(1)
        parsed.setdefault(key.strip(), []).append(value.strip())
    return parsed


@click.command("list")
@click.argument("resource_name", metavar="RESOURCE", type=click.Choice(sorted(RESOURCES)))
@click.option("--search", default="", help="Case-insensitive text search")
@click.option(
    "--where",
    multiple=True,
    help="FIELD=VALUE exact match (repeat a field to allow several values)",
)
@click.option("--param", multiple=True, help="KEY=VALUE query parameter sent to the API")
@click.option("--sort", "sort_field", help="Field to sort by")
@click.option("--desc", is_flag=True, help="Sort descending")
@click.option("--page", type=click.IntRange(min=1), default=1, help="Page to show")
@click.option("--per-page", type=click.IntRange(min=1), default=20, help="Rows per page")
@click.pass_context
def list_records(
    ctx,
    resource_name: str,
    search: str,
    where: tuple[str, ...],
    param: tuple[str, ...],
    sort_field: str | None,
    desc: bool,
    page: int,
    per_page: int,
):
    """Load every page of RESOURCE and show a filtered, sorted page of it."""
    resource = get_resource(resource_name)
    conditions = parse_pairs(ctx, "--where", where)
    params = {key: values[-1] for key, values in parse_pairs(ctx, "--param", param).items()}

    result = run_with_source(
        ctx,
        lambda source: fetch_all(source, resource, page_size=ctx.obj["page_size"], params=params),
    )
    echo_partial_notice(result)

    table = TableState(
        search_fields=resource.search_fields,
        sort_field=sort_field,
        sort_direction="desc" if desc else "asc",
        page_size=per_page,
    )
    table.set_search(search)
    for field, values in conditions.items():
        table.set_filter(field, MultiSelect(field, frozenset(values)))
    table.set_page(page)
    view = table.view(result.items)

    if not view.items:
        click.echo(f"No {resource.name} found.")
        return

    columns = ("id",) + resource.search_fields
    click.echo(f"\nFound {view.total_items} of {len(result.items)} {resource.name}:")
    click.echo("-" * (24 * len(columns)))
    click.echo(" ".join(f"{column:<23}" for column in columns))
    click.echo("-" * (24 * len(columns)))
    for record in view.items:
        click.echo(" ".join(f"{truncate(record.get(column), 23):<23}" for column in columns))
    echo_page_footer(view)


def register_commands(cli):
    """Register listing command with main CLI."""
    cli.add_command(list_records)
