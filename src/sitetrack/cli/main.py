"""Main CLI entry point."""

import functools
import logging

import click

from sitetrack.client.factories import create_http_source, resolve_page_size

# Import and register all commands at module level
from sitetrack.cli.commands import (
    expenses,
    listing,
    materials,
    purchases,
    receipts,
    sites,
    usage,
)


@click.group()
@click.option(
    "--api-url",
    help="Dashboard API root (overrides SITETRACK_API_URL environment variable)",
    envvar="SITETRACK_API_URL",
)
@click.option(
    "--token",
    help="Bearer token for the API",
    envvar="SITETRACK_TOKEN",
)
@click.option(
    "--timeout",
    type=float,
    help="Per-request timeout in seconds",
    envvar="SITETRACK_TIMEOUT",
)
@click.option(
    "--page-size",
    type=click.IntRange(min=1),
    help="Items requested per page when loading listings",
    envvar="SITETRACK_PAGE_SIZE",
)
@click.option("--verbose", "-v", is_flag=True, help="Log requests and aggregation progress")
@click.pass_context
def cli(ctx, api_url: str | None, token: str | None, timeout: float | None, page_size: int | None, verbose: bool):
    """Sitetrack - Construction site dashboard reports.

    Load sites, materials, receipts, purchases and expenses from the
    dashboard API and summarize them from the command line.
    """
    ctx.ensure_object(dict)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    ctx.obj.setdefault("page_size", resolve_page_size(page_size))
    ctx.obj.setdefault(
        "source_factory",
        functools.partial(create_http_source, base_url=api_url, timeout=timeout, token=token),
    )


# Register all commands
listing.register_commands(cli)
receipts.register_commands(cli)
usage.register_commands(cli)
expenses.register_commands(cli)
sites.register_commands(cli)
materials.register_commands(cli)
purchases.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
