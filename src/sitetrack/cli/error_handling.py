"""CLI error handling helpers."""

import click

from sitetrack.domain.errors import DomainError, FetchError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    if isinstance(error, FetchError) and error.status is not None:
        click.echo(f"Error: {error} (HTTP {error.status})", err=True)
    else:
        click.echo(f"Error: {error}", err=True)
    ctx.exit(1)
