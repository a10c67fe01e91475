"""Run async listing work from synchronous click commands."""

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

import click

from sitetrack.client.base import ListingSource
from sitetrack.domain.errors import DomainError
from sitetrack.cli.error_handling import handle_domain_error

T = TypeVar("T")


def run_with_source(ctx: click.Context, work: Callable[[ListingSource], Awaitable[T]]) -> T:
    """Open a listing source, run ``work`` against it and close it.

    Domain errors (including failed fetches) are reported and end the
    command with exit code 1.
    """
    factory = ctx.obj["source_factory"]

    async def runner() -> Any:
        async with factory() as source:
            return await work(source)

    try:
        return asyncio.run(runner())
    except DomainError as e:
        handle_domain_error(ctx, e)
