"""CLI entry point for the voice inbox assistant."""

import logging

import click
from dotenv import load_dotenv

from voice_inbox.config import Settings

logger = logging.getLogger(__name__)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log at INFO level.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Voice inbox — tool catalog, dispatch, profiling, and servers."""
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )
    ctx.obj = Settings.from_env()


# Import and register commands after cli is defined to avoid circular imports.
from voice_inbox.cli.commands import bridge, call, mcp, profile, serve, tools  # noqa: E402

cli.add_command(tools)
cli.add_command(call)
cli.add_command(profile)
cli.add_command(serve)
cli.add_command(mcp)
cli.add_command(bridge)
