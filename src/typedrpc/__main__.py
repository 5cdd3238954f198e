"""CLI entry point for typedrpc."""

from __future__ import annotations

import click

from typedrpc import __version__
from typedrpc.cli.commands.call import call
from typedrpc.cli.commands.config import config
from typedrpc.cli.commands.serve import serve


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version and exit")
@click.pass_context
def cli(ctx: click.Context, version: bool) -> None:
    """Typed RPC over a Unix domain socket."""
    if version:
        click.echo(f"typedrpc {__version__}")
        ctx.exit(0)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


cli.add_command(serve)
cli.add_command(call)
cli.add_command(config)


if __name__ == "__main__":
    cli()
