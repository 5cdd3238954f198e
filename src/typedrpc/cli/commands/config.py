"""Configuration file commands."""

from __future__ import annotations

import asyncio
from pathlib import Path

import click

from typedrpc.config import RPCConfig
from typedrpc.paths import get_config_path


@click.group()
def config() -> None:
    """Manage the typedrpc config file."""


@config.command()
@click.option("--force", is_flag=True, help="Overwrite an existing file.")
@click.option(
    "--path",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Where to write (defaults to the user config dir).",
)
def init(force: bool, config_path: Path | None) -> None:
    """Write a config file with the default settings."""
    path = config_path or get_config_path()
    if path.exists() and not force:
        msg = f"{path} already exists (use --force to overwrite)"
        raise click.ClickException(msg)
    asyncio.run(RPCConfig().save(path))
    click.secho(f"Wrote {path}", fg="green")


@config.command()
@click.option(
    "--path",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file to read.",
)
def show(config_path: Path | None) -> None:
    """Print the effective configuration as TOML."""
    click.echo(RPCConfig.load(config_path).to_toml(), nl=False)
