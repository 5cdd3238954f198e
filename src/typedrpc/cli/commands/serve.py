"""Run the RPC server."""

from __future__ import annotations

import asyncio
import logging
import signal
from pathlib import Path

import click

from typedrpc.config import LoggingConfig, RPCConfig
from typedrpc.dispatch import Dispatcher, build_default_registry
from typedrpc.errors import SocketInUseError
from typedrpc.ipc.server import RPCServer
from typedrpc.log import setup_logging

logger = logging.getLogger(__name__)


async def _serve(server: RPCServer) -> None:
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, server.request_stop)
    await server.serve_forever()


@click.command()
@click.option(
    "--socket",
    "socket_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Socket path (overrides [server].socket_path).",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config.toml.",
)
@click.option("--log-level", default=None, help="Log level (overrides [logging].level).")
def serve(socket_path: str | None, config_path: Path | None, log_level: str | None) -> None:
    """Serve the built-in methods on a Unix domain socket."""
    config = RPCConfig.load(config_path)
    level = config.logging.level if log_level is None else LoggingConfig(level=log_level).level
    setup_logging(level)

    registry = build_default_registry(config.methods.anagram.to_options())
    server = RPCServer(
        Dispatcher(registry),
        socket_path=socket_path or config.server.socket_path,
    )
    try:
        asyncio.run(_serve(server))
    except SocketInUseError as exc:
        raise click.ClickException(str(exc)) from exc
    except FileExistsError as exc:
        raise click.ClickException(str(exc)) from exc
    except KeyboardInterrupt:
        logger.info("Server interrupted")
