"""Issue a single call against a running server."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import click

from typedrpc.config import RPCConfig
from typedrpc.errors import CallTimeoutError, ConnectionLost, ProtocolError, RPCError
from typedrpc.ipc.client import RPCClient
from typedrpc.ipc.codec import decode_value, encode_value
from typedrpc.types import TypedValue, TypeTag


def _infer_arg(text: str) -> TypedValue:
    """Read *text* as a JSON literal when it is one, else as a plain string."""
    try:
        parsed: Any = json.loads(text)
    except json.JSONDecodeError:
        return TypedValue(TypeTag.STRING, text)
    try:
        return TypedValue.infer(parsed)
    except TypeError:
        return TypedValue(TypeTag.STRING, text)


def parse_args(args: tuple[str, ...], types: tuple[str, ...]) -> list[TypedValue]:
    """Turn command-line arguments into typed parameters.

    Raises:
        click.UsageError: Tags were given but do not line up with the arguments,
            or an argument is not valid for its tag.
    """
    if not types:
        return [_infer_arg(arg) for arg in args]
    if len(types) != len(args):
        msg = f"Got {len(args)} argument(s) but {len(types)} --type tag(s)"
        raise click.UsageError(msg)
    try:
        return [decode_value(tag, arg) for tag, arg in zip(types, args, strict=True)]
    except ProtocolError as exc:
        raise click.UsageError(str(exc)) from exc


async def _call(
    socket_path: str,
    method: str,
    params: list[TypedValue],
    timeout: float,
) -> TypedValue:
    async with RPCClient(socket_path, timeout=timeout) as client:
        return await client.call(method, *params)


@click.command()
@click.argument("method")
@click.argument("args", nargs=-1)
@click.option(
    "--type",
    "-t",
    "types",
    multiple=True,
    type=click.Choice([tag.value for tag in TypeTag]),
    help="Type tag for each argument, in order. Inferred when omitted.",
)
@click.option("--timeout", type=float, default=None, help="Seconds to wait for the response.")
@click.option(
    "--socket",
    "socket_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Socket path (overrides [client].socket_path).",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config.toml.",
)
def call(
    method: str,
    args: tuple[str, ...],
    types: tuple[str, ...],
    timeout: float | None,
    socket_path: str | None,
    config_path: Path | None,
) -> None:
    """Call METHOD with ARGS and print the result."""
    config = RPCConfig.load(config_path)
    params = parse_args(args, types)
    path = socket_path or config.client.socket_path
    effective_timeout = config.client.call_timeout_seconds if timeout is None else timeout

    try:
        result = asyncio.run(_call(path, method, params, effective_timeout))
    except RPCError as exc:
        detail = f" ({exc.data})" if exc.data else ""
        click.secho(f"Error {exc.code}: {exc.message}{detail}", fg="red", err=True)
        sys.exit(1)
    except CallTimeoutError as exc:
        raise click.ClickException(str(exc)) from exc
    except (ConnectionLost, OSError) as exc:
        msg = f"Cannot reach server at {path}: {exc}"
        raise click.ClickException(msg) from exc

    click.echo(encode_value(result))
