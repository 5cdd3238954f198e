"""Wire codec, socket transport, server loop and multiplexing client."""

from __future__ import annotations

from typedrpc.ipc.client import PendingCall, RPCClient
from typedrpc.ipc.server import RPCServer
from typedrpc.ipc.transports import ServerHandle, UnixSocketTransport

__all__ = [
    "PendingCall",
    "RPCClient",
    "RPCServer",
    "ServerHandle",
    "UnixSocketTransport",
]
