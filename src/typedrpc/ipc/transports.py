"""Unix domain socket transport for typedrpc.

The server binds a well-known filesystem path. A leftover socket file from a
crashed server is removed and rebound; a path that a live server still
answers on is refused.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import platform
import stat
from dataclasses import dataclass
from typing import TYPE_CHECKING

from filelock import FileLock, Timeout

from typedrpc.errors import SocketInUseError
from typedrpc.ipc.constants import STREAM_LIMIT_BYTES
from typedrpc.paths import get_default_socket_path, get_socket_lock_path

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine
    from typing import Any

    ClientHandler = Callable[
        [asyncio.StreamReader, asyncio.StreamWriter],
        Coroutine[Any, Any, None],
    ]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServerHandle:
    """A bound listener.

    Attributes:
        address: The socket path the server listens on.
        close: Async callable that stops listening and frees the path.
    """

    address: str
    close: Callable[[], Coroutine[Any, Any, None]] | None = None


async def is_listening(path: str) -> bool:
    """Return whether a live server accepts connections on *path*."""
    try:
        _reader, writer = await asyncio.open_unix_connection(path)
    except (ConnectionRefusedError, FileNotFoundError):
        return False
    writer.close()
    with contextlib.suppress(ConnectionError, OSError):
        await writer.wait_closed()
    return True


class UnixSocketTransport:
    """Binds and dials the RPC socket path.

    POSIX only; constructing one on Windows raises ``NotImplementedError``.
    """

    def __init__(self, path: str | None = None, *, limit: int = STREAM_LIMIT_BYTES) -> None:
        if platform.system() == "Windows":
            msg = "Unix sockets are not supported on Windows"
            raise NotImplementedError(msg)
        self._path = path or get_default_socket_path()
        self._limit = limit

    @property
    def path(self) -> str:
        return self._path

    async def start_server(
        self,
        handler: ClientHandler,
    ) -> ServerHandle:
        """Bind a Unix socket server at the configured path.

        A lock file next to the socket is held for the server's lifetime.

        Raises:
            SocketInUseError: Another server owns the path.
            FileExistsError: The path exists and is not a socket.
        """
        lock_path = get_socket_lock_path(self._path)
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        lock = FileLock(str(lock_path), blocking=False)
        try:
            lock.acquire(timeout=0)
        except Timeout:
            msg = f"Socket {self._path} is owned by another server (lock {lock_path} is held)"
            raise SocketInUseError(msg) from None

        try:
            await self._reclaim_path()
            server = await asyncio.start_unix_server(handler, path=self._path, limit=self._limit)
        except BaseException:
            lock.release()
            raise

        os.chmod(self._path, 0o600)
        logger.info("Unix socket server listening on %s", self._path)

        async def _close() -> None:
            server.close()
            await server.wait_closed()
            with contextlib.suppress(FileNotFoundError):
                os.unlink(self._path)
            lock.release()
            with contextlib.suppress(OSError):
                lock_path.unlink(missing_ok=True)
            logger.info("Released socket %s", self._path)

        return ServerHandle(address=self._path, close=_close)

    async def _reclaim_path(self) -> None:
        try:
            mode = os.lstat(self._path).st_mode
        except FileNotFoundError:
            parent = os.path.dirname(self._path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            return

        if not stat.S_ISSOCK(mode):
            msg = f"{self._path} exists and is not a socket"
            raise FileExistsError(msg)
        if await is_listening(self._path):
            msg = f"Socket {self._path} is already served by a live listener"
            raise SocketInUseError(msg)

        logger.warning("Removing stale socket %s", self._path)
        with contextlib.suppress(FileNotFoundError):
            os.unlink(self._path)

    async def connect(
        self,
        address: str | None = None,
    ) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        """Dial *address*, or the configured path when omitted."""
        path = address or self._path
        reader, writer = await asyncio.open_unix_connection(path, limit=self._limit)
        logger.debug("Connected to Unix socket at %s", path)
        return reader, writer


__all__ = [
    "ServerHandle",
    "UnixSocketTransport",
    "is_listening",
]
