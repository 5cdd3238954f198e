"""IPC server that accepts connections and dispatches pipelined requests."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from typedrpc.errors import ProtocolError
from typedrpc.ipc.codec import decode_request, encode_response
from typedrpc.ipc.transports import UnixSocketTransport

if TYPE_CHECKING:
    from typedrpc.dispatch.dispatcher import Dispatcher
    from typedrpc.ipc.transports import ServerHandle
    from typedrpc.types import Request

logger = logging.getLogger(__name__)


class RPCServer:
    """Asynchronous RPC server.

    Every connection runs its own read loop. Each decoded request is handled
    in a separate task, so a client may pipeline requests and receive the
    responses in completion order; the id in each response tells them apart.
    A malformed frame closes only the connection it arrived on.

    Usage::

        server = RPCServer(Dispatcher(build_default_registry()), socket_path="/tmp/rpc.sock")
        await server.start()
        ...
        await server.stop()
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        *,
        transport: UnixSocketTransport | None = None,
        socket_path: str | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._transport = transport or UnixSocketTransport(path=socket_path)
        self._handle: ServerHandle | None = None
        self._connections: set[asyncio.Task[None]] = set()
        self._stopped = asyncio.Event()

    @property
    def handle(self) -> ServerHandle | None:
        """Listening handle; ``None`` until ``start()`` succeeds."""
        return self._handle

    @property
    def is_running(self) -> bool:
        """True between a successful ``start()`` and ``stop()``."""
        return self._handle is not None

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def start(self) -> ServerHandle:
        """Bind the socket and accept connections.

        Raises:
            SocketInUseError: The socket path is owned by a live server.
        """
        if self._handle is not None:
            msg = "Server is already running"
            raise RuntimeError(msg)

        self._stopped.clear()
        self._handle = await self._transport.start_server(self._client_connected)
        logger.info(
            "RPC server started: address=%s methods=%s",
            self._handle.address,
            ",".join(sorted(self._dispatcher.registry)),
        )
        return self._handle

    async def stop(self) -> None:
        """Close open connections and stop listening."""
        if self._handle is None:
            return
        connections = list(self._connections)
        for task in connections:
            task.cancel()
        await asyncio.gather(*connections, return_exceptions=True)
        if self._handle.close is not None:
            await self._handle.close()
        self._handle = None
        self._stopped.set()
        logger.info("RPC server stopped")

    async def serve_forever(self) -> None:
        """Start the server and block until ``stop()`` is called."""
        if self._handle is None:
            await self.start()
        try:
            await self._stopped.wait()
        finally:
            await self.stop()

    def request_stop(self) -> None:
        """Signal-handler friendly way to end ``serve_forever``."""
        self._stopped.set()

    async def _client_connected(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        """Read request lines from one peer until EOF or a framing error."""
        task = asyncio.current_task()
        if task is not None:
            self._connections.add(task)
        peer = writer.get_extra_info("peername") or "unix-client"
        logger.debug("Client connected: %s", peer)

        write_lock = asyncio.Lock()
        inflight: set[asyncio.Task[None]] = set()
        graceful = False
        try:
            while True:
                try:
                    raw = await reader.readline()
                except ValueError:
                    logger.warning("Oversized frame from %s; closing connection", peer)
                    break
                if not raw:
                    graceful = True
                    break  # Client disconnected
                if not raw.strip():
                    continue

                try:
                    request = decode_request(raw)
                except ProtocolError as exc:
                    logger.warning("Protocol error from %s: %s; closing connection", peer, exc)
                    break

                request_task = asyncio.create_task(self._respond(request, writer, write_lock))
                inflight.add(request_task)
                request_task.add_done_callback(inflight.discard)
        except (ConnectionError, OSError):
            logger.debug("Connection reset by %s", peer)
        finally:
            if graceful:
                await asyncio.gather(*inflight, return_exceptions=True)
            else:
                for request_task in inflight:
                    request_task.cancel()
                await asyncio.gather(*inflight, return_exceptions=True)
            if task is not None:
                self._connections.discard(task)
            writer.close()
            with contextlib.suppress(ConnectionError, OSError):
                await writer.wait_closed()
            logger.debug("Connection closed: %s", peer)

    async def _respond(
        self,
        request: Request,
        writer: asyncio.StreamWriter,
        write_lock: asyncio.Lock,
    ) -> None:
        response = self._dispatcher.dispatch(request)
        if response.error is not None:
            logger.debug(
                "Request %r to %s failed: [%d] %s",
                request.id,
                request.method,
                response.error.code,
                response.error.message,
            )
        try:
            await self._write_response(writer, write_lock, encode_response(response))
        except (ConnectionError, OSError):
            logger.debug("Could not deliver response %r; peer went away", request.id)

    @staticmethod
    async def _write_response(
        writer: asyncio.StreamWriter,
        write_lock: asyncio.Lock,
        payload: bytes,
    ) -> None:
        """Flush one whole response line; the lock keeps lines from interleaving."""
        async with write_lock:
            writer.write(payload)
            await writer.drain()


__all__ = ["RPCServer"]
