"""Multiplexing RPC client over one persistent Unix socket connection."""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import logging
from typing import TYPE_CHECKING, Any

from typedrpc.config import ReconnectConfig
from typedrpc.errors import CallTimeoutError, ConnectionLost, ProtocolError, RPCError
from typedrpc.ipc.codec import decode_response, encode_request
from typedrpc.ipc.transports import UnixSocketTransport
from typedrpc.types import Request, TypedValue

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from typedrpc.types import CallId, Response

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 30.0


class PendingCall:
    """An outstanding call waiting for its response.

    The future resolves with the result ``TypedValue`` or fails with an
    ``RPCError`` subclass, ``CallTimeoutError`` or ``ConnectionLost``.
    """

    def __init__(
        self,
        call_id: int,
        method: str,
        params: tuple[TypedValue, ...],
        *,
        timeout: float,
    ) -> None:
        loop = asyncio.get_running_loop()
        self.id = call_id
        self.method = method
        self.params = params
        self.timeout = timeout
        self.deadline = loop.time() + timeout
        self.future: asyncio.Future[TypedValue] = loop.create_future()
        self._timer: asyncio.TimerHandle | None = None

    @property
    def done(self) -> bool:
        return self.future.done()

    def as_request(self) -> Request:
        return Request(method=self.method, params=self.params, id=self.id)

    def resolve(self, result: TypedValue) -> None:
        self._cancel_timer()
        if not self.future.done():
            self.future.set_result(result)

    def reject(self, exc: BaseException) -> None:
        self._cancel_timer()
        if not self.future.done():
            self.future.set_exception(exc)
            # Callers that already gave up never retrieve the exception.
            self.future.exception()

    def cancel(self) -> bool:
        """Abandon the call; the server is not told."""
        self._cancel_timer()
        return self.future.cancel()

    async def wait(self) -> TypedValue:
        """Wait for the response."""
        return await self.future

    def _arm_timer(self, on_expire: Callable[[PendingCall], None]) -> None:
        loop = asyncio.get_running_loop()
        self._timer = loop.call_at(self.deadline, on_expire, self)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


class RPCClient:
    """Async client that pipelines calls over a single connection.

    Every call gets a fresh integer id. One reader task matches responses to
    pending calls by id, so responses may arrive in any order. A response
    whose id was never issued is treated as a protocol violation: the
    connection is dropped and every pending call fails with
    ``ConnectionLost``.

    Usage::

        async with RPCClient("/tmp/rpc.sock") as client:
            result = await client.call("floor", 3.7)
            assert result.value == 3
    """

    def __init__(
        self,
        socket_path: str | None = None,
        *,
        transport: UnixSocketTransport | None = None,
        timeout: float = _DEFAULT_TIMEOUT,
        reconnect: ReconnectConfig | None = None,
    ) -> None:
        self._transport = transport or UnixSocketTransport(path=socket_path)
        self._timeout = timeout
        self._reconnect = reconnect or ReconnectConfig(enabled=False)
        self._ids = itertools.count(1)
        self._pending: dict[CallId, PendingCall] = {}
        self._abandoned: set[CallId] = set()
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._read_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._write_lock = asyncio.Lock()
        self._closing = False

    async def __aenter__(self) -> RPCClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    @property
    def is_connected(self) -> bool:
        """Whether the client currently holds an open connection."""
        return self._writer is not None and not self._writer.is_closing()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def connect(self) -> None:
        """Open the connection and start the reader task."""
        if self.is_connected:
            return
        self._closing = False
        self._reader, self._writer = await self._transport.connect()
        self._read_task = asyncio.create_task(self._read_loop(self._reader, self._writer))
        logger.debug("RPC client connected to %s", self._transport.path)

    async def close(self) -> None:
        """Close the connection; pending calls fail with ``ConnectionLost``."""
        self._closing = True
        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reconnect_task
            self._reconnect_task = None
        await self._drop_connection(ConnectionLost("Client closed"))
        logger.debug("RPC client disconnected")

    async def submit(
        self,
        method: str,
        params: Iterable[Any] = (),
        *,
        timeout: float | None = None,
    ) -> PendingCall:
        """Send a call and return its pending handle without waiting.

        Raises:
            ConnectionLost: If the client is not connected.
        """
        if not self.is_connected or self._writer is None:
            msg = "Client is not connected"
            raise ConnectionLost(msg)

        typed = tuple(TypedValue.infer(p) for p in params)
        call = PendingCall(
            next(self._ids),
            method,
            typed,
            timeout=self._timeout if timeout is None else timeout,
        )
        self._pending[call.id] = call
        call.future.add_done_callback(lambda _f, cid=call.id: self._forget(cid))
        call._arm_timer(self._expire)

        writer = self._writer
        line = encode_request(call.as_request())
        try:
            async with self._write_lock:
                writer.write(line)
                await writer.drain()
        except (ConnectionError, OSError) as exc:
            await self._connection_lost(exc, writer)
        return call

    async def call(
        self,
        method: str,
        *params: Any,
        timeout: float | None = None,
    ) -> TypedValue:
        """Send a call and wait for its typed result.

        Raises:
            RPCError: The server answered with an error.
            CallTimeoutError: No response before the deadline.
            ConnectionLost: The connection went away first.
        """
        pending = await self.submit(method, params, timeout=timeout)
        return await pending.wait()

    def _forget(self, call_id: CallId) -> None:
        # Only cancelled calls are still in the table when their future completes.
        call = self._pending.pop(call_id, None)
        if call is not None:
            self._abandoned.add(call_id)

    def _expire(self, call: PendingCall) -> None:
        if self._pending.pop(call.id, None) is None:
            return
        self._abandoned.add(call.id)
        logger.debug("Call %r (%s) timed out after %gs", call.id, call.method, call.timeout)
        call.reject(CallTimeoutError(call.id, call.timeout))

    async def _read_loop(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        try:
            while True:
                try:
                    raw = await reader.readline()
                except ValueError as exc:
                    msg = "Response exceeded stream framing limit"
                    raise ProtocolError(msg) from exc
                if not raw:
                    lost = ConnectionLost("Connection closed by server")
                    await self._connection_lost(lost, writer)
                    return
                if not raw.strip():
                    continue
                self._deliver(decode_response(raw))
        except ProtocolError as exc:
            logger.warning("Protocol violation from server: %s; dropping connection", exc)
            await self._connection_lost(exc, writer)
        except (ConnectionError, OSError) as exc:
            await self._connection_lost(exc, writer)

    def _deliver(self, response: Response) -> None:
        """Hand *response* to the pending call with the same id.

        Raises:
            ProtocolError: No call with that id was ever issued, or it has
                already been answered.
        """
        call = self._pending.pop(response.id, None)
        if call is None:
            if response.id in self._abandoned:
                self._abandoned.discard(response.id)
                logger.debug("Dropping late response for abandoned call %r", response.id)
                return
            msg = f"Response for unknown call id {response.id!r}"
            raise ProtocolError(msg)

        if response.error is not None:
            err = response.error
            call.reject(RPCError.from_payload(err.code, err.message, err.data))
        else:
            assert response.result is not None
            call.resolve(response.result)

    async def _connection_lost(
        self,
        cause: BaseException,
        writer: asyncio.StreamWriter | None,
    ) -> None:
        if writer is not self._writer:
            return  # Already replaced by a newer connection.
        if isinstance(cause, ConnectionLost):
            exc = cause
        else:
            exc = ConnectionLost(str(cause) or type(cause).__name__)
            exc.__cause__ = cause
        await self._drop_connection(exc)
        if not self._closing and self._reconnect.enabled and self._reconnect_task is None:
            self._reconnect_task = asyncio.create_task(self._reconnect_loop())

    async def _drop_connection(self, exc: ConnectionLost) -> None:
        writer = self._writer
        read_task = self._read_task
        self._reader = None
        self._writer = None
        self._read_task = None

        pending = list(self._pending.values())
        self._pending.clear()
        self._abandoned.clear()
        for call in pending:
            call.reject(exc)
        if pending:
            logger.debug("Rejected %d pending call(s): %s", len(pending), exc)

        if read_task is not None and read_task is not asyncio.current_task():
            read_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await read_task
        if writer is not None:
            writer.close()
            with contextlib.suppress(ConnectionError, OSError):
                await writer.wait_closed()

    async def _reconnect_loop(self) -> None:
        policy = self._reconnect
        delay = policy.initial_delay
        try:
            for attempt in range(1, policy.max_attempts + 1):
                await asyncio.sleep(delay)
                try:
                    await self.connect()
                except OSError as exc:
                    logger.debug("Reconnect attempt %d failed: %s", attempt, exc)
                    delay = min(delay * policy.multiplier, policy.max_delay)
                    continue
                logger.info("Reconnected to %s after %d attempt(s)", self._transport.path, attempt)
                return
            logger.warning(
                "Giving up on %s after %d reconnect attempt(s)",
                self._transport.path,
                policy.max_attempts,
            )
        finally:
            self._reconnect_task = None


__all__ = ["PendingCall", "RPCClient"]
