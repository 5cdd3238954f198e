"""Error taxonomy shared by the codec, dispatcher, server and client.

Three severities exist:

* ``ProtocolError`` is connection-fatal (malformed frame, tag/value arity
  mismatch, a response for an id that was never issued).
* ``RPCError`` and its subclasses are request-scoped and travel back to the
  caller as a structured error response.
* ``BusinessError`` is raised by a handler for a domain failure and is
  reported to the caller as ``InternalError``.
"""

from __future__ import annotations

from enum import IntEnum


class ErrorCode(IntEnum):
    """Fixed wire error codes."""

    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


class RPCError(Exception):
    """Error raised by dispatch or received from the remote end."""

    default_code: int = ErrorCode.INTERNAL_ERROR
    default_message: str = "Internal error"

    def __init__(
        self,
        message: str | None = None,
        code: int | None = None,
        data: str | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.code = int(self.default_code if code is None else code)
        self.data = data
        super().__init__(f"[{self.code}] {self.message}")

    @staticmethod
    def from_payload(code: int, message: str, data: str | None = None) -> RPCError:
        """Build the matching subclass for a wire error payload."""
        cls = _ERROR_CLASSES.get(code, RPCError)
        return cls(message, code, data)


class MethodNotFoundError(RPCError):
    default_code = ErrorCode.METHOD_NOT_FOUND
    default_message = "Method not found"


class InvalidParamsError(RPCError):
    default_code = ErrorCode.INVALID_PARAMS
    default_message = "Invalid params"


class InternalError(RPCError):
    default_code = ErrorCode.INTERNAL_ERROR
    default_message = "Internal error"


_ERROR_CLASSES: dict[int, type[RPCError]] = {
    ErrorCode.METHOD_NOT_FOUND: MethodNotFoundError,
    ErrorCode.INVALID_PARAMS: InvalidParamsError,
    ErrorCode.INTERNAL_ERROR: InternalError,
}


class BusinessError(Exception):
    """Domain failure raised by a handler (e.g. an undefined root)."""


class ProtocolError(Exception):
    """Malformed or inconsistent frame; fatal to the connection."""


class ConnectionLost(ConnectionError):
    """The connection carrying a pending call went away."""


class CallTimeoutError(TimeoutError):
    """A pending call passed its deadline without a response."""

    def __init__(self, call_id: int | str, timeout: float) -> None:
        self.call_id = call_id
        self.timeout = timeout
        super().__init__(f"Call {call_id!r} timed out after {timeout:g}s")


class RegistrationConflictError(Exception):
    """A method name was registered twice."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Method already registered: {name}")


class SocketInUseError(OSError):
    """The socket path is owned by a live server."""


__all__ = [
    "BusinessError",
    "CallTimeoutError",
    "ConnectionLost",
    "ErrorCode",
    "InternalError",
    "InvalidParamsError",
    "MethodNotFoundError",
    "ProtocolError",
    "RPCError",
    "RegistrationConflictError",
    "SocketInUseError",
]
