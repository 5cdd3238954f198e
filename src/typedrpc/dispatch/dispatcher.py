"""Validate a request against the registry and run it."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from typedrpc.errors import (
    BusinessError,
    InternalError,
    InvalidParamsError,
    MethodNotFoundError,
    RPCError,
)
from typedrpc.types import Request, Response, TypedValue

if TYPE_CHECKING:
    from typedrpc.dispatch.registry import HandlerDescriptor, Registry

logger = logging.getLogger(__name__)


def _format_signature(tags: tuple[object, ...]) -> str:
    return "(" + ", ".join(str(tag) for tag in tags) + ")"


class Dispatcher:
    """Turns a ``Request`` into a ``Response``.

    Request-scoped failures never escape ``dispatch``: unknown methods,
    signature mismatches and handler errors all come back as a failed
    ``Response`` carrying the matching error code.
    """

    def __init__(self, registry: Registry) -> None:
        self._registry = registry

    @property
    def registry(self) -> Registry:
        return self._registry

    def dispatch(self, request: Request) -> Response:
        try:
            result = self.invoke(request)
        except RPCError as exc:
            return Response.failure(request.id, code=exc.code, message=exc.message, data=exc.data)
        return Response.success(request.id, result)

    def invoke(self, request: Request) -> TypedValue:
        """Run *request* and return its typed result.

        Raises:
            MethodNotFoundError: The method is not registered.
            InvalidParamsError: Arity or tag mismatch, or the handler rejected
                its arguments.
            InternalError: The handler failed.
        """
        descriptor = self._registry.get(request.method)
        if descriptor is None:
            raise MethodNotFoundError(data=request.method)
        self._check_signature(descriptor, request)

        args = [param.value for param in request.params]
        try:
            value = descriptor(*args)
        except RPCError:
            raise
        except BusinessError as exc:
            raise InternalError(data=str(exc)) from exc
        except Exception as exc:
            logger.exception("Unhandled error in method %s", descriptor.name)
            raise InternalError(data=f"{type(exc).__name__}: {exc}") from exc

        try:
            return TypedValue(descriptor.returns, value)
        except TypeError as exc:
            logger.error("Method %s returned an invalid value: %s", descriptor.name, exc)
            raise InternalError(data=str(exc)) from exc

    @staticmethod
    def _check_signature(descriptor: HandlerDescriptor, request: Request) -> None:
        expected = descriptor.signature
        received = request.signature
        if len(received) != len(expected):
            msg = f"{descriptor.name} expects {len(expected)} params, got {len(received)}"
            raise InvalidParamsError(data=msg)
        if received != expected:
            msg = (
                f"{descriptor.name} expects {_format_signature(expected)}, "
                f"got {_format_signature(received)}"
            )
            raise InvalidParamsError(data=msg)


__all__ = ["Dispatcher"]
