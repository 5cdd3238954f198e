"""Tagged values and the request/response envelopes built from them."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, TypeAlias


class TypeTag(StrEnum):
    """Wire type tags."""

    INT = "int"
    DOUBLE = "double"
    STRING = "string"
    BOOL = "bool"
    STRING_ARRAY = "string[]"


Scalar: TypeAlias = int | float | str | bool
Payload: TypeAlias = Scalar | tuple[str, ...]
CallId: TypeAlias = int | str


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True, slots=True)
class TypedValue:
    """A payload paired with its type tag.

    The payload is normalised on construction: ``double`` accepts an ``int``
    and stores a ``float``; ``string[]`` accepts any sequence of ``str`` and
    stores a tuple. A payload whose shape contradicts the tag raises
    ``TypeError``.
    """

    tag: TypeTag
    value: Payload

    def __post_init__(self) -> None:
        tag = TypeTag(self.tag)
        object.__setattr__(self, "tag", tag)
        value = self.value
        match tag:
            case TypeTag.INT if _is_int(value):
                return
            case TypeTag.DOUBLE if isinstance(value, float):
                return
            case TypeTag.DOUBLE if _is_int(value):
                try:
                    as_float = float(value)
                except OverflowError as exc:
                    msg = f"int payload is out of range for tag {tag.value!r}"
                    raise TypeError(msg) from exc
                object.__setattr__(self, "value", as_float)
                return
            case TypeTag.STRING if isinstance(value, str):
                return
            case TypeTag.BOOL if isinstance(value, bool):
                return
            case TypeTag.STRING_ARRAY if isinstance(value, Sequence) and not isinstance(
                value, str
            ):
                items = tuple(value)
                if all(isinstance(item, str) for item in items):
                    object.__setattr__(self, "value", items)
                    return
        msg = f"{type(value).__name__} payload does not match tag {tag.value!r}"
        raise TypeError(msg)

    @classmethod
    def infer(cls, value: Any) -> TypedValue:
        """Pick a tag from the Python type of *value*."""
        if isinstance(value, TypedValue):
            return value
        if isinstance(value, bool):
            return cls(TypeTag.BOOL, value)
        if isinstance(value, int):
            return cls(TypeTag.INT, value)
        if isinstance(value, float):
            return cls(TypeTag.DOUBLE, value)
        if isinstance(value, str):
            return cls(TypeTag.STRING, value)
        if isinstance(value, (list, tuple)):
            return cls(TypeTag.STRING_ARRAY, value)
        msg = f"Cannot infer a type tag for {type(value).__name__}"
        raise TypeError(msg)


@dataclass(frozen=True, slots=True)
class ErrorInfo:
    """Structured error carried by a failed response."""

    code: int
    message: str
    data: str | None = None


@dataclass(frozen=True, slots=True)
class Request:
    method: str
    params: tuple[TypedValue, ...] = ()
    id: CallId = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", tuple(self.params))

    @property
    def signature(self) -> tuple[TypeTag, ...]:
        return tuple(param.tag for param in self.params)


@dataclass(frozen=True, slots=True)
class Response:
    """A reply to one request: exactly one of ``result`` or ``error``."""

    id: CallId
    result: TypedValue | None = field(default=None)
    error: ErrorInfo | None = field(default=None)

    def __post_init__(self) -> None:
        if (self.result is None) == (self.error is None):
            msg = "Response must carry exactly one of result or error"
            raise ValueError(msg)

    @property
    def ok(self) -> bool:
        return self.error is None

    @staticmethod
    def success(call_id: CallId, result: TypedValue) -> Response:
        return Response(id=call_id, result=result)

    @staticmethod
    def failure(
        call_id: CallId,
        *,
        code: int,
        message: str,
        data: str | None = None,
    ) -> Response:
        return Response(id=call_id, error=ErrorInfo(code=code, message=message, data=data))


__all__ = [
    "CallId",
    "ErrorInfo",
    "Payload",
    "Request",
    "Response",
    "TypeTag",
    "TypedValue",
]
