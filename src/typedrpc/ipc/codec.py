"""Line codec for typed requests and responses.

Request parameters travel as native JSON values next to a parallel list of
type tags. Response results always travel as canonical text, so a ``double``
result of three is sent as ``"3.0"`` and an ``int`` as ``"3"``.
"""

from __future__ import annotations

import json
import math
import re
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from typedrpc.errors import ProtocolError
from typedrpc.ipc.constants import FRAME_DELIMITER
from typedrpc.ipc.contracts import ErrorFrame, RequestFrame, ResponseFrame
from typedrpc.types import Request, Response, TypedValue, TypeTag

if TYPE_CHECKING:
    from collections.abc import Sequence

_INT_TEXT = re.compile(r"-?[0-9]+")
_DOUBLE_TEXT = re.compile(r"[-+]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][-+]?[0-9]+)?")
_NON_FINITE = {"NaN": math.nan, "Infinity": math.inf, "-Infinity": -math.inf}


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------


def format_double(value: float) -> str:
    """Render *value* as positional decimal text that always has a fraction."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    text = format(Decimal(repr(value)), "f")
    if "." not in text:
        text += ".0"
    return text


def encode_value(value: TypedValue) -> str:
    """Render a typed value in its canonical text form."""
    match value.tag:
        case TypeTag.INT:
            return str(value.value)
        case TypeTag.DOUBLE:
            return format_double(value.value)  # type: ignore[arg-type]
        case TypeTag.STRING:
            return value.value  # type: ignore[return-value]
        case TypeTag.BOOL:
            return "true" if value.value else "false"
        case TypeTag.STRING_ARRAY:
            items = list(value.value)  # type: ignore[arg-type]
            return json.dumps(items, ensure_ascii=False, separators=(",", ":"))


def _parse_tag(tag: str) -> TypeTag:
    try:
        return TypeTag(tag)
    except ValueError:
        msg = f"Unknown type tag: {tag!r}"
        raise ProtocolError(msg) from None


def decode_value(tag: str | TypeTag, text: str) -> TypedValue:
    """Parse canonical text back into a typed value.

    Raises:
        ProtocolError: If *text* is not a valid rendering for *tag*.
    """
    type_tag = _parse_tag(tag)
    match type_tag:
        case TypeTag.INT:
            if not _INT_TEXT.fullmatch(text):
                msg = f"Invalid int text: {text!r}"
                raise ProtocolError(msg)
            try:
                return TypedValue(type_tag, int(text))
            except ValueError as exc:
                raise ProtocolError(str(exc)) from exc
        case TypeTag.DOUBLE:
            if text in _NON_FINITE:
                return TypedValue(type_tag, _NON_FINITE[text])
            if not _DOUBLE_TEXT.fullmatch(text):
                msg = f"Invalid double text: {text!r}"
                raise ProtocolError(msg)
            return TypedValue(type_tag, float(text))
        case TypeTag.STRING:
            return TypedValue(type_tag, text)
        case TypeTag.BOOL:
            if text not in ("true", "false"):
                msg = f"Invalid bool text: {text!r}"
                raise ProtocolError(msg)
            return TypedValue(type_tag, text == "true")
        case TypeTag.STRING_ARRAY:
            try:
                items = json.loads(text)
                return TypedValue(type_tag, items)
            except (ValueError, RecursionError, TypeError) as exc:
                msg = f"Invalid string[] text: {text!r}"
                raise ProtocolError(msg) from exc


def encode_param(value: TypedValue) -> Any:
    """Native JSON form of a request parameter."""
    if value.tag is TypeTag.STRING_ARRAY:
        return list(value.value)  # type: ignore[arg-type]
    return value.value


def encode_params(values: Sequence[TypedValue]) -> tuple[list[Any], list[str]]:
    """Split typed values into the parallel ``params``/``param_types`` lists."""
    return [encode_param(v) for v in values], [v.tag.value for v in values]


def decode_params(params: Sequence[Any], param_types: Sequence[str]) -> tuple[TypedValue, ...]:
    """Pair each positional value with its declared tag.

    Raises:
        ProtocolError: On a length mismatch, an unknown tag, or a value whose
            shape contradicts its own tag.
    """
    if len(params) != len(param_types):
        msg = f"params has {len(params)} values but param_types has {len(param_types)} tags"
        raise ProtocolError(msg)
    decoded: list[TypedValue] = []
    for position, (raw, tag) in enumerate(zip(params, param_types, strict=True)):
        type_tag = _parse_tag(tag)
        try:
            decoded.append(TypedValue(type_tag, raw))
        except TypeError as exc:
            msg = f"Parameter {position} does not match its tag {tag!r}"
            raise ProtocolError(msg) from exc
    return tuple(decoded)


# ---------------------------------------------------------------------------
# Frames
# ---------------------------------------------------------------------------


def _load_object(raw: bytes | str) -> dict[str, Any]:
    try:
        line = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        data = json.loads(line)
    except (ValueError, RecursionError) as exc:
        msg = "Frame is not valid JSON"
        raise ProtocolError(msg) from exc
    if not isinstance(data, dict):
        msg = f"Frame must be a JSON object, got {type(data).__name__}"
        raise ProtocolError(msg)
    return data


def _dump_line(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode() + FRAME_DELIMITER


def encode_request(request: Request) -> bytes:
    """Serialise a request as one newline-terminated JSON line."""
    params, param_types = encode_params(request.params)
    frame = RequestFrame(
        method=request.method,
        params=params,
        param_types=param_types,
        id=request.id,
    )
    return _dump_line(frame.model_dump())


def decode_request(raw: bytes | str) -> Request:
    """Parse one request line.

    Raises:
        ProtocolError: If the line is not a well-formed request frame.
    """
    data = _load_object(raw)
    try:
        frame = RequestFrame.model_validate(data)
    except ValidationError as exc:
        msg = f"Malformed request frame: {exc.error_count()} validation error(s)"
        raise ProtocolError(msg) from exc
    params = decode_params(frame.params, frame.param_types)
    return Request(method=frame.method, params=params, id=frame.id)


def encode_response(response: Response) -> bytes:
    """Serialise a response as one newline-terminated JSON line."""
    if response.result is not None:
        frame = ResponseFrame(
            result=encode_value(response.result),
            result_type=response.result.tag.value,
            id=response.id,
        )
    else:
        assert response.error is not None
        frame = ResponseFrame(
            error=ErrorFrame(
                code=response.error.code,
                message=response.error.message,
                data=response.error.data,
            ),
            id=response.id,
        )
    return _dump_line(frame.model_dump(exclude_none=True))


def decode_response(raw: bytes | str) -> Response:
    """Parse one response line.

    Raises:
        ProtocolError: If the line is not a well-formed response frame.
    """
    data = _load_object(raw)
    try:
        frame = ResponseFrame.model_validate(data)
    except ValidationError as exc:
        msg = f"Malformed response frame: {exc.error_count()} validation error(s)"
        raise ProtocolError(msg) from exc
    if frame.error is not None:
        return Response.failure(
            frame.id,
            code=frame.error.code,
            message=frame.error.message,
            data=frame.error.data,
        )
    assert frame.result is not None and frame.result_type is not None
    return Response.success(frame.id, decode_value(frame.result_type, frame.result))


__all__ = [
    "decode_params",
    "decode_request",
    "decode_response",
    "decode_value",
    "encode_param",
    "encode_params",
    "encode_request",
    "encode_response",
    "encode_value",
    "format_double",
]
