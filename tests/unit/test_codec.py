"""Tests for the line codec."""

from __future__ import annotations

import json
import math

import pytest
from hypothesis import given
from hypothesis import strategies as st

from typedrpc.errors import ProtocolError
from typedrpc.ipc.codec import (
    decode_params,
    decode_request,
    decode_response,
    decode_value,
    encode_params,
    encode_request,
    encode_response,
    encode_value,
    format_double,
)
from typedrpc.types import Request, Response, TypedValue, TypeTag

pytestmark = pytest.mark.unit

typed_values = st.one_of(
    st.integers().map(lambda v: TypedValue(TypeTag.INT, v)),
    st.floats(allow_nan=False).map(lambda v: TypedValue(TypeTag.DOUBLE, v)),
    st.text().map(lambda v: TypedValue(TypeTag.STRING, v)),
    st.booleans().map(lambda v: TypedValue(TypeTag.BOOL, v)),
    st.lists(st.text(), max_size=8).map(lambda v: TypedValue(TypeTag.STRING_ARRAY, v)),
)
call_ids = st.one_of(st.integers(min_value=0), st.text(min_size=1, max_size=16))


class TestValueText:
    @given(typed_values)
    def test_value_round_trip(self, value: TypedValue) -> None:
        assert decode_value(value.tag, encode_value(value)) == value

    @given(st.lists(typed_values, max_size=6))
    def test_params_round_trip(self, values: list[TypedValue]) -> None:
        params, param_types = encode_params(values)
        wire = json.loads(json.dumps({"params": params, "param_types": param_types}))
        assert decode_params(wire["params"], wire["param_types"]) == tuple(values)

    @pytest.mark.parametrize(
        ("value", "text"),
        [
            (3.0, "3.0"),
            (-4.0, "-4.0"),
            (0.5, "0.5"),
            (-0.0, "-0.0"),
            (1e16, "10000000000000000.0"),
            (1e-7, "0.0000001"),
            (math.inf, "Infinity"),
            (-math.inf, "-Infinity"),
            (math.nan, "NaN"),
        ],
    )
    def test_double_text_always_has_a_fraction(self, value: float, text: str) -> None:
        assert format_double(value) == text

    @given(st.floats(allow_nan=False, allow_infinity=False))
    def test_finite_double_text_is_positional(self, value: float) -> None:
        text = format_double(value)
        assert "." in text
        assert "e" not in text.lower()
        assert float(text) == value

    def test_int_renders_as_plain_decimal(self) -> None:
        assert encode_value(TypedValue(TypeTag.INT, -4)) == "-4"

    def test_bool_and_array_text(self) -> None:
        assert encode_value(TypedValue(TypeTag.BOOL, True)) == "true"
        array = TypedValue(TypeTag.STRING_ARRAY, ["apple", "ünï"])
        assert encode_value(array) == '["apple","ünï"]'

    def test_decode_accepts_exponent_doubles(self) -> None:
        assert decode_value("double", "1e3") == TypedValue(TypeTag.DOUBLE, 1000.0)
        assert decode_value("double", "3") == TypedValue(TypeTag.DOUBLE, 3.0)

    @pytest.mark.parametrize(
        ("tag", "text"),
        [
            ("int", "3.0"),
            ("int", "1_000"),
            ("int", " 3"),
            ("double", "three"),
            ("double", "1_0.0"),
            ("bool", "True"),
            ("string[]", '["a", 1]'),
            ("string[]", "not json"),
            ("string[]", '{"a": "b"}'),
            ("float", "1.0"),
        ],
    )
    def test_decode_rejects_invalid_text(self, tag: str, text: str) -> None:
        with pytest.raises(ProtocolError):
            decode_value(tag, text)


class TestParams:
    def test_length_mismatch_is_protocol_error(self) -> None:
        with pytest.raises(ProtocolError, match="param_types"):
            decode_params([1, 2], ["int"])

    def test_unknown_tag_is_protocol_error(self) -> None:
        with pytest.raises(ProtocolError, match="Unknown type tag"):
            decode_params([1], ["integer"])

    def test_value_contradicting_tag_is_protocol_error(self) -> None:
        with pytest.raises(ProtocolError, match="Parameter 0"):
            decode_params(["3"], ["int"])

    def test_json_integer_is_accepted_for_double(self) -> None:
        assert decode_params([3], ["double"]) == (TypedValue(TypeTag.DOUBLE, 3.0),)


class TestFrames:
    @given(st.lists(typed_values, max_size=4), call_ids)
    def test_request_round_trip(self, params: list[TypedValue], call_id: int | str) -> None:
        request = Request("sort", params, call_id)
        assert decode_request(encode_request(request)) == request

    @given(typed_values, call_ids)
    def test_success_response_round_trip(self, value: TypedValue, call_id: int | str) -> None:
        response = Response.success(call_id, value)
        assert decode_response(encode_response(response)) == response

    def test_error_response_round_trip(self) -> None:
        response = Response.failure(7, code=-32603, message="Internal error", data="boom")
        assert decode_response(encode_response(response)) == response

    def test_frames_are_single_lines(self) -> None:
        request = Request("reverse", [TypedValue(TypeTag.STRING, "a\nb")], 1)
        line = encode_request(request)
        assert line.endswith(b"\n")
        assert line.count(b"\n") == 1

    def test_request_wire_shape(self) -> None:
        request = Request(
            "nroot",
            [TypedValue(TypeTag.INT, 3), TypedValue(TypeTag.INT, 27)],
            1,
        )
        assert json.loads(encode_request(request)) == {
            "method": "nroot",
            "params": [3, 27],
            "param_types": ["int", "int"],
            "id": 1,
        }

    def test_success_response_wire_shape(self) -> None:
        response = Response.success(1, TypedValue(TypeTag.DOUBLE, 3.0))
        assert json.loads(encode_response(response)) == {
            "result": "3.0",
            "result_type": "double",
            "id": 1,
        }

    def test_error_response_omits_missing_data(self) -> None:
        response = Response.failure(2, code=-32601, message="Method not found")
        assert json.loads(encode_response(response)) == {
            "error": {"code": -32601, "message": "Method not found"},
            "id": 2,
        }

    @pytest.mark.parametrize(
        "raw",
        [
            b"not json\n",
            b"\xff\xfe\n",
            b"[1, 2]\n",
            b'{"params": [], "param_types": [], "id": 1}\n',
            b'{"method": "floor", "params": [1.5], "param_types": ["double"]}\n',
            b'{"method": "floor", "params": [1.5], "param_types": ["double"], "id": null}\n',
            b'{"method": "floor", "params": [1.5], "param_types": ["double"], "id": true}\n',
            b'{"method": "floor", "params": [1.5, 2.5], "param_types": ["double"], "id": 1}\n',
            b'{"method": "floor", "params": ['
            + b"9" * 400
            + b'], "param_types": ["double"], "id": 1}\n',
        ],
    )
    def test_malformed_requests(self, raw: bytes) -> None:
        with pytest.raises(ProtocolError):
            decode_request(raw)

    @pytest.mark.parametrize(
        "raw",
        [
            b'{"id": 1}\n',
            b'{"result": "1", "result_type": "int", "error": {"code": 1, "message": "x"},'
            b' "id": 1}\n',
            b'{"result": "1", "id": 1}\n',
            b'{"result": 1, "result_type": "int", "id": 1}\n',
            b'{"result": "x", "result_type": "int", "id": 1}\n',
        ],
    )
    def test_malformed_responses(self, raw: bytes) -> None:
        with pytest.raises(ProtocolError):
            decode_response(raw)

    @pytest.mark.parametrize(
        "raw",
        [
            b'{"result":"x","result_type":"string","id":' + b"9" * 5000 + b"}\n",
            b"[" * 100_000 + b"]" * 100_000 + b"\n",
            b'{"result":"'
            + b"[" * 100_000
            + b"]" * 100_000
            + b'","result_type":"string[]","id":1}\n',
        ],
        ids=["oversized-int-id", "deep-nesting", "deeply-nested-array-result"],
    )
    def test_json_the_parser_refuses_is_protocol_error(self, raw: bytes) -> None:
        with pytest.raises(ProtocolError):
            decode_response(raw)
