"""Wire frame schemas for requests and responses.

These models describe the split-array JSON form that travels over the socket.
Everything above the codec works with ``Request``/``Response`` and
``TypedValue`` sequences instead.
"""

from __future__ import annotations

from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, model_validator


class RequestFrame(BaseModel):
    """One request line: ``{method, params, param_types, id}``."""

    model_config = ConfigDict(extra="ignore")

    method: StrictStr = Field(description="Registered method name")
    params: list[Any] = Field(
        default_factory=list,
        description="Positional parameter values as native JSON values",
    )
    param_types: list[StrictStr] = Field(
        default_factory=list,
        description="Type tag for each entry of params, in the same order",
    )
    id: StrictInt | StrictStr = Field(description="Caller-chosen correlation id")


class ErrorFrame(BaseModel):
    """Structured error inside a ``ResponseFrame``."""

    code: StrictInt = Field(description="Error code from the fixed taxonomy")
    message: StrictStr = Field(description="Human-readable error description")
    data: StrictStr | None = Field(
        default=None,
        description="Optional diagnostic detail",
    )


class ResponseFrame(BaseModel):
    """One response line.

    Exactly one of ``result`` (with its ``result_type``) or ``error`` is set.
    ``result`` is always the canonical text rendering of the value.
    """

    model_config = ConfigDict(extra="ignore")

    result: StrictStr | None = Field(default=None, description="Result in canonical text form")
    result_type: StrictStr | None = Field(default=None, description="Type tag of result")
    error: ErrorFrame | None = Field(default=None, description="Error detail on failure")
    id: StrictInt | StrictStr = Field(description="Echoed id of the originating request")

    @model_validator(mode="after")
    def _check_outcome(self) -> Self:
        if (self.result is None) == (self.error is None):
            msg = "exactly one of result or error is required"
            raise ValueError(msg)
        if (self.result is None) != (self.result_type is None):
            msg = "result and result_type must be sent together"
            raise ValueError(msg)
        return self


__all__ = ["ErrorFrame", "RequestFrame", "ResponseFrame"]
