from __future__ import annotations

import logging
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .base import JSON
from ..utilities import format_json

logger = logging.getLogger(__name__)


class FunctionRequest(BaseModel, extra="ignore"):
    """A model-issued intent to call a named function."""

    id: str = Field(description="Provider id of the function call item")
    call_id: str = Field(description="Id the provider expects on the matching function output")
    function_name: str = Field(description="Name of the requested function", min_length=1)
    function_args: str = Field(default="{}", description="JSON-encoded function arguments")

    def __repr__(self):
        return format_json(self.model_dump())


class FunctionResult(BaseModel):
    """Tool output replayed to the provider on a follow-up request."""

    call_id: str
    output: JSON


class FunctionToolCall(BaseModel):
    """Pairs a FunctionRequest with the outcome of executing it."""

    provider_id: str
    provider_call_id: str
    function_name: str
    function_arguments: JSON = Field(description="Decoded arguments, or the raw payload when it could not be decoded")
    function_result: JSON = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def from_function_request(
        cls,
        function_request: FunctionRequest,
        result: JSON = None,
        *,
        arguments: JSON = None,
        error: str | None = None,
    ) -> FunctionToolCall:
        return cls(
            provider_id=function_request.id,
            provider_call_id=function_request.call_id,
            function_name=function_request.function_name,
            function_arguments=function_request.function_args if arguments is None else arguments,
            function_result=result,
            error=error,
        )

    def to_result(self) -> FunctionResult:
        output = {"error": self.error} if self.error is not None else self.function_result
        return FunctionResult(call_id=self.provider_call_id, output=output)

    def __repr__(self):
        return format_json(self.model_dump())


class FunctionDefinition(BaseModel):
    """The published shape of a function, sent verbatim to the provider."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    description: str
    params_schema: dict[str, Any]
    strict: bool


class LlmResponse(BaseModel):
    """A complete provider response."""

    id: str = Field(description="Continuation token for follow-up requests")
    model: str | None = None
    output_text: str = ""
    function_requests: list[FunctionRequest] = Field(default_factory=list)


class StreamChunk(BaseModel):
    """A typed chunk emitted to a streamer while a provider call runs.

    ``output_text`` chunks carry incremental text; exactly one ``response`` chunk carries the full response.
    """

    type: Literal["output_text", "response"]
    data: Union[str, LlmResponse]
    usage: dict[str, Any] | None = None
