"""LLM provider backed by the OpenAI Responses API.

The Responses API keeps conversation state server-side, so a follow-up request only carries the new
input (the user message, or function outputs) plus ``previous_response_id``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Sequence

import openai
from openai import OpenAI

from .base import Streamer
from ..core.exceptions import ProviderError
from ..types_.core import FunctionDefinition, FunctionRequest, FunctionResult, LlmResponse, StreamChunk

logger = logging.getLogger(__name__)

DEFAULT_MODEL_PREFIXES = ("gpt-4", "gpt-5", "o1", "o3", "o4")


class OpenAIProvider:
    """Serve OpenAI models through the Responses API, streaming when a streamer is given."""

    provider_name = "openai"

    def __init__(
        self,
        client: OpenAI | None = None,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        model_prefixes: Sequence[str] = DEFAULT_MODEL_PREFIXES,
    ):
        self.client = client or OpenAI(api_key=api_key, base_url=base_url)
        self.model_prefixes = tuple(model_prefixes)

    def supports_model(self, model: str) -> bool:
        return model.startswith(self.model_prefixes)

    @property
    def supported_models_description(self) -> str:
        return f"models starting with {', '.join(self.model_prefixes)}"

    def chat_response(
        self,
        message: str,
        *,
        model: str,
        instructions: str | None = None,
        functions: Sequence[FunctionDefinition] = (),
        function_results: Sequence[FunctionResult] = (),
        streamer: Streamer | None = None,
        previous_response_id: str | None = None,
        session_id: str | None = None,
        user_identifier: str | None = None,
        family: Any = None,
        timeout: float | None = None,
    ) -> LlmResponse:
        params = self._request_params(
            message,
            model=model,
            instructions=instructions,
            functions=functions,
            function_results=function_results,
            previous_response_id=previous_response_id,
            session_id=session_id,
            user_identifier=user_identifier,
            family=family,
            timeout=timeout,
        )
        logger.debug(f"Requesting {model} response (previous_response_id={previous_response_id})")

        try:
            if streamer is None:
                return self._parse_response(self.client.responses.create(**params))
            return self._stream(params, streamer)
        except openai.APIStatusError as e:
            raise ProviderError(f"OpenAI request failed: {e.message}", status_code=e.status_code) from e
        except openai.OpenAIError as e:
            raise ProviderError(f"OpenAI request failed: {e}") from e

    def _request_params(
        self,
        message: str,
        *,
        model: str,
        instructions: str | None,
        functions: Sequence[FunctionDefinition],
        function_results: Sequence[FunctionResult],
        previous_response_id: str | None,
        session_id: str | None,
        user_identifier: str | None,
        family: Any,
        timeout: float | None,
    ) -> dict[str, Any]:
        if function_results:
            input_items: list[dict[str, Any]] = [
                {"type": "function_call_output", "call_id": result.call_id, "output": json.dumps(result.output)}
                for result in function_results
            ]
        else:
            input_items = [{"role": "user", "content": message}]

        params: dict[str, Any] = {"model": model, "input": input_items}
        if instructions:
            params["instructions"] = instructions
        if functions:
            params["tools"] = [self._function_tool(definition) for definition in functions]
        if previous_response_id:
            params["previous_response_id"] = previous_response_id
        if user_identifier:
            params["user"] = user_identifier

        metadata = {k: str(v) for k, v in (("session_id", session_id), ("family_id", family)) if v is not None}
        if metadata:
            params["metadata"] = metadata
        if timeout is not None:
            params["timeout"] = timeout
        return params

    @staticmethod
    def _function_tool(definition: FunctionDefinition) -> dict[str, Any]:
        return {
            "type": "function",
            "name": definition.name,
            "description": definition.description,
            "parameters": definition.params_schema,
            "strict": definition.strict,
        }

    def _stream(self, params: dict[str, Any], streamer: Streamer) -> LlmResponse:
        response: LlmResponse | None = None
        stream = self.client.responses.create(stream=True, **params)
        for event in stream:
            if event.type == "response.output_text.delta":
                streamer(StreamChunk(type="output_text", data=event.delta))
            elif event.type == "response.completed":
                response = self._parse_response(event.response)
                usage = event.response.usage.model_dump() if event.response.usage else None
                streamer(StreamChunk(type="response", data=response, usage=usage))
            elif event.type in ("response.failed", "response.incomplete"):
                error = getattr(event.response, "error", None)
                raise ProviderError(f"OpenAI response {event.type.split('.')[-1]}: {error.message if error else event.type}")
            elif event.type == "error":
                raise ProviderError(f"OpenAI stream error: {event.message}")

        if response is None:
            raise ProviderError("OpenAI stream ended without a completed response")
        return response

    @staticmethod
    def _parse_response(raw: Any) -> LlmResponse:
        function_requests = [
            FunctionRequest(
                id=item.id or item.call_id,
                call_id=item.call_id,
                function_name=item.name,
                function_args=item.arguments,
            )
            for item in raw.output
            if item.type == "function_call"
        ]
        return LlmResponse(
            id=raw.id,
            model=raw.model,
            output_text=raw.output_text or "",
            function_requests=function_requests,
        )
