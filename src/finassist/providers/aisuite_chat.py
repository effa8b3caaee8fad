"""LLM provider backed by aisuite chat completions.

Chat-completions endpoints are stateless, so this provider keeps each response's conversation
history in a bounded in-memory store and hands out its key as the continuation token. Tokens
that have been evicted (or never existed) are rejected with a "previous_response ... not found"
error, which the Responder treats as a stale token.
"""

from __future__ import annotations

from collections import OrderedDict
import json
import logging
from typing import Any, Sequence
import uuid

from aisuite import Client

from .base import Streamer
from ..core.exceptions import ProviderError
from ..types_.core import FunctionDefinition, FunctionRequest, FunctionResult, LlmResponse, StreamChunk
from ..types_.openai_compat import convert_response

logger = logging.getLogger(__name__)


class AISuiteProvider:
    """Serve 'provider:model' identifiers (e.g. 'anthropic:claude-3-5-haiku-latest') through aisuite."""

    provider_name = "aisuite"

    def __init__(
        self,
        client: Client | None = None,
        *,
        providers: Sequence[str] = ("anthropic",),
        provider_configs: dict[str, dict[str, Any]] | None = None,
        max_conversations: int = 1000,
    ):
        self.client = client or Client(provider_configs=provider_configs or {})
        self.providers = tuple(providers)
        self.max_conversations = max_conversations
        self._conversations: OrderedDict[str, list[dict[str, Any]]] = OrderedDict()

    def supports_model(self, model: str) -> bool:
        provider, sep, name = model.partition(":")
        return bool(sep and name) and provider in self.providers

    @property
    def supported_models_description(self) -> str:
        return f"'provider:model' identifiers for {', '.join(self.providers)}"

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
        messages = self._history(previous_response_id, instructions)
        if function_results:
            messages.extend(
                {"role": "tool", "tool_call_id": result.call_id, "content": json.dumps(result.output)}
                for result in function_results
            )
        else:
            messages.append({"role": "user", "content": message})

        params: dict[str, Any] = {}
        if functions:
            params["tools"] = [self._function_tool(definition) for definition in functions]
        if timeout is not None:
            params["timeout"] = timeout

        logger.debug(f"Requesting {model} completion with {len(messages)} messages")
        try:
            completion = convert_response(self.client.chat.completions.create(model=model, messages=messages, **params))
        except Exception as e:
            # aisuite surfaces each backend's own exception types
            raise ProviderError(f"{model} request failed: {e}") from e

        if not completion.choices:
            raise ProviderError(f"{model} returned no choices")
        reply = completion.choices[0].message

        response_id = f"resp_{uuid.uuid4().hex}"
        self._store(response_id, [*messages, reply.to_message_param()])

        response = LlmResponse(
            id=response_id,
            model=model,
            output_text=reply.content or "",
            function_requests=[
                FunctionRequest(
                    id=tool_call.id,
                    call_id=tool_call.id,
                    function_name=tool_call.function.name,
                    function_args=tool_call.function.arguments,
                )
                for tool_call in reply.tool_calls or []
            ],
        )

        if streamer is not None:
            if response.output_text:
                streamer(StreamChunk(type="output_text", data=response.output_text))
            streamer(StreamChunk(type="response", data=response))
        return response

    def _history(self, previous_response_id: str | None, instructions: str | None) -> list[dict[str, Any]]:
        if previous_response_id is None:
            return [{"role": "system", "content": instructions}] if instructions else []

        try:
            history = self._conversations[previous_response_id]
        except KeyError as e:
            raise ProviderError(f"previous_response '{previous_response_id}' not found", status_code=404) from e
        self._conversations.move_to_end(previous_response_id)
        return list(history)

    def _store(self, response_id: str, messages: list[dict[str, Any]]) -> None:
        self._conversations[response_id] = messages
        while len(self._conversations) > self.max_conversations:
            evicted, _ = self._conversations.popitem(last=False)
            logger.debug(f"Evicted conversation {evicted}")

    @staticmethod
    def _function_tool(definition: FunctionDefinition) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": definition.name,
                "description": definition.description,
                "parameters": definition.params_schema,
                "strict": definition.strict,
            },
        }
