"""Provider protocol consumed by the Responder."""

from __future__ import annotations

import logging
from typing import Any, Callable, Protocol, Sequence

from typing_extensions import runtime_checkable

from ..types_.core import FunctionDefinition, FunctionResult, LlmResponse, StreamChunk

logger = logging.getLogger(__name__)

Streamer = Callable[[StreamChunk], None]


@runtime_checkable
class LlmProvider(Protocol):
    """Protocol for LLM providers that support function calling.

    Attributes
    ----------
    provider_name : str
        Short name shown to users when no provider supports a model
    """

    provider_name: str

    def supports_model(self, model: str) -> bool:
        """Return True if this provider can serve ``model``."""
        ...

    @property
    def supported_models_description(self) -> str:
        """Describe the models this provider serves, for error messages."""
        ...

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
        """Request a response.

        When ``streamer`` is given it receives zero or more ``output_text`` chunks followed by
        exactly one ``response`` chunk. When ``function_results`` is non-empty the request carries
        tool output for the response identified by ``previous_response_id`` instead of ``message``.

        Raises
        ------
        ProviderError
            If the provider rejects the request or the transport fails
        """
        ...
