"""Drive one conversational turn with an LLM provider.

A Responder sends the user's message and the available function definitions to the provider,
streams text back through ``output_text`` events, and, while the model keeps requesting function
calls, dispatches them through the FunctionToolCaller and feeds the results back in follow-up
requests. The number of function calls per turn is capped by MAX_FUNCTION_CALLS.

Events (listeners are invoked synchronously in registration order):

- ``output_text``: incremental text (str)
- ``functions_starting``: ``{"function_names": [...]}``, before a batch is dispatched
- ``response``: ``{"id": ..., "function_tool_calls": [...]}`` for an intermediate response,
  ``{"id": ..., "has_pending_functions": True}`` when the budget stops the turn,
  or ``{"id": ...}`` for the final response
"""

from __future__ import annotations

from collections import defaultdict
import hashlib
import logging
import re
import time
from typing import TYPE_CHECKING, Any, Callable, Sequence

from .exceptions import ProviderError, TurnTimeoutError
from .function_tool_caller import FunctionToolCaller
from ..providers.base import LlmProvider, Streamer
from ..types_.core import FunctionResult, LlmResponse, StreamChunk

if TYPE_CHECKING:
    from ..chat import Chat, UserMessage

logger = logging.getLogger(__name__)

MAX_FUNCTION_CALLS = 100

EVENTS = ("output_text", "functions_starting", "response")

BUDGET_EXHAUSTED_MESSAGE = (
    "I've gathered the available data but need to stop here to manage costs. "
    "Let me know if you'd like me to continue with additional queries."
)

STALE_RESPONSE_ID_PATTERNS = [
    re.compile(pattern)
    for pattern in (
        r"previous_response.*not found",
        r"previous_response.*invalid",
        r"previous_response.*does not exist",
        r"previous_response.*expired",
        r"response.*id.*not found",
        r"response.*id.*invalid",
        r"no response found",
        r"conversation.*not found",
    )
]

Listener = Callable[[Any], None]


def is_stale_response_id_error(error: BaseException) -> bool:
    """Check whether a provider error means the continuation token is no longer usable."""
    message = str(error).lower()
    return any(pattern.search(message) for pattern in STALE_RESPONSE_ID_PATTERNS)


class Responder:
    """Turn controller for a single user message.

    A Responder owns the call budget for exactly one turn; create a new instance per message.
    """

    MAX_FUNCTION_CALLS = MAX_FUNCTION_CALLS

    def __init__(
        self,
        message: UserMessage,
        instructions: str | None,
        function_tool_caller: FunctionToolCaller,
        llm: LlmProvider,
        chat: Chat | None = None,
        timeout: float | None = None,
    ):
        """Initialize a Responder.

        Parameters
        ----------
        message : UserMessage
            The user's message; provides the content and the model identifier
        instructions : str | None
            System instructions sent with every provider request
        function_tool_caller : FunctionToolCaller
            Functions available to the model during this turn
        llm : LlmProvider
            Provider that serves ``message.ai_model``
        chat : Chat | None, optional
            Conversation the message belongs to; used for session metadata and to clear a stale
            continuation token, by default None
        timeout : float | None, optional
            Seconds allowed for the whole turn, by default None (unbounded)
        """
        self.message = message
        self.instructions = instructions
        self.function_tool_caller = function_tool_caller
        self.llm = llm
        self.chat = chat
        self.timeout = timeout
        self.total_calls_used = 0

        self._listeners: defaultdict[str, list[Listener]] = defaultdict(list)
        self._deadline: float | None = None

    def on(self, event_name: str, listener: Listener | None = None):
        """Register a listener for an event; usable directly or as a decorator."""
        if event_name not in EVENTS:
            raise ValueError(f"Unknown event '{event_name}'. Expected one of {EVENTS}")

        if listener is None:

            def decorator(fn: Listener) -> Listener:
                self._listeners[event_name].append(fn)
                return fn

            return decorator

        self._listeners[event_name].append(listener)
        return listener

    def emit(self, event_name: str, payload: Any = None) -> None:
        for listener in self._listeners[event_name]:
            listener(payload)

    def respond(self, previous_response_id: str | None = None) -> None:
        """Run the turn to completion.

        Raises
        ------
        ProviderError
            If a provider request fails (after the stale-token retry, when applicable)
        UnknownFunctionError
            If the model requests a function that is not registered
        TurnTimeoutError
            If the turn runs past its deadline
        """
        if self.timeout is not None:
            self._deadline = time.monotonic() + self.timeout

        captured: dict[str, LlmResponse] = {}

        def streamer(chunk: StreamChunk) -> None:
            if chunk.type == "output_text":
                self.emit("output_text", chunk.data)
            elif chunk.type == "response":
                captured["response"] = chunk.data

        returned = self._get_llm_response(streamer=streamer, previous_response_id=previous_response_id)
        response = captured.get("response") or returned

        if response.function_requests:
            self._handle_function_requests(response)
        else:
            self.emit("response", {"id": response.id})

    def _handle_function_requests(self, response: LlmResponse) -> None:
        """Dispatch function requests and follow up until the model answers or the budget runs out."""
        is_follow_up = False
        had_text_output = False

        while True:
            call_count = len(response.function_requests)
            remaining_budget = self.MAX_FUNCTION_CALLS - self.total_calls_used

            if call_count > remaining_budget:
                logger.warning(
                    f"Function call budget exhausted ({self.total_calls_used}/{self.MAX_FUNCTION_CALLS} used, "
                    f"{call_count} requested)"
                )
                if not (is_follow_up and had_text_output):
                    self.emit("output_text", BUDGET_EXHAUSTED_MESSAGE)
                # the provider expects tool output for this response id, so it must not be resumed
                self.emit("response", {"id": response.id, "has_pending_functions": True})
                return

            self.total_calls_used += call_count

            function_names = [request.function_name for request in response.function_requests]
            logger.info(
                f"Functions starting ({self.total_calls_used}/{self.MAX_FUNCTION_CALLS} calls used): {function_names}"
            )
            self.emit("functions_starting", {"function_names": function_names})

            function_tool_calls = self.function_tool_caller.fulfill_requests(
                response.function_requests, deadline=self._deadline
            )
            self.emit("response", {"id": response.id, "function_tool_calls": function_tool_calls})

            follow_up, had_text_output = self._follow_up(
                function_results=[tool_call.to_result() for tool_call in function_tool_calls],
                previous_response_id=response.id,
            )

            if not follow_up.function_requests:
                self.emit("response", {"id": follow_up.id})
                return

            logger.info(f"Follow-up requested {len(follow_up.function_requests)} more function calls")
            response = follow_up
            is_follow_up = True

    def _follow_up(
        self, function_results: list[FunctionResult], previous_response_id: str
    ) -> tuple[LlmResponse, bool]:
        captured: dict[str, LlmResponse] = {}
        had_text_output = False

        def streamer(chunk: StreamChunk) -> None:
            nonlocal had_text_output
            if chunk.type == "output_text":
                had_text_output = True
                self.emit("output_text", chunk.data)
            elif chunk.type == "response":
                captured["response"] = chunk.data

        returned = self._get_llm_response(
            streamer=streamer,
            function_results=function_results,
            previous_response_id=previous_response_id,
        )
        return captured.get("response") or returned, had_text_output

    def _get_llm_response(
        self,
        streamer: Streamer,
        function_results: Sequence[FunctionResult] = (),
        previous_response_id: str | None = None,
    ) -> LlmResponse:
        try:
            return self._chat_response(streamer, function_results, previous_response_id)
        except ProviderError as e:
            if not previous_response_id or not is_stale_response_id_error(e):
                raise

            logger.warning(f"Stale previous_response_id detected, clearing and retrying without it: {e}")
            if self.chat is not None:
                self.chat.update_latest_response(None)

            return self._chat_response(streamer, function_results, None)

    def _chat_response(
        self,
        streamer: Streamer,
        function_results: Sequence[FunctionResult],
        previous_response_id: str | None,
    ) -> LlmResponse:
        return self.llm.chat_response(
            self.message.content,
            model=self.message.ai_model,
            instructions=self.instructions,
            functions=self.function_tool_caller.function_definitions(),
            function_results=list(function_results),
            streamer=streamer,
            previous_response_id=previous_response_id,
            session_id=self._session_id,
            user_identifier=self._user_identifier,
            family=self.chat.family_id if self.chat is not None else None,
            timeout=self._remaining_time(),
        )

    def _remaining_time(self) -> float | None:
        if self._deadline is None:
            return None
        remaining = self._deadline - time.monotonic()
        if remaining <= 0:
            raise TurnTimeoutError(f"Turn exceeded its {self.timeout}s deadline")
        return remaining

    @property
    def _session_id(self) -> str | None:
        return str(self.chat.id) if self.chat is not None else None

    @property
    def _user_identifier(self) -> str | None:
        if self.chat is None or self.chat.user_id is None:
            return None
        return hashlib.sha256(str(self.chat.user_id).encode()).hexdigest()
