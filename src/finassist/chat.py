"""Conversation records the assistant reads and writes.

These are in-process records: a web application persists them (and broadcasts changes)
by subscribing to ``Chat.on_change`` and ``Chat.on_thinking``.
"""

from __future__ import annotations

import logging
import traceback
from typing import Any, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from .types_.core import FunctionToolCall
from .utilities import format_json

logger = logging.getLogger(__name__)

CHART_FUNCTION_NAMES = ("generate_donut_chart",)


class Message(BaseModel):
    role: Literal["assistant", "user"]
    content: str = ""
    ai_model: str = Field(min_length=1)

    def __repr__(self):
        return format_json(self.model_dump())


class UserMessage(Message):
    role: Literal["user"] = "user"
    content: str = Field(min_length=1)


class AssistantMessage(Message):
    role: Literal["assistant"] = "assistant"
    tool_calls: list[FunctionToolCall] = Field(default_factory=list)

    _chat: Any = PrivateAttr(default=None)

    def append_text(self, text: str) -> None:
        """Append streamed text and save."""
        self.content += text
        self.save()

    def save(self) -> None:
        if self._chat is not None:
            self._chat.save_message(self)

    def _find_tool_call(self, predicate: Callable[[FunctionToolCall], bool]) -> FunctionToolCall | None:
        return next((tc for tc in self.tool_calls if predicate(tc)), None)

    def suggested_options(self) -> list[dict[str, str]]:
        """Options from a suggest_options call, for rendering as clickable choices."""
        call = self._find_tool_call(lambda tc: tc.function_name == "suggest_options")
        if call is None or not isinstance(call.function_arguments, dict):
            return []
        options = call.function_arguments.get("options")
        if not isinstance(options, list):
            return []
        return [{"label": opt.get("label"), "prompt": opt.get("prompt")} for opt in options if isinstance(opt, dict)]

    def chart_data(self) -> dict[str, Any] | None:
        call = self._find_tool_call(lambda tc: tc.function_name in CHART_FUNCTION_NAMES)
        if call is None or not isinstance(call.function_result, dict) or not call.function_result.get("chart_type"):
            return None
        return call.function_result

    def web_search_results(self) -> dict[str, Any] | None:
        call = self._find_tool_call(lambda tc: tc.function_name == "web_search")
        if call is None or not isinstance(call.function_result, dict) or not call.function_result.get("results"):
            return None
        return call.function_result


class Chat(BaseModel):
    """A conversation between one user and the assistant."""

    model_config = ConfigDict(validate_assignment=True)

    id: str
    title: str = ""
    user_id: str | None = None
    family_id: str | None = None
    latest_assistant_response_id: str | None = None
    error: dict[str, Any] | None = None
    thinking: str | None = None
    messages: list[Message] = Field(default_factory=list)

    on_change: Callable[[Chat], None] | None = Field(default=None, exclude=True, repr=False)
    on_thinking: Callable[[Chat, str | None], None] | None = Field(default=None, exclude=True, repr=False)

    def build_assistant_message(self, ai_model: str) -> AssistantMessage:
        """Create an unsaved, empty reply bound to this chat."""
        message = AssistantMessage(ai_model=ai_model)
        message._chat = self
        return message

    def save_message(self, message: Message) -> None:
        if not any(m is message for m in self.messages):
            self.messages.append(message)
        self._changed()

    def update_latest_response(self, response_id: str | None) -> None:
        self.latest_assistant_response_id = response_id
        self._changed()

    def update_thinking(self, message: str) -> None:
        self.thinking = message
        if self.on_thinking is not None:
            self.on_thinking(self, message)

    def stop_thinking(self) -> None:
        if self.thinking is None:
            return
        self.thinking = None
        if self.on_thinking is not None:
            self.on_thinking(self, None)

    def add_error(self, error: BaseException) -> None:
        """Record a failed turn."""
        logger.info(f"Recording error on chat {self.id}: {error!r}")
        self.error = {
            "class": type(error).__name__,
            "message": str(error),
            "backtrace": traceback.format_exception(error)[-10:],
        }
        self._changed()

    def clear_error(self) -> None:
        self.error = None
        self._changed()

    def error_details(self) -> dict[str, Any] | None:
        if not self.error:
            return None
        return {
            "message": self.error.get("message") or str(self.error)[:200],
            "class": self.error.get("class"),
            "backtrace": self.error.get("backtrace"),
            "raw": self.error,
        }

    def error_summary(self) -> str:
        details = self.error_details()
        if details is None:
            return "No error"
        return f"{details['class']}: {details['message']}"

    def debug_info(self) -> dict[str, Any]:
        last_message = self.messages[-1] if self.messages else None
        return {
            "id": self.id,
            "title": self.title,
            "user_id": self.user_id,
            "message_count": len(self.messages),
            "last_message": last_message.model_dump(include={"role", "content", "ai_model"}) if last_message else None,
            "latest_assistant_response_id": self.latest_assistant_response_id,
            "error": self.error_details(),
        }

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change(self)
