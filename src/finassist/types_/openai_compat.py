from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel

from aisuite.framework import ChatCompletionResponse as AISuiteChatCompletion
from openai.types.chat import ChatCompletion as OpenAIChatCompletion

logger = logging.getLogger(__name__)


# OpenAI chat-completions compatibility
class ChatCompletionMessageToolCallFunction(BaseModel, extra="ignore"):
    name: str
    arguments: str


class ChatCompletionMessageToolCall(BaseModel, extra="ignore"):
    id: str
    function: ChatCompletionMessageToolCallFunction
    type: Literal["function"] = "function"


class ChatCompletionMessage(BaseModel, extra="ignore"):
    role: Literal["assistant", "system", "tool", "user"] = "assistant"
    content: str | None = None
    tool_calls: list[ChatCompletionMessageToolCall] | None = None
    refusal: str | None = None

    def to_message_param(self) -> dict[str, Any]:
        """Render as a chat-completions message for replaying conversation history."""
        param: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            param["tool_calls"] = [tool_call.model_dump() for tool_call in self.tool_calls]
        return param


class ChatCompletionChoice(BaseModel, extra="ignore"):
    finish_reason: str | None = None
    message: ChatCompletionMessage


class ChatCompletion(BaseModel, extra="ignore"):
    id: int | str | None = None
    choices: list[ChatCompletionChoice]


def convert_response(response: OpenAIChatCompletion | AISuiteChatCompletion) -> ChatCompletion:
    """Unify aisuite response object types."""
    if isinstance(response, OpenAIChatCompletion):
        return ChatCompletion(**response.model_dump())
    else:
        choices = []
        for choice in response.choices:
            message = ChatCompletionMessage(**choice.message.model_dump())

            choices.append(
                ChatCompletionChoice(
                    message=message,
                    finish_reason=choice.finish_reason if hasattr(choice, "finish_reason") else None,
                )
            )

        return ChatCompletion(
            id=response.id if hasattr(response, "id") else None,
            choices=choices,
        )
