from __future__ import annotations

from typing import Any


class AssistantError(Exception):
    """Base class for errors raised by the assistant core."""


class ConfigurationError(AssistantError):
    """No configured provider can serve the request."""


class FunctionExecutionError(AssistantError):
    """A function request could not be fulfilled."""

    def __init__(self, message: str, function_name: str | None = None, arguments: Any = None):
        super().__init__(message)
        self.function_name = function_name
        self.arguments = arguments


class UnknownFunctionError(FunctionExecutionError):
    """The model requested a function that is not registered with the caller."""


class ProviderError(AssistantError):
    """The LLM provider failed to produce a response."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TurnTimeoutError(AssistantError):
    """The turn ran past its deadline."""
