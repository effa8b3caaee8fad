"""Orchestration core for the finance assistant.

This module provides the function contract, the dispatcher that executes model function
requests, and the turn controller that drives a conversation with an LLM provider.
"""

from .exceptions import (
    AssistantError,
    ConfigurationError,
    FunctionExecutionError,
    ProviderError,
    TurnTimeoutError,
    UnknownFunctionError,
)
from .function import Function, build_schema, infer_strict_mode, pydantic_to_schema
from .function_tool_caller import FunctionToolCaller, decode_arguments
from .responder import MAX_FUNCTION_CALLS, Responder, is_stale_response_id_error

__all__ = [
    # Functions
    "Function",
    "build_schema",
    "infer_strict_mode",
    "pydantic_to_schema",
    # Dispatch
    "FunctionToolCaller",
    "decode_arguments",
    # Turn control
    "MAX_FUNCTION_CALLS",
    "Responder",
    "is_stale_response_id_error",
    # Exceptions
    "AssistantError",
    "ConfigurationError",
    "FunctionExecutionError",
    "ProviderError",
    "TurnTimeoutError",
    "UnknownFunctionError",
]
