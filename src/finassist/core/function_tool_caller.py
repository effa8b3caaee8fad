"""Dispatch model function requests to registered Functions.

The caller owns the name -> Function table for a turn. It executes requests strictly in order,
one at a time, and produces exactly one FunctionToolCall per request.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Sequence

import json_repair
from pydantic import TypeAdapter
from typing_extensions import Self

from .exceptions import FunctionExecutionError, TurnTimeoutError, UnknownFunctionError
from .function import Function, ProgressCallback
from ..types_.core import FunctionDefinition, FunctionRequest, FunctionToolCall

logger = logging.getLogger(__name__)

_RESULT_ADAPTER = TypeAdapter(Any)


def decode_arguments(raw: str | None) -> dict[str, Any]:
    """Decode a model-produced argument payload into a JSON object.

    Minor formatting defects (trailing commas, unclosed braces) are repaired;
    anything that does not decode to an object raises ValueError.
    """
    if raw is None or not raw.strip():
        return {}
    decoded = json_repair.loads(raw)
    if not isinstance(decoded, dict):
        raise ValueError(f"Function arguments must be a JSON object, received {raw!r}")
    return decoded


class FunctionToolCaller:
    """Resolves function requests against a fixed set of Functions and executes them."""

    def __init__(self, functions: Sequence[Function] | None = None, on_progress: ProgressCallback | None = None):
        self.functions = functions or []
        self._on_progress = on_progress

    @property
    def functions(self) -> dict[str, Function]:
        """Return the registered functions keyed by name."""
        return self._functions

    @functions.setter
    def functions(self, functions: Sequence[Function]):
        table = {}
        for fn in functions:
            if not isinstance(fn, Function):
                raise TypeError(f"FunctionToolCaller requires Function objects. Received {fn}: {type(fn)}")
            if fn.name in table:
                raise ValueError(f"Duplicate function name '{fn.name}'")
            table[fn.name] = fn
        self._functions = table

    def on_progress(self, callback: ProgressCallback | None) -> Self:
        """Set the callback that receives progress messages from executing functions."""
        self._on_progress = callback
        return self

    def function_definitions(self) -> list[FunctionDefinition]:
        return [fn.to_definition() for fn in self.functions.values()]

    def fulfill_requests(
        self,
        function_requests: Sequence[FunctionRequest],
        deadline: float | None = None,
    ) -> list[FunctionToolCall]:
        """Execute each request in order, returning one FunctionToolCall per request.

        Parameters
        ----------
        function_requests : Sequence[FunctionRequest]
            Requests taken from a provider response
        deadline : float | None, optional
            ``time.monotonic()`` value after which no further request is started

        Returns
        -------
        list[FunctionToolCall]
            Results in request order; a failed request carries its error instead of a result

        Raises
        ------
        UnknownFunctionError
            If a request names a function that is not registered
        TurnTimeoutError
            If the deadline passes before all requests have started
        """
        tool_calls = []
        for function_request in function_requests:
            if deadline is not None and time.monotonic() > deadline:
                raise TurnTimeoutError(
                    f"Turn deadline passed before calling {function_request.function_name}; "
                    f"{len(tool_calls)} of {len(function_requests)} function calls completed"
                )
            tool_calls.append(self._fulfill(function_request))
        return tool_calls

    def _fulfill(self, function_request: FunctionRequest) -> FunctionToolCall:
        fn = self.find_function(function_request)
        try:
            fn_args, result = self._invoke(fn, function_request)
        except FunctionExecutionError as e:
            logger.warning(str(e))
            return FunctionToolCall.from_function_request(function_request, arguments=e.arguments, error=str(e))

        return FunctionToolCall.from_function_request(function_request, result, arguments=fn_args)

    def execute(self, function_request: FunctionRequest) -> Any:
        """Run the requested function and return its JSON-compatible result.

        Raises
        ------
        UnknownFunctionError
            If no registered function matches the request
        FunctionExecutionError
            If the arguments cannot be decoded, the function raises, or its result is not JSON-serializable
        """
        _, result = self._invoke(self.find_function(function_request), function_request)
        return result

    def _invoke(self, fn: Function, function_request: FunctionRequest) -> tuple[dict[str, Any], Any]:
        fn_args = None
        try:
            fn_args = decode_arguments(function_request.function_args)
            fn.on_progress(self._on_progress)

            logger.debug(f"Invoking {fn.name} with arguments: {fn_args}")
            # dates, decimals and models become plain JSON values
            result = _RESULT_ADAPTER.dump_python(fn.call(fn_args), mode="json")
        except Exception as e:
            logger.debug(f"Function {fn.name} raised", exc_info=True)
            raise FunctionExecutionError(
                f"Error calling function {fn.name} with arguments {fn_args or function_request.function_args}: {e}",
                function_name=fn.name,
                arguments=fn_args,
            ) from e
        finally:
            fn.on_progress(None)

        return fn_args, result

    def find_function(self, function_request: FunctionRequest) -> Function:
        try:
            return self.functions[function_request.function_name]
        except KeyError as e:
            raise UnknownFunctionError(
                f"Function {function_request.function_name} does not exist "
                f"(called with arguments {function_request.function_args})",
                function_name=function_request.function_name,
                arguments=function_request.function_args,
            ) from e
