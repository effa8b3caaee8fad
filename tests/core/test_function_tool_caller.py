from __future__ import annotations

import datetime as dt
from decimal import Decimal
import time
from typing import Any
from unittest.mock import Mock

from pydantic import BaseModel
import pytest

from finassist.core.exceptions import FunctionExecutionError, TurnTimeoutError, UnknownFunctionError
from finassist.core.function import Function
from finassist.core.function_tool_caller import FunctionToolCaller, decode_arguments
from finassist.types_.core import FunctionRequest, FunctionToolCall


class Add(Function):
    """Add two numbers."""

    class Params(BaseModel):
        x: int
        y: int

    def call(self, params: dict[str, Any]) -> dict[str, Any]:
        args = self.parse_params(params)
        self.report_progress(f"Adding {args.x} and {args.y}...")
        return {"sum": args.x + args.y}


class Explode(Function):
    """Always fails."""

    def call(self, params: dict[str, Any]) -> dict[str, Any]:
        raise RuntimeError("kaboom")


class Echo(Function):
    """Return the arguments as a model."""

    class Result(BaseModel):
        received: dict[str, Any]

    def call(self, params: dict[str, Any]) -> Result:
        return self.Result(received=params)


def request(name: str, args: str = "{}", n: int = 1) -> FunctionRequest:
    return FunctionRequest(id=f"fc_{n}", call_id=f"call_{n}", function_name=name, function_args=args)


@pytest.fixture
def caller():
    ledger = Mock()
    return FunctionToolCaller([Add(ledger), Explode(ledger), Echo(ledger)])


class TestDecodeArguments:
    def test_object(self):
        assert decode_arguments('{"x": 1, "y": 2}') == {"x": 1, "y": 2}

    def test_empty(self):
        assert decode_arguments("") == {}
        assert decode_arguments(None) == {}

    def test_repairs_trailing_comma(self):
        assert decode_arguments('{"x": 1, "y": 2,}') == {"x": 1, "y": 2}

    def test_non_object(self):
        with pytest.raises(ValueError, match="must be a JSON object"):
            decode_arguments("[1, 2, 3]")


class TestFunctionToolCallerSetup:
    def test_function_table(self, caller):
        assert list(caller.functions) == ["add", "explode", "echo"]

    def test_rejects_non_functions(self):
        with pytest.raises(TypeError, match="requires Function objects"):
            FunctionToolCaller([lambda x: x])

    def test_rejects_duplicate_names(self):
        with pytest.raises(ValueError, match="Duplicate function name 'add'"):
            FunctionToolCaller([Add(Mock()), Add(Mock())])

    def test_function_definitions(self, caller):
        definitions = caller.function_definitions()
        assert [d.name for d in definitions] == ["add", "explode", "echo"]
        assert definitions[0].strict is True
        assert definitions[0].params_schema["required"] == ["x", "y"]


class TestFulfillRequests:
    def test_one_result_per_request_in_order(self, caller):
        requests = [request("add", '{"x": 1, "y": 2}', 1), request("explode", "{}", 2), request("add", '{"x": 3, "y": 4}', 3)]
        tool_calls = caller.fulfill_requests(requests)

        assert [tc.provider_call_id for tc in tool_calls] == ["call_1", "call_2", "call_3"]
        assert all(isinstance(tc, FunctionToolCall) for tc in tool_calls)

        assert tool_calls[0].success
        assert tool_calls[0].function_result == {"sum": 3}
        assert tool_calls[0].function_arguments == {"x": 1, "y": 2}

        assert not tool_calls[1].success
        assert "kaboom" in tool_calls[1].error
        assert tool_calls[1].to_result().output == {"error": tool_calls[1].error}

        assert tool_calls[2].function_result == {"sum": 7}

    def test_non_json_results_are_normalized(self):
        class LastSync(Function):
            """Report when the ledger last synced."""

            def call(self, params: dict[str, Any]) -> dict[str, Any]:
                return {"synced_on": dt.date(2026, 1, 1), "balance": Decimal("10.50")}

        tool_calls = FunctionToolCaller([LastSync(Mock())]).fulfill_requests([request("last_sync")])
        assert tool_calls[0].success
        assert tool_calls[0].function_result == {"synced_on": "2026-01-01", "balance": "10.50"}

    def test_unserializable_result_fails_only_its_request(self, caller):
        class Opaque(Function):
            """Return something that is not JSON."""

            def call(self, params: dict[str, Any]) -> dict[str, Any]:
                return {"handle": object()}

        caller.functions = [Opaque(Mock()), *caller.functions.values()]
        add = Mock(wraps=caller.functions["add"].call)
        caller.functions["add"].call = add

        tool_calls = caller.fulfill_requests([request("opaque", "{}", 1), request("add", '{"x": 1, "y": 2}', 2)])

        assert [tc.provider_call_id for tc in tool_calls] == ["call_1", "call_2"]
        assert not tool_calls[0].success
        assert "Error calling function opaque" in tool_calls[0].error
        assert tool_calls[1].function_result == {"sum": 3}
        add.assert_called_once_with({"x": 1, "y": 2})

    def test_arguments_decoded_once(self, caller, monkeypatch):
        decode = Mock(wraps=decode_arguments)
        monkeypatch.setattr("finassist.core.function_tool_caller.decode_arguments", decode)

        tool_calls = caller.fulfill_requests([request("add", '{"x": 1, "y": 2}')])

        decode.assert_called_once_with('{"x": 1, "y": 2}')
        assert tool_calls[0].function_arguments == {"x": 1, "y": 2}

    def test_unknown_function_aborts(self, caller):
        add = Mock(wraps=caller.functions["add"].call)
        caller.functions["add"].call = add

        with pytest.raises(UnknownFunctionError, match="Function missing does not exist") as exc_info:
            caller.fulfill_requests([request("missing", "{}", 1), request("add", '{"x": 1, "y": 1}', 2)])

        assert isinstance(exc_info.value, FunctionExecutionError)
        assert exc_info.value.function_name == "missing"
        add.assert_not_called()

    def test_undecodable_arguments(self, caller):
        tool_calls = caller.fulfill_requests([request("add", "[1, 2]")])
        assert not tool_calls[0].success
        assert "must be a JSON object" in tool_calls[0].error
        assert tool_calls[0].function_arguments == "[1, 2]"

    def test_invalid_arguments(self, caller):
        tool_calls = caller.fulfill_requests([request("add", '{"x": 1}')])
        assert not tool_calls[0].success
        assert tool_calls[0].function_arguments == {"x": 1}

    def test_model_results_are_dumped(self, caller):
        tool_calls = caller.fulfill_requests([request("echo", '{"a": [1, 2]}')])
        assert tool_calls[0].function_result == {"received": {"a": [1, 2]}}

    def test_progress_rebound_and_cleared(self, caller):
        progress = Mock()
        caller.on_progress(progress)
        caller.fulfill_requests([request("add", '{"x": 2, "y": 2}')])

        progress.assert_called_once_with("Adding 2 and 2...")
        assert caller.functions["add"]._progress_callback is None

    def test_progress_cleared_after_failure(self, caller):
        caller.on_progress(Mock())
        caller.fulfill_requests([request("explode")])
        assert caller.functions["explode"]._progress_callback is None

    def test_deadline_passed(self, caller):
        with pytest.raises(TurnTimeoutError, match="0 of 1 function calls completed"):
            caller.fulfill_requests([request("add", '{"x": 1, "y": 1}')], deadline=time.monotonic() - 1)

    def test_deadline_not_reached(self, caller):
        tool_calls = caller.fulfill_requests([request("add", '{"x": 1, "y": 1}')], deadline=time.monotonic() + 60)
        assert tool_calls[0].function_result == {"sum": 2}
