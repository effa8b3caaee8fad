from __future__ import annotations

import datetime as dt
from typing import Any

import pytest

from finassist.config import Settings
from finassist.domain import Account, Category, InMemoryLedger, Tag, Transaction
from finassist.types_.core import FunctionRequest, LlmResponse, StreamChunk


class ScriptedProvider:
    """LlmProvider test double that replays queued responses (or raises queued errors) in order."""

    provider_name = "scripted"

    def __init__(self, *script: LlmResponse | Exception, models: tuple[str, ...] = ("gpt-4.1",), stream: bool = True):
        self.script = list(script)
        self.models = models
        self.stream = stream
        self.calls: list[dict[str, Any]] = []

    def supports_model(self, model: str) -> bool:
        return model in self.models

    @property
    def supported_models_description(self) -> str:
        return ", ".join(self.models)

    def chat_response(self, message: str, **kwargs: Any) -> LlmResponse:
        self.calls.append({"message": message, **kwargs})
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item

        streamer = kwargs.get("streamer")
        if self.stream and streamer is not None:
            if item.output_text:
                streamer(StreamChunk(type="output_text", data=item.output_text))
            streamer(StreamChunk(type="response", data=item))
        return item


def make_response(response_id: str, text: str = "", requests: list[tuple[str, str]] | None = None) -> LlmResponse:
    """Build an LlmResponse; ``requests`` holds (function_name, json arguments) pairs."""
    return LlmResponse(
        id=response_id,
        model="gpt-4.1",
        output_text=text,
        function_requests=[
            FunctionRequest(id=f"fc_{response_id}_{i}", call_id=f"call_{response_id}_{i}", function_name=name, function_args=args)
            for i, (name, args) in enumerate(requests or [])
        ],
    )


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def ledger():
    groceries = Category(id=1, name="Groceries", classification="expense", color="#4da568", icon="shopping-cart")
    salary = Category(id=2, name="Salary", classification="income", color="#6471eb")
    produce = Category(id=3, name="Produce", classification="expense", color="#4da568", parent_id=1)
    return InMemoryLedger(
        accounts=[
            Account(id=1, name="Checking", balance=2500.0),
            Account(id=2, name="Brokerage", balance=10000.0),
            Account(id=3, name="Credit Card", balance=750.5, classification="liability"),
        ],
        transactions=[
            Transaction(id=1, date=dt.date(2026, 1, 3), name="Whole Foods", amount=82.15, category_id=1, merchant="Whole Foods"),
            Transaction(id=2, date=dt.date(2026, 1, 15), name="Paycheck", amount=-3000.0, category_id=2),
            Transaction(id=3, date=dt.date(2026, 2, 1), name="Farmers market", amount=24.0, category_id=3),
            Transaction(id=4, date=dt.date(2026, 2, 10), name="Trader Joe's", amount=45.5, category_id=1, merchant="Trader Joe's"),
            Transaction(id=5, date=dt.date(2026, 2, 12), name="Coffee", amount=4.75),
        ],
        categories=[groceries, salary, produce],
        tags=[Tag(id=4, name="Vacation", color="#e99537")],
    )
