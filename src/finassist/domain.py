"""Ledger interface consumed by assistant functions.

The financial domain itself lives outside the assistant; functions reach it only through
the ``Ledger`` protocol. ``InMemoryLedger`` is a self-contained implementation used by
tests and local experiments.
"""

from __future__ import annotations

import datetime as dt
import itertools
import logging
import random
from typing import Any, Literal, Protocol

from pydantic import BaseModel, Field
from typing_extensions import runtime_checkable

logger = logging.getLogger(__name__)

Classification = Literal["income", "expense"]

COLORS = ["#e99537", "#4da568", "#6471eb", "#db5a54", "#df4e92", "#c44fe9", "#eb5429", "#61c9ea", "#805dee"]


class Category(BaseModel):
    id: int
    name: str
    classification: Classification
    color: str
    icon: str = "tag"
    parent_id: int | None = None


class Tag(BaseModel):
    id: int
    name: str
    color: str


class Account(BaseModel):
    id: int
    name: str
    balance: float
    classification: Literal["asset", "liability"] = "asset"
    currency: str = "USD"


class Transaction(BaseModel):
    """A ledger entry. Positive amounts are outflows (expenses), negative amounts are inflows (income)."""

    id: int
    date: dt.date
    name: str
    amount: float
    currency: str = "USD"
    account_id: int | None = None
    category_id: int | None = None
    tag_ids: list[int] = Field(default_factory=list)
    merchant: str | None = None


Period = Literal["current_month", "last_month", "last_30_days", "last_90_days", "last_365_days"]


def period_bounds(period: Period, reference: dt.date) -> tuple[dt.date, dt.date]:
    """Inclusive start and end dates of a named period relative to ``reference``."""
    if period == "current_month":
        return reference.replace(day=1), reference
    if period == "last_month":
        end = reference.replace(day=1) - dt.timedelta(days=1)
        return end.replace(day=1), end
    days = int(period.split("_")[1])
    return reference - dt.timedelta(days=days), reference


@runtime_checkable
class Ledger(Protocol):
    """Read/write access to one family's financial data."""

    currency: str
    date_format: str

    def accounts(self) -> list[Account]: ...

    def transactions(self) -> list[Transaction]: ...

    def categories(self) -> list[Category]: ...

    def find_category(self, name: str) -> Category | None: ...

    def create_category(
        self, name: str, classification: Classification, icon: str = "tag", parent: Category | None = None
    ) -> Category: ...

    def update_category(self, category: Category, updates: dict[str, Any]) -> Category: ...

    def delete_category(self, category: Category) -> int: ...

    def categorize_transactions(self, transaction_ids: list[int], category: Category) -> int: ...

    def tags(self) -> list[Tag]: ...

    def find_tag(self, name: str) -> Tag | None: ...

    def create_tag(self, name: str) -> Tag: ...

    def tag_transactions(self, transaction_ids: list[int], tag: Tag) -> int: ...


class InMemoryLedger:
    """A Ledger backed by plain lists."""

    def __init__(
        self,
        accounts: list[Account] | None = None,
        transactions: list[Transaction] | None = None,
        categories: list[Category] | None = None,
        tags: list[Tag] | None = None,
        currency: str = "USD",
        date_format: str = "%Y-%m-%d",
    ):
        self._accounts = list(accounts or [])
        self._transactions = list(transactions or [])
        self._categories = list(categories or [])
        self._tags = list(tags or [])
        self.currency = currency
        self.date_format = date_format

        start = max((c.id for c in [*self._categories, *self._tags]), default=0) + 1
        self._ids = itertools.count(start)

    def accounts(self) -> list[Account]:
        return list(self._accounts)

    def transactions(self) -> list[Transaction]:
        return list(self._transactions)

    def categories(self) -> list[Category]:
        return list(self._categories)

    def find_category(self, name: str) -> Category | None:
        """Find a category by exact name, falling back to a case-insensitive match."""
        exact = next((c for c in self._categories if c.name == name), None)
        return exact or next((c for c in self._categories if c.name.lower() == name.lower()), None)

    def create_category(
        self, name: str, classification: Classification, icon: str = "tag", parent: Category | None = None
    ) -> Category:
        if not name.strip():
            raise ValueError("Category name can't be blank")
        category = Category(
            id=next(self._ids),
            name=name,
            classification=classification,
            color=parent.color if parent else random.choice(COLORS),  # NOQA: S311
            icon=icon,
            parent_id=parent.id if parent else None,
        )
        self._categories.append(category)
        return category

    def update_category(self, category: Category, updates: dict[str, Any]) -> Category:
        """Apply field updates (name, icon, parent_id) to a category and return the saved copy."""
        if "name" in updates and not updates["name"].strip():
            raise ValueError("Category name can't be blank")
        updated = category.model_copy(update=updates)
        self._categories = [updated if c.id == category.id else c for c in self._categories]
        return updated

    def delete_category(self, category: Category) -> int:
        """Delete a category, returning how many transactions became uncategorized."""
        uncategorized = 0
        for i, txn in enumerate(self._transactions):
            if txn.category_id == category.id:
                self._transactions[i] = txn.model_copy(update={"category_id": None})
                uncategorized += 1

        # subcategories become top-level categories
        self._categories = [
            c.model_copy(update={"parent_id": None}) if c.parent_id == category.id else c
            for c in self._categories
            if c.id != category.id
        ]
        return uncategorized

    def categorize_transactions(self, transaction_ids: list[int], category: Category) -> int:
        ids = set(transaction_ids)
        updated = 0
        for i, txn in enumerate(self._transactions):
            if txn.id in ids:
                self._transactions[i] = txn.model_copy(update={"category_id": category.id})
                updated += 1
        return updated

    def tags(self) -> list[Tag]:
        return list(self._tags)

    def find_tag(self, name: str) -> Tag | None:
        return next((t for t in self._tags if t.name.lower() == name.lower()), None)

    def create_tag(self, name: str) -> Tag:
        if not name.strip():
            raise ValueError("Tag name can't be blank")
        tag = Tag(id=next(self._ids), name=name, color=random.choice(COLORS))  # NOQA: S311
        self._tags.append(tag)
        return tag

    def tag_transactions(self, transaction_ids: list[int], tag: Tag) -> int:
        """Add a tag to transactions, returning how many did not already carry it."""
        ids = set(transaction_ids)
        tagged = 0
        for i, txn in enumerate(self._transactions):
            if txn.id in ids and tag.id not in txn.tag_ids:
                self._transactions[i] = txn.model_copy(update={"tag_ids": [*txn.tag_ids, tag.id]})
                tagged += 1
        return tagged
