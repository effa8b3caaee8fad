from __future__ import annotations

import datetime as dt
import math
from typing import Any, Literal

from pydantic import BaseModel, Field

from ..core.function import Function
from ..domain import Transaction

PAGE_SIZE = 50


class GetTransactionsParams(BaseModel):
    page: int = Field(ge=1, description="Page number")
    order: Literal["asc", "desc"] = Field(description="Order of the transactions by date")
    search: str | None = Field(default=None, description="Search for transactions by name or merchant")
    category: str | None = Field(default=None, description="Only transactions in this category")
    start_date: dt.date | None = Field(default=None, description="Start date for transactions in YYYY-MM-DD format")
    end_date: dt.date | None = Field(default=None, description="End date for transactions in YYYY-MM-DD format")


class GetTransactions(Function):
    """Use this to search the user's transactions using optional filters.

    Good for finding specific transactions by name, merchant, or category, and for detailed
    transaction lists. Results are paginated (50 per page). The response includes
    `total_results`, `total_income` and `total_expenses` computed over ALL matching transactions;
    use those totals instead of summing the current page.
    """

    Params = GetTransactionsParams

    def call(self, params: dict[str, Any]) -> dict[str, Any]:
        args = self.parse_params(params)
        self.report_progress("Searching transactions...")

        category_id = None
        if args.category:
            category = self.ledger.find_category(args.category)
            if category is None:
                return {"error": f"Category '{args.category}' not found"}
            category_id = category.id

        matches = [txn for txn in self.ledger.transactions() if self._matches(txn, args, category_id)]
        matches.sort(key=lambda txn: (txn.date, txn.id), reverse=args.order == "desc")

        total_pages = max(1, math.ceil(len(matches) / PAGE_SIZE))
        page = matches[(args.page - 1) * PAGE_SIZE : args.page * PAGE_SIZE]
        category_names = {c.id: c.name for c in self.ledger.categories()}

        return {
            "transactions": [self._to_ai(txn, category_names) for txn in page],
            "total_results": len(matches),
            "page": args.page,
            "page_size": PAGE_SIZE,
            "total_pages": total_pages,
            "total_income": round(-sum(txn.amount for txn in matches if txn.amount < 0), 2),
            "total_expenses": round(sum(txn.amount for txn in matches if txn.amount > 0), 2),
            "currency": self.ledger.currency,
        }

    @staticmethod
    def _matches(txn: Transaction, args: GetTransactionsParams, category_id: int | None) -> bool:
        if args.search:
            needle = args.search.lower()
            if needle not in txn.name.lower() and needle not in (txn.merchant or "").lower():
                return False
        if category_id is not None and txn.category_id != category_id:
            return False
        if args.start_date and txn.date < args.start_date:
            return False
        if args.end_date and txn.date > args.end_date:
            return False
        return True

    def _to_ai(self, txn: Transaction, category_names: dict[int, str]) -> dict[str, Any]:
        return {
            "date": txn.date.strftime(self.ledger.date_format),
            "name": txn.name,
            "amount": txn.amount,
            "classification": "income" if txn.amount < 0 else "expense",
            "category": category_names.get(txn.category_id, "Uncategorized"),
            "merchant": txn.merchant,
        }
