from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ..core.function import Function
from ..domain import Transaction

MAX_BATCH_SIZE = 500


def matches_search(txn: Transaction, search: str | None) -> bool:
    """Case-insensitive match against a transaction's name or merchant."""
    if not search:
        return True
    needle = search.lower()
    return needle in txn.name.lower() or needle in (txn.merchant or "").lower()


class CategorizeTransactionsParams(BaseModel):
    transaction_ids: list[int] | None = Field(default=None, description="Specific transaction IDs to categorize")
    search: str | None = Field(
        default=None, description="Search term to find transactions to categorize (by name/merchant)"
    )
    category_name: str = Field(min_length=1, description="Name of the category to assign (existing or new)")
    create_if_missing: bool = Field(
        default=False, description="If true, create the category if it doesn't exist. Defaults to false."
    )


class CategorizeTransactions(Function):
    """Use this to categorize one or more transactions.

    Select transactions by `transaction_ids`, by a `search` term, or both. The category is looked
    up by name; set `create_if_missing` to create it as an expense category on the fly.
    IMPORTANT: Always confirm with the user before categorizing large numbers of transactions.
    """

    Params = CategorizeTransactionsParams

    def call(self, params: dict[str, Any]) -> dict[str, Any]:
        args = self.parse_params(params)
        self.report_progress("Finding matching transactions...")

        ids = set(args.transaction_ids or [])
        matches = [
            txn
            for txn in self.ledger.transactions()
            if (not args.transaction_ids or txn.id in ids) and matches_search(txn, args.search)
        ]
        if not matches:
            return {"error": "No transactions found matching criteria"}

        self.report_progress(f"Found {len(matches)} transactions, applying category...")
        category = self.ledger.find_category(args.category_name)
        if category is None and args.create_if_missing:
            category = self.ledger.create_category(args.category_name, "expense")
        if category is None:
            return {
                "error": f"Category '{args.category_name}' not found. Set create_if_missing to true to create it."
            }

        batch = [txn.id for txn in matches[:MAX_BATCH_SIZE]]
        self.report_progress(f"Categorizing {len(batch)} transactions as '{category.name}'...")
        updated_count = self.ledger.categorize_transactions(batch, category)
        self.broadcast_data_changed()

        result: dict[str, Any] = {
            "success": True,
            "updated_count": updated_count,
            "category_name": category.name,
            "category_id": category.id,
        }
        if len(matches) > MAX_BATCH_SIZE:
            result["warning"] = (
                f"Processed {MAX_BATCH_SIZE} of {len(matches)} matching transactions. Run again to continue."
            )
            result["remaining"] = len(matches) - MAX_BATCH_SIZE
        return result
