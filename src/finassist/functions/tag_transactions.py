from __future__ import annotations

import datetime as dt
from typing import Any, Literal

from pydantic import BaseModel, Field

from ..core.function import Function
from ..domain import Transaction
from .categorize_transactions import MAX_BATCH_SIZE, matches_search


class TagTransactionsParams(BaseModel):
    transaction_ids: list[int] | None = Field(default=None, description="Specific transaction IDs to tag")
    search: str | None = Field(default=None, description="Search term to find transactions to tag (by name/merchant)")
    types: list[Literal["income", "expense"]] | None = Field(
        default=None,
        description="Filter by transaction type: 'income' (positive cash flow like refunds/returns) or 'expense' (purchases)",
    )
    categories: list[str] | None = Field(
        default=None, description="Filter to transactions currently in these categories"
    )
    accounts: list[str] | None = Field(default=None, description="Filter by account names")
    merchants: list[str] | None = Field(default=None, description="Filter by merchant names")
    start_date: dt.date | None = Field(default=None, description="Filter transactions on or after this date (YYYY-MM-DD)")
    end_date: dt.date | None = Field(default=None, description="Filter transactions on or before this date (YYYY-MM-DD)")
    tag_name: str = Field(min_length=1, description="Name of the tag to apply (existing or new)")
    create_if_missing: bool = Field(
        default=False, description="If true, create the tag if it doesn't exist. Defaults to false."
    )


class TagTransactions(Function):
    """Use this to add tags to one or more transactions.

    Unlike categories, transactions can have multiple tags. Narrow the transactions with any mix
    of ids, search term, type, category, account, merchant and date filters; e.g. tag only
    income from Amazon as "Refund" with `search: "amazon", types: ["income"]`.
    IMPORTANT: Always confirm with the user before tagging large numbers of transactions.
    """

    Params = TagTransactionsParams

    def call(self, params: dict[str, Any]) -> dict[str, Any]:
        args = self.parse_params(params)
        self.report_progress("Finding matching transactions...")

        matches = self._find_transactions(args)
        if not matches:
            return {"error": "No transactions found matching criteria"}

        self.report_progress(f"Found {len(matches)} transactions, preparing tag...")
        tag = self.ledger.find_tag(args.tag_name)
        if tag is None and args.create_if_missing:
            tag = self.ledger.create_tag(args.tag_name)
        if tag is None:
            return {"error": f"Tag '{args.tag_name}' not found. Set create_if_missing to true to create it."}

        batch = matches[:MAX_BATCH_SIZE]
        already_tagged = sum(1 for txn in batch if tag.id in txn.tag_ids)
        self.report_progress(f"Tagging {len(batch) - already_tagged} transactions with '{tag.name}'...")
        tagged_count = self.ledger.tag_transactions([txn.id for txn in batch], tag)
        if tagged_count:
            self.broadcast_data_changed()

        result: dict[str, Any] = {
            "success": True,
            "tagged_count": tagged_count,
            "already_tagged": already_tagged,
            "tag_name": tag.name,
            "tag_id": tag.id,
        }
        if len(matches) > MAX_BATCH_SIZE:
            result["warning"] = (
                f"Processed {MAX_BATCH_SIZE} of {len(matches)} matching transactions. Run again to continue."
            )
            result["remaining"] = len(matches) - MAX_BATCH_SIZE
        return result

    def _find_transactions(self, args: TagTransactionsParams) -> list[Transaction]:
        category_ids = None
        if args.categories:
            wanted = {name.lower() for name in args.categories}
            category_ids = {c.id for c in self.ledger.categories() if c.name.lower() in wanted}
        account_ids = None
        if args.accounts:
            wanted = {name.lower() for name in args.accounts}
            account_ids = {a.id for a in self.ledger.accounts() if a.name.lower() in wanted}
        merchants = {name.lower() for name in args.merchants} if args.merchants else None
        ids = set(args.transaction_ids or [])

        def keep(txn: Transaction) -> bool:
            if args.transaction_ids and txn.id not in ids:
                return False
            if not matches_search(txn, args.search):
                return False
            if args.types and ("income" if txn.amount < 0 else "expense") not in args.types:
                return False
            if category_ids is not None and txn.category_id not in category_ids:
                return False
            if account_ids is not None and txn.account_id not in account_ids:
                return False
            if merchants is not None and (txn.merchant or "").lower() not in merchants:
                return False
            if args.start_date and txn.date < args.start_date:
                return False
            if args.end_date and txn.date > args.end_date:
                return False
            return True

        return [txn for txn in self.ledger.transactions() if keep(txn)]
