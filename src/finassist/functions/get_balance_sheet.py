from __future__ import annotations

from typing import Any

from ..core.function import Function


class GetBalanceSheet(Function):
    """Use this to get the user's balance sheet: net worth, total assets and total liabilities, with per-account balances.

    Use it for questions about net worth, what the user owns, or what they owe.
    """

    def call(self, params: dict[str, Any]) -> dict[str, Any]:
        self.report_progress("Calculating net worth...")
        accounts = self.ledger.accounts()
        assets = [a for a in accounts if a.classification == "asset"]
        liabilities = [a for a in accounts if a.classification == "liability"]

        total_assets = round(sum(a.balance for a in assets), 2)
        total_liabilities = round(sum(a.balance for a in liabilities), 2)
        return {
            "currency": self.ledger.currency,
            "net_worth": round(total_assets - total_liabilities, 2),
            "assets": {"total": total_assets, "accounts": [{"name": a.name, "balance": a.balance} for a in assets]},
            "liabilities": {
                "total": total_liabilities,
                "accounts": [{"name": a.name, "balance": a.balance} for a in liabilities],
            },
        }
