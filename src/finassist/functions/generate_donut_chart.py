from __future__ import annotations

from collections import defaultdict
import datetime as dt
from typing import Any, Literal

from pydantic import BaseModel, Field

from ..core.function import Function
from ..domain import Category, Period, period_bounds
from ..utilities import today

UNCATEGORIZED_COLOR = "#737373"


class GenerateDonutChartParams(BaseModel):
    title: str = Field(description="Chart title displayed above the visualization")
    breakdown_type: Literal["spending_by_category", "income_by_category"] = Field(
        description="What to break down by category"
    )
    period: Period = Field(description="Time period for the breakdown")
    parent_category: str | None = Field(
        default=None,
        description="Optional: show only subcategories of this parent category "
        "(e.g., 'Dining' to see Restaurant, Fast Food, etc.)",
    )


class GenerateDonutChart(Function):
    """Generate a donut chart showing category breakdown.

    Use for spending by category or income by category visualizations. Can show all top-level
    categories OR the subcategories of a specific parent category.
    """

    Params = GenerateDonutChartParams

    def call(self, params: dict[str, Any]) -> dict[str, Any]:
        args = self.parse_params(params)
        self.report_progress("Generating donut chart...")

        start, end = period_bounds(args.period, today())
        categories = {c.id: c for c in self.ledger.categories()}
        totals = self._category_totals(args.breakdown_type, start, end)

        if args.parent_category:
            parent = self.ledger.find_category(args.parent_category)
            if parent is None:
                return {"error": "No data found for the specified category and period"}
            segments = self._segments(
                {cid: total for cid, total in totals.items() if cid in categories and categories[cid].parent_id == parent.id},
                categories,
            )
        else:
            # subcategory amounts count toward their top-level category
            rolled_up: dict[int | None, float] = defaultdict(float)
            for cid, total in totals.items():
                category = categories.get(cid)
                rolled_up[category.parent_id if category and category.parent_id else cid] += total
            segments = self._segments(rolled_up, categories)

        if not segments:
            return {"error": "No data found for the specified category and period"}

        return {
            "chart_type": "donut",
            "title": args.title,
            "data": {
                "segments": segments,
                "currency": self.ledger.currency,
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
            },
        }

    def _category_totals(self, breakdown_type: str, start: dt.date, end: dt.date) -> dict[int | None, float]:
        classification = "expense" if breakdown_type == "spending_by_category" else "income"
        totals: dict[int | None, float] = defaultdict(float)
        for txn in self.ledger.transactions():
            if not start <= txn.date <= end:
                continue
            # positive amounts are expenses, negative amounts are income
            if (txn.amount > 0) == (classification == "expense"):
                totals[txn.category_id] += abs(txn.amount)
        return totals

    @staticmethod
    def _segments(totals: dict[int | None, float], categories: dict[int, Category]) -> list[dict[str, Any]]:
        totals = {cid: total for cid, total in totals.items() if total}
        grand_total = sum(totals.values())
        segments = []
        for cid, total in sorted(totals.items(), key=lambda item: -item[1]):
            category = categories.get(cid)
            segments.append(
                {
                    "id": cid,
                    "name": category.name if category else "Uncategorized",
                    "amount": round(total, 2),
                    "percentage": round(total / grand_total * 100, 1),
                    "color": category.color if category else UNCATEGORIZED_COLOR,
                }
            )
        return segments
