from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ..core.function import Function


class DeleteCategoryParams(BaseModel):
    names: list[str] = Field(description="Names of the categories to delete")


class DeleteCategory(Function):
    """Use this to delete one or more categories by name.

    Transactions in a deleted category become uncategorized and its subcategories become
    top-level categories. Always confirm with the user before deleting categories,
    especially ones that contain transactions.
    """

    Params = DeleteCategoryParams

    def call(self, params: dict[str, Any]) -> dict[str, Any]:
        args = self.parse_params(params)
        if not args.names:
            return {"error": "No category names provided"}

        self.report_progress("Finding categories to delete...")

        deleted: list[str] = []
        not_found: list[str] = []
        uncategorized = 0
        for name in args.names:
            category = self.ledger.find_category(name)
            if category is None:
                not_found.append(name)
                continue

            self.report_progress(f"Deleting '{category.name}'...")
            uncategorized += self.ledger.delete_category(category)
            deleted.append(category.name)

        if deleted:
            self.broadcast_data_changed()

        result: dict[str, Any] = {
            "success": bool(deleted),
            "deleted_count": len(deleted),
            "deleted": deleted,
            "transactions_uncategorized": uncategorized,
        }
        if not_found:
            result["not_found"] = not_found
        return result
