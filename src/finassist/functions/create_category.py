from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ..core.function import Function
from ..domain import Classification


class CreateCategoryParams(BaseModel):
    name: str = Field(min_length=1, description="Name of the category")
    classification: Classification = Field(description="Whether this is an income or expense category")
    icon: str | None = Field(default=None, description="Lucide icon name for the category (e.g., 'coffee', 'car', 'home')")
    parent_name: str | None = Field(default=None, description="Name of parent category if creating a subcategory")


class CreateCategory(Function):
    """Use this to create a new category for organizing transactions.

    Categories are classified as either "income" or "expense". Create a subcategory by giving the
    name of an existing parent category; the subcategory inherits the parent's color.
    Create categories before assigning transactions to them.
    """

    Params = CreateCategoryParams

    def call(self, params: dict[str, Any]) -> dict[str, Any]:
        args = self.parse_params(params)
        self.report_progress(f"Creating category '{args.name}'...")

        existing = self.ledger.find_category(args.name)
        if existing is not None:
            return {"error": f"Category '{args.name}' already exists", "category_id": existing.id}

        parent = None
        if args.parent_name:
            parent = self.ledger.find_category(args.parent_name)
            if parent is None:
                return {"error": f"Parent category '{args.parent_name}' not found"}

        try:
            category = self.ledger.create_category(
                args.name,
                args.classification,
                icon=args.icon or "tag",
                parent=parent,
            )
        except ValueError as e:
            return {"error": str(e)}
        self.broadcast_data_changed()

        return {
            "success": True,
            "category_id": category.id,
            "name": category.name,
            "classification": category.classification,
            "parent_name": parent.name if parent else None,
        }
