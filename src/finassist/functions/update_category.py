from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ..core.function import Function


class UpdateCategoryParams(BaseModel):
    name: str | None = Field(default=None, description="Name of the category to update (use this OR names, not both)")
    names: list[str] | None = Field(
        default=None, description="Names of multiple categories to update with the same changes"
    )
    parent_name: str | None = Field(
        default=None,
        description="Name of the new parent category. Use null or an empty string to remove the parent "
        "and make it a top-level category.",
    )
    new_name: str | None = Field(
        default=None, description="New name for the category (only works with a single category, not bulk)"
    )
    icon: str | None = Field(default=None, description="New Lucide icon name for the category")


class UpdateCategory(Function):
    """Use this to update an existing category's properties.

    You can set or change the parent category (making it a subcategory), remove the parent
    (making it top-level), change the icon, or rename the category. Pass `names` to give several
    categories the same parent or icon in one call; renaming only works for a single category.
    """

    Params = UpdateCategoryParams

    def call(self, params: dict[str, Any]) -> dict[str, Any]:
        args = self.parse_params(params)
        names = args.names or ([args.name] if args.name else [])
        if not names:
            return {"error": "Must provide 'name' or 'names' of categories to update"}

        set_parent = "parent_name" in args.model_fields_set
        parent = None
        if set_parent and args.parent_name:
            parent = self.ledger.find_category(args.parent_name)
            if parent is None:
                return {"error": f"Parent category '{args.parent_name}' not found"}

        self.report_progress(f"Updating {len(names)} {'category' if len(names) == 1 else 'categories'}...")

        updated: list[dict[str, Any]] = []
        not_found: list[str] = []
        errors: list[str] = []
        for name in names:
            category = self.ledger.find_category(name)
            if category is None:
                not_found.append(name)
                continue

            if parent is not None and category.id in (parent.id, parent.parent_id):
                errors.append(f"Cannot set '{parent.name}' as parent of '{category.name}' (circular reference)")
                continue

            updates: dict[str, Any] = {}
            if set_parent:
                updates["parent_id"] = parent.id if parent else None
            if args.icon:
                updates["icon"] = args.icon
            if args.new_name and len(names) == 1:
                updates["name"] = args.new_name
            if not updates:
                continue

            try:
                category = self.ledger.update_category(category, updates)
            except ValueError as e:
                errors.append(str(e))
                continue
            parent_name = next((c.name for c in self.ledger.categories() if c.id == category.parent_id), None)
            updated.append({"name": category.name, "parent": parent_name, "icon": category.icon})

        if updated:
            self.broadcast_data_changed()

        result: dict[str, Any] = {"success": bool(updated), "updated_count": len(updated), "updated": updated}
        if not_found:
            result["not_found"] = not_found
        if errors:
            result["errors"] = errors
        return result
