from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ..core.function import Function


class CreateTagParams(BaseModel):
    name: str = Field(min_length=1, description="Name of the tag to create")


class CreateTag(Function):
    """Use this to create a new tag for labeling transactions.

    Tags are flexible labels; unlike categories, a transaction can carry several tags.
    Common tags include "Tax Deductible", "Reimbursable", "Business" and "Vacation".
    """

    Params = CreateTagParams

    def call(self, params: dict[str, Any]) -> dict[str, Any]:
        args = self.parse_params(params)
        self.report_progress(f"Creating tag '{args.name}'...")

        existing = self.ledger.find_tag(args.name)
        if existing is not None:
            return {"error": f"Tag '{args.name}' already exists", "tag_id": existing.id}

        try:
            tag = self.ledger.create_tag(args.name)
        except ValueError as e:
            return {"error": str(e)}
        self.broadcast_data_changed()

        return {"success": True, "tag_id": tag.id, "name": tag.name}
