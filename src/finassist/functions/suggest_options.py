from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ..core.function import Function


class Option(BaseModel):
    label: str = Field(description="Short display text (2-4 words)")
    prompt: str = Field(description="The full prompt to send when clicked (can be more detailed than label)")


class SuggestOptionsParams(BaseModel):
    options: list[Option] = Field(
        min_length=2,
        max_length=4,
        description="2-4 concise options for the user to choose from, each a short action phrase",
    )


class SuggestOptions(Function):
    """Present clickable options to the user when they need to choose between specific paths.

    Use this ONLY when different options would lead to meaningfully different analyses or actions.
    Do NOT use this for simple yes/no questions or when you should just fetch data yourself.
    """

    Params = SuggestOptionsParams

    def call(self, params: dict[str, Any]) -> dict[str, Any]:
        # the options are rendered from the stored tool call arguments, nothing to do here
        args = self.parse_params(params)
        return {"success": True, "options_count": len(args.options), "message": "Options presented to user"}
