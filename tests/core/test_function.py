from __future__ import annotations

import logging
from typing import Any, Literal
from unittest.mock import Mock

from pydantic import BaseModel, Field
import pytest

from finassist.core.function import (
    Function,
    build_schema,
    extract_description,
    infer_strict_mode,
    pydantic_to_schema,
)
from finassist.functions import SuggestOptions
from finassist.types_.core import FunctionDefinition


class LookupParams(BaseModel):
    query: str = Field(description="What to look up")
    limit: int | None = Field(default=None, description="Maximum number of results")


class Lookup(Function):
    """Look things up in the ledger."""

    Params = LookupParams

    def call(self, params: dict[str, Any]) -> dict[str, Any]:
        args = self.parse_params(params)
        self.report_progress(f"Looking up {args.query}...")
        return {"query": args.query}


class Ping(Function):
    """Check that the assistant is alive.

    Returns
    -------
    dict
        Always a pong
    """

    def call(self, params: dict[str, Any]) -> dict[str, Any]:
        return {"pong": True}


class Undocumented(Lookup):
    pass


class TestInferStrictMode:
    def test_all_properties_required(self):
        schema = build_schema({"a": {"type": "string"}, "b": {"type": "integer"}}, ["b", "a"])
        assert infer_strict_mode(schema) is True

    def test_optional_property(self):
        schema = build_schema({"a": {"type": "string"}, "b": {"type": "integer"}}, ["a"])
        assert infer_strict_mode(schema) is False

    def test_no_properties(self):
        assert infer_strict_mode(build_schema()) is True

    def test_missing_keys(self):
        assert infer_strict_mode({"type": "object"}) is True
        assert infer_strict_mode({"type": "object", "properties": {"a": {"type": "string"}}}) is False


class TestPydanticToSchema:
    def test_flat_model(self):
        schema = pydantic_to_schema(LookupParams)
        assert schema == {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "What to look up"},
                "limit": {"type": "integer", "description": "Maximum number of results"},
            },
            "required": ["query"],
            "additionalProperties": False,
        }

    def test_nested_objects_forbid_additional_properties(self):
        class Leaf(BaseModel):
            value: str

        class Branch(BaseModel):
            leaf: Leaf
            leaves: list[Leaf]

        schema = pydantic_to_schema(Branch)
        assert "$defs" not in schema
        assert schema["additionalProperties"] is False
        assert schema["properties"]["leaf"]["additionalProperties"] is False
        assert schema["properties"]["leaves"]["items"]["additionalProperties"] is False
        assert schema["properties"]["leaves"]["items"]["required"] == ["value"]

    def test_property_names_are_kept(self):
        class Awkward(BaseModel):
            title: str
            default: Literal["a", "b"]

        schema = pydantic_to_schema(Awkward)
        assert set(schema["properties"]) == {"title", "default"}
        assert schema["properties"]["default"]["enum"] == ["a", "b"]
        assert "title" not in schema["properties"]["title"]

    def test_array_item_objects(self):
        schema = SuggestOptions(Mock()).params_schema()
        options = schema["properties"]["options"]
        assert options["type"] == "array"
        assert options["minItems"] == 2
        assert options["maxItems"] == 4
        assert options["items"]["additionalProperties"] is False
        assert set(options["items"]["required"]) == {"label", "prompt"}

    def test_validation_keywords_are_published(self):
        class Page(BaseModel):
            page: int = Field(ge=1)
            query: str = Field(min_length=1)

        schema = pydantic_to_schema(Page)
        assert schema["properties"]["page"] == {"type": "integer", "minimum": 1}
        assert schema["properties"]["query"] == {"type": "string", "minLength": 1}


class TestExtractDescription:
    def test_plain_docstring(self):
        assert extract_description(Lookup) == "Look things up in the ledger."

    def test_sections_are_not_part_of_description(self):
        assert extract_description(Ping) == "Check that the assistant is alive."

    def test_docstring_is_not_inherited(self):
        assert extract_description(Undocumented) is None


class TestFunction:
    @pytest.fixture
    def lookup(self):
        return Lookup(Mock())

    def test_name(self, lookup):
        assert lookup.name == "lookup"

    def test_explicit_function_name(self):
        class Renamed(Lookup):
            """Renamed lookup."""

            function_name = "find_things"

        assert Renamed(Mock()).name == "find_things"

    def test_missing_description_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="finassist.core.function"):
            assert Undocumented(Mock()).description == ""
        assert "should have a docstring" in caplog.text

    def test_strict_mode_is_inferred(self, lookup):
        assert lookup.strict_mode() is False
        assert Ping(Mock()).strict_mode() is True

    def test_to_definition(self, lookup):
        definition = lookup.to_definition()
        assert isinstance(definition, FunctionDefinition)
        assert definition.name == "lookup"
        assert definition.description == "Look things up in the ledger."
        assert definition.params_schema == lookup.params_schema()
        assert definition.strict is False

    def test_schema_without_params(self):
        assert Ping(Mock()).params_schema() == build_schema()

    def test_progress_last_registration_wins(self, lookup):
        first, second = Mock(), Mock()
        lookup.on_progress(first).on_progress(second)
        lookup.call({"query": "rent"})

        first.assert_not_called()
        second.assert_called_once_with("Looking up rent...")

    def test_progress_cleared(self, lookup):
        callback = Mock()
        lookup.on_progress(callback).on_progress(None)
        lookup.call({"query": "rent"})
        callback.assert_not_called()

    def test_broadcast_data_changed(self):
        notifier = Mock()
        Lookup(Mock(), on_data_changed=notifier).broadcast_data_changed()
        notifier.assert_called_once_with()

    def test_parse_params_without_params(self):
        with pytest.raises(TypeError, match="does not declare Params"):
            Ping(Mock()).parse_params({})

    def test_call_not_implemented(self):
        class Bare(Function):
            """Does nothing."""

        with pytest.raises(NotImplementedError):
            Bare(Mock()).call({})
