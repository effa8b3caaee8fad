import logging

import pytest

from finassist.utilities import format_json, humanize, suppress_logs, to_snake_case


class TestSnakeCase:
    def test_pascal_case(self):
        assert to_snake_case("GetTransactions") == "get_transactions"

    def test_camel_case(self):
        assert to_snake_case("getBalanceSheet") == "get_balance_sheet"

    def test_already_snake_case(self):
        assert to_snake_case("create_tag") == "create_tag"

    def test_acronyms(self):
        assert to_snake_case("HTTPHeader") == "http_header"

    def test_mixed_case_with_acronyms(self):
        assert to_snake_case("importCSVRows") == "import_csv_rows"

    def test_with_numbers(self):
        assert to_snake_case("test123Case") == "test123_case"

    def test_spaces_and_hyphens(self):
        assert to_snake_case("  web-search   tool  ") == "web_search_tool"


class TestHumanize:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("get_cash_flow", "Get cash flow"),
            ("category_id", "Category"),
            ("web_search", "Web search"),
            ("CreateRule", "Createrule"),
        ],
    )
    def test_humanize(self, text, expected):
        assert humanize(text) == expected


class TestFormatJson:
    def test_nested(self):
        assert format_json({"a": [1, None], "b": True}) == '{\n  "a": [\n    1,\n    null\n  ],\n  "b": true\n}'

    def test_empty(self):
        assert format_json({}) == "{}"
        assert format_json([]) == "[]"

    def test_json_string(self):
        assert format_json('{"x": 1}') == '{\n  "x": 1\n}'


class TestSuppressLogs:
    def test_level_restored(self):
        logger = logging.getLogger("finassist.tests.suppress")
        logger.setLevel(logging.DEBUG)

        with suppress_logs(logger):
            assert logger.getEffectiveLevel() == logging.ERROR
        assert logger.getEffectiveLevel() == logging.DEBUG
