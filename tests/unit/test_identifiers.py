"""Unit tests for identifier and ORDER BY validation."""

import pytest

from localbridge.query_builder.identifiers import (
    identifier_parts,
    is_valid_identifier,
    is_valid_order_by,
    strip_identifier_quotes,
)


class TestIsValidIdentifier:
    @pytest.mark.parametrize("value", ["users", "schema.table_1", "Orders2024", "_tmp", "a.b.c"])
    def test_accepts_allowed_characters(self, value):
        assert is_valid_identifier(value)

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "users; DROP TABLE x",
            "user-name",
            "name with space",
            "`users`",
            '"users"',
            "users--",
            "tåble",
        ],
    )
    def test_rejects_everything_else(self, value):
        assert not is_valid_identifier(value)

    @pytest.mark.parametrize("value", [None, 42, ["users"]])
    def test_rejects_non_strings(self, value):
        assert not is_valid_identifier(value)

    def test_has_no_length_cap(self):
        assert is_valid_identifier("a" * 500)


class TestIdentifierHelpers:
    def test_strip_quotes(self):
        assert strip_identifier_quotes("`users`") == "users"
        assert strip_identifier_quotes('"users"') == "users"
        assert strip_identifier_quotes("  users ") == "users"

    def test_identifier_parts_rejects_empty_segments(self):
        assert identifier_parts("sales.orders") == ["sales", "orders"]
        assert identifier_parts("a..b") == []
        assert identifier_parts(".a") == []
        assert identifier_parts("a.") == []


class TestIsValidOrderBy:
    @pytest.mark.parametrize(
        "clause",
        ["created_at", "created_at DESC", "created_at DESC, id ASC", "name asc", "a.b Desc,c"],
    )
    def test_accepts_columns_with_directions(self, clause):
        assert is_valid_order_by(clause)

    @pytest.mark.parametrize(
        "clause",
        [
            "",
            "   ",
            "created_at; DROP TABLE users",
            "created_at DESC, ",
            "id, , name",
            "created_at DOWN",
            "created_at DESC NULLS LAST",
            "RAND()",
            "1 = 1",
        ],
    )
    def test_rejects_anything_else(self, clause):
        assert not is_valid_order_by(clause)
