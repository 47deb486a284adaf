"""Tests for SQL detection, formatting, binding substitution and EXPLAIN.

Detection is a heuristic: a statement keyword must lead the text and a
clause keyword must follow somewhere. The expected outcomes below document
that rule rather than full SQL parsing.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator

import pytest

from pretty_inspect import NodeKind
from pretty_inspect.transformers import SqlTransformer
from pretty_inspect.transformers.sql import SqlToken, format_binding


@pytest.fixture
def sql() -> SqlTransformer:
    return SqlTransformer()


@pytest.fixture
def connection() -> Iterator[sqlite3.Connection]:
    conn = sqlite3.connect(":memory:")
    conn.execute("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)")
    conn.execute("INSERT INTO users (name) VALUES ('ada'), ('grace')")
    yield conn
    conn.close()


class TestDetection:
    def test_plain_select(self, sql: SqlTransformer) -> None:
        assert sql.is_sql("SELECT * FROM users WHERE id = 1")

    def test_prose_mentioning_keywords_is_not_sql(self, sql: SqlTransformer) -> None:
        # Prose does not start with a statement keyword.
        assert not sql.is_sql("The query to SELECT users FROM database needs testing")

    @pytest.mark.parametrize(
        "statement",
        [
            "  insert into logs values (1)",
            "UPDATE users SET name = 'x'",
            "DELETE FROM users",
            "CREATE TABLE t (id int)",
            "WITH recent AS (SELECT 1) SELECT * FROM recent",
        ],
    )
    def test_statements(self, sql: SqlTransformer, statement: str) -> None:
        assert sql.is_sql(statement)

    def test_statement_without_clause_keyword(self, sql: SqlTransformer) -> None:
        assert not sql.is_sql("SELECT 1")

    def test_leading_comment_is_a_known_false_negative(self, sql: SqlTransformer) -> None:
        assert not sql.is_sql("-- report\nSELECT * FROM users")

    def test_non_strings(self, sql: SqlTransformer) -> None:
        assert not sql.is_sql(None)
        assert not sql.is_sql(b"SELECT * FROM t")


class TestFormat:
    def test_clause_line_breaks(self, sql: SqlTransformer) -> None:
        formatted = sql.format("select id, name   from users where id = 1 order by name")
        assert formatted == "SELECT id,\n  name\nFROM users\nWHERE id = 1\nORDER BY name"

    def test_joins_and_conditions_are_indented(self, sql: SqlTransformer) -> None:
        formatted = sql.format("SELECT * FROM a LEFT JOIN b ON a.id = b.a_id WHERE x = 1 AND y = 2")
        assert "\n  LEFT JOIN b ON a.id = b.a_id" in formatted
        assert formatted.endswith("WHERE x = 1 AND y = 2")

    def test_commas_inside_parentheses_are_kept(self, sql: SqlTransformer) -> None:
        formatted = sql.format("SELECT COUNT(a, b) FROM t")
        assert "COUNT(a, b)" in formatted


class TestBindings:
    def test_positional(self, sql: SqlTransformer) -> None:
        result = sql.replace_bindings("SELECT * FROM t WHERE a = ? AND b = ? AND c = ?", [None, True, 2.5])
        assert result == "SELECT * FROM t WHERE a = NULL AND b = 1 AND c = 2.5"

    def test_missing_positional_values_keep_placeholder(self, sql: SqlTransformer) -> None:
        assert sql.replace_bindings("a = ? AND b = ?", [1]) == "a = 1 AND b = ?"

    def test_named(self, sql: SqlTransformer) -> None:
        result = sql.replace_bindings("WHERE name = :name AND name_id = :name_id", {"name": "x", ":name_id": 3})
        assert result == "WHERE name = 'x' AND name_id = 3"

    def test_mapping_without_named_placeholders_is_positional(self, sql: SqlTransformer) -> None:
        assert sql.replace_bindings("a = ?", {"first": "v"}) == "a = 'v'"

    @pytest.mark.parametrize(
        ("value", "literal"),
        [
            (None, "NULL"),
            (False, "0"),
            (7, "7"),
            ("O'Brien", "'O\\'Brien'"),
            ('say "hi"', "'say \\\"hi\\\"'"),
            ([1, "a"], "(1, 'a')"),
            (b"raw", "'raw'"),
        ],
    )
    def test_literals(self, value: object, literal: str) -> None:
        assert format_binding(value) == literal

    def test_format_substitutes_bindings(self, sql: SqlTransformer) -> None:
        assert "WHERE id = 5" in sql.format("SELECT * FROM users WHERE id = ?", [5])


class TestHighlighting:
    def test_tokens_reproduce_input(self, sql: SqlTransformer) -> None:
        statement = "SELECT name, 'it''s' FROM users WHERE id = 42"
        assert "".join(text for _, text in sql.tokens(statement)) == statement

    def test_token_classes(self, sql: SqlTransformer) -> None:
        tokens = [(token, text) for token, text in sql.tokens("select 'a' from t where n = 1.5")]
        assert (SqlToken.KEYWORD, "select") in tokens
        assert (SqlToken.STRING, "'a'") in tokens
        assert (SqlToken.NUMBER, "1.5") in tokens
        assert (SqlToken.PLAIN, "t") in tokens

    def test_terminal_highlighting(self, sql: SqlTransformer) -> None:
        highlighted = sql.highlight_for_terminal("SELECT 1")
        assert highlighted.startswith("\033[1;34mSELECT\033[0m")

    def test_html_highlighting_escapes(self, sql: SqlTransformer) -> None:
        markup = sql.highlight_for_html("SELECT *\nFROM t WHERE a < 1")
        assert '<span class="sql-keyword"' in markup
        assert "&lt;" in markup
        assert "<br />\n" in markup

    def test_html_without_line_breaks(self, sql: SqlTransformer) -> None:
        assert "<br />" not in sql.highlight_for_html("SELECT *\nFROM t", line_breaks=False)


class TestExplainAndNodes:
    def test_explain_select(self, sql: SqlTransformer, connection: sqlite3.Connection) -> None:
        rows = sql.explain("SELECT * FROM users WHERE id = ?", connection, [1])
        assert rows
        assert all(isinstance(row, dict) for row in rows)
        assert "opcode" in rows[0]

    def test_explain_skips_non_select(self, sql: SqlTransformer, connection: sqlite3.Connection) -> None:
        assert sql.explain("DELETE FROM users", connection) is None

    def test_failed_explain_returns_none(self, sql: SqlTransformer, connection: sqlite3.Connection) -> None:
        assert sql.explain("SELECT * FROM missing_table", connection) is None

    def test_sql_node(self, sql: SqlTransformer) -> None:
        node = sql.create_sql_node("select * from users where id = :id", {"id": 3})
        assert node.kind is NodeKind.SQL
        assert node.text == "SELECT *\nFROM users\nWHERE id = 3"
        assert node.metadata["original"] == "select * from users where id = :id"
        assert node.metadata["bindings"] == {"id": 3}
        assert node.metadata["explain"] is None
        assert node.children == []

    def test_sql_node_with_explain_rows(self, sql: SqlTransformer) -> None:
        node = sql.create_sql_node("SELECT * FROM users", explain=[{"detail": "SCAN users"}])
        explain = node.find_child(NodeKind.SQL_EXPLAIN)
        assert explain is not None
        assert explain.text == 'EXPLAIN:\n  • {"detail": "SCAN users"}'
