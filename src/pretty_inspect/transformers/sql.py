"""SqlTransformer: best-effort detection, formatting and highlighting of SQL.

This is not a parser. Detection needs a leading statement keyword and a
clause keyword; formatting substitutes bound parameters, collapses
whitespace and breaks lines before the major clauses.
"""

from __future__ import annotations

import html
import json
import logging
import re
from collections.abc import Iterator, Mapping, Sequence
from enum import StrEnum, auto
from typing import Any

from pretty_inspect.tree.nodes import NodeKind, RenderedNode

__all__ = ["SqlToken", "SqlTransformer", "format_binding"]

logger = logging.getLogger(__name__)

# Statement must start with one of these...
_STATEMENT_RE = re.compile(r"^(SELECT|INSERT|UPDATE|DELETE|CREATE|ALTER|DROP|WITH)\s+", re.IGNORECASE)
# ...and mention at least one of these somewhere.
_CLAUSE_RE = re.compile(r"(FROM|WHERE|SET|VALUES|INTO|TABLE)\s+", re.IGNORECASE)

# Longest alternatives first so "LEFT JOIN" wins over "JOIN".
_MAJOR_CLAUSES = (
    "SELECT",
    "INSERT INTO",
    "DELETE FROM",
    "UPDATE",
    "FROM",
    "WHERE",
    "LEFT JOIN",
    "RIGHT JOIN",
    "INNER JOIN",
    "JOIN",
    "ORDER BY",
    "GROUP BY",
    "HAVING",
    "LIMIT",
    "UNION",
    "VALUES",
    "SET",
)
_CLAUSE_BREAK_RE = re.compile(
    r"\b(" + "|".join(c.replace(" ", r"\s") for c in _MAJOR_CLAUSES) + r")\b",
    re.IGNORECASE,
)
# Commas outside parentheses.
_COLUMN_COMMA_RE = re.compile(r",(?=[^()]*(?:\(|$))")
_WHITESPACE_RE = re.compile(r"\s+")
_NAMED_PLACEHOLDER_RE = re.compile(r":[A-Za-z_]\w*")

_PRIMARY_PREFIXES = (
    "SELECT",
    "INSERT",
    "UPDATE",
    "DELETE",
    "FROM",
    "WHERE",
    "ORDER BY",
    "GROUP BY",
    "HAVING",
    "LIMIT",
    "UNION",
    "VALUES",
    "SET",
)
_CONTINUATION_PREFIXES = ("LEFT JOIN", "RIGHT JOIN", "INNER JOIN", "JOIN", "AND ", "OR ")
_INDENT = "  "

KEYWORDS = frozenset(
    """
    SELECT FROM WHERE JOIN LEFT RIGHT INNER OUTER CROSS ON AND OR NOT IN EXISTS
    BETWEEN LIKE IS NULL ORDER BY GROUP HAVING LIMIT OFFSET AS INSERT INTO VALUES
    UPDATE SET DELETE CREATE TABLE ALTER DROP INDEX VIEW DISTINCT COUNT SUM AVG
    MAX MIN UNION ALL CASE WHEN THEN ELSE END WITH RECURSIVE ASC DESC
    """.split()
)

_TOKEN_RE = re.compile(
    r"(?P<string>'(?:[^'\\]|\\.)*'?)|(?P<number>\b\d+(?:\.\d+)?\b)|(?P<word>\b[A-Za-z_]\w*\b)"
)

ANSI_RESET = "\033[0m"
_ANSI = {
    "keyword": "\033[1;34m",
    "string": "\033[0;32m",
    "number": "\033[0;36m",
}
_HTML_STYLE = {
    "keyword": "color: #0066cc; font-weight: bold;",
    "string": "color: #00aa00;",
    "number": "color: #aa6600;",
}


class SqlToken(StrEnum):
    KEYWORD = auto()
    STRING = auto()
    NUMBER = auto()
    PLAIN = auto()


def _addslashes(text: str) -> str:
    return (
        text.replace("\\", "\\\\").replace("'", "\\'").replace('"', '\\"').replace("\0", "\\0")
    )


def format_binding(value: Any) -> str:
    """Render one bound parameter as an SQL literal."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return "(" + ", ".join(format_binding(item) for item in value) + ")"
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    return "'" + _addslashes(str(value)) + "'"


class SqlTransformer:
    """Detect, format, highlight and optionally EXPLAIN SQL statements."""

    def is_sql(self, text: Any) -> bool:
        if not isinstance(text, str):
            return False
        stripped = text.strip()
        return bool(_STATEMENT_RE.match(stripped)) and bool(_CLAUSE_RE.search(stripped))

    def format(self, sql: str, bindings: Sequence[Any] | Mapping[str, Any] | None = None) -> str:
        if bindings:
            sql = self.replace_bindings(sql, bindings)
        sql = _WHITESPACE_RE.sub(" ", sql).strip()
        sql = _CLAUSE_BREAK_RE.sub(
            lambda match: "\n" + _WHITESPACE_RE.sub(" ", match.group(1)).upper(), sql
        )
        sql = _COLUMN_COMMA_RE.sub(",\n", sql)

        lines: list[str] = []
        clause_level = 0
        for raw_line in sql.split("\n"):
            line = raw_line.strip()
            if not line:
                continue
            upper = line.upper()
            if upper.startswith(_CONTINUATION_PREFIXES):
                level = clause_level = 1
            elif upper.startswith(_PRIMARY_PREFIXES):
                level = clause_level = 0
            else:
                level = clause_level + 1
            lines.append(_INDENT * level + line)
        return "\n".join(lines)

    def replace_bindings(self, sql: str, bindings: Sequence[Any] | Mapping[str, Any]) -> str:
        """Substitute ``:name`` placeholders (mapping) or ``?`` (sequence)."""
        if isinstance(bindings, Mapping):
            if _NAMED_PLACEHOLDER_RE.search(sql):
                for key, value in bindings.items():
                    name = str(key).lstrip(":")
                    literal = format_binding(value)
                    sql = re.sub(rf":{re.escape(name)}\b", lambda _m, lit=literal: lit, sql)
                return sql
            values: list[Any] = list(bindings.values())
        else:
            values = list(bindings)

        remaining = iter(values)

        def _next_literal(match: re.Match[str]) -> str:
            try:
                return format_binding(next(remaining))
            except StopIteration:
                return match.group(0)

        return re.sub(r"\?", _next_literal, sql)

    # ------------------------------------------------------------------
    # Highlighting
    # ------------------------------------------------------------------

    def tokens(self, sql: str) -> Iterator[tuple[SqlToken, str]]:
        """Classify ``sql`` into runs; concatenated texts reproduce the input."""
        position = 0
        for match in _TOKEN_RE.finditer(sql):
            if match.start() > position:
                yield SqlToken.PLAIN, sql[position : match.start()]
            text = match.group(0)
            if match.lastgroup == "string":
                yield SqlToken.STRING, text
            elif match.lastgroup == "number":
                yield SqlToken.NUMBER, text
            elif text.upper() in KEYWORDS:
                yield SqlToken.KEYWORD, text
            else:
                yield SqlToken.PLAIN, text
            position = match.end()
        if position < len(sql):
            yield SqlToken.PLAIN, sql[position:]

    def highlight_for_terminal(self, sql: str) -> str:
        parts = []
        for token, text in self.tokens(sql):
            if token is SqlToken.PLAIN:
                parts.append(text)
            else:
                parts.append(f"{_ANSI[token]}{text}{ANSI_RESET}")
        return "".join(parts)

    def highlight_for_html(self, sql: str, line_breaks: bool = True) -> str:
        """Escape and wrap tokens in spans; ``line_breaks`` adds ``<br />``.

        Pass ``line_breaks=False`` when the result goes inside ``<pre>``.
        """
        parts = []
        for token, text in self.tokens(sql):
            escaped = html.escape(text)
            if token is SqlToken.PLAIN:
                parts.append(escaped)
            else:
                parts.append(f'<span class="sql-{token}" style="{_HTML_STYLE[token]}">{escaped}</span>')
        markup = "".join(parts)
        return markup.replace("\n", "<br />\n") if line_breaks else markup

    # ------------------------------------------------------------------
    # Nodes and EXPLAIN
    # ------------------------------------------------------------------

    def explain(
        self,
        sql: str,
        connection: Any,
        bindings: Sequence[Any] | Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]] | None:
        """Run ``EXPLAIN`` for a SELECT on a DB-API 2.0 connection.

        Returns the plan rows as dictionaries, or None for non-SELECT
        statements and when the database rejects the query.
        """
        if not sql.lstrip().upper().startswith("SELECT"):
            return None
        # PEP 249 exposes the driver's base exception as Connection.Error.
        driver_error = getattr(connection, "Error", Exception)
        cursor = connection.cursor()
        try:
            if bindings:
                cursor.execute(f"EXPLAIN {sql}", bindings)
            else:
                cursor.execute(f"EXPLAIN {sql}")
            rows = cursor.fetchall()
            columns = [column[0] for column in cursor.description or ()]
        except driver_error:
            logger.debug("EXPLAIN failed for %r", sql, exc_info=True)
            return None
        finally:
            cursor.close()
        return [dict(zip(columns, row, strict=False)) for row in rows]

    def create_sql_node(
        self,
        sql: str,
        bindings: Sequence[Any] | Mapping[str, Any] | None = None,
        explain: Sequence[Mapping[str, Any]] | None = None,
    ) -> RenderedNode:
        """Return a ``sql`` node holding the formatted statement."""
        node = RenderedNode(
            kind=NodeKind.SQL,
            text=self.format(sql, bindings),
            metadata={
                "original": sql,
                "bindings": dict(bindings) if isinstance(bindings, Mapping) else list(bindings or ()),
                "explain": list(explain) if explain else None,
            },
        )
        if explain:
            rows = "\n".join(
                "  • " + json.dumps(dict(row), ensure_ascii=False, default=str) for row in explain
            )
            node.add_child(RenderedNode(kind=NodeKind.SQL_EXPLAIN, text=f"EXPLAIN:\n{rows}"))
        return node
