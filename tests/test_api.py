"""Unit tests for the public helpers: render, pretty_dump and the pd_* family."""

from __future__ import annotations

import io
import sqlite3
from collections.abc import Iterator

import pytest

from pretty_inspect import (
    Channel,
    DumpHistoryStorage,
    ThemeRegistry,
    pd,
    pd_assert,
    pd_auto_diff,
    pd_clear_history,
    pd_diff,
    pd_sql,
    pd_when,
    pretty_dump,
    render,
)
from pretty_inspect.api import RULE_WIDTH, default_themes, detect_channel
from pretty_inspect.formatter.config import SHOW_CONTEXT_ENV

RULE = "=" * RULE_WIDTH


@pytest.fixture(autouse=True)
def _no_context_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(SHOW_CONTEXT_ENV, raising=False)


@pytest.fixture
def connection() -> Iterator[sqlite3.Connection]:
    conn = sqlite3.connect(":memory:")
    conn.execute("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)")
    yield conn
    conn.close()


class TestRender:
    def test_cli_text(self) -> None:
        output = render({"a": 1}, color=False)
        assert "array(1)" in output
        assert "['a'] => int(1)" in output

    def test_web_fragment(self) -> None:
        output = render([1], "web", show_context=False)
        assert output.startswith("<style>")
        assert 'class="pretty-dump"' in output

    def test_unknown_channel(self) -> None:
        with pytest.raises(ValueError):
            render(1, "email")

    def test_defaults(self) -> None:
        assert detect_channel() is Channel.CLI
        assert isinstance(default_themes(), ThemeRegistry)


class TestPrettyDump:
    def test_writes_to_stream(self) -> None:
        buffer = io.StringIO()
        assert pretty_dump({"a": 1}, stream=buffer) is None
        assert buffer.getvalue() == "array(1) ($value)\n  └── ['a'] => int(1) ($value['a'])\n"

    def test_writes_to_stdout_by_default(self, capsys: pytest.CaptureFixture[str]) -> None:
        pd(7, color=False)
        assert capsys.readouterr().out == "int(7) ($value)\n"

    def test_returns_text_without_output(self) -> None:
        assert pretty_dump("hi", output=False, color=False) == 'string(2) "hi" ($value)'

    def test_alias(self) -> None:
        assert pd is pretty_dump

    def test_options_reach_the_formatter(self) -> None:
        output = pretty_dump(list(range(10)), output=False, color=False, max_items=2)
        assert "… truncated (items: 10, limit: 2)" in output

    def test_web_channel(self) -> None:
        output = pretty_dump({"a": 1}, channel="web", output=False, show_context=False)
        assert output is not None
        assert 'data-key="[&#x27;a&#x27;]"' in output


class TestConditionalDumps:
    def test_pd_when_false(self) -> None:
        buffer = io.StringIO()
        assert pd_when(1, False, stream=buffer) is None
        assert buffer.getvalue() == ""

    def test_pd_when_callable(self) -> None:
        assert pd_when([1, 2], len, output=False, color=False) is not None
        assert pd_when([], len, output=False, color=False) is None

    def test_pd_assert_passing(self) -> None:
        assert pd_assert(5, lambda v: v > 1, output=False, color=False) == "int(5) ($value)"

    def test_pd_assert_failing_terminal(self) -> None:
        output = pd_assert(5, lambda v: v > 10, "too small", output=False, color=False)
        assert output == "⚠ Assertion Failed: too small\nint(5) ($value)"

    def test_pd_assert_colored_banner(self) -> None:
        output = pd_assert(5, False, "too small", output=False, color=True)
        assert output is not None
        assert output.startswith("\033[1;31m⚠ Assertion Failed: too small\033[0m\n")

    def test_pd_assert_web_banner_is_escaped(self) -> None:
        output = pd_assert(5, False, "<bad>", channel="web", output=False, show_context=False)
        assert output is not None
        assert output.startswith('<div class="pretty-dump-assertion" role="alert"')
        assert "&lt;bad&gt;" in output
        assert "<style>" in output


class TestPdDiff:
    def test_terminal_summary(self) -> None:
        output = pd_diff(
            {"name": "John", "age": 30},
            {"name": "John", "age": 31, "city": "NYC"},
            output=False,
            color=False,
        )
        assert output is not None
        assert output.split("\n") == [
            RULE,
            "Diff Summary: +1 -0 ~1 =1",
            RULE,
            '  name: "John"',
            "~ age: 30 → 31",
            '+ city: "NYC"',
            RULE,
        ]

    def test_json_strings_are_decoded(self) -> None:
        output = pd_diff('{"a": 1}', '{"a": 2}', output=False, color=False)
        assert output is not None
        assert "~ a: 1 → 2" in output

    def test_plain_strings_compare_as_values(self) -> None:
        output = pd_diff("x", "y", output=False, color=False)
        assert output is not None
        assert '~ "x" → "y"' in output

    def test_colored_summary(self) -> None:
        output = pd_diff({"a": 1}, {"a": 1}, output=False, color=True)
        assert output is not None
        assert "\033[90m=1\033[0m" in output

    def test_web(self) -> None:
        output = pd_diff({"a": 1}, {"a": 2}, channel="web", output=False)
        assert output is not None
        assert output.startswith('<div class="pretty-dump-diff-block"')
        assert 'class="diff-count diff-count-modified"' in output
        assert '<div class="pretty-dump-diff">' in output

    def test_max_depth(self) -> None:
        output = pd_diff({"a": {"b": 1}}, {"a": {"b": 2}}, output=False, color=False, max_depth=1)
        assert output is not None
        assert "~ a: {\"b\": 1} → {\"b\": 2}" in output


class TestAutoDiff:
    def test_first_call_dumps_then_diffs(self) -> None:
        history = DumpHistoryStorage()
        outputs = [
            pd_auto_diff(value, output=False, color=False, history=history)
            for value in ({"count": 1}, {"count": 2})
        ]
        assert outputs[0] == "array(1) ($value)\n  └── ['count'] => int(1) ($value['count'])"
        assert outputs[1] is not None
        assert "~ count: 1 → 2" in outputs[1]
        assert len(history) == 1

    def test_stored_value_is_a_snapshot(self) -> None:
        history = DumpHistoryStorage()
        value = {"items": [1]}
        results = []
        for _ in range(2):
            results.append(pd_auto_diff(value, output=False, color=False, history=history))
            value["items"].append(2)
        assert results[1] is not None
        assert results[1].split("\n")[3:6] == ["items:", "    0: 1", "  + 1: 2"]

    def test_clear_history(self) -> None:
        history = DumpHistoryStorage()
        history.store("a.py:1", 1)
        history.store("b.py:2", 2)
        pd_clear_history("a.py:1", history=history)
        assert not history.has_history("a.py:1")
        assert history.has_history("b.py:2")
        pd_clear_history(history=history)
        assert len(history) == 0


class TestPdSql:
    def test_terminal_with_bindings(self) -> None:
        output = pd_sql("select * from users where id = ?", [3], output=False, color=False)
        assert output is not None
        lines = output.split("\n")
        assert lines[0] == RULE
        assert lines[1:5] == ["SQL Query", "  SELECT *", "  FROM users", "  WHERE id = 3"]
        assert "-" * RULE_WIDTH in lines
        assert "Bindings:" in lines
        assert "array(1) ($bindings)" in lines
        assert lines[-1] == RULE

    def test_without_bindings(self) -> None:
        output = pd_sql("DELETE FROM users", output=False, color=False)
        assert output is not None
        assert "Bindings:" not in output

    def test_explain_rows(self, connection: sqlite3.Connection) -> None:
        output = pd_sql("SELECT * FROM users WHERE id = ?", [1], connection, output=False, color=False)
        assert output is not None
        assert "  EXPLAIN:" in output

    def test_non_sql_falls_back_to_dump(self) -> None:
        assert pd_sql("hello there", output=False, color=False) == 'string(11) "hello there" ($value)'

    def test_web(self) -> None:
        output = pd_sql("SELECT * FROM t WHERE a = :a", {"a": "x"}, channel="web", output=False)
        assert output is not None
        assert output.startswith('<div class="pretty-dump-sql">')
        assert '<div class="pretty-dump-sql-bindings"><strong>Bindings:</strong>' in output
        assert '<pre class="sql-content">' in output
