"""Tests for TerminalRenderer output shape and colour handling."""

from __future__ import annotations

import io
from typing import Any

from pretty_inspect import ContextSnapshot, RenderRequest, TerminalRenderer, ValueTransformer
from pretty_inspect.renderers import strip_ansi


def _tree(value: Any, **options: Any) -> Any:
    return ValueTransformer().format(RenderRequest(value, "cli", options))


def _plain(value: Any, **options: Any) -> str:
    return TerminalRenderer(color=False).render(_tree(value, **options))


class _TtyStream(io.StringIO):
    def isatty(self) -> bool:
        return True


class TestLayout:
    def test_single_key_map(self) -> None:
        output = _plain({"a": 1})
        assert output == "array(1) ($value)\n  └── ['a'] => int(1) ($value['a'])"

    def test_nested_containers_use_connectors(self) -> None:
        output = _plain({"user": {"id": 7}, "ok": True}, show_table_variable_meta=False)
        assert output.split("\n") == [
            "array(2)",
            "  ├── ['user'] => array(1)",
            "  │     └── ['id'] => int(7)",
            "  └── ['ok'] => bool(true)",
        ]

    def test_item_truncation_notice(self) -> None:
        output = _plain(list(range(10)), max_items=2, show_table_variable_meta=False)
        lines = output.split("\n")
        assert sum("[" in line and "=>" in line for line in lines) == 2
        assert [line for line in lines if "truncated" in line] == ["  … truncated (items: 10, limit: 2)"]

    def test_depth_truncation_in_header(self) -> None:
        output = _plain({"a": {"b": 1}}, max_depth=1, show_table_variable_meta=False)
        assert "['a'] => array(1) … truncated (depth limit)" in output

    def test_circular_reference(self) -> None:
        value: list[Any] = []
        value.append(value)
        output = _plain(value, show_table_variable_meta=False)
        assert "[0] => [circular reference]" in output

    def test_tab_indentation(self) -> None:
        output = _plain({"a": 1}, indent_style="tabs", show_table_variable_meta=False)
        assert output.split("\n")[1] == "\t└── ['a'] => int(1)"

    def test_multiline_string_continuation(self) -> None:
        output = _plain({"k": "one\ntwo"}, show_table_variable_meta=False)
        lines = output.split("\n")
        assert lines[1] == "  └── ['k'] => string(7) \"one"
        assert lines[2].strip() == 'two"'


class TestSpecialNodes:
    def test_exception(self) -> None:
        output = _plain(ValueError("bad input"))
        assert output.startswith("Exception: ValueError (code: 0)")
        assert "Message: bad input" in output

    def test_json_document(self) -> None:
        output = _plain('{"a": 1}', auto_detect_json=True, show_table_variable_meta=False)
        assert output.split("\n") == ["JSON Document", "  {", '      "a": 1', "  }"]

    def test_context_block(self) -> None:
        snapshot = ContextSnapshot.from_mapping({"origin": {"file": "app.py", "line": 4}})
        tree = ValueTransformer().format(RenderRequest(1, "cli", {"show_context": True}, context=snapshot))
        output = TerminalRenderer(color=False).render(tree)
        assert "\n\n--- Context ---\nContext:\n  Origin: app.py:4" in output

    def test_performance_line(self) -> None:
        output = _plain(1, show_performance_metrics=True)
        assert output.split("\n")[-1].startswith("Rendered in ")


class TestColor:
    def test_no_escape_sequences_without_color(self) -> None:
        output = _plain({"a": [1, "x", None, True]})
        assert "\033[" not in output

    def test_forced_color(self) -> None:
        output = TerminalRenderer(color=True).render(_tree({"a": 1}))
        assert "\033[" in output
        assert strip_ansi(output) == "array(1) ($value)\n  └── ['a'] => int(1) ($value['a'])"

    def test_auto_detects_tty_stream(self) -> None:
        tree = _tree([1])
        assert "\033[" in TerminalRenderer(stream=_TtyStream()).render(tree)
        assert "\033[" not in TerminalRenderer(stream=io.StringIO()).render(tree)

    def test_color_option_disables_on_tty(self) -> None:
        tree = _tree([1], color=False)
        assert "\033[" not in TerminalRenderer(stream=_TtyStream()).render(tree)

    def test_explicit_argument_beats_option(self) -> None:
        renderer = TerminalRenderer(color=True, stream=io.StringIO())
        assert renderer.use_color(_tree([1], color="off"))
