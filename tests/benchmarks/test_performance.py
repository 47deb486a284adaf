"""Performance benchmark suite for pretty-inspect.

Targets:
- 100,000-element flat list, web limits (5000 items): well under 2s
- 10,000 records, cli limits (500 items): well under 1s
- 500-level nested chain: bounded by max_depth, not by input depth

Run with: pytest tests/benchmarks/ --benchmark-only -v
Skip during normal test runs: pytest --benchmark-disable
"""

from __future__ import annotations

from typing import Any

from pretty_inspect import (
    HtmlRenderer,
    NodeKind,
    RenderedTree,
    RenderRequest,
    TerminalRenderer,
    ValueTransformer,
    render,
)


def _format(value: Any, channel: str, **options: Any) -> RenderedTree:
    return ValueTransformer().format(RenderRequest(value, channel, {"show_context": False, **options}))


class TestFlatList:
    """Benchmarks for a 100,000-element list. Target: low single-digit seconds."""

    def test_format_web_limits(self, benchmark, flat_100k):  # type: ignore[no-untyped-def]
        tree = benchmark(_format, flat_100k, "web")
        payload = tree.payload
        assert payload.text == "array(100000)"
        assert payload.truncated
        assert len(payload.children) == 5001
        assert tree.metadata["duration_ms"] < 2000

    def test_render_terminal(self, benchmark, flat_100k):  # type: ignore[no-untyped-def]
        output = benchmark(render, flat_100k, "cli", color=False, show_context=False)
        assert "… truncated (items: 100000, limit: 500)" in output

    def test_render_html(self, benchmark, flat_100k):  # type: ignore[no-untyped-def]
        tree = _format(flat_100k, "web", max_items=1000)
        markup = benchmark(HtmlRenderer().render, tree)
        assert markup.count('data-node-type="number"') == 1000


class TestRecords:
    """Benchmarks for 10,000 nested records with redaction. Target: <1s."""

    def test_format_cli_limits(self, benchmark, records_10k):  # type: ignore[no-untyped-def]
        tree = benchmark(_format, records_10k, "cli")
        assert len([c for c in tree.payload.children if c.kind is NodeKind.ARRAY_ITEM]) == 500
        assert tree.payload.metadata["json_value"]["__items__"]["user_0"]["password"] == "***"

    def test_render_terminal(self, benchmark, records_10k):  # type: ignore[no-untyped-def]
        tree = _format(records_10k, "cli")
        output = benchmark(TerminalRenderer(color=False).render, tree)
        assert "secret_0" not in output


class TestNestedChain:
    """Benchmarks for a 500-level chain. Work stops at max_depth."""

    def test_format_depth_bounded(self, benchmark, nested_500):  # type: ignore[no-untyped-def]
        tree = benchmark(_format, nested_500, "web")
        depths = [depth for node, depth in tree.payload.walk() if node.kind.is_container]
        assert max(depths) // 2 == 10
