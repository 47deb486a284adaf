"""Public helper functions for pretty-inspect.

``pretty_dump`` (alias ``pd``) is the everyday entry point: it builds a
RenderRequest, formats it with a shared ValueTransformer and renders it for
the channel. The ``pd_*`` helpers layer diffing, conditional dumps,
assertions and SQL display on top.

Every helper accepts ``output`` and ``stream``: with ``output=True`` (the
default) the result is written to ``stream`` (``sys.stdout`` when None) and
None is returned; with ``output=False`` the rendered string is returned.
"""

from __future__ import annotations

import html
import logging
import sys
from collections.abc import Callable, Mapping, Sequence
from typing import Any, TextIO

from pretty_inspect.formatter.config import FormatterConfiguration, read_bool
from pretty_inspect.formatter.value_transformer import ValueTransformer
from pretty_inspect.renderers.diff import DiffRenderer
from pretty_inspect.renderers.html import HtmlRenderer
from pretty_inspect.renderers.terminal import TerminalRenderer
from pretty_inspect.renderers.theme import ThemeRegistry
from pretty_inspect.request import Channel, RenderRequest
from pretty_inspect.storage import DumpHistoryStorage, default_history, location_for
from pretty_inspect.transformers.diff import DEFAULT_MAX_DEPTH, DiffNode, DiffTransformer
from pretty_inspect.transformers.json_document import decode_json
from pretty_inspect.transformers.sql import SqlTransformer
from pretty_inspect.tree.nodes import RenderedTree

__all__ = [
    "default_themes",
    "detect_channel",
    "pd",
    "pd_assert",
    "pd_auto_diff",
    "pd_clear_history",
    "pd_diff",
    "pd_sql",
    "pd_when",
    "pretty_dump",
    "render",
]

logger = logging.getLogger(__name__)

RULE_WIDTH = 60

_BOLD = "\033[1;37m"
_RED = "\033[1;31m"
_RESET = "\033[0m"
_SUMMARY_COLORS = {
    "added": "\033[32m",
    "removed": "\033[31m",
    "modified": "\033[33m",
    "unchanged": "\033[90m",
}
_SUMMARY_SIGNS = {"added": "+", "removed": "-", "modified": "~", "unchanged": "="}
_SUMMARY_BADGES = {
    "added": "color: #22863a; background: #e6ffed;",
    "removed": "color: #cb2431; background: #ffeef0;",
    "modified": "color: #735c0f; background: #fff8c5;",
    "unchanged": "color: #6b7280; background: #f6f8fa;",
}

_transformer = ValueTransformer()
_themes = ThemeRegistry.with_defaults()


def default_themes() -> ThemeRegistry:
    """Registry used for HTML output; register custom themes here."""
    return _themes


def detect_channel() -> Channel:
    """Return the channel used when a helper is called without one."""
    return Channel.CLI


def _channel(channel: Channel | str | None) -> Channel:
    return detect_channel() if channel is None else Channel(channel)


def _isatty(stream: TextIO | None) -> bool:
    target = stream if stream is not None else sys.stdout
    isatty = getattr(target, "isatty", None)
    return bool(isatty is not None and isatty())


def _emit(text: str, output: bool, stream: TextIO | None) -> str | None:
    if not output:
        return text
    target = stream if stream is not None else sys.stdout
    target.write(text if text.endswith("\n") else text + "\n")
    return None


def _render_tree(tree: RenderedTree, channel: Channel, stream: TextIO | None, options: Mapping[str, Any]) -> str:
    if channel is Channel.WEB:
        return HtmlRenderer(themes=_themes).render(tree)
    color = read_bool(options["color"], True) if "color" in options else None
    return TerminalRenderer(color=color, stream=stream).render(tree)


# ---------------------------------------------------------------------------
# Dumping
# ---------------------------------------------------------------------------


def render(value: Any, channel: Channel | str = Channel.CLI, **options: Any) -> str:
    """Render ``value`` for ``channel`` and return the text.

    Args:
        value:   Any Python value.
        channel: ``"cli"`` or ``"web"``.
        **options: Formatter options (``max_depth``, ``theme``, ``color``, ...).

    Returns:
        ANSI/plain text for ``cli``, an HTML fragment for ``web``.
    """
    return _render_value(value, Channel(channel), None, options)


def _render_value(value: Any, channel: Channel, stream: TextIO | None, options: Mapping[str, Any]) -> str:
    request = RenderRequest(value, channel, options)
    tree = _transformer.format(request)
    return _render_tree(tree, channel, stream, options)


def pretty_dump(
    value: Any,
    *,
    channel: Channel | str | None = None,
    output: bool = True,
    stream: TextIO | None = None,
    **options: Any,
) -> str | None:
    """Dump ``value`` to ``stream`` or return the rendered text.

    Example::

        from pretty_inspect import pd

        pd({"user": {"id": 7}})
        html = pd([1, 2, 3], channel="web", output=False)
    """
    resolved = _channel(channel)
    return _emit(_render_value(value, resolved, stream, options), output, stream)


pd = pretty_dump


def pd_when(
    value: Any,
    condition: bool | Callable[[Any], Any],
    *,
    channel: Channel | str | None = None,
    output: bool = True,
    stream: TextIO | None = None,
    **options: Any,
) -> str | None:
    """Dump only when ``condition`` (or ``condition(value)``) is truthy."""
    should_dump = condition(value) if callable(condition) else condition
    if not should_dump:
        return None
    return pretty_dump(value, channel=channel, output=output, stream=stream, **options)


def pd_assert(
    value: Any,
    assertion: bool | Callable[[Any], Any],
    message: str = "Assertion failed",
    *,
    channel: Channel | str | None = None,
    output: bool = True,
    stream: TextIO | None = None,
    **options: Any,
) -> str | None:
    """Dump ``value``, preceded by a warning banner when the assertion fails."""
    resolved = _channel(channel)
    passed = assertion(value) if callable(assertion) else assertion
    dump = _render_value(value, resolved, stream, options)
    if passed:
        return _emit(dump, output, stream)

    if resolved is Channel.WEB:
        banner = (
            '<div class="pretty-dump-assertion" role="alert" '
            'style="background: #fee; border-left: 4px solid #f00; padding: 12px; margin: 8px 0;">'
            f'<strong style="color: #c00;">⚠ Assertion Failed:</strong> {_escape(message)}</div>'
        )
        return _emit(banner + dump, output, stream)

    banner = f"⚠ Assertion Failed: {message}"
    if _terminal_color(options, stream):
        banner = f"{_RED}{banner}{_RESET}"
    return _emit(f"{banner}\n{dump}", output, stream)


def _terminal_color(options: Mapping[str, Any], stream: TextIO | None) -> bool:
    if "color" in options:
        return read_bool(options["color"], True)
    return _isatty(stream)


def _escape(text: str) -> str:
    return html.escape(text, quote=True)


# ---------------------------------------------------------------------------
# Diffs
# ---------------------------------------------------------------------------


def _decode_pair(old: Any, new: Any) -> tuple[Any, Any]:
    if not isinstance(old, str) or not isinstance(new, str):
        return old, new
    try:
        decoded_old, decoded_new = decode_json(old), decode_json(new)
    except ValueError:
        return old, new
    if decoded_old is None or decoded_new is None:
        return old, new
    return decoded_old, decoded_new


def _diff_terminal(diff: DiffNode, renderer: DiffRenderer, use_color: bool) -> str:
    stats = renderer.summary(diff)
    rule = "=" * RULE_WIDTH
    counts = " ".join(f"{_SUMMARY_SIGNS[name]}{stats[name]}" for name in _SUMMARY_SIGNS)
    title = "Diff Summary:"
    if use_color:
        rule = f"{_BOLD}{rule}{_RESET}"
        title = f"{_BOLD}{title}{_RESET}"
        counts = " ".join(
            f"{_SUMMARY_COLORS[name]}{_SUMMARY_SIGNS[name]}{stats[name]}{_RESET}" for name in _SUMMARY_SIGNS
        )
    body = renderer.render_terminal(diff, use_color)
    return "\n".join([rule, f"{title} {counts}", rule, body, rule])


def _diff_html(diff: DiffNode, renderer: DiffRenderer) -> str:
    stats = renderer.summary(diff)
    badges = "".join(
        f'<span class="diff-count diff-count-{name}" '
        f'style="{_SUMMARY_BADGES[name]} padding: 2px 6px; border-radius: 3px; margin: 0 4px;">'
        f"{_SUMMARY_SIGNS[name]}{stats[name]}</span>"
        for name in _SUMMARY_SIGNS
    )
    return (
        '<div class="pretty-dump-diff-block" style="background: #f8f9fa; border: 1px solid #dee2e6; '
        'border-radius: 4px; padding: 16px; margin: 8px 0; font-family: monospace;">'
        '<div class="diff-summary" style="font-weight: bold; margin-bottom: 12px; padding-bottom: 8px; '
        f'border-bottom: 2px solid #dee2e6;">Diff Summary: {badges}</div>'
        f"{renderer.render_html(diff)}</div>"
    )


def pd_diff(
    old: Any,
    new: Any,
    *,
    channel: Channel | str | None = None,
    output: bool = True,
    stream: TextIO | None = None,
    color: bool | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> str | None:
    """Compare ``old`` and ``new`` and show a summary plus per-key changes.

    Two JSON strings are decoded before comparison. Terminal output is
    framed by rules of ``=``::

        ============================================================
        Diff Summary: +1 -0 ~1 =1
        ============================================================
        ~ age: 30 → 31
        + city: "NYC"
          name: "John"
        ============================================================
    """
    old, new = _decode_pair(old, new)
    diff = DiffTransformer().diff(old, new, max_depth=max_depth)
    renderer = DiffRenderer()
    if _channel(channel) is Channel.WEB:
        return _emit(_diff_html(diff, renderer), output, stream)
    use_color = color if color is not None else _isatty(stream)
    return _emit(_diff_terminal(diff, renderer, use_color), output, stream)


def pd_auto_diff(
    value: Any,
    *,
    channel: Channel | str | None = None,
    output: bool = True,
    stream: TextIO | None = None,
    history: DumpHistoryStorage | None = None,
    **options: Any,
) -> str | None:
    """Diff ``value`` against the previous value dumped from the same line.

    The first call at a location dumps normally. Each call stores ``value``
    for the next comparison.
    """
    store = history if history is not None else default_history()
    location = location_for(sys._getframe(1))
    if store.has_history(location):
        result = pd_diff(
            store.get_last(location),
            value,
            channel=channel,
            output=output,
            stream=stream,
            color=read_bool(options["color"], True) if "color" in options else None,
        )
    else:
        logger.debug("no history at %s; dumping without diff", location)
        result = pretty_dump(value, channel=channel, output=output, stream=stream, **options)
    store.store(location, value)
    return result


def pd_clear_history(location: str | None = None, history: DumpHistoryStorage | None = None) -> None:
    """Forget the history of one location, or of all locations."""
    store = history if history is not None else default_history()
    if location is None:
        store.clear_all()
    else:
        store.clear(location)


# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------


def pd_sql(
    sql: str,
    bindings: Sequence[Any] | Mapping[str, Any] = (),
    connection: Any = None,
    *,
    channel: Channel | str | None = None,
    output: bool = True,
    stream: TextIO | None = None,
    **options: Any,
) -> str | None:
    """Show a formatted, highlighted SQL statement.

    ``bindings`` are substituted into the displayed statement. With a DB-API
    ``connection`` the EXPLAIN rows of a SELECT are appended. Text that does
    not look like SQL is dumped as a plain string.
    """
    transformer = SqlTransformer()
    if not transformer.is_sql(sql):
        return pretty_dump(sql, channel=channel, output=output, stream=stream, **options)

    resolved = _channel(channel)
    explain = transformer.explain(sql, connection, bindings) if connection is not None else None
    configuration = FormatterConfiguration.for_channel(resolved, options)
    tree = RenderedTree(
        channel=str(resolved),
        theme=configuration.theme,
        metadata={
            "indent_unit": configuration.indent_unit,
            "theme_preference": configuration.theme,
            "show_expression_meta": configuration.show_table_variable_meta,
        },
    )
    tree.add_child(transformer.create_sql_node(sql, bindings, explain))
    statement = _render_tree(tree, resolved, stream, options)

    binding_options = {**options, "show_context": False, "expression": "$bindings"}
    if resolved is Channel.WEB:
        parts = [statement]
        if bindings:
            parts.append('<div class="pretty-dump-sql-bindings"><strong>Bindings:</strong>')
            parts.append(_render_value(bindings, resolved, stream, binding_options))
            parts.append("</div>")
        return _emit('<div class="pretty-dump-sql">' + "".join(parts) + "</div>", output, stream)

    sections = ["=" * RULE_WIDTH, statement]
    if bindings:
        sections.extend(["-" * RULE_WIDTH, "Bindings:", _render_value(bindings, resolved, stream, binding_options)])
    sections.append("=" * RULE_WIDTH)
    return _emit("\n".join(sections), output, stream)
