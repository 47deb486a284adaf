"""HtmlRenderer: RenderedTree to a self-contained HTML fragment.

The fragment is ``<style>`` + one ``<div class="pretty-dump">`` + ``<script>``.
Every piece of text taken from a value is HTML-escaped, attributes included.

DOM contract (consumed by the companion script and by tests):

- The root carries ``role="tree"``, ``data-theme``, ``data-theme-preference``
  and ``data-table-meta`` ("1" or "0").
- Every rendered node carries ``data-node-type``, ``data-depth`` and a
  ``node-type-<kind>`` class; when known also ``data-expression``,
  ``data-truncated="true"`` and ``data-json`` (compact JSON of the node's
  json value, omitted when absent or not serialisable).
- Nodes with children are ``<details>``/``<summary>``; leaves are
  ``<div class="node-inline">``. An ``array-item`` is merged with the value
  it wraps: the value's element gets the item key in its label and a
  ``data-key`` attribute.
- Search and copy buttons appear only on nodes with a json value; a table
  button only when that value looks tabular; the theme toggle once, on the
  first node at depth 0 that has actions.
"""

from __future__ import annotations

import html
import json
import logging
import re
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from cachetools import LRUCache, cached

from pretty_inspect.formatter.config import FormatterConfiguration
from pretty_inspect.renderers.assets import (
    SCRIPT,
    STYLE_TEMPLATE,
    THEME_VARIABLES_TEMPLATE,
    placeholder,
)
from pretty_inspect.renderers.theme import PALETTE_ROLES, ThemeProfile, ThemeRegistry
from pretty_inspect.request import Channel
from pretty_inspect.transformers.json_document import JsonToken, scan_json
from pretty_inspect.transformers.sql import SqlTransformer
from pretty_inspect.tree.nodes import NodeKind, RenderedNode, RenderedTree

__all__ = ["HtmlRenderer", "is_tabular", "stylesheet"]

logger = logging.getLogger(__name__)

# Same split as the terminal renderer: "string(5) \"hello\"".
_LEAF_RE = re.compile(r"^([a-z]+\(.*?\))\s+(.+)$", re.DOTALL)
_INFO_LINE_RE = re.compile(r"^([A-Z][A-Za-z ]*):\s?(.*)$")

_JSON_CLASSES = {
    JsonToken.KEY: "json-key",
    JsonToken.STRING: "json-string",
    JsonToken.NUMBER: "json-number",
    JsonToken.BOOL: "json-bool",
    JsonToken.NULL: "json-null",
}

_OPEN_DEPTH = 2
_EXCEPTION_SUMMARY_LINES = 3


def _esc(value: Any) -> str:
    return html.escape(str(value), quote=True)


def _theme_block(selector: str, profile_palette: tuple[tuple[str, str], ...]) -> str:
    variables = THEME_VARIABLES_TEMPLATE
    for role, color in profile_palette:
        variables = variables.replace(placeholder(role), color)
    return f"{selector}{{{variables}}}"


@cached(cache=LRUCache(maxsize=32), lock=threading.Lock())
def _build_stylesheet(
    themes: tuple[tuple[str, tuple[tuple[str, str], ...]], ...],
    indent: str,
) -> str:
    palettes = dict(themes)
    blocks = []
    if "light" in palettes:
        blocks.append(_theme_block('.pretty-dump[data-theme="auto"]', palettes["light"]))
    for name, palette in themes:
        blocks.append(_theme_block(f'.pretty-dump[data-theme="{name}"]', palette))
    if "dark" in palettes:
        dark = _theme_block('.pretty-dump[data-theme="auto"]', palettes["dark"])
        blocks.append(f"@media (prefers-color-scheme: dark){{{dark}}}")
        blocks.append(_theme_block(':root[data-theme="dark"] .pretty-dump[data-theme="auto"]', palettes["dark"]))
    if "light" in palettes:
        blocks.append(
            _theme_block(':root[data-theme="light"] .pretty-dump[data-theme="auto"]', palettes["light"])
        )
    return STYLE_TEMPLATE.replace("__THEMES__", "\n".join(blocks)).replace("__INDENT__", indent)


def _palette_key(profile: ThemeProfile) -> tuple[str, tuple[tuple[str, str], ...]]:
    return profile.name, tuple((role, profile.palette[role]) for role in PALETTE_ROLES)


def _indent_css(indent_unit: str) -> str:
    if indent_unit == "\t":
        return "2rem"
    return f"{max(len(indent_unit), 1) / 2:g}rem"


def stylesheet(themes: ThemeRegistry, indent_unit: str = "  ") -> str:
    """Return the CSS for ``themes`` (cached per palette set and indent)."""
    key = tuple(_palette_key(profile) for profile in themes.all())
    return _build_stylesheet(key, _indent_css(indent_unit))


def _unwrap(value: Any) -> Any:
    if isinstance(value, Mapping):
        if "__items__" in value:
            return _unwrap(value["__items__"])
        if "__class" in value and "properties" in value:
            return value["properties"]
    return value


def is_tabular(value: Any) -> bool:
    """True when ``value`` is a non-empty collection of maps or lists."""
    value = _unwrap(value)
    if isinstance(value, Mapping):
        rows = [row for key, row in value.items() if not str(key).startswith("__")]
    elif isinstance(value, list):
        rows = value
    else:
        return False
    if not rows:
        return False
    return all(isinstance(_unwrap(row), (Mapping, list)) for row in rows)


def _json_attribute(node: RenderedNode) -> str | None:
    if not node.has_json_value:
        return None
    try:
        encoded = json.dumps(
            node.metadata["json_value"],
            ensure_ascii=False,
            allow_nan=False,
            separators=(",", ":"),
        )
    except (TypeError, ValueError):
        logger.debug("json value at %s is not serialisable", node.expression)
        return None
    return encoded


def _has_actions(node: RenderedNode) -> bool:
    if not node.has_json_value:
        return False
    return node.metadata["json_value"] is not None or node.kind is NodeKind.NULL


@dataclass(slots=True)
class _State:
    """Per-call flags."""

    theme_toggle_emitted: bool = False


class HtmlRenderer:
    """Serialise rendered trees as interactive HTML.

    Args:
        configuration: Fallback for indentation, exception expansion and the
            table metadata switch when the tree does not carry them.
        themes: Registered palettes; defaults to the built-in light and dark
            themes.
    """

    def __init__(
        self,
        configuration: FormatterConfiguration | None = None,
        themes: ThemeRegistry | None = None,
    ) -> None:
        self._configuration = configuration or FormatterConfiguration()
        self._themes = themes or ThemeRegistry.with_defaults()
        self._sql = SqlTransformer()

    @property
    def themes(self) -> ThemeRegistry:
        return self._themes

    def render(self, tree: RenderedTree) -> str:
        theme = self._resolve_theme(tree.theme)
        preference = str(tree.metadata.get("theme_preference", theme))
        indent_unit = tree.metadata.get("indent_unit", self._configuration.indent_unit)
        table_meta = tree.metadata.get("show_expression_meta", self._configuration.show_table_variable_meta)
        expand = bool(tree.metadata.get("expand_exceptions", self._configuration.expand_exceptions))

        state = _State()
        body = "".join(self._node(child, 0, state, expand) for child in tree.children)
        palette_meta = "".join(
            f'<span class="theme-palette" data-theme-name="{_esc(profile.name)}" '
            f'data-contrast="{profile.contrast_ratio:.2f}" hidden></span>'
            for profile in self._themes.all()
        )
        root = (
            f'<div class="pretty-dump" role="tree" aria-label="Value dump" '
            f'data-theme="{_esc(theme)}" data-theme-preference="{_esc(preference)}" '
            f'data-table-meta="{"1" if table_meta else "0"}">'
            f"{palette_meta}{body}</div>"
        )
        return f"<style>{stylesheet(self._themes, indent_unit)}</style>{root}<script>{SCRIPT}</script>"

    def _resolve_theme(self, theme: str) -> str:
        if theme == "auto" or self._themes.has(theme):
            return theme
        fallback = self._themes.default_for_channel(Channel.WEB).name
        logger.debug("unknown theme %r, using %r", theme, fallback)
        return fallback

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _node(
        self,
        node: RenderedNode,
        depth: int,
        state: _State,
        expand: bool,
        key: str | None = None,
    ) -> str:
        kind = node.kind
        if kind is NodeKind.ARRAY_ITEM:
            if not node.children:
                return self._inline(node, depth, state, key=node.text)
            return self._node(node.children[0], depth, state, expand, key=node.text)
        if kind is NodeKind.NOTICE:
            return f'<div class="truncate-notice" role="note" aria-live="polite">{_esc(node.text)}</div>'
        if kind is NodeKind.EXCEPTION:
            return self._exception(node, depth, expand, key)
        if kind is NodeKind.JSON:
            return self._json(node, depth, state, key)
        if kind is NodeKind.SQL:
            return self._sql_block(node, depth, key)
        if kind is NodeKind.DIFF:
            return self._diff(node, depth, key)
        if kind is NodeKind.CONTEXT:
            return self._context(node, depth)
        if kind is NodeKind.PERFORMANCE:
            return (
                f'<div {self._attributes(node, depth, "node node-inline performance-note")}>'
                f"{_esc(node.text)}</div>"
            )
        if kind.is_container and node.children:
            return self._branch(node, depth, state, expand, key)
        return self._inline(node, depth, state, key=key)

    # ------------------------------------------------------------------
    # Building blocks
    # ------------------------------------------------------------------

    def _attributes(
        self,
        node: RenderedNode,
        depth: int,
        classes: str,
        key: str | None = None,
    ) -> str:
        parts = [
            f'class="{classes} node-type-{node.kind}"',
            f'data-node-type="{node.kind}"',
            f'data-depth="{depth}"',
        ]
        if key is not None:
            parts.append(f'data-key="{_esc(key)}"')
        if node.expression:
            parts.append(f'data-expression="{_esc(node.expression)}"')
        if node.truncated:
            parts.append('data-truncated="true"')
        encoded = _json_attribute(node)
        if encoded is not None:
            parts.append(f'data-json="{_esc(encoded)}"')
        return " ".join(parts)

    def _label(self, node: RenderedNode, key: str | None, text: str | None = None) -> str:
        parts = []
        if key is not None:
            parts.append(f'<span class="node-key">{_esc(key)}</span><span class="node-separator">⇒</span>')
        text = node.text if text is None else text
        match = _LEAF_RE.match(text)
        title = f' title="{_esc(node.expression)}"' if node.expression else ""
        if match is not None and not node.kind.is_container:
            label, value = match.groups()
            parts.append(f'<span class="node-type-label">{_esc(label)}</span> ')
            parts.append(f'<span class="node-value"{title}>{_esc(value)}</span>')
        else:
            parts.append(f'<span class="node-value"{title}>{_esc(text)}</span>')
        return "".join(parts)

    def _actions(self, node: RenderedNode, depth: int, state: _State) -> str:
        if not _has_actions(node):
            return ""
        buttons = [
            '<button type="button" class="node-action" data-action="search" title="Search within">search</button>',
            '<button type="button" class="node-action" data-action="copy" title="Copy JSON">copy</button>',
        ]
        if is_tabular(node.metadata["json_value"]):
            buttons.append(
                '<button type="button" class="node-action" data-action="table" title="Show as table">table</button>'
            )
        if depth == 0 and not state.theme_toggle_emitted:
            state.theme_toggle_emitted = True
            buttons.append(
                '<button type="button" class="node-action" data-action="theme" title="Toggle theme">theme</button>'
            )
        return f'<span class="node-actions">{"".join(buttons)}</span>'

    def _branch(
        self,
        node: RenderedNode,
        depth: int,
        state: _State,
        expand: bool,
        key: str | None,
    ) -> str:
        classes = "node node-branch" if key is not None else "node"
        opened = " open" if depth < _OPEN_DEPTH else ""
        summary = f"<summary>{self._label(node, key)}{self._actions(node, depth, state)}</summary>"
        children = "".join(self._node(child, depth + 1, state, expand) for child in node.children)
        return (
            f"<details {self._attributes(node, depth, classes, key)} role=\"treeitem\"{opened}>"
            f'{summary}<div class="node-children" role="group">{children}</div></details>'
        )

    def _inline(self, node: RenderedNode, depth: int, state: _State, key: str | None) -> str:
        classes = "node node-inline"
        extra = ""
        if node.kind is NodeKind.CIRCULAR:
            classes += " truncate-notice"
            extra = ' aria-live="polite"'
        return (
            f'<div {self._attributes(node, depth, classes, key)} role="treeitem"{extra}>'
            f"{self._label(node, key)}{self._actions(node, depth, state)}</div>"
        )

    # ------------------------------------------------------------------
    # Special nodes
    # ------------------------------------------------------------------

    def _exception(self, node: RenderedNode, depth: int, expand: bool, key: str | None) -> str:
        info: list[tuple[str, str]] = []
        in_trace = False
        for line in node.text.split("\n"):
            if not line.strip():
                in_trace = False
                continue
            if line == "Trace:":
                in_trace = True
                continue
            if in_trace or line.startswith(" "):
                continue
            match = _INFO_LINE_RE.match(line)
            if match is not None:
                info.append((match.group(1), match.group(2)))

        summary_text = " · ".join(f"{label}: {value}" for label, value in info[:_EXCEPTION_SUMMARY_LINES])
        key_html = ""
        if key is not None:
            key_html = f'<span class="node-key">{_esc(key)}</span><span class="node-separator">⇒</span>'
        rows = "".join(f"<tr><th>{_esc(label)}</th><td>{_esc(value)}</td></tr>" for label, value in info)

        frames = []
        for index, frame in enumerate(node.metadata.get("stack_frames") or ()):
            function = frame.get("function") or "main"
            if frame.get("class"):
                function = f"{frame['class']}{frame.get('type') or '.'}{function}"
            frames.append(
                '<li class="stack-frame">'
                f'<span class="stack-index">#{index}</span>'
                f'<span class="stack-function">{_esc(function)}({_esc(frame.get("summary", ""))})</span>'
                f'<span class="stack-location">{_esc(frame.get("file"))}:{_esc(frame.get("line"))}</span>'
                "</li>"
            )
        stack = f'<ol class="stack-frames">{"".join(frames)}</ol>' if frames else ""
        opened = " open" if expand else ""
        return (
            f'<details {self._attributes(node, depth, "node", key)} role="treeitem"{opened}>'
            f'<summary>{key_html}<span class="exception-summary">{_esc(summary_text)}</span></summary>'
            f'<table class="exception-info">{rows}</table>{stack}</details>'
        )

    def _json(self, node: RenderedNode, depth: int, state: _State, key: str | None) -> str:
        body = node.find_child(NodeKind.JSON_BODY)
        chunks = []
        for token, chunk in scan_json(body.text if body is not None else ""):
            css = _JSON_CLASSES.get(token)
            chunks.append(f'<span class="{css}">{_esc(chunk)}</span>' if css else _esc(chunk))
        preview = node.metadata.get("preview")
        title = f' title="{_esc(preview)}"' if preview else ""
        opened = " open" if depth < _OPEN_DEPTH else ""
        return (
            f'<details {self._attributes(node, depth, "node", key)} role="treeitem"{opened}>'
            f"<summary{title}>{self._label(node, key)}{self._actions(node, depth, state)}</summary>"
            f'<pre class="json-content">{"".join(chunks)}</pre></details>'
        )

    def _sql_block(self, node: RenderedNode, depth: int, key: str | None) -> str:
        explain = "".join(
            f'<pre class="sql-explain">{_esc(child.text)}</pre>' for child in node.children
        )
        return (
            f'<details {self._attributes(node, depth, "node", key)} role="treeitem" open>'
            f"<summary>{self._label(node, key, 'SQL Query')}</summary>"
            f'<pre class="sql-content">{self._sql.highlight_for_html(node.text, line_breaks=False)}</pre>'
            f"{explain}</details>"
        )

    def _diff(self, node: RenderedNode, depth: int, key: str | None) -> str:
        rows: list[str] = []
        self._diff_rows(node.children, 0, rows)
        return (
            f'<details {self._attributes(node, depth, "node", key)} role="treeitem" open>'
            f"<summary>{self._label(node, key)}</summary>"
            f'<div class="pretty-dump-diff">{"".join(rows)}</div></details>'
        )

    def _diff_rows(self, items: list[RenderedNode], level: int, rows: list[str]) -> None:
        for item in items:
            margin = f"margin-left:{level * 1.5}em"
            diff_type = _esc(item.metadata.get("diff_type", "unchanged"))
            if item.children:
                rows.append(f'<div class="diff-key" style="{margin}">{_esc(item.text)}</div>')
                self._diff_rows(item.children, level + 1, rows)
                continue
            rows.append(
                f'<div class="diff-line diff-{diff_type}" style="{margin};white-space:pre">{_esc(item.text)}</div>'
            )

    def _context(self, node: RenderedNode, depth: int) -> str:
        note = ""
        if node.metadata.get("truncated_stack"):
            note = '<div class="truncate-notice" aria-live="polite">Stack truncated to configured limit.</div>'
        return (
            f'<details {self._attributes(node, depth, "node")} role="treeitem">'
            f"<summary>Context</summary>"
            f'<pre class="context-content">{_esc(node.text)}</pre>{note}</details>'
        )
