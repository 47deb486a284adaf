"""TerminalRenderer: RenderedTree to ANSI-coloured, connector-drawn text.

Output shape for ``{"user": {"id": 7}}``::

    array(1) ($value)
      └── ['user'] => array(1) ($value['user'])
          └── ['id'] => int(7) ($value['user']['id'])

Colour is decided once per call: an explicit ``color`` argument wins, a
``color=False`` request option disables it, and otherwise the stream's
``isatty()`` decides. Without colour no escape sequence is emitted.
"""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass
from typing import TextIO

from pretty_inspect.formatter.config import FormatterConfiguration, read_bool
from pretty_inspect.transformers.json_document import JsonToken, scan_json
from pretty_inspect.transformers.sql import SqlTransformer
from pretty_inspect.tree.nodes import NodeKind, RenderedNode, RenderedTree

__all__ = ["TerminalRenderer", "strip_ansi"]

RESET = "\033[0m"
TYPE = "\033[2;37m"
KEY = "\033[93m"
STRING = "\033[32m"
NUMBER = "\033[35m"
BOOL = "\033[34m"
NULL = "\033[2;37m"
UNKNOWN = "\033[33m"
NOTICE = "\033[35m"
EXPRESSION = "\033[2;37m"
ARRAY = "\033[1;36m"
OBJECT = "\033[1;33m"
EXCEPTION = "\033[1;31m"
MUTED = "\033[2m"
ADDED = "\033[32m"
REMOVED = "\033[31m"

ANSI_ESCAPE_RE = re.compile(r"\033\[[0-9;]*m")

# "string(5) \"hello\"" -> ("string(5)", "\"hello\"")
_LEAF_RE = re.compile(r"^([a-z]+\(.*?\))\s+(.+)$", re.DOTALL)

_LEAF_COLORS = {
    NodeKind.STRING: STRING,
    NodeKind.NUMBER: NUMBER,
    NodeKind.BOOL: BOOL,
    NodeKind.NULL: NULL,
    NodeKind.UNKNOWN: UNKNOWN,
    NodeKind.CIRCULAR: NOTICE,
    NodeKind.NOTICE: NOTICE,
    NodeKind.PERFORMANCE: MUTED,
}

_JSON_COLORS = {
    JsonToken.KEY: KEY,
    JsonToken.STRING: STRING,
    JsonToken.NUMBER: NUMBER,
    JsonToken.BOOL: BOOL,
    JsonToken.NULL: NULL,
}

_BLOCK_KINDS = frozenset(
    {NodeKind.ARRAY, NodeKind.OBJECT, NodeKind.EXCEPTION, NodeKind.JSON, NodeKind.SQL, NodeKind.DIFF}
)

BRANCH = "├── "
LAST_BRANCH = "└── "
PIPE = "│   "
SPACE = "    "


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE_RE.sub("", text)


@dataclass(slots=True)
class _Style:
    """Per-call presentation settings."""

    color: bool
    indent_unit: str
    show_expression: bool

    def paint(self, code: str, text: str) -> str:
        if not self.color or not text:
            return text
        return f"{code}{text}{RESET}"

    def indent(self, depth: int) -> str:
        return self.indent_unit * depth


class TerminalRenderer:
    """Serialise rendered trees for terminals.

    Args:
        configuration: Fallback indentation and expression settings for
            trees that do not carry their own.
        color: Force colour on (True) or off (False); None auto-detects.
        stream: Stream whose ``isatty()`` drives auto-detection. Defaults to
            ``sys.stdout`` at render time.
    """

    def __init__(
        self,
        configuration: FormatterConfiguration | None = None,
        color: bool | None = None,
        stream: TextIO | None = None,
    ) -> None:
        self._configuration = configuration or FormatterConfiguration()
        self._color = color
        self._stream = stream
        self._sql = SqlTransformer()

    def render(self, tree: RenderedTree) -> str:
        style = _Style(
            color=self.use_color(tree),
            indent_unit=tree.metadata.get("indent_unit", self._configuration.indent_unit),
            show_expression=bool(
                tree.metadata.get("show_expression_meta", self._configuration.show_table_variable_meta)
            ),
        )
        value_blocks: list[str] = []
        context_blocks: list[str] = []
        for child in tree.children:
            if child.kind is NodeKind.CONTEXT:
                context_blocks.append(self._context(child, style))
            else:
                value_blocks.append(self._node(child, 0, style))

        output = "\n".join(value_blocks)
        if context_blocks:
            output = "\n\n".join([output, *context_blocks]) if output else "\n\n".join(context_blocks)
        return output

    def use_color(self, tree: RenderedTree | None = None) -> bool:
        if self._color is not None:
            return self._color
        if tree is not None and not read_bool(tree.metadata.get("color"), True):
            return False
        stream = self._stream if self._stream is not None else sys.stdout
        isatty = getattr(stream, "isatty", None)
        return bool(isatty is not None and isatty())

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _node(self, node: RenderedNode, depth: int, style: _Style) -> str:
        kind = node.kind
        if kind.is_container:
            return self._container(node, depth, style)
        if kind is NodeKind.EXCEPTION:
            return self._exception(node, depth, style)
        if kind is NodeKind.JSON:
            return self._json(node, depth, style)
        if kind is NodeKind.SQL:
            return self._sql_block(node, depth, style)
        if kind is NodeKind.DIFF:
            return self._diff(node, depth, style)
        if kind is NodeKind.CONTEXT:
            return self._context(node, style)
        return style.indent(depth) + self._leaf(node, style) + self._suffix(node, style)

    def _suffix(self, node: RenderedNode, style: _Style) -> str:
        expression = node.expression
        if not style.show_expression or not expression:
            return ""
        return " " + style.paint(EXPRESSION, f"({expression})")

    def _leaf(self, node: RenderedNode, style: _Style) -> str:
        color = _LEAF_COLORS.get(node.kind, "")
        match = _LEAF_RE.match(node.text)
        if match is None:
            return _paint_lines(style, color, node.text)
        label, value = match.groups()
        return style.paint(TYPE, label) + " " + _paint_lines(style, color, value)

    # ------------------------------------------------------------------
    # Containers
    # ------------------------------------------------------------------

    def _container(self, node: RenderedNode, depth: int, style: _Style) -> str:
        color = OBJECT if node.kind is NodeKind.OBJECT else ARRAY
        lines = [style.indent(depth) + style.paint(color, node.text) + self._suffix(node, style)]
        last_index = len(node.children) - 1
        for position, child in enumerate(node.children):
            if child.kind is NodeKind.ARRAY_ITEM:
                lines.append(self._item(child, depth + 1, position == last_index, style))
            else:
                lines.append(style.indent(depth + 1) + style.paint(NOTICE, child.text))
        return "\n".join(lines)

    def _item(self, item: RenderedNode, depth: int, is_last: bool, style: _Style) -> str:
        prefix = style.indent(depth)
        connector = LAST_BRANCH if is_last else BRANCH
        continuation = SPACE if is_last else PIPE
        key = style.paint(KEY, item.text)
        head = prefix + connector + key
        if not item.children:
            return head

        value = item.children[0]
        if value.children or value.kind in _BLOCK_KINDS:
            rendered = self._node(value, 0, style).split("\n")
            lines = [f"{head} => {rendered[0]}"]
            lines.extend(prefix + continuation + line for line in rendered[1:])
            return "\n".join(lines)

        leaf = self._leaf(value, style).split("\n")
        if len(leaf) == 1:
            return f"{head} => {leaf[0]}{self._suffix(value, style)}"
        padding = " " * (len(item.text) + 4)
        lines = [f"{head} => {leaf[0]}"]
        lines.extend(prefix + continuation + padding + line for line in leaf[1:])
        lines[-1] += self._suffix(value, style)
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Special nodes
    # ------------------------------------------------------------------

    def _exception(self, node: RenderedNode, depth: int, style: _Style) -> str:
        indent = style.indent(depth)
        lines = []
        for line in node.text.split("\n"):
            if line.startswith(("Exception:", "Caused by:")):
                lines.append(indent + style.paint(EXCEPTION, line))
            elif line.startswith("  #"):
                lines.append(indent + style.paint(TYPE, line))
            else:
                lines.append(indent + line)
        return "\n".join(lines)

    def _json(self, node: RenderedNode, depth: int, style: _Style) -> str:
        lines = [style.indent(depth) + style.paint(ARRAY, node.text) + self._suffix(node, style)]
        body = node.find_child(NodeKind.JSON_BODY)
        if body is not None and body.text:
            if style.color:
                text = "".join(
                    style.paint(_JSON_COLORS[token], chunk) if token in _JSON_COLORS else chunk
                    for token, chunk in scan_json(body.text)
                )
            else:
                text = body.text
            lines.extend(style.indent(depth + 1) + line for line in text.split("\n"))
        return "\n".join(lines)

    def _sql_block(self, node: RenderedNode, depth: int, style: _Style) -> str:
        lines = [style.indent(depth) + style.paint(ARRAY, "SQL Query")]
        body = self._sql.highlight_for_terminal(node.text) if style.color else node.text
        lines.extend(style.indent(depth + 1) + line for line in body.split("\n"))
        for child in node.children:
            lines.extend(style.indent(depth + 1) + style.paint(MUTED, line) for line in child.text.split("\n"))
        return "\n".join(lines)

    def _diff(self, node: RenderedNode, depth: int, style: _Style) -> str:
        lines = [style.indent(depth) + style.paint(ARRAY, node.text)]
        self._diff_items(node.children, depth + 1, style, lines)
        return "\n".join(lines)

    def _diff_items(
        self,
        items: list[RenderedNode],
        depth: int,
        style: _Style,
        lines: list[str],
    ) -> None:
        for item in items:
            if item.children:
                lines.append(style.indent(depth) + style.paint(KEY, item.text))
                self._diff_items(item.children, depth + 1, style, lines)
                continue
            for line in item.text.split("\n"):
                color = ADDED if line.startswith("+") else REMOVED if line.startswith("-") else MUTED
                lines.append(style.indent(depth) + style.paint(color, line))

    def _context(self, node: RenderedNode, style: _Style) -> str:
        lines = ["--- Context ---", *node.text.split("\n")]
        if node.metadata.get("truncated_stack"):
            lines.append("Stack truncated to configured limit.")
        return "\n".join(style.paint(MUTED, line) for line in lines)


def _paint_lines(style: _Style, color: str, text: str) -> str:
    if not color:
        return text
    return "\n".join(style.paint(color, line) for line in text.split("\n"))
