"""DiffRenderer: DiffNode results as terminal lines, HTML and summary counts."""

from __future__ import annotations

import html
import json
from typing import Any

from pretty_inspect.formatter.introspection import type_name
from pretty_inspect.transformers.diff import DiffNode, DiffType

__all__ = ["DiffRenderer"]

_RESET = "\033[0m"
_ANSI = {
    DiffType.ADDED: "\033[32m",
    DiffType.REMOVED: "\033[31m",
    DiffType.MODIFIED: "\033[33m",
    DiffType.UNCHANGED: "\033[90m",
}
_KEY = "\033[36m"

_HTML_STYLE = {
    DiffType.ADDED: "background: #e6ffed; color: #22863a;",
    DiffType.REMOVED: "background: #ffeef0; color: #cb2431;",
    DiffType.MODIFIED: "background: #fff8c5; color: #735c0f;",
    DiffType.UNCHANGED: "color: #999999;",
}

_MAX_VALUE_LENGTH = 50
_INDENT = "  "


def _shorten(text: str) -> str:
    if len(text) > _MAX_VALUE_LENGTH:
        return text[: _MAX_VALUE_LENGTH - 3] + "..."
    return text


def format_value(value: Any) -> str:
    """Describe a value on one line for diff output."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return f'"{_shorten(value)}"'
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (dict, list, tuple)):
        try:
            return _shorten(json.dumps(value, ensure_ascii=False, default=type_name))
        except (TypeError, ValueError):
            return f"[{len(value)} items]"
    return type_name(value)


def _line(key: Any, diff: DiffNode) -> str:
    label = "" if key is None else f"{key}: "
    if diff.type is DiffType.ADDED:
        return f"+ {label}{format_value(diff.new)}"
    if diff.type is DiffType.REMOVED:
        return f"- {label}{format_value(diff.old)}"
    if diff.type is DiffType.MODIFIED:
        return f"~ {label}{format_value(diff.old)} → {format_value(diff.new)}"
    return f"  {label}{format_value(diff.old)}"


class DiffRenderer:
    """Present DiffTransformer results."""

    def render_terminal(self, diff: DiffNode, use_color: bool = True) -> str:
        lines: list[str] = []
        self._terminal_lines(None, diff, "", use_color, lines)
        return "\n".join(lines)

    def render_html(self, diff: DiffNode) -> str:
        rows: list[str] = []
        self._html_rows(None, diff, 0, rows)
        return '<div class="pretty-dump-diff">' + "".join(rows) + "</div>"

    def summary(self, diff: DiffNode) -> dict[str, int]:
        """Count leaf results per DiffType."""
        counts = {str(diff_type): 0 for diff_type in DiffType}
        pending = [diff]
        while pending:
            current = pending.pop()
            if current.children:
                pending.extend(current.children.values())
            else:
                counts[current.type] += 1
        return counts

    def _terminal_lines(
        self,
        key: Any,
        diff: DiffNode,
        indent: str,
        use_color: bool,
        lines: list[str],
    ) -> None:
        if diff.children:
            child_indent = indent
            if key is not None:
                header = f"{key}:"
                lines.append(indent + (f"{_KEY}{header}{_RESET}" if use_color else header))
                child_indent = indent + _INDENT
            for child_key, child in diff.children.items():
                self._terminal_lines(child_key, child, child_indent, use_color, lines)
            return
        text = _line(key, diff)
        lines.append(indent + (f"{_ANSI[diff.type]}{text}{_RESET}" if use_color else text))

    def _html_rows(self, key: Any, diff: DiffNode, depth: int, rows: list[str]) -> None:
        margin = f"margin-left: {depth * 1.5}em;"
        if diff.children:
            child_depth = depth
            if key is not None:
                rows.append(
                    f'<div class="diff-key" style="{margin} font-weight: bold;">'
                    f"{html.escape(str(key))}:</div>"
                )
                child_depth = depth + 1
            for child_key, child in diff.children.items():
                self._html_rows(child_key, child, child_depth, rows)
            return
        rows.append(
            f'<div class="diff-line diff-{diff.type}" style="{margin} {_HTML_STYLE[diff.type]}">'
            f"{html.escape(_line(key, diff))}</div>"
        )
