"""JsonTransformer: JSON-encoded strings as collapsible ``json`` nodes.

Detection is opt-in through the ``auto_detect_json`` option. Detected
strings are decoded and re-serialised with four-space indentation; the
pretty text lives in a single ``json-body`` child.

``scan_json`` is the single-pass scanner both renderers use to highlight a
pretty-printed document.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterator
from enum import StrEnum, auto
from typing import TYPE_CHECKING, Any

from pretty_inspect.formatter.config import FormatterConfiguration, read_bool
from pretty_inspect.tree.nodes import NodeKind, RenderedNode

if TYPE_CHECKING:
    from pretty_inspect.request import RenderRequest

__all__ = ["JsonToken", "JsonTransformer", "decode_json", "scan_json"]

JSON_TITLE = "JSON Document"

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?")
_WHITESPACE = frozenset(" \t\r\n")


class JsonToken(StrEnum):
    KEY = auto()
    STRING = auto()
    NUMBER = auto()
    BOOL = auto()
    NULL = auto()
    PLAIN = auto()


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are accepted by json.loads but are not JSON.
    msg = f"non-standard JSON constant {name}"
    raise ValueError(msg)


def decode_json(text: str) -> Any:
    """Strictly decode ``text``; raises ValueError on any failure."""
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except RecursionError as exc:
        msg = "JSON document nested too deeply"
        raise ValueError(msg) from exc


def scan_json(text: str) -> Iterator[tuple[JsonToken, str]]:
    """Split JSON text into classified runs in one pass.

    A string run is a KEY when the next non-blank character is a colon.
    Concatenating the yielded texts reproduces ``text`` exactly.
    """
    plain_start = 0
    index = 0
    length = len(text)
    while index < length:
        char = text[index]
        token: JsonToken | None = None
        end = index

        if char == '"':
            end = index + 1
            while end < length:
                if text[end] == "\\":
                    end += 2
                    continue
                end += 1
                if text[end - 1] == '"':
                    break
            end = min(end, length)
            lookahead = end
            while lookahead < length and text[lookahead] in _WHITESPACE:
                lookahead += 1
            token = JsonToken.KEY if lookahead < length and text[lookahead] == ":" else JsonToken.STRING
        elif char == "-" or char.isdigit():
            match = _NUMBER_RE.match(text, index)
            if match is not None:
                token, end = JsonToken.NUMBER, match.end()
        elif text.startswith("true", index):
            token, end = JsonToken.BOOL, index + 4
        elif text.startswith("false", index):
            token, end = JsonToken.BOOL, index + 5
        elif text.startswith("null", index):
            token, end = JsonToken.NULL, index + 4

        if token is None:
            index += 1
            continue
        if plain_start < index:
            yield JsonToken.PLAIN, text[plain_start:index]
        yield token, text[index:end]
        index = end
        plain_start = end

    if plain_start < length:
        yield JsonToken.PLAIN, text[plain_start:]


class JsonTransformer:
    """Detect and pretty-print JSON documents held in strings."""

    def __init__(self, configuration: FormatterConfiguration) -> None:
        self._configuration = configuration

    def matches(self, value: Any, request: RenderRequest) -> bool:
        if not isinstance(value, str):
            return False
        enabled = read_bool(request.option("auto_detect_json"), self._configuration.auto_detect_json)
        if not enabled:
            return False
        try:
            decode_json(value)
        except ValueError:
            return False
        return True

    def transform(self, payload: str) -> RenderedNode:
        """Return a ``json`` node; undecodable input yields an empty body."""
        try:
            decoded = decode_json(payload)
        except ValueError:
            decoded, body = None, ""
        else:
            body = json.dumps(decoded, indent=4, ensure_ascii=False)

        limit = self._configuration.string_length_limit
        preview = payload if len(payload) <= limit else payload[:limit] + "…"
        node = RenderedNode(
            kind=NodeKind.JSON,
            text=JSON_TITLE,
            metadata={"collapsible": True, "preview": preview, "json_value": decoded},
        )
        node.add_child(RenderedNode(kind=NodeKind.JSON_BODY, text=body))
        return node
