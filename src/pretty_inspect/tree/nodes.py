"""RenderedNode dataclass and NodeKind StrEnum for the rendered value tree.

The rendered tree is the renderer-agnostic intermediate representation that
the value transformer produces and the terminal and HTML renderers consume.
A fresh tree is built for every render call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

__all__ = ["NodeKind", "RenderedNode", "RenderedTree"]


class NodeKind(StrEnum):
    """Closed set of node kinds.

    Values are the exact tag strings exposed to consumers (they appear as
    ``data-node-type`` and ``node-type-*`` classes in HTML output).
    """

    ARRAY = "container-array"
    OBJECT = "container-object"
    ARRAY_ITEM = "array-item"
    STRING = "string"
    NUMBER = "number"
    BOOL = "bool"
    NULL = "null"
    UNKNOWN = "unknown"
    CIRCULAR = "circular"
    NOTICE = "notice"
    EXCEPTION = "exception"
    JSON = "json"
    JSON_BODY = "json-body"
    CONTEXT = "context"
    PERFORMANCE = "performance"
    DIFF = "diff"
    DIFF_ITEM = "diff-item"
    SQL = "sql"
    SQL_EXPLAIN = "sql-explain"

    @property
    def is_container(self) -> bool:
        return self in (NodeKind.ARRAY, NodeKind.OBJECT)


@dataclass(slots=True)
class RenderedNode:
    """A node in the rendered tree.

    Attributes:
        kind:      Which kind of node this is (see NodeKind).
        text:      Human-readable content. May span several lines (exception
                   blocks, pretty-printed JSON, formatted SQL).
        metadata:  Open key/value map. Common keys are ``expression``,
                   ``json_value`` and ``truncated``; transformers add their own
                   (``diff_type``, ``collapsible``, ``preview``,
                   ``stack_frames``, ``duration_ms``).
        children:  Ordered child nodes. Must use field(default_factory=list)
                   so each instance owns its list.
    """

    kind: NodeKind
    text: str
    metadata: dict[str, Any] = field(default_factory=dict)
    children: list[RenderedNode] = field(default_factory=list)

    def add_child(self, child: RenderedNode) -> RenderedNode:
        self.children.append(child)
        return child

    def append_text(self, suffix: str) -> None:
        self.text += suffix

    @property
    def truncated(self) -> bool:
        return bool(self.metadata.get("truncated", False))

    @property
    def expression(self) -> str | None:
        return self.metadata.get("expression")

    @property
    def has_json_value(self) -> bool:
        """True when the node carries a ``json_value`` entry (even ``None``)."""
        return "json_value" in self.metadata

    def find_child(self, kind: NodeKind) -> RenderedNode | None:
        for child in self.children:
            if child.kind == kind:
                return child
        return None

    def walk(self, depth: int = 0) -> list[tuple[RenderedNode, int]]:
        """Return ``(node, depth)`` pairs for this subtree in pre-order."""
        pairs = [(self, depth)]
        for child in self.children:
            pairs.extend(child.walk(depth + 1))
        return pairs


@dataclass(slots=True)
class RenderedTree:
    """Root of a rendered tree.

    Attributes:
        channel:   ``"cli"`` or ``"web"``.
        theme:     Resolved theme name (``"light"``, ``"dark"`` or ``"auto"``).
        metadata:  Render-wide flags the renderers honour (theme preference,
                   expression display, colour opt-out, payload expression).
        children:  Top-level nodes: the payload node, then optional
                   ``context`` and ``performance`` nodes.
    """

    channel: str
    theme: str = "auto"
    metadata: dict[str, Any] = field(default_factory=dict)
    children: list[RenderedNode] = field(default_factory=list)

    def add_child(self, child: RenderedNode) -> RenderedNode:
        self.children.append(child)
        return child

    @property
    def payload(self) -> RenderedNode | None:
        """The node describing the dumped value itself."""
        for child in self.children:
            if child.kind not in (NodeKind.CONTEXT, NodeKind.PERFORMANCE):
                return child
        return None

    def find_child(self, kind: NodeKind) -> RenderedNode | None:
        for child in self.children:
            if child.kind == kind:
                return child
        return None
