"""Rendered tree data types."""

from __future__ import annotations

from pretty_inspect.tree.nodes import NodeKind, RenderedNode, RenderedTree

__all__ = ["NodeKind", "RenderedNode", "RenderedTree"]
