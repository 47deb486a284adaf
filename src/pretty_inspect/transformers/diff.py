"""DiffTransformer: structural comparison of two values.

Values are compared by deep equality, never by identity. Maps are compared
key-wise over the union of their keys, lists index-wise, and objects of the
same concrete type through their field maps (private and protected fields
included). Everything else is either ``unchanged`` or ``modified``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum, auto
from typing import Any

from pretty_inspect.formatter.introspection import field_map, is_object_like, type_name
from pretty_inspect.tree.nodes import NodeKind, RenderedNode

__all__ = ["DiffNode", "DiffTransformer", "DiffType", "format_diff_value"]

DEFAULT_MAX_DEPTH = 10


class DiffType(StrEnum):
    UNCHANGED = auto()
    ADDED = auto()
    REMOVED = auto()
    MODIFIED = auto()


@dataclass(slots=True)
class DiffNode:
    """Result of comparing two values.

    Attributes:
        type:     Outcome of the comparison (see DiffType).
        old:      The old value (None for ADDED).
        new:      The new value (None for REMOVED).
        children: Per-key results when both sides are comparable containers,
                  else None.
    """

    type: DiffType
    old: Any = None
    new: Any = None
    children: dict[Any, DiffNode] | None = field(default=None)

    @property
    def changed(self) -> bool:
        return self.type is not DiffType.UNCHANGED


def _category(value: Any) -> str:
    if isinstance(value, Mapping):
        return "map"
    if isinstance(value, (list, tuple)):
        return "list"
    if value is None or isinstance(value, (bool, int, float, complex, str, bytes)):
        return type(value).__name__
    if is_object_like(value):
        return "object"
    return type(value).__name__


def _deep_equal(old: Any, new: Any) -> bool:
    if type(old) is not type(new) and _category(old) != _category(new):
        return False
    try:
        return bool(old == new)
    except RecursionError:
        return False
    except Exception:  # noqa: BLE001 - user-defined __eq__ may raise anything
        return False


def format_diff_value(value: Any) -> str:
    """Compact one-line description of a value inside a diff."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return f'"{value}"'
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (Mapping, list, tuple)):
        return f"[{len(value)} items]"
    return type_name(value)


class DiffTransformer:
    """Compute and describe structural differences."""

    def diff(
        self,
        old: Any,
        new: Any,
        depth: int = 0,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> DiffNode:
        if _deep_equal(old, new):
            return DiffNode(DiffType.UNCHANGED, old, new)
        if depth >= max_depth:
            return DiffNode(DiffType.MODIFIED, old, new)

        category = _category(old)
        if category != _category(new):
            return DiffNode(DiffType.MODIFIED, old, new)

        if category == "map":
            return self._diff_maps(old, new, old, new, depth, max_depth)
        if category == "list":
            return self._diff_maps(dict(enumerate(old)), dict(enumerate(new)), old, new, depth, max_depth)
        if category == "object":
            if type(old) is not type(new):
                return DiffNode(DiffType.MODIFIED, old, new)
            return self._diff_maps(field_map(old), field_map(new), old, new, depth, max_depth)
        return DiffNode(DiffType.MODIFIED, old, new)

    def _diff_maps(
        self,
        old_map: Mapping[Any, Any],
        new_map: Mapping[Any, Any],
        old: Any,
        new: Any,
        depth: int,
        max_depth: int,
    ) -> DiffNode:
        children: dict[Any, DiffNode] = {}
        for key in dict.fromkeys([*old_map.keys(), *new_map.keys()]):
            if key not in new_map:
                children[key] = DiffNode(DiffType.REMOVED, old_map[key], None)
            elif key not in old_map:
                children[key] = DiffNode(DiffType.ADDED, None, new_map[key])
            else:
                children[key] = self.diff(old_map[key], new_map[key], depth + 1, max_depth)

        changed = any(child.changed for child in children.values())
        return DiffNode(DiffType.MODIFIED if changed else DiffType.UNCHANGED, old, new, children)

    # ------------------------------------------------------------------
    # Rendered nodes
    # ------------------------------------------------------------------

    def create_diff_node(self, diff: DiffNode, label: str = "Diff") -> RenderedNode:
        """Return a ``diff`` node whose ``diff-item`` children mirror ``diff``."""
        node = RenderedNode(
            kind=NodeKind.DIFF,
            text=label,
            metadata={"diff_type": diff.type, "changed": diff.changed},
        )
        if diff.children is None:
            node.add_child(self._diff_item(None, diff))
        else:
            for key, child in diff.children.items():
                node.add_child(self._diff_item(key, child))
        return node

    def _diff_item(self, key: Any, diff: DiffNode) -> RenderedNode:
        item = RenderedNode(
            kind=NodeKind.DIFF_ITEM,
            text=_diff_content(key, diff),
            metadata={"diff_type": diff.type, "key": key},
        )
        if diff.children is not None:
            for child_key, child in diff.children.items():
                item.add_child(self._diff_item(child_key, child))
        return item


def _diff_content(key: Any, diff: DiffNode) -> str:
    prefix = "" if key is None else f"{key}: "
    if diff.children is not None:
        return "" if key is None else f"{key}:"
    if diff.type is DiffType.ADDED:
        return f"+ {prefix}{format_diff_value(diff.new)}"
    if diff.type is DiffType.REMOVED:
        return f"- {prefix}{format_diff_value(diff.old)}"
    if diff.type is DiffType.MODIFIED:
        return f"- {prefix}{format_diff_value(diff.old)}\n+ {prefix}{format_diff_value(diff.new)}"
    return f"  {prefix}{format_diff_value(diff.old)}"
