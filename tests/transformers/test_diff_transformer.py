"""Tests for DiffTransformer: structural comparison and diff nodes."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from pretty_inspect import NodeKind
from pretty_inspect.transformers import DiffNode, DiffTransformer, DiffType
from pretty_inspect.transformers.diff import format_diff_value


@dataclass
class User:
    name: str
    age: int


@dataclass
class Admin:
    name: str
    age: int


@pytest.fixture
def differ() -> DiffTransformer:
    return DiffTransformer()


class TestDiffMaps:
    def test_added_and_modified_keys(self, differ: DiffTransformer) -> None:
        result = differ.diff({"a": 1, "b": 2}, {"a": 1, "b": 3, "c": 4})
        assert result.type is DiffType.MODIFIED
        assert result.children is not None
        assert result.children["a"].type is DiffType.UNCHANGED
        assert result.children["b"].type is DiffType.MODIFIED
        assert (result.children["b"].old, result.children["b"].new) == (2, 3)
        assert result.children["c"].type is DiffType.ADDED
        assert result.children["c"].new == 4

    def test_removed_key(self, differ: DiffTransformer) -> None:
        result = differ.diff({"a": 1, "gone": True}, {"a": 1})
        assert result.children is not None
        assert result.children["gone"] == DiffNode(DiffType.REMOVED, True, None)

    def test_key_order_is_old_then_new(self, differ: DiffTransformer) -> None:
        result = differ.diff({"b": 1, "a": 1}, {"c": 1, "a": 2})
        assert result.children is not None
        assert list(result.children) == ["b", "a", "c"]

    def test_equal_values_are_unchanged_leaf(self, differ: DiffTransformer) -> None:
        result = differ.diff({"a": [1, 2]}, {"a": [1, 2]})
        assert result.type is DiffType.UNCHANGED
        assert result.children is None
        assert not result.changed


class TestDiffLists:
    def test_index_wise(self, differ: DiffTransformer) -> None:
        result = differ.diff([1, 2, 3], [1, 5])
        assert result.children is not None
        assert [child.type for child in result.children.values()] == [
            DiffType.UNCHANGED,
            DiffType.MODIFIED,
            DiffType.REMOVED,
        ]

    def test_tuple_and_list_share_a_category(self, differ: DiffTransformer) -> None:
        result = differ.diff((1, 2), [1, 3])
        assert result.children is not None
        assert result.children[1].type is DiffType.MODIFIED


class TestDiffScalarsAndObjects:
    def test_type_mismatch_is_modified(self, differ: DiffTransformer) -> None:
        result = differ.diff(1, "1")
        assert result == DiffNode(DiffType.MODIFIED, 1, "1")

    def test_map_against_list_is_modified_without_children(self, differ: DiffTransformer) -> None:
        result = differ.diff({"0": 1}, [1])
        assert result.type is DiffType.MODIFIED
        assert result.children is None

    def test_deep_equality_not_identity(self, differ: DiffTransformer) -> None:
        assert differ.diff([{"x": 1}], [{"x": 1}]).type is DiffType.UNCHANGED

    def test_objects_compare_fields(self, differ: DiffTransformer) -> None:
        result = differ.diff(User("ada", 36), User("ada", 37))
        assert result.type is DiffType.MODIFIED
        assert result.children is not None
        assert result.children["name"].type is DiffType.UNCHANGED
        assert result.children["age"].type is DiffType.MODIFIED

    def test_objects_of_different_types(self, differ: DiffTransformer) -> None:
        result = differ.diff(User("ada", 36), Admin("ada", 36))
        assert result.type is DiffType.MODIFIED
        assert result.children is None

    def test_raising_eq_counts_as_different(self, differ: DiffTransformer) -> None:
        class Angry:
            def __eq__(self, other: object) -> bool:
                raise RuntimeError("no comparisons")

            __hash__ = object.__hash__

        assert differ.diff([Angry()], [1]).type is DiffType.MODIFIED


class TestDepthLimit:
    def test_stops_descending_at_max_depth(self, differ: DiffTransformer) -> None:
        result = differ.diff({"x": {"y": 1}}, {"x": {"y": 2}}, max_depth=1)
        assert result.children is not None
        nested = result.children["x"]
        assert nested.type is DiffType.MODIFIED
        assert nested.children is None

    def test_deep_structures_within_limit(self, differ: DiffTransformer) -> None:
        result = differ.diff({"x": {"y": 1}}, {"x": {"y": 2}})
        assert result.children is not None
        assert result.children["x"].children is not None


class TestDiffNodes:
    def test_item_texts(self, differ: DiffTransformer) -> None:
        diff = differ.diff({"a": 1, "b": 2}, {"a": 1, "b": 3, "c": 4})
        node = differ.create_diff_node(diff)
        assert node.kind is NodeKind.DIFF
        assert node.text == "Diff"
        assert node.metadata["changed"] is True
        assert [child.text for child in node.children] == ["  a: 1", "- b: 2\n+ b: 3", "+ c: 4"]
        assert all(child.kind is NodeKind.DIFF_ITEM for child in node.children)

    def test_nested_items(self, differ: DiffTransformer) -> None:
        diff = differ.diff({"user": {"name": "a"}}, {"user": {"name": "b"}})
        node = differ.create_diff_node(diff)
        user = node.children[0]
        assert user.text == "user:"
        assert user.metadata["diff_type"] is DiffType.MODIFIED
        assert user.children[0].text == '- name: "a"\n+ name: "b"'

    def test_scalar_root(self, differ: DiffTransformer) -> None:
        node = differ.create_diff_node(differ.diff(1, 2), label="Numbers")
        assert node.text == "Numbers"
        assert [child.text for child in node.children] == ["- 1\n+ 2"]


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, "null"),
        (True, "true"),
        ("x", '"x"'),
        (1.5, "1.5"),
        ([1, 2, 3], "[3 items]"),
        ({"a": 1}, "[1 items]"),
        (User("a", 1), "User"),
    ],
)
def test_format_diff_value(value: object, expected: str) -> None:
    assert format_diff_value(value) == expected
