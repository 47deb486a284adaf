"""Sub-transformers for special-cased values."""

from __future__ import annotations

from pretty_inspect.transformers.diff import DiffNode, DiffTransformer, DiffType
from pretty_inspect.transformers.exception import ExceptionTransformer
from pretty_inspect.transformers.json_document import JsonTransformer
from pretty_inspect.transformers.sql import SqlTransformer

__all__ = [
    "DiffNode",
    "DiffTransformer",
    "DiffType",
    "ExceptionTransformer",
    "JsonTransformer",
    "SqlTransformer",
]
