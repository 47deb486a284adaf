"""Value-to-tree transformation and its configuration."""

from __future__ import annotations

from pretty_inspect.formatter.config import FormatterConfiguration, IndentStyle
from pretty_inspect.formatter.introspection import FieldRecord, Visibility, object_fields
from pretty_inspect.formatter.monitor import PerformanceMonitor
from pretty_inspect.formatter.value_transformer import ValueTransformer

__all__ = [
    "FieldRecord",
    "FormatterConfiguration",
    "IndentStyle",
    "PerformanceMonitor",
    "ValueTransformer",
    "Visibility",
    "object_fields",
]
