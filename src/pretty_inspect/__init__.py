"""pretty-inspect - readable dumps of Python values for terminals and browsers."""

from __future__ import annotations

import logging

from pretty_inspect.context import (
    ContextCollector,
    ContextFrame,
    ContextSnapshot,
    DefaultContextCollector,
    RedactionRule,
    RedactionScope,
)
from pretty_inspect.formatter import FormatterConfiguration, IndentStyle, PerformanceMonitor, ValueTransformer
from pretty_inspect.request import Channel, RenderRequest
from pretty_inspect.tree import NodeKind, RenderedNode, RenderedTree
from pretty_inspect.transformers import (
    DiffNode,
    DiffTransformer,
    DiffType,
    ExceptionTransformer,
    JsonTransformer,
    SqlTransformer,
)
from pretty_inspect.renderers import (
    DiffRenderer,
    HtmlRenderer,
    TerminalRenderer,
    ThemeProfile,
    ThemeRegistry,
)
from pretty_inspect.storage import DumpHistoryStorage
from pretty_inspect.api import (
    pd,
    pd_assert,
    pd_auto_diff,
    pd_clear_history,
    pd_diff,
    pd_sql,
    pd_when,
    pretty_dump,
    render,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__: str = "0.1.0"
__all__: list[str] = [
    "Channel",
    "ContextCollector",
    "ContextFrame",
    "ContextSnapshot",
    "DefaultContextCollector",
    "DiffNode",
    "DiffRenderer",
    "DiffTransformer",
    "DiffType",
    "DumpHistoryStorage",
    "ExceptionTransformer",
    "FormatterConfiguration",
    "HtmlRenderer",
    "IndentStyle",
    "JsonTransformer",
    "NodeKind",
    "PerformanceMonitor",
    "RedactionRule",
    "RedactionScope",
    "RenderRequest",
    "RenderedNode",
    "RenderedTree",
    "SqlTransformer",
    "TerminalRenderer",
    "ThemeProfile",
    "ThemeRegistry",
    "ValueTransformer",
    "pd",
    "pd_assert",
    "pd_auto_diff",
    "pd_clear_history",
    "pd_diff",
    "pd_sql",
    "pd_when",
    "pretty_dump",
    "render",
]
