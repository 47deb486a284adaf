"""ValueTransformer: orchestrator that turns a RenderRequest into a RenderedTree.

This is the core of the library. It walks an arbitrary value depth-first and
builds a fresh RenderedTree, delegating exceptions and JSON strings to the
sub-transformers.

Architecture:
- ``render()`` resolves the per-call configuration (instance defaults plus the
  request's options), starts a PerformanceMonitor and hands the payload to a
  ``_Traversal``. The traversal owns every piece of mutable state of the call
  (the set of containers currently being visited and the monitor), so one
  ValueTransformer can serve concurrent calls.
- Limits cap the work performed, not just the output: containers at
  ``max_depth`` are never enumerated and iteration stops at ``max_items``
  before the excess entries are touched.
- Circularity is tracked by identity. A container is pushed when entered and
  popped when left, so the same instance in two sibling branches is rendered
  twice rather than flagged.
- Optional ``context`` and ``performance`` nodes are appended after the
  payload node.
"""

from __future__ import annotations

import json
import logging
import math
import numbers
from collections import deque
from collections.abc import Callable, Iterator, Mapping
from typing import Any

from pretty_inspect.context.collector import ContextCollector, DefaultContextCollector
from pretty_inspect.context.redaction import RedactionRule, RedactionScope, apply_rules
from pretty_inspect.context.snapshot import ContextSnapshot
from pretty_inspect.formatter.config import FormatterConfiguration
from pretty_inspect.formatter.introspection import is_object_like, object_fields, type_name
from pretty_inspect.formatter.monitor import PerformanceMonitor
from pretty_inspect.request import RenderRequest
from pretty_inspect.transformers.exception import ExceptionTransformer, summarize_value
from pretty_inspect.transformers.json_document import JsonTransformer
from pretty_inspect.tree.nodes import NodeKind, RenderedNode, RenderedTree

__all__ = ["ValueTransformer"]

logger = logging.getLogger(__name__)

ROOT_EXPRESSION = "$value"
TRUNCATION_MARK = " … truncated"

_SEQUENCE_TYPES = (list, tuple, set, frozenset, deque)

# (raw key, display label, expression suffix, value)
_Entry = tuple[Any, str, str, Any]


def _quote_key(key: str) -> str:
    escaped = key.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def _key_label(key: Any) -> str:
    if isinstance(key, bool):
        return repr(key)
    if isinstance(key, int):
        return str(key)
    if isinstance(key, str):
        return _quote_key(key)
    return repr(key)


def _json_safe_number(value: Any) -> Any:
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        return value if math.isfinite(value) else repr(value)
    return str(value)


def is_container(value: Any) -> bool:
    return isinstance(value, Mapping) or isinstance(value, _SEQUENCE_TYPES)


def _ordered(value: set[Any] | frozenset[Any]) -> list[Any]:
    """Sorted elements when they compare, else iteration order."""
    try:
        return sorted(value)
    except TypeError:
        return list(value)


def _json_key(json_result: Mapping[str, Any], raw_key: Any) -> str:
    # 1 and "1" both stringify to "1"; the later one falls back to its repr.
    key = str(raw_key)
    if key in json_result:
        key = repr(raw_key)
        if key in json_result:
            logger.debug("json key %r collides with an earlier entry, keeping the later value", key)
    return key


class ValueTransformer:
    """Build rendered trees for arbitrary values.

    Args:
        configuration: Base configuration. When None, channel defaults from
            ``FormatterConfiguration.for_channel`` are used for every call.
        collector: Supplies call-site context when context display is on and
            the request carries no snapshot. Defaults to
            ``DefaultContextCollector()``.

    Example::

        from pretty_inspect import RenderRequest, ValueTransformer

        tree = ValueTransformer().format(RenderRequest({"a": 1}, "cli"))
        tree.payload.text   # "array(1)"
    """

    def __init__(
        self,
        configuration: FormatterConfiguration | None = None,
        collector: ContextCollector | None = None,
    ) -> None:
        self._configuration = configuration
        self._collector = collector if collector is not None else DefaultContextCollector()

    def configuration_for(self, request: RenderRequest) -> FormatterConfiguration:
        """Return the configuration in effect for ``request``."""
        if self._configuration is None:
            return FormatterConfiguration.for_channel(request.channel, request.options)
        return self._configuration.with_overrides(request.options)

    def format(self, request: RenderRequest) -> RenderedTree:
        return self.render(request.payload, request)

    def render(self, value: Any, request: RenderRequest) -> RenderedTree:
        monitor = PerformanceMonitor()
        monitor.start()
        configuration = self.configuration_for(request)

        context = request.context
        wants_context = configuration.show_context or configuration.include_variable_snapshots
        if context is None and wants_context:
            context = self._collector.collect(request)

        expression = request.option("expression")
        if not isinstance(expression, str) or not expression:
            expression = ROOT_EXPRESSION

        traversal = _Traversal(configuration, request, monitor, context)
        payload_node = traversal.transform(value, 0, expression)

        tree = RenderedTree(
            channel=str(request.channel),
            theme=configuration.theme,
            metadata={
                "theme_preference": str(request.option("theme_preference", configuration.theme)),
                "show_expression_meta": configuration.show_table_variable_meta,
                "expand_exceptions": configuration.expand_exceptions,
                "indent_unit": configuration.indent_unit,
                "color": request.option("color"),
                "expression": expression,
            },
        )
        tree.add_child(payload_node)

        if configuration.show_context and context is not None:
            tree.add_child(_context_node(context, configuration))

        duration_ms = monitor.stop()
        tree.metadata["duration_ms"] = duration_ms
        tree.metadata["truncated_segments"] = monitor.truncations
        if configuration.show_performance_metrics:
            tree.add_child(
                RenderedNode(
                    kind=NodeKind.PERFORMANCE,
                    text=f"Rendered in {duration_ms:.2f} ms",
                    metadata={"duration_ms": duration_ms, "truncated_segments": monitor.truncations},
                )
            )
        logger.debug(
            "rendered %s payload in %.2f ms with %d truncations",
            type_name(value),
            duration_ms,
            monitor.truncations,
        )
        return tree


class _Traversal:
    """Mutable state of one render call."""

    def __init__(
        self,
        configuration: FormatterConfiguration,
        request: RenderRequest,
        monitor: PerformanceMonitor,
        context: ContextSnapshot | None,
    ) -> None:
        self.configuration = configuration
        self.request = request
        self.monitor = monitor
        self.context = context
        self.active: set[int] = set()
        self.exceptions = ExceptionTransformer(configuration)
        self.json = JsonTransformer(configuration)
        self.payload_rules = [
            rule for rule in configuration.redaction_rules if rule.scope in (RedactionScope.ANY, RedactionScope.PAYLOAD)
        ]

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def transform(self, value: Any, depth: int, expression: str) -> RenderedNode:
        if isinstance(value, BaseException):
            node = self.exceptions.transform(value, self.context)
            node.metadata["json_value"] = None
            node.metadata["expression"] = expression
            return node

        if isinstance(value, str) and self.json.matches(value, self.request):
            node = self.json.transform(value)
            node.metadata["expression"] = expression
            return node

        if is_container(value):
            return self._guarded(value, depth, expression, self._container)

        if isinstance(value, str):
            return self._string(value, expression)

        if isinstance(value, bool):
            return RenderedNode(
                kind=NodeKind.BOOL,
                text=f"bool({'true' if value else 'false'})",
                metadata={"expression": expression, "json_value": value},
            )

        if value is None:
            return RenderedNode(
                kind=NodeKind.NULL,
                text="null",
                metadata={"expression": expression, "json_value": None},
            )

        if isinstance(value, numbers.Number):
            label = "int" if type(value) is int else "float" if type(value) is float else type_name(value)
            return RenderedNode(
                kind=NodeKind.NUMBER,
                text=f"{label}({value!r})" if isinstance(value, float) else f"{label}({value})",
                metadata={"expression": expression, "json_value": _json_safe_number(value)},
            )

        if is_object_like(value):
            return self._guarded(value, depth, expression, self._object)

        return RenderedNode(
            kind=NodeKind.UNKNOWN,
            text=type_name(value),
            metadata={"expression": expression, "json_value": None},
        )

    def _guarded(
        self,
        value: Any,
        depth: int,
        expression: str,
        build: Callable[[Any, int, str], RenderedNode],
    ) -> RenderedNode:
        identity = id(value)
        if identity in self.active:
            return self._circular(value, expression)
        self.active.add(identity)
        try:
            return build(value, depth, expression)
        finally:
            self.active.discard(identity)

    # ------------------------------------------------------------------
    # Leaves
    # ------------------------------------------------------------------

    def _string(self, value: str, expression: str) -> RenderedNode:
        limit = self.configuration.string_length_limit
        length = len(value)
        truncated = length > limit
        shown = value[:limit] if truncated else value
        text = f'string({length}) "{shown}"'
        metadata: dict[str, Any] = {"expression": expression, "json_value": shown}
        if truncated:
            text += TRUNCATION_MARK
            metadata["truncated"] = True
            self.monitor.register_truncation()
        return RenderedNode(kind=NodeKind.STRING, text=text, metadata=metadata)

    def _circular(self, value: Any, expression: str) -> RenderedNode:
        self.monitor.register_truncation()
        text = "[circular reference]" if is_container(value) else "[circular object]"
        logger.debug("circular reference at %s", expression)
        return RenderedNode(
            kind=NodeKind.CIRCULAR,
            text=text,
            metadata={"expression": expression, "json_value": None, "truncated": True},
        )

    # ------------------------------------------------------------------
    # Containers
    # ------------------------------------------------------------------

    def _container(self, value: Any, depth: int, expression: str) -> RenderedNode:
        if isinstance(value, Mapping):
            entries = self._mapping_entries(value)
            as_list = False
        else:
            items = _ordered(value) if isinstance(value, (set, frozenset)) else value
            entries = ((index, str(index), f"[{index}]", item) for index, item in enumerate(items))
            as_list = True
        return self._enumerate(
            kind=NodeKind.ARRAY,
            count=len(value),
            entries=entries,
            depth=depth,
            expression=expression,
            as_list=as_list,
            class_name=None,
        )

    def _object(self, value: Any, depth: int, expression: str) -> RenderedNode:
        class_name = type_name(value)
        if depth >= self.configuration.max_depth:
            records = []
            count = 0
        else:
            records = object_fields(value)
            count = len(records)
        entries = (
            (record.raw_name, record.display_name, f"->{record.display_name}", record.value)
            for record in records
        )
        return self._enumerate(
            kind=NodeKind.OBJECT,
            count=count,
            entries=entries,
            depth=depth,
            expression=expression,
            as_list=False,
            class_name=class_name,
        )

    def _mapping_entries(self, value: Mapping[Any, Any]) -> Iterator[_Entry]:
        for key, item in value.items():
            label = _key_label(key)
            if isinstance(key, str):
                for rule in self.payload_rules:
                    if rule.matches(key, RedactionScope.PAYLOAD):
                        item = rule.replacement
                        break
            yield key, label, f"[{label}]", item

    def _enumerate(
        self,
        *,
        kind: NodeKind,
        count: int,
        entries: Iterator[_Entry],
        depth: int,
        expression: str,
        as_list: bool,
        class_name: str | None,
    ) -> RenderedNode:
        header = f"array({count})" if class_name is None else f"object({class_name})"
        node = RenderedNode(kind=kind, text=header, metadata={"expression": expression})

        if depth >= self.configuration.max_depth:
            sentinel: dict[str, Any] = {"__truncated__": "depth"}
            if class_name is not None:
                sentinel["__class"] = class_name
            node.append_text(f"{TRUNCATION_MARK} (depth limit)")
            node.metadata["truncated"] = True
            node.metadata["json_value"] = sentinel
            self.monitor.register_truncation()
            logger.debug("depth limit %d reached at %s", self.configuration.max_depth, expression)
            return node

        limit = self.configuration.effective_max_items
        base = expression or ROOT_EXPRESSION
        json_result: dict[str, Any] = {}

        for index, (raw_key, label, suffix, item) in enumerate(entries):
            if index >= limit:
                node.metadata["truncated"] = True
                node.add_child(
                    RenderedNode(
                        kind=NodeKind.NOTICE,
                        text=f"… truncated (items: {count}, limit: {limit})",
                    )
                )
                items: Any = list(json_result.values()) if as_list else json_result
                sentinel = {"__truncated__": True, "__items__": items}
                if class_name is not None:
                    sentinel["__class"] = class_name
                node.metadata["json_value"] = sentinel
                self.monitor.register_truncation()
                logger.debug("item limit %d reached at %s (%d entries)", limit, expression, count)
                break

            child_expression = base + suffix
            child = self.transform(item, depth + 1, child_expression)
            node.add_child(
                RenderedNode(
                    kind=NodeKind.ARRAY_ITEM,
                    text=f"[{label}]",
                    metadata={"expression": child_expression, "key": raw_key},
                    children=[child],
                )
            )
            json_result[_json_key(json_result, raw_key)] = child.metadata.get("json_value")

        if "json_value" not in node.metadata:
            if class_name is not None:
                node.metadata["json_value"] = {"__class": class_name, "properties": json_result}
            elif as_list:
                node.metadata["json_value"] = list(json_result.values())
            else:
                node.metadata["json_value"] = json_result
        return node


# ---------------------------------------------------------------------------
# Context block
# ---------------------------------------------------------------------------


def _compact(data: Mapping[Any, Any]) -> str:
    try:
        return json.dumps(dict(data), ensure_ascii=False, default=summarize_value)
    except (TypeError, ValueError):
        # Cyclic values or keys JSON cannot hold: one summary per entry instead.
        logger.debug("context data is not JSON serialisable, summarising %d entries", len(data))
        entries = ", ".join(f"{key}={summarize_value(value)}" for key, value in data.items())
        return "{" + entries + "}"


def _mask(rules: tuple[RedactionRule, ...], name: str) -> str | None:
    for rule in rules:
        if rule.matches(name, RedactionScope.PAYLOAD):
            return rule.replacement
    return None


def _context_node(snapshot: ContextSnapshot, configuration: FormatterConfiguration) -> RenderedNode:
    rules = configuration.redaction_rules
    sanitized = snapshot.with_sanitized_data(
        request=apply_rules(rules, snapshot.request, RedactionScope.REQUEST),
        env=apply_rules(rules, snapshot.env, RedactionScope.ENV),
        variables=apply_rules(rules, snapshot.variables, RedactionScope.PAYLOAD),
    )
    stack_limit = configuration.stack_limit
    frames = sanitized.stack[:stack_limit]
    truncated_stack = len(sanitized.stack) > stack_limit

    origin = sanitized.origin
    lines = ["Context:", f"  Origin: {origin.get('file', 'unknown')}:{origin.get('line', 0)}"]
    if sanitized.request:
        lines.append(f"  Request: {_compact(sanitized.request)}")
    if sanitized.env:
        lines.append(f"  Env: {_compact(sanitized.env)}")
    if sanitized.variables:
        lines.append(f"  Variables: {_compact(sanitized.variables)}")
    lines.append(f"  Stack frames ({len(frames)}):")
    for index, frame in enumerate(frames):
        summary = ", ".join(
            _mask(rules, name) or summarize_value(value) for name, value in frame.args.items()
        )
        lines.append(f"    #{index} {frame.function or 'main'}({summary}) at {frame.file}:{frame.line}")

    return RenderedNode(
        kind=NodeKind.CONTEXT,
        text="\n".join(lines),
        metadata={"truncated_stack": truncated_stack, "frames": len(frames)},
    )

