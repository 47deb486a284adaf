"""ExceptionTransformer: exception chains as multi-line ``exception`` nodes.

Each link of the cause chain becomes a text block::

    Exception: ValueError (code: 0)
    Message: invalid token=***
    Location: /app/service.py:42
    Trace:
      #0 /app/service.py:42 Service.load(self=object(Service), key='a')

Blocks are joined by a blank line. The structured frames of the primary
exception are kept in ``metadata["stack_frames"]`` for rich HTML layout.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from types import TracebackType
from typing import Any

from pretty_inspect.context.collector import frame_arguments
from pretty_inspect.context.redaction import RedactionRule, RedactionScope, apply_rules
from pretty_inspect.context.snapshot import ContextSnapshot
from pretty_inspect.formatter.config import FormatterConfiguration
from pretty_inspect.formatter.introspection import INACCESSIBLE, is_object_like, type_name
from pretty_inspect.tree.nodes import NodeKind, RenderedNode

__all__ = ["ExceptionTransformer", "exception_chain", "qualified_name", "summarize_value"]

NO_TRACE = "<no trace available>"


def qualified_name(cls: type) -> str:
    if cls.__module__ in ("builtins", "__main__"):
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def exception_chain(error: BaseException) -> list[BaseException]:
    """Return ``error`` followed by its causes, outermost first.

    Explicit causes (``raise ... from``) win over implicit context; a
    suppressed context ends the chain. Cycles stop at the first repeat.
    """
    chain: list[BaseException] = []
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        chain.append(current)
        if current.__cause__ is not None:
            current = current.__cause__
        elif current.__suppress_context__:
            current = None
        else:
            current = current.__context__
    return chain


def summarize_value(value: Any, limit: int = 40) -> str:
    """Short single-line description used for frame arguments and variables."""
    if value is None or isinstance(value, (bool, int, float)):
        return repr(value)
    if isinstance(value, str):
        text = value if len(value) <= limit else value[:limit] + "…"
        return repr(text)
    if isinstance(value, Mapping):
        return f"dict({len(value)})"
    if isinstance(value, (list, tuple, set, frozenset)):
        return f"{type(value).__name__}({len(value)})"
    if isinstance(value, BaseException):
        return f"{qualified_name(type(value))}()"
    if is_object_like(value):
        return f"object({type_name(value)})"
    return type_name(value)


def _message_of(error: BaseException) -> str:
    try:
        return str(error)
    except Exception:  # noqa: BLE001 - a broken __str__ must not abort the render
        return INACCESSIBLE


def _error_code(error: BaseException) -> int:
    for attribute in ("errno", "code"):
        code = getattr(error, attribute, None)
        if isinstance(code, int) and not isinstance(code, bool):
            return code
    return 0


class ExceptionTransformer:
    """Render an exception and its cause chain.

    Args:
        configuration: Supplies redaction rules, the message limit and the
            variable snapshot switch.
    """

    def __init__(self, configuration: FormatterConfiguration) -> None:
        self._configuration = configuration
        self._message_re = _message_pattern(configuration.redaction_rules)

    def transform(
        self,
        error: BaseException,
        context: ContextSnapshot | None = None,
    ) -> RenderedNode:
        chain = exception_chain(error)
        blocks: list[str] = []
        primary_frames: list[dict[str, Any]] = []

        for index, current in enumerate(chain):
            frames = self.extract_frames(current.__traceback__)
            if index == 0:
                primary_frames = frames
            header = "Exception" if index == 0 else "Caused by"
            lines = [
                f"{header}: {qualified_name(type(current))} (code: {_error_code(current)})",
                f"Message: {self.redact_message(_message_of(current))}",
                f"Location: {_location(frames)}",
                "Trace:",
            ]
            if frames:
                lines.extend(
                    f"  #{i} {frame['file']}:{frame['line']} {_frame_label(frame)}({frame['summary']})"
                    for i, frame in enumerate(frames)
                )
            else:
                lines.append(f"  #0 {NO_TRACE}")
            if index == 0:
                lines.extend(self._variables_section(context))
            blocks.append("\n".join(lines))

        return RenderedNode(
            kind=NodeKind.EXCEPTION,
            text="\n\n".join(blocks),
            metadata={
                "exceptions": len(chain),
                "stack_frames": primary_frames,
                "has_full_stack": True,
            },
        )

    def redact_message(self, message: str) -> str:
        """Mask ``keyword=value`` fragments and apply the message limit."""
        if self._message_re is not None:
            message = self._message_re.sub(r"\1=***", message)
        limit = self._configuration.message_limit
        if len(message) > limit:
            message = message[:limit] + "…"
        return message

    def extract_frames(self, tb: TracebackType | None) -> list[dict[str, Any]]:
        """Return structured frames, innermost (raise site) first."""
        frames: list[dict[str, Any]] = []
        while tb is not None:
            frame = tb.tb_frame
            code = frame.f_code
            args = frame_arguments(frame)
            owner = args.get("self", args.get("cls"))
            if owner is not None and not isinstance(owner, type):
                owner = type(owner)
            redacted = {name: self._mask_argument(name, value) for name, value in args.items()}
            frames.append(
                {
                    "file": code.co_filename,
                    "line": tb.tb_lineno,
                    "function": code.co_name,
                    "class": owner.__qualname__ if isinstance(owner, type) else None,
                    "type": "." if isinstance(owner, type) else None,
                    "args": redacted,
                    "summary": ", ".join(
                        f"{name}={summarize_value(value)}" for name, value in redacted.items()
                    ),
                }
            )
            tb = tb.tb_next
        frames.reverse()
        return frames

    def _mask_argument(self, name: str, value: Any) -> Any:
        for rule in self._configuration.redaction_rules:
            if rule.matches(name, RedactionScope.PAYLOAD):
                return rule.replacement
        return value

    def _variables_section(self, context: ContextSnapshot | None) -> list[str]:
        if not self._configuration.include_variable_snapshots or context is None:
            return []
        if not context.variables:
            return []
        variables = apply_rules(
            self._configuration.redaction_rules, context.variables, RedactionScope.PAYLOAD
        )
        lines = ["Variables:"]
        lines.extend(f"  {name} => {summarize_value(value)}" for name, value in variables.items())
        return lines


def _message_pattern(rules: Iterable[RedactionRule]) -> re.Pattern[str] | None:
    keywords = [rule.keyword for rule in rules if rule.keyword]
    if not keywords:
        return None
    alternatives = "|".join(re.escape(keyword) for keyword in keywords)
    return re.compile(rf"({alternatives})=\S+", re.IGNORECASE)


def _location(frames: list[dict[str, Any]]) -> str:
    if not frames:
        return "unknown:0"
    return f"{frames[0]['file']}:{frames[0]['line']}"


def _frame_label(frame: Mapping[str, Any]) -> str:
    if frame.get("class"):
        return f"{frame['class']}{frame['type']}{frame['function']}"
    return str(frame["function"])
