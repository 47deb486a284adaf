"""ContextFrame and ContextSnapshot: call-site context attached to a dump.

A snapshot describes where a dump happened (origin), the call stack leading
to it, and optional request, environment and variable maps supplied by a
host integration. Both types are immutable; helper methods return copies.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

__all__ = ["ContextFrame", "ContextSnapshot"]


@dataclass(frozen=True, slots=True)
class ContextFrame:
    """One stack frame.

    Attributes:
        file:     Source file path.
        line:     Line number within ``file``.
        function: Function name, or None for module-level code.
        args:     Argument names mapped to their values.
    """

    file: str
    line: int
    function: str | None = None
    args: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ContextFrame:
        args = data.get("args", {})
        return cls(
            file=str(data.get("file", "unknown")),
            line=int(data.get("line", 0) or 0),
            function=data.get("function"),
            args=dict(args) if isinstance(args, Mapping) else {},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "line": self.line,
            "function": self.function,
            "args": dict(self.args),
        }


@dataclass(frozen=True, slots=True)
class ContextSnapshot:
    """Immutable snapshot of the dump call-site.

    Attributes:
        origin:    ``{"file", "line", "function"}`` of the dump call.
        stack:     Frames from the call-site outward.
        request:   Request data from a host integration (may be empty).
        env:       Environment data (may be empty).
        variables: Captured local variables (may be empty).
    """

    origin: Mapping[str, Any]
    stack: tuple[ContextFrame, ...] = ()
    request: Mapping[str, Any] = field(default_factory=dict)
    env: Mapping[str, Any] = field(default_factory=dict)
    variables: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ContextSnapshot:
        """Build a snapshot from plain data (``stack`` entries may be mappings)."""
        origin = data.get("origin", {})
        stack: list[ContextFrame] = []
        for frame in data.get("stack", ()) or ():
            if isinstance(frame, ContextFrame):
                stack.append(frame)
            elif isinstance(frame, Mapping):
                stack.append(ContextFrame.from_mapping(frame))
        return cls(
            origin=dict(origin) if isinstance(origin, Mapping) else {},
            stack=tuple(stack),
            request=_as_dict(data.get("request")),
            env=_as_dict(data.get("env")),
            variables=_as_dict(data.get("variables")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "origin": dict(self.origin),
            "stack": [frame.to_dict() for frame in self.stack],
            "request": dict(self.request),
            "env": dict(self.env),
            "variables": dict(self.variables),
        }

    def with_stack(self, frames: Sequence[ContextFrame]) -> ContextSnapshot:
        return replace(self, stack=tuple(frames))

    def with_sanitized_data(
        self,
        request: Mapping[str, Any],
        env: Mapping[str, Any],
        variables: Mapping[str, Any],
    ) -> ContextSnapshot:
        return replace(self, request=dict(request), env=dict(env), variables=dict(variables))


def _as_dict(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, Mapping) else {}
