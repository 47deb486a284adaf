"""RenderRequest: the immutable input of one render call.

A request bundles the payload, the output channel, loose per-call options and
an optional context snapshot. Construction fails for an unknown channel or a
malformed ``redaction_rules`` option so a bad request can never reach the
transformer.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum, auto
from types import MappingProxyType
from typing import Any

from pretty_inspect.context.redaction import coerce_rules
from pretty_inspect.context.snapshot import ContextSnapshot

__all__ = ["Channel", "RenderRequest"]


class Channel(StrEnum):
    """Output target: ``cli`` for terminals, ``web`` for browsers."""

    CLI = auto()
    WEB = auto()


@dataclass(frozen=True, slots=True)
class RenderRequest:
    """Immutable render request.

    Attributes:
        payload: The value to render. Only the request is immutable; the
            payload is read, never copied or modified.
        channel: ``"cli"`` or ``"web"``. Anything else raises ValueError.
        options: Per-call options (snake_case keys, see FormatterConfiguration).
            Stored as a read-only mapping.
        context: Optional call-site snapshot. A ``"context"`` option holding a
            mapping is converted into one when this is None.
    """

    payload: Any
    channel: Channel | str
    options: Mapping[str, Any] = field(default_factory=dict)
    context: ContextSnapshot | None = None

    def __post_init__(self) -> None:
        try:
            channel = Channel(self.channel)
        except ValueError:
            allowed = ", ".join(repr(str(c)) for c in Channel)
            msg = f"channel must be one of {allowed}, got {self.channel!r}"
            raise ValueError(msg) from None
        object.__setattr__(self, "channel", channel)

        options = {str(key): value for key, value in self.options.items()}
        rules = options.get("redaction_rules")
        if isinstance(rules, Iterable) and not isinstance(rules, (str, Mapping)):
            options["redaction_rules"] = coerce_rules(rules)
        object.__setattr__(self, "options", MappingProxyType(options))

        if self.context is None and isinstance(options.get("context"), Mapping):
            object.__setattr__(self, "context", ContextSnapshot.from_mapping(options["context"]))

    def option(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)

    def has_option(self, key: str) -> bool:
        return key in self.options

    def with_option(self, key: str, value: Any) -> RenderRequest:
        """Return a copy with ``key`` set to ``value``."""
        return replace(self, options={**self.options, key: value})

    def with_context(self, context: ContextSnapshot) -> RenderRequest:
        return replace(self, context=context)
