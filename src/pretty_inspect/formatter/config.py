"""FormatterConfiguration and IndentStyle for render limits and presentation.

FormatterConfiguration is a frozen (immutable) dataclass holding every limit
and presentation switch the transformer and renderers honour. Channel-aware
defaults come from ``FormatterConfiguration.for_channel``; per-call options
are layered on top with ``with_overrides``, which is lenient about input
types (strings such as ``"yes"`` or ``"12"`` are accepted) while direct
construction is strict.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields, replace
from enum import StrEnum, auto
from typing import Any

from pretty_inspect.context.redaction import RedactionRule, coerce_rules, default_redaction_rules
from pretty_inspect.request import Channel

__all__ = [
    "FormatterConfiguration",
    "IndentStyle",
    "is_known_theme",
    "read_bool",
    "read_positive_int",
    "register_theme_name",
]

SHOW_CONTEXT_ENV = "PRETTY_DUMP_SHOW_CONTEXT"

# (max_depth, max_items) per channel
_CHANNEL_LIMITS: dict[Channel, tuple[int, int]] = {
    Channel.CLI: (6, 500),
    Channel.WEB: (10, 5000),
}

_TRUE_WORDS = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS = frozenset({"0", "false", "no", "off"})

# "auto" plus every name a ThemeRegistry has registered in this process.
_THEME_NAMES: set[str] = {"auto", "light", "dark"}

_INT_FIELDS = frozenset(
    {
        "max_depth",
        "max_items",
        "max_items_hard_limit",
        "string_length_limit",
        "stack_limit",
        "message_limit",
        "indent_size",
    }
)
_BOOL_FIELDS = frozenset(
    {
        "expand_exceptions",
        "show_context",
        "show_performance_metrics",
        "show_table_variable_meta",
        "include_variable_snapshots",
        "auto_detect_json",
    }
)


class IndentStyle(StrEnum):
    """Indentation unit used by the renderers.

    - SPACES: ``indent_size`` spaces per level.
    - TABS:   one tab per level.
    """

    SPACES = auto()
    TABS = auto()


def read_positive_int(value: Any, default: int) -> int:
    """Coerce ``value`` to an int of at least 1, or return ``default``."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return max(1, value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return max(1, int(value.strip()))
    return default


def read_bool(value: Any, default: bool) -> bool:
    """Coerce ``value`` to a bool, accepting on/off style words."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    return default


def _default_show_context(channel: Channel) -> bool:
    raw = os.environ.get(SHOW_CONTEXT_ENV)
    if raw is not None:
        return read_bool(raw, channel is Channel.WEB)
    return channel is Channel.WEB


def register_theme_name(name: str) -> None:
    """Make ``name`` acceptable as a configuration theme."""
    _THEME_NAMES.add(name)


def is_known_theme(name: Any) -> bool:
    return isinstance(name, str) and name in _THEME_NAMES


@dataclass(frozen=True, slots=True)
class FormatterConfiguration:
    """Immutable render configuration.

    Attributes:
        max_depth: Containers at this depth render truncated, without children.
        max_items: Entries enumerated per container before a notice is emitted.
        max_items_hard_limit: Absolute ceiling on ``max_items``.
        string_length_limit: Code points kept from a string before truncation.
        expand_exceptions: Render exception blocks expanded in HTML.
        show_context: Append a call-site ``context`` node.
        show_performance_metrics: Append a ``performance`` node with timing.
        theme: ``"auto"``, ``"light"``, ``"dark"`` or a name registered with a
            ThemeRegistry. Anything else raises ValueError.
        redaction_rules: Rules applied to payload maps, context maps and
            exception messages.
        stack_limit: Frames listed in the context block.
        message_limit: Characters kept from an exception message.
        indent_style: Spaces or tabs.
        indent_size: Spaces per level when ``indent_style`` is SPACES.
        show_table_variable_meta: Show expression suffixes and table metadata.
        include_variable_snapshots: Add captured variables to exception blocks.
        auto_detect_json: Render JSON-looking strings as JSON documents.
    """

    max_depth: int = 6
    max_items: int = 500
    max_items_hard_limit: int = 10000
    string_length_limit: int = 5000
    expand_exceptions: bool = False
    show_context: bool = False
    show_performance_metrics: bool = False
    theme: str = "auto"
    redaction_rules: tuple[RedactionRule, ...] = field(default_factory=default_redaction_rules)
    stack_limit: int = 50
    message_limit: int = 1000
    indent_style: IndentStyle = IndentStyle.SPACES
    indent_size: int = 2
    show_table_variable_meta: bool = True
    include_variable_snapshots: bool = False
    auto_detect_json: bool = False

    def __post_init__(self) -> None:
        for name in sorted(_INT_FIELDS):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                msg = f"{name} must be an int >= 1, got {value!r}"
                raise ValueError(msg)
        try:
            object.__setattr__(self, "indent_style", IndentStyle(self.indent_style))
        except ValueError:
            msg = f"indent_style must be 'spaces' or 'tabs', got {self.indent_style!r}"
            raise ValueError(msg) from None
        if not is_known_theme(self.theme):
            known = ", ".join(repr(name) for name in sorted(_THEME_NAMES))
            msg = f"theme must be one of {known}, got {self.theme!r}"
            raise ValueError(msg)
        object.__setattr__(self, "redaction_rules", coerce_rules(self.redaction_rules))

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def for_channel(
        cls,
        channel: Channel | str,
        overrides: Mapping[str, Any] | None = None,
    ) -> FormatterConfiguration:
        """Return the channel defaults with ``overrides`` applied leniently."""
        channel = Channel(channel)
        max_depth, max_items = _CHANNEL_LIMITS[channel]
        base = cls(
            max_depth=max_depth,
            max_items=max_items,
            show_context=_default_show_context(channel),
        )
        return base.with_overrides(overrides or {})

    def with_overrides(self, overrides: Mapping[str, Any]) -> FormatterConfiguration:
        """Return a copy with recognised option keys applied.

        Integers are floored at 1, booleans accept ``yes``/``off`` style
        words, and values of the wrong shape keep the current setting.
        Unknown keys are ignored.
        """
        changes: dict[str, Any] = {}
        known = {f.name for f in fields(self)}
        for key, value in overrides.items():
            if key not in known:
                continue
            current = getattr(self, key)
            if key in _INT_FIELDS:
                changes[key] = read_positive_int(value, current)
            elif key in _BOOL_FIELDS:
                changes[key] = read_bool(value, current)
            elif key == "indent_style":
                changes[key] = value if value in tuple(IndentStyle) else current
            elif key == "theme":
                changes[key] = value if is_known_theme(value) else current
            elif key == "redaction_rules":
                if isinstance(value, Iterable) and not isinstance(value, (str, Mapping)):
                    changes[key] = coerce_rules(value)
        if not changes:
            return self
        return replace(self, **changes)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def effective_max_items(self) -> int:
        return min(self.max_items, self.max_items_hard_limit)

    @property
    def indent_unit(self) -> str:
        if self.indent_style is IndentStyle.TABS:
            return "\t"
        return " " * self.indent_size
