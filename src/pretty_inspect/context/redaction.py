"""RedactionRule: key-name based masking of sensitive values.

A rule pairs a key pattern with a replacement and a scope. Patterns written
between slashes (``"/token/i"``) are regular expressions searched anywhere in
the key; bare strings match a whole key case-insensitively; precompiled
``re.Pattern`` objects are searched as-is.

Malformed patterns fail when the rule is constructed, never mid-render.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum, auto
from typing import Any

__all__ = [
    "RedactionRule",
    "RedactionScope",
    "apply_rules",
    "coerce_rules",
    "default_redaction_rules",
]

# "/body/flags" with optional single-letter inline flags.
_DELIMITED_RE = re.compile(r"^/(?P<body>.+)/(?P<flags>[a-zA-Z]*)$", re.DOTALL)

_FLAG_BITS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
    "u": 0,
}


class RedactionScope(StrEnum):
    """Where a rule applies.

    - ANY:     every map the library redacts.
    - REQUEST: request data of a context snapshot.
    - ENV:     environment data of a context snapshot.
    - PAYLOAD: the dumped value and captured variables.
    """

    ANY = auto()
    REQUEST = auto()
    ENV = auto()
    PAYLOAD = auto()


def _compile(pattern: str | re.Pattern[str]) -> tuple[re.Pattern[str] | None, str]:
    """Return ``(compiled_or_None, bare_keyword)`` for a rule pattern."""
    if isinstance(pattern, re.Pattern):
        return pattern, pattern.pattern

    match = _DELIMITED_RE.match(pattern)
    if match is None:
        return None, pattern

    flags = 0
    for letter in match.group("flags"):
        if letter not in _FLAG_BITS:
            msg = f"unsupported regex flag {letter!r} in redaction pattern {pattern!r}"
            raise ValueError(msg)
        flags |= _FLAG_BITS[letter]
    body = match.group("body")
    try:
        return re.compile(body, flags), body
    except re.error as exc:
        msg = f"malformed redaction pattern {pattern!r}: {exc}"
        raise ValueError(msg) from exc


@dataclass(frozen=True, slots=True)
class RedactionRule:
    """Immutable key-name redaction rule.

    Attributes:
        pattern:     ``"/regex/flags"``, a bare key name, or a compiled pattern.
        replacement: Text substituted for matching values. Defaults to ``***``.
        scope:       Where the rule applies (see RedactionScope).
    """

    pattern: str | re.Pattern[str]
    replacement: str = "***"
    scope: RedactionScope = RedactionScope.ANY
    _regex: re.Pattern[str] | None = field(init=False, repr=False, compare=False)
    _keyword: str = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if isinstance(self.pattern, str) and not self.pattern:
            msg = "redaction pattern must not be empty"
            raise ValueError(msg)
        if not isinstance(self.pattern, (str, re.Pattern)):
            msg = f"redaction pattern must be str or re.Pattern, got {type(self.pattern).__name__}"
            raise TypeError(msg)
        # Accept plain strings for scope ("env"); unknown names raise ValueError.
        object.__setattr__(self, "scope", RedactionScope(self.scope))
        regex, keyword = _compile(self.pattern)
        object.__setattr__(self, "_regex", regex)
        object.__setattr__(self, "_keyword", keyword)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> RedactionRule:
        """Build a rule from ``{"pattern": ..., "replacement": ..., "scope": ...}``."""
        if "pattern" not in data:
            msg = "redaction rule mapping requires a 'pattern' entry"
            raise ValueError(msg)
        return cls(
            pattern=data["pattern"],
            replacement=str(data.get("replacement", "***")),
            scope=data.get("scope", RedactionScope.ANY),
        )

    @property
    def keyword(self) -> str:
        """The pattern without regex delimiters, used for message masking."""
        return self._keyword

    def matches(self, key: str, scope: RedactionScope | str = RedactionScope.ANY) -> bool:
        if self.scope is not RedactionScope.ANY and scope != self.scope:
            return False
        if self._regex is not None:
            return self._regex.search(key) is not None
        return key.lower() == self._keyword.lower()

    def apply_to_map(
        self,
        data: Mapping[Any, Any],
        scope: RedactionScope | str = RedactionScope.ANY,
    ) -> dict[Any, Any]:
        """Return a copy of ``data`` with matching keys replaced, recursively.

        Nested mappings and lists are walked; the input is never mutated.
        Applying the same rule twice gives the same result as applying it once.
        A container that contains itself is copied by reference at the point
        of re-entry.
        """
        return self._redact_map(data, scope, set())

    def _redact_map(
        self,
        data: Mapping[Any, Any],
        scope: RedactionScope | str,
        active: set[int],
    ) -> dict[Any, Any]:
        active.add(id(data))
        try:
            redacted: dict[Any, Any] = {}
            for key, value in data.items():
                if isinstance(key, str) and self.matches(key, scope):
                    redacted[key] = self.replacement
                else:
                    redacted[key] = self._redact_value(value, scope, active)
            return redacted
        finally:
            active.discard(id(data))

    def _redact_value(self, value: Any, scope: RedactionScope | str, active: set[int]) -> Any:
        if id(value) in active:
            return value
        if isinstance(value, Mapping):
            return self._redact_map(value, scope, active)
        if isinstance(value, list):
            active.add(id(value))
            try:
                return [self._redact_value(item, scope, active) for item in value]
            finally:
                active.discard(id(value))
        return value


def default_redaction_rules() -> tuple[RedactionRule, ...]:
    """The rules every configuration starts with."""
    return (
        RedactionRule("/password/i"),
        RedactionRule("/token/i"),
        RedactionRule("/secret/i"),
    )


def apply_rules(
    rules: Iterable[RedactionRule],
    data: Mapping[Any, Any],
    scope: RedactionScope | str = RedactionScope.ANY,
) -> dict[Any, Any]:
    """Apply each rule in turn and return the redacted copy."""
    redacted = dict(data)
    for rule in rules:
        redacted = rule.apply_to_map(redacted, scope)
    return redacted


def coerce_rules(rules: Iterable[Any]) -> tuple[RedactionRule, ...]:
    """Return ``rules`` as RedactionRule instances, building them from mappings.

    Raises:
        ValueError: An entry is neither a rule nor a mapping, or its pattern
            is malformed.
    """
    coerced: list[RedactionRule] = []
    for rule in rules:
        if isinstance(rule, RedactionRule):
            coerced.append(rule)
        elif isinstance(rule, Mapping):
            coerced.append(RedactionRule.from_mapping(rule))
        else:
            msg = f"redaction rules must be RedactionRule or mapping, got {type(rule).__name__}"
            raise ValueError(msg)
    return tuple(coerced)
