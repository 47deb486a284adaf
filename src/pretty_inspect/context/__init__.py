"""Call-site context and redaction."""

from __future__ import annotations

from pretty_inspect.context.collector import ContextCollector, DefaultContextCollector
from pretty_inspect.context.redaction import (
    RedactionRule,
    RedactionScope,
    apply_rules,
    coerce_rules,
    default_redaction_rules,
)
from pretty_inspect.context.snapshot import ContextFrame, ContextSnapshot

__all__ = [
    "ContextCollector",
    "ContextFrame",
    "ContextSnapshot",
    "DefaultContextCollector",
    "RedactionRule",
    "RedactionScope",
    "apply_rules",
    "coerce_rules",
    "default_redaction_rules",
]
