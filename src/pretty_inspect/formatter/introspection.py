"""Field introspection for object-like values.

Python has no access modifiers, so visibility follows naming convention:

- ``_Owner__name`` (a name-mangled ``__name`` declared in ``Owner``) is
  ``__name:private(Owner)``
- ``_name`` is ``_name:protected``
- anything else is ``name:public``

Declared fields are gathered from ``__slots__``, class annotations and
dataclass fields across the MRO (base classes first). Attributes found in the
instance ``__dict__`` that no class declares are appended afterwards.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum, auto
from typing import Any

__all__ = [
    "INACCESSIBLE",
    "UNINITIALIZED",
    "FieldRecord",
    "Visibility",
    "field_map",
    "is_object_like",
    "object_fields",
    "type_name",
]

logger = logging.getLogger(__name__)

UNINITIALIZED = "[uninitialized]"
INACCESSIBLE = "[inaccessible]"

_SKIPPED_SLOTS = frozenset({"__dict__", "__weakref__"})


class Visibility(StrEnum):
    PUBLIC = auto()
    PROTECTED = auto()
    PRIVATE = auto()


@dataclass(frozen=True, slots=True)
class FieldRecord:
    """One field of an inspected object.

    Attributes:
        name:           Source-level name (``__token`` for a private field).
        raw_name:       Attribute name as stored (``_Owner__token``).
        visibility:     Derived from the naming convention.
        declaring_type: Owner class name for private fields, else None.
        value:          Field value, or one of the UNINITIALIZED /
                        INACCESSIBLE sentinels.
    """

    name: str
    raw_name: str
    visibility: Visibility
    declaring_type: str | None
    value: Any

    @property
    def display_name(self) -> str:
        if self.visibility is Visibility.PRIVATE:
            return f"{self.name}:private({self.declaring_type})"
        return f"{self.name}:{self.visibility}"

    @property
    def initialized(self) -> bool:
        return self.value is not UNINITIALIZED


def type_name(value: Any) -> str:
    return type(value).__qualname__


def is_object_like(value: Any) -> bool:
    """True for instances that expose named data fields."""
    if inspect.isclass(value) or inspect.ismodule(value) or inspect.isroutine(value):
        return False
    try:
        has_dict = isinstance(object.__getattribute__(value, "__dict__"), Mapping)
    except AttributeError:
        has_dict = False
    return has_dict or bool(_declared_fields(type(value)))


def object_fields(value: Any) -> list[FieldRecord]:
    """Return every field of ``value``: declared first, then dynamic ones."""
    cls = type(value)
    owners = _mangling_prefixes(cls)
    records: list[FieldRecord] = []
    seen: set[str] = set()

    for raw_name in _declared_fields(cls):
        seen.add(raw_name)
        records.append(_record(raw_name, _read(value, raw_name), owners))

    try:
        instance_dict = object.__getattribute__(value, "__dict__")
    except AttributeError:
        instance_dict = {}
    except Exception:  # noqa: BLE001 - user __getattribute__ may raise anything
        logger.debug("instance dict of %s is unreadable", type_name(value), exc_info=True)
        instance_dict = {}

    if isinstance(instance_dict, Mapping):
        for raw_name, field_value in instance_dict.items():
            if not isinstance(raw_name, str) or raw_name in seen:
                continue
            seen.add(raw_name)
            records.append(_record(raw_name, field_value, owners))
    return records


def field_map(value: Any) -> dict[str, Any]:
    """Project an object to ``{raw_name: value}``, skipping unset fields."""
    return {record.raw_name: record.value for record in object_fields(value) if record.initialized}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _mangled(owner: type, name: str) -> str:
    if name.startswith("__") and not name.endswith("__"):
        return f"_{owner.__name__.lstrip('_')}{name}"
    return name


def _mangling_prefixes(cls: type) -> list[tuple[str, str]]:
    """``(prefix, owner_name)`` pairs for every class in the MRO."""
    pairs = []
    for klass in cls.__mro__:
        if klass is object:
            continue
        stripped = klass.__name__.lstrip("_")
        if stripped:
            pairs.append((f"_{stripped}__", klass.__name__))
    return pairs


def _class_annotations(klass: type) -> dict[str, Any]:
    try:
        return inspect.get_annotations(klass)
    except Exception:  # noqa: BLE001 - lazily evaluated annotations may fail
        logger.debug("annotations of %s could not be evaluated", klass.__qualname__, exc_info=True)
        return {}


def _declared_fields(cls: type) -> list[str]:
    names: list[str] = []
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        slots = klass.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for slot in slots:
            if slot not in _SKIPPED_SLOTS:
                names.append(_mangled(klass, slot))
        for name, annotation in _class_annotations(klass).items():
            if "ClassVar" in str(annotation):
                continue
            names.append(name)
    # Preserve first occurrence order.
    return list(dict.fromkeys(names))


def _read(value: Any, raw_name: str) -> Any:
    try:
        return getattr(value, raw_name)
    except AttributeError:
        return UNINITIALIZED
    except Exception:  # noqa: BLE001 - reading a field must never abort a render
        logger.debug("field %s of %s is inaccessible", raw_name, type_name(value), exc_info=True)
        return INACCESSIBLE


def _record(raw_name: str, value: Any, owners: list[tuple[str, str]]) -> FieldRecord:
    for prefix, owner in owners:
        if raw_name.startswith(prefix) and len(raw_name) > len(prefix):
            return FieldRecord(
                name="__" + raw_name[len(prefix) :],
                raw_name=raw_name,
                visibility=Visibility.PRIVATE,
                declaring_type=owner,
                value=value,
            )
    if raw_name.startswith("_"):
        return FieldRecord(raw_name, raw_name, Visibility.PROTECTED, None, value)
    return FieldRecord(raw_name, raw_name, Visibility.PUBLIC, None, value)
