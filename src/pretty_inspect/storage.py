"""DumpHistoryStorage: recent dumped values per call site, for auto-diff.

Locations are ``"file:line"`` strings of the first frame outside this
package. Each location keeps its newest ``max_entries_per_location``
values; the number of locations is bounded by an ``LRUCache``, so the
least recently used call site is dropped silently when ``max_locations``
is exceeded.

Values are deep-copied on store so later mutation of the caller's object
does not change the remembered state. Values that cannot be copied are
kept by reference.

Example::

    from pretty_inspect.storage import DumpHistoryStorage

    history = DumpHistoryStorage()
    history.store("app.py:10", {"count": 1})
    history.get_last("app.py:10")   # {"count": 1}
"""

from __future__ import annotations

import copy
import logging
import sys
import threading
import time
from collections import deque
from dataclasses import dataclass
from types import FrameType
from typing import Any

from cachetools import LRUCache

from pretty_inspect.context.collector import is_internal_file

__all__ = ["DumpHistoryStorage", "HistoryEntry", "default_history", "location_for"]

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = "unknown"


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    value: Any
    timestamp: float


def location_for(frame: FrameType | None = None) -> str:
    """Return ``"file:line"`` of the first frame outside this package.

    Args:
        frame: Frame to start from. Defaults to the caller's frame.
    """
    current = frame if frame is not None else sys._getframe(1)
    first: FrameType | None = current
    while current is not None:
        if not is_internal_file(current.f_code.co_filename):
            return f"{current.f_code.co_filename}:{current.f_lineno}"
        current = current.f_back
    if first is not None:
        return f"{first.f_code.co_filename}:{first.f_lineno}"
    return UNKNOWN_LOCATION


def _snapshot(value: Any) -> Any:
    try:
        return copy.deepcopy(value)
    except (TypeError, copy.Error, RecursionError):
        logger.debug("keeping %s by reference; deep copy failed", type(value).__qualname__)
        return value


class DumpHistoryStorage:
    """Thread-safe in-memory history of dumped values.

    Args:
        max_locations: Maximum number of call sites remembered.
        max_entries_per_location: Values kept per call site (newest last).
    """

    def __init__(self, max_locations: int = 256, max_entries_per_location: int = 10) -> None:
        if max_locations < 1 or max_entries_per_location < 1:
            msg = "history limits must be >= 1"
            raise ValueError(msg)
        self._max_entries = max_entries_per_location
        self._entries: LRUCache[str, deque[HistoryEntry]] = LRUCache(maxsize=max_locations)
        self._lock = threading.Lock()

    @property
    def max_entries_per_location(self) -> int:
        return self._max_entries

    def store(self, location: str, value: Any) -> None:
        entry = HistoryEntry(_snapshot(value), time.time())
        with self._lock:
            history = self._entries.get(location)
            if history is None:
                history = deque(maxlen=self._max_entries)
                self._entries[location] = history
            history.append(entry)

    def get_last(self, location: str) -> Any:
        """Return the newest value stored for ``location``, or None."""
        with self._lock:
            history = self._entries.get(location)
            return history[-1].value if history else None

    def get_history(self, location: str) -> list[HistoryEntry]:
        with self._lock:
            return list(self._entries.get(location) or ())

    def has_history(self, location: str) -> bool:
        with self._lock:
            return bool(self._entries.get(location))

    def clear(self, location: str) -> None:
        with self._lock:
            self._entries.pop(location, None)

    def clear_all(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_default_history = DumpHistoryStorage()


def default_history() -> DumpHistoryStorage:
    """Process-wide history used by ``pd_auto_diff``."""
    return _default_history
