"""Per-call timing and truncation bookkeeping."""

from __future__ import annotations

import time

__all__ = ["PerformanceMonitor"]


class PerformanceMonitor:
    """Wall-clock timer plus truncation counter for one render call.

    A new monitor is created for every call so concurrent renders never
    share counters.
    """

    def __init__(self) -> None:
        self._started: float | None = None
        self._elapsed_ms: float | None = None
        self.truncations = 0

    def start(self) -> None:
        self._started = time.perf_counter()
        self._elapsed_ms = None
        self.truncations = 0

    def stop(self) -> float:
        """Stop the timer and return the elapsed time in milliseconds."""
        if self._started is None:
            return 0.0
        self._elapsed_ms = (time.perf_counter() - self._started) * 1000.0
        return self._elapsed_ms

    def register_truncation(self) -> None:
        self.truncations += 1

    @property
    def elapsed_ms(self) -> float:
        if self._elapsed_ms is not None:
            return self._elapsed_ms
        if self._started is None:
            return 0.0
        return (time.perf_counter() - self._started) * 1000.0
