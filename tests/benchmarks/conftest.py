"""Deterministic value generators for performance benchmarks.

All generators produce fixed, reproducible values. No random values.
Three shapes: a 100,000-element flat list, a wide map of records and a
deeply nested chain. Limits, not input size, bound the work of a render,
so each shape is sized well beyond the channel defaults.
"""

from __future__ import annotations

from typing import Any

import pytest


def generate_flat_list(num_items: int) -> list[int]:
    """Generate a flat list of consecutive integers."""
    return list(range(num_items))


def generate_records(num_records: int) -> dict[str, dict[str, Any]]:
    """Generate a map of user-like records keyed by id."""
    return {
        f"user_{i}": {
            "id": i,
            "name": f"name_{i}",
            "active": i % 2 == 0,
            "tags": [f"tag_{i % 7}", f"tag_{i % 11}"],
            "password": f"secret_{i}",
        }
        for i in range(num_records)
    }


def generate_nested_chain(depth: int) -> dict[str, Any]:
    """Generate ``{"level": 0, "next": {"level": 1, "next": ...}}``."""
    root: dict[str, Any] = {"level": 0}
    current = root
    for level in range(1, depth):
        child: dict[str, Any] = {"level": level}
        current["next"] = child
        current = child
    return root


@pytest.fixture(scope="session")
def flat_100k() -> list[int]:
    return generate_flat_list(100_000)


@pytest.fixture(scope="session")
def records_10k() -> dict[str, dict[str, Any]]:
    return generate_records(10_000)


@pytest.fixture(scope="session")
def nested_500() -> dict[str, Any]:
    return generate_nested_chain(500)
