"""Shared, deterministic timestamps for tests."""

from datetime import UTC, datetime


# Fixed "now" so period windows and relative listing dates stay deterministic.
FIXED_NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)


def fixed_clock() -> datetime:
    """Clock returning FIXED_NOW."""
    return FIXED_NOW
