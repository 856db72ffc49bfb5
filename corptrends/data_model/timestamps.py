"""Timestamp helpers shared by the store and the ranking services.

All persisted timestamps are UTC ISO-8601 strings with a fixed microsecond
precision, so that SQLite string comparison matches chronological order.
"""

from datetime import UTC, datetime


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime.

    Naive datetimes are interpreted as UTC.

    Args:
        value: Datetime to normalize.

    Returns:
        Timezone-aware datetime in UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_db_timestamp(value: datetime) -> str:
    """Serialize a datetime for storage."""
    return ensure_utc(value).isoformat(timespec="microseconds")


def from_db_timestamp(value: str | None) -> datetime | None:
    """Parse a stored timestamp, passing None through."""
    if value is None:
        return None
    return ensure_utc(datetime.fromisoformat(value))


def start_of_day(value: datetime) -> datetime:
    """Truncate a datetime to 00:00:00.000000 of the same day."""
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(value: datetime) -> datetime:
    """Move a datetime to 23:59:59.999999 of the same day."""
    return value.replace(hour=23, minute=59, second=59, microsecond=999999)


def utc_now() -> datetime:
    """Return the current UTC time."""
    return datetime.now(UTC)
