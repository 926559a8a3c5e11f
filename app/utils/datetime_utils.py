"""
Datetime utilities.

Provides timezone-aware datetime functions.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """
    Attach UTC to a naive datetime read back from the database.

    Backends without timezone support (SQLite) return naive values for
    DateTime(timezone=True) columns; all stored values are UTC.

    Args:
        value: Datetime or None

    Returns:
        Timezone-aware datetime or None
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
