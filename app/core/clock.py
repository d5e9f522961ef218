"""UTC time helpers.

SQLite hands datetimes back without tzinfo even when they were written as
aware UTC values, so anything read from the database goes through
``ensure_utc`` before being compared with ``utcnow()``.
"""
from datetime import UTC, datetime


def utcnow() -> datetime:
    return datetime.now(UTC)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to a naive datetime; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
