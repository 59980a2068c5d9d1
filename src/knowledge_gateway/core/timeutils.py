"""Datetime helpers.

SQLite drops tzinfo on the way back out, so every comparison against a
stored timestamp goes through :func:`ensure_utc`.
"""

from datetime import UTC, datetime


def utcnow() -> datetime:
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def is_past(value: datetime | None, now: datetime | None = None) -> bool:
    """Return True when ``value`` is set and not in the future."""
    if value is None:
        return False
    return ensure_utc(value) <= (now or utcnow())
