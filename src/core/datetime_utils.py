"""Datetime helpers shared by the entity classes."""

from datetime import UTC, date, datetime
from typing import Any


def utcnow() -> datetime:
    """Current time, UTC-aware."""
    return datetime.now(UTC)


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def to_date(value: Any) -> date | None:
    """Coerce a Cassandra DATE value (cassandra.util.Date), ISO string or date."""
    if value is None or isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        return date.fromisoformat(value)
    # cassandra.util.Date
    return value.date()
