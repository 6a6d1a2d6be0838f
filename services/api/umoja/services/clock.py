"""Time helpers.

All timestamps are UTC. Some drivers (SQLite in tests) hand back naive
datetimes for timezone-aware columns, so anything read from the store goes
through as_utc before being compared with utcnow().
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
