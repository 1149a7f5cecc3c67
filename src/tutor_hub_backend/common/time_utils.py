'''
Small helpers for timezone-aware datetimes.
All timestamps are stored as UTC. Some drivers (SQLite) hand them back naive,
so anything read from the database goes through as_utc() before comparisons.
'''
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Returns `value` as an aware UTC datetime. Naive values are assumed to be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
