"""UTC time helpers.

Everything persisted is timezone-aware UTC. SQLite hands datetimes back
without tz info on some driver/SQLModel versions, so values read from the
database go through :func:`as_utc` before being compared.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Normalize an aware or naive (assumed UTC) datetime to aware UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
