"""
Timezone Utilities.

Golden Rules:
1. Database: Always store UTC
2. Analytics windows are computed against utc_now()
"""

from datetime import datetime, timedelta, timezone

# UTC constant
UTC = timezone.utc


def utc_now() -> datetime:
    """
    Get current time in UTC (timezone-aware).

    Always use this instead of datetime.utcnow() which returns
    naive datetime.
    """
    return datetime.now(UTC)


def to_utc(dt: datetime) -> datetime:
    """
    Convert datetime to UTC.

    Naive datetimes are assumed to already be UTC (SQLite hands
    timestamps back without tzinfo).
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def days_ago(days: int, now: datetime | None = None) -> datetime:
    """Start of a trailing window of `days` days ending at `now`."""
    return (now or utc_now()) - timedelta(days=days)
