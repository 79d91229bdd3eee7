"""Calendar alignment for all velocity buckets.

Every bucket boundary in the package comes from this module. Weeks start on
Monday 00:00 UTC.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

DAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def to_utc(timestamp: datetime) -> datetime:
    """Convert a timestamp to aware UTC; naive values are taken as UTC."""
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def week_start_of(timestamp: datetime) -> datetime:
    """Floor a timestamp to the Monday 00:00 UTC at or before it.

    Args:
        timestamp: Any datetime

    Returns:
        Aware UTC datetime of the week start
    """
    ts = to_utc(timestamp)
    monday = ts.date() - timedelta(days=ts.weekday())
    return datetime(monday.year, monday.month, monday.day, tzinfo=timezone.utc)


def week_end_of(week_start: datetime) -> datetime:
    """Last day of the week that starts at ``week_start``."""
    return week_start + timedelta(days=6)


def day_name_of(timestamp: datetime) -> str:
    """Lowercase weekday name of a timestamp in UTC."""
    return DAY_NAMES[to_utc(timestamp).weekday()]


def day_of(timestamp: datetime) -> date:
    """Calendar date of a timestamp in UTC."""
    return to_utc(timestamp).date()


def days_between(start: datetime, end: datetime) -> int:
    """Whole days from start to end, rounded to the nearest day."""
    return round((to_utc(end) - to_utc(start)).total_seconds() / 86400)


def weeks_back(count: int, now: Optional[datetime] = None) -> list:
    """Week starts for the ``count`` weeks ending with the week containing ``now``.

    Args:
        count: Number of weeks
        now: Reference time (defaults to the current time)

    Returns:
        List of week starts, oldest first
    """
    if count <= 0:
        return []
    current = week_start_of(now or utc_now())
    return [current - timedelta(weeks=offset) for offset in range(count - 1, -1, -1)]
