"""
Time utilities for Quest Board.

All timestamps are stored as naive UTC datetimes, so every helper here
works in UTC and strips tzinfo before handing values to the models.
"""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Get the current UTC datetime as a naive value.

    Returns:
        Naive datetime in UTC, comparable with values loaded from the database
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to naive UTC (naive values pass through)."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def add_days(value: datetime, days: int) -> datetime:
    """Add calendar days to a UTC datetime, keeping the time of day."""
    return value + timedelta(days=days)


def subtract_years(value: datetime, years: int) -> datetime:
    """Step back whole calendar years (Feb 29 falls back to Feb 28)."""
    try:
        return value.replace(year=value.year - years)
    except ValueError:
        return value.replace(year=value.year - years, day=28)


def isoformat_utc(value):
    """Serialize a stored UTC datetime with a trailing Z, or None."""
    if value is None:
        return None
    return value.isoformat() + 'Z'
