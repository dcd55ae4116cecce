"""
DateTime utilities for clinic scheduling and reminders.

All persisted timestamps are UTC. Appointment dates and times are stored
without a timezone and are interpreted as UTC when a reminder is computed.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo

UTC = ZoneInfo("UTC")


def get_current_utc() -> datetime:
    """Get the current UTC datetime."""
    return datetime.now(UTC)


def utc_today() -> date:
    """Get the current UTC date."""
    return get_current_utc().date()


def ensure_utc(dt: datetime) -> datetime:
    """
    Return ``dt`` as an aware UTC datetime.

    Naive values are assumed to already be in UTC; some drivers (SQLite)
    return naive datetimes for timezone-aware columns.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def combine_utc(day: date, at: Optional[time] = None) -> datetime:
    """
    Combine a calendar date and an optional time into an aware UTC datetime.

    A missing time means midnight.
    """
    return datetime.combine(day, at or time(0, 0), tzinfo=UTC)


def reminder_time(
    due: Union[date, datetime], lead: timedelta, at: Optional[time] = None
) -> datetime:
    """
    Compute when a reminder for ``due`` should fire.

    Args:
        due: The date (or datetime) the event happens
        lead: How long before the event the reminder fires
        at: Optional time of day when ``due`` is a plain date
    """
    if isinstance(due, datetime):
        start = ensure_utc(due)
    else:
        start = combine_utc(due, at)
    return start - lead


def date_window(days_ahead: int, today: Optional[date] = None) -> Tuple[date, date]:
    """Return the inclusive ``(today, today + days_ahead)`` date range."""
    start = today or utc_today()
    return start, start + timedelta(days=days_ahead)


def format_date(day: Union[date, datetime]) -> str:
    """Format a date the way it appears in notification text (``M/D/YYYY``)."""
    return f"{day.month}/{day.day}/{day.year}"


def format_time(at: Optional[time]) -> str:
    """Format a time of day as ``HH:MM``; missing times read as ``TBD``."""
    if at is None:
        return "TBD"
    return at.strftime("%H:%M")
