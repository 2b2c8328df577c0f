"""
Clock and calendar helpers for the reminder engine.

Every instant here is a naive local timestamp; no timezone conversion is done.
"""
from datetime import date, datetime, time, timedelta
from typing import Optional
import re

_HHMM_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def now_local() -> datetime:
    return datetime.now().replace(microsecond=0)


def parse_hhmm(value: str) -> time:
    """Parse an ``HH:MM`` string into a time of day. Raises ValueError when malformed."""
    match = _HHMM_RE.match((value or "").strip())
    if not match:
        raise ValueError(f"Invalid time of day {value!r}, expected HH:MM")
    return time(int(match.group(1)), int(match.group(2)))


def compose_reminder_time(day: date, hhmm: str) -> datetime:
    """Combine a calendar day with an HH:MM time of day."""
    return datetime.combine(day, parse_hhmm(hhmm))


def is_same_day(instant: Optional[datetime], reference: datetime) -> bool:
    if instant is None:
        return False
    return instant.date() == reference.date()


def days_until_weekday(day: date, weekday: int) -> int:
    """Days to move forward from ``day`` to reach ``weekday`` (0=Monday). Never negative."""
    return (weekday - day.weekday()) % 7


def next_weekday_on_or_after(instant: datetime, weekday: int) -> datetime:
    return instant + timedelta(days=days_until_weekday(instant.date(), weekday))


def format_locale_timestamp(instant: datetime) -> str:
    # e.g. 10/19/2026, 08:00:00 AM
    return instant.strftime("%m/%d/%Y, %I:%M:%S %p")


def format_locale_date(instant: datetime) -> str:
    return instant.strftime("%m/%d/%Y")
