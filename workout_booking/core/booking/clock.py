"""
Civil time for the booking engine.

All wall-clock math runs in one fixed offset (UTC+05:30). It is a process
constant, not a per-user preference. Request parsing for dates and times of
day lives here too so every component validates them the same way.
"""

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Protocol

from .errors import InvalidInputError


CIVIL_TZ = timezone(timedelta(hours=5, minutes=30), "IST")

_DATE_PARTS = re.compile(r"^([0-9]+)-([0-9]+)-([0-9]+)$")
_TIME_OF_DAY = re.compile(r"^([0-9]{2}):([0-9]{2})$")


def civil_now() -> datetime:
    """Current instant expressed in the civil offset."""
    return datetime.now(CIVIL_TZ)


class Clock(Protocol):
    """
    Source of "now".

    Services take a clock instead of calling datetime.now() so tests can pin
    time at the exact boundaries the policies care about.
    """

    def now(self) -> datetime:
        """Current instant, timezone-aware, in CIVIL_TZ."""
        ...


class SystemClock:
    """Clock backed by the system time."""

    def now(self) -> datetime:
        return civil_now()


def to_civil(value: datetime) -> datetime:
    """Normalize any aware datetime into the civil offset."""
    if value.tzinfo is None:
        raise ValueError("Expected a timezone-aware datetime")
    return value.astimezone(CIVIL_TZ)


def parse_civil_date(text: str) -> date:
    """
    Parse a YYYY-MM-DD date, strictly.

    4-digit year, 2-digit month 01-12, 2-digit day 01-31, and the date must
    exist on the calendar (no February 30).
    """
    if not text:
        raise InvalidInputError("Date is required.")

    match = _DATE_PARTS.match(text.strip())
    if not match:
        raise InvalidInputError("Invalid date format. Please use YYYY-MM-DD format.")

    year_text, month_text, day_text = match.groups()
    if len(year_text) != 4:
        raise InvalidInputError("Year should be a 4-digit number.")
    if len(month_text) != 2 or not 1 <= int(month_text) <= 12:
        raise InvalidInputError("Month should be a 2-digit number between 01 and 12.")
    if len(day_text) != 2 or not 1 <= int(day_text) <= 31:
        raise InvalidInputError("Day should be a 2-digit number between 01 and 31.")

    try:
        return date(int(year_text), int(month_text), int(day_text))
    except ValueError:
        raise InvalidInputError("Invalid date. Please provide a valid date.")


def parse_time_of_day(text: str) -> time:
    """
    Parse a 24-hour HH:MM time of day.

    A range such as '10:30 - 11:30' is accepted and its start is used.
    """
    if not text:
        raise InvalidInputError("Time is required.")

    start = text.split("-")[0].strip()
    match = _TIME_OF_DAY.match(start)
    if not match:
        raise InvalidInputError("Time should be in HH:MM format (e.g., 09:30, 14:45).")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23:
        raise InvalidInputError("Hours should be between 00 and 23.")
    if minutes > 59:
        raise InvalidInputError("Minutes should be between 00 and 59.")
    return time(hours, minutes)


def civil_instant(day: date, time_of_day: time) -> datetime:
    """The absolute instant of a civil date and time of day."""
    return datetime.combine(day, time_of_day, tzinfo=CIVIL_TZ)


def civil_day_bounds(day: date) -> tuple[datetime, datetime]:
    """Half-open [start, end) range covering one civil day."""
    start = civil_instant(day, time(0, 0))
    return start, start + timedelta(days=1)


def ensure_not_past_day(day: date, now: datetime) -> None:
    """Reject dates before today's civil date."""
    if day < to_civil(now).date():
        raise InvalidInputError(
            "You cannot check past dates. Please select today or a future date."
        )
