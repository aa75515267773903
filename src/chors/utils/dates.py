"""Date helpers shared by the task model, the filter language and the calendar.

Parsing follows the same small keyword vocabulary everywhere a user types a
date: ISO dates, ``today``/``tomorrow``/``yesterday``, weekday names and
relative offsets such as ``+3d``, ``-2w`` or ``+1m``.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime, timedelta

WEEKDAYS = {
    "monday": 0,
    "mon": 0,
    "tuesday": 1,
    "tue": 1,
    "wednesday": 2,
    "wed": 2,
    "thursday": 3,
    "thu": 3,
    "friday": 4,
    "fri": 4,
    "saturday": 5,
    "sat": 5,
    "sunday": 6,
    "sun": 6,
}

_OFFSET_RE = re.compile(r"^([+-])(\d+)([dwm])$")
_IN_DAYS_RE = re.compile(r"^in (\d+) (day|week|month)s?$")


def as_datetime(value: date | datetime | None) -> datetime | None:
    """Normalise a date or datetime to a naive local datetime.

    Plain dates become midnight; aware datetimes are converted to local time
    and stripped of their tzinfo so every due/scheduled value compares with
    every other one.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value
    return datetime(value.year, value.month, value.day)


def add_months(day: date, months: int) -> date:
    """Shift ``day`` by whole months, clamping to the target month's length."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def shift(day: date, amount: int, unit: str) -> date:
    """Shift ``day`` by ``amount`` days (``d``), weeks (``w``) or months (``m``)."""
    if unit == "d":
        return day + timedelta(days=amount)
    if unit == "w":
        return day + timedelta(weeks=amount)
    if unit == "m":
        return add_months(day, amount)
    raise ValueError(f"Unknown date unit: {unit!r}")


def parse_date_input(text: str, today: date | None = None) -> date | None:
    """Parse a user-typed date.

    Args:
        text: The raw input, e.g. ``2024-05-01``, ``tomorrow``, ``fri``, ``+3d``
        today: Reference day for relative inputs (defaults to the current day)

    Returns:
        The parsed date, or None when ``text`` is blank

    Raises:
        ValueError: If the text is not a recognised date
    """
    value = text.strip().lower()
    if not value:
        return None

    today = today or date.today()

    if value == "today":
        return today
    if value == "tomorrow":
        return today + timedelta(days=1)
    if value == "yesterday":
        return today - timedelta(days=1)

    if value in WEEKDAYS:
        # Next occurrence, never today
        days_ahead = (WEEKDAYS[value] - today.weekday()) % 7 or 7
        return today + timedelta(days=days_ahead)

    match = _OFFSET_RE.match(value)
    if match:
        sign, amount, unit = match.groups()
        return shift(today, int(amount) * (-1 if sign == "-" else 1), unit)

    match = _IN_DAYS_RE.match(value)
    if match:
        amount, unit = match.groups()
        return shift(today, int(amount), unit[0])

    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"Not a date: {text.strip()!r}") from None


def format_date(value: date | datetime | None) -> str:
    """Format a date for display, ``""`` when absent."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        if value.hour or value.minute:
            return value.strftime("%Y-%m-%d %H:%M")
        return value.date().isoformat()
    return value.isoformat()
