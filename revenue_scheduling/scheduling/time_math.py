"""
Wall-clock time arithmetic for shifts and weekly schedules.

Two rounding policies coexist:
- ``CALENDAR``: ad-hoc calendar shifts keep full fractional precision.
- ``HALF_HOUR``: weekly recurring schedules round to the nearest 0.5h.

Overnight ranges (end before start) are clamped to zero hours rather than
wrapped past midnight.
"""

import calendar
import math
from datetime import date, datetime, timedelta
from enum import Enum
from typing import List

from ..config import WEEKS_PER_MONTH
from ..exceptions import ValidationError

_ANCHOR = date(2000, 1, 1)


class RoundingPolicy(str, Enum):
    CALENDAR = "calendar"
    HALF_HOUR = "half_hour"


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties toward positive infinity."""
    return math.floor(value + 0.5)


def parse_time(value: str) -> datetime:
    """
    Parse an ``HH:MM`` string as a time on a fixed anchor date.

    Raises:
        ValidationError: if the string is empty or not a valid time
    """
    try:
        parsed = datetime.strptime(value.strip(), "%H:%M")
    except (AttributeError, ValueError):
        raise ValidationError(f"Invalid time {value!r}, expected HH:MM")
    return datetime.combine(_ANCHOR, parsed.time())


def duration(start: str, end: str,
             policy: RoundingPolicy = RoundingPolicy.CALENDAR) -> float:
    """
    Compute the hours between two wall-clock times.

    Args:
        start: Start time as ``HH:MM``
        end: End time as ``HH:MM``
        policy: Rounding policy chosen by the caller

    Returns:
        Duration in hours, 0 when ``end`` is not after ``start``
    """
    diff = parse_time(end) - parse_time(start)
    hours = max(0.0, diff.total_seconds() / 3600)
    if policy == RoundingPolicy.HALF_HOUR:
        return round_half_up(hours * 2) / 2
    return hours


def monthly_estimate(weekly_hours: float) -> int:
    """Average weekly hours scaled to a month (4.33 weeks)."""
    return round_half_up(weekly_hours * WEEKS_PER_MONTH)


def week_dates(day: date) -> List[date]:
    """Monday-to-Sunday week containing ``day``."""
    monday = day - timedelta(days=day.weekday())
    return [monday + timedelta(days=i) for i in range(7)]


def month_grid_dates(year: int, month: int) -> List[date]:
    """All days of the Monday-start weeks covering the given month."""
    cal = calendar.Calendar(firstweekday=0)
    return [d for week in cal.monthdatescalendar(year, month) for d in week]
