# barberbook/core/timegrid.py
"""
Minute-of-day helpers.

All times in the core are shop-local integers counting minutes since midnight,
so 09:30 is 570. There is no timezone handling anywhere.
"""

import re
from datetime import date
from typing import List

from barberbook.errors import ValidationError

MINUTES_PER_DAY = 24 * 60

_CLOCK_RE = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")


def to_minute(clock: str) -> int:
    """Parse "09:30" into 570."""
    match = _CLOCK_RE.match(clock.strip()) if isinstance(clock, str) else None
    if match is None:
        raise ValidationError(f"Invalid time {clock!r}, expected HH:MM")
    return int(match.group(1)) * 60 + int(match.group(2))


def to_clock(minute: int) -> str:
    """570 -> "09:30". 1440 is accepted and rendered as "24:00" (end of day)."""
    if not (0 <= minute <= MINUTES_PER_DAY):
        raise ValidationError(f"Minute of day out of range: {minute}")
    return f"{minute // 60:02d}:{minute % 60:02d}"


def generate_slots(open_minute: int, close_minute: int, duration_minutes: int, step_minutes: int) -> List[int]:
    """Candidate start minutes from open_minute in step_minutes increments.

    A start s is kept only while s + duration_minutes <= close_minute.
    """
    if step_minutes <= 0:
        raise ValidationError("step_minutes must be positive")
    if duration_minutes <= 0:
        raise ValidationError("duration_minutes must be positive")

    starts = []
    current = open_minute
    while current + duration_minutes <= close_minute:
        starts.append(current)
        current += step_minutes
    return starts


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    # half-open intervals: touching ends do not overlap
    return a_start < b_end and b_start < a_end


def day_of_week(on_date: date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return on_date.isoweekday() % 7
