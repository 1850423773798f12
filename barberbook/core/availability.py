# barberbook/core/availability.py
"""
Turn a day profile into the list of slots shown to clients.

Every grid candidate is returned, flagged available or not, so a calendar can
show taken slots as well as free ones. The booking guard only looks at the
``available`` flag.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, Tuple

from barberbook.core.lifecycle import is_occupying
from barberbook.core.resolver import DayProfile
from barberbook.core.timegrid import generate_slots, overlaps


@dataclass(frozen=True)
class Slot:
    start: int
    end: int
    available: bool


class BookedInterval(Protocol):
    start_minute: int
    duration_minutes: int
    status: str


def compute_slots(
    profile: DayProfile,
    duration_minutes: int,
    appointments: Iterable[BookedInterval],
    step_minutes: int,
    now_minute: Optional[int] = None,
) -> Tuple[Slot, ...]:
    """
    Args:
        profile: resolved day profile for one staff member and date
        duration_minutes: length of the service being booked
        appointments: that staff member's appointments on that date; anything
            not in an occupying status is ignored
        step_minutes: grid step between candidate starts
        now_minute: current minute of day, only passed when the date is today;
            candidates starting at or before it are unavailable

    Returns:
        Chronological, immutable tuple of slots.
    """
    if not profile.is_open:
        return ()

    busy = [
        (a.start_minute, a.start_minute + a.duration_minutes)
        for a in appointments
        if is_occupying(a.status)
    ]

    slots = []
    for start in generate_slots(profile.open_minute, profile.close_minute, duration_minutes, step_minutes):
        end = start + duration_minutes
        available = True

        if profile.break_window is not None:
            break_start, break_end = profile.break_window
            if overlaps(start, end, break_start, break_end):
                available = False

        if available:
            for busy_start, busy_end in busy:
                if overlaps(start, end, busy_start, busy_end):
                    available = False
                    break

        if available and now_minute is not None and start <= now_minute:
            available = False

        slots.append(Slot(start=start, end=end, available=available))

    return tuple(slots)


def available_only(slots: Iterable[Slot]) -> Tuple[Slot, ...]:
    return tuple(slot for slot in slots if slot.available)


def is_slot_available(slots: Iterable[Slot], start_minute: int) -> bool:
    return any(slot.start == start_minute and slot.available for slot in slots)
