# barberbook/core/lifecycle.py
"""
Appointment status state machine.

    SCHEDULED -> CONFIRMED -> IN_PROGRESS -> COMPLETED
    SCHEDULED | CONFIRMED -> CANCELLED
    SCHEDULED | CONFIRMED -> NO_SHOW

COMPLETED, CANCELLED and NO_SHOW are terminal. Anything not listed in
TRANSITIONS raises StateError; nothing is ever a silent no-op.
"""

from enum import Enum
from typing import Dict, FrozenSet

from barberbook.errors import StateError


class AppointmentStatus(str, Enum):
    scheduled = "SCHEDULED"
    confirmed = "CONFIRMED"
    in_progress = "IN_PROGRESS"
    completed = "COMPLETED"
    cancelled = "CANCELLED"
    no_show = "NO_SHOW"


class Action(str, Enum):
    confirm = "confirm"
    start = "start"
    complete = "complete"
    cancel = "cancel"
    mark_no_show = "markNoShow"


ACTION_TARGETS: Dict[Action, AppointmentStatus] = {
    Action.confirm: AppointmentStatus.confirmed,
    Action.start: AppointmentStatus.in_progress,
    Action.complete: AppointmentStatus.completed,
    Action.cancel: AppointmentStatus.cancelled,
    Action.mark_no_show: AppointmentStatus.no_show,
}

TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.scheduled: frozenset(
        {AppointmentStatus.confirmed, AppointmentStatus.cancelled, AppointmentStatus.no_show}
    ),
    AppointmentStatus.confirmed: frozenset(
        {AppointmentStatus.in_progress, AppointmentStatus.cancelled, AppointmentStatus.no_show}
    ),
    AppointmentStatus.in_progress: frozenset({AppointmentStatus.completed}),
    AppointmentStatus.completed: frozenset(),
    AppointmentStatus.cancelled: frozenset(),
    AppointmentStatus.no_show: frozenset(),
}

# statuses that block their interval from being booked again
OCCUPYING_STATUSES: FrozenSet[AppointmentStatus] = frozenset(
    {
        AppointmentStatus.scheduled,
        AppointmentStatus.confirmed,
        AppointmentStatus.in_progress,
        AppointmentStatus.completed,
    }
)

TERMINAL_STATUSES: FrozenSet[AppointmentStatus] = frozenset(
    status for status, targets in TRANSITIONS.items() if not targets
)


def is_occupying(status) -> bool:
    return AppointmentStatus(status) in OCCUPYING_STATUSES


def releases_interval(status) -> bool:
    """True when moving into `status` frees the appointment's interval."""
    return not is_occupying(status)


def can_transition(current, target) -> bool:
    return AppointmentStatus(target) in TRANSITIONS[AppointmentStatus(current)]


def next_status(current, action) -> AppointmentStatus:
    current = AppointmentStatus(current)
    target = ACTION_TARGETS[Action(action)]
    if target not in TRANSITIONS[current]:
        raise StateError(current.value, target.value)
    return target
