# tests/test_lifecycle.py

import pytest

from barberbook.core.lifecycle import (
    Action,
    AppointmentStatus,
    OCCUPYING_STATUSES,
    TERMINAL_STATUSES,
    can_transition,
    next_status,
    releases_interval,
)
from barberbook.errors import StateError

S = AppointmentStatus


@pytest.mark.parametrize(
    "current, action, expected",
    [
        (S.scheduled, Action.confirm, S.confirmed),
        (S.scheduled, Action.cancel, S.cancelled),
        (S.scheduled, Action.mark_no_show, S.no_show),
        (S.confirmed, Action.start, S.in_progress),
        (S.confirmed, Action.cancel, S.cancelled),
        (S.confirmed, Action.mark_no_show, S.no_show),
        (S.in_progress, Action.complete, S.completed),
    ],
)
def test_allowed_transitions(current, action, expected):
    assert next_status(current, action) == expected


@pytest.mark.parametrize(
    "current, action",
    [
        (S.scheduled, Action.start),
        (S.scheduled, Action.complete),
        (S.confirmed, Action.confirm),
        (S.confirmed, Action.complete),
        (S.in_progress, Action.cancel),
        (S.in_progress, Action.mark_no_show),
        (S.cancelled, Action.cancel),
        (S.completed, Action.cancel),
        (S.no_show, Action.confirm),
    ],
)
def test_illegal_transitions_raise(current, action):
    with pytest.raises(StateError) as excinfo:
        next_status(current, action)
    assert excinfo.value.current == current.value


def test_state_error_names_both_states():
    with pytest.raises(StateError) as excinfo:
        next_status("CANCELLED", "cancel")
    assert "CANCELLED" in excinfo.value.message
    assert excinfo.value.details == {"current": "CANCELLED", "requested": "CANCELLED"}


def test_terminal_states_have_no_way_out():
    assert TERMINAL_STATUSES == {S.completed, S.cancelled, S.no_show}
    for status in TERMINAL_STATUSES:
        for target in S:
            assert not can_transition(status, target)


def test_only_cancel_and_no_show_release_the_interval():
    assert OCCUPYING_STATUSES == {S.scheduled, S.confirmed, S.in_progress, S.completed}
    assert releases_interval(S.cancelled)
    assert releases_interval("NO_SHOW")
    assert not releases_interval(S.completed)


def test_action_values_match_api_names():
    assert {a.value for a in Action} == {"confirm", "start", "complete", "cancel", "markNoShow"}
