# tests/test_booking.py

import threading
from datetime import datetime

import pytest
from sqlmodel import Session

from barberbook.core.lifecycle import Action, AppointmentStatus
from barberbook.core.resolver import ExceptionKind, RuleScope
from barberbook.errors import ConflictError, NotFoundError, ValidationError
from barberbook.models import Appointment
from barberbook.services import scheduling
from barberbook.services.appointments import transition
from barberbook.services.booking import BookingGuard
from barberbook.stores import AppointmentStore

from conftest import MONDAY, NOW, SUNDAY, WEDNESDAY, seed


def book(guard, session, data, start_minute=600, **overrides):
    kwargs = dict(
        staff_id=data.barber.id,
        service_id=data.haircut.id,
        client_id=data.client.id,
        on_date=MONDAY,
        start_minute=start_minute,
        now=NOW,
    )
    kwargs.update(overrides)
    return guard.book(session, **kwargs)


def test_booking_creates_scheduled_appointment_with_snapshot(session, data, guard):
    appt = book(guard, session, data, notes="Short on the sides")

    assert appt.id is not None
    assert appt.status == AppointmentStatus.scheduled.value
    assert appt.duration_minutes == 30
    assert appt.price == 35.0  # Ana's custom price
    assert appt.shop_id == data.shop.id
    assert appt.notes == "Short on the sides"


def test_base_price_when_no_custom_price(session, data, guard):
    appt = book(guard, session, data, staff_id=data.barber2.id)
    assert appt.price == 30.0


def test_later_service_edits_do_not_touch_existing_appointments(session, data, guard):
    appt = book(guard, session, data)
    data.haircut.duration_minutes = 60
    data.haircut.price = 50.0
    session.add(data.haircut)
    session.commit()

    session.refresh(appt)
    assert (appt.duration_minutes, appt.price) == (30, 35.0)


def test_same_slot_twice_conflicts(session, data, guard):
    book(guard, session, data)
    with pytest.raises(ConflictError) as excinfo:
        book(guard, session, data, client_id=data.other_client.id)
    assert excinfo.value.retryable


def test_overlapping_slot_conflicts(session, data, guard):
    book(guard, session, data, start_minute=600)
    with pytest.raises(ConflictError):
        book(guard, session, data, start_minute=615)
    # touching intervals are fine
    book(guard, session, data, start_minute=630)


def test_break_and_closed_days_conflict(session, data, guard):
    with pytest.raises(ConflictError):
        book(guard, session, data, start_minute=720)
    with pytest.raises(ConflictError):
        book(guard, session, data, on_date=SUNDAY)


def test_staff_exception_closes_booking(session, data, guard):
    scheduling.create_date_exception(session, RuleScope.staff, data.barber.id, WEDNESDAY, ExceptionKind.closed, "Dentist")
    with pytest.raises(ConflictError) as excinfo:
        book(guard, session, data, on_date=WEDNESDAY)
    assert excinfo.value.details["reason"] == "Dentist"

    appt = book(guard, session, data, staff_id=data.barber2.id, on_date=WEDNESDAY)
    assert appt.date == WEDNESDAY


def test_off_grid_start_is_not_silently_moved(session, data, guard):
    with pytest.raises(ConflictError):
        book(guard, session, data, start_minute=607)


def test_past_slot_conflicts(session, data, guard):
    with pytest.raises(ConflictError):
        book(guard, session, data, now=datetime(2025, 6, 23, 10, 0))


@pytest.mark.parametrize(
    "overrides, error",
    [
        (dict(staff_id=999), NotFoundError),
        (dict(service_id=999), NotFoundError),
        (dict(client_id=999), NotFoundError),
        (dict(start_minute=1440), ValidationError),
        (dict(start_minute=-15), ValidationError),
    ],
)
def test_unknown_references_are_validation_errors(session, data, guard, overrides, error):
    with pytest.raises(error):
        book(guard, session, data, **overrides)


def test_client_must_be_a_client_account(session, data, guard):
    with pytest.raises(ValidationError):
        book(guard, session, data, client_id=data.barber_user.id)


def test_inactive_assignment_is_not_bookable(session, data, guard):
    with pytest.raises(ValidationError):
        book(guard, session, data, staff_id=data.barber2.id, service_id=data.beard.id)


def test_inactive_service_or_staff_is_not_bookable(session, data, guard):
    data.haircut.is_active = False
    session.add(data.haircut)
    session.commit()
    with pytest.raises(ValidationError):
        book(guard, session, data)

    data.barber.is_active = False
    session.add(data.barber)
    session.commit()
    with pytest.raises(ValidationError):
        book(guard, session, data, service_id=data.beard.id)


def test_cancelled_slot_can_be_rebooked(session, data, guard):
    first = book(guard, session, data)
    transition(session, first.id, Action.cancel)

    second = book(guard, session, data, client_id=data.other_client.id)
    assert second.start_minute == first.start_minute
    # the cancelled row is kept for history
    assert session.get(Appointment, first.id).status == AppointmentStatus.cancelled.value


def test_lock_timeout_is_a_retryable_conflict(session, data):
    guard = BookingGuard(lock_timeout_s=0.05)
    with guard.locks.hold(data.barber.id, 1.0):
        with pytest.raises(ConflictError) as excinfo:
            book(guard, session, data)
    assert excinfo.value.code == "BookingLockTimeout"
    assert excinfo.value.retryable

    # lock released: the same request now goes through
    assert book(guard, session, data).id is not None


def test_database_rejects_duplicate_occupying_start(session, data):
    store = AppointmentStore(session)

    def make(status=AppointmentStatus.scheduled.value):
        return Appointment(
            shop_id=data.shop.id,
            staff_id=data.barber.id,
            client_id=data.client.id,
            service_id=data.haircut.id,
            date=MONDAY,
            start_minute=600,
            duration_minutes=30,
            price=30.0,
            status=status,
        )

    store.create_appointment(make(AppointmentStatus.cancelled.value))
    store.create_appointment(make())
    with pytest.raises(ConflictError):
        store.create_appointment(make())


def _run_concurrently(targets):
    barrier = threading.Barrier(len(targets))
    results = [None] * len(targets)

    def runner(index, target):
        barrier.wait()
        try:
            results[index] = ("ok", target())
        except Exception as exc:  # collected and asserted on below
            results[index] = ("error", exc)

    threads = [threading.Thread(target=runner, args=(i, t)) for i, t in enumerate(targets)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return results


def test_concurrent_requests_for_same_slot_yield_one_booking(file_engine):
    with Session(file_engine) as session:
        data = seed(session)
        staff_id, service_id = data.barber.id, data.haircut.id
        clients = [data.client.id, data.other_client.id]

    guard = BookingGuard(lock_timeout_s=10)

    def attempt(client_id):
        def target():
            with Session(file_engine) as session:
                appt = guard.book(
                    session,
                    staff_id=staff_id,
                    service_id=service_id,
                    client_id=client_id,
                    on_date=MONDAY,
                    start_minute=600,
                    now=NOW,
                )
                return appt.status

        return target

    results = _run_concurrently([attempt(c) for c in clients])

    outcomes = sorted(kind for kind, _ in results)
    assert outcomes == ["error", "ok"]
    for kind, value in results:
        if kind == "ok":
            assert value == AppointmentStatus.scheduled.value
        else:
            assert isinstance(value, ConflictError)

    with Session(file_engine) as session:
        booked = AppointmentStore(session).get_occupying_appointments(staff_id, MONDAY)
        assert len(booked) == 1


def test_different_staff_members_book_in_parallel(file_engine):
    with Session(file_engine) as session:
        data = seed(session)
        requests = [
            (data.barber.id, data.client.id),
            (data.barber2.id, data.other_client.id),
        ]
        service_id = data.haircut.id

    guard = BookingGuard(lock_timeout_s=10)

    def attempt(staff_id, client_id):
        def target():
            with Session(file_engine) as session:
                return guard.book(
                    session,
                    staff_id=staff_id,
                    service_id=service_id,
                    client_id=client_id,
                    on_date=MONDAY,
                    start_minute=600,
                    now=NOW,
                ).staff_id

        return target

    results = _run_concurrently([attempt(*r) for r in requests])

    assert [kind for kind, _ in results] == ["ok", "ok"]
    assert sorted(value for _, value in results) == sorted(r[0] for r in requests)
