# barberbook/services/booking.py
"""
Booking guard: re-check availability and commit an appointment atomically.

The recheck and the insert run inside a per-staff critical section, so two
requests for the same staff member are serialized while different staff
members never wait on each other. The partial unique index on
(staff_id, date, start_minute) backs this up at the database.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, date as Date
import logging
import threading
from typing import Dict, Iterator, Optional

from sqlmodel import Session

from barberbook.config import get_settings
from barberbook.core.availability import is_slot_available
from barberbook.core.lifecycle import AppointmentStatus
from barberbook.core.timegrid import MINUTES_PER_DAY, to_clock
from barberbook.errors import ConflictError, NotFoundError, ValidationError
from barberbook.models import Appointment, Staff, User
from barberbook.services.scheduling import get_availability, require_offered_service
from barberbook.stores import AppointmentStore, CatalogStore

logger = logging.getLogger(__name__)


class StaffLocks:
    """One lock per staff member, created on first use."""

    def __init__(self) -> None:
        self._locks: Dict[int, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, staff_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(staff_id)
            if lock is None:
                lock = self._locks[staff_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, staff_id: int, timeout_s: float) -> Iterator[None]:
        lock = self._lock_for(staff_id)
        if not lock.acquire(timeout=timeout_s):
            logger.warning("staff_lock_timeout", extra={"staff_id": staff_id, "timeout_s": timeout_s})
            raise ConflictError(
                "Staff member is busy with another booking, please try again",
                code="BookingLockTimeout",
                retryable=True,
            )
        try:
            yield
        finally:
            lock.release()


class BookingGuard:
    def __init__(self, lock_timeout_s: Optional[float] = None, locks: Optional[StaffLocks] = None) -> None:
        self.lock_timeout_s = (
            lock_timeout_s if lock_timeout_s is not None else get_settings().booking_lock_timeout_seconds
        )
        self.locks = locks or StaffLocks()

    def book(
        self,
        session: Session,
        staff_id: int,
        service_id: int,
        client_id: int,
        on_date: Date,
        start_minute: int,
        notes: Optional[str] = None,
        actor_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Appointment:
        now = now or datetime.now()

        # 1) Validate the request itself
        if not (0 <= start_minute < MINUTES_PER_DAY):
            raise ValidationError("start_minute must be between 0 and 1439")

        # 2) Validate referenced entities
        staff = session.get(Staff, staff_id)
        if staff is None:
            raise NotFoundError("Staff member not found", details={"staff_id": staff_id})
        if not staff.is_active:
            raise ValidationError("Staff member is not active", details={"staff_id": staff_id})

        require_offered_service(session, staff, service_id)

        client = session.get(User, client_id)
        if client is None:
            raise NotFoundError("Client not found", details={"client_id": client_id})
        if not client.is_active or client.role != "client":
            raise ValidationError("Client is not an active client account", details={"client_id": client_id})

        # 3) Snapshot duration and price
        catalog = CatalogStore(session)
        duration = catalog.get_service_duration(service_id)
        price = catalog.get_effective_price(staff_id, service_id)
        shop_id = staff.shop_id

        # 4) Recheck and commit while holding this staff member's lock
        with self.locks.hold(staff_id, self.lock_timeout_s):
            # never trust rows read before the lock was taken
            session.expire_all()

            availability = get_availability(session, shop_id, staff_id, on_date, duration, now=now)
            if not is_slot_available(availability.slots, start_minute):
                logger.info(
                    "booking_rejected",
                    extra={
                        "staff_id": staff_id,
                        "on_date": str(on_date),
                        "start": to_clock(start_minute),
                        "closed": not availability.profile.is_open,
                    },
                )
                if not availability.profile.is_open:
                    raise ConflictError(
                        "Staff member is not working on this date",
                        details={"date": str(on_date), "reason": availability.profile.description},
                    )
                raise ConflictError(
                    "Requested slot is not available, please refresh availability",
                    details={"date": str(on_date), "start_minute": start_minute},
                )

            appt = Appointment(
                shop_id=shop_id,
                staff_id=staff_id,
                client_id=client_id,
                service_id=service_id,
                date=on_date,
                start_minute=start_minute,
                duration_minutes=duration,
                price=price,
                status=AppointmentStatus.scheduled.value,
                notes=notes,
            )
            appt = AppointmentStore(session).create_appointment(appt, actor_id=actor_id)

        logger.info(
            "booking_created",
            extra={
                "appointment_id": appt.id,
                "staff_id": staff_id,
                "on_date": str(on_date),
                "start": to_clock(start_minute),
            },
        )
        return appt


booking_guard = BookingGuard()


def get_booking_guard() -> BookingGuard:
    return booking_guard
