# barberbook/stores.py
"""
Session-backed stores the scheduling core reads from and writes to.

RuleStore satisfies ``core.resolver.RuleSource``; AppointmentStore is the
system of record for bookings; CatalogStore answers duration/price lookups.
"""

import logging
from datetime import date as Date
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from barberbook.core.lifecycle import OCCUPYING_STATUSES, AppointmentStatus
from barberbook.core.resolver import RuleScope
from barberbook.errors import ConflictError, NotFoundError, StateError, ValidationError
from barberbook.models import (
    Appointment,
    AppointmentEvent,
    DateException,
    Service,
    StaffService,
    WeeklyRule,
    utcnow,
)

logger = logging.getLogger(__name__)

_OCCUPYING_VALUES = [s.value for s in OCCUPYING_STATUSES]


class RuleStore:
    def __init__(self, session: Session):
        self.session = session

    def get_weekly_rules(self, scope, owner_id: int) -> List[WeeklyRule]:
        return self.session.exec(
            select(WeeklyRule)
            .where(WeeklyRule.scope == RuleScope(scope).value)
            .where(WeeklyRule.owner_id == owner_id)
            .order_by(WeeklyRule.day_of_week)
        ).all()

    def get_date_exception(self, scope, owner_id: int, on_date: Date) -> Optional[DateException]:
        return self.session.exec(
            select(DateException)
            .where(DateException.scope == RuleScope(scope).value)
            .where(DateException.owner_id == owner_id)
            .where(DateException.date == on_date)
        ).first()


class AppointmentStore:
    def __init__(self, session: Session):
        self.session = session

    def get(self, appointment_id: int) -> Appointment:
        appt = self.session.get(Appointment, appointment_id)
        if appt is None:
            raise NotFoundError("Appointment not found", details={"appointment_id": appointment_id})
        return appt

    def get_occupying_appointments(self, staff_id: int, on_date: Date) -> List[Appointment]:
        return self.session.exec(
            select(Appointment)
            .where(Appointment.staff_id == staff_id)
            .where(Appointment.date == on_date)
            .where(Appointment.status.in_(_OCCUPYING_VALUES))
            .order_by(Appointment.start_minute)
        ).all()

    def create_appointment(self, appt: Appointment, actor_id: Optional[int] = None) -> Appointment:
        """Insert the appointment and its creation event in one transaction."""
        self.session.add(appt)
        try:
            self.session.flush()  # fills appt.id
            self.session.add(
                AppointmentEvent(
                    appointment_id=appt.id,
                    from_status=None,
                    to_status=appt.status,
                    actor_id=actor_id,
                )
            )
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            logger.info(
                "appointment_insert_conflict",
                extra={"staff_id": appt.staff_id, "date": str(appt.date), "start_minute": appt.start_minute},
            )
            raise ConflictError("Slot is no longer available, please refresh availability")

        self.session.refresh(appt)
        return appt

    def update_status(
        self,
        appointment_id: int,
        expected: AppointmentStatus,
        new_status: AppointmentStatus,
        actor_id: Optional[int] = None,
        note: Optional[str] = None,
        **changes,
    ) -> Appointment:
        """Compare-and-set: only applies while the row still has `expected` status."""
        result = self.session.connection().execute(
            update(Appointment)
            .where(Appointment.id == appointment_id)
            .where(Appointment.status == expected.value)
            .values(status=new_status.value, updated_at=utcnow(), **changes)
        )
        if result.rowcount == 0:
            self.session.rollback()
            current = self.get(appointment_id)
            raise StateError(current.status, new_status.value)

        self.session.add(
            AppointmentEvent(
                appointment_id=appointment_id,
                from_status=expected.value,
                to_status=new_status.value,
                actor_id=actor_id,
                note=note,
            )
        )
        self.session.commit()

        appt = self.get(appointment_id)
        self.session.refresh(appt)
        return appt

    def get_events(self, appointment_id: int) -> List[AppointmentEvent]:
        return self.session.exec(
            select(AppointmentEvent)
            .where(AppointmentEvent.appointment_id == appointment_id)
            .order_by(AppointmentEvent.id)
        ).all()


class CatalogStore:
    def __init__(self, session: Session):
        self.session = session

    def get_service(self, service_id: int) -> Service:
        service = self.session.get(Service, service_id)
        if service is None:
            raise NotFoundError("Service not found", details={"service_id": service_id})
        return service

    def get_assignment(self, staff_id: int, service_id: int) -> Optional[StaffService]:
        return self.session.exec(
            select(StaffService)
            .where(StaffService.staff_id == staff_id)
            .where(StaffService.service_id == service_id)
        ).first()

    def get_service_duration(self, service_id: int) -> int:
        service = self.get_service(service_id)
        if service.duration_minutes <= 0:
            raise ValidationError("Service duration must be positive", details={"service_id": service_id})
        return service.duration_minutes

    def get_effective_price(self, staff_id: int, service_id: int) -> float:
        service = self.get_service(service_id)
        assignment = self.get_assignment(staff_id, service_id)
        if assignment is not None and assignment.is_active and assignment.custom_price is not None:
            return assignment.custom_price
        return service.price
