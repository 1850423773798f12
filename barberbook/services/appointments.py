# barberbook/services/appointments.py

import logging
from dataclasses import dataclass, field
from datetime import date as Date
from typing import Dict, List, Optional

from sqlmodel import Session, select

from barberbook.core.lifecycle import Action, AppointmentStatus, next_status, releases_interval
from barberbook.errors import ValidationError
from barberbook.models import Appointment, AppointmentEvent
from barberbook.stores import AppointmentStore

logger = logging.getLogger(__name__)


def get_appointment(session: Session, appointment_id: int) -> Appointment:
    return AppointmentStore(session).get(appointment_id)


def get_history(session: Session, appointment_id: int) -> List[AppointmentEvent]:
    store = AppointmentStore(session)
    store.get(appointment_id)
    return store.get_events(appointment_id)


def transition(
    session: Session,
    appointment_id: int,
    action: Action,
    actor_id: Optional[int] = None,
    reason: Optional[str] = None,
) -> Appointment:
    """Apply a lifecycle action. Illegal moves raise StateError."""
    try:
        action = Action(action)
    except ValueError:
        raise ValidationError(f"Unknown action {action!r}")

    store = AppointmentStore(session)
    appt = store.get(appointment_id)
    current = AppointmentStatus(appt.status)
    target = next_status(current, action)

    changes = {}
    if target == AppointmentStatus.cancelled and reason:
        changes["cancel_reason"] = reason
    if target == AppointmentStatus.completed and reason:
        changes["notes"] = f"{appt.notes}\n{reason}" if appt.notes else reason

    appt = store.update_status(
        appointment_id,
        expected=current,
        new_status=target,
        actor_id=actor_id,
        note=reason,
        **changes,
    )
    logger.info(
        "appointment_transition",
        extra={
            "appointment_id": appointment_id,
            "from_status": current.value,
            "to_status": target.value,
            "released": releases_interval(target),
        },
    )
    return appt


def list_appointments(
    session: Session,
    shop_id: Optional[int] = None,
    staff_id: Optional[int] = None,
    client_id: Optional[int] = None,
    status: Optional[AppointmentStatus] = None,
    start: Optional[Date] = None,
    end: Optional[Date] = None,
    skip: int = 0,
    take: int = 50,
    order_by: str = "start",
    descending: bool = False,
) -> List[Appointment]:
    stmt = select(Appointment)
    if shop_id is not None:
        stmt = stmt.where(Appointment.shop_id == shop_id)
    if staff_id is not None:
        stmt = stmt.where(Appointment.staff_id == staff_id)
    if client_id is not None:
        stmt = stmt.where(Appointment.client_id == client_id)
    if status is not None:
        stmt = stmt.where(Appointment.status == AppointmentStatus(status).value)
    if start is not None:
        stmt = stmt.where(Appointment.date >= start)
    if end is not None:
        stmt = stmt.where(Appointment.date <= end)

    if order_by == "created":
        columns = [Appointment.created_at, Appointment.id]
    else:
        columns = [Appointment.date, Appointment.start_minute, Appointment.id]
    if descending:
        columns = [c.desc() for c in columns]

    stmt = stmt.order_by(*columns).offset(skip).limit(take)
    return session.exec(stmt).all()


@dataclass
class AppointmentStats:
    total: int = 0
    by_status: Dict[str, int] = field(default_factory=dict)
    total_revenue: float = 0.0
    average_price: float = 0.0


def get_stats(
    session: Session,
    shop_id: int,
    staff_id: Optional[int] = None,
    start: Optional[Date] = None,
    end: Optional[Date] = None,
) -> AppointmentStats:
    """Counts per status; revenue only counts completed appointments."""
    stmt = select(Appointment).where(Appointment.shop_id == shop_id)
    if staff_id is not None:
        stmt = stmt.where(Appointment.staff_id == staff_id)
    if start is not None:
        stmt = stmt.where(Appointment.date >= start)
    if end is not None:
        stmt = stmt.where(Appointment.date <= end)
    appts = session.exec(stmt).all()

    stats = AppointmentStats(by_status={s.value: 0 for s in AppointmentStatus})
    completed_prices = []
    for appt in appts:
        stats.total += 1
        stats.by_status[appt.status] = stats.by_status.get(appt.status, 0) + 1
        if appt.status == AppointmentStatus.completed.value:
            completed_prices.append(appt.price)

    if completed_prices:
        stats.total_revenue = round(sum(completed_prices), 2)
        stats.average_price = round(stats.total_revenue / len(completed_prices), 2)
    return stats
