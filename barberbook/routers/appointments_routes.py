# barberbook/routers/appointments_routes.py

from datetime import datetime, date
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from barberbook.auth import get_current_user
from barberbook.core.lifecycle import AppointmentStatus
from barberbook.core.timegrid import to_clock, to_minute
from barberbook.db import get_session
from barberbook.deps import get_now, require_role, require_shop_member, staff_for_user
from barberbook.models import Appointment, Staff
from barberbook.schemas import (
    AppointmentEventPublic,
    AppointmentPublic,
    AppointmentStatsPublic,
    BookingCreate,
    TransitionRequest,
)
from barberbook.services import appointments as appointment_service
from barberbook.services.booking import BookingGuard, get_booking_guard
from barberbook.services.scheduling import get_shop

router = APIRouter(
    tags=["appointments"],
)


def appointment_to_public(appt: Appointment) -> dict:
    return {
        "id": appt.id,
        "shop_id": appt.shop_id,
        "staff_id": appt.staff_id,
        "client_id": appt.client_id,
        "service_id": appt.service_id,
        "date": appt.date,
        "start_minute": appt.start_minute,
        "end_minute": appt.end_minute,
        "start_time": to_clock(appt.start_minute),
        "end_time": to_clock(appt.end_minute),
        "duration_minutes": appt.duration_minutes,
        "price": appt.price,
        "status": appt.status,
        "notes": appt.notes,
        "cancel_reason": appt.cancel_reason,
        "created_at": appt.created_at,
        "updated_at": appt.updated_at,
    }


def _require_can_view(session: Session, user: dict, appt: Appointment) -> None:
    if user["role"] == "client":
        if appt.client_id != user["id"]:
            raise HTTPException(status_code=403, detail="Forbidden")
        return
    require_shop_member(session, user, appt.shop_id)


@router.post("/appointments", response_model=AppointmentPublic, status_code=201)
def create_appointment(
    booking: BookingCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    guard: BookingGuard = Depends(get_booking_guard),
    now: datetime = Depends(get_now),
):
    # 1) Clients always book for themselves; staff/owners book on behalf of a client
    if current_user["role"] == "client":
        client_id = current_user["id"]
    else:
        if booking.client_id is None:
            raise HTTPException(status_code=422, detail="client_id is required")
        staff = session.get(Staff, booking.staff_id)
        if staff is None:
            raise HTTPException(status_code=404, detail="Staff member not found")
        require_shop_member(session, current_user, staff.shop_id)
        client_id = booking.client_id

    # 2) Normalize the start to minute of day
    start_minute = booking.start_minute if booking.start_minute is not None else to_minute(booking.start_time)

    # 3) Recheck and commit
    appt = guard.book(
        session,
        staff_id=booking.staff_id,
        service_id=booking.service_id,
        client_id=client_id,
        on_date=booking.date,
        start_minute=start_minute,
        notes=booking.notes,
        actor_id=current_user["id"],
        now=now,
    )
    return appointment_to_public(appt)


@router.patch("/appointments/{appointment_id}/transition", response_model=AppointmentPublic)
def transition_appointment(
    appointment_id: int,
    request: TransitionRequest,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "owner", "staff")
    appt = appointment_service.get_appointment(session, appointment_id)
    require_shop_member(session, current_user, appt.shop_id)

    appt = appointment_service.transition(
        session,
        appointment_id,
        request.action,
        actor_id=current_user["id"],
        reason=request.reason,
    )
    return appointment_to_public(appt)


@router.get("/appointments/{appointment_id}", response_model=AppointmentPublic)
def read_appointment(
    appointment_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    appt = appointment_service.get_appointment(session, appointment_id)
    _require_can_view(session, current_user, appt)
    return appointment_to_public(appt)


@router.get("/appointments/{appointment_id}/history", response_model=List[AppointmentEventPublic])
def read_history(
    appointment_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    appt = appointment_service.get_appointment(session, appointment_id)
    _require_can_view(session, current_user, appt)
    events = appointment_service.get_history(session, appointment_id)
    return [event.model_dump() for event in events]


@router.get("/appointments", response_model=List[AppointmentPublic])
def list_appointments(
    shop_id: Optional[int] = None,
    staff_id: Optional[int] = None,
    status: Optional[AppointmentStatus] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    skip: int = Query(default=0, ge=0),
    take: int = Query(default=50, ge=1, le=200),
    order_by: Literal["start", "created"] = "start",
    descending: bool = False,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    client_id = None
    if current_user["role"] == "client":
        client_id = current_user["id"]
    elif shop_id is not None:
        require_shop_member(session, current_user, shop_id)
    else:
        # staff without an explicit shop see their own book
        own = staff_for_user(session, current_user)
        if not own:
            raise HTTPException(status_code=422, detail="shop_id is required")
        if staff_id is None:
            staff_id = own[0].id
        elif staff_id not in {s.id for s in own}:
            raise HTTPException(status_code=403, detail="Forbidden")

    appts = appointment_service.list_appointments(
        session,
        shop_id=shop_id,
        staff_id=staff_id,
        client_id=client_id,
        status=status,
        start=start,
        end=end,
        skip=skip,
        take=take,
        order_by=order_by,
        descending=descending,
    )
    return [appointment_to_public(a) for a in appts]


@router.get("/shops/{shop_id}/appointments/stats", response_model=AppointmentStatsPublic)
def appointment_stats(
    shop_id: int,
    staff_id: Optional[int] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "owner", "staff")
    get_shop(session, shop_id)
    require_shop_member(session, current_user, shop_id)

    stats = appointment_service.get_stats(session, shop_id, staff_id, start, end)
    return {
        "shop_id": shop_id,
        "total": stats.total,
        "by_status": stats.by_status,
        "total_revenue": stats.total_revenue,
        "average_price": stats.average_price,
    }
