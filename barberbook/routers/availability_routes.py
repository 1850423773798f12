# barberbook/routers/availability_routes.py

from datetime import datetime, date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from barberbook.core.timegrid import to_clock
from barberbook.db import get_session
from barberbook.deps import get_now
from barberbook.schemas import AvailabilityResponse, StaffAvailability
from barberbook.services.scheduling import (
    AvailabilityResult,
    get_availability,
    get_shop_availability,
    get_staff_availability,
    resolve_duration,
)

router = APIRouter(
    tags=["availability"],
)


def availability_to_response(result: AvailabilityResult) -> dict:
    profile = result.profile
    return {
        "shop_id": result.shop_id,
        "staff_id": result.staff_id,
        "date": result.date,
        "duration_minutes": result.duration_minutes,
        "closed": not profile.is_open,
        "source": profile.source.value,
        "description": profile.description,
        "open_time": to_clock(profile.open_minute) if profile.is_open else None,
        "close_time": to_clock(profile.close_minute) if profile.is_open else None,
        "slots": [
            {
                "start": slot.start,
                "end": slot.end,
                "start_time": to_clock(slot.start),
                "end_time": to_clock(slot.end),
                "available": slot.available,
            }
            for slot in result.slots
        ],
    }


@router.get("/shops/{shop_id}/availability", response_model=AvailabilityResponse)
def shop_availability(
    shop_id: int,
    date: date,
    staff_id: Optional[int] = None,
    duration: Optional[int] = Query(default=None, gt=0),
    service_id: Optional[int] = None,
    session: Session = Depends(get_session),
    now: datetime = Depends(get_now),
):
    duration_minutes = resolve_duration(session, duration, service_id)
    result = get_availability(session, shop_id, staff_id, date, duration_minutes, now=now, service_id=service_id)
    return availability_to_response(result)


@router.get("/staff/{staff_id}/availability", response_model=AvailabilityResponse)
def staff_availability(
    staff_id: int,
    date: date,
    duration: Optional[int] = Query(default=None, gt=0),
    service_id: Optional[int] = None,
    session: Session = Depends(get_session),
    now: datetime = Depends(get_now),
):
    duration_minutes = resolve_duration(session, duration, service_id)
    result = get_staff_availability(session, staff_id, date, duration_minutes, now=now, service_id=service_id)
    return availability_to_response(result)


@router.get("/shops/{shop_id}/staff-availability", response_model=List[StaffAvailability])
def all_staff_availability(
    shop_id: int,
    date: date,
    duration: Optional[int] = Query(default=None, gt=0),
    service_id: Optional[int] = None,
    session: Session = Depends(get_session),
    now: datetime = Depends(get_now),
):
    duration_minutes = resolve_duration(session, duration, service_id)
    return [
        {**availability_to_response(result), "display_name": staff.display_name}
        for staff, result in get_shop_availability(
            session, shop_id, date, duration_minutes, now=now, service_id=service_id
        )
    ]
