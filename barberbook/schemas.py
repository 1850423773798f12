# barberbook/schemas.py

from pydantic import BaseModel, Field, model_validator
from enum import Enum
from datetime import datetime, date
from typing import Dict, List, Optional

from barberbook.core.lifecycle import Action, AppointmentStatus
from barberbook.core.resolver import ExceptionKind

CLOCK_PATTERN = r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$"


class UserRole(str, Enum):
    owner = "owner"
    staff = "staff"
    client = "client"


class UserPublic(BaseModel):
    id: int
    email: str
    role: UserRole
    staff_ids: List[int] = []


class WeeklyRuleIn(BaseModel):
    is_open: bool
    open_time: Optional[str] = Field(default=None, pattern=CLOCK_PATTERN)
    close_time: Optional[str] = Field(default=None, pattern=CLOCK_PATTERN)
    break_start: Optional[str] = Field(default=None, pattern=CLOCK_PATTERN)
    break_end: Optional[str] = Field(default=None, pattern=CLOCK_PATTERN)

    @model_validator(mode="after")
    def hours_when_open(self):
        if self.is_open and (self.open_time is None or self.close_time is None):
            raise ValueError("open_time and close_time are required when is_open is true")
        return self


class WeeklyRulePublic(BaseModel):
    id: int
    scope: str
    owner_id: int
    day_of_week: int
    is_open: bool
    open_minute: int
    close_minute: int
    break_start_minute: Optional[int] = None
    break_end_minute: Optional[int] = None
    open_time: str
    close_time: str
    break_start: Optional[str] = None
    break_end: Optional[str] = None


class DateExceptionCreate(BaseModel):
    date: date
    kind: ExceptionKind
    description: str = Field(default="", max_length=255)
    open_time: Optional[str] = Field(default=None, pattern=CLOCK_PATTERN)
    close_time: Optional[str] = Field(default=None, pattern=CLOCK_PATTERN)


class DateExceptionPublic(BaseModel):
    id: int
    scope: str
    owner_id: int
    date: date
    kind: ExceptionKind
    description: str
    open_minute: Optional[int] = None
    close_minute: Optional[int] = None
    open_time: Optional[str] = None
    close_time: Optional[str] = None


class SlotPublic(BaseModel):
    start: int
    end: int
    start_time: str
    end_time: str
    available: bool


class AvailabilityResponse(BaseModel):
    shop_id: int
    staff_id: Optional[int] = None
    date: date
    duration_minutes: int
    closed: bool
    source: str
    description: Optional[str] = None
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    slots: List[SlotPublic]


class StaffAvailability(AvailabilityResponse):
    display_name: str


class BookingCreate(BaseModel):
    staff_id: int
    service_id: int
    client_id: Optional[int] = None
    date: date
    start_minute: Optional[int] = Field(default=None, ge=0, lt=24 * 60)
    start_time: Optional[str] = Field(default=None, pattern=CLOCK_PATTERN)
    notes: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def one_start(self):
        if (self.start_minute is None) == (self.start_time is None):
            raise ValueError("Give exactly one of start_minute or start_time")
        return self


class TransitionRequest(BaseModel):
    action: Action
    reason: Optional[str] = Field(default=None, max_length=500)


class AppointmentPublic(BaseModel):
    id: int
    shop_id: int
    staff_id: int
    client_id: int
    service_id: int
    date: date
    start_minute: int
    end_minute: int
    start_time: str
    end_time: str
    duration_minutes: int
    price: float
    status: AppointmentStatus
    notes: Optional[str] = None
    cancel_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class AppointmentEventPublic(BaseModel):
    id: int
    appointment_id: int
    from_status: Optional[AppointmentStatus] = None
    to_status: AppointmentStatus
    actor_id: Optional[int] = None
    note: Optional[str] = None
    created_at: datetime


class AppointmentStatsPublic(BaseModel):
    shop_id: int
    total: int
    by_status: Dict[str, int]
    total_revenue: float
    average_price: float
