# barberbook/models.py

from typing import Optional
from datetime import datetime, timezone, date as Date

from sqlalchemy import Index, UniqueConstraint, text
from sqlmodel import SQLModel, Field

from barberbook.core.lifecycle import OCCUPYING_STATUSES, AppointmentStatus

_OCCUPYING_SQL = "status IN ({})".format(
    ", ".join(f"'{s.value}'" for s in sorted(OCCUPYING_STATUSES, key=lambda s: s.value))
)


def utcnow() -> datetime:
    # timestamp columns are stored as aware UTC values
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    name: str = ""
    role: str  # owner, staff or client
    is_active: bool = True


class Shop(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    owner_id: int = Field(foreign_key="user.id", index=True)


class Staff(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    shop_id: int = Field(foreign_key="shop.id", index=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    display_name: str = ""
    is_active: bool = True


class WeeklyRule(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("scope", "owner_id", "day_of_week", name="uq_weekly_rule_owner_day"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    scope: str = Field(index=True)  # "shop" or "staff"
    owner_id: int = Field(index=True)
    day_of_week: int  # 0 = Sunday
    is_open: bool = True
    open_minute: int = 0
    close_minute: int = 0
    break_start_minute: Optional[int] = None
    break_end_minute: Optional[int] = None


class DateException(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("scope", "owner_id", "date", name="uq_date_exception_owner_date"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    scope: str = Field(index=True)
    owner_id: int = Field(index=True)
    date: Date = Field(index=True)
    kind: str  # CLOSED, EXTENDED_HOURS or SPECIAL_HOURS
    description: str = ""
    open_minute: Optional[int] = None
    close_minute: Optional[int] = None


class Service(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    shop_id: int = Field(foreign_key="shop.id", index=True)
    name: str
    duration_minutes: int
    price: float
    is_active: bool = True


class StaffService(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("staff_id", "service_id", name="uq_staff_service"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    staff_id: int = Field(foreign_key="staff.id", index=True)
    service_id: int = Field(foreign_key="service.id", index=True)
    custom_price: Optional[float] = None
    # soft-disable: inactive assignments stay in place but are not bookable
    is_active: bool = True


class Appointment(SQLModel, table=True):
    __table_args__ = (
        # one occupying appointment per staff start; cancelled rows are kept and do not count
        Index(
            "uq_appointment_staff_start",
            "staff_id",
            "date",
            "start_minute",
            unique=True,
            sqlite_where=text(_OCCUPYING_SQL),
            postgresql_where=text(_OCCUPYING_SQL),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    shop_id: int = Field(foreign_key="shop.id", index=True)
    staff_id: int = Field(foreign_key="staff.id", index=True)
    client_id: int = Field(foreign_key="user.id", index=True)
    service_id: int = Field(foreign_key="service.id")

    date: Date = Field(index=True)
    start_minute: int
    # snapshots taken at booking time
    duration_minutes: int
    price: float

    status: str = AppointmentStatus.scheduled.value
    notes: Optional[str] = None
    cancel_reason: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def end_minute(self) -> int:
        return self.start_minute + self.duration_minutes


class AppointmentEvent(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    appointment_id: int = Field(foreign_key="appointment.id", index=True)
    from_status: Optional[str] = None
    to_status: str
    actor_id: Optional[int] = None
    note: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
