# barberbook/services/scheduling.py
"""
Availability queries and weekly rule / date exception management.

Availability is always computed fresh from the stores: nothing resolved here
is cached across rule edits.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, date as Date
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from barberbook.config import get_settings
from barberbook.core.availability import Slot, compute_slots
from barberbook.core.resolver import DayProfile, ExceptionKind, OwnerContext, RuleScope, resolve_day
from barberbook.core.timegrid import MINUTES_PER_DAY
from barberbook.errors import ConflictError, NotFoundError, ValidationError
from barberbook.models import DateException, Service, Shop, Staff, WeeklyRule
from barberbook.stores import AppointmentStore, CatalogStore, RuleStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailabilityResult:
    shop_id: int
    staff_id: Optional[int]
    date: Date
    duration_minutes: int
    profile: DayProfile
    slots: Tuple[Slot, ...]


def get_shop(session: Session, shop_id: int) -> Shop:
    shop = session.get(Shop, shop_id)
    if shop is None:
        raise NotFoundError("Shop not found", details={"shop_id": shop_id})
    return shop


def get_staff(session: Session, staff_id: int) -> Staff:
    staff = session.get(Staff, staff_id)
    if staff is None:
        raise NotFoundError("Staff member not found", details={"staff_id": staff_id})
    return staff


def get_shop_service(session: Session, shop_id: int, service_id: int) -> Service:
    """An active service of this shop."""
    service = CatalogStore(session).get_service(service_id)
    if not service.is_active:
        raise ValidationError("Service is not active", details={"service_id": service_id})
    if service.shop_id != shop_id:
        raise ValidationError("Service is not offered by this shop", details={"service_id": service_id})
    return service


def offers_service(session: Session, staff_id: int, service_id: int) -> bool:
    assignment = CatalogStore(session).get_assignment(staff_id, service_id)
    return assignment is not None and assignment.is_active


def require_offered_service(session: Session, staff: Staff, service_id: int) -> Service:
    """The service must be active, belong to the staff member's shop and be assigned to them."""
    service = get_shop_service(session, staff.shop_id, service_id)
    if not offers_service(session, staff.id, service_id):
        raise ValidationError(
            "Staff member does not offer this service",
            details={"staff_id": staff.id, "service_id": service_id},
        )
    return service


def resolve_duration(
    session: Session,
    duration_minutes: Optional[int] = None,
    service_id: Optional[int] = None,
) -> int:
    if service_id is not None:
        return CatalogStore(session).get_service_duration(service_id)
    if duration_minutes is None:
        return get_settings().default_service_minutes
    if duration_minutes <= 0:
        raise ValidationError("duration_minutes must be positive")
    return duration_minutes


def now_minute_for(on_date: Date, now: datetime) -> Optional[int]:
    """Cut-off minute for past slots: everything on past dates, up to now today."""
    today = now.date()
    if on_date < today:
        return MINUTES_PER_DAY
    if on_date == today:
        return now.hour * 60 + now.minute
    return None


def get_availability(
    session: Session,
    shop_id: int,
    staff_id: Optional[int],
    on_date: Date,
    duration_minutes: int,
    step_minutes: Optional[int] = None,
    now: Optional[datetime] = None,
    service_id: Optional[int] = None,
) -> AvailabilityResult:
    """Slots for one staff member (or the shop alone when staff_id is None).

    With a service_id the pair must be bookable, so nothing is advertised that
    the booking guard would refuse.
    """
    step = step_minutes or get_settings().slot_minutes
    now = now or datetime.now()

    get_shop(session, shop_id)
    appointments = []
    if staff_id is not None:
        staff = get_staff(session, staff_id)
        if staff.shop_id != shop_id:
            raise ValidationError("Staff member does not belong to this shop")
        if not staff.is_active:
            raise ValidationError("Staff member is not active", details={"staff_id": staff_id})
        if service_id is not None:
            require_offered_service(session, staff, service_id)
        appointments = AppointmentStore(session).get_occupying_appointments(staff_id, on_date)
    elif service_id is not None:
        get_shop_service(session, shop_id, service_id)

    profile = resolve_day(RuleStore(session), OwnerContext(shop_id=shop_id, staff_id=staff_id), on_date)
    slots = compute_slots(
        profile,
        duration_minutes,
        appointments,
        step,
        now_minute=now_minute_for(on_date, now),
    )
    return AvailabilityResult(
        shop_id=shop_id,
        staff_id=staff_id,
        date=on_date,
        duration_minutes=duration_minutes,
        profile=profile,
        slots=slots,
    )


def get_staff_availability(
    session: Session,
    staff_id: int,
    on_date: Date,
    duration_minutes: int,
    step_minutes: Optional[int] = None,
    now: Optional[datetime] = None,
    service_id: Optional[int] = None,
) -> AvailabilityResult:
    staff = get_staff(session, staff_id)
    return get_availability(
        session, staff.shop_id, staff_id, on_date, duration_minutes, step_minutes, now, service_id
    )


def get_shop_availability(
    session: Session,
    shop_id: int,
    on_date: Date,
    duration_minutes: int,
    step_minutes: Optional[int] = None,
    now: Optional[datetime] = None,
    service_id: Optional[int] = None,
) -> List[Tuple[Staff, AvailabilityResult]]:
    """Availability of every active staff member of a shop on one date.

    With a service_id only staff members with an active assignment are listed.
    """
    get_shop(session, shop_id)
    if service_id is not None:
        get_shop_service(session, shop_id, service_id)

    staff_members = session.exec(
        select(Staff)
        .where(Staff.shop_id == shop_id)
        .where(Staff.is_active == True)  # noqa: E712
        .order_by(Staff.id)
    ).all()
    if service_id is not None:
        staff_members = [s for s in staff_members if offers_service(session, s.id, service_id)]

    return [
        (staff, get_availability(session, shop_id, staff.id, on_date, duration_minutes, step_minutes, now, service_id))
        for staff in staff_members
    ]


# ---------------------------------------------------------------------------
# Weekly rules
# ---------------------------------------------------------------------------


def _check_minute(name: str, value: Optional[int]) -> None:
    if value is not None and not (0 <= value <= MINUTES_PER_DAY):
        raise ValidationError(f"{name} must be between 0 and {MINUTES_PER_DAY}")


def validate_weekly_rule(rule: WeeklyRule) -> None:
    if not (0 <= rule.day_of_week <= 6):
        raise ValidationError("day_of_week must be between 0 and 6")
    for name in ("open_minute", "close_minute", "break_start_minute", "break_end_minute"):
        _check_minute(name, getattr(rule, name))

    if not rule.is_open:
        return

    if rule.close_minute <= rule.open_minute:
        raise ValidationError("close_minute must be after open_minute")

    has_start = rule.break_start_minute is not None
    has_end = rule.break_end_minute is not None
    if has_start != has_end:
        raise ValidationError("A break needs both break_start_minute and break_end_minute")
    if has_start:
        if not (rule.open_minute <= rule.break_start_minute < rule.break_end_minute <= rule.close_minute):
            raise ValidationError("Break must lie inside opening hours and end after it starts")


def list_weekly_rules(session: Session, scope: RuleScope, owner_id: int) -> List[WeeklyRule]:
    return RuleStore(session).get_weekly_rules(scope, owner_id)


def upsert_weekly_rule(
    session: Session,
    scope: RuleScope,
    owner_id: int,
    day_of_week: int,
    is_open: bool,
    open_minute: int = 0,
    close_minute: int = 0,
    break_start_minute: Optional[int] = None,
    break_end_minute: Optional[int] = None,
) -> WeeklyRule:
    """One rule per owner and weekday: creates it or replaces its hours."""
    scope = RuleScope(scope)
    candidate = WeeklyRule(
        scope=scope.value,
        owner_id=owner_id,
        day_of_week=day_of_week,
        is_open=is_open,
        open_minute=open_minute,
        close_minute=close_minute,
        break_start_minute=break_start_minute,
        break_end_minute=break_end_minute,
    )
    validate_weekly_rule(candidate)

    db_rule = session.exec(
        select(WeeklyRule)
        .where(WeeklyRule.scope == scope.value)
        .where(WeeklyRule.owner_id == owner_id)
        .where(WeeklyRule.day_of_week == day_of_week)
    ).first()

    if db_rule is None:
        db_rule = candidate
        session.add(db_rule)
    else:
        db_rule.is_open = is_open
        db_rule.open_minute = open_minute
        db_rule.close_minute = close_minute
        db_rule.break_start_minute = break_start_minute
        db_rule.break_end_minute = break_end_minute
        session.add(db_rule)

    session.commit()
    session.refresh(db_rule)
    logger.info(
        "weekly_rule_saved",
        extra={"scope": scope.value, "owner_id": owner_id, "day_of_week": day_of_week, "is_open": is_open},
    )
    return db_rule


def delete_weekly_rule(session: Session, scope: RuleScope, owner_id: int, day_of_week: int) -> None:
    db_rule = session.exec(
        select(WeeklyRule)
        .where(WeeklyRule.scope == RuleScope(scope).value)
        .where(WeeklyRule.owner_id == owner_id)
        .where(WeeklyRule.day_of_week == day_of_week)
    ).first()
    if db_rule is None:
        raise NotFoundError("Weekly rule not found")
    session.delete(db_rule)
    session.commit()


# ---------------------------------------------------------------------------
# Date exceptions
# ---------------------------------------------------------------------------


def validate_date_exception(exc: DateException) -> None:
    kind = ExceptionKind(exc.kind)
    if kind == ExceptionKind.closed:
        if exc.open_minute is not None or exc.close_minute is not None:
            raise ValidationError("A CLOSED exception cannot carry opening hours")
        return

    if exc.open_minute is None or exc.close_minute is None:
        raise ValidationError(f"open_minute and close_minute are required for {kind.value}")
    _check_minute("open_minute", exc.open_minute)
    _check_minute("close_minute", exc.close_minute)
    if exc.close_minute <= exc.open_minute:
        raise ValidationError("close_minute must be after open_minute")


def create_date_exception(
    session: Session,
    scope: RuleScope,
    owner_id: int,
    on_date: Date,
    kind: ExceptionKind,
    description: str = "",
    open_minute: Optional[int] = None,
    close_minute: Optional[int] = None,
) -> DateException:
    scope = RuleScope(scope)
    db_exc = DateException(
        scope=scope.value,
        owner_id=owner_id,
        date=on_date,
        kind=ExceptionKind(kind).value,
        description=description,
        open_minute=open_minute,
        close_minute=close_minute,
    )
    validate_date_exception(db_exc)

    if RuleStore(session).get_date_exception(scope, owner_id, on_date) is not None:
        raise ConflictError("An exception already exists for this date", retryable=False)

    session.add(db_exc)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError("An exception already exists for this date", retryable=False)

    session.refresh(db_exc)
    logger.info(
        "date_exception_created",
        extra={"scope": scope.value, "owner_id": owner_id, "on_date": str(on_date), "kind": db_exc.kind},
    )
    return db_exc


def list_date_exceptions(
    session: Session,
    scope: RuleScope,
    owner_id: int,
    start: Optional[Date] = None,
    end: Optional[Date] = None,
) -> List[DateException]:
    stmt = (
        select(DateException)
        .where(DateException.scope == RuleScope(scope).value)
        .where(DateException.owner_id == owner_id)
    )
    if start is not None:
        stmt = stmt.where(DateException.date >= start)
    if end is not None:
        stmt = stmt.where(DateException.date <= end)
    return session.exec(stmt.order_by(DateException.date)).all()


def get_date_exception(session: Session, exception_id: int) -> DateException:
    db_exc = session.get(DateException, exception_id)
    if db_exc is None:
        raise NotFoundError("Exception not found", details={"exception_id": exception_id})
    return db_exc


def delete_date_exception(session: Session, exception_id: int) -> None:
    db_exc = get_date_exception(session, exception_id)
    session.delete(db_exc)
    session.commit()
