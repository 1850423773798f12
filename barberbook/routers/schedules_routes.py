# barberbook/routers/schedules_routes.py

from datetime import date
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Path
from sqlmodel import Session

from barberbook.auth import get_current_user
from barberbook.core.resolver import RuleScope
from barberbook.core.timegrid import to_clock, to_minute
from barberbook.db import get_session
from barberbook.deps import require_shop_owner, require_staff_editor
from barberbook.models import DateException, WeeklyRule
from barberbook.schemas import DateExceptionCreate, DateExceptionPublic, WeeklyRuleIn, WeeklyRulePublic
from barberbook.services import scheduling

router = APIRouter(
    tags=["schedules"],
)

DayOfWeek = Annotated[int, Path(ge=0, le=6, description="0 = Sunday ... 6 = Saturday")]


def _minute_or_none(clock: Optional[str]) -> Optional[int]:
    return to_minute(clock) if clock is not None else None


def rule_to_public(rule: WeeklyRule) -> dict:
    return {
        "id": rule.id,
        "scope": rule.scope,
        "owner_id": rule.owner_id,
        "day_of_week": rule.day_of_week,
        "is_open": rule.is_open,
        "open_minute": rule.open_minute,
        "close_minute": rule.close_minute,
        "break_start_minute": rule.break_start_minute,
        "break_end_minute": rule.break_end_minute,
        "open_time": to_clock(rule.open_minute),
        "close_time": to_clock(rule.close_minute),
        "break_start": to_clock(rule.break_start_minute) if rule.break_start_minute is not None else None,
        "break_end": to_clock(rule.break_end_minute) if rule.break_end_minute is not None else None,
    }


def exception_to_public(exc: DateException) -> dict:
    return {
        "id": exc.id,
        "scope": exc.scope,
        "owner_id": exc.owner_id,
        "date": exc.date,
        "kind": exc.kind,
        "description": exc.description,
        "open_minute": exc.open_minute,
        "close_minute": exc.close_minute,
        "open_time": to_clock(exc.open_minute) if exc.open_minute is not None else None,
        "close_time": to_clock(exc.close_minute) if exc.close_minute is not None else None,
    }


def _save_rule(session: Session, scope: RuleScope, owner_id: int, day_of_week: int, rule: WeeklyRuleIn) -> dict:
    db_rule = scheduling.upsert_weekly_rule(
        session,
        scope,
        owner_id,
        day_of_week,
        is_open=rule.is_open,
        open_minute=_minute_or_none(rule.open_time) or 0,
        close_minute=_minute_or_none(rule.close_time) or 0,
        break_start_minute=_minute_or_none(rule.break_start),
        break_end_minute=_minute_or_none(rule.break_end),
    )
    return rule_to_public(db_rule)


def _create_exception(session: Session, scope: RuleScope, owner_id: int, exc: DateExceptionCreate) -> dict:
    db_exc = scheduling.create_date_exception(
        session,
        scope,
        owner_id,
        exc.date,
        exc.kind,
        description=exc.description,
        open_minute=_minute_or_none(exc.open_time),
        close_minute=_minute_or_none(exc.close_time),
    )
    return exception_to_public(db_exc)


# ---- shop level ----

@router.put("/shops/{shop_id}/weekly-rules/{day_of_week}", response_model=WeeklyRulePublic)
def put_shop_rule(
    rule: WeeklyRuleIn,
    shop_id: int,
    day_of_week: DayOfWeek,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_shop_owner(session, current_user, shop_id)
    return _save_rule(session, RuleScope.shop, shop_id, day_of_week, rule)


@router.get("/shops/{shop_id}/weekly-rules", response_model=List[WeeklyRulePublic])
def get_shop_rules(shop_id: int, session: Session = Depends(get_session)):
    scheduling.get_shop(session, shop_id)
    return [rule_to_public(r) for r in scheduling.list_weekly_rules(session, RuleScope.shop, shop_id)]


@router.delete("/shops/{shop_id}/weekly-rules/{day_of_week}", status_code=204)
def delete_shop_rule(
    shop_id: int,
    day_of_week: DayOfWeek,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_shop_owner(session, current_user, shop_id)
    scheduling.delete_weekly_rule(session, RuleScope.shop, shop_id, day_of_week)


@router.post("/shops/{shop_id}/exceptions", response_model=DateExceptionPublic, status_code=201)
def post_shop_exception(
    exc: DateExceptionCreate,
    shop_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_shop_owner(session, current_user, shop_id)
    return _create_exception(session, RuleScope.shop, shop_id, exc)


@router.get("/shops/{shop_id}/exceptions", response_model=List[DateExceptionPublic])
def get_shop_exceptions(
    shop_id: int,
    start: Optional[date] = None,
    end: Optional[date] = None,
    session: Session = Depends(get_session),
):
    scheduling.get_shop(session, shop_id)
    exceptions = scheduling.list_date_exceptions(session, RuleScope.shop, shop_id, start, end)
    return [exception_to_public(e) for e in exceptions]


# ---- staff level ----

@router.put("/staff/{staff_id}/weekly-rules/{day_of_week}", response_model=WeeklyRulePublic)
def put_staff_rule(
    rule: WeeklyRuleIn,
    staff_id: int,
    day_of_week: DayOfWeek,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_staff_editor(session, current_user, staff_id)
    return _save_rule(session, RuleScope.staff, staff_id, day_of_week, rule)


@router.get("/staff/{staff_id}/weekly-rules", response_model=List[WeeklyRulePublic])
def get_staff_rules(staff_id: int, session: Session = Depends(get_session)):
    scheduling.get_staff(session, staff_id)
    return [rule_to_public(r) for r in scheduling.list_weekly_rules(session, RuleScope.staff, staff_id)]


@router.delete("/staff/{staff_id}/weekly-rules/{day_of_week}", status_code=204)
def delete_staff_rule(
    staff_id: int,
    day_of_week: DayOfWeek,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_staff_editor(session, current_user, staff_id)
    scheduling.delete_weekly_rule(session, RuleScope.staff, staff_id, day_of_week)


@router.post("/staff/{staff_id}/exceptions", response_model=DateExceptionPublic, status_code=201)
def post_staff_exception(
    exc: DateExceptionCreate,
    staff_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_staff_editor(session, current_user, staff_id)
    return _create_exception(session, RuleScope.staff, staff_id, exc)


@router.get("/staff/{staff_id}/exceptions", response_model=List[DateExceptionPublic])
def get_staff_exceptions(
    staff_id: int,
    start: Optional[date] = None,
    end: Optional[date] = None,
    session: Session = Depends(get_session),
):
    scheduling.get_staff(session, staff_id)
    exceptions = scheduling.list_date_exceptions(session, RuleScope.staff, staff_id, start, end)
    return [exception_to_public(e) for e in exceptions]


@router.delete("/exceptions/{exception_id}", status_code=204)
def delete_exception(
    exception_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    exc = scheduling.get_date_exception(session, exception_id)
    if exc.scope == RuleScope.shop.value:
        require_shop_owner(session, current_user, exc.owner_id)
    else:
        require_staff_editor(session, current_user, exc.owner_id)
    scheduling.delete_date_exception(session, exception_id)
