# barberbook/core/resolver.py
"""
Schedule resolution: one effective day profile per staff member and date.

Four rule sources are consulted in a fixed order and the first one that
applies wins:

    1. staff date exception
    2. shop date exception
    3. staff weekly rule (only when it exists and is open)
    4. shop weekly rule

A day with no applicable rule at any level is closed. Under-booking is
preferred over over-booking, so this is a normal result, not an error.

Exceptions with hours replace the window outright; a break only ever comes
from a weekly rule.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterable, Optional, Protocol, Tuple, Union

from barberbook.core.timegrid import day_of_week


class RuleScope(str, Enum):
    shop = "shop"
    staff = "staff"


class ExceptionKind(str, Enum):
    closed = "CLOSED"
    extended_hours = "EXTENDED_HOURS"
    special_hours = "SPECIAL_HOURS"


class ProfileSource(str, Enum):
    staff_exception = "staff_exception"
    shop_exception = "shop_exception"
    staff_rule = "staff_rule"
    shop_rule = "shop_rule"
    none = "none"


@dataclass(frozen=True)
class ClosedDay:
    source: ProfileSource
    description: Optional[str] = None

    is_open = False


@dataclass(frozen=True)
class OpenDay:
    open_minute: int
    close_minute: int
    source: ProfileSource
    break_window: Optional[Tuple[int, int]] = None
    description: Optional[str] = None

    is_open = True


DayProfile = Union[ClosedDay, OpenDay]


@dataclass(frozen=True)
class OwnerContext:
    """Whose day is being resolved. staff_id=None resolves the shop on its own."""

    shop_id: int
    staff_id: Optional[int] = None


class WeeklyRuleLike(Protocol):
    day_of_week: int
    is_open: bool
    open_minute: int
    close_minute: int
    break_start_minute: Optional[int]
    break_end_minute: Optional[int]


class DateExceptionLike(Protocol):
    kind: ExceptionKind
    description: Optional[str]
    open_minute: Optional[int]
    close_minute: Optional[int]


class RuleSource(Protocol):
    def get_weekly_rules(self, scope: RuleScope, owner_id: int) -> Iterable[WeeklyRuleLike]: ...

    def get_date_exception(
        self, scope: RuleScope, owner_id: int, on_date: date
    ) -> Optional[DateExceptionLike]: ...


def _rule_for_day(rules: Iterable[WeeklyRuleLike], weekday: int) -> Optional[WeeklyRuleLike]:
    for rule in rules:
        if rule.day_of_week == weekday:
            return rule
    return None


def _from_exception(exc: DateExceptionLike, source: ProfileSource) -> DayProfile:
    if ExceptionKind(exc.kind) == ExceptionKind.closed:
        return ClosedDay(source=source, description=exc.description)
    return OpenDay(
        open_minute=exc.open_minute,
        close_minute=exc.close_minute,
        source=source,
        description=exc.description,
    )


def _from_rule(rule: WeeklyRuleLike, source: ProfileSource) -> DayProfile:
    if not rule.is_open:
        return ClosedDay(source=source)
    break_window = None
    if rule.break_start_minute is not None and rule.break_end_minute is not None:
        break_window = (rule.break_start_minute, rule.break_end_minute)
    return OpenDay(
        open_minute=rule.open_minute,
        close_minute=rule.close_minute,
        source=source,
        break_window=break_window,
    )


def resolve_day(rules: RuleSource, context: OwnerContext, on_date: date) -> DayProfile:
    staff_id = context.staff_id

    # 1) staff exception
    if staff_id is not None:
        exc = rules.get_date_exception(RuleScope.staff, staff_id, on_date)
        if exc is not None:
            return _from_exception(exc, ProfileSource.staff_exception)

    # 2) shop exception, binds every staff member without their own
    exc = rules.get_date_exception(RuleScope.shop, context.shop_id, on_date)
    if exc is not None:
        return _from_exception(exc, ProfileSource.shop_exception)

    weekday = day_of_week(on_date)

    # 3) staff weekly rule, only when open
    if staff_id is not None:
        rule = _rule_for_day(rules.get_weekly_rules(RuleScope.staff, staff_id), weekday)
        if rule is not None and rule.is_open:
            return _from_rule(rule, ProfileSource.staff_rule)

    # 4) shop weekly rule
    rule = _rule_for_day(rules.get_weekly_rules(RuleScope.shop, context.shop_id), weekday)
    if rule is not None:
        return _from_rule(rule, ProfileSource.shop_rule)

    return ClosedDay(source=ProfileSource.none)
