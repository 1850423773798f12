# barberbook/deps.py

from datetime import datetime

from fastapi import HTTPException
from sqlmodel import Session, select

from barberbook.models import Shop, Staff
from barberbook.services.scheduling import get_shop, get_staff


def require_role(user: dict, *roles: str):
    if user["role"] not in roles:
        raise HTTPException(status_code=403, detail="Forbidden")


def get_now() -> datetime:
    # overridden in tests to pin "today"
    return datetime.now()


def staff_for_user(session: Session, user: dict) -> list[Staff]:
    return session.exec(select(Staff).where(Staff.user_id == user["id"])).all()


def is_shop_owner(session: Session, user: dict, shop_id: int) -> bool:
    shop = session.get(Shop, shop_id)
    return shop is not None and shop.owner_id == user["id"]


def require_shop_owner(session: Session, user: dict, shop_id: int) -> Shop:
    shop = get_shop(session, shop_id)
    if shop.owner_id != user["id"]:
        raise HTTPException(status_code=403, detail="Only the shop owner can do this")
    return shop


def require_staff_editor(session: Session, user: dict, staff_id: int) -> Staff:
    """The staff member themselves, or the owner of their shop."""
    staff = get_staff(session, staff_id)
    if staff.user_id != user["id"] and not is_shop_owner(session, user, staff.shop_id):
        raise HTTPException(status_code=403, detail="Forbidden")
    return staff


def require_shop_member(session: Session, user: dict, shop_id: int) -> None:
    """Owner of the shop or one of its staff members."""
    if is_shop_owner(session, user, shop_id):
        return
    if any(s.shop_id == shop_id for s in staff_for_user(session, user)):
        return
    raise HTTPException(status_code=403, detail="Forbidden")
