# barberbook/routers/users_routes.py

from fastapi import APIRouter, Depends
from sqlmodel import Session

from barberbook.auth import get_current_user
from barberbook.db import get_session
from barberbook.deps import staff_for_user
from barberbook.schemas import UserPublic

router = APIRouter(
    tags=["users"],
)


@router.get("/me", response_model=UserPublic)
def me(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return {
        "id": current_user["id"],
        "email": current_user["email"],
        "role": current_user["role"],
        "staff_ids": [s.id for s in staff_for_user(session, current_user)],
    }
