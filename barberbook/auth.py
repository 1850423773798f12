# barberbook/auth.py
"""
Caller identity.

Tokens are issued by the external session service; this module only signs
(for tooling and tests) and verifies them. The ``sub`` claim is the user id.
"""

from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from sqlmodel import Session

from barberbook.config import get_settings
from barberbook.db import get_session
from barberbook.models import User

ACCESS_TOKEN_EXPIRE_MINUTES = 30

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")


def create_access_token(data: dict, expires_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode["exp"] = expire
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def token_for(user: User, expires_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    return create_access_token({"sub": str(user.id), "role": user.role}, expires_minutes)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> dict:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        subject = payload.get("sub")
        if subject is None:
            raise _unauthorized("Invalid token")
        user_id = int(subject)
    except (JWTError, ValueError):
        raise _unauthorized("Invalid token")

    user = session.get(User, user_id)
    if user is None or not user.is_active:
        raise _unauthorized("User not found")

    return {
        "id": user.id,
        "email": user.email,
        "role": user.role,
    }
