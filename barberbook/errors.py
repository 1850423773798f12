# barberbook/errors.py
"""
Domain errors raised by the scheduling core.

None of these are fatal: each one is a per-request outcome that the API layer
turns into an HTTP response through ``register_error_handlers``.
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse


class DomainError(Exception):
    """Base class for every scheduling error."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationError(DomainError):
    """Malformed input, non-positive durations or references to unknown/inactive ids."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class NotFoundError(ValidationError):
    """A referenced id does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(DomainError):
    """The slot is gone, a uniqueness rule was hit, or the staff lock timed out.

    Callers should re-fetch availability and try again with a fresh slot.
    """

    status_code = status.HTTP_409_CONFLICT

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        retryable: bool = True,
    ) -> None:
        super().__init__(message, code=code, details=details)
        self.retryable = retryable
        self.details.setdefault("retryable", retryable)


class StateError(DomainError):
    """Illegal appointment lifecycle transition."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, current: str, requested: str, message: Optional[str] = None) -> None:
        self.current = current
        self.requested = requested
        super().__init__(
            message or f"Cannot move appointment from {current} to {requested}",
            details={"current": current, "requested": requested},
        )


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
        http_exc = exc.to_http_exception()
        return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})
