"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. The global exception handler
converts AppError subclasses to consistent JSON responses.

Services never let raw store exceptions escape: repository failures are
translated to UnavailableError before they reach a route. Anything else
that slips through is logged and answered with a generic 500.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shared.logging import get_logger

log = get_logger(__name__)


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message, "code": self.error_code}
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class PreconditionFailedError(AppError):
    """A registration step was attempted before the previous one completed."""

    status_code = 400
    error_code = "precondition_failed"


class InvalidCodeError(ValidationError):
    error_code = "invalid_code"


class ExpiredCodeError(ValidationError):
    error_code = "expired_code"


class AttemptsExceededError(ValidationError):
    error_code = "attempts_exceeded"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"


class ForbiddenError(AppError):
    status_code = 403
    error_code = "forbidden"


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class ConflictError(AppError):
    status_code = 409
    error_code = "conflict"


class AccountLockedError(AppError):
    """Login refused while ``locked_until`` is in the future (423 Locked)."""

    status_code = 423
    error_code = "account_locked"


class RateLimitError(AppError):
    status_code = 429
    error_code = "rate_limit_exceeded"


class UnavailableError(AppError):
    """A collaborator (datastore, cache) failed. Internal text is never exposed."""

    status_code = 500
    error_code = "service_unavailable"


def register_error_handlers(app: FastAPI, *, expose_internal: bool = False) -> None:
    """Register global exception handlers on the FastAPI app.

    ``expose_internal`` adds the exception type to unhandled 500 responses;
    it must stay off in production.
    """

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        loc = [str(part) for part in first.get("loc", ()) if part != "body"]
        err = ValidationError(
            first.get("msg", "Invalid request body"),
            field=".".join(loc) or None,
            details=[
                {"loc": [str(p) for p in e.get("loc", ())], "msg": e.get("msg")}
                for e in errors
            ],
        )
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Sentry integration: if sentry_sdk is initialized it will auto-capture
        # unhandled exceptions before this handler fires.
        log.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            error_type=type(exc).__name__,
            exc_info=exc,
        )
        content: dict = {
            "error": "An internal server error occurred.",
            "code": "internal_error",
        }
        if expose_internal:
            content["details"] = {"error_type": type(exc).__name__}
        return JSONResponse(status_code=500, content=content)
