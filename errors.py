"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. The global exception handler
converts AppError subclasses to consistent JSON responses.

Non-AppError exceptions bubble up as 500s (with Sentry reporting in production).
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
    default_message: str = "Server error"
    default_field: Optional[str] = None

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        message = message or self.default_message
        super().__init__(message)
        self.message = message
        self.field = field if field is not None else self.default_field
        self.details = details
        self.headers = headers

    def to_dict(self) -> dict:
        # "message" mirrors "error" for clients that read either key
        payload: dict = {
            "error": self.message,
            "message": self.message,
            "code": self.error_code,
        }
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class ConflictError(AppError):
    status_code = 409
    error_code = "conflict"


class RateLimitError(AppError):
    status_code = 429
    error_code = "rate_limit_exceeded"


# ── Account lifecycle errors ─────────────────────────────────────────────────
#
# Each carries a default user-facing message so services can raise them bare.


class DuplicateEmailError(ValidationError):
    error_code = "duplicate_email"
    default_message = "An account with this email already exists"
    default_field = "email"


class InvalidOrExpiredCodeError(ValidationError):
    error_code = "invalid_or_expired_code"
    default_message = "Invalid or expired verification code."


class InvalidOrExpiredResetTokenError(ValidationError):
    error_code = "invalid_or_expired_reset_token"
    default_message = "Token is invalid or has expired."


class PasswordMismatchError(ValidationError):
    error_code = "password_mismatch"
    default_message = "Passwords do not match."
    default_field = "passwordConfirm"


class WrongCurrentPasswordError(ValidationError):
    error_code = "wrong_current_password"
    default_message = "Current password is incorrect."
    default_field = "currentPassword"


class AlreadyVerifiedError(ValidationError):
    error_code = "already_verified"
    default_message = "Email is already verified."


class InvalidCredentialsError(AuthenticationError):
    error_code = "invalid_credentials"
    default_message = "Invalid email or password"


class EmailNotVerifiedError(AuthenticationError):
    error_code = "email_not_verified"
    default_message = "Please verify your email before logging in."


class UnauthorizedError(AuthenticationError):
    error_code = "unauthorized"
    default_message = "Not authorized, token failed"


def error_message(error: dict) -> str:
    """Readable message for one pydantic error entry.

    Messages raised from field validators arrive as ``"Value error, <text>"``;
    the bare text is returned instead.
    """
    if error.get("type") == "value_error" and error.get("ctx", {}).get("error"):
        return str(error["ctx"]["error"])
    return error.get("msg") or "Invalid request"


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        loc = [str(part) for part in first.get("loc", ()) if part != "body"]
        error = ValidationError(
            error_message(first),
            field=".".join(loc) or None,
            details=[
                {"loc": [str(p) for p in e.get("loc", ())], "msg": error_message(e)}
                for e in errors
            ],
        )
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Sentry integration: if sentry_sdk is initialized it will auto-capture
        # unhandled exceptions before this handler fires.
        log.error(
            "unhandled_exception",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return JSONResponse(status_code=500, content=AppError().to_dict())
