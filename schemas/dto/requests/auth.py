"""
Request DTOs for authentication endpoints.

RegisterRequest             — POST /api/auth/register
VerifyEmailRequest          — POST /api/auth/verify-email
ResendVerificationRequest   — POST /api/auth/resend-verification-code
ForgotPasswordRequest       — POST /api/auth/forgot-password
ResetPasswordRequest        — PUT  /api/auth/reset-password/{token}
LoginRequest                — POST /api/auth/login
ChangePasswordRequest       — PUT  /api/auth/change-password
"""

from __future__ import annotations

from pydantic import field_validator

from schemas.dto.base import CamelModel
from shared.validators import (
    normalize_email,
    validate_email,
    validate_name,
    validate_password,
)


def _check_password(value: str) -> str:
    is_valid, missing = validate_password(value)
    if not is_valid:
        raise ValueError("Password must have: " + ", ".join(missing))
    return value


def _check_email(value: str) -> str:
    email = normalize_email(value)
    if not validate_email(email):
        raise ValueError("Please enter a valid email address")
    return email


class RegisterRequest(CamelModel):
    """Request body for POST /api/auth/register."""

    first_name: str
    last_name: str
    email: str
    password: str

    @field_validator("first_name", "last_name")
    @classmethod
    def _names(cls, v: str) -> str:
        if not validate_name(v):
            raise ValueError("Name is required and must be at most 50 characters")
        return v.strip()

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _check_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return _check_password(v)


class VerifyEmailRequest(CamelModel):
    """Request body for POST /api/auth/verify-email.

    ``code`` is the 6-digit code emailed at registration or on resend.
    Format is deliberately not validated here: a malformed code gets the
    same "invalid or expired" answer as a wrong one.
    """

    email: str
    code: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalize_email(v)


class ResendVerificationRequest(CamelModel):
    """Request body for POST /api/auth/resend-verification-code."""

    email: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalize_email(v)


class ForgotPasswordRequest(CamelModel):
    """Request body for POST /api/auth/forgot-password."""

    email: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalize_email(v)


class ResetPasswordRequest(CamelModel):
    """Request body for PUT /api/auth/reset-password/{token}."""

    password: str
    password_confirm: str

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return _check_password(v)


class LoginRequest(CamelModel):
    """Request body for POST /api/auth/login."""

    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalize_email(v)


class ChangePasswordRequest(CamelModel):
    """Request body for PUT /api/auth/change-password."""

    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def _password(cls, v: str) -> str:
        return _check_password(v)
