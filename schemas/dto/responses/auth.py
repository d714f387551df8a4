"""
Response DTOs for authentication and profile endpoints.

AccountResponse   — public account fields; GET /api/auth/me
RegisterResponse  — POST /api/auth/register  (201)
LoginResponse     — POST /api/auth/login  (200)
ProfileResponse   — PUT /api/auth/update-profile, PATCH /api/auth/profile,
                    DELETE /api/auth/profile/image  (200)

The password hash, verification code and reset token hash never leave the
server; AccountResponse is the only way an account is serialised.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from schemas.dto.base import CamelModel
from schemas.models.account import AccountDoc


class AccountResponse(CamelModel):
    id: str
    first_name: str
    last_name: str
    email: str
    is_email_verified: bool
    profile_image: Optional[str] = None
    last_login: Optional[datetime] = None
    login_count: int = 0
    created_at: Optional[datetime] = None

    @classmethod
    def from_account(cls, account: AccountDoc) -> "AccountResponse":
        return cls(
            id=str(account.id),
            first_name=account.first_name,
            last_name=account.last_name,
            email=account.email,
            is_email_verified=account.is_email_verified,
            profile_image=account.profile_image,
            last_login=account.last_login,
            login_count=account.login_count,
            created_at=account.created_at,
        )


class RegisterResponse(CamelModel):
    message: str
    user: AccountResponse


class LoginResponse(CamelModel):
    message: str
    token: str
    user: AccountResponse


class ProfileResponse(CamelModel):
    message: str
    user: AccountResponse
