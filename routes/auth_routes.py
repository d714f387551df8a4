"""
Authentication and profile endpoints.

POST   /api/auth/register                  — create an unverified account
POST   /api/auth/verify-email              — confirm the emailed code
POST   /api/auth/resend-verification-code  — rotate and resend the code
POST   /api/auth/forgot-password           — email a reset link
PUT    /api/auth/reset-password/{token}    — set a new password from the link
POST   /api/auth/login                     — exchange credentials for a token
GET    /api/auth/me                        — current account
PUT    /api/auth/change-password           — change password (bearer)
PUT    /api/auth/update-profile            — edit names/email, JSON (bearer)
PATCH  /api/auth/profile                   — edit names/avatar, multipart (bearer)
DELETE /api/auth/profile/image             — remove the avatar (bearer)
"""

from __future__ import annotations

from typing import Optional

import pydantic
from fastapi import APIRouter, Depends, File, Form, UploadFile

from dependencies import (
    get_auth_service,
    get_current_account,
    get_profile_service,
    rate_limited,
)
from errors import ValidationError, error_message
from infrastructure.cache.rate_limiter import (
    AUTH_LIMIT,
    GENERAL_LIMIT,
    PASSWORD_RESET_LIMIT,
    VERIFICATION_LIMIT,
)
from schemas.dto.requests.auth import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResendVerificationRequest,
    ResetPasswordRequest,
    VerifyEmailRequest,
)
from schemas.dto.requests.profile import UpdateProfileRequest
from schemas.dto.responses.auth import (
    AccountResponse,
    LoginResponse,
    ProfileResponse,
    RegisterResponse,
)
from schemas.dto.responses.common import MessageResponse
from schemas.models.account import AccountDoc
from services.auth_service import AuthService
from services.profile_service import ProfileService

router = APIRouter(
    prefix="/api/auth",
    tags=["auth"],
    dependencies=[Depends(rate_limited(GENERAL_LIMIT))],
)


@router.post(
    "/register",
    status_code=201,
    response_model=RegisterResponse,
    dependencies=[Depends(rate_limited(AUTH_LIMIT))],
)
async def register(
    body: RegisterRequest, auth: AuthService = Depends(get_auth_service)
) -> RegisterResponse:
    account = await auth.register(
        body.first_name, body.last_name, body.email, body.password
    )
    return RegisterResponse(
        message=(
            "Registration successful! "
            "Please check your email to verify your account."
        ),
        user=AccountResponse.from_account(account),
    )


@router.post(
    "/verify-email",
    response_model=MessageResponse,
    dependencies=[Depends(rate_limited(VERIFICATION_LIMIT))],
)
async def verify_email(
    body: VerifyEmailRequest, auth: AuthService = Depends(get_auth_service)
) -> MessageResponse:
    await auth.verify_email(body.email, body.code)
    return MessageResponse(message="Email verified successfully.")


@router.post(
    "/resend-verification-code",
    response_model=MessageResponse,
    dependencies=[Depends(rate_limited(VERIFICATION_LIMIT))],
)
async def resend_verification_code(
    body: ResendVerificationRequest, auth: AuthService = Depends(get_auth_service)
) -> MessageResponse:
    await auth.resend_verification_code(body.email)
    return MessageResponse(
        message="A new verification code has been sent to your email."
    )


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    dependencies=[Depends(rate_limited(PASSWORD_RESET_LIMIT))],
)
async def forgot_password(
    body: ForgotPasswordRequest, auth: AuthService = Depends(get_auth_service)
) -> MessageResponse:
    return MessageResponse(message=await auth.forgot_password(body.email))


@router.put(
    "/reset-password/{token}",
    response_model=MessageResponse,
    dependencies=[Depends(rate_limited(PASSWORD_RESET_LIMIT))],
)
async def reset_password(
    token: str,
    body: ResetPasswordRequest,
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth.reset_password(token, body.password, body.password_confirm)
    return MessageResponse(message="Password reset successfully.")


@router.post(
    "/login",
    response_model=LoginResponse,
    dependencies=[Depends(rate_limited(AUTH_LIMIT))],
)
async def login(
    body: LoginRequest, auth: AuthService = Depends(get_auth_service)
) -> LoginResponse:
    result = await auth.login(body.email, body.password)
    return LoginResponse(
        message="Logged in successfully.",
        token=result.token,
        user=AccountResponse.from_account(result.account),
    )


@router.get("/me", response_model=AccountResponse)
async def me(account: AccountDoc = Depends(get_current_account)) -> AccountResponse:
    return AccountResponse.from_account(account)


@router.put("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    account: AccountDoc = Depends(get_current_account),
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth.change_password(account, body.current_password, body.new_password)
    return MessageResponse(message="Password changed successfully.")


@router.put("/update-profile", response_model=ProfileResponse)
async def update_profile(
    body: UpdateProfileRequest,
    account: AccountDoc = Depends(get_current_account),
    profiles: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    updated = await profiles.update_profile(account, body.changes())
    return ProfileResponse(
        message="Profile updated successfully.",
        user=AccountResponse.from_account(updated),
    )


@router.patch("/profile", response_model=ProfileResponse)
async def patch_profile(
    first_name: Optional[str] = Form(None, alias="firstName"),
    last_name: Optional[str] = Form(None, alias="lastName"),
    profile_image: Optional[UploadFile] = File(None, alias="profileImage"),
    account: AccountDoc = Depends(get_current_account),
    profiles: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    try:
        body = UpdateProfileRequest(first_name=first_name, last_name=last_name)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        raise ValidationError(
            error_message(first),
            field=".".join(str(p) for p in first.get("loc", ())) or None,
        )

    image = None
    if profile_image is not None and profile_image.filename:
        data = await profile_image.read()
        image = (data, profile_image.content_type or "")

    updated = await profiles.update_profile(account, body.changes(), image=image)
    return ProfileResponse(
        message="Profile updated successfully.",
        user=AccountResponse.from_account(updated),
    )


@router.delete("/profile/image", response_model=ProfileResponse)
async def delete_profile_image(
    account: AccountDoc = Depends(get_current_account),
    profiles: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    updated = await profiles.delete_profile_image(account)
    return ProfileResponse(
        message="Profile image deleted successfully.",
        user=AccountResponse.from_account(updated),
    )
