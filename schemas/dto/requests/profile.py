"""
Request DTOs for profile endpoints.

UpdateProfileRequest — PUT /api/auth/update-profile (JSON)

PATCH /api/auth/profile takes multipart form fields instead; the route
builds an UpdateProfileRequest from them so validation is shared.
"""

from __future__ import annotations

from typing import Optional

from pydantic import field_validator

from schemas.dto.base import CamelModel
from shared.validators import normalize_email, validate_email, validate_name


class UpdateProfileRequest(CamelModel):
    """Any subset of name and email; omitted fields are left unchanged."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def _names(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        if not validate_name(v):
            raise ValueError("Name must not be empty and at most 50 characters")
        return v.strip()

    @field_validator("email")
    @classmethod
    def _email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        email = normalize_email(v)
        if not validate_email(email):
            raise ValueError("Please enter a valid email address")
        return email

    def changes(self) -> dict[str, str]:
        """Only the fields the caller actually sent."""
        return self.model_dump(exclude_none=True)
