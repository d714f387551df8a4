"""
Account document model.

Maps to the `accounts` MongoDB collection — one document per registered
email address.

Paired optional fields are always written and cleared together:
- email_verification_code / email_verification_code_expires
- password_reset_token_hash / password_reset_expires

password_reset_token_hash stores SHA-256(raw_token); the raw token only ever
exists in the emailed link.
"""

from __future__ import annotations

from collections import deque
from datetime import datetime
from typing import Iterable, Optional

from pydantic import BaseModel, Field, field_validator

from schemas.models.base import MongoBaseModel
from shared.datetime_utils import utcnow

ACTIVITY_LOG_CAPACITY = 20

ACTION_ACCOUNT_CREATED = "Account created"
ACTION_EMAIL_VERIFIED = "Email verified"
ACTION_LOGGED_IN = "Logged in"
ACTION_PASSWORD_CHANGED = "Password changed"
ACTION_PASSWORD_RESET = "Password reset"
ACTION_PROFILE_UPDATED = "Profile updated"
ACTION_PROFILE_IMAGE_UPDATED = "Profile image updated"
ACTION_PROFILE_IMAGE_REMOVED = "Profile image removed"


class ActivityEntry(BaseModel):
    """Single entry in the account's activity log."""

    action: str
    timestamp: datetime = Field(default_factory=utcnow)
    details: str = ""


class ActivityLog:
    """Oldest-first ring of the last ACTIVITY_LOG_CAPACITY account actions.

    Loading more entries than that keeps only the newest ones.
    """

    def __init__(self, entries: Iterable[ActivityEntry] = ()) -> None:
        self._entries: deque[ActivityEntry] = deque(
            entries, maxlen=ACTIVITY_LOG_CAPACITY
        )

    def recent(self, limit: Optional[int] = None) -> list[ActivityEntry]:
        """Newest-first view, optionally truncated to *limit* entries."""
        newest_first = list(reversed(self._entries))
        return newest_first if limit is None else newest_first[:limit]

    def to_list(self) -> list[ActivityEntry]:
        return list(self._entries)


class AccountDoc(MongoBaseModel):
    """Document model for the `accounts` collection."""

    first_name: str
    last_name: str
    email: str
    password_hash: str
    is_email_verified: bool = False
    email_verification_code: Optional[str] = None
    email_verification_code_expires: Optional[datetime] = None
    password_reset_token_hash: Optional[str] = None
    password_reset_expires: Optional[datetime] = None
    profile_image: Optional[str] = None
    last_login: Optional[datetime] = None
    login_count: int = Field(default=0, ge=0)
    activities: list[ActivityEntry] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("activities")
    @classmethod
    def _cap_activities(cls, value: list[ActivityEntry]) -> list[ActivityEntry]:
        return ActivityLog(value).to_list()

    @property
    def activity_log(self) -> ActivityLog:
        return ActivityLog(self.activities)
