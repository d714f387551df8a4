"""
Account repository — the credential store.

Every mutation is a single find_one_and_update against one document, so
concurrent requests for the same account always see a consistent record
(a code rotation can never interleave with a code consumption).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pymongo import ASCENDING, ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from errors import DuplicateEmailError
from schemas.models.account import (
    ACTION_ACCOUNT_CREATED,
    ACTION_EMAIL_VERIFIED,
    ACTION_LOGGED_IN,
    ACTIVITY_LOG_CAPACITY,
    AccountDoc,
    ActivityEntry,
)
from schemas.models.base import parse_object_id
from shared.crypto import hash_password, verify_password
from shared.datetime_utils import utcnow
from shared.logging import get_logger
from shared.validators import normalize_email

log = get_logger(__name__)

ACCOUNTS_COLLECTION = "accounts"

_VERIFICATION_FIELDS = {
    "email_verification_code": "",
    "email_verification_code_expires": "",
}
_RESET_FIELDS = {
    "password_reset_token_hash": "",
    "password_reset_expires": "",
}


def _push_activity(action: str, details: str = "") -> dict:
    """$push clause that appends one entry and keeps only the newest entries."""
    entry = ActivityEntry(action=action, details=details)
    return {
        "activities": {
            "$each": [entry.model_dump()],
            "$slice": -ACTIVITY_LOG_CAPACITY,
        }
    }


class AccountRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    @classmethod
    def from_db(cls, db: AsyncDatabase) -> "AccountRepository":
        return cls(db[ACCOUNTS_COLLECTION])

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("email", ASCENDING)], unique=True)
        await self._col.create_index(
            [("password_reset_token_hash", ASCENDING)], sparse=True
        )

    # ── Reads ────────────────────────────────────────────────────────────────

    async def find_by_email(self, email: str) -> Optional[AccountDoc]:
        doc = await self._col.find_one({"email": normalize_email(email)})
        return AccountDoc.from_mongo(doc)

    async def find_by_id(self, account_id: Any) -> Optional[AccountDoc]:
        oid = parse_object_id(account_id)
        if oid is None:
            return None
        doc = await self._col.find_one({"_id": oid})
        return AccountDoc.from_mongo(doc)

    async def find_by_reset_token_hash(self, token_hash: str) -> Optional[AccountDoc]:
        doc = await self._col.find_one({"password_reset_token_hash": token_hash})
        return AccountDoc.from_mongo(doc)

    @staticmethod
    def verify_password(account: AccountDoc, raw_password: str) -> bool:
        return verify_password(raw_password, account.password_hash)

    # ── Writes ───────────────────────────────────────────────────────────────

    async def create(
        self, first_name: str, last_name: str, email: str, raw_password: str
    ) -> AccountDoc:
        """Insert a new, unverified account.

        Raises:
            DuplicateEmailError: the email is already registered (including
                the race where two registrations pass the pre-check).
        """
        email = normalize_email(email)
        if await self._col.find_one({"email": email}, {"_id": 1}):
            raise DuplicateEmailError()

        now = utcnow()
        account = AccountDoc(
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=email,
            password_hash=hash_password(raw_password),
            activities=[
                ActivityEntry(
                    action=ACTION_ACCOUNT_CREATED,
                    details="User registered successfully",
                )
            ],
            created_at=now,
            updated_at=now,
        )
        try:
            result = await self._col.insert_one(account.to_mongo())
        except DuplicateKeyError:
            log.warning("account_create_failed", reason="race_condition_duplicate")
            raise DuplicateEmailError()
        return account.model_copy(update={"id": result.inserted_id})

    async def _update(self, filter_: dict, update: dict) -> Optional[AccountDoc]:
        update.setdefault("$set", {})["updated_at"] = utcnow()
        doc = await self._col.find_one_and_update(
            filter_, update, return_document=ReturnDocument.AFTER
        )
        return AccountDoc.from_mongo(doc)

    async def update_password_hash(
        self, account: AccountDoc, new_raw_password: str, action: Optional[str] = None
    ) -> Optional[AccountDoc]:
        """Re-hash and store the password, dropping any pending reset token."""
        update: dict = {
            "$set": {"password_hash": hash_password(new_raw_password)},
            "$unset": dict(_RESET_FIELDS),
        }
        if action:
            update["$push"] = _push_activity(action)
        return await self._update({"_id": account.id}, update)

    async def append_activity(
        self, account: AccountDoc, action: str, details: str = ""
    ) -> Optional[AccountDoc]:
        return await self._update(
            {"_id": account.id}, {"$push": _push_activity(action, details)}
        )

    async def set_verification_code(
        self, account: AccountDoc, code: str, expires_at: datetime
    ) -> Optional[AccountDoc]:
        """Overwrite the pending code; an older code stops matching immediately."""
        return await self._update(
            {"_id": account.id},
            {
                "$set": {
                    "email_verification_code": code,
                    "email_verification_code_expires": expires_at,
                }
            },
        )

    async def consume_verification_code(
        self, email: str, code: str, now: datetime
    ) -> Optional[AccountDoc]:
        """Mark verified iff *code* is the current, unexpired code for *email*.

        Match, verify and clear happen in one conditional update. Returns
        None when nothing matched.
        """
        return await self._update(
            {
                "email": normalize_email(email),
                "email_verification_code": code,
                "email_verification_code_expires": {"$gt": now},
            },
            {
                "$set": {"is_email_verified": True},
                "$unset": dict(_VERIFICATION_FIELDS),
                "$push": _push_activity(ACTION_EMAIL_VERIFIED),
            },
        )

    async def set_reset_token(
        self, account: AccountDoc, token_hash: str, expires_at: datetime
    ) -> Optional[AccountDoc]:
        return await self._update(
            {"_id": account.id},
            {
                "$set": {
                    "password_reset_token_hash": token_hash,
                    "password_reset_expires": expires_at,
                }
            },
        )

    async def take_reset_token(
        self, token_hash: str, now: datetime
    ) -> Optional[AccountDoc]:
        """Claim an unexpired reset token, clearing it in the same update.

        A token can therefore be claimed exactly once.
        """
        return await self._update(
            {
                "password_reset_token_hash": token_hash,
                "password_reset_expires": {"$gt": now},
            },
            {"$unset": dict(_RESET_FIELDS)},
        )

    async def clear_reset_token(self, account: AccountDoc) -> Optional[AccountDoc]:
        return await self._update(
            {"_id": account.id}, {"$unset": dict(_RESET_FIELDS)}
        )

    async def record_login(self, account: AccountDoc) -> Optional[AccountDoc]:
        """Stamp last_login, bump login_count and log the login in one update."""
        return await self._update(
            {"_id": account.id},
            {
                "$set": {"last_login": utcnow()},
                "$inc": {"login_count": 1},
                "$push": _push_activity(
                    ACTION_LOGGED_IN, f"Login #{account.login_count + 1}"
                ),
            },
        )

    async def update_profile(
        self,
        account: AccountDoc,
        changes: dict[str, Any],
        action: str,
        details: str = "",
        unset: Optional[dict[str, str]] = None,
    ) -> Optional[AccountDoc]:
        """Apply profile field changes and log *action* in one update.

        Raises:
            DuplicateEmailError: *changes* moves the account onto an email
                that another account already holds.
        """
        update: dict = {
            "$set": dict(changes),
            "$push": _push_activity(action, details),
        }
        if unset:
            update["$unset"] = dict(unset)
        try:
            return await self._update({"_id": account.id}, update)
        except DuplicateKeyError:
            raise DuplicateEmailError()

    async def set_profile_image(
        self, account: AccountDoc, image_url: Optional[str], action: str
    ) -> Optional[AccountDoc]:
        if image_url is None:
            update: dict = {"$unset": {"profile_image": ""}}
        else:
            update = {"$set": {"profile_image": image_url}}
        update["$push"] = _push_activity(action)
        return await self._update({"_id": account.id}, update)
