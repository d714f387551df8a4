"""
Profile editing: names, email and the avatar image.

Moving to a new email address drops the account back to unverified and
sends a fresh code to the new address. A newly stored image replaces the
old file only after the account update succeeded, so a rejected update
never leaves the account pointing at a deleted file.
"""

from __future__ import annotations

from typing import Any, Optional

from errors import DuplicateEmailError, NotFoundError
from infrastructure.email.protocol import EmailProvider
from infrastructure.storage.protocol import ImageStore
from repositories.account_repository import AccountRepository
from schemas.models.account import (
    ACTION_PROFILE_IMAGE_REMOVED,
    ACTION_PROFILE_IMAGE_UPDATED,
    ACTION_PROFILE_UPDATED,
    AccountDoc,
)
from services.token_service import TokenService
from shared.logging import get_logger

log = get_logger(__name__)

# snake_case model field -> camelCase name used in activity details
_EDITABLE_FIELDS = {
    "first_name": "firstName",
    "last_name": "lastName",
    "email": "email",
}


class ProfileService:
    def __init__(
        self,
        repository: AccountRepository,
        tokens: TokenService,
        email_provider: EmailProvider,
        image_store: ImageStore,
    ) -> None:
        self._repo = repository
        self._tokens = tokens
        self._email = email_provider
        self._images = image_store

    def _diff(self, account: AccountDoc, changes: dict[str, Any]) -> dict[str, Any]:
        current = account.model_dump()
        return {
            field: value
            for field, value in changes.items()
            if field in _EDITABLE_FIELDS
            and value is not None
            and value != current.get(field)
        }

    async def update_profile(
        self,
        account: AccountDoc,
        changes: dict[str, Any],
        image: Optional[tuple[bytes, str]] = None,
    ) -> AccountDoc:
        """Apply name/email *changes* and optionally a new avatar.

        *image* is ``(data, content_type)``. Unchanged values are ignored;
        a request that changes nothing returns the account as-is.

        Raises:
            DuplicateEmailError: the new email belongs to another account.
            ValidationError: the image is empty, too large or not an image.
            NotFoundError: the account disappeared mid-request.
        """
        diff = self._diff(account, changes)
        email_changed = "email" in diff
        if email_changed:
            holder = await self._repo.find_by_email(diff["email"])
            if holder is not None and holder.id != account.id:
                raise DuplicateEmailError()
            diff["is_email_verified"] = False

        new_image_url = None
        if image is not None:
            data, content_type = image
            new_image_url = await self._images.save(data, content_type)
            diff["profile_image"] = new_image_url

        if not diff:
            return account

        edited = [_EDITABLE_FIELDS[f] for f in diff if f in _EDITABLE_FIELDS]
        if edited:
            action = ACTION_PROFILE_UPDATED
            details = "Updated " + ", ".join(edited)
        else:
            action = ACTION_PROFILE_IMAGE_UPDATED
            details = ""

        try:
            updated = await self._repo.update_profile(account, diff, action, details)
        except DuplicateEmailError:
            if new_image_url:
                await self._images.delete(new_image_url)
            raise
        if updated is None:
            if new_image_url:
                await self._images.delete(new_image_url)
            raise NotFoundError("User not found.")

        if new_image_url and account.profile_image:
            await self._images.delete(account.profile_image)

        log.info(
            "profile_updated",
            account_id=str(account.id),
            fields=edited,
            image_changed=new_image_url is not None,
        )

        if email_changed:
            code = await self._tokens.issue_email_verification_code(updated)
            if not await self._email.send_verification_email(
                updated.email, updated.first_name, code
            ):
                log.warning("verification_email_not_sent", account_id=str(updated.id))
            # re-read so the response reflects the pending code state
            updated = await self._repo.find_by_id(updated.id) or updated
        return updated

    async def update_profile_image(
        self, account: AccountDoc, data: bytes, content_type: str
    ) -> AccountDoc:
        return await self.update_profile(account, {}, image=(data, content_type))

    async def delete_profile_image(self, account: AccountDoc) -> AccountDoc:
        """
        Raises:
            NotFoundError: the account has no image to delete.
        """
        if not account.profile_image:
            raise NotFoundError("No profile image to delete.")

        updated = await self._repo.set_profile_image(
            account, None, ACTION_PROFILE_IMAGE_REMOVED
        )
        await self._images.delete(account.profile_image)
        log.info("profile_image_removed", account_id=str(account.id))
        return updated or account
