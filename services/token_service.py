"""
Email verification codes and password reset tokens.

Verification codes are typed by the user, so they are short (6 digits) and
short-lived (60 seconds). Reset tokens travel inside a URL, so they are long
(256 bits) and live for 10 minutes. Only the SHA-256 of a reset token is
stored.

Every consume failure raises the same error regardless of which check
failed (unknown email, wrong code, expired code), so the response cannot be
used as an oracle.
"""

from __future__ import annotations

from typing import Optional

from errors import InvalidOrExpiredCodeError, InvalidOrExpiredResetTokenError
from repositories.account_repository import AccountRepository
from schemas.models.account import AccountDoc
from shared.crypto import hash_token
from shared.datetime_utils import expires_in, utcnow
from shared.generators import generate_reset_token, generate_verification_code
from shared.logging import get_logger

log = get_logger(__name__)

VERIFICATION_CODE_TTL_SECONDS = 60
RESET_TOKEN_TTL_SECONDS = 600


class TokenService:
    def __init__(
        self,
        repository: AccountRepository,
        code_ttl_seconds: int = VERIFICATION_CODE_TTL_SECONDS,
        reset_ttl_seconds: int = RESET_TOKEN_TTL_SECONDS,
    ) -> None:
        self._repo = repository
        self.code_ttl_seconds = code_ttl_seconds
        self.reset_ttl_seconds = reset_ttl_seconds

    async def issue_email_verification_code(self, account: AccountDoc) -> str:
        """Generate, store and return a fresh code, replacing any older one."""
        code = generate_verification_code()
        await self._repo.set_verification_code(
            account, code, expires_in(self.code_ttl_seconds)
        )
        log.info(
            "verification_code_issued",
            account_id=str(account.id),
            ttl_seconds=self.code_ttl_seconds,
        )
        return code

    async def consume_email_verification_code(
        self, email: str, submitted_code: str
    ) -> AccountDoc:
        """Verify the account behind *email* if *submitted_code* is current.

        Raises:
            InvalidOrExpiredCodeError: for every kind of mismatch.
        """
        submitted_code = (submitted_code or "").strip()
        if not submitted_code:
            raise InvalidOrExpiredCodeError()

        account = await self._repo.consume_verification_code(
            email, submitted_code, utcnow()
        )
        if account is None:
            log.warning("email_verification_failed", reason="invalid_or_expired")
            raise InvalidOrExpiredCodeError()

        log.info("email_verified", account_id=str(account.id))
        return account

    async def issue_password_reset_token(self, account: AccountDoc) -> str:
        """Store the hash of a new reset token and return the raw token.

        The raw token is handed to the caller for the emailed link and is
        never stored or logged.
        """
        raw_token = generate_reset_token()
        await self._repo.set_reset_token(
            account, hash_token(raw_token), expires_in(self.reset_ttl_seconds)
        )
        log.info(
            "password_reset_token_issued",
            account_id=str(account.id),
            ttl_seconds=self.reset_ttl_seconds,
        )
        return raw_token

    async def consume_password_reset_token(self, raw_token: str) -> AccountDoc:
        """Claim the account whose unexpired reset token matches *raw_token*.

        The reset fields are cleared as part of the claim, so the token is
        dead after this call whatever the caller does next.

        Raises:
            InvalidOrExpiredResetTokenError: unknown, used or expired token.
        """
        if not raw_token:
            raise InvalidOrExpiredResetTokenError()

        token_hash = hash_token(raw_token)
        account = await self._repo.take_reset_token(token_hash, utcnow())
        if account is None:
            # distinguished in logs only; callers always see the same error
            stale = await self._repo.find_by_reset_token_hash(token_hash)
            log.warning(
                "password_reset_token_rejected",
                reason="expired" if stale is not None else "unknown",
            )
            raise InvalidOrExpiredResetTokenError()
        return account

    async def revoke_password_reset_token(
        self, account: AccountDoc
    ) -> Optional[AccountDoc]:
        """Drop a pending reset token, e.g. when its email could not be sent."""
        log.info("password_reset_token_revoked", account_id=str(account.id))
        return await self._repo.clear_reset_token(account)
