"""
Account lifecycle: registration, email verification, login and passwords.

    Unregistered ──register──▶ PendingVerification ──verify_email──▶ Verified
                                   │   ▲                               │
                                   └───┘ resend_verification_code      │
                                                                       ▼
                      forgot_password / reset_password overlay any state

Emails are sent only after the state change is persisted and are
best-effort: a delivery failure is logged and never undoes the change,
except for forgot-password, which drops the unusable reset token again.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from errors import (
    AlreadyVerifiedError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    NotFoundError,
    PasswordMismatchError,
    UnauthorizedError,
    WrongCurrentPasswordError,
)
from infrastructure.email.protocol import EmailProvider
from repositories.account_repository import AccountRepository
from schemas.models.account import (
    ACTION_PASSWORD_CHANGED,
    ACTION_PASSWORD_RESET,
    AccountDoc,
)
from services.session_service import SessionTokenService
from services.token_service import TokenService
from shared.logging import get_logger, log_with_context

log = get_logger(__name__)

FORGOT_PASSWORD_MESSAGE = (
    "If an account with that email exists, a password reset link has been sent."
)


@dataclass(frozen=True)
class LoginResult:
    token: str
    account: AccountDoc


class AuthService:
    def __init__(
        self,
        repository: AccountRepository,
        tokens: TokenService,
        sessions: SessionTokenService,
        email_provider: EmailProvider,
        reset_url_for: Callable[[str], str],
    ) -> None:
        self._repo = repository
        self._tokens = tokens
        self._sessions = sessions
        self._email = email_provider
        self._reset_url_for = reset_url_for

    async def _send_verification_code(self, account: AccountDoc) -> bool:
        code = await self._tokens.issue_email_verification_code(account)
        sent = await self._email.send_verification_email(
            account.email, account.first_name, code
        )
        if not sent:
            log.warning("verification_email_not_sent", account_id=str(account.id))
        return sent

    # ── Registration & verification ──────────────────────────────────────────

    async def register(
        self, first_name: str, last_name: str, email: str, password: str
    ) -> AccountDoc:
        """Create an unverified account and email it a verification code.

        Raises:
            DuplicateEmailError: the email is already registered.
        """
        account = await self._repo.create(first_name, last_name, email, password)
        log.info("account_registered", account_id=str(account.id))
        await self._send_verification_code(account)
        return account

    async def verify_email(self, email: str, code: str) -> AccountDoc:
        return await self._tokens.consume_email_verification_code(email, code)

    async def resend_verification_code(self, email: str) -> AccountDoc:
        """Rotate the verification code; the previous code stops working.

        Raises:
            NotFoundError: no account for *email*.
            AlreadyVerifiedError: nothing left to verify.
        """
        account = await self._repo.find_by_email(email)
        if account is None:
            raise NotFoundError("User not found.")
        if account.is_email_verified:
            raise AlreadyVerifiedError()
        await self._send_verification_code(account)
        return account

    # ── Login ────────────────────────────────────────────────────────────────

    async def login(self, email: str, password: str) -> LoginResult:
        """Check credentials and issue a session token.

        Unknown email and wrong password fail identically. The unverified
        check runs only after the password matched, so it reveals nothing
        to someone without the password.
        """
        account = await self._repo.find_by_email(email)
        if account is None or not self._repo.verify_password(account, password):
            log.info("login_failed", reason="invalid_credentials")
            raise InvalidCredentialsError()
        if not account.is_email_verified:
            log.info("login_failed", reason="email_not_verified")
            raise EmailNotVerifiedError()

        updated = await self._repo.record_login(account) or account
        token = self._sessions.issue(str(updated.id))
        log.info(
            "login_success",
            account_id=str(updated.id),
            login_count=updated.login_count,
        )
        return LoginResult(token=token, account=updated)

    async def current_account(self, token: str) -> AccountDoc:
        """Resolve a bearer token to its account.

        Raises:
            UnauthorizedError: invalid token, or the account no longer exists.
        """
        account_id = self._sessions.verify(token)
        account = await self._repo.find_by_id(account_id)
        if account is None:
            raise UnauthorizedError("Not authorized, user not found")
        return account

    # ── Passwords ────────────────────────────────────────────────────────────

    async def forgot_password(self, email: str) -> str:
        """Email a reset link if *email* is registered.

        Always returns the same generic message so the endpoint cannot be
        used to probe which emails exist.
        """
        account = await self._repo.find_by_email(email)
        if account is None:
            log.info("password_reset_requested", account_found=False)
            return FORGOT_PASSWORD_MESSAGE

        ctx = log_with_context(log, account_id=str(account.id))
        raw_token = await self._tokens.issue_password_reset_token(account)
        sent = await self._email.send_password_reset_email(
            account.email, account.first_name, self._reset_url_for(raw_token)
        )
        if not sent:
            ctx.warning("password_reset_email_not_sent")
            await self._tokens.revoke_password_reset_token(account)
        else:
            ctx.info("password_reset_requested", account_found=True)
        return FORGOT_PASSWORD_MESSAGE

    async def reset_password(
        self, raw_token: str, password: str, password_confirm: str
    ) -> AccountDoc:
        """Set a new password using an emailed reset token.

        A confirmation typo is rejected before the token is touched, so the
        link stays usable. Past that point the token is spent.

        Raises:
            PasswordMismatchError: *password* and *password_confirm* differ.
            InvalidOrExpiredResetTokenError: unknown, used or expired token.
        """
        if password != password_confirm:
            raise PasswordMismatchError()

        account = await self._tokens.consume_password_reset_token(raw_token)
        updated = await self._repo.update_password_hash(
            account, password, action=ACTION_PASSWORD_RESET
        )
        log.info("password_reset_completed", account_id=str(account.id))
        return updated or account

    async def change_password(
        self, account: AccountDoc, current_password: str, new_password: str
    ) -> AccountDoc:
        """
        Raises:
            WrongCurrentPasswordError: *current_password* does not match.
        """
        if not self._repo.verify_password(account, current_password):
            log.info("password_change_failed", account_id=str(account.id))
            raise WrongCurrentPasswordError()

        updated = await self._repo.update_password_hash(
            account, new_password, action=ACTION_PASSWORD_CHANGED
        )
        log.info("password_changed", account_id=str(account.id))
        return updated or account
