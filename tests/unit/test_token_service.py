"""Unit tests for TokenService (verification codes and reset tokens)."""

import re
from datetime import timedelta

import pytest

from errors import InvalidOrExpiredCodeError, InvalidOrExpiredResetTokenError
from services.token_service import (
    RESET_TOKEN_TTL_SECONDS,
    VERIFICATION_CODE_TTL_SECONDS,
    TokenService,
)
from shared.crypto import hash_token
from shared.datetime_utils import utcnow


def test_default_ttls():
    assert VERIFICATION_CODE_TTL_SECONDS == 60
    assert RESET_TOKEN_TTL_SECONDS == 600


class TestVerificationCodes:
    async def test_issue_stores_code_with_expiry(self, repo, tokens, make_account):
        account = await make_account(verified=False)
        before = utcnow()

        code = await tokens.issue_email_verification_code(account)

        stored = await repo.find_by_id(account.id)
        assert re.fullmatch(r"\d{6}", code)
        assert stored.email_verification_code == code
        expires = stored.email_verification_code_expires
        assert before + timedelta(seconds=59) <= expires
        assert expires <= utcnow() + timedelta(seconds=60)

    async def test_consume_verifies_once(self, tokens, make_account):
        account = await make_account(verified=False)
        code = await tokens.issue_email_verification_code(account)

        verified = await tokens.consume_email_verification_code(account.email, code)
        assert verified.is_email_verified is True
        assert verified.email_verification_code is None

        with pytest.raises(InvalidOrExpiredCodeError):
            await tokens.consume_email_verification_code(account.email, code)

    async def test_rotation_invalidates_previous_code(self, tokens, make_account):
        account = await make_account(verified=False)
        old = await tokens.issue_email_verification_code(account)
        new = await tokens.issue_email_verification_code(account)
        if old == new:
            pytest.skip("random codes collided")

        with pytest.raises(InvalidOrExpiredCodeError):
            await tokens.consume_email_verification_code(account.email, old)
        assert await tokens.consume_email_verification_code(account.email, new)

    async def test_expired_code_rejected(self, repo, make_account):
        account = await make_account(verified=False)
        expired_tokens = TokenService(repo, code_ttl_seconds=-1)
        code = await expired_tokens.issue_email_verification_code(account)

        with pytest.raises(InvalidOrExpiredCodeError):
            await expired_tokens.consume_email_verification_code(account.email, code)

    @pytest.mark.parametrize(
        "email, code",
        [("nobody@example.com", "123456"), ("ada@example.com", ""), ("", "")],
        ids=["unknown_email", "empty_code", "empty_both"],
    )
    async def test_every_failure_is_the_same_error(
        self, tokens, make_account, email, code
    ):
        await make_account(verified=False)
        with pytest.raises(InvalidOrExpiredCodeError) as exc:
            await tokens.consume_email_verification_code(email, code)
        assert exc.value.message == "Invalid or expired verification code."

    async def test_code_is_trimmed(self, tokens, make_account):
        account = await make_account(verified=False)
        code = await tokens.issue_email_verification_code(account)
        assert await tokens.consume_email_verification_code(account.email, f" {code} ")


class TestResetTokens:
    async def test_only_hash_is_stored(self, repo, tokens, make_account):
        account = await make_account()
        raw = await tokens.issue_password_reset_token(account)

        stored = repo._col.sync.find_one({"_id": account.id})
        assert len(raw) == 64
        assert raw not in str(stored)
        assert stored["password_reset_token_hash"] == hash_token(raw)

    async def test_consume_is_single_use(self, tokens, make_account):
        account = await make_account()
        raw = await tokens.issue_password_reset_token(account)

        claimed = await tokens.consume_password_reset_token(raw)
        assert claimed.id == account.id
        with pytest.raises(InvalidOrExpiredResetTokenError):
            await tokens.consume_password_reset_token(raw)

    async def test_expired_token_rejected(self, repo, make_account):
        account = await make_account()
        expired_tokens = TokenService(repo, reset_ttl_seconds=-1)
        raw = await expired_tokens.issue_password_reset_token(account)
        with pytest.raises(InvalidOrExpiredResetTokenError):
            await expired_tokens.consume_password_reset_token(raw)

    @pytest.mark.parametrize("raw", ["", "f" * 64], ids=["empty", "unknown"])
    async def test_bad_token_rejected(self, tokens, raw):
        with pytest.raises(InvalidOrExpiredResetTokenError):
            await tokens.consume_password_reset_token(raw)

    async def test_revoke(self, tokens, make_account):
        account = await make_account()
        raw = await tokens.issue_password_reset_token(account)
        await tokens.revoke_password_reset_token(account)
        with pytest.raises(InvalidOrExpiredResetTokenError):
            await tokens.consume_password_reset_token(raw)
