"""Unit tests for AppError hierarchy."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from errors import (
    AlreadyVerifiedError,
    AppError,
    AuthenticationError,
    ConflictError,
    DuplicateEmailError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    InvalidOrExpiredCodeError,
    InvalidOrExpiredResetTokenError,
    NotFoundError,
    PasswordMismatchError,
    RateLimitError,
    UnauthorizedError,
    ValidationError,
    WrongCurrentPasswordError,
    error_message,
    register_error_handlers,
)


class TestAppErrorSubclasses:
    def test_validation_error(self):
        e = ValidationError("bad input")
        assert e.status_code == 400
        assert e.error_code == "validation_error"
        assert e.message == "bad input"

    def test_authentication_error(self):
        e = AuthenticationError("not authenticated")
        assert e.status_code == 401
        assert e.error_code == "authentication_error"

    def test_not_found_error(self):
        e = NotFoundError("resource missing")
        assert e.status_code == 404
        assert e.error_code == "not_found"

    def test_conflict_error(self):
        e = ConflictError("already exists")
        assert e.status_code == 409
        assert e.error_code == "conflict"

    def test_rate_limit_error(self):
        e = RateLimitError("slow down")
        assert e.status_code == 429
        assert e.error_code == "rate_limit_exceeded"

    def test_base_defaults_to_server_error(self):
        e = AppError()
        assert e.status_code == 500
        assert e.message == "Server error"


@pytest.mark.parametrize(
    "error_cls, status_code",
    [
        (DuplicateEmailError, 400),
        (InvalidOrExpiredCodeError, 400),
        (InvalidOrExpiredResetTokenError, 400),
        (PasswordMismatchError, 400),
        (WrongCurrentPasswordError, 400),
        (AlreadyVerifiedError, 400),
        (InvalidCredentialsError, 401),
        (EmailNotVerifiedError, 401),
        (UnauthorizedError, 401),
    ],
)
def test_domain_errors_raise_bare(error_cls, status_code):
    e = error_cls()
    assert e.status_code == status_code
    assert e.message == error_cls.default_message
    assert e.message


class TestDomainErrorDefaults:
    def test_duplicate_email_points_at_email_field(self):
        assert DuplicateEmailError().field == "email"

    def test_password_mismatch_points_at_confirm_field(self):
        assert PasswordMismatchError().field == "passwordConfirm"

    def test_message_override_keeps_default_field(self):
        e = WrongCurrentPasswordError("nope")
        assert e.message == "nope"
        assert e.field == "currentPassword"

    def test_invalid_credentials_message_does_not_say_which_part(self):
        assert InvalidCredentialsError().message == "Invalid email or password"


class TestAppErrorToDict:
    def test_basic(self):
        e = NotFoundError("User not found.")
        assert e.to_dict() == {
            "error": "User not found.",
            "message": "User not found.",
            "code": "not_found",
        }

    @pytest.mark.parametrize(
        "kwargs, key, value",
        [
            ({"field": "email"}, "field", "email"),
            ({"details": {"min": 1, "max": 10}}, "details", {"min": 1, "max": 10}),
        ],
        ids=["with_field", "with_details"],
    )
    def test_optional_key_present(self, kwargs, key, value):
        e = ValidationError("invalid", **kwargs)
        assert e.to_dict()[key] == value

    def test_no_optional_keys_when_absent(self):
        d = NotFoundError("missing").to_dict()
        assert "field" not in d
        assert "details" not in d


class TestErrorMessage:
    def test_unwraps_value_error(self):
        error = {
            "type": "value_error",
            "msg": "Value error, Passwords do not match.",
            "ctx": {"error": ValueError("Passwords do not match.")},
        }
        assert error_message(error) == "Passwords do not match."

    def test_other_types_use_msg(self):
        error = {"type": "missing", "msg": "Field required"}
        assert error_message(error) == "Field required"

    def test_empty(self):
        assert error_message({}) == "Invalid request"


class TestAppErrorHandler:
    def _client(self, exc: Exception) -> TestClient:
        app = FastAPI()
        register_error_handlers(app)

        @app.get("/boom")
        async def boom():
            raise exc

        return TestClient(app, raise_server_exceptions=False)

    def test_headers_are_forwarded(self):
        exc = RateLimitError("slow down", headers={"Retry-After": "42"})
        resp = self._client(exc).get("/boom")
        assert resp.status_code == 429
        assert resp.headers["Retry-After"] == "42"
        assert resp.json()["error"] == "slow down"

    def test_no_headers_by_default(self):
        resp = self._client(NotFoundError("gone")).get("/boom")
        assert resp.status_code == 404
        assert "Retry-After" not in resp.headers
