"""
Integration tests for the auth, profile and dashboard endpoints.

The app is assembled the way create_app() does it, with a lifespan that
injects mongomock, a recording email provider and a temp upload directory.
"""

from contextlib import asynccontextmanager

import pytest
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from fastapi.testclient import TestClient
from limits.storage import MemoryStorage

from config import AppSettings
from errors import register_error_handlers
from infrastructure.cache.rate_limiter import RateLimiter
from repositories.account_repository import AccountRepository
from routes.auth_routes import router as auth_router
from routes.dashboard_routes import router as dashboard_router
from shared.middleware import SECURITY_HEADERS, register_middleware

PASSWORD = "Secret123"


def _build_test_app(mongo_db, email_provider, image_store, sessions, rate_limiter=None):
    if rate_limiter is None:
        rate_limiter = RateLimiter(MemoryStorage(), enabled=False)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.db = mongo_db
        app.state.redis = None
        app.state.rate_limiter = rate_limiter
        app.state.settings = AppSettings(client_url="http://localhost:3000")
        app.state.email_provider = email_provider
        app.state.image_store = image_store
        app.state.session_service = sessions
        await AccountRepository.from_db(mongo_db).ensure_indexes()
        yield

    app = FastAPI(lifespan=lifespan)
    register_middleware(app)
    register_error_handlers(app)
    app.include_router(auth_router)
    app.include_router(dashboard_router)
    app.mount(
        image_store.url_prefix,
        StaticFiles(directory=image_store.upload_dir),
        name="uploads",
    )
    return app


@pytest.fixture
def client(mongo_db, email_provider, image_store, sessions):
    app = _build_test_app(mongo_db, email_provider, image_store, sessions)
    with TestClient(app) as c:
        yield c


def _register(client, email="ada@example.com"):
    return client.post(
        "/api/auth/register",
        json={
            "firstName": "Ada",
            "lastName": "Lovelace",
            "email": email,
            "password": PASSWORD,
        },
    )


@pytest.fixture
def token(client, email_provider):
    """Register, verify and log in; returns the bearer token."""
    _register(client)
    client.post(
        "/api/auth/verify-email",
        json={"email": "ada@example.com", "code": email_provider.last_code},
    )
    resp = client.post(
        "/api/auth/login", json={"email": "ada@example.com", "password": PASSWORD}
    )
    return resp.json()["token"]


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


class TestRegistrationFlow:
    def test_register(self, client, email_provider):
        resp = _register(client)

        assert resp.status_code == 201
        body = resp.json()
        assert body["user"]["email"] == "ada@example.com"
        assert body["user"]["isEmailVerified"] is False
        assert "passwordHash" not in body["user"]
        assert len(email_provider.verification_emails) == 1

    def test_duplicate_email(self, client):
        _register(client)
        resp = _register(client, email="ADA@example.com")
        assert resp.status_code == 400
        assert resp.json()["code"] == "duplicate_email"

    def test_weak_password(self, client):
        resp = client.post(
            "/api/auth/register",
            json={
                "firstName": "Ada",
                "lastName": "Lovelace",
                "email": "ada@example.com",
                "password": "short",
            },
        )
        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == "validation_error"
        assert body["message"].startswith("Password must have: ")
        assert body["field"] == "password"

    def test_login_before_verification(self, client):
        _register(client)
        resp = client.post(
            "/api/auth/login", json={"email": "ada@example.com", "password": PASSWORD}
        )
        assert resp.status_code == 401
        assert resp.json()["code"] == "email_not_verified"

    def test_wrong_code(self, client, email_provider):
        _register(client)
        wrong = "100000" if email_provider.last_code != "100000" else "100001"
        resp = client.post(
            "/api/auth/verify-email", json={"email": "ada@example.com", "code": wrong}
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid or expired verification code."

    def test_resend_then_verify(self, client, email_provider):
        _register(client)
        first = email_provider.last_code
        resp = client.post(
            "/api/auth/resend-verification-code", json={"email": "ada@example.com"}
        )
        assert resp.status_code == 200
        assert len(email_provider.verification_emails) == 2

        resp = client.post(
            "/api/auth/verify-email",
            json={"email": "ada@example.com", "code": email_provider.last_code},
        )
        assert resp.status_code == 200
        if first != email_provider.last_code:
            resp = client.post(
                "/api/auth/verify-email",
                json={"email": "ada@example.com", "code": first},
            )
            assert resp.status_code == 400

    def test_resend_unknown_email(self, client):
        resp = client.post(
            "/api/auth/resend-verification-code", json={"email": "no@example.com"}
        )
        assert resp.status_code == 404

    def test_login_and_me(self, client, token):
        resp = client.get("/api/auth/me", headers=_bearer(token))
        assert resp.status_code == 200
        body = resp.json()
        assert body["isEmailVerified"] is True
        assert body["loginCount"] == 1


class TestBearerAuth:
    def test_missing_token(self, client):
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.json()["message"] == "Not authorized, no token"

    def test_garbage_token(self, client):
        resp = client.get("/api/auth/me", headers=_bearer("not-a-jwt"))
        assert resp.status_code == 401
        assert resp.json()["code"] == "unauthorized"

    def test_wrong_password_and_unknown_email_match(self, client, token):
        wrong = client.post(
            "/api/auth/login", json={"email": "ada@example.com", "password": "Nope1234"}
        )
        unknown = client.post(
            "/api/auth/login", json={"email": "no@example.com", "password": PASSWORD}
        )
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json()


class TestPasswords:
    def test_forgot_and_reset(self, client, token, email_provider):
        resp = client.post(
            "/api/auth/forgot-password", json={"email": "ada@example.com"}
        )
        unknown = client.post(
            "/api/auth/forgot-password", json={"email": "no@example.com"}
        )
        assert resp.status_code == unknown.status_code == 200
        assert resp.json() == unknown.json()

        reset_token = email_provider.last_reset_token
        resp = client.put(
            f"/api/auth/reset-password/{reset_token}",
            json={"password": "NewSecret1", "passwordConfirm": "NewSecret1"},
        )
        assert resp.status_code == 200

        again = client.put(
            f"/api/auth/reset-password/{reset_token}",
            json={"password": "NewSecret2", "passwordConfirm": "NewSecret2"},
        )
        assert again.status_code == 400

        resp = client.post(
            "/api/auth/login",
            json={"email": "ada@example.com", "password": "NewSecret1"},
        )
        assert resp.status_code == 200

    def test_change_password(self, client, token):
        wrong = client.put(
            "/api/auth/change-password",
            headers=_bearer(token),
            json={"currentPassword": "Nope1234", "newPassword": "NewSecret1"},
        )
        assert wrong.status_code == 400
        assert wrong.json()["field"] == "currentPassword"

        resp = client.put(
            "/api/auth/change-password",
            headers=_bearer(token),
            json={"currentPassword": PASSWORD, "newPassword": "NewSecret1"},
        )
        assert resp.status_code == 200

        login = client.post(
            "/api/auth/login",
            json={"email": "ada@example.com", "password": "NewSecret1"},
        )
        assert login.status_code == 200
        assert login.json()["token"]

        stale = client.post(
            "/api/auth/login", json={"email": "ada@example.com", "password": PASSWORD}
        )
        assert stale.status_code == 401
        assert stale.json()["code"] == "invalid_credentials"


class TestProfile:
    def test_update_profile_json(self, client, token):
        resp = client.put(
            "/api/auth/update-profile",
            headers=_bearer(token),
            json={"firstName": "Augusta"},
        )
        assert resp.status_code == 200
        assert resp.json()["user"]["firstName"] == "Augusta"

    def test_multipart_upload_and_delete(self, client, token, png_bytes):
        resp = client.patch(
            "/api/auth/profile",
            headers=_bearer(token),
            data={"lastName": "King"},
            files={"profileImage": ("me.png", png_bytes, "image/png")},
        )
        assert resp.status_code == 200
        user = resp.json()["user"]
        assert user["lastName"] == "King"
        assert user["profileImage"].startswith("/uploads/")

        served = client.get(user["profileImage"])
        assert served.status_code == 200
        assert served.content == png_bytes

        resp = client.delete("/api/auth/profile/image", headers=_bearer(token))
        assert resp.status_code == 200
        assert resp.json()["user"]["profileImage"] is None

        resp = client.delete("/api/auth/profile/image", headers=_bearer(token))
        assert resp.status_code == 404

    def test_multipart_rejects_non_image(self, client, token):
        resp = client.patch(
            "/api/auth/profile",
            headers=_bearer(token),
            files={"profileImage": ("doc.pdf", b"%PDF-1.4", "application/pdf")},
        )
        assert resp.status_code == 400
        assert resp.json()["field"] == "profileImage"


class TestDashboard:
    def test_dashboard(self, client, token):
        resp = client.get("/api/dashboard", headers=_bearer(token))
        assert resp.status_code == 200
        body = resp.json()
        assert body["stats"]["totalLogins"] == 1
        assert body["stats"]["profileCompleteness"] == 80
        actions = [item["action"] for item in body["recentActivity"]]
        assert actions[0] == "Logged in"
        assert actions[-1] == "Account created"

    def test_requires_token(self, client):
        assert client.get("/api/dashboard").status_code == 401


class TestMiddleware:
    def test_security_and_request_id_headers(self, client):
        resp = client.get("/api/auth/me")
        for name, value in SECURITY_HEADERS.items():
            assert resp.headers[name] == value
        assert resp.headers["X-Request-ID"].startswith("req_")


class TestRateLimiting:
    @pytest.fixture
    def limiter(self):
        return RateLimiter(MemoryStorage())

    @pytest.fixture
    def limited_client(self, mongo_db, email_provider, image_store, sessions, limiter):
        app = _build_test_app(
            mongo_db, email_provider, image_store, sessions, rate_limiter=limiter
        )
        with TestClient(app) as c:
            yield c

    def _login(self, client, password=PASSWORD):
        return client.post(
            "/api/auth/login", json={"email": "ada@example.com", "password": password}
        )

    def test_sixth_login_attempt_is_rejected(self, limited_client):
        for _ in range(5):
            assert self._login(limited_client, "Wrong123").status_code == 401

        resp = self._login(limited_client)
        assert resp.status_code == 429
        assert resp.json()["code"] == "rate_limit_exceeded"
        assert resp.json()["error"] == (
            "Too many authentication attempts, please try again later."
        )
        assert resp.headers["RateLimit-Limit"] == "5"
        assert resp.headers["RateLimit-Remaining"] == "0"
        assert 0 < int(resp.headers["Retry-After"]) <= 15 * 60

    def test_allowed_response_carries_headers(self, limited_client):
        resp = limited_client.post(
            "/api/auth/forgot-password", json={"email": "ada@example.com"}
        )
        assert resp.status_code == 200
        assert resp.headers["RateLimit-Limit"] == "3"
        assert resp.headers["RateLimit-Remaining"] == "2"
        assert int(resp.headers["RateLimit-Reset"]) <= 3600
        assert "Retry-After" not in resp.headers

    def test_general_limit_covers_dashboard(self, limited_client, email_provider):
        _register(limited_client)
        limited_client.post(
            "/api/auth/verify-email",
            json={"email": "ada@example.com", "code": email_provider.last_code},
        )
        token = self._login(limited_client).json()["token"]

        resp = limited_client.get("/api/dashboard", headers=_bearer(token))
        assert resp.status_code == 200
        assert resp.headers["RateLimit-Limit"] == "100"
        # register, verify, login and this request
        assert resp.headers["RateLimit-Remaining"] == "96"

    def test_general_limit_rejects_after_100(self, limited_client):
        for _ in range(100):
            assert limited_client.get("/api/auth/me").status_code == 401
        resp = limited_client.get("/api/auth/me")
        assert resp.status_code == 429
        assert resp.json()["error"] == (
            "Too many requests from this IP, please try again later."
        )

    def test_storage_failure_fails_open(self, limited_client, limiter, mocker):
        mocker.patch.object(
            limiter._strategy,
            "hit",
            side_effect=ConnectionError("redis down"),
        )
        resp = limited_client.post(
            "/api/auth/forgot-password", json={"email": "ada@example.com"}
        )
        assert resp.status_code == 200
        assert "RateLimit-Limit" not in resp.headers
