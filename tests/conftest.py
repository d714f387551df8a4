"""
Shared fixtures.

The repository talks to pymongo's async API; tests run it against
mongomock through a thin adapter that awaits mongomock's synchronous calls.
"""

import os
from typing import Optional

import mongomock
import pytest

from config import JWTSettings
from infrastructure.storage.local_images import LocalImageStore
from repositories.account_repository import AccountRepository
from services.session_service import SessionTokenService
from services.token_service import TokenService

# AppSettings requires MONGODB_URI; nothing connects to it in tests
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017/")

TEST_JWT_SECRET = "test-secret-key-that-is-long-enough-for-hs256"

# 1x1 transparent PNG
PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
    b"\x08\x06\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f"
    b"\x00\x00\x01\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)


class AsyncCollection:
    """Awaitable facade over a mongomock collection."""

    def __init__(self, collection) -> None:
        self.sync = collection

    def __getattr__(self, name):
        method = getattr(self.sync, name)

        async def call(*args, **kwargs):
            return method(*args, **kwargs)

        return call


class AsyncDatabase:
    def __init__(self, db) -> None:
        self.sync = db

    def __getitem__(self, name: str) -> AsyncCollection:
        return AsyncCollection(self.sync[name])


class FakeEmailProvider:
    """Records every email instead of sending it."""

    def __init__(self, succeed: bool = True) -> None:
        self.succeed = succeed
        self.verification_emails: list[tuple[str, Optional[str], str]] = []
        self.reset_emails: list[tuple[str, Optional[str], str]] = []

    async def send_verification_email(
        self, email: str, user_name: Optional[str], code: str
    ) -> bool:
        self.verification_emails.append((email, user_name, code))
        return self.succeed

    async def send_password_reset_email(
        self, email: str, user_name: Optional[str], reset_url: str
    ) -> bool:
        self.reset_emails.append((email, user_name, reset_url))
        return self.succeed

    @property
    def last_code(self) -> str:
        return self.verification_emails[-1][2]

    @property
    def last_reset_token(self) -> str:
        return self.reset_emails[-1][2].rsplit("/", 1)[-1]


@pytest.fixture
def mongo_db():
    return AsyncDatabase(mongomock.MongoClient(tz_aware=True)["auth-service-test"])


@pytest.fixture
async def repo(mongo_db):
    repository = AccountRepository.from_db(mongo_db)
    await repository.ensure_indexes()
    return repository


@pytest.fixture
def tokens(repo):
    return TokenService(repo)


@pytest.fixture
def jwt_settings():
    return JWTSettings(
        jwt_secret=TEST_JWT_SECRET,
        jwt_issuer="auth-service",
        jwt_audience="auth-service.api",
        session_token_ttl_seconds=3600,
    )


@pytest.fixture
def sessions(jwt_settings):
    return SessionTokenService(jwt_settings)


@pytest.fixture
def email_provider():
    return FakeEmailProvider()


@pytest.fixture
def image_store(tmp_path):
    return LocalImageStore(str(tmp_path / "uploads"), max_bytes=1024)


@pytest.fixture
def png_bytes():
    return PNG_BYTES


@pytest.fixture
def make_account(repo):
    """Factory for stored accounts, verified unless told otherwise."""

    async def _make(
        email="ada@example.com",
        password="Secret123",
        first_name="Ada",
        last_name="Lovelace",
        verified=True,
    ):
        account = await repo.create(first_name, last_name, email, password)
        if verified:
            account = await repo.update_profile(
                account, {"is_email_verified": True}, "Email verified"
            )
        return account

    return _make
