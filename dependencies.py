"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Long-lived objects (database, rate limiter, email
provider, image store, session token service) are created once in the app
lifespan and stored on app.state; repositories and services are cheap
wrappers built per request around them.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config import AppSettings
from errors import RateLimitError, UnauthorizedError
from infrastructure.cache.rate_limiter import RateLimit, RateLimiter
from infrastructure.email.protocol import EmailProvider
from infrastructure.storage.protocol import ImageStore
from repositories.account_repository import AccountRepository
from schemas.models.account import AccountDoc
from services.auth_service import AuthService
from services.dashboard_service import DashboardService
from services.profile_service import ProfileService
from services.session_service import SessionTokenService
from services.token_service import TokenService
from shared.ip_utils import get_client_ip
from shared.logging import get_logger

log = get_logger(__name__)

_bearer = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


async def get_db(request: Request):
    """Return the async MongoDB database from app.state."""
    return request.app.state.db


def get_email_provider(request: Request) -> EmailProvider:
    return request.app.state.email_provider


def get_image_store(request: Request) -> ImageStore:
    return request.app.state.image_store


def get_session_service(request: Request) -> SessionTokenService:
    return request.app.state.session_service


# ── Repositories & services ───────────────────────────────────────────────────


async def get_account_repository(db=Depends(get_db)) -> AccountRepository:
    return AccountRepository.from_db(db)


async def get_token_service(
    repo: AccountRepository = Depends(get_account_repository),
) -> TokenService:
    return TokenService(repo)


async def get_auth_service(
    repo: AccountRepository = Depends(get_account_repository),
    tokens: TokenService = Depends(get_token_service),
    sessions: SessionTokenService = Depends(get_session_service),
    email_provider: EmailProvider = Depends(get_email_provider),
    settings: AppSettings = Depends(get_settings),
) -> AuthService:
    return AuthService(
        repo, tokens, sessions, email_provider, settings.reset_password_url
    )


async def get_profile_service(
    repo: AccountRepository = Depends(get_account_repository),
    tokens: TokenService = Depends(get_token_service),
    email_provider: EmailProvider = Depends(get_email_provider),
    image_store: ImageStore = Depends(get_image_store),
) -> ProfileService:
    return ProfileService(repo, tokens, email_provider, image_store)


def get_dashboard_service() -> DashboardService:
    return DashboardService()


# ── Auth ──────────────────────────────────────────────────────────────────────


async def get_current_account(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    auth: AuthService = Depends(get_auth_service),
) -> AccountDoc:
    """Resolve ``Authorization: Bearer <token>`` to the current account.

    Raises:
        UnauthorizedError: missing, invalid or expired token, or the account
            no longer exists.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Not authorized, no token")
    return await auth.current_account(credentials.credentials)


# ── Rate limiting ─────────────────────────────────────────────────────────────


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def rate_limited(rule: RateLimit):
    """Build a dependency that counts the request against *rule* per client IP.

    Sets the ``RateLimit-*`` headers on the response; a rejected request gets
    a 429 carrying the same headers plus ``Retry-After``.

    Example:
        @router.post("/login", dependencies=[Depends(rate_limited(AUTH_LIMIT))])
    """

    async def _check(
        request: Request,
        response: Response,
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> None:
        client_ip = get_client_ip(request) or "unknown"
        result = await limiter.hit(rule, client_ip)
        if result is None:
            return
        if not result.allowed:
            log.warning("rate_limit_exceeded", scope=rule.scope)
            raise RateLimitError(rule.message, headers=result.headers())
        response.headers.update(result.headers())

    return _check
