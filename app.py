"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.cache.rate_limiter import RateLimiter, build_storage
from infrastructure.cache.redis_client import create_redis_client
from infrastructure.email.messages import EmailMessageBuilder
from infrastructure.email.protocol import EmailProvider
from infrastructure.email.smtp import SmtpEmailProvider
from infrastructure.email.zeptomail import ZeptoMailProvider
from infrastructure.http_client import HttpClient
from infrastructure.storage.local_images import LocalImageStore
from repositories.account_repository import AccountRepository
from routes.auth_routes import router as auth_router
from routes.dashboard_routes import router as dashboard_router
from routes.health_routes import router as health_router
from services.session_service import SessionTokenService
from services.token_service import (
    RESET_TOKEN_TTL_SECONDS,
    VERIFICATION_CODE_TTL_SECONDS,
)
from shared.logging import get_logger, setup_logging
from shared.middleware import register_middleware

log = get_logger(__name__)


def build_email_provider(
    settings: AppSettings, http_client: HttpClient
) -> EmailProvider:
    """ZeptoMail when an API token is configured, SMTP otherwise."""
    builder = EmailMessageBuilder(
        settings.app_name,
        code_ttl_seconds=VERIFICATION_CODE_TTL_SECONDS,
        reset_ttl_seconds=RESET_TOKEN_TTL_SECONDS,
    )
    if settings.email.zepto_api_token:
        return ZeptoMailProvider(settings.email, http_client, builder)
    return SmtpEmailProvider(settings.email, builder)


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            profiles_sample_rate=settings.sentry.sentry_profile_sample_rate,
        )

    setup_logging(settings.logging.log_level, settings.logging.log_format)

    # Fail at startup, not on the first login, when JWT_SECRET is missing
    session_service = SessionTokenService(settings.jwt)
    image_store = LocalImageStore(settings.upload_dir, settings.max_upload_bytes)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(
            settings.db.mongodb_uri, tz_aware=True
        )
        app.state.mongo_client = mongo_client
        app.state.db = mongo_client[settings.db.db_name]
        app.state.settings = settings

        # Redis is optional; without it rate-limit counters stay in memory
        redis_client = None
        if settings.redis.redis_uri:
            redis_client = await create_redis_client(settings.redis.redis_uri)
        app.state.redis = redis_client
        app.state.rate_limiter = RateLimiter(
            build_storage(settings.redis.redis_uri if redis_client else None),
            enabled=settings.rate_limit_enabled,
        )

        http_client = HttpClient(timeout=10.0)
        app.state.http_client = http_client
        app.state.email_provider = build_email_provider(settings, http_client)
        app.state.image_store = image_store
        app.state.session_service = session_service

        await AccountRepository.from_db(app.state.db).ensure_indexes()
        log.info(
            "app_started",
            env=settings.env,
            db_name=settings.db.db_name,
            redis_enabled=redis_client is not None,
            rate_limit_enabled=settings.rate_limit_enabled,
        )

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        await http_client.aclose()
        await mongo_client.close()
        if redis_client is not None:
            await redis_client.aclose()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    # Credentialed CORS for the configured client origins only
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )
    register_middleware(app)

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(dashboard_router)
    app.mount(
        image_store.url_prefix,
        StaticFiles(directory=image_store.upload_dir),
        name="uploads",
    )

    return app
