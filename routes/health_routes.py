"""
Health check endpoint.

GET /health — checks MongoDB, Redis and the upload directory.
Rules:
- MongoDB failure → "unhealthy" (503); no request can be served without it.
- Redis failure → "degraded" (200); rate-limit counters are no longer shared.
- Redis not configured → still "healthy"; counters live in process memory.
- Upload directory not writable → "degraded" (200); only avatars break.
"""

from __future__ import annotations

import os

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from shared.logging import get_logger

log = get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request) -> JSONResponse:
    checks: dict[str, str] = {}
    overall = "healthy"

    try:
        db = request.app.state.db
        await db.client.admin.command("ping")
        checks["mongodb"] = "ok"
    except Exception as e:
        log.error("health_check_failed", component="mongodb", error=str(e))
        checks["mongodb"] = "error"
        overall = "unhealthy"

    redis = request.app.state.redis
    if redis is None:
        checks["redis"] = "not_configured"
    else:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except Exception as e:
            log.warning("health_check_failed", component="redis", error=str(e))
            checks["redis"] = "error"
            if overall == "healthy":
                overall = "degraded"

    upload_dir = getattr(request.app.state.image_store, "upload_dir", None)
    if upload_dir is None:
        checks["uploads"] = "not_configured"
    elif os.access(upload_dir, os.W_OK):
        checks["uploads"] = "ok"
    else:
        checks["uploads"] = "error"
        if overall == "healthy":
            overall = "degraded"

    status_code = 503 if overall == "unhealthy" else 200
    return JSONResponse(
        status_code=status_code,
        content={"status": overall, "checks": checks},
    )
