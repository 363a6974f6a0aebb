"""
Health check endpoint.

GET /health — pings MongoDB and, when configured, Redis.

MongoDB down → "unhealthy" (503); accounts cannot be read or written.
Redis down or absent → "degraded" (200); only the password-reset rate
limit is lost.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from shared.logging import get_logger

log = get_logger(__name__)

router = APIRouter(tags=["health"])


async def _ping_mongo(request: Request) -> str:
    try:
        await request.app.state.db.client.admin.command("ping")
        return "ok"
    except Exception as e:
        log.error("health_check_failed", component="mongodb", error=str(e))
        return "error"


async def _ping_redis(request: Request) -> str:
    redis = getattr(request.app.state, "redis", None)
    if redis is None:
        return "not_configured"
    try:
        await redis.ping()
        return "ok"
    except Exception as e:
        log.warning("health_check_failed", component="redis", error=str(e))
        return "error"


@router.get("/health")
async def health_check(request: Request) -> JSONResponse:
    checks = {
        "mongodb": await _ping_mongo(request),
        "redis": await _ping_redis(request),
    }
    if checks["mongodb"] != "ok":
        overall = "unhealthy"
    elif checks["redis"] != "ok":
        overall = "degraded"
    else:
        overall = "healthy"

    return JSONResponse(
        status_code=503 if overall == "unhealthy" else 200,
        content={"status": overall, "checks": checks},
    )
