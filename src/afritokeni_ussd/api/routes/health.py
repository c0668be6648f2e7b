"""Health check and development admin endpoints.

/health verifies the metadata store and, when the redis backend is in use,
redis. Used by Docker healthchecks, load balancers and monitoring.
"""

from __future__ import annotations

import time

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import text

from afritokeni_ussd.api.deps import get_app_settings, get_session_store
from afritokeni_ussd.config import Settings
from afritokeni_ussd.infrastructure.database.engine import _get_engine
from afritokeni_ussd.infrastructure.redis_client import get_redis, is_redis_initialized
from afritokeni_ussd.infrastructure.session_store import SessionStore
from afritokeni_ussd.logging_config import get_logger
from afritokeni_ussd.schemas.health import ClearSessionsResponse, HealthResponse
from afritokeni_ussd.utils.time import utcnow

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the health status of the application and its dependencies.",
)
async def health_check(
    request: Request,
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_app_settings),
) -> HealthResponse:
    db_status = "unknown"
    redis_status = "disabled"

    try:
        async with _get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        db_status = "healthy"
    except Exception as exc:
        db_status = f"unhealthy: {exc}"
        logger.error("health.db_check_failed", error=str(exc))

    if settings.session_backend == "redis" or is_redis_initialized():
        try:
            await get_redis().ping()
            redis_status = "healthy"
        except Exception as exc:
            redis_status = f"unhealthy: {exc}"
            logger.error("health.redis_check_failed", error=str(exc))

    redis_ok = not redis_status.startswith("unhealthy")
    overall = "ok" if db_status == "healthy" and redis_ok else "degraded"

    return HealthResponse(
        status=overall,
        timestamp=utcnow(),
        uptime_seconds=round(time.monotonic() - request.app.state.started_at, 3),
        active_sessions=await store.count(),
        database=db_status,
        redis=redis_status,
    )


@router.post(
    "/dev/sessions/clear",
    response_model=ClearSessionsResponse,
    summary="Drop every USSD session (development only)",
)
async def clear_sessions(
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_app_settings),
) -> ClearSessionsResponse:
    if not settings.is_development:
        raise HTTPException(status_code=403, detail="Only available in development")
    cleared = await store.clear()
    logger.info("dev.sessions_cleared", cleared=cleared)
    return ClearSessionsResponse(cleared=cleared)
