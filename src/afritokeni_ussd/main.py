"""FastAPI application entry point for the AfriTokeni USSD service.

Lifecycle:
    1. Startup: logging, database (tables in dev mode), redis when a redis
       backend is configured, collaborators, session store, USSD router and
       the background sweeper.
    2. Running: serve the gateway callback at /api/ussd and the agent API at
       /api/v1/*.
    3. Shutdown: stop the sweeper, close HTTP clients, database and redis.

Run with:
    uv run uvicorn afritokeni_ussd.main:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from afritokeni_ussd.config import Settings, get_settings
from afritokeni_ussd.logging_config import get_logger, setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    import redis.asyncio as aioredis

    from afritokeni_ussd.infrastructure.session_store import SessionStore
    from afritokeni_ussd.ussd.context import Collaborators

logger = get_logger(__name__)


def build_collaborators(settings: Settings, redis: aioredis.Redis | None = None) -> Collaborators:
    """Pick the SMS, ledger, rate and code backends named in settings."""
    from afritokeni_ussd.infrastructure.code_store import InMemoryCodeStore, RedisCodeStore
    from afritokeni_ussd.infrastructure.ledger import HttpLedgerClient, SimulatedLedger
    from afritokeni_ussd.infrastructure.rates import StaticRateProvider
    from afritokeni_ussd.infrastructure.sms import AfricasTalkingSmsSender, LoggingSmsSender
    from afritokeni_ussd.ussd.context import Collaborators

    if settings.sms_backend == "africastalking":
        sms = AfricasTalkingSmsSender.from_settings(settings)
    else:
        sms = LoggingSmsSender()

    if settings.ledger_backend == "http":
        ledger = HttpLedgerClient.from_settings(settings)
    else:
        ledger = SimulatedLedger()

    if redis is not None:
        codes = RedisCodeStore(
            redis,
            ttl_seconds=settings.verification_code_ttl_seconds,
            max_attempts=settings.verification_max_attempts,
        )
    else:
        codes = InMemoryCodeStore(
            ttl_seconds=settings.verification_code_ttl_seconds,
            max_attempts=settings.verification_max_attempts,
        )

    return Collaborators(
        sms=sms,
        ledger=ledger,
        rates=StaticRateProvider.from_settings(settings),
        codes=codes,
    )


def build_session_store(settings: Settings, redis: aioredis.Redis | None = None) -> SessionStore:
    from afritokeni_ussd.infrastructure.session_store import (
        InMemorySessionStore,
        RedisSessionStore,
    )

    if redis is not None:
        return RedisSessionStore(redis, timeout_seconds=settings.session_timeout_seconds)
    return InMemorySessionStore(timeout_seconds=settings.session_timeout_seconds)


async def _close_collaborators(collaborators: Collaborators) -> None:
    for client in (collaborators.sms, collaborators.ledger):
        aclose = getattr(client, "aclose", None)
        if aclose is not None:
            await aclose()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    settings = get_settings()

    # 1. Setup structured logging
    setup_logging(
        log_level=settings.app_log_level,
        json_logs=not settings.is_development,
    )
    logger.info(
        "app.starting",
        env=settings.app_env,
        debug=settings.app_debug,
        session_backend=settings.session_backend,
        sms_backend=settings.sms_backend,
        ledger_backend=settings.ledger_backend,
    )

    # 2. Initialize database
    from afritokeni_ussd.infrastructure.database.engine import close_db, init_db, session_scope

    await init_db()

    # 3. Initialize Redis (only the redis session backend needs it)
    from afritokeni_ussd.infrastructure.redis_client import close_redis, init_redis

    redis = None
    if settings.session_backend == "redis":
        try:
            redis = await init_redis(settings.redis_url)
        except Exception as exc:
            logger.warning("app.redis_unavailable", error=str(exc), fallback="memory")

    # 4. Collaborators, sessions, router, sweeper
    from afritokeni_ussd.sweeper import Sweeper
    from afritokeni_ussd.ussd.router import UssdRouter

    collaborators = build_collaborators(settings, redis)
    store = build_session_store(settings, redis)
    sweeper = Sweeper(
        store,
        collaborators.codes,
        session_scope,
        interval_seconds=settings.session_sweep_interval_seconds,
        escrow_timeout_hours=settings.escrow_timeout_hours,
    )

    app.state.started_at = time.monotonic()
    app.state.collaborators = collaborators
    app.state.session_store = store
    app.state.ussd_router = UssdRouter(store, collaborators, settings, session_scope)
    app.state.sweeper = sweeper
    sweeper.start()

    logger.info("app.started", host=settings.app_host, port=settings.app_port)

    yield

    # Shutdown
    logger.info("app.shutting_down")
    await sweeper.stop()
    await _close_collaborators(collaborators)
    await close_db()
    await close_redis()
    logger.info("app.stopped")


def create_app() -> FastAPI:
    """Application factory: creates and configures the FastAPI app."""
    settings = get_settings()

    app = FastAPI(
        title="AfriTokeni USSD",
        description=(
            "USSD banking for feature phones: local currency wallets, "
            "ckBTC/ckUSDC and agent cash exchanges."
        ),
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.app_debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # --- Middleware ---
    from afritokeni_ussd.api.middleware import setup_middleware

    setup_middleware(app, settings.cors_allow_origins)

    # --- Routes ---
    from afritokeni_ussd.api.routes.agents import router as agents_router
    from afritokeni_ussd.api.routes.escrow import router as escrow_router
    from afritokeni_ussd.api.routes.health import router as health_router
    from afritokeni_ussd.api.routes.ussd import router as ussd_router

    app.include_router(health_router)
    app.include_router(ussd_router)
    app.include_router(escrow_router)
    app.include_router(agents_router)

    return app


# The app instance used by Uvicorn
app = create_app()
