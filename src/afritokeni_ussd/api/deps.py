"""FastAPI dependency injection providers.

These are used with Depends() in route handlers to inject database sessions,
the long-lived objects the lifespan parks on ``app.state``, and configuration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request

from afritokeni_ussd.config import Settings, get_settings
from afritokeni_ussd.infrastructure.database.engine import get_async_session

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from sqlalchemy.ext.asyncio import AsyncSession

    from afritokeni_ussd.infrastructure.session_store import SessionStore
    from afritokeni_ussd.ussd.router import UssdRouter


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session for a request."""
    async for session in get_async_session():
        yield session


def get_ussd_router(request: Request) -> UssdRouter:
    """Provide the USSD router built at startup."""
    return request.app.state.ussd_router


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_app_settings() -> Settings:
    """Provide the application settings."""
    return get_settings()
