"""Fixtures for exercising the FastAPI app in-process.

ASGITransport does not run the lifespan, so the objects it would park on
``app.state`` are set here and the database dependency is pointed at the
per-test SQLite file.
"""

from __future__ import annotations

import time

import httpx
import pytest
import pytest_asyncio

from afritokeni_ussd.api import deps
from afritokeni_ussd.api.routes import health
from afritokeni_ussd.main import create_app


@pytest.fixture
def app(settings, session_factory, engine, store, ussd_router, monkeypatch):
    app = create_app()
    app.state.started_at = time.monotonic()
    app.state.session_store = store
    app.state.ussd_router = ussd_router

    async def db_session_override():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[deps.get_db_session] = db_session_override
    app.dependency_overrides[deps.get_app_settings] = lambda: settings
    monkeypatch.setattr(health, "_get_engine", lambda: engine)
    return app


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest_asyncio.fixture
async def agent_ids(client) -> list[str]:
    """Two registered agents, by id."""
    ids = []
    for n, city in ((1, "Kampala"), (2, "Entebbe")):
        response = await client.post(
            "/api/v1/agents",
            json={
                "business_name": f"{city} Agent",
                "phone_number": f"+25677000010{n}",
                "city": city,
                "principal_id": f"agent-principal-{n}",
            },
        )
        assert response.status_code == 201, response.text
        ids.append(response.json()["id"])
    return ids
