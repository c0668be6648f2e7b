"""Tests for the gateway callback and the health/admin routes."""

from __future__ import annotations

import pytest

from afritokeni_ussd.api.deps import get_app_settings


def turn(text: str, session_id: str = "ATUid_api_1") -> dict:
    return {
        "sessionId": session_id,
        "phoneNumber": "+256700123456",
        "serviceCode": "*384*22948#",
        "text": text,
    }


class TestUssdCallback:
    @pytest.mark.asyncio
    async def test_first_turn_is_plain_text_continue(self, client) -> None:
        response = await client.post("/api/ussd", json=turn(""))

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text.startswith("CON Welcome to AfriTokeni!")
        assert "X-Request-ID" in response.headers

    @pytest.mark.asyncio
    async def test_registered_caller_reaches_main_menu(self, client, make_account) -> None:
        await make_account()

        response = await client.post("/api/ussd", json=turn(""))

        assert response.text.startswith("CON ")
        assert "1. Local Currency (UGX)" in response.text

    @pytest.mark.asyncio
    async def test_end_response(self, client) -> None:
        await client.post("/api/ussd", json=turn(""))
        response = await client.post("/api/ussd", json=turn("0"))
        assert response.text == "END Registration cancelled. Dial again any time."

    @pytest.mark.asyncio
    async def test_missing_session_id_is_rejected(self, client) -> None:
        response = await client.post("/api/ussd", json={"phoneNumber": "+256700123456"})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, client) -> None:
        response = await client.post(
            "/api/ussd", json=turn(""), headers={"X-Request-ID": "req-123"}
        )
        assert response.headers["X-Request-ID"] == "req-123"


class TestHealth:
    @pytest.mark.asyncio
    async def test_health_ok(self, client) -> None:
        await client.post("/api/ussd", json=turn(""))

        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["database"] == "healthy"
        assert body["redis"] == "disabled"
        assert body["active_sessions"] == 1


class TestDevAdmin:
    @pytest.mark.asyncio
    async def test_clear_sessions(self, client, store) -> None:
        await client.post("/api/ussd", json=turn("", session_id="a"))
        await client.post("/api/ussd", json=turn("", session_id="b"))

        response = await client.post("/dev/sessions/clear")

        assert response.status_code == 200
        assert response.json() == {"cleared": 2}
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_clear_sessions_outside_development(self, app, client, settings) -> None:
        production = settings.model_copy(update={"app_env": "production"})
        app.dependency_overrides[get_app_settings] = lambda: production

        response = await client.post("/dev/sessions/clear")

        assert response.status_code == 403

