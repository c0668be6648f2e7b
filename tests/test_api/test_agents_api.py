"""Tests for the agent registry routes."""

from __future__ import annotations

from decimal import Decimal

import pytest


class TestAgentRegistry:
    @pytest.mark.asyncio
    async def test_register_normalizes_phone(self, client) -> None:
        response = await client.post(
            "/api/v1/agents",
            json={
                "business_name": "Kampala Central Agent",
                "phone_number": "+256700123456",
                "city": "Kampala",
                "address": "Plot 12, Kampala Road",
                "principal_id": "agent-principal-9",
            },
        )

        assert response.status_code == 201
        body = response.json()
        assert body["phone_number"] == "256700123456"
        assert body["location"] == "Plot 12, Kampala Road, Kampala"
        assert Decimal(body["commission_rate"]) == Decimal("0.02")
        assert body["is_active"] is True
        assert body["completed_exchanges"] == 0

    @pytest.mark.asyncio
    async def test_invalid_phone_is_400(self, client) -> None:
        response = await client.post(
            "/api/v1/agents",
            json={
                "business_name": "Nowhere Agent",
                "phone_number": "12",
                "city": "Kampala",
                "principal_id": "agent-principal-9",
            },
        )
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_list_active(self, client, agent_ids) -> None:
        response = await client.get("/api/v1/agents")
        assert response.status_code == 200
        assert {a["id"] for a in response.json()} == set(agent_ids)


class TestEarnings:
    @pytest.mark.asyncio
    async def test_commission_on_completed_exchange(self, client, agent_ids) -> None:
        created = await client.post(
            "/api/v1/escrow",
            json={
                "initiator_user_id": "user-principal-1",
                "asset_type": "ckUSDC",
                "asset_amount": "100",
                "local_amount": "370000",
                "currency": "UGX",
                "agent_id": agent_ids[0],
            },
        )
        code = created.json()["exchange_code"]
        await client.post(f"/api/v1/escrow/{code}/fund", json={"reference": "tx-9"})
        await client.post(f"/api/v1/escrow/{code}/verify", json={"agent_id": agent_ids[0]})

        response = await client.get(f"/api/v1/agents/{agent_ids[0]}/earnings")

        assert response.status_code == 200
        body = response.json()
        assert body["completed_exchanges"] == 1
        assert Decimal(body["local_by_currency"]["UGX"]) == Decimal("7400")
        assert Decimal(body["asset_by_type"]["ckUSDC"]) == Decimal("2")

    @pytest.mark.asyncio
    async def test_unknown_agent_is_404(self, client) -> None:
        response = await client.get("/api/v1/agents/not-a-uuid/earnings")
        assert response.status_code == 404
