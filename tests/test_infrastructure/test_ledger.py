"""Tests for the ledger clients and the rate provider."""

from __future__ import annotations

import json
from decimal import Decimal

import httpx
import pytest

from afritokeni_ussd.domain.exceptions import (
    CollaboratorError,
    InsufficientBalanceError,
    LedgerError,
)
from afritokeni_ussd.infrastructure.ledger import HttpLedgerClient, SimulatedLedger
from afritokeni_ussd.infrastructure.rates import StaticRateProvider


def _client(handler) -> HttpLedgerClient:
    return HttpLedgerClient(
        base_url="https://ledger.test",
        client=httpx.AsyncClient(
            transport=httpx.MockTransport(handler), base_url="https://ledger.test"
        ),
    )


class TestSimulatedLedger:
    @pytest.mark.asyncio
    async def test_transfer_moves_balance(self, ledger: SimulatedLedger) -> None:
        ledger.credit("alice", "UGX", Decimal("1000"))
        receipt = await ledger.transfer("alice", "bob", Decimal("400"), "UGX")
        assert receipt.reference.startswith("sim-")
        assert await ledger.read_balance("alice", "UGX") == Decimal("600")
        assert await ledger.read_balance("bob", "UGX") == Decimal("400")

    @pytest.mark.asyncio
    async def test_insufficient_balance(self, ledger: SimulatedLedger) -> None:
        ledger.credit("alice", "ckBTC", Decimal("0.001"))
        with pytest.raises(InsufficientBalanceError) as exc_info:
            await ledger.withdraw("alice", "bc1qexample", Decimal("0.01"), "ckBTC")
        assert exc_info.value.code == "INSUFFICIENT_BALANCE"
        assert await ledger.read_balance("alice", "ckBTC") == Decimal("0.001")

    @pytest.mark.asyncio
    async def test_deposit_address_is_stable(self, ledger: SimulatedLedger) -> None:
        first = await ledger.get_deposit_address("alice", "ckBTC")
        assert first == await ledger.get_deposit_address("alice", "ckBTC")
        assert first.startswith("ckbtc-")


class TestHttpLedgerClient:
    @pytest.mark.asyncio
    async def test_read_balance(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/balances/alice"
            assert request.url.params["asset"] == "ckUSDC"
            return httpx.Response(200, json={"balance": "12.5"})

        assert await _client(handler).read_balance("alice", "ckUSDC") == Decimal("12.5")

    @pytest.mark.asyncio
    async def test_transfer_posts_string_amount(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            assert body == {"from": "alice", "to": "bob", "amount": "0.0001", "asset": "ckBTC"}
            return httpx.Response(200, json={"reference": "tx-77"})

        receipt = await _client(handler).transfer("alice", "bob", Decimal("0.0001"), "ckBTC")
        assert receipt.reference == "tx-77"

    @pytest.mark.asyncio
    async def test_insufficient_funds_maps_to_domain_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                409, json={"error": "insufficient_funds", "required": "5", "available": "1"}
            )

        with pytest.raises(InsufficientBalanceError, match="required 5"):
            await _client(handler).transfer("alice", "bob", Decimal("5"), "UGX")

    @pytest.mark.asyncio
    async def test_server_error(self) -> None:
        with pytest.raises(LedgerError):
            await _client(lambda r: httpx.Response(503)).read_balance("alice", "UGX")

    @pytest.mark.asyncio
    async def test_malformed_balance(self) -> None:
        client = _client(lambda r: httpx.Response(200, json={"balance": "lots"}))
        with pytest.raises(LedgerError, match="balance"):
            await client.read_balance("alice", "UGX")


class TestStaticRateProvider:
    @pytest.mark.asyncio
    async def test_btc_in_ugx(self, settings) -> None:
        rates = StaticRateProvider.from_settings(settings)
        assert await rates.local_rate("ckBTC", "UGX") == Decimal("240500000")

    @pytest.mark.asyncio
    async def test_unknown_currency(self, settings) -> None:
        rates = StaticRateProvider.from_settings(settings)
        with pytest.raises(CollaboratorError) as exc_info:
            await rates.local_rate("ckBTC", "MAD")
        assert exc_info.value.code == "RATE_UNAVAILABLE"
