"""Ledger network clients.

SimulatedLedger keeps balances in memory and hands out fake references, the
same way the payment layer simulates funding in development. HttpLedgerClient
talks to the ledger gateway that holds real token balances and collects the
user's signature out of band; this core only requests transfers and records
the references it gets back.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

import httpx

from afritokeni_ussd.domain.collaborator_protocol import TransferReceipt
from afritokeni_ussd.domain.exceptions import InsufficientBalanceError, LedgerError
from afritokeni_ussd.logging_config import get_logger

if TYPE_CHECKING:
    from afritokeni_ussd.config import Settings

logger = get_logger(__name__)


class SimulatedLedger:
    """In-memory ledger for development and tests."""

    def __init__(self) -> None:
        self._balances: dict[tuple[str, str], Decimal] = defaultdict(Decimal)

    def credit(self, principal: str, asset: str, amount: Decimal) -> None:
        """Seed a balance. Development only."""
        self._balances[(principal, asset)] += amount

    async def read_balance(self, principal: str, asset: str) -> Decimal:
        return self._balances[(principal, asset)]

    async def transfer(
        self,
        sender: str,
        recipient: str,
        amount: Decimal,
        asset: str,
    ) -> TransferReceipt:
        self._debit(sender, asset, amount)
        self._balances[(recipient, asset)] += amount
        reference = f"sim-{uuid.uuid4().hex[:16]}"
        logger.info(
            "ledger.transfer_simulated",
            asset=asset,
            amount=str(amount),
            reference=reference,
        )
        return TransferReceipt(reference=reference, amount=amount, asset=asset)

    async def get_deposit_address(self, principal: str, asset: str) -> str:
        return f"{asset.lower()}-{uuid.uuid5(uuid.NAMESPACE_URL, principal).hex[:24]}"

    async def withdraw(
        self,
        principal: str,
        external_address: str,
        amount: Decimal,
        asset: str,
    ) -> TransferReceipt:
        self._debit(principal, asset, amount)
        reference = f"sim-{uuid.uuid4().hex[:16]}"
        logger.info(
            "ledger.withdraw_simulated",
            asset=asset,
            amount=str(amount),
            destination=external_address,
            reference=reference,
        )
        return TransferReceipt(reference=reference, amount=amount, asset=asset)

    def _debit(self, principal: str, asset: str, amount: Decimal) -> None:
        available = self._balances[(principal, asset)]
        if available < amount:
            raise InsufficientBalanceError(required=str(amount), available=str(available))
        self._balances[(principal, asset)] = available - amount


class HttpLedgerClient:
    """JSON-over-HTTP client for the ledger gateway."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = client or httpx.AsyncClient(
            base_url=base_url, timeout=timeout, headers=headers
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> HttpLedgerClient:
        return cls(
            base_url=settings.ledger_base_url,
            api_key=settings.ledger_api_key,
            timeout=settings.ledger_timeout_seconds,
        )

    async def read_balance(self, principal: str, asset: str) -> Decimal:
        data = await self._request("GET", f"/balances/{principal}", params={"asset": asset})
        return self._decimal(data, "balance")

    async def transfer(
        self,
        sender: str,
        recipient: str,
        amount: Decimal,
        asset: str,
    ) -> TransferReceipt:
        data = await self._request(
            "POST",
            "/transfers",
            json={"from": sender, "to": recipient, "amount": str(amount), "asset": asset},
        )
        return TransferReceipt(reference=str(data["reference"]), amount=amount, asset=asset)

    async def get_deposit_address(self, principal: str, asset: str) -> str:
        data = await self._request(
            "GET", f"/deposit-addresses/{principal}", params={"asset": asset}
        )
        return str(data["address"])

    async def withdraw(
        self,
        principal: str,
        external_address: str,
        amount: Decimal,
        asset: str,
    ) -> TransferReceipt:
        data = await self._request(
            "POST",
            "/withdrawals",
            json={
                "from": principal,
                "address": external_address,
                "amount": str(amount),
                "asset": asset,
            },
        )
        return TransferReceipt(reference=str(data["reference"]), amount=amount, asset=asset)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: object) -> dict:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("ledger.unreachable", url=url, error=str(exc))
            raise LedgerError(f"Ledger gateway unreachable: {exc}") from exc

        if response.status_code == 409 and _error_code(response) == "insufficient_funds":
            body = response.json()
            raise InsufficientBalanceError(
                required=str(body.get("required", "?")),
                available=str(body.get("available", "?")),
            )
        if response.is_error:
            logger.error("ledger.request_failed", url=url, status=response.status_code)
            raise LedgerError(f"Ledger gateway returned {response.status_code} for {url}")
        try:
            return response.json()
        except ValueError as exc:
            raise LedgerError(f"Ledger gateway sent malformed JSON for {url}") from exc

    @staticmethod
    def _decimal(data: dict, field: str) -> Decimal:
        try:
            return Decimal(str(data[field]))
        except (KeyError, InvalidOperation) as exc:
            raise LedgerError(f"Ledger response missing numeric '{field}'") from exc


def _error_code(response: httpx.Response) -> str | None:
    try:
        return response.json().get("error")
    except ValueError:
        return None
