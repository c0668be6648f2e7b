"""Collaborator Protocols.

Interfaces of the external systems this core talks to: the SMS gateway, the
ledger network and the exchange-rate source. They are Protocols (structural
subtyping) so concrete clients just need to match the shape.

The domain layer has ZERO imports from httpx or any gateway SDK.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from decimal import Decimal


@dataclass(frozen=True)
class TransferReceipt:
    """What the ledger hands back for a value-moving request.

    Attributes:
        reference: Ledger transaction id or block index.
        amount: Amount moved, in the asset's units.
        asset: Asset or currency code (ckBTC, ckUSDC, UGX...).
    """

    reference: str
    amount: Decimal
    asset: str


@runtime_checkable
class SmsSender(Protocol):
    """Out-of-band text delivery.

    Concrete implementations:
        - infrastructure/sms.py LoggingSmsSender (development)
        - infrastructure/sms.py AfricasTalkingSmsSender (httpx)
    """

    async def send(self, phone_number: str, message: str) -> None:
        """Deliver ``message``. Raises DeliveryError on failure; never retried."""
        ...


@runtime_checkable
class LedgerClient(Protocol):
    """Token balances and user-signed transfers.

    Concrete implementations:
        - infrastructure/ledger.py SimulatedLedger
        - infrastructure/ledger.py HttpLedgerClient (httpx)
    """

    async def read_balance(self, principal: str, asset: str) -> Decimal: ...

    async def transfer(
        self,
        sender: str,
        recipient: str,
        amount: Decimal,
        asset: str,
    ) -> TransferReceipt: ...

    async def get_deposit_address(self, principal: str, asset: str) -> str: ...

    async def withdraw(
        self,
        principal: str,
        external_address: str,
        amount: Decimal,
        asset: str,
    ) -> TransferReceipt: ...


@runtime_checkable
class RateProvider(Protocol):
    """Exchange-rate lookups: local currency units per one unit of an asset."""

    async def local_rate(self, asset: str, currency: str) -> Decimal: ...
