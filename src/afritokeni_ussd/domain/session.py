"""USSD session record and the typed per-flow data it carries.

A session holds exactly one flow model at a time. Entering a menu installs a
fresh model for that menu's flow, and navigating away discards it, so fields
collected in one flow (a half-typed amount, an attempt counter) can never leak
into another. Facts that outlive a single flow (PIN verified, currency,
language) are plain session attributes.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from afritokeni_ussd.domain.enums import AssetType, Language, Menu
from afritokeni_ussd.domain.navigation import CRYPTO_MENUS


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AgentOption(BaseModel):
    """Snapshot of an agent offered on a selection screen."""

    id: str
    business_name: str
    location: str
    phone_number: str | None = None
    commission_rate: Decimal


# ---------------------------------------------------------------------------
# Flow models
# ---------------------------------------------------------------------------


class NoFlow(BaseModel):
    kind: Literal["none"] = "none"


class RegistrationFlow(BaseModel):
    kind: Literal["registration"] = "registration"
    first_name: str | None = None
    last_name: str | None = None
    attempts: int = 0


class PinCheckFlow(BaseModel):
    """PIN prompt standing in front of a gated menu."""

    kind: Literal["pin_check"] = "pin_check"
    pending_menu: Menu = Menu.MAIN
    attempts: int = 0


class SendMoneyFlow(BaseModel):
    kind: Literal["send_money"] = "send_money"
    recipient_phone: str | None = None
    amount: Decimal | None = None
    fee: Decimal | None = None
    attempts: int = 0


class CashFlow(BaseModel):
    """Deposit or withdrawal through an agent."""

    kind: Literal["cash"] = "cash"
    amount: Decimal | None = None
    fee: Decimal = Decimal("0")
    agents: list[AgentOption] = Field(default_factory=list)
    agent: AgentOption | None = None
    attempts: int = 0


class FindAgentFlow(BaseModel):
    kind: Literal["find_agent"] = "find_agent"
    agents: list[AgentOption] = Field(default_factory=list)


class CryptoTradeFlow(BaseModel):
    """Buying or selling an asset for cash through an agent."""

    kind: Literal["crypto_trade"] = "crypto_trade"
    asset: AssetType
    amount_in_local: bool = True
    asset_amount: Decimal | None = None
    local_amount: Decimal | None = None
    fee: Decimal | None = None
    agents: list[AgentOption] = Field(default_factory=list)
    agent: AgentOption | None = None
    attempts: int = 0


class CryptoTransferFlow(BaseModel):
    """Sending an asset to another user or out to an external address."""

    kind: Literal["crypto_transfer"] = "crypto_transfer"
    asset: AssetType
    destination: str | None = None
    amount: Decimal | None = None
    attempts: int = 0


FlowData = Annotated[
    NoFlow
    | RegistrationFlow
    | PinCheckFlow
    | SendMoneyFlow
    | CashFlow
    | FindAgentFlow
    | CryptoTradeFlow
    | CryptoTransferFlow,
    Field(discriminator="kind"),
]

# Flows that close with a PIN confirmation and count its attempts.
PinConfirmedFlow = (
    PinCheckFlow | SendMoneyFlow | CashFlow | CryptoTradeFlow | CryptoTransferFlow
)


def fresh_flow(menu: Menu) -> FlowData:
    """Build the empty flow model that belongs to ``menu``."""
    if menu in (Menu.USER_REGISTRATION, Menu.VERIFICATION):
        return RegistrationFlow()
    if menu is Menu.PIN_CHECK:
        return PinCheckFlow()
    if menu is Menu.SEND_MONEY:
        return SendMoneyFlow()
    if menu in (Menu.DEPOSIT, Menu.WITHDRAW):
        return CashFlow()
    if menu is Menu.FIND_AGENT:
        return FindAgentFlow()
    for asset, menus in CRYPTO_MENUS.items():
        if menu in (menus.buy, menus.sell):
            return CryptoTradeFlow(asset=asset)
        if menu in (menus.send, menus.withdraw):
            return CryptoTransferFlow(asset=asset)
    return NoFlow()


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class UssdSession(BaseModel):
    """One in-progress USSD conversation."""

    session_id: str
    phone_number: str
    current_menu: Menu = Menu.REGISTRATION_CHECK
    step: int = 0
    language: Language | None = None
    preferred_currency: str | None = None
    pin_verified: bool = False
    flow: FlowData = Field(default_factory=NoFlow)
    created_at: datetime = Field(default_factory=_utcnow)
    last_activity: datetime = Field(default_factory=_utcnow)

    def enter(self, menu: Menu, step: int = 0) -> None:
        """Fresh entry into ``menu``: installs that menu's empty flow."""
        self.current_menu = menu
        self.step = step
        self.flow = fresh_flow(menu)

    def continue_flow(self, menu: Menu, step: int) -> None:
        """Move to another screen of the same flow, keeping collected data."""
        self.current_menu = menu
        self.step = step

    def touch(self, now: datetime | None = None) -> None:
        self.last_activity = now or _utcnow()

    def is_expired(self, now: datetime, timeout_seconds: int) -> bool:
        return (now - self.last_activity).total_seconds() > timeout_seconds
