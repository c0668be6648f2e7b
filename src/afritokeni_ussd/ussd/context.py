"""Everything a handler may touch during one USSD turn."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import TYPE_CHECKING

from afritokeni_ussd.i18n import translate
from afritokeni_ussd.services.account_service import AccountService
from afritokeni_ussd.services.agent_service import AgentService
from afritokeni_ussd.services.escrow_service import EscrowService
from afritokeni_ussd.services.exchange_service import ExchangeService
from afritokeni_ussd.services.pin_gate import PinGate
from afritokeni_ussd.services.verification_service import VerificationService
from afritokeni_ussd.services.wallet_service import WalletService
from afritokeni_ussd.utils.time import utcnow

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from afritokeni_ussd.config import Settings
    from afritokeni_ussd.domain.collaborator_protocol import (
        LedgerClient,
        RateProvider,
        SmsSender,
    )
    from afritokeni_ussd.domain.session import UssdSession
    from afritokeni_ussd.i18n import MessageKey
    from afritokeni_ussd.infrastructure.code_store import VerificationCodeStore
    from afritokeni_ussd.infrastructure.database.orm_models import UserAccount
    from afritokeni_ussd.utils.time import Clock


@dataclass
class Collaborators:
    """Long-lived external systems, built once at startup."""

    sms: SmsSender
    ledger: LedgerClient
    rates: RateProvider
    codes: VerificationCodeStore


@dataclass
class HandlerContext:
    session: UssdSession
    db: AsyncSession
    settings: Settings
    collaborators: Collaborators
    clock: Clock = utcnow
    _account: UserAccount | None = field(default=None, repr=False)

    def t(self, key: MessageKey, **values: object) -> str:
        """Translate into the session's language."""
        return translate(key, self.session.language, **values)

    @property
    def currency(self) -> str:
        return self.session.preferred_currency or "UGX"

    def use_account(self, account: UserAccount) -> None:
        self._account = account

    async def account(self) -> UserAccount:
        """The caller's account. Raises AccountNotFoundError if it vanished."""
        if self._account is None:
            self._account = await self.accounts.get_by_phone(self.session.phone_number)
        return self._account

    # --- services, built on first use ---

    @cached_property
    def accounts(self) -> AccountService:
        return AccountService(self.db)

    @cached_property
    def agents(self) -> AgentService:
        return AgentService(self.db, self.settings.agent_default_commission_rate)

    @cached_property
    def verification(self) -> VerificationService:
        return VerificationService(
            self.collaborators.codes,
            self.collaborators.sms,
            self.settings.verification_code_ttl_seconds,
        )

    @cached_property
    def pin_gate(self) -> PinGate:
        return PinGate(
            self.db,
            max_attempts=self.settings.pin_max_attempts,
            lockout_threshold=self.settings.pin_lockout_threshold,
            lockout_minutes=self.settings.pin_lockout_minutes,
            clock=self.clock,
        )

    @cached_property
    def wallet(self) -> WalletService:
        return WalletService(self.db, self.collaborators.ledger, self.settings, self.clock)

    @cached_property
    def escrow(self) -> EscrowService:
        return EscrowService(self.db, self.settings.escrow_timeout_hours, self.clock)

    @cached_property
    def exchange(self) -> ExchangeService:
        return ExchangeService(
            self.escrow,
            self.wallet,
            self.collaborators.ledger,
            self.collaborators.rates,
            self.settings,
        )
