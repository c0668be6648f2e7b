"""Crypto buy and sell through an agent.

Buying (cash for crypto): the user pays the agent cash and the agent
releases tokens, so the agreement stays PENDING until the agent funds it.

Selling (crypto for cash): the user's tokens move to the escrow principal
right away. The agreement is FUNDED with the ledger reference, and the agent
pays out cash against the exchange code.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal
from typing import TYPE_CHECKING

from afritokeni_ussd.domain.enums import ExchangeDirection, TransactionType
from afritokeni_ussd.domain.exceptions import LedgerError
from afritokeni_ussd.logging_config import get_logger
from afritokeni_ussd.services.wallet_service import fee_for

if TYPE_CHECKING:
    from afritokeni_ussd.config import Settings
    from afritokeni_ussd.domain.collaborator_protocol import LedgerClient, RateProvider
    from afritokeni_ussd.domain.enums import AssetType
    from afritokeni_ussd.domain.session import AgentOption
    from afritokeni_ussd.infrastructure.database.orm_models import (
        EscrowAgreement,
        UserAccount,
    )
    from afritokeni_ussd.services.escrow_service import EscrowService
    from afritokeni_ussd.services.wallet_service import WalletService

logger = get_logger(__name__)

ASSET_PLACES = Decimal("0.00000001")
LOCAL_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class Quote:
    asset_amount: Decimal
    local_amount: Decimal
    fee: Decimal
    rate: Decimal


class ExchangeService:
    def __init__(
        self,
        escrow: EscrowService,
        wallet: WalletService,
        ledger: LedgerClient,
        rates: RateProvider,
        settings: Settings,
    ) -> None:
        self._escrow = escrow
        self._wallet = wallet
        self._ledger = ledger
        self._rates = rates
        self._settings = settings

    async def rate(self, asset: AssetType, currency: str) -> Decimal:
        return await self._rates.local_rate(asset.value, currency)

    async def quote_buy(self, asset: AssetType, currency: str, local_amount: Decimal) -> Quote:
        """Tokens the user gets for ``local_amount`` of cash, after the fee."""
        rate = await self.rate(asset, currency)
        fee = fee_for(local_amount, self._settings.exchange_fee_rate)
        asset_amount = ((local_amount - fee) / rate).quantize(ASSET_PLACES, rounding=ROUND_DOWN)
        return Quote(asset_amount, local_amount, fee, rate)

    async def quote_sell(
        self,
        asset: AssetType,
        currency: str,
        amount: Decimal,
        amount_in_local: bool,
    ) -> Quote:
        """Cash the user gets for selling, given either side of the trade."""
        rate = await self.rate(asset, currency)
        if amount_in_local:
            asset_amount = (amount / rate).quantize(ASSET_PLACES, rounding=ROUND_DOWN)
        else:
            asset_amount = amount.quantize(ASSET_PLACES, rounding=ROUND_DOWN)
        gross = (asset_amount * rate).quantize(LOCAL_PLACES, rounding=ROUND_DOWN)
        fee = fee_for(gross, self._settings.exchange_fee_rate)
        return Quote(asset_amount, gross - fee, fee, rate)

    async def open_buy(
        self,
        account: UserAccount,
        asset: AssetType,
        quote: Quote,
        agent: AgentOption,
    ) -> EscrowAgreement:
        agreement = await self._escrow.create(
            initiator_user_id=str(account.id),
            asset=asset,
            asset_amount=quote.asset_amount,
            local_amount=quote.local_amount,
            currency=account.preferred_currency,
            direction=ExchangeDirection.CASH_FOR_CRYPTO,
            agent_id=agent.id,
        )
        await self._wallet.record_trade(
            account,
            TransactionType.CRYPTO_BUY,
            asset,
            quote.asset_amount,
            quote.fee,
            agreement.exchange_code,
            agent,
        )
        return agreement

    async def open_sell(
        self,
        account: UserAccount,
        asset: AssetType,
        quote: Quote,
        agent: AgentOption,
    ) -> EscrowAgreement:
        """Open a crypto-for-cash agreement and move the tokens into escrow.

        The agreement is committed before the ledger transfer so moved tokens
        always have a record. A refused transfer cancels the agreement.
        """
        await self._wallet.ensure_funds(account, quote.asset_amount, asset.value)
        initiator = str(account.id)
        agreement = await self._escrow.create(
            initiator_user_id=initiator,
            asset=asset,
            asset_amount=quote.asset_amount,
            local_amount=quote.local_amount,
            currency=account.preferred_currency,
            direction=ExchangeDirection.CRYPTO_FOR_CASH,
            agent_id=agent.id,
        )
        await self._escrow.commit()

        try:
            receipt = await self._ledger.transfer(
                account.principal_id,
                self._settings.escrow_principal,
                quote.asset_amount,
                asset.value,
            )
        except LedgerError:
            await self._escrow.cancel(agreement.exchange_code, initiator)
            await self._escrow.commit()
            raise

        try:
            await self._escrow.mark_funded(
                agreement.exchange_code, receipt.reference, actor=initiator
            )
            await self._wallet.record_trade(
                account,
                TransactionType.CRYPTO_SELL,
                asset,
                quote.asset_amount,
                quote.fee,
                agreement.exchange_code,
                agent,
                reference=receipt.reference,
            )
            await self._escrow.commit()
        except Exception:
            logger.error(
                "exchange.funding_unrecorded",
                exchange_code=agreement.exchange_code,
                reference=receipt.reference,
            )
            raise
        logger.info(
            "exchange.sell_funded",
            exchange_code=agreement.exchange_code,
            reference=receipt.reference,
        )
        return agreement
