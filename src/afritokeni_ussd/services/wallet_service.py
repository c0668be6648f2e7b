"""Wallet operations behind the local-currency and crypto menus.

Balances live on the ledger; this service asks the ledger to move value and
records each movement as a Transaction row for the history screen. Cash
deposits and withdrawals only produce a code: the agent settles them in
person.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from afritokeni_ussd.domain.enums import TransactionStatus, TransactionType
from afritokeni_ussd.domain.exceptions import (
    InsufficientBalanceError,
    LedgerError,
    ValidationError,
)
from afritokeni_ussd.infrastructure.database.orm_models import Transaction
from afritokeni_ussd.infrastructure.database.repositories import TransactionRepository
from afritokeni_ussd.logging_config import get_logger
from afritokeni_ussd.utils.codes import random_code
from afritokeni_ussd.utils.time import utcnow

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from afritokeni_ussd.config import Settings
    from afritokeni_ussd.domain.collaborator_protocol import LedgerClient
    from afritokeni_ussd.domain.enums import AssetType
    from afritokeni_ussd.domain.session import AgentOption
    from afritokeni_ussd.infrastructure.database.orm_models import UserAccount
    from afritokeni_ussd.utils.time import Clock

logger = get_logger(__name__)

_CENTS = Decimal("0.01")


def fee_for(amount: Decimal, rate: Decimal) -> Decimal:
    return (amount * rate).quantize(_CENTS, rounding=ROUND_HALF_UP)


class WalletService:
    def __init__(
        self,
        session: AsyncSession,
        ledger: LedgerClient,
        settings: Settings,
        clock: Clock = utcnow,
    ) -> None:
        self._session = session
        self._transactions = TransactionRepository(session)
        self._ledger = ledger
        self._settings = settings
        self._clock = clock

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def balance(self, account: UserAccount, asset: str | None = None) -> Decimal:
        """Ledger balance in ``asset``, or in the account's local currency."""
        return await self._ledger.read_balance(
            account.principal_id, asset or account.preferred_currency
        )

    async def ensure_funds(
        self, account: UserAccount, required: Decimal, asset: str | None = None
    ) -> None:
        available = await self.balance(account, asset)
        if available < required:
            raise InsufficientBalanceError(required=str(required), available=str(available))

    async def recent_transactions(self, account: UserAccount, limit: int = 5) -> list[Transaction]:
        return await self._transactions.recent_for_account(account.id, limit)

    async def deposit_address(self, account: UserAccount, asset: AssetType) -> str:
        return await self._ledger.get_deposit_address(account.principal_id, asset.value)

    def transfer_fee(self, amount: Decimal) -> Decimal:
        return fee_for(amount, self._settings.transfer_fee_rate)

    # ------------------------------------------------------------------
    # Local currency
    # ------------------------------------------------------------------

    async def send_money(
        self, sender: UserAccount, recipient: UserAccount, amount: Decimal
    ) -> Transaction:
        """Move ``amount`` to ``recipient`` and the fee to the platform.

        The fee leg goes first so a failure there moves nothing. If the main
        leg then fails the fee is handed back. Once the main leg lands the
        SEND/RECEIVE rows are committed before anything else can fail.
        """
        if sender.id == recipient.id:
            raise ValidationError("Cannot send money to yourself")
        currency = sender.preferred_currency
        fee = self.transfer_fee(amount)
        await self.ensure_funds(sender, amount + fee)

        fee_reference = None
        if fee > 0:
            fee_receipt = await self._ledger.transfer(
                sender.principal_id, self._settings.fee_principal, fee, currency
            )
            fee_reference = fee_receipt.reference
        try:
            receipt = await self._ledger.transfer(
                sender.principal_id, recipient.principal_id, amount, currency
            )
        except LedgerError:
            if fee_reference is not None:
                await self._refund_fee(sender, fee, currency, fee_reference)
            raise

        sent = await self._transactions.create(
            Transaction(
                account_id=sender.id,
                type=TransactionType.SEND.value,
                amount=amount,
                fee=fee,
                currency=currency,
                counterparty=recipient.phone_or_email,
                reference=receipt.reference,
            )
        )
        await self._transactions.create(
            Transaction(
                account_id=recipient.id,
                type=TransactionType.RECEIVE.value,
                amount=amount,
                currency=currency,
                counterparty=sender.phone_or_email,
                reference=receipt.reference,
            )
        )
        await self._session.commit()
        logger.info(
            "wallet.sent",
            sender=sender.phone_or_email,
            recipient=recipient.phone_or_email,
            amount=str(amount),
            reference=receipt.reference,
        )
        return sent

    async def _refund_fee(
        self, sender: UserAccount, fee: Decimal, currency: str, fee_reference: str
    ) -> None:
        try:
            await self._ledger.transfer(
                self._settings.fee_principal, sender.principal_id, fee, currency
            )
        except LedgerError as exc:
            logger.error(
                "wallet.fee_refund_failed",
                sender=sender.phone_or_email,
                fee=str(fee),
                fee_reference=fee_reference,
                error=exc.message,
            )
            return
        logger.warning(
            "wallet.fee_refunded", sender=sender.phone_or_email, fee_reference=fee_reference
        )

    async def create_deposit_request(
        self, account: UserAccount, amount: Decimal, agent: AgentOption
    ) -> Transaction:
        """Pending deposit the agent completes when the cash changes hands."""
        self._check_range(
            amount, self._settings.deposit_min_amount, self._settings.deposit_max_amount
        )
        deposit = await self._transactions.create(
            Transaction(
                account_id=account.id,
                type=TransactionType.DEPOSIT.value,
                status=TransactionStatus.PENDING.value,
                amount=amount,
                currency=account.preferred_currency,
                agent_id=agent.id,
                counterparty=agent.business_name,
                code=random_code("DEP"),
            )
        )
        logger.info("wallet.deposit_requested", code=deposit.code, agent_id=agent.id)
        return deposit

    async def create_withdrawal(
        self, account: UserAccount, amount: Decimal, agent: AgentOption
    ) -> Transaction:
        """Pending withdrawal whose code the agent honours within the TTL."""
        self._check_range(
            amount, self._settings.withdraw_min_amount, self._settings.withdraw_max_amount
        )
        fee = self.transfer_fee(amount)
        await self.ensure_funds(account, amount + fee)
        withdrawal = await self._transactions.create(
            Transaction(
                account_id=account.id,
                type=TransactionType.WITHDRAW.value,
                status=TransactionStatus.PENDING.value,
                amount=amount,
                fee=fee,
                currency=account.preferred_currency,
                agent_id=agent.id,
                counterparty=agent.business_name,
                code=random_code("WD"),
                expires_at=self._clock()
                + timedelta(hours=self._settings.withdrawal_code_ttl_hours),
            )
        )
        logger.info("wallet.withdrawal_requested", code=withdrawal.code, agent_id=agent.id)
        return withdrawal

    # ------------------------------------------------------------------
    # Crypto
    # ------------------------------------------------------------------

    async def crypto_send(
        self,
        sender: UserAccount,
        recipient: UserAccount,
        asset: AssetType,
        amount: Decimal,
    ) -> Transaction:
        await self.ensure_funds(sender, amount, asset.value)
        receipt = await self._ledger.transfer(
            sender.principal_id, recipient.principal_id, amount, asset.value
        )
        tx = await self._transactions.create(
            Transaction(
                account_id=sender.id,
                type=TransactionType.CRYPTO_SEND.value,
                amount=amount,
                currency=asset.value,
                counterparty=recipient.phone_or_email,
                reference=receipt.reference,
            )
        )
        await self._session.commit()
        logger.info("wallet.crypto_sent", asset=asset.value, reference=receipt.reference)
        return tx

    async def crypto_withdraw(
        self,
        account: UserAccount,
        asset: AssetType,
        address: str,
        amount: Decimal,
    ) -> Transaction:
        await self.ensure_funds(account, amount, asset.value)
        receipt = await self._ledger.withdraw(account.principal_id, address, amount, asset.value)
        tx = await self._transactions.create(
            Transaction(
                account_id=account.id,
                type=TransactionType.CRYPTO_WITHDRAW.value,
                amount=amount,
                currency=asset.value,
                counterparty=address,
                reference=receipt.reference,
            )
        )
        await self._session.commit()
        logger.info("wallet.crypto_withdrawn", asset=asset.value, reference=receipt.reference)
        return tx

    async def record_trade(
        self,
        account: UserAccount,
        kind: TransactionType,
        asset: AssetType,
        asset_amount: Decimal,
        fee: Decimal,
        exchange_code: str,
        agent: AgentOption,
        reference: str | None = None,
    ) -> Transaction:
        return await self._transactions.create(
            Transaction(
                account_id=account.id,
                type=kind.value,
                status=TransactionStatus.PENDING.value,
                amount=asset_amount,
                fee=fee,
                currency=asset.value,
                agent_id=agent.id,
                counterparty=agent.business_name,
                code=exchange_code,
                reference=reference,
            )
        )

    @staticmethod
    def _check_range(amount: Decimal, minimum: Decimal, maximum: Decimal) -> None:
        if not minimum <= amount <= maximum:
            raise ValidationError(f"Amount must be between {minimum} and {maximum}")
