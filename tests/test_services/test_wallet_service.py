"""Tests for wallet operations against the simulated ledger."""

from __future__ import annotations

from decimal import Decimal

import pytest
import pytest_asyncio

from afritokeni_ussd.domain.enums import AssetType, TransactionStatus, TransactionType
from afritokeni_ussd.domain.exceptions import (
    InsufficientBalanceError,
    LedgerError,
    ValidationError,
)
from afritokeni_ussd.domain.session import AgentOption
from afritokeni_ussd.services.account_service import AccountService
from afritokeni_ussd.services.wallet_service import WalletService, fee_for

AGENT = AgentOption(
    id="agent-1",
    business_name="Kampala Central",
    location="Kampala",
    commission_rate=Decimal("0.02"),
)


def fail_transfers_to(monkeypatch, ledger, principal: str) -> None:
    """Make the ledger refuse every transfer credited to ``principal``."""
    transfer = ledger.transfer

    async def refusing(sender, recipient, amount, asset):
        if recipient == principal:
            raise LedgerError("ledger unavailable")
        return await transfer(sender, recipient, amount, asset)

    monkeypatch.setattr(ledger, "transfer", refusing)


@pytest_asyncio.fixture
async def people(db_session, ledger):
    svc = AccountService(db_session)
    alice = await svc.register("256700123456", "Alice", "Nakato")
    bob = await svc.register("256700654321", "Bob", "Okello")
    ledger.credit(alice.principal_id, "UGX", Decimal("100000"))
    return alice, bob


@pytest.fixture
def wallet(db_session, ledger, settings, clock) -> WalletService:
    return WalletService(db_session, ledger, settings, clock)


class TestFees:
    @pytest.mark.parametrize(
        ("amount", "fee"),
        [("10000", "100.00"), ("1234.5", "12.35"), ("0.49", "0.00")],
    )
    def test_transfer_fee_rounds_half_up(self, amount: str, fee: str) -> None:
        assert fee_for(Decimal(amount), Decimal("0.01")) == Decimal(fee)


class TestSendMoney:
    @pytest.mark.asyncio
    async def test_moves_amount_and_fee(self, wallet, people, ledger, settings) -> None:
        alice, bob = people
        tx = await wallet.send_money(alice, bob, Decimal("10000"))

        assert tx.fee == Decimal("100.00")
        assert await ledger.read_balance(alice.principal_id, "UGX") == Decimal("89900")
        assert await ledger.read_balance(bob.principal_id, "UGX") == Decimal("10000")
        assert await ledger.read_balance(settings.fee_principal, "UGX") == Decimal("100")

        history = await wallet.recent_transactions(bob)
        assert [t.type for t in history] == [TransactionType.RECEIVE.value]

    @pytest.mark.asyncio
    async def test_fee_counts_towards_balance(self, wallet, people) -> None:
        alice, bob = people
        with pytest.raises(InsufficientBalanceError):
            await wallet.send_money(alice, bob, Decimal("100000"))

    @pytest.mark.asyncio
    async def test_cannot_send_to_self(self, wallet, people) -> None:
        alice, _ = people
        with pytest.raises(ValidationError):
            await wallet.send_money(alice, alice, Decimal("10"))

    @pytest.mark.asyncio
    async def test_fee_leg_failure_moves_nothing(
        self, wallet, people, ledger, settings, monkeypatch
    ) -> None:
        alice, bob = people
        fail_transfers_to(monkeypatch, ledger, settings.fee_principal)

        with pytest.raises(LedgerError):
            await wallet.send_money(alice, bob, Decimal("10000"))

        assert await ledger.read_balance(alice.principal_id, "UGX") == Decimal("100000")
        assert await ledger.read_balance(bob.principal_id, "UGX") == Decimal("0")
        assert await wallet.recent_transactions(alice) == []
        assert await wallet.recent_transactions(bob) == []

    @pytest.mark.asyncio
    async def test_main_leg_failure_refunds_fee(
        self, wallet, people, ledger, settings, monkeypatch
    ) -> None:
        alice, bob = people
        fail_transfers_to(monkeypatch, ledger, bob.principal_id)

        with pytest.raises(LedgerError):
            await wallet.send_money(alice, bob, Decimal("10000"))

        assert await ledger.read_balance(alice.principal_id, "UGX") == Decimal("100000")
        assert await ledger.read_balance(settings.fee_principal, "UGX") == Decimal("0")
        assert await wallet.recent_transactions(alice) == []

    @pytest.mark.asyncio
    async def test_rows_survive_a_later_rollback(
        self, wallet, people, db_session
    ) -> None:
        alice, bob = people
        await wallet.send_money(alice, bob, Decimal("10000"))

        await db_session.rollback()

        history = await wallet.recent_transactions(alice)
        assert [t.type for t in history] == [TransactionType.SEND.value]


class TestCashRequests:
    @pytest.mark.asyncio
    async def test_deposit_request(self, wallet, people) -> None:
        alice, _ = people
        tx = await wallet.create_deposit_request(alice, Decimal("50000"), AGENT)
        assert tx.code.startswith("DEP-")
        assert tx.status == TransactionStatus.PENDING.value
        assert tx.agent_id == "agent-1"

    @pytest.mark.asyncio
    async def test_deposit_limits(self, wallet, people) -> None:
        alice, _ = people
        with pytest.raises(ValidationError):
            await wallet.create_deposit_request(alice, Decimal("999"), AGENT)

    @pytest.mark.asyncio
    async def test_withdrawal_code_expires(self, wallet, people, clock, ledger) -> None:
        alice, _ = people
        tx = await wallet.create_withdrawal(alice, Decimal("20000"), AGENT)
        assert tx.code.startswith("WD-")
        assert tx.fee == Decimal("200.00")
        assert (tx.expires_at - clock.now).total_seconds() == 24 * 3600
        # The agent settles in person; nothing moves on the ledger yet.
        assert await ledger.read_balance(alice.principal_id, "UGX") == Decimal("100000")

    @pytest.mark.asyncio
    async def test_withdrawal_needs_funds(self, wallet, people) -> None:
        _, bob = people
        with pytest.raises(InsufficientBalanceError):
            await wallet.create_withdrawal(bob, Decimal("5000"), AGENT)


class TestCrypto:
    @pytest.mark.asyncio
    async def test_crypto_send_and_withdraw(self, wallet, people, ledger) -> None:
        alice, bob = people
        ledger.credit(alice.principal_id, "ckUSDC", Decimal("50"))

        await wallet.crypto_send(alice, bob, AssetType.CKUSDC, Decimal("20"))
        out = await wallet.crypto_withdraw(alice, AssetType.CKUSDC, "0xabc", Decimal("10"))

        assert out.type == TransactionType.CRYPTO_WITHDRAW.value
        assert await ledger.read_balance(alice.principal_id, "ckUSDC") == Decimal("20")
        assert await ledger.read_balance(bob.principal_id, "ckUSDC") == Decimal("20")

    @pytest.mark.asyncio
    async def test_deposit_address(self, wallet, people) -> None:
        alice, _ = people
        assert (await wallet.deposit_address(alice, AssetType.CKBTC)).startswith("ckbtc-")
