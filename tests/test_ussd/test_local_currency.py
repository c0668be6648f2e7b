"""Send money, deposit, withdraw and agent lookup over USSD."""

from __future__ import annotations

import asyncio
import re
from decimal import Decimal

import pytest

from afritokeni_ussd.domain.enums import TransactionType
from afritokeni_ussd.domain.exceptions import LedgerError
from afritokeni_ussd.services.wallet_service import WalletService

RECIPIENT = "256700654321"


class TestSendMoney:
    @pytest.mark.asyncio
    async def test_send_money(self, dial, make_account, ledger, sms, settings) -> None:
        sender = await make_account(balances={"UGX": Decimal("100000")})
        recipient = await make_account(phone=RECIPIENT, first_name="Bob", last_name="Okello")
        phone = dial()
        await phone.start()
        await phone.press("1")

        assert (await phone.press("1")).startswith("CON Enter recipient phone number:")
        assert await phone.press("0700654321") == "CON Enter amount (UGX):"
        assert await phone.press("10000") == (
            "CON Send 10,000 UGX to +256700654321\nFee: 100 UGX\n"
            "Total: 10,100 UGX\nEnter PIN to confirm:"
        )
        done = await phone.press("1234")

        assert done.startswith("END Transaction successful!\nSent 10,000 UGX to Bob Okello.")
        assert await ledger.read_balance(sender.principal_id, "UGX") == Decimal("89900")
        assert await ledger.read_balance(recipient.principal_id, "UGX") == Decimal("10000")
        assert await ledger.read_balance(settings.fee_principal, "UGX") == Decimal("100")
        assert [to for to, _ in sms.outbox] == ["+256700123456", "+256700654321"]

    @pytest.mark.asyncio
    async def test_recipient_checks(self, dial, make_account) -> None:
        await make_account(balances={"UGX": Decimal("100000")})
        phone = dial()
        await phone.start()
        await phone.press("1")
        await phone.press("1")
        assert (await phone.press("256700123456")).startswith("CON You cannot send to yourself")
        assert (await phone.press("256700999999")).startswith("CON Recipient is not registered")

    @pytest.mark.asyncio
    async def test_insufficient_balance(self, dial, make_account) -> None:
        await make_account(balances={"UGX": Decimal("5000")})
        await make_account(phone=RECIPIENT)
        phone = dial()
        await phone.start()
        await phone.press("1")
        await phone.press("1")
        await phone.press(RECIPIENT)
        assert await phone.press("5000") == (
            "END Insufficient balance.\nAvailable: 5,000 UGX\nRequired: 5,050 UGX"
        )

    @pytest.mark.asyncio
    async def test_wrong_pin_moves_nothing(self, dial, make_account, ledger) -> None:
        sender = await make_account(balances={"UGX": Decimal("100000")})
        await make_account(phone=RECIPIENT)
        phone = dial()
        await phone.start()
        for token in ("1", "1", RECIPIENT, "10000"):
            await phone.press(token)
        assert (await phone.press("9999")).startswith("CON Incorrect PIN. 2 attempt(s) left.")
        assert await ledger.read_balance(sender.principal_id, "UGX") == Decimal("100000")

    @pytest.mark.asyncio
    async def test_double_submitted_pin_sends_once(
        self, dial, make_account, ledger, settings, db_scope
    ) -> None:
        sender = await make_account(balances={"UGX": Decimal("100000")})
        recipient = await make_account(phone=RECIPIENT)
        phone = dial()
        await phone.start()
        for token in ("1", "1", RECIPIENT, "10000"):
            await phone.press(token)
        text = "*".join([*phone.inputs, "1234"])

        responses = await asyncio.gather(
            phone.router.handle(phone.session_id, phone.phone, text),
            phone.router.handle(phone.session_id, phone.phone, text),
        )

        rendered = [r.render() for r in responses]
        assert sum(r.startswith("END Transaction successful!") for r in rendered) == 1
        assert await ledger.read_balance(sender.principal_id, "UGX") == Decimal("89900")
        assert await ledger.read_balance(recipient.principal_id, "UGX") == Decimal("10000")
        async with db_scope() as session:
            history = await WalletService(session, ledger, settings).recent_transactions(sender)
        assert [tx.type for tx in history] == [TransactionType.SEND.value]

    @pytest.mark.asyncio
    async def test_failed_fee_leg_pays_nobody(
        self, dial, make_account, ledger, settings, db_scope, monkeypatch
    ) -> None:
        sender = await make_account(balances={"UGX": Decimal("100000")})
        recipient = await make_account(phone=RECIPIENT)
        transfer = ledger.transfer

        async def refusing(sender_id, recipient_id, amount, asset):
            if recipient_id == settings.fee_principal:
                raise LedgerError("ledger unavailable")
            return await transfer(sender_id, recipient_id, amount, asset)

        monkeypatch.setattr(ledger, "transfer", refusing)
        phone = dial()
        await phone.start()
        for token in ("1", "1", RECIPIENT, "10000"):
            await phone.press(token)

        assert await phone.press("1234") == "END Transaction failed. Please try again later."
        assert await ledger.read_balance(recipient.principal_id, "UGX") == Decimal("0")
        assert await ledger.read_balance(sender.principal_id, "UGX") == Decimal("100000")
        async with db_scope() as session:
            history = await WalletService(session, ledger, settings).recent_transactions(sender)
        assert history == []


class TestCashFlows:
    @pytest.mark.asyncio
    async def test_deposit(self, dial, make_account, make_agent, sms) -> None:
        await make_account()
        await make_agent()
        phone = dial()
        await phone.start()
        await phone.press("1")

        assert await phone.press("3") == "CON Enter amount (UGX):"
        assert (await phone.press("500")).startswith("CON Amount must be between 1,000 and")
        picker = await phone.press("50000")
        assert picker == (
            "CON Select an agent:\n1. Kampala Central Agent - Kampala\n0. Back | 9. Menu"
        )
        assert (await phone.press("1")).startswith("CON Deposit 50,000 UGX\nAgent: Kampala")
        done = await phone.press("1234")

        assert done.startswith("END Deposit request created.\nCode: DEP-")
        code = re.search(r"DEP-[A-Z0-9]{6}", done).group(0)
        assert code in sms.outbox[-1][1]

    @pytest.mark.asyncio
    async def test_back_from_agent_picker(self, dial, make_account, make_agent) -> None:
        await make_account()
        await make_agent()
        phone = dial()
        await phone.start()
        for token in ("1", "3", "50000"):
            await phone.press(token)
        assert (await phone.press("0")).startswith("CON Local Currency (UGX)")

    @pytest.mark.asyncio
    async def test_non_ascii_digit_is_invalid_agent(self, dial, make_account, make_agent) -> None:
        await make_account()
        await make_agent()
        phone = dial()
        await phone.start()
        for token in ("1", "3", "50000"):
            await phone.press(token)
        assert (await phone.press("¹")).startswith(
            "CON Invalid option. Please try again:\nSelect an agent:"
        )

    @pytest.mark.asyncio
    async def test_withdraw(
        self, dial, make_account, make_agent, db_scope, ledger, settings
    ) -> None:
        account = await make_account(balances={"UGX": Decimal("100000")})
        await make_agent()
        phone = dial()
        await phone.start()
        for token in ("1", "4", "20000"):
            await phone.press(token)
        assert (await phone.press("1")).startswith(
            "CON Withdraw 20,000 UGX\nFee: 200 UGX\nAgent: Kampala Central Agent"
        )
        done = await phone.press("1234")

        assert done.startswith("END Withdrawal code: WD-")
        assert "Valid for 24 hours." in done
        async with db_scope() as session:
            history = await WalletService(session, ledger, settings).recent_transactions(account)
        assert [tx.type for tx in history] == [TransactionType.WITHDRAW.value]

    @pytest.mark.asyncio
    async def test_no_agents(self, dial, make_account) -> None:
        await make_account()
        phone = dial()
        await phone.start()
        await phone.press("1")
        await phone.press("3")
        assert await phone.press("50000") == (
            "END No agents available right now. Please try again later."
        )


class TestFindAgent:
    @pytest.mark.asyncio
    async def test_agent_details(self, dial, make_account, make_agent) -> None:
        await make_account()
        await make_agent()
        await make_agent(business_name="Entebbe Road Agent", city="Entebbe")
        phone = dial()
        await phone.start()
        await phone.press("1")

        listing = await phone.press("6")
        assert "1. Kampala Central Agent - Kampala" in listing
        assert "2. Entebbe Road Agent - Entebbe" in listing
        assert await phone.press("2") == "END Entebbe Road Agent\nEntebbe\nPhone: 256770000002"


class TestHistory:
    @pytest.mark.asyncio
    async def test_empty_history(self, dial, make_account) -> None:
        await make_account()
        phone = dial()
        await phone.start()
        await phone.press("1")
        await phone.press("5")
        assert await phone.press("1234") == "CON No transactions yet.\n0. Back | 9. Menu"
