"""ckBTC and ckUSDC flows over USSD, through to agent settlement."""

from __future__ import annotations

import re
from decimal import Decimal

import pytest

from afritokeni_ussd.domain.enums import EscrowStatus, ExchangeDirection
from afritokeni_ussd.services.escrow_service import EscrowService

FOOTER = "\n0. Back | 9. Menu"
BTC_ADDRESS = "bc1qxy2kgdygjrsqtzq2n0yrf2493p83kkfjhx0wlh"


def exchange_code(text: str) -> str:
    match = re.search(r"\b(?:BTC|USDC)-[A-Z0-9]{6}\b", text)
    assert match is not None, text
    return match.group(0)


class TestViews:
    @pytest.mark.asyncio
    async def test_balance_behind_pin(self, dial, make_account) -> None:
        await make_account(balances={"ckBTC": Decimal("0.01")})
        phone = dial()
        await phone.start()
        await phone.press("2")
        assert await phone.press("1") == "CON Enter your 4-digit PIN:"
        assert await phone.press("1234") == (
            "CON ckBTC balance:\n0.01 ckBTC\n~2,405,000 UGX" + FOOTER
        )

    @pytest.mark.asyncio
    async def test_receive_address(self, dial, make_account) -> None:
        await make_account()
        phone = dial()
        await phone.start()
        await phone.press("3")
        await phone.press("6")
        shown = await phone.press("1234")
        assert shown.startswith("CON Your ckUSDC deposit address:\nckusdc-")


class TestSell:
    @pytest.mark.asyncio
    async def test_sell_then_agent_settles(
        self, dial, make_account, make_agent, ledger, settings, sms, db_scope, clock
    ) -> None:
        account = await make_account(balances={"ckBTC": Decimal("0.01")})
        agent = await make_agent()
        phone = dial()
        await phone.start()
        await phone.press("2")

        assert await phone.press("4") == (
            "CON Sell ckBTC\n1. Amount in UGX\n2. Amount in ckBTC" + FOOTER
        )
        assert await phone.press("2") == "CON Enter amount (ckBTC):"
        assert (await phone.press("0.001")).startswith("CON Select an agent:")
        assert await phone.press("1") == (
            "CON Sell 0.001 ckBTC\nReceive 234,487.50 UGX (fee 6,012.50)\n"
            "Agent: Kampala Central Agent\nEnter PIN to confirm:"
        )
        done = await phone.press("1234")

        assert done.startswith("END Exchange code: BTC-")
        code = exchange_code(done)
        assert code in sms.outbox[-1][1]
        assert await ledger.read_balance(account.principal_id, "ckBTC") == Decimal("0.009")
        assert await ledger.read_balance(settings.escrow_principal, "ckBTC") == Decimal("0.001")

        async with db_scope() as session:
            escrow = EscrowService(session, settings.escrow_timeout_hours, clock)
            assert (await escrow.get_by_code(code)).status == EscrowStatus.FUNDED.value
            completed = await escrow.verify_and_complete(code, str(agent.id))
        assert completed.status == EscrowStatus.COMPLETED.value

    @pytest.mark.asyncio
    async def test_sell_below_minimum(self, dial, make_account, make_agent) -> None:
        await make_account(balances={"ckBTC": Decimal("0.01")})
        await make_agent()
        phone = dial()
        await phone.start()
        for token in ("2", "4", "1"):
            await phone.press(token)
        assert await phone.press("500") == "CON Minimum amount is 1,000 UGX.\nEnter amount (UGX):"

    @pytest.mark.asyncio
    async def test_sell_without_balance(self, dial, make_account, make_agent) -> None:
        await make_account()
        await make_agent()
        phone = dial()
        await phone.start()
        for token in ("2", "4", "2"):
            await phone.press(token)
        assert await phone.press("0.001") == (
            "END Insufficient balance.\nAvailable: 0 ckBTC\nRequired: 0.001 ckBTC"
        )


class TestBuy:
    @pytest.mark.asyncio
    async def test_buy_creates_pending_agreement(
        self, dial, make_account, make_agent, db_scope, settings, clock
    ) -> None:
        await make_account()
        agent = await make_agent()
        phone = dial()
        await phone.start()
        await phone.press("3")

        assert await phone.press("3") == "CON Enter amount to spend (UGX):"
        assert (await phone.press("5000")).startswith("CON Minimum amount is 10,000 UGX.")
        await phone.press("37000")
        assert await phone.press("1") == (
            "CON Buy 9.75 ckUSDC\nPay 37,000 UGX (fee 925)\n"
            "Agent: Kampala Central Agent\nEnter PIN to confirm:"
        )
        code = exchange_code(await phone.press("1234"))
        assert code.startswith("USDC-")

        async with db_scope() as session:
            agreement = await EscrowService(session, 24, clock).get_by_code(code)
        assert agreement.status == EscrowStatus.PENDING.value
        assert agreement.direction == ExchangeDirection.CASH_FOR_CRYPTO.value
        assert agreement.assigned_agent_id == str(agent.id)
        assert agreement.asset_amount == Decimal("9.75")


class TestTransfers:
    @pytest.mark.asyncio
    async def test_send_to_user(self, dial, make_account, ledger) -> None:
        await make_account(balances={"ckUSDC": Decimal("50")})
        recipient = await make_account(phone="256700654321")
        phone = dial()
        await phone.start()
        for token in ("3", "5"):
            await phone.press(token)
        assert await phone.press("256700654321") == "CON Enter amount (ckUSDC):"
        assert await phone.press("20") == (
            "CON Send 20 ckUSDC to +256700654321\nEnter PIN to confirm:"
        )
        done = await phone.press("1234")

        assert done.startswith("END Sent 20 ckUSDC to +256700654321.\nRef: sim-")
        assert await ledger.read_balance(recipient.principal_id, "ckUSDC") == Decimal("20")

    @pytest.mark.asyncio
    async def test_withdraw_to_address(self, dial, make_account, ledger) -> None:
        account = await make_account(balances={"ckBTC": Decimal("0.01")})
        phone = dial()
        await phone.start()
        await phone.press("2")

        assert await phone.press("7") == "CON Enter destination ckBTC address:" + FOOTER
        assert (await phone.press("short")).startswith("CON Invalid address.")
        assert await phone.press(BTC_ADDRESS) == "CON Enter amount (ckBTC):"
        await phone.press("0.002")
        done = await phone.press("1234")

        assert done.startswith("END Withdrawal of 0.002 ckBTC submitted.")
        assert await ledger.read_balance(account.principal_id, "ckBTC") == Decimal("0.008")
