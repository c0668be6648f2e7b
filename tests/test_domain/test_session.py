"""Tests for the session record and its typed flows."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from afritokeni_ussd.domain.enums import AssetType, Menu
from afritokeni_ussd.domain.session import (
    CashFlow,
    CryptoTradeFlow,
    CryptoTransferFlow,
    FindAgentFlow,
    NoFlow,
    PinCheckFlow,
    PinConfirmedFlow,
    SendMoneyFlow,
    UssdSession,
    fresh_flow,
)


def _session() -> UssdSession:
    return UssdSession(session_id="s1", phone_number="256700123456")


class TestFreshFlow:
    def test_flow_per_menu(self) -> None:
        assert isinstance(fresh_flow(Menu.SEND_MONEY), SendMoneyFlow)
        assert isinstance(fresh_flow(Menu.WITHDRAW), CashFlow)
        assert isinstance(fresh_flow(Menu.PIN_CHECK), PinCheckFlow)
        assert isinstance(fresh_flow(Menu.MAIN), NoFlow)

    def test_crypto_flows_carry_asset(self) -> None:
        trade = fresh_flow(Menu.USDC_SELL)
        assert isinstance(trade, CryptoTradeFlow)
        assert trade.asset is AssetType.CKUSDC
        transfer = fresh_flow(Menu.BTC_WITHDRAW)
        assert isinstance(transfer, CryptoTransferFlow)
        assert transfer.asset is AssetType.CKBTC

    @pytest.mark.parametrize(
        "menu",
        [
            Menu.PIN_CHECK,
            Menu.SEND_MONEY,
            Menu.DEPOSIT,
            Menu.WITHDRAW,
            Menu.BTC_BUY,
            Menu.USDC_SELL,
            Menu.BTC_SEND,
            Menu.USDC_WITHDRAW,
        ],
    )
    def test_pin_confirmed_menus_count_attempts(self, menu: Menu) -> None:
        flow = fresh_flow(menu)
        assert isinstance(flow, PinConfirmedFlow)
        assert flow.attempts == 0

    def test_lookup_flows_take_no_pin(self) -> None:
        assert isinstance(fresh_flow(Menu.FIND_AGENT), FindAgentFlow)
        assert not isinstance(fresh_flow(Menu.FIND_AGENT), PinConfirmedFlow)


class TestEnterAndContinue:
    def test_enter_discards_collected_fields(self) -> None:
        session = _session()
        session.enter(Menu.SEND_MONEY)
        session.flow.amount = Decimal("500")
        session.flow.attempts = 2

        session.enter(Menu.MAIN)
        session.enter(Menu.SEND_MONEY)

        assert session.flow.amount is None
        assert session.flow.attempts == 0

    def test_continue_keeps_collected_fields(self) -> None:
        session = _session()
        session.enter(Menu.SEND_MONEY)
        session.flow.amount = Decimal("500")
        session.continue_flow(Menu.SEND_MONEY, 3)
        assert session.step == 3
        assert session.flow.amount == Decimal("500")

    def test_session_facts_survive_navigation(self) -> None:
        session = _session()
        session.pin_verified = True
        session.preferred_currency = "KES"
        session.enter(Menu.BTC)
        assert session.pin_verified
        assert session.preferred_currency == "KES"


class TestSerialisation:
    def test_round_trip_keeps_flow_type(self) -> None:
        session = _session()
        session.enter(Menu.BTC_BUY)
        session.flow.local_amount = Decimal("20000")
        restored = UssdSession.model_validate_json(session.model_dump_json())
        assert isinstance(restored.flow, CryptoTradeFlow)
        assert restored.flow.local_amount == Decimal("20000")


class TestExpiry:
    def test_is_expired(self) -> None:
        start = datetime(2025, 3, 1, 9, 0, tzinfo=UTC)
        session = _session()
        session.touch(start)
        assert not session.is_expired(start + timedelta(seconds=180), 180)
        assert session.is_expired(start + timedelta(seconds=181), 180)
