"""Crypto flows for both assets: buy and sell through an agent, send to
another user, withdraw to an external address."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from afritokeni_ussd.domain.navigation import CRYPTO_MENUS
from afritokeni_ussd.domain.phone import normalize_phone
from afritokeni_ussd.domain.session import CryptoTradeFlow, CryptoTransferFlow
from afritokeni_ussd.i18n import MessageKey as K
from afritokeni_ussd.ussd.handlers.common import (
    agent_menu,
    confirm_with_pin,
    fmt_asset,
    fmt_local,
    invalid_option,
    parse_amount,
    pick_agent,
    send_receipt,
)
from afritokeni_ussd.ussd.responses import HandlerResult, UssdResponse

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from afritokeni_ussd.domain.enums import Menu
    from afritokeni_ussd.infrastructure.database.orm_models import EscrowAgreement
    from afritokeni_ussd.ussd.context import HandlerContext

ADDRESS_PATTERN = re.compile(r"^[A-Za-z0-9._:-]{10,100}$")

AMOUNT_IN_LOCAL = "1"
AMOUNT_IN_ASSET = "2"


def _insufficient(
    ctx: HandlerContext, available: str, required: str, unit: str
) -> UssdResponse:
    return UssdResponse.end_with(
        ctx.t(K.INSUFFICIENT_BALANCE, available=available, required=required, unit=unit)
    )


async def _trade_created(ctx: HandlerContext, flow: CryptoTradeFlow, agreement: EscrowAgreement) -> UssdResponse:
    values = {
        "code": agreement.exchange_code,
        "agent": flow.agent.business_name,
        "hours": ctx.settings.escrow_timeout_hours,
        "asset": flow.asset.value,
        "asset_amount": fmt_asset(flow.asset_amount),
        "local": fmt_local(flow.local_amount),
        "currency": ctx.currency,
    }
    await send_receipt(ctx, ctx.session.phone_number, ctx.t(K.SMS_TRADE, **values))
    return UssdResponse.end_with(ctx.t(K.TRADE_CREATED, **values))


async def _choose_agent(ctx: HandlerContext, flow: CryptoTradeFlow, next_step: int) -> UssdResponse:
    flow.agents = await ctx.agents.options(ctx.settings.agent_choices_shown)
    if not flow.agents:
        return UssdResponse.end_with(ctx.t(K.NO_AGENTS))
    ctx.session.continue_flow(ctx.session.current_menu, next_step)
    return UssdResponse.continue_with(agent_menu(ctx, flow.agents))


# ---------------------------------------------------------------------------
# Buy: local amount -> agent -> PIN
# ---------------------------------------------------------------------------


async def buy(ctx: HandlerContext, token: str) -> HandlerResult:
    session = ctx.session
    flow = session.flow
    assert isinstance(flow, CryptoTradeFlow)
    currency = ctx.currency
    asset = flow.asset

    if session.step == 0:
        session.continue_flow(session.current_menu, 1)
        return UssdResponse.continue_with(ctx.t(K.BUY_ENTER_AMOUNT, currency=currency))

    if session.step == 1:
        amount = parse_amount(token)
        if amount is None:
            return UssdResponse.continue_with(ctx.t(K.INVALID_AMOUNT, unit=currency))
        minimum = ctx.settings.buy_min_local_amount
        if amount < minimum:
            return UssdResponse.continue_with(
                ctx.t(K.AMOUNT_BELOW_MINIMUM, minimum=fmt_local(minimum), unit=currency)
            )
        quote = await ctx.exchange.quote_buy(asset, currency, amount)
        flow.local_amount, flow.asset_amount, flow.fee = amount, quote.asset_amount, quote.fee
        return await _choose_agent(ctx, flow, 2)

    if session.step == 2:
        agent = pick_agent(flow.agents, token)
        if agent is None:
            return invalid_option(ctx, agent_menu(ctx, flow.agents))
        flow.agent = agent
        session.continue_flow(session.current_menu, 3)
        return UssdResponse.continue_with(
            ctx.t(
                K.BUY_CONFIRM,
                asset=asset.value,
                asset_amount=fmt_asset(flow.asset_amount),
                local=fmt_local(flow.local_amount),
                currency=currency,
                fee=fmt_local(flow.fee),
                agent=agent.business_name,
            )
        )

    denied = await confirm_with_pin(ctx, token, flow)
    if denied is not None:
        return denied
    quote = await ctx.exchange.quote_buy(asset, currency, flow.local_amount)
    flow.asset_amount = quote.asset_amount
    agreement = await ctx.exchange.open_buy(await ctx.account(), asset, quote, flow.agent)
    return await _trade_created(ctx, flow, agreement)


# ---------------------------------------------------------------------------
# Sell: amount type -> amount -> agent -> PIN
# ---------------------------------------------------------------------------


async def sell(ctx: HandlerContext, token: str) -> HandlerResult:
    session = ctx.session
    flow = session.flow
    assert isinstance(flow, CryptoTradeFlow)
    currency = ctx.currency
    asset = flow.asset
    amount_type_prompt = ctx.t(K.SELL_AMOUNT_TYPE, asset=asset.value, currency=currency)

    if session.step == 0:
        session.continue_flow(session.current_menu, 1)
        return UssdResponse.continue_with(amount_type_prompt)

    if session.step == 1:
        if token not in (AMOUNT_IN_LOCAL, AMOUNT_IN_ASSET):
            return invalid_option(ctx, amount_type_prompt)
        flow.amount_in_local = token == AMOUNT_IN_LOCAL
        session.continue_flow(session.current_menu, 2)
        unit = currency if flow.amount_in_local else asset.value
        return UssdResponse.continue_with(ctx.t(K.ENTER_AMOUNT, unit=unit))

    if session.step == 2:
        unit = currency if flow.amount_in_local else asset.value
        amount = parse_amount(token)
        if amount is None:
            return UssdResponse.continue_with(ctx.t(K.INVALID_AMOUNT, unit=unit))
        quote = await ctx.exchange.quote_sell(asset, currency, amount, flow.amount_in_local)
        minimum = ctx.settings.sell_min_local_amount
        if quote.asset_amount <= 0 or quote.local_amount < minimum:
            return UssdResponse.continue_with(
                ctx.t(K.AMOUNT_BELOW_MINIMUM, minimum=fmt_local(minimum), unit=currency)
            )
        available = await ctx.wallet.balance(await ctx.account(), asset.value)
        if available < quote.asset_amount:
            return _insufficient(
                ctx, fmt_asset(available), fmt_asset(quote.asset_amount), asset.value
            )
        flow.asset_amount, flow.local_amount, flow.fee = (
            quote.asset_amount,
            quote.local_amount,
            quote.fee,
        )
        return await _choose_agent(ctx, flow, 3)

    if session.step == 3:
        agent = pick_agent(flow.agents, token)
        if agent is None:
            return invalid_option(ctx, agent_menu(ctx, flow.agents))
        flow.agent = agent
        session.continue_flow(session.current_menu, 4)
        return UssdResponse.continue_with(
            ctx.t(
                K.SELL_CONFIRM,
                asset=asset.value,
                asset_amount=fmt_asset(flow.asset_amount),
                local=fmt_local(flow.local_amount),
                currency=currency,
                fee=fmt_local(flow.fee),
                agent=agent.business_name,
            )
        )

    denied = await confirm_with_pin(ctx, token, flow)
    if denied is not None:
        return denied
    quote = await ctx.exchange.quote_sell(asset, currency, flow.asset_amount, amount_in_local=False)
    flow.local_amount = quote.local_amount
    agreement = await ctx.exchange.open_sell(await ctx.account(), asset, quote, flow.agent)
    return await _trade_created(ctx, flow, agreement)


# ---------------------------------------------------------------------------
# Send to a user / withdraw to an address: destination -> amount -> PIN
# ---------------------------------------------------------------------------


async def send(ctx: HandlerContext, token: str) -> HandlerResult:
    session = ctx.session
    flow = session.flow
    assert isinstance(flow, CryptoTransferFlow)
    asset = flow.asset

    if session.step == 0:
        session.continue_flow(session.current_menu, 1)
        return UssdResponse.continue_with(ctx.t(K.ENTER_RECIPIENT_PHONE))

    if session.step == 1:
        phone = normalize_phone(token)
        if phone is None:
            return UssdResponse.continue_with(ctx.t(K.INVALID_PHONE))
        if phone == session.phone_number:
            return UssdResponse.continue_with(ctx.t(K.CANNOT_SEND_TO_SELF))
        if await ctx.accounts.find_by_phone(phone) is None:
            return UssdResponse.continue_with(ctx.t(K.RECIPIENT_NOT_FOUND))
        flow.destination = phone
        session.continue_flow(session.current_menu, 2)
        return UssdResponse.continue_with(ctx.t(K.ENTER_AMOUNT, unit=asset.value))

    if session.step == 2:
        response = await _transfer_amount(ctx, flow, token)
        if response is not None:
            return response
        return UssdResponse.continue_with(
            ctx.t(
                K.CRYPTO_SEND_CONFIRM,
                amount=fmt_asset(flow.amount),
                asset=asset.value,
                destination=f"+{flow.destination}",
            )
        )

    denied = await confirm_with_pin(ctx, token, flow)
    if denied is not None:
        return denied
    recipient = await ctx.accounts.get_by_phone(flow.destination)
    tx = await ctx.wallet.crypto_send(await ctx.account(), recipient, asset, flow.amount)
    return UssdResponse.end_with(
        ctx.t(
            K.CRYPTO_SENT,
            amount=fmt_asset(flow.amount),
            asset=asset.value,
            destination=recipient.phone_or_email,
            reference=tx.reference,
        )
    )


async def withdraw(ctx: HandlerContext, token: str) -> HandlerResult:
    session = ctx.session
    flow = session.flow
    assert isinstance(flow, CryptoTransferFlow)
    asset = flow.asset

    if session.step == 0:
        session.continue_flow(session.current_menu, 1)
        return UssdResponse.continue_with(ctx.t(K.ENTER_ADDRESS, asset=asset.value))

    if session.step == 1:
        if not ADDRESS_PATTERN.match(token):
            return UssdResponse.continue_with(ctx.t(K.INVALID_ADDRESS, asset=asset.value))
        flow.destination = token
        session.continue_flow(session.current_menu, 2)
        return UssdResponse.continue_with(ctx.t(K.ENTER_AMOUNT, unit=asset.value))

    if session.step == 2:
        response = await _transfer_amount(ctx, flow, token)
        if response is not None:
            return response
        return UssdResponse.continue_with(
            ctx.t(
                K.CRYPTO_WITHDRAW_CONFIRM,
                amount=fmt_asset(flow.amount),
                asset=asset.value,
                destination=flow.destination,
            )
        )

    denied = await confirm_with_pin(ctx, token, flow)
    if denied is not None:
        return denied
    tx = await ctx.wallet.crypto_withdraw(
        await ctx.account(), asset, flow.destination, flow.amount
    )
    return UssdResponse.end_with(
        ctx.t(
            K.CRYPTO_WITHDRAWN,
            amount=fmt_asset(flow.amount),
            asset=asset.value,
            reference=tx.reference,
        )
    )


async def _transfer_amount(
    ctx: HandlerContext, flow: CryptoTransferFlow, token: str
) -> UssdResponse | None:
    """Amount step shared by send and withdraw; None moves on to confirmation."""
    asset = flow.asset
    amount = parse_amount(token)
    if amount is None:
        return UssdResponse.continue_with(ctx.t(K.INVALID_AMOUNT, unit=asset.value))
    available = await ctx.wallet.balance(await ctx.account(), asset.value)
    if available < amount:
        return _insufficient(ctx, fmt_asset(available), fmt_asset(amount), asset.value)
    flow.amount = amount
    ctx.session.continue_flow(ctx.session.current_menu, 3)
    return None


def crypto_flows() -> dict[Menu, Callable[[HandlerContext, str], Awaitable[HandlerResult]]]:
    """Handlers for every asset's buy, sell, send and withdraw menus."""
    handlers = {}
    for menus in CRYPTO_MENUS.values():
        handlers[menus.buy] = buy
        handlers[menus.sell] = sell
        handlers[menus.send] = send
        handlers[menus.withdraw] = withdraw
    return handlers

