"""Local currency flows: send money, cash deposit, cash withdrawal.

Each flow collects its fields into the session's typed flow model and closes
with a PIN confirmation before any value moves.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from afritokeni_ussd.domain.enums import Menu
from afritokeni_ussd.domain.phone import normalize_phone
from afritokeni_ussd.domain.session import CashFlow, SendMoneyFlow
from afritokeni_ussd.i18n import MessageKey as K
from afritokeni_ussd.ussd.handlers.common import (
    agent_menu,
    confirm_with_pin,
    fmt_local,
    invalid_option,
    parse_amount,
    pick_agent,
    send_receipt,
)
from afritokeni_ussd.ussd.responses import HandlerResult, UssdResponse

if TYPE_CHECKING:
    from afritokeni_ussd.ussd.context import HandlerContext


# ---------------------------------------------------------------------------
# Send money
# ---------------------------------------------------------------------------


async def send_money(ctx: HandlerContext, token: str) -> HandlerResult:
    session = ctx.session
    flow = session.flow
    assert isinstance(flow, SendMoneyFlow)
    currency = ctx.currency

    if session.step == 0:
        session.continue_flow(Menu.SEND_MONEY, 1)
        return UssdResponse.continue_with(ctx.t(K.ENTER_RECIPIENT_PHONE))

    if session.step == 1:
        phone = normalize_phone(token)
        if phone is None:
            return UssdResponse.continue_with(ctx.t(K.INVALID_PHONE))
        if phone == session.phone_number:
            return UssdResponse.continue_with(ctx.t(K.CANNOT_SEND_TO_SELF))
        if await ctx.accounts.find_by_phone(phone) is None:
            return UssdResponse.continue_with(ctx.t(K.RECIPIENT_NOT_FOUND))
        flow.recipient_phone = phone
        session.continue_flow(Menu.SEND_MONEY, 2)
        return UssdResponse.continue_with(ctx.t(K.ENTER_AMOUNT, unit=currency))

    if session.step == 2:
        amount = parse_amount(token)
        if amount is None:
            return UssdResponse.continue_with(ctx.t(K.INVALID_AMOUNT, unit=currency))
        fee = ctx.wallet.transfer_fee(amount)
        available = await ctx.wallet.balance(await ctx.account())
        if available < amount + fee:
            return UssdResponse.end_with(
                ctx.t(
                    K.INSUFFICIENT_BALANCE,
                    available=fmt_local(available),
                    required=fmt_local(amount + fee),
                    unit=currency,
                )
            )
        flow.amount, flow.fee = amount, fee
        session.continue_flow(Menu.SEND_MONEY, 3)
        return UssdResponse.continue_with(
            ctx.t(
                K.SEND_CONFIRM,
                amount=fmt_local(amount),
                currency=currency,
                recipient=f"+{flow.recipient_phone}",
                fee=fmt_local(fee),
                total=fmt_local(amount + fee),
            )
        )

    denied = await confirm_with_pin(ctx, token, flow)
    if denied is not None:
        return denied

    sender = await ctx.account()
    recipient = await ctx.accounts.get_by_phone(flow.recipient_phone)
    tx = await ctx.wallet.send_money(sender, recipient, flow.amount)

    values = {
        "amount": fmt_local(flow.amount),
        "currency": currency,
        "fee": fmt_local(tx.fee),
        "reference": tx.reference,
    }
    await send_receipt(
        ctx,
        session.phone_number,
        ctx.t(K.SMS_SEND_SENDER, recipient=recipient.phone_or_email, **values),
    )
    await send_receipt(
        ctx,
        flow.recipient_phone,
        ctx.t(K.SMS_SEND_RECIPIENT, sender=sender.phone_or_email, **values),
    )
    return UssdResponse.end_with(
        ctx.t(
            K.SEND_SUCCESS,
            amount=values["amount"],
            currency=currency,
            recipient=recipient.full_name,
            reference=tx.reference,
        )
    )


# ---------------------------------------------------------------------------
# Deposit & withdraw
# ---------------------------------------------------------------------------


async def deposit(ctx: HandlerContext, token: str) -> HandlerResult:
    return await _cash_flow(ctx, token, withdraw=False)


async def withdraw(ctx: HandlerContext, token: str) -> HandlerResult:
    return await _cash_flow(ctx, token, withdraw=True)


async def _cash_flow(ctx: HandlerContext, token: str, *, withdraw: bool) -> HandlerResult:
    """Amount, agent, PIN. Deposits and withdrawals differ only in limits and fee."""
    session = ctx.session
    menu = session.current_menu
    flow = session.flow
    assert isinstance(flow, CashFlow)
    settings = ctx.settings
    currency = ctx.currency

    if session.step == 0:
        session.continue_flow(menu, 1)
        return UssdResponse.continue_with(ctx.t(K.ENTER_AMOUNT, unit=currency))

    if session.step == 1:
        amount = parse_amount(token)
        if amount is None:
            return UssdResponse.continue_with(ctx.t(K.INVALID_AMOUNT, unit=currency))
        if withdraw:
            minimum, maximum = settings.withdraw_min_amount, settings.withdraw_max_amount
        else:
            minimum, maximum = settings.deposit_min_amount, settings.deposit_max_amount
        if not minimum <= amount <= maximum:
            return UssdResponse.continue_with(
                ctx.t(
                    K.AMOUNT_OUT_OF_RANGE,
                    minimum=fmt_local(minimum),
                    maximum=fmt_local(maximum),
                    unit=currency,
                )
            )
        if withdraw:
            flow.fee = ctx.wallet.transfer_fee(amount)
            available = await ctx.wallet.balance(await ctx.account())
            if available < amount + flow.fee:
                return UssdResponse.end_with(
                    ctx.t(
                        K.INSUFFICIENT_BALANCE,
                        available=fmt_local(available),
                        required=fmt_local(amount + flow.fee),
                        unit=currency,
                    )
                )
        flow.amount = amount
        flow.agents = await ctx.agents.options(settings.agent_choices_shown)
        if not flow.agents:
            return UssdResponse.end_with(ctx.t(K.NO_AGENTS))
        session.continue_flow(menu, 2)
        return UssdResponse.continue_with(agent_menu(ctx, flow.agents))

    if session.step == 2:
        agent = pick_agent(flow.agents, token)
        if agent is None:
            return invalid_option(ctx, agent_menu(ctx, flow.agents))
        flow.agent = agent
        session.continue_flow(menu, 3)
        if withdraw:
            prompt = ctx.t(
                K.WITHDRAW_CONFIRM,
                amount=fmt_local(flow.amount),
                currency=currency,
                fee=fmt_local(flow.fee),
                agent=agent.business_name,
            )
        else:
            prompt = ctx.t(
                K.DEPOSIT_CONFIRM,
                amount=fmt_local(flow.amount),
                currency=currency,
                agent=agent.business_name,
            )
        return UssdResponse.continue_with(prompt)

    denied = await confirm_with_pin(ctx, token, flow)
    if denied is not None:
        return denied

    account = await ctx.account()
    values = {
        "amount": fmt_local(flow.amount),
        "currency": currency,
        "agent": flow.agent.business_name,
    }
    if withdraw:
        tx = await ctx.wallet.create_withdrawal(account, flow.amount, flow.agent)
        hours = settings.withdrawal_code_ttl_hours
        await send_receipt(
            ctx, session.phone_number, ctx.t(K.SMS_WITHDRAW, code=tx.code, hours=hours, **values)
        )
        return UssdResponse.end_with(
            ctx.t(K.WITHDRAW_CREATED, code=tx.code, hours=hours, **values)
        )

    tx = await ctx.wallet.create_deposit_request(account, flow.amount, flow.agent)
    await send_receipt(ctx, session.phone_number, ctx.t(K.SMS_DEPOSIT, code=tx.code, **values))
    return UssdResponse.end_with(ctx.t(K.DEPOSIT_CREATED, code=tx.code, **values))
