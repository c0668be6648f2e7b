"""Menu-choice screens and the read-only views hanging off them."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from afritokeni_ussd.domain.enums import Language, Menu
from afritokeni_ussd.domain.navigation import CRYPTO_MENUS, MENU_CHOICES, asset_for_menu
from afritokeni_ussd.domain.session import FindAgentFlow
from afritokeni_ussd.i18n import MessageKey as K
from afritokeni_ussd.i18n import translate
from afritokeni_ussd.ussd.handlers.common import (
    agent_menu,
    fmt_asset,
    fmt_local,
    invalid_option,
    pick_agent,
)
from afritokeni_ussd.ussd.responses import HandlerResult, Redirect, UssdResponse

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from afritokeni_ussd.ussd.context import HandlerContext

LANGUAGE_CHOICES = {
    "1": Language.ENGLISH,
    "2": Language.LUGANDA,
    "3": Language.SWAHILI,
}


async def _choose(ctx: HandlerContext, token: str, prompt: str) -> HandlerResult:
    """Show ``prompt`` or follow the chosen digit through MENU_CHOICES."""
    if not token:
        return UssdResponse.continue_with(prompt)
    target = MENU_CHOICES[ctx.session.current_menu].get(token)
    if target is None:
        return invalid_option(ctx, prompt)
    return Redirect(target)


async def _view(ctx: HandlerContext, token: str, render: Callable[[], Awaitable[str]]) -> HandlerResult:
    """A read-only screen. Only the navigation footer leads away from it."""
    text = await render()
    if token:
        return invalid_option(ctx, text)
    return UssdResponse.continue_with(text)


# ---------------------------------------------------------------------------
# Top level
# ---------------------------------------------------------------------------


async def main_menu(ctx: HandlerContext, token: str) -> HandlerResult:
    return await _choose(ctx, token, ctx.t(K.MAIN_MENU, currency=ctx.currency))


async def help_menu(ctx: HandlerContext, token: str) -> HandlerResult:
    return await _choose(ctx, token, ctx.t(K.HELP_MENU))


async def language_selection(ctx: HandlerContext, token: str) -> HandlerResult:
    prompt = ctx.t(K.LANGUAGE_MENU)
    if not token:
        return UssdResponse.continue_with(prompt)
    language = LANGUAGE_CHOICES.get(token)
    if language is None:
        return invalid_option(ctx, prompt)
    ctx.session.language = language
    await ctx.accounts.update_language(await ctx.account(), language)
    return Redirect(Menu.MAIN, notice=translate(K.LANGUAGE_SET, language))


# ---------------------------------------------------------------------------
# Local currency
# ---------------------------------------------------------------------------


async def local_currency_menu(ctx: HandlerContext, token: str) -> HandlerResult:
    return await _choose(ctx, token, ctx.t(K.LOCAL_CURRENCY_MENU, currency=ctx.currency))


async def check_balance(ctx: HandlerContext, token: str) -> HandlerResult:
    async def render() -> str:
        balance = await ctx.wallet.balance(await ctx.account())
        return ctx.t(K.BALANCE, amount=fmt_local(balance), currency=ctx.currency)

    return await _view(ctx, token, render)


async def transaction_history(ctx: HandlerContext, token: str) -> HandlerResult:
    async def render() -> str:
        transactions = await ctx.wallet.recent_transactions(await ctx.account())
        if not transactions:
            return ctx.t(K.NO_TRANSACTIONS)
        lines = [ctx.t(K.TRANSACTIONS_HEADER)]
        for i, tx in enumerate(transactions, start=1):
            amount = fmt_local(tx.amount) if len(tx.currency) == 3 else fmt_asset(tx.amount)
            lines.append(f"{i}. {tx.type} {amount} {tx.currency}")
        return "\n".join(lines)

    return await _view(ctx, token, render)


async def find_agent(ctx: HandlerContext, token: str) -> HandlerResult:
    session = ctx.session
    flow = session.flow
    assert isinstance(flow, FindAgentFlow)

    if session.step == 0:
        flow.agents = await ctx.agents.options(ctx.settings.agent_lookup_limit)
        if not flow.agents:
            return UssdResponse.end_with(ctx.t(K.NO_AGENTS))
        session.continue_flow(Menu.FIND_AGENT, 1)
        return UssdResponse.continue_with(agent_menu(ctx, flow.agents))

    agent = pick_agent(flow.agents, token)
    if agent is None:
        return invalid_option(ctx, agent_menu(ctx, flow.agents))
    return UssdResponse.end_with(
        ctx.t(
            K.AGENT_DETAILS,
            name=agent.business_name,
            location=agent.location,
            phone=agent.phone_number or "-",
        )
    )


# ---------------------------------------------------------------------------
# Crypto
# ---------------------------------------------------------------------------


async def crypto_menu(ctx: HandlerContext, token: str) -> HandlerResult:
    asset = asset_for_menu(ctx.session.current_menu)
    return await _choose(ctx, token, ctx.t(K.CRYPTO_MENU, asset=asset.value))


async def crypto_balance(ctx: HandlerContext, token: str) -> HandlerResult:
    asset = asset_for_menu(ctx.session.current_menu)

    async def render() -> str:
        balance = await ctx.wallet.balance(await ctx.account(), asset.value)
        rate = await ctx.exchange.rate(asset, ctx.currency)
        return ctx.t(
            K.CRYPTO_BALANCE,
            asset=asset.value,
            amount=fmt_asset(balance),
            local=fmt_local((balance * rate).quantize(Decimal("1"))),
            currency=ctx.currency,
        )

    return await _view(ctx, token, render)


async def crypto_rate(ctx: HandlerContext, token: str) -> HandlerResult:
    asset = asset_for_menu(ctx.session.current_menu)

    async def render() -> str:
        rate = await ctx.exchange.rate(asset, ctx.currency)
        return ctx.t(K.CRYPTO_RATE, asset=asset.value, rate=fmt_local(rate), currency=ctx.currency)

    return await _view(ctx, token, render)


async def crypto_receive(ctx: HandlerContext, token: str) -> HandlerResult:
    asset = asset_for_menu(ctx.session.current_menu)

    async def render() -> str:
        address = await ctx.wallet.deposit_address(await ctx.account(), asset)
        return ctx.t(K.RECEIVE_ADDRESS, asset=asset.value, address=address)

    return await _view(ctx, token, render)


def crypto_views() -> dict[Menu, Callable[[HandlerContext, str], Awaitable[HandlerResult]]]:
    """Handlers for every asset's menu and read-only screens."""
    handlers = {}
    for menus in CRYPTO_MENUS.values():
        handlers[menus.root] = crypto_menu
        handlers[menus.balance] = crypto_balance
        handlers[menus.rate] = crypto_rate
        handlers[menus.receive] = crypto_receive
    return handlers
