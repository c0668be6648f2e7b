"""Helpers shared by the flow handlers: parsing, formatting, agent pickers and
the PIN confirmation that closes every value-moving flow."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from afritokeni_ussd.domain.enums import PinCheckResult
from afritokeni_ussd.domain.exceptions import DeliveryError
from afritokeni_ussd.i18n import MessageKey as K
from afritokeni_ussd.logging_config import get_logger
from afritokeni_ussd.ussd.responses import UssdResponse

if TYPE_CHECKING:
    from afritokeni_ussd.domain.session import AgentOption, PinConfirmedFlow
    from afritokeni_ussd.ussd.context import HandlerContext

logger = get_logger(__name__)

_ASSET_PLACES = Decimal("0.00000001")


def parse_amount(token: str) -> Decimal | None:
    """Positive decimal amount, or None for anything else."""
    token = token.strip().replace(",", "")
    if not token or token.count(".") > 1 or not token.replace(".", "").isdigit():
        return None
    try:
        amount = Decimal(token)
    except InvalidOperation:
        return None
    return amount if amount > 0 else None


def fmt_local(amount: Decimal) -> str:
    """Local currency with thousands separators, e.g. ``750,000``."""
    if amount == amount.to_integral_value():
        return f"{amount:,.0f}"
    return f"{amount:,.2f}"


def fmt_asset(amount: Decimal) -> str:
    """Asset amount without trailing zeros, e.g. ``0.005``."""
    text = f"{amount.quantize(_ASSET_PLACES):f}"
    return text.rstrip("0").rstrip(".") if "." in text else text


def agent_menu(ctx: HandlerContext, agents: list[AgentOption]) -> str:
    lines = [ctx.t(K.SELECT_AGENT)]
    lines += [
        ctx.t(K.AGENT_LINE, index=i, name=agent.business_name, location=agent.location)
        for i, agent in enumerate(agents, start=1)
    ]
    return "\n".join(lines)


def pick_agent(agents: list[AgentOption], token: str) -> AgentOption | None:
    if not (token.isascii() and token.isdigit()):
        return None
    index = int(token)
    if 1 <= index <= len(agents):
        return agents[index - 1]
    return None


def invalid_option(ctx: HandlerContext, prompt: str) -> UssdResponse:
    return UssdResponse.continue_with(f"{ctx.t(K.INVALID_OPTION)}\n{prompt}")


async def confirm_with_pin(
    ctx: HandlerContext, token: str, flow: PinConfirmedFlow
) -> UssdResponse | None:
    """Check the confirmation PIN of a value-moving flow.

    Returns None when the PIN is right. Otherwise returns the response to
    show: a re-prompt, or an END once the flow's attempts run out or the
    account locks. ``flow.attempts`` is updated in place.
    """
    account = await ctx.account()
    outcome = await ctx.pin_gate.check(account, token, flow.attempts)
    flow.attempts = outcome.attempts

    if outcome.result is PinCheckResult.VERIFIED:
        ctx.session.pin_verified = True
        return None
    if outcome.result is PinCheckResult.MALFORMED:
        return UssdResponse.continue_with(ctx.t(K.PIN_INVALID_FORMAT))
    if outcome.result is PinCheckResult.MISMATCH:
        return UssdResponse.continue_with(ctx.t(K.PIN_INCORRECT, remaining=outcome.remaining))
    if outcome.result is PinCheckResult.LOCKED:
        return UssdResponse.end_with(ctx.t(K.ACCOUNT_LOCKED, minutes=outcome.locked_minutes))
    return UssdResponse.end_with(ctx.t(K.PIN_TOO_MANY))


async def send_receipt(ctx: HandlerContext, phone_number: str, message: str) -> None:
    """Text a receipt after value already moved. A failed receipt is logged only."""
    try:
        await ctx.collaborators.sms.send(phone_number, message)
    except DeliveryError as exc:
        logger.warning("ussd.receipt_undelivered", phone=phone_number, error=exc.message)
