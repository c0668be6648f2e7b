"""Onboarding screens: registration check, name, code, PIN setup and the PIN
gate in front of sensitive menus."""

from __future__ import annotations

from typing import TYPE_CHECKING

from afritokeni_ussd.domain.enums import CodeCheckResult, Language, Menu
from afritokeni_ussd.domain.exceptions import DeliveryError
from afritokeni_ussd.domain.pin import is_well_formed
from afritokeni_ussd.domain.session import PinCheckFlow, RegistrationFlow
from afritokeni_ussd.i18n import MessageKey as K
from afritokeni_ussd.logging_config import get_logger
from afritokeni_ussd.ussd.handlers.common import confirm_with_pin
from afritokeni_ussd.ussd.responses import HandlerResult, Redirect, UssdResponse

if TYPE_CHECKING:
    from afritokeni_ussd.ussd.context import HandlerContext

logger = get_logger(__name__)

MIN_NAME_LENGTH = 3


async def registration_check(ctx: HandlerContext, token: str) -> HandlerResult:
    session = ctx.session
    account = await ctx.accounts.find_by_phone(session.phone_number)
    if account is None:
        logger.info("ussd.unregistered_caller", phone=session.phone_number)
        session.enter(Menu.USER_REGISTRATION, 1)
        return UssdResponse.continue_with(ctx.t(K.WELCOME_UNREGISTERED))

    ctx.use_account(account)
    session.preferred_currency = account.preferred_currency
    if account.language:
        session.language = Language(account.language)
    if account.pin_hash is None:
        session.enter(Menu.PIN_SETUP, 1)
        return UssdResponse.continue_with(ctx.t(K.PIN_SETUP_PROMPT))
    return Redirect(Menu.MAIN)


async def user_registration(ctx: HandlerContext, token: str) -> HandlerResult:
    session = ctx.session
    if session.step == 0 or not token:
        session.continue_flow(Menu.USER_REGISTRATION, 1)
        return UssdResponse.continue_with(ctx.t(K.WELCOME_UNREGISTERED))

    name = " ".join(token.split())
    if len(name) < MIN_NAME_LENGTH:
        return UssdResponse.continue_with(ctx.t(K.INVALID_NAME))
    parts = name.split(" ")
    if len(parts) < 2:
        return UssdResponse.continue_with(ctx.t(K.NAME_NEEDS_TWO_PARTS))

    flow = session.flow
    assert isinstance(flow, RegistrationFlow)
    flow.first_name = parts[0]
    flow.last_name = " ".join(parts[1:])

    try:
        await ctx.verification.start(session.phone_number, session.language)
    except DeliveryError as exc:
        logger.error("ussd.code_delivery_failed", phone=session.phone_number, error=exc.message)
        return UssdResponse.end_with(ctx.t(K.CODE_DELIVERY_FAILED))

    session.continue_flow(Menu.VERIFICATION, 1)
    return UssdResponse.continue_with(
        ctx.t(K.CODE_SENT, first_name=flow.first_name, phone=session.phone_number)
    )


async def verification(ctx: HandlerContext, token: str) -> HandlerResult:
    session = ctx.session
    flow = session.flow
    if not isinstance(flow, RegistrationFlow) or flow.first_name is None:
        # Name lost with the session; registration has to start over.
        return UssdResponse.end_with(ctx.t(K.CODE_EXPIRED))

    result = await ctx.verification.check(session.phone_number, token)
    if result is CodeCheckResult.ACCEPTED:
        account = await ctx.accounts.register(
            session.phone_number, flow.first_name, flow.last_name or "", session.language
        )
        ctx.use_account(account)
        session.preferred_currency = account.preferred_currency
        session.enter(Menu.PIN_SETUP, 1)
        return UssdResponse.continue_with(ctx.t(K.VERIFICATION_SUCCESS))
    if result in (CodeCheckResult.EXPIRED, CodeCheckResult.MISSING):
        return UssdResponse.end_with(ctx.t(K.CODE_EXPIRED))
    if result is CodeCheckResult.EXHAUSTED:
        return UssdResponse.end_with(ctx.t(K.CODE_TOO_MANY))

    flow.attempts += 1
    remaining = ctx.settings.verification_max_attempts - flow.attempts
    if remaining <= 0:
        return UssdResponse.end_with(ctx.t(K.CODE_TOO_MANY))
    return UssdResponse.continue_with(ctx.t(K.CODE_INVALID, remaining=remaining))


async def pin_setup(ctx: HandlerContext, token: str) -> HandlerResult:
    session = ctx.session
    if session.step == 0 or not token:
        session.continue_flow(Menu.PIN_SETUP, 1)
        return UssdResponse.continue_with(ctx.t(K.PIN_SETUP_PROMPT))
    if not is_well_formed(token):
        return UssdResponse.continue_with(ctx.t(K.PIN_INVALID_FORMAT))

    await ctx.accounts.set_pin(await ctx.account(), token)
    # A freshly set PIN does not count as verified for this session.
    session.pin_verified = False
    return Redirect(Menu.MAIN, notice=ctx.t(K.PIN_SET_SUCCESS))


async def pin_check(ctx: HandlerContext, token: str) -> HandlerResult:
    session = ctx.session
    flow = session.flow
    assert isinstance(flow, PinCheckFlow)
    if session.step == 0 or not token:
        session.continue_flow(Menu.PIN_CHECK, 1)
        return UssdResponse.continue_with(ctx.t(K.ENTER_PIN))

    response = await confirm_with_pin(ctx, token, flow)
    if response is not None:
        return response
    return Redirect(flow.pending_menu)
