"""USSD turn router.

One call to ``UssdRouter.handle`` is one gateway request:

    1. Serialise on the session id and resolve or create the session.
    2. Take the newest token from the accumulated text and classify it
       against the current screen (navigation.classify_input).
    3. Back/home inputs are resolved from the navigation tables; everything
       else goes to the handler registered for the current menu.
    4. Redirects are followed within the turn. Entering a PIN-gated menu
       without a verified PIN detours through the PIN check first.
    5. CONTINUE responses get the navigation footer where the screen has
       one and the session is saved; END responses delete it.

Handlers never see the transport and never raise to the gateway: domain
errors become translated END messages and anything unexpected is logged and
answered with a generic failure.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from afritokeni_ussd.domain.enums import InputClass, Menu
from afritokeni_ussd.domain.exceptions import AfriTokeniError, CollaboratorError
from afritokeni_ussd.domain.navigation import (
    ONBOARDING_MENUS,
    PIN_GATED,
    classify_input,
    latest_token,
    navigation_target,
    screen_kind,
    shows_nav_footer,
)
from afritokeni_ussd.domain.session import PinCheckFlow
from afritokeni_ussd.i18n import MessageKey as K
from afritokeni_ussd.i18n import translate
from afritokeni_ussd.logging_config import get_logger
from afritokeni_ussd.ussd.context import HandlerContext
from afritokeni_ussd.ussd.handlers import crypto, local_currency, menus, onboarding
from afritokeni_ussd.ussd.responses import Redirect, UssdResponse
from afritokeni_ussd.utils.time import utcnow

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from contextlib import AbstractAsyncContextManager

    from sqlalchemy.ext.asyncio import AsyncSession

    from afritokeni_ussd.config import Settings
    from afritokeni_ussd.domain.session import UssdSession
    from afritokeni_ussd.infrastructure.session_store import SessionStore
    from afritokeni_ussd.ussd.context import Collaborators
    from afritokeni_ussd.ussd.responses import HandlerResult
    from afritokeni_ussd.utils.time import Clock

    Handler = Callable[[HandlerContext, str], Awaitable[HandlerResult]]

logger = get_logger(__name__)

MAX_REDIRECTS = 5

HANDLERS: dict[Menu, Handler] = {
    Menu.REGISTRATION_CHECK: onboarding.registration_check,
    Menu.USER_REGISTRATION: onboarding.user_registration,
    Menu.VERIFICATION: onboarding.verification,
    Menu.PIN_SETUP: onboarding.pin_setup,
    Menu.PIN_CHECK: onboarding.pin_check,
    Menu.MAIN: menus.main_menu,
    Menu.HELP: menus.help_menu,
    Menu.LANGUAGE_SELECTION: menus.language_selection,
    Menu.LOCAL_CURRENCY: menus.local_currency_menu,
    Menu.CHECK_BALANCE: menus.check_balance,
    Menu.TRANSACTION_HISTORY: menus.transaction_history,
    Menu.FIND_AGENT: menus.find_agent,
    Menu.SEND_MONEY: local_currency.send_money,
    Menu.DEPOSIT: local_currency.deposit,
    Menu.WITHDRAW: local_currency.withdraw,
    **menus.crypto_views(),
    **crypto.crypto_flows(),
}

# Domain error codes with a dedicated message; other collaborator failures
# share TRANSACTION_FAILED.
_ERROR_MESSAGES: dict[str, K] = {
    "RATE_UNAVAILABLE": K.RATE_UNAVAILABLE,
    "INSUFFICIENT_BALANCE": K.TRANSACTION_FAILED,
    "ACCOUNT_NOT_FOUND": K.ACCOUNT_MISSING,
}


class UssdRouter:
    """Dispatches gateway turns to menu handlers."""

    def __init__(
        self,
        store: SessionStore,
        collaborators: Collaborators,
        settings: Settings,
        db_scope: Callable[[], AbstractAsyncContextManager[AsyncSession]],
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._collaborators = collaborators
        self._settings = settings
        self._db_scope = db_scope
        self._clock = clock

    async def handle(self, session_id: str, phone_number: str, text: str | None) -> UssdResponse:
        """Run one turn and return the response to relay to the gateway."""
        async with self._store.lock(session_id):
            session = await self._store.get_or_create(session_id, phone_number)
            structlog.contextvars.bind_contextvars(session_id=session_id)
            try:
                response = await self._run_turn(session, latest_token(text))
            except AfriTokeniError as exc:
                response = self._domain_failure(session, exc)
            except Exception:
                logger.exception("ussd.unhandled_error", menu=session.current_menu.value)
                response = UssdResponse.end_with(translate(K.GENERIC_ERROR, session.language))
            finally:
                structlog.contextvars.unbind_contextvars("session_id")

            if response.ends_session:
                await self._store.delete(session_id)
                logger.info("ussd.session_ended", menu=session.current_menu.value)
            else:
                await self._store.save(session)
            return response

    async def _run_turn(self, session: UssdSession, token: str) -> UssdResponse:
        async with self._db_scope() as db:
            ctx = HandlerContext(
                session=session,
                db=db,
                settings=self._settings,
                collaborators=self._collaborators,
                clock=self._clock,
            )
            return await self.dispatch(ctx, token)

    async def dispatch(self, ctx: HandlerContext, token: str) -> UssdResponse:
        """Classify ``token`` for the current screen and follow it to a response."""
        session = ctx.session
        menu = session.current_menu
        input_class = classify_input(screen_kind(menu, session.step), token)
        logger.debug(
            "ussd.turn",
            menu=menu.value,
            step=session.step,
            input_class=input_class.value,
        )

        if input_class in (InputClass.BACK, InputClass.HOME):
            target = navigation_target(menu, input_class)
            if target is None:
                key = K.REGISTRATION_CANCELLED if menu in ONBOARDING_MENUS else K.GOODBYE
                return UssdResponse.end_with(ctx.t(key))
            outcome: HandlerResult = Redirect(target)
        else:
            outcome = await HANDLERS[menu](ctx, token)

        for _ in range(MAX_REDIRECTS):
            if isinstance(outcome, UssdResponse):
                return self._decorate(ctx, outcome)
            outcome = await self._enter(ctx, outcome)
        raise RuntimeError(f"Too many redirects from {menu.value}")

    async def _enter(self, ctx: HandlerContext, redirect: Redirect) -> HandlerResult:
        """Fresh entry into a menu, through the PIN gate when required."""
        session = ctx.session
        if redirect.menu in PIN_GATED and not session.pin_verified:
            session.enter(Menu.PIN_CHECK)
            flow = session.flow
            assert isinstance(flow, PinCheckFlow)
            flow.pending_menu = redirect.menu
        else:
            session.enter(redirect.menu)

        outcome = await HANDLERS[session.current_menu](ctx, "")
        if redirect.notice is None:
            return outcome
        if isinstance(outcome, UssdResponse):
            return outcome.with_notice(redirect.notice)
        return Redirect(outcome.menu, outcome.notice or redirect.notice)

    def _decorate(self, ctx: HandlerContext, response: UssdResponse) -> UssdResponse:
        session = ctx.session
        if response.ends_session or not shows_nav_footer(session.current_menu, session.step):
            return response
        return response.with_footer(ctx.t(K.BACK_OR_MENU))

    def _domain_failure(self, session: UssdSession, exc: AfriTokeniError) -> UssdResponse:
        if isinstance(exc, CollaboratorError):
            logger.error("ussd.collaborator_failed", error_code=exc.code, error=exc.message)
        else:
            logger.warning("ussd.domain_error", error_code=exc.code, error=exc.message)
        key = _ERROR_MESSAGES.get(exc.code)
        if key is None:
            key = K.TRANSACTION_FAILED if isinstance(exc, CollaboratorError) else K.GENERIC_ERROR
        return UssdResponse.end_with(translate(key, session.language))
