"""USSD navigation state machine as explicit tables.

Every (menu, step) screen is declared with the kind of input it expects.
Menu-choice screens map digits to target menus, every post-login menu has a
parent, and the PIN-gated menus are listed once. The router consults these
tables before a handler ever sees the input, so sentinel handling is uniform
and the whole graph can be enumerated by tests.

Sentinels:
    "0"  back to the parent menu (exit on main)
    "9"  home, straight to the main menu

Sentinels only apply on MENU_CHOICE and FREE_TEXT screens. On NUMERIC_ENTRY
screens (PINs, codes, amounts, phone numbers) every digit is data.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

from afritokeni_ussd.domain.enums import AssetType, InputClass, Menu, ScreenKind

if TYPE_CHECKING:
    from collections.abc import Iterator

BACK_SENTINEL = "0"
HOME_SENTINEL = "9"
SEPARATOR = "*"

_M = ScreenKind.MENU_CHOICE
_T = ScreenKind.FREE_TEXT
_N = ScreenKind.NUMERIC_ENTRY


class CryptoMenus(NamedTuple):
    """The menus making up one asset's sub-tree."""

    root: Menu
    balance: Menu
    rate: Menu
    buy: Menu
    sell: Menu
    send: Menu
    receive: Menu
    withdraw: Menu


CRYPTO_MENUS: dict[AssetType, CryptoMenus] = {
    AssetType.CKBTC: CryptoMenus(
        Menu.BTC, Menu.BTC_BALANCE, Menu.BTC_RATE, Menu.BTC_BUY,
        Menu.BTC_SELL, Menu.BTC_SEND, Menu.BTC_RECEIVE, Menu.BTC_WITHDRAW,
    ),
    AssetType.CKUSDC: CryptoMenus(
        Menu.USDC, Menu.USDC_BALANCE, Menu.USDC_RATE, Menu.USDC_BUY,
        Menu.USDC_SELL, Menu.USDC_SEND, Menu.USDC_RECEIVE, Menu.USDC_WITHDRAW,
    ),
}


def asset_for_menu(menu: Menu) -> AssetType | None:
    """Return the asset whose sub-tree contains ``menu``."""
    for asset, menus in CRYPTO_MENUS.items():
        if menu in menus:
            return asset
    return None


# ---------------------------------------------------------------------------
# Screens: (menu, step) -> expected input
# ---------------------------------------------------------------------------

SCREENS: dict[tuple[Menu, int], ScreenKind] = {
    # Input on the first turn is ignored, so nothing may be read as navigation.
    (Menu.REGISTRATION_CHECK, 0): _N,
    (Menu.USER_REGISTRATION, 1): _T,
    (Menu.VERIFICATION, 1): _N,
    (Menu.PIN_SETUP, 1): _N,
    (Menu.PIN_CHECK, 1): _N,
    (Menu.MAIN, 0): _M,
    (Menu.HELP, 0): _M,
    (Menu.LANGUAGE_SELECTION, 0): _M,
    (Menu.LOCAL_CURRENCY, 0): _M,
    (Menu.SEND_MONEY, 1): _N,
    (Menu.SEND_MONEY, 2): _N,
    (Menu.SEND_MONEY, 3): _N,
    (Menu.CHECK_BALANCE, 0): _M,
    (Menu.TRANSACTION_HISTORY, 0): _M,
    (Menu.DEPOSIT, 1): _N,
    (Menu.DEPOSIT, 2): _M,
    (Menu.DEPOSIT, 3): _N,
    (Menu.WITHDRAW, 1): _N,
    (Menu.WITHDRAW, 2): _M,
    (Menu.WITHDRAW, 3): _N,
    (Menu.FIND_AGENT, 1): _M,
}

for _menus in CRYPTO_MENUS.values():
    SCREENS.update(
        {
            (_menus.root, 0): _M,
            (_menus.balance, 0): _M,
            (_menus.rate, 0): _M,
            (_menus.receive, 0): _M,
            (_menus.buy, 1): _N,
            (_menus.buy, 2): _M,
            (_menus.buy, 3): _N,
            (_menus.sell, 1): _M,
            (_menus.sell, 2): _N,
            (_menus.sell, 3): _M,
            (_menus.sell, 4): _N,
            (_menus.send, 1): _N,
            (_menus.send, 2): _N,
            (_menus.send, 3): _N,
            (_menus.withdraw, 1): _T,
            (_menus.withdraw, 2): _N,
            (_menus.withdraw, 3): _N,
        }
    )


# ---------------------------------------------------------------------------
# Menu choices: digit -> target menu
# ---------------------------------------------------------------------------

MENU_CHOICES: dict[Menu, dict[str, Menu]] = {
    Menu.MAIN: {
        "1": Menu.LOCAL_CURRENCY,
        "2": Menu.BTC,
        "3": Menu.USDC,
        "4": Menu.HELP,
    },
    Menu.HELP: {
        "1": Menu.LANGUAGE_SELECTION,
    },
    Menu.LOCAL_CURRENCY: {
        "1": Menu.SEND_MONEY,
        "2": Menu.CHECK_BALANCE,
        "3": Menu.DEPOSIT,
        "4": Menu.WITHDRAW,
        "5": Menu.TRANSACTION_HISTORY,
        "6": Menu.FIND_AGENT,
    },
}

for _menus in CRYPTO_MENUS.values():
    MENU_CHOICES[_menus.root] = {
        "1": _menus.balance,
        "2": _menus.rate,
        "3": _menus.buy,
        "4": _menus.sell,
        "5": _menus.send,
        "6": _menus.receive,
        "7": _menus.withdraw,
    }


# ---------------------------------------------------------------------------
# Parents: where "0" leads. None means the session ends.
# ---------------------------------------------------------------------------

PARENTS: dict[Menu, Menu | None] = {
    Menu.REGISTRATION_CHECK: None,
    Menu.USER_REGISTRATION: None,
    Menu.VERIFICATION: None,
    Menu.PIN_SETUP: None,
    Menu.PIN_CHECK: Menu.MAIN,
    Menu.MAIN: None,
    Menu.HELP: Menu.MAIN,
    Menu.LANGUAGE_SELECTION: Menu.HELP,
    Menu.LOCAL_CURRENCY: Menu.MAIN,
    Menu.SEND_MONEY: Menu.LOCAL_CURRENCY,
    Menu.CHECK_BALANCE: Menu.LOCAL_CURRENCY,
    Menu.DEPOSIT: Menu.LOCAL_CURRENCY,
    Menu.WITHDRAW: Menu.LOCAL_CURRENCY,
    Menu.TRANSACTION_HISTORY: Menu.LOCAL_CURRENCY,
    Menu.FIND_AGENT: Menu.LOCAL_CURRENCY,
}

for _menus in CRYPTO_MENUS.values():
    PARENTS[_menus.root] = Menu.MAIN
    for _child in _menus[1:]:
        PARENTS[_child] = _menus.root

# Screens before the account has a PIN. "9" cannot jump to main from here.
ONBOARDING_MENUS = frozenset(
    {Menu.REGISTRATION_CHECK, Menu.USER_REGISTRATION, Menu.VERIFICATION, Menu.PIN_SETUP}
)

# Views that read balances or addresses ask for the PIN once per session.
PIN_GATED = frozenset(
    {Menu.CHECK_BALANCE, Menu.TRANSACTION_HISTORY}
    | {m.balance for m in CRYPTO_MENUS.values()}
    | {m.receive for m in CRYPTO_MENUS.values()}
)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def screen_kind(menu: Menu, step: int) -> ScreenKind:
    """Return the input kind for a screen.

    Step 0 of a flow is its entry point and is never waiting on input from
    the user, so unknown pairs fall back to a numeric screen where no digit
    is ever mistaken for navigation.
    """
    return SCREENS.get((menu, step), ScreenKind.NUMERIC_ENTRY)


def latest_token(text: str | None) -> str:
    """Extract the newest input from the gateway's accumulated text."""
    if not text:
        return ""
    return text.rsplit(SEPARATOR, 1)[-1].strip()


def classify_input(kind: ScreenKind, token: str) -> InputClass:
    """Classify a token for a screen of the given kind."""
    if token == "":
        return InputClass.EMPTY
    if kind is ScreenKind.NUMERIC_ENTRY:
        return InputClass.DATA
    if token == BACK_SENTINEL:
        return InputClass.BACK
    if token == HOME_SENTINEL:
        return InputClass.HOME
    return InputClass.DATA


def shows_nav_footer(menu: Menu, step: int) -> bool:
    """Whether the "0. Back | 9. Menu" footer is appended to a prompt."""
    if menu in ONBOARDING_MENUS or menu is Menu.MAIN:
        return False
    return screen_kind(menu, step) is not ScreenKind.NUMERIC_ENTRY


def navigation_target(menu: Menu, input_class: InputClass) -> Menu | None:
    """Where a BACK or HOME input leads from ``menu``. None ends the session."""
    if input_class is InputClass.HOME:
        return None if menu in ONBOARDING_MENUS else Menu.MAIN
    if input_class is InputClass.BACK:
        return PARENTS[menu]
    raise ValueError(f"{input_class} is not a navigation input")


def iter_screens() -> Iterator[tuple[Menu, int, ScreenKind]]:
    """Yield every declared screen, for exhaustive checks."""
    for (menu, step), kind in SCREENS.items():
        yield menu, step, kind
