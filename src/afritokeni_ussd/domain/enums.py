"""Domain enumerations for the AfriTokeni USSD core.

These enums define the canonical states and types used throughout the system.
They are framework-agnostic (no SQLAlchemy, no FastAPI imports).
"""

import enum


class Menu(enum.StrEnum):
    """Every screen a USSD session can sit on.

    The navigation table in domain/navigation.py describes how they connect.
    """

    # Onboarding
    REGISTRATION_CHECK = "registration_check"
    USER_REGISTRATION = "user_registration"
    VERIFICATION = "verification"
    PIN_SETUP = "pin_setup"
    PIN_CHECK = "pin_check"

    # Top level
    MAIN = "main"
    HELP = "help"
    LANGUAGE_SELECTION = "language_selection"

    # Local currency
    LOCAL_CURRENCY = "local_currency"
    SEND_MONEY = "send_money"
    CHECK_BALANCE = "check_balance"
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    TRANSACTION_HISTORY = "transaction_history"
    FIND_AGENT = "find_agent"

    # ckBTC
    BTC = "btc"
    BTC_BALANCE = "btc_balance"
    BTC_RATE = "btc_rate"
    BTC_BUY = "btc_buy"
    BTC_SELL = "btc_sell"
    BTC_SEND = "btc_send"
    BTC_RECEIVE = "btc_receive"
    BTC_WITHDRAW = "btc_withdraw"

    # ckUSDC
    USDC = "usdc"
    USDC_BALANCE = "usdc_balance"
    USDC_RATE = "usdc_rate"
    USDC_BUY = "usdc_buy"
    USDC_SELL = "usdc_sell"
    USDC_SEND = "usdc_send"
    USDC_RECEIVE = "usdc_receive"
    USDC_WITHDRAW = "usdc_withdraw"


class Language(enum.StrEnum):
    """Locales a prompt can be rendered in."""

    ENGLISH = "en"
    LUGANDA = "lg"
    SWAHILI = "sw"


class AssetType(enum.StrEnum):
    """Ledger tokens that can be exchanged through an agent."""

    CKBTC = "ckBTC"
    CKUSDC = "ckUSDC"

    @property
    def code_prefix(self) -> str:
        """Prefix used for human-speakable exchange codes."""
        return "BTC" if self is AssetType.CKBTC else "USDC"


class ScreenKind(enum.StrEnum):
    """What kind of input a screen expects.

    Navigation sentinels are only honoured on MENU_CHOICE and FREE_TEXT screens.
    """

    MENU_CHOICE = "menu_choice"
    FREE_TEXT = "free_text"
    NUMERIC_ENTRY = "numeric_entry"


class InputClass(enum.StrEnum):
    """Classification of the newest token typed by the user."""

    EMPTY = "empty"
    BACK = "back"
    HOME = "home"
    DATA = "data"


class ResponseKind(enum.StrEnum):
    """Gateway response tags."""

    CONTINUE = "CON"
    END = "END"


class EscrowStatus(enum.StrEnum):
    """Lifecycle states of an escrow agreement.

    State transitions are enforced by the EscrowStateMachine guard.
    See domain/state_machine.py for the transition table.
    """

    PENDING = "pending"
    FUNDED = "funded"
    COMPLETED = "completed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (EscrowStatus.COMPLETED, EscrowStatus.EXPIRED, EscrowStatus.CANCELLED)


class ExchangeDirection(enum.StrEnum):
    """Which way value flows between the user and the agent."""

    CRYPTO_FOR_CASH = "crypto_for_cash"  # user sells, agent pays cash
    CASH_FOR_CRYPTO = "cash_for_crypto"  # user buys, agent releases tokens


class EventType(enum.StrEnum):
    """Types of audit events recorded in the escrow_events table.

    Every state transition MUST produce exactly one event.
    """

    AGREEMENT_CREATED = "AGREEMENT_CREATED"
    AGREEMENT_FUNDED = "AGREEMENT_FUNDED"
    AGENT_BOUND = "AGENT_BOUND"
    AGREEMENT_COMPLETED = "AGREEMENT_COMPLETED"
    AGREEMENT_EXPIRED = "AGREEMENT_EXPIRED"
    AGREEMENT_CANCELLED = "AGREEMENT_CANCELLED"
    VERIFICATION_REJECTED = "VERIFICATION_REJECTED"


class KycStatus(enum.StrEnum):
    NOT_STARTED = "not_started"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TransactionType(enum.StrEnum):
    """Kinds of wallet activity listed under Transactions."""

    SEND = "send"
    RECEIVE = "receive"
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    CRYPTO_BUY = "crypto_buy"
    CRYPTO_SELL = "crypto_sell"
    CRYPTO_SEND = "crypto_send"
    CRYPTO_WITHDRAW = "crypto_withdraw"


class TransactionStatus(enum.StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class PinCheckResult(enum.StrEnum):
    """Outcome of a single PIN gate check."""

    VERIFIED = "verified"
    MALFORMED = "malformed"
    MISMATCH = "mismatch"
    EXHAUSTED = "exhausted"
    LOCKED = "locked"


class CodeCheckResult(enum.StrEnum):
    """Outcome of checking a registration verification code."""

    ACCEPTED = "accepted"
    MISMATCH = "mismatch"
    EXPIRED = "expired"
    MISSING = "missing"
    EXHAUSTED = "exhausted"
