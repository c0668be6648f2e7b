"""Domain exceptions for the AfriTokeni USSD core.

These exceptions are framework-agnostic and represent business rule violations.
HTTP routes get them translated by the API middleware; the USSD router turns
them into translated END messages.
"""


class AfriTokeniError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "AFRITOKENI_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


# --- Input Errors ---


class ValidationError(AfriTokeniError):
    """Raised when caller-supplied data is malformed."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="VALIDATION_ERROR")


# --- Lookup Errors ---


class NotFoundError(AfriTokeniError):
    """Base class for missing records. Never conflated with validation errors."""


class AccountNotFoundError(NotFoundError):
    def __init__(self, identity: str) -> None:
        super().__init__(
            message=f"Account not found: {identity}",
            code="ACCOUNT_NOT_FOUND",
        )
        self.identity = identity


class AgreementNotFoundError(NotFoundError):
    """Raised when an exchange code does not match any agreement."""

    def __init__(self, exchange_code: str) -> None:
        super().__init__(
            message=f"Invalid exchange code: {exchange_code}",
            code="AGREEMENT_NOT_FOUND",
        )
        self.exchange_code = exchange_code


class AgentNotFoundError(NotFoundError):
    def __init__(self, agent_id: str) -> None:
        super().__init__(
            message=f"Agent not found: {agent_id}",
            code="AGENT_NOT_FOUND",
        )
        self.agent_id = agent_id


# --- Security Errors ---


class AuthorizationError(AfriTokeniError):
    """Raised when an actor is not allowed to act on a record."""


class AgentMismatchError(AuthorizationError):
    """Raised when an agreement is bound to a different agent."""

    def __init__(self, exchange_code: str, agent_id: str) -> None:
        super().__init__(
            message=f"Exchange {exchange_code} does not belong to agent {agent_id}",
            code="AGENT_MISMATCH",
        )
        self.exchange_code = exchange_code
        self.agent_id = agent_id


# --- Expiry Errors ---


class ExpiredError(AfriTokeniError):
    """Base class for artifacts past their validity window."""


class AgreementExpiredError(ExpiredError):
    def __init__(self, exchange_code: str) -> None:
        super().__init__(
            message=f"Exchange code has expired: {exchange_code}",
            code="AGREEMENT_EXPIRED",
        )
        self.exchange_code = exchange_code


# --- State Machine Errors ---


class InvalidStateTransitionError(AfriTokeniError):
    """Raised when an attempted state transition is not allowed.

    Example: pending -> completed (must be funded first)
    """

    def __init__(self, current_state: str, attempted_event: str) -> None:
        super().__init__(
            message=f"Invalid state transition: {attempted_event} from {current_state}",
            code="INVALID_STATE_TRANSITION",
        )
        self.current_state = current_state
        self.attempted_event = attempted_event


class AlreadyCompletedError(InvalidStateTransitionError):
    """Raised when a completed agreement is verified again."""

    def __init__(self, exchange_code: str) -> None:
        super().__init__(current_state="completed", attempted_event="agent_verified")
        self.message = f"Exchange already completed: {exchange_code}"
        self.args = (self.message,)
        self.code = "ALREADY_COMPLETED"
        self.exchange_code = exchange_code


class NotFundedError(InvalidStateTransitionError):
    """Raised when an agent verifies before the ledger transfer was recorded."""

    def __init__(self, exchange_code: str) -> None:
        super().__init__(current_state="pending", attempted_event="agent_verified")
        self.message = f"Exchange not funded yet: {exchange_code}"
        self.args = (self.message,)
        self.code = "NOT_FUNDED"
        self.exchange_code = exchange_code


# --- Collaborator Errors ---


class CollaboratorError(AfriTokeniError):
    """Raised when an external system fails. Never retried inside the core."""


class DeliveryError(CollaboratorError):
    """Raised when the SMS gateway refuses or fails a message."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="DELIVERY_FAILED")


class LedgerError(CollaboratorError):
    """Raised when the ledger gateway fails a query or transfer."""

    def __init__(self, message: str, reference: str | None = None) -> None:
        super().__init__(message=message, code="LEDGER_ERROR")
        self.reference = reference


class InsufficientBalanceError(LedgerError):
    def __init__(self, required: str, available: str) -> None:
        super().__init__(
            message=f"Insufficient balance: required {required}, available {available}",
        )
        self.code = "INSUFFICIENT_BALANCE"
