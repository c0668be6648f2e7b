"""SQLAlchemy 2.0 ORM models for the AfriTokeni metadata store.

Five tables:
    1. user_accounts: Registered phone users (identity is "+<digits>").
    2. agents: Cash agents who fulfil exchanges in person.
    3. escrow_agreements: Time-boxed crypto/cash exchange agreements.
    4. escrow_events: Append-only audit log of every agreement transition.
    5. transactions: Wallet activity shown under "Transactions".

Design decisions:
    - UUID primary keys via the portable ``Uuid`` type (PostgreSQL and SQLite).
    - Decimal for every amount.
    - JSONB on PostgreSQL, plain JSON elsewhere.
    - CHECK constraints on status columns so bad values never reach disk.
    - escrow_events is append-only: no UPDATE or DELETE at the application level.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal  # noqa: TC003 - needed at runtime by SQLAlchemy Mapped[]

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Uuid,
    event,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _set_updated_at(mapper, connection, target):  # noqa: ANN001
    """SQLAlchemy event listener that updates `updated_at` before flush."""
    if hasattr(target, "updated_at"):
        target.updated_at = _utcnow()


# ---------------------------------------------------------------------------
# 1. user_accounts
# ---------------------------------------------------------------------------
class UserAccount(Base):
    """A registered AfriTokeni user."""

    __tablename__ = "user_accounts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    phone_or_email: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        comment="Identity key; '+<digits>' for USSD registrations",
    )
    first_name: Mapped[str] = mapped_column(String(80), nullable=False)
    last_name: Mapped[str] = mapped_column(String(80), nullable=False)
    preferred_currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        comment="Detected from the dialing code at registration; never unset",
    )
    language: Mapped[str | None] = mapped_column(String(2), nullable=True, default=None)
    principal_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        comment="Ledger principal holding this user's balances",
    )
    user_type: Mapped[str] = mapped_column(String(10), nullable=False, default="user")
    kyc_status: Mapped[str] = mapped_column(String(16), nullable=False, default="not_started")
    auth_method: Mapped[str] = mapped_column(String(10), nullable=False, default="sms")

    # --- PIN security ---
    pin_hash: Mapped[str | None] = mapped_column(
        String(160),
        nullable=True,
        default=None,
        comment="pbkdf2_sha256 digest; the PIN itself is never stored",
    )
    pin_failed_attempts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Consecutive failures across dial-ins; reset on success",
    )
    pin_locked_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "kyc_status IN ('not_started', 'pending', 'approved', 'rejected')",
            name="ck_account_kyc_status",
        ),
        CheckConstraint("pin_failed_attempts >= 0", name="ck_account_pin_attempts"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<UserAccount id={self.id} identity={self.phone_or_email}>"


# ---------------------------------------------------------------------------
# 2. agents
# ---------------------------------------------------------------------------
class Agent(Base):
    """A cash agent who meets users in person."""

    __tablename__ = "agents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    business_name: Mapped[str] = mapped_column(String(120), nullable=False)
    phone_number: Mapped[str] = mapped_column(String(20), nullable=False)
    city: Mapped[str] = mapped_column(String(80), nullable=False)
    address: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    principal_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    commission_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 4),
        nullable=False,
        comment="Fraction of the exchanged amount the agent earns, e.g. 0.02",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    completed_exchanges: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "commission_rate >= 0 AND commission_rate < 1",
            name="ck_agent_commission_rate",
        ),
        Index("idx_agent_active", "is_active"),
    )

    @property
    def location(self) -> str:
        return f"{self.address}, {self.city}" if self.address else self.city

    def __repr__(self) -> str:
        return f"<Agent id={self.id} name={self.business_name!r}>"


# ---------------------------------------------------------------------------
# 3. escrow_agreements
# ---------------------------------------------------------------------------
class EscrowAgreement(Base):
    """A time-boxed exchange between a user and an agent, keyed by a spoken code."""

    __tablename__ = "escrow_agreements"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    exchange_code: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        unique=True,
        comment="Human-speakable code, e.g. BTC-7K2QXA",
    )
    initiator_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    assigned_agent_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        default=None,
        comment="Null until an agent is bound; immutable once set",
    )
    direction: Mapped[str] = mapped_column(String(20), nullable=False)

    # --- Financials ---
    asset_type: Mapped[str] = mapped_column(String(10), nullable=False)
    asset_amount: Mapped[Decimal] = mapped_column(Numeric(24, 8), nullable=False)
    local_currency_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    funding_reference: Mapped[str | None] = mapped_column(
        String(128),
        nullable=True,
        default=None,
        comment="Ledger transfer reference recorded when funded",
    )

    status: Mapped[str] = mapped_column(
        String(12),
        nullable=False,
        default="pending",
        comment="Current lifecycle state (guarded by EscrowStateMachine)",
    )

    # --- Timestamps ---
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    funded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    events: Mapped[list[EscrowEvent]] = relationship(
        "EscrowEvent",
        back_populates="agreement",
        cascade="all, delete-orphan",
        order_by="EscrowEvent.created_at.asc()",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'funded', 'completed', 'expired', 'cancelled')",
            name="ck_escrow_valid_status",
        ),
        CheckConstraint("asset_amount > 0", name="ck_escrow_positive_asset_amount"),
        CheckConstraint(
            "local_currency_amount > 0", name="ck_escrow_positive_local_amount"
        ),
        Index("idx_escrow_status", "status"),
        Index("idx_escrow_agent", "assigned_agent_id"),
        Index("idx_escrow_initiator", "initiator_user_id"),
        Index("idx_escrow_expires_at", "expires_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<EscrowAgreement code={self.exchange_code} status={self.status} "
            f"amount={self.asset_amount} {self.asset_type}>"
        )


# ---------------------------------------------------------------------------
# 4. escrow_events (Append-Only Audit Log)
# ---------------------------------------------------------------------------
class EscrowEvent(Base):
    """Immutable audit record of every transition in an agreement's lifecycle."""

    __tablename__ = "escrow_events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    agreement_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("escrow_agreements.id", ondelete="CASCADE"),
        nullable=False,
    )
    event_type: Mapped[str] = mapped_column(String(40), nullable=False)
    old_status: Mapped[str | None] = mapped_column(String(12), nullable=True)
    new_status: Mapped[str] = mapped_column(String(12), nullable=False)
    actor: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="SYSTEM",
        comment="User id, agent id or SYSTEM",
    )
    metadata_json: Mapped[dict | None] = mapped_column(
        "metadata", JSONType, nullable=True, default=None
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    agreement: Mapped[EscrowAgreement] = relationship(
        "EscrowAgreement", back_populates="events"
    )

    __table_args__ = (
        Index("idx_event_agreement", "agreement_id"),
        Index("idx_event_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<EscrowEvent type={self.event_type} {self.old_status}->{self.new_status}>"
        )


# ---------------------------------------------------------------------------
# 5. transactions
# ---------------------------------------------------------------------------
class Transaction(Base):
    """A line of wallet activity for one account."""

    __tablename__ = "transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("user_accounts.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False, default="completed")
    amount: Mapped[Decimal] = mapped_column(Numeric(24, 8), nullable=False)
    fee: Mapped[Decimal] = mapped_column(Numeric(24, 8), nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(8), nullable=False)
    counterparty: Mapped[str | None] = mapped_column(String(128), nullable=True)
    agent_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    code: Mapped[str | None] = mapped_column(
        String(16),
        nullable=True,
        comment="DEP-/WD- code or exchange code shown to the agent",
    )
    reference: Mapped[str | None] = mapped_column(String(128), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'completed', 'failed')", name="ck_transaction_status"
        ),
        Index("idx_transaction_account_created", "account_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Transaction type={self.type} amount={self.amount} {self.currency}>"


event.listen(EscrowAgreement, "before_update", _set_updated_at)
event.listen(UserAccount, "before_update", _set_updated_at)
