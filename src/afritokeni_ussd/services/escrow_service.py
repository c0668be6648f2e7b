"""Escrow Service: core business logic for the exchange agreement lifecycle.

This is the application layer that coordinates between:
    - Domain state machine (transition guard)
    - Repositories (data access, compare-and-set on status)
    - Event log (audit trail)

Both the USSD buy/sell flows and the agent HTTP API call into this service,
so every rule about codes, expiry, agent binding and completion lives here.

Agent binding: an agreement created from a USSD flow is pre-assigned to the
agent the user picked. An agreement created without an agent is bound to the
first agent whose verification succeeds. A failed verification never binds.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from statemachine.exceptions import TransitionNotAllowed

from afritokeni_ussd.domain.enums import (
    AssetType,
    EscrowStatus,
    EventType,
    ExchangeDirection,
)
from afritokeni_ussd.domain.exceptions import (
    AfriTokeniError,
    AgentMismatchError,
    AgentNotFoundError,
    AgreementExpiredError,
    AgreementNotFoundError,
    AlreadyCompletedError,
    AuthorizationError,
    InvalidStateTransitionError,
    NotFundedError,
    ValidationError,
)
from afritokeni_ussd.domain.state_machine import EscrowStateMachine, validate_transition
from afritokeni_ussd.infrastructure.database.orm_models import Agent, EscrowAgreement
from afritokeni_ussd.infrastructure.database.repositories import (
    AgentRepository,
    EscrowRepository,
    EventRepository,
)
from afritokeni_ussd.logging_config import get_logger
from afritokeni_ussd.utils.codes import random_code
from afritokeni_ussd.utils.time import ensure_utc, utcnow

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from afritokeni_ussd.infrastructure.database.orm_models import EscrowEvent
    from afritokeni_ussd.utils.time import Clock

logger = get_logger(__name__)

MAX_CODE_ATTEMPTS = 5


def generate_exchange_code(asset: AssetType) -> str:
    """Return e.g. ``BTC-7K2QXA``."""
    return random_code(asset.code_prefix)


def commission_for(agreement: EscrowAgreement, rate: Decimal) -> tuple[Decimal, Decimal]:
    """Agent commission on one agreement as (asset units, local currency)."""
    return agreement.asset_amount * rate, agreement.local_currency_amount * rate


def canonical_agent_id(agent_id: str) -> str:
    """Lower-case hyphenated form of an agent UUID, as stored on agreements."""
    try:
        return str(uuid.UUID(str(agent_id).strip()))
    except ValueError:
        raise AgentNotFoundError(str(agent_id)) from None


@dataclass
class AgentEarnings:
    """Reporting view of what an agent earned on completed agreements."""

    agent_id: str
    commission_rate: Decimal
    completed_exchanges: int
    local_by_currency: dict[str, Decimal] = field(default_factory=dict)
    asset_by_type: dict[str, Decimal] = field(default_factory=dict)


class EscrowService:
    """Manages the escrow agreement lifecycle."""

    def __init__(
        self,
        session: AsyncSession,
        timeout_hours: int = 24,
        clock: Clock = utcnow,
    ) -> None:
        self._session = session
        self._timeout = timedelta(hours=timeout_hours)
        self._clock = clock
        self._escrow_repo = EscrowRepository(session)
        self._agent_repo = AgentRepository(session)
        self._event_repo = EventRepository(session)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create(
        self,
        initiator_user_id: str,
        asset: AssetType,
        asset_amount: Decimal,
        local_amount: Decimal,
        currency: str,
        direction: ExchangeDirection = ExchangeDirection.CRYPTO_FOR_CASH,
        agent_id: str | None = None,
    ) -> EscrowAgreement:
        """Create a PENDING agreement with a fresh exchange code.

        Moves no funds. Funding is a separate ledger step recorded through
        mark_funded().
        """
        if asset_amount <= 0 or local_amount <= 0:
            raise ValidationError("Exchange amounts must be positive")
        if agent_id is not None:
            agent = await self._get_agent_or_raise(agent_id)
            agent_id = str(agent.id)

        now = self._clock()
        agreement = EscrowAgreement(
            exchange_code=await self._allocate_code(asset),
            initiator_user_id=initiator_user_id,
            assigned_agent_id=agent_id,
            direction=direction.value,
            asset_type=asset.value,
            asset_amount=asset_amount,
            local_currency_amount=local_amount,
            currency=currency,
            status=EscrowStatus.PENDING.value,
            created_at=now,
            expires_at=now + self._timeout,
        )
        agreement = await self._escrow_repo.create(agreement)

        await self._event_repo.record(
            agreement_id=agreement.id,
            event_type=EventType.AGREEMENT_CREATED,
            old_status=None,
            new_status=EscrowStatus.PENDING,
            actor=initiator_user_id,
            metadata={"direction": direction.value, "agent_id": agent_id},
        )

        logger.info(
            "escrow.created",
            exchange_code=agreement.exchange_code,
            asset=asset.value,
            amount=str(asset_amount),
            agent_id=agent_id,
        )
        return agreement

    # ------------------------------------------------------------------
    # Funding
    # ------------------------------------------------------------------

    async def mark_funded(
        self, exchange_code: str, reference: str, actor: str = "SYSTEM"
    ) -> EscrowAgreement:
        """Record the ledger transfer that backs an agreement. PENDING -> FUNDED."""
        agreement = await self._get_agreement_or_raise(exchange_code)
        await self._expire_if_overdue(agreement)

        await self._transition(
            agreement,
            "funding_confirmed",
            EventType.AGREEMENT_FUNDED,
            actor=actor,
            metadata={"reference": reference},
            funding_reference=reference,
            funded_at=self._clock(),
        )
        logger.info("escrow.funded", exchange_code=exchange_code, reference=reference)
        return agreement

    # ------------------------------------------------------------------
    # Agent verification
    # ------------------------------------------------------------------

    async def verify_and_complete(self, exchange_code: str, agent_id: str) -> EscrowAgreement:
        """Complete an exchange when the agent presents the right code.

        Raises:
            AgreementNotFoundError: Unknown code.
            AlreadyCompletedError: The agreement was completed before.
            AgreementExpiredError: Past expiry; the agreement is moved to EXPIRED.
            AgentNotFoundError: ``agent_id`` is not an agent UUID.
            AgentMismatchError: Bound to a different agent.
            NotFundedError: The ledger transfer has not been recorded yet.
        """
        agreement = await self._get_agreement_or_raise(exchange_code)
        status = EscrowStatus(agreement.status)

        if status is EscrowStatus.COMPLETED:
            raise AlreadyCompletedError(exchange_code)
        if status is EscrowStatus.EXPIRED:
            raise AgreementExpiredError(exchange_code)
        if status is EscrowStatus.CANCELLED:
            raise InvalidStateTransitionError(status.value, "agent_verified")

        await self._expire_if_overdue(agreement)
        agent_id = canonical_agent_id(agent_id)

        if agreement.assigned_agent_id not in (None, agent_id):
            await self._reject(agreement, agent_id, "agent_mismatch")
            raise AgentMismatchError(exchange_code, agent_id)
        if status is EscrowStatus.PENDING:
            raise NotFundedError(exchange_code)

        agent = await self._get_agent_or_raise(agent_id)

        if agreement.assigned_agent_id is None:
            if not await self._escrow_repo.bind_agent(agreement, agent_id):
                # Another agent won the race for this agreement.
                raise AgentMismatchError(exchange_code, agent_id)
            await self._event_repo.record(
                agreement_id=agreement.id,
                event_type=EventType.AGENT_BOUND,
                old_status=EscrowStatus.FUNDED,
                new_status=EscrowStatus.FUNDED,
                actor=agent_id,
            )

        asset_commission, local_commission = commission_for(agreement, agent.commission_rate)
        try:
            await self._transition(
                agreement,
                "agent_verified",
                EventType.AGREEMENT_COMPLETED,
                actor=agent_id,
                metadata={
                    "commission_asset": str(asset_commission),
                    "commission_local": str(local_commission),
                },
                completed_at=self._clock(),
            )
        except InvalidStateTransitionError:
            if agreement.status == EscrowStatus.COMPLETED.value:
                raise AlreadyCompletedError(exchange_code) from None
            raise
        await self._agent_repo.increment_completed(agent.id)

        logger.info(
            "escrow.completed",
            exchange_code=exchange_code,
            agent_id=agent_id,
            commission=str(local_commission),
        )
        return agreement

    # ------------------------------------------------------------------
    # Cancellation & expiry
    # ------------------------------------------------------------------

    async def cancel(self, exchange_code: str, user_id: str) -> EscrowAgreement:
        """User-initiated cancellation of a PENDING agreement."""
        agreement = await self._get_agreement_or_raise(exchange_code)
        if agreement.initiator_user_id != user_id:
            raise AuthorizationError(
                message=f"Only the initiator may cancel exchange {exchange_code}",
                code="NOT_INITIATOR",
            )
        await self._expire_if_overdue(agreement)
        await self._transition(
            agreement, "user_cancelled", EventType.AGREEMENT_CANCELLED, actor=user_id
        )
        logger.info("escrow.cancelled", exchange_code=exchange_code)
        return agreement

    async def expire_overdue(self) -> list[EscrowAgreement]:
        """Move every overdue PENDING or FUNDED agreement to EXPIRED.

        Funded ones hold user tokens at the escrow principal; they are logged
        for the ledger's refund path.
        """
        overdue = await self._escrow_repo.get_overdue(
            self._clock(), [EscrowStatus.PENDING, EscrowStatus.FUNDED]
        )
        expired: list[EscrowAgreement] = []
        for agreement in overdue:
            was_funded = agreement.status == EscrowStatus.FUNDED.value
            try:
                await self._transition(
                    agreement, "timeout_expired", EventType.AGREEMENT_EXPIRED
                )
            except InvalidStateTransitionError:
                logger.info("escrow.expiry_skipped", exchange_code=agreement.exchange_code)
                continue
            if was_funded:
                logger.warning(
                    "escrow.refund_required",
                    exchange_code=agreement.exchange_code,
                    reference=agreement.funding_reference,
                )
            expired.append(agreement)
        if expired:
            logger.info("escrow.expired_overdue", count=len(expired))
        return expired

    async def commit(self) -> None:
        """Persist the agreement state before a collaborator call."""
        await self._session.commit()

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    async def get_by_code(self, exchange_code: str) -> EscrowAgreement:
        return await self._get_agreement_or_raise(exchange_code)

    async def get_status(self, exchange_code: str) -> dict:
        """Current status with the events that may still fire."""
        agreement = await self._get_agreement_or_raise(exchange_code)
        sm = EscrowStateMachine(current_status=agreement.status)
        return {
            "exchange_code": agreement.exchange_code,
            "status": agreement.status,
            "allowed_events": sm.get_allowed_events(),
        }

    async def get_events(self, exchange_code: str) -> list[EscrowEvent]:
        agreement = await self._get_agreement_or_raise(exchange_code)
        return await self._event_repo.get_by_agreement(agreement.id)

    async def agent_earnings(self, agent_id: str) -> AgentEarnings:
        """Commission earned on completed agreements, per currency and asset."""
        agent = await self._get_agent_or_raise(agent_id)
        completed = await self._escrow_repo.get_by_agent(str(agent.id), EscrowStatus.COMPLETED)
        earnings = AgentEarnings(
            agent_id=str(agent.id),
            commission_rate=agent.commission_rate,
            completed_exchanges=len(completed),
        )
        for agreement in completed:
            asset_part, local_part = commission_for(agreement, agent.commission_rate)
            earnings.local_by_currency[agreement.currency] = (
                earnings.local_by_currency.get(agreement.currency, Decimal("0")) + local_part
            )
            earnings.asset_by_type[agreement.asset_type] = (
                earnings.asset_by_type.get(agreement.asset_type, Decimal("0")) + asset_part
            )
        return earnings

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _allocate_code(self, asset: AssetType) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_exchange_code(asset)
            if not await self._escrow_repo.code_exists(code):
                return code
        raise AfriTokeniError("Could not allocate a unique exchange code", "CODE_EXHAUSTED")

    async def _get_agreement_or_raise(self, exchange_code: str) -> EscrowAgreement:
        agreement = await self._escrow_repo.get_by_code(exchange_code.strip().upper())
        if agreement is None:
            raise AgreementNotFoundError(exchange_code)
        return agreement

    async def _get_agent_or_raise(self, agent_id: str) -> Agent:
        agent = await self._agent_repo.get_by_id(uuid.UUID(canonical_agent_id(agent_id)))
        if agent is None or not agent.is_active:
            raise AgentNotFoundError(str(agent_id))
        return agent

    async def _expire_if_overdue(self, agreement: EscrowAgreement) -> None:
        """Lazy expiry: an overdue agreement is expired on access, then rejected."""
        if self._clock() <= ensure_utc(agreement.expires_at):
            return
        if agreement.status in (EscrowStatus.PENDING.value, EscrowStatus.FUNDED.value):
            await self._transition(agreement, "timeout_expired", EventType.AGREEMENT_EXPIRED)
            logger.info("escrow.expired_on_access", exchange_code=agreement.exchange_code)
        # The expiry must survive the caller's rollback.
        await self._session.commit()
        raise AgreementExpiredError(agreement.exchange_code)

    async def _reject(self, agreement: EscrowAgreement, agent_id: str, reason: str) -> None:
        status = EscrowStatus(agreement.status)
        await self._event_repo.record(
            agreement_id=agreement.id,
            event_type=EventType.VERIFICATION_REJECTED,
            old_status=status,
            new_status=status,
            actor=agent_id,
            metadata={"reason": reason},
        )
        await self._session.commit()
        logger.warning(
            "escrow.verification_rejected",
            exchange_code=agreement.exchange_code,
            agent_id=agent_id,
            reason=reason,
        )

    async def _transition(
        self,
        agreement: EscrowAgreement,
        event_name: str,
        event_type: EventType,
        actor: str = "SYSTEM",
        metadata: dict | None = None,
        **values: object,
    ) -> None:
        """Guard, compare-and-set and audit a single transition."""
        old_status = EscrowStatus(agreement.status)
        new_status = self._fire_transition(agreement, event_name)
        if not await self._escrow_repo.compare_and_set_status(
            agreement, old_status, new_status, **values
        ):
            # Someone else moved the agreement first; report its real state.
            raise InvalidStateTransitionError(agreement.status, event_name)
        await self._event_repo.record(
            agreement_id=agreement.id,
            event_type=event_type,
            old_status=old_status,
            new_status=new_status,
            actor=actor,
            metadata=metadata,
        )

    def _fire_transition(self, agreement: EscrowAgreement, event_name: str) -> EscrowStatus:
        """Validate a state machine transition and return the target status.

        Raises InvalidStateTransitionError if the transition is illegal.
        """
        try:
            return EscrowStatus(validate_transition(agreement.status, event_name))
        except (TransitionNotAllowed, ValueError) as err:
            raise InvalidStateTransitionError(agreement.status, event_name) from err
