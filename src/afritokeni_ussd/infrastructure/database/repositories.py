"""Repository classes for database access.

Repositories encapsulate all SQL queries and provide a clean interface
to the service layer. They accept an AsyncSession and never manage
their own transactions (that's the caller's responsibility).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select, update

from afritokeni_ussd.infrastructure.database.orm_models import (
    Agent,
    EscrowAgreement,
    EscrowEvent,
    Transaction,
    UserAccount,
)

if TYPE_CHECKING:
    import uuid
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession

    from afritokeni_ussd.domain.enums import EscrowStatus, EventType


class AccountRepository:
    """Data access for user accounts."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, account: UserAccount) -> UserAccount:
        self._session.add(account)
        await self._session.flush()
        return account

    async def get_by_identity(self, phone_or_email: str) -> UserAccount | None:
        result = await self._session.execute(
            select(UserAccount).where(UserAccount.phone_or_email == phone_or_email)
        )
        return result.scalar_one_or_none()

    async def get_by_id(self, account_id: uuid.UUID) -> UserAccount | None:
        return await self._session.get(UserAccount, account_id)

    async def save(self, account: UserAccount) -> UserAccount:
        """Flush pending attribute changes on an account."""
        await self._session.flush()
        return account


class AgentRepository:
    """Data access for cash agents."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, agent: Agent) -> Agent:
        self._session.add(agent)
        await self._session.flush()
        return agent

    async def get_by_id(self, agent_id: uuid.UUID) -> Agent | None:
        return await self._session.get(Agent, agent_id)

    async def list_active(self, limit: int | None = None) -> list[Agent]:
        """Active agents, busiest first."""
        query = (
            select(Agent)
            .where(Agent.is_active.is_(True))
            .order_by(Agent.completed_exchanges.desc(), Agent.created_at.asc())
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self._session.execute(query)
        return list(result.scalars().all())

    async def increment_completed(self, agent_id: uuid.UUID) -> None:
        await self._session.execute(
            update(Agent)
            .where(Agent.id == agent_id)
            .values(completed_exchanges=Agent.completed_exchanges + 1)
        )


class EscrowRepository:
    """Data access for escrow agreements."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, agreement: EscrowAgreement) -> EscrowAgreement:
        self._session.add(agreement)
        await self._session.flush()
        return agreement

    async def get_by_code(self, exchange_code: str) -> EscrowAgreement | None:
        result = await self._session.execute(
            select(EscrowAgreement).where(EscrowAgreement.exchange_code == exchange_code)
        )
        return result.scalar_one_or_none()

    async def code_exists(self, exchange_code: str) -> bool:
        result = await self._session.execute(
            select(func.count())
            .select_from(EscrowAgreement)
            .where(EscrowAgreement.exchange_code == exchange_code)
        )
        return result.scalar_one() > 0

    async def get_by_agent(
        self, agent_id: str, status: EscrowStatus | None = None
    ) -> list[EscrowAgreement]:
        query = select(EscrowAgreement).where(EscrowAgreement.assigned_agent_id == agent_id)
        if status is not None:
            query = query.where(EscrowAgreement.status == status.value)
        result = await self._session.execute(
            query.order_by(EscrowAgreement.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_overdue(self, now: datetime, statuses: list[EscrowStatus]) -> list[EscrowAgreement]:
        """Agreements in one of ``statuses`` whose expiry has passed."""
        result = await self._session.execute(
            select(EscrowAgreement)
            .where(EscrowAgreement.status.in_([s.value for s in statuses]))
            .where(EscrowAgreement.expires_at < now)
            .order_by(EscrowAgreement.expires_at.asc())
        )
        return list(result.scalars().all())

    async def compare_and_set_status(
        self,
        agreement: EscrowAgreement,
        expected: EscrowStatus,
        new_status: EscrowStatus,
        **values: Any,
    ) -> bool:
        """Atomically move ``agreement`` from ``expected`` to ``new_status``.

        Returns False, without touching the row, when another writer already
        changed the status. Call AFTER state machine validation.
        """
        result = await self._session.execute(
            update(EscrowAgreement)
            .where(EscrowAgreement.id == agreement.id)
            .where(EscrowAgreement.status == expected.value)
            .values(status=new_status.value, **values)
            .execution_options(synchronize_session=False)
        )
        await self._session.refresh(agreement)
        return result.rowcount == 1

    async def bind_agent(self, agreement: EscrowAgreement, agent_id: str) -> bool:
        """Bind an unassigned agreement to ``agent_id``; False if someone else won."""
        result = await self._session.execute(
            update(EscrowAgreement)
            .where(EscrowAgreement.id == agreement.id)
            .where(EscrowAgreement.assigned_agent_id.is_(None))
            .values(assigned_agent_id=agent_id)
            .execution_options(synchronize_session=False)
        )
        await self._session.refresh(agreement)
        return result.rowcount == 1


class EventRepository:
    """Data access for the append-only audit event log."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(
        self,
        agreement_id: uuid.UUID,
        event_type: EventType,
        old_status: EscrowStatus | None,
        new_status: EscrowStatus,
        actor: str = "SYSTEM",
        metadata: dict | None = None,
    ) -> EscrowEvent:
        """Append a new audit event. This is the ONLY write operation allowed."""
        evt = EscrowEvent(
            agreement_id=agreement_id,
            event_type=event_type.value,
            old_status=old_status.value if old_status else None,
            new_status=new_status.value,
            actor=actor,
            metadata_json=metadata,
        )
        self._session.add(evt)
        await self._session.flush()
        return evt

    async def get_by_agreement(self, agreement_id: uuid.UUID) -> list[EscrowEvent]:
        result = await self._session.execute(
            select(EscrowEvent)
            .where(EscrowEvent.agreement_id == agreement_id)
            .order_by(EscrowEvent.created_at.asc())
        )
        return list(result.scalars().all())


class TransactionRepository:
    """Data access for wallet activity."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, transaction: Transaction) -> Transaction:
        self._session.add(transaction)
        await self._session.flush()
        return transaction

    async def recent_for_account(self, account_id: uuid.UUID, limit: int = 5) -> list[Transaction]:
        result = await self._session.execute(
            select(Transaction)
            .where(Transaction.account_id == account_id)
            .order_by(Transaction.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
