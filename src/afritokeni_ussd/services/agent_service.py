"""Agent registry: onboarding cash agents and offering them on USSD screens."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from afritokeni_ussd.domain.exceptions import AgentNotFoundError, ValidationError
from afritokeni_ussd.domain.phone import normalize_phone
from afritokeni_ussd.domain.session import AgentOption
from afritokeni_ussd.infrastructure.database.orm_models import Agent
from afritokeni_ussd.infrastructure.database.repositories import AgentRepository
from afritokeni_ussd.logging_config import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def to_option(agent: Agent) -> AgentOption:
    """Snapshot an agent for a session's selection list."""
    return AgentOption(
        id=str(agent.id),
        business_name=agent.business_name,
        location=agent.location,
        phone_number=agent.phone_number,
        commission_rate=agent.commission_rate,
    )


class AgentService:
    def __init__(
        self,
        session: AsyncSession,
        default_commission_rate: Decimal = Decimal("0.02"),
    ) -> None:
        self._repo = AgentRepository(session)
        self._default_rate = default_commission_rate

    async def register(
        self,
        business_name: str,
        phone_number: str,
        city: str,
        principal_id: str,
        address: str = "",
        commission_rate: Decimal | None = None,
    ) -> Agent:
        phone = normalize_phone(phone_number)
        if phone is None:
            raise ValidationError(f"Invalid agent phone number: {phone_number}")
        rate = self._default_rate if commission_rate is None else commission_rate
        if not Decimal("0") <= rate < Decimal("1"):
            raise ValidationError("Commission rate must be between 0 and 1")

        agent = await self._repo.create(
            Agent(
                business_name=business_name.strip(),
                phone_number=phone,
                city=city.strip(),
                address=address.strip(),
                principal_id=principal_id,
                commission_rate=rate,
            )
        )
        logger.info("agent.registered", agent_id=str(agent.id), city=agent.city)
        return agent

    async def get(self, agent_id: str) -> Agent:
        try:
            agent = await self._repo.get_by_id(uuid.UUID(agent_id))
        except ValueError:
            agent = None
        if agent is None:
            raise AgentNotFoundError(agent_id)
        return agent

    async def list_active(self, limit: int | None = None) -> list[Agent]:
        return await self._repo.list_active(limit)

    async def options(self, limit: int) -> list[AgentOption]:
        """Active agents as selection-screen snapshots."""
        return [to_option(agent) for agent in await self._repo.list_active(limit)]
