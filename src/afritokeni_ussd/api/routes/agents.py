"""Agent registry routes.

Routes:
    POST   /api/v1/agents                 Register an agent
    GET    /api/v1/agents                 List active agents
    GET    /api/v1/agents/{id}/earnings   Commission on completed exchanges
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from afritokeni_ussd.api.deps import get_app_settings, get_db_session
from afritokeni_ussd.config import Settings
from afritokeni_ussd.schemas.agents import (
    AgentEarningsResponse,
    AgentResponse,
    CreateAgentRequest,
)
from afritokeni_ussd.services.agent_service import AgentService
from afritokeni_ussd.services.escrow_service import EscrowService

router = APIRouter(prefix="/api/v1/agents", tags=["Agents"])


@router.post("", response_model=AgentResponse, status_code=201, summary="Register an agent")
async def create_agent(
    request: CreateAgentRequest,
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> AgentResponse:
    svc = AgentService(session, settings.agent_default_commission_rate)
    agent = await svc.register(
        business_name=request.business_name,
        phone_number=request.phone_number,
        city=request.city,
        principal_id=request.principal_id,
        address=request.address,
        commission_rate=request.commission_rate,
    )
    return AgentResponse.model_validate(agent)


@router.get("", response_model=list[AgentResponse], summary="List active agents")
async def list_agents(
    limit: int = Query(default=50, ge=1, le=200),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> list[AgentResponse]:
    svc = AgentService(session, settings.agent_default_commission_rate)
    return [AgentResponse.model_validate(a) for a in await svc.list_active(limit)]


@router.get(
    "/{agent_id}/earnings",
    response_model=AgentEarningsResponse,
    summary="Commission earned on completed exchanges",
)
async def get_agent_earnings(
    agent_id: str,
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> AgentEarningsResponse:
    earnings = await EscrowService(session, settings.escrow_timeout_hours).agent_earnings(agent_id)
    return AgentEarningsResponse.model_validate(earnings)
