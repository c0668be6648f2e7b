"""Agent-facing escrow REST API routes.

The USSD buy/sell flows call the same service layer, so both surfaces share
one set of rules.

Routes:
    POST   /api/v1/escrow                 Create an agreement
    GET    /api/v1/escrow/{code}          Get agreement details
    GET    /api/v1/escrow/{code}/status   Lightweight status check
    GET    /api/v1/escrow/{code}/events   Audit trail
    POST   /api/v1/escrow/{code}/fund     Record the ledger transfer into escrow
    POST   /api/v1/escrow/{code}/verify   Agent redeems the code
    POST   /api/v1/escrow/{code}/cancel   Initiator cancels a pending agreement
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from afritokeni_ussd.api.deps import get_app_settings, get_db_session
from afritokeni_ussd.config import Settings
from afritokeni_ussd.logging_config import get_logger
from afritokeni_ussd.schemas.escrow import (
    AgreementEventResponse,
    AgreementResponse,
    CancelAgreementRequest,
    CreateAgreementRequest,
    FundAgreementRequest,
    VerifyAgreementRequest,
)
from afritokeni_ussd.services.escrow_service import EscrowService

router = APIRouter(prefix="/api/v1/escrow", tags=["Escrow"])
logger = get_logger(__name__)


def _service(session: AsyncSession, settings: Settings) -> EscrowService:
    return EscrowService(session, settings.escrow_timeout_hours)


@router.post(
    "",
    response_model=AgreementResponse,
    status_code=201,
    summary="Create an exchange agreement",
)
async def create_agreement(
    request: CreateAgreementRequest,
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> AgreementResponse:
    agreement = await _service(session, settings).create(
        initiator_user_id=request.initiator_user_id,
        asset=request.asset_type,
        asset_amount=request.asset_amount,
        local_amount=request.local_amount,
        currency=request.currency.upper(),
        direction=request.direction,
        agent_id=request.agent_id,
    )
    return AgreementResponse.model_validate(agreement)


@router.get(
    "/{exchange_code}",
    response_model=AgreementResponse,
    summary="Get agreement details",
)
async def get_agreement(
    exchange_code: str,
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> AgreementResponse:
    agreement = await _service(session, settings).get_by_code(exchange_code)
    return AgreementResponse.model_validate(agreement)


@router.get("/{exchange_code}/status", summary="Lightweight status check")
async def get_agreement_status(
    exchange_code: str,
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> dict:
    return await _service(session, settings).get_status(exchange_code)


@router.get(
    "/{exchange_code}/events",
    response_model=list[AgreementEventResponse],
    summary="Get the audit trail",
)
async def get_agreement_events(
    exchange_code: str,
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> list[AgreementEventResponse]:
    events = await _service(session, settings).get_events(exchange_code)
    return [AgreementEventResponse.model_validate(e) for e in events]


@router.post(
    "/{exchange_code}/fund",
    response_model=AgreementResponse,
    summary="Record the ledger transfer into escrow",
)
async def fund_agreement(
    exchange_code: str,
    request: FundAgreementRequest,
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> AgreementResponse:
    agreement = await _service(session, settings).mark_funded(exchange_code, request.reference)
    return AgreementResponse.model_validate(agreement)


@router.post(
    "/{exchange_code}/verify",
    response_model=AgreementResponse,
    summary="Agent redeems an exchange code",
)
async def verify_agreement(
    exchange_code: str,
    request: VerifyAgreementRequest,
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> AgreementResponse:
    agreement = await _service(session, settings).verify_and_complete(
        exchange_code, request.agent_id
    )
    logger.info("api.escrow_verified", exchange_code=agreement.exchange_code)
    return AgreementResponse.model_validate(agreement)


@router.post(
    "/{exchange_code}/cancel",
    response_model=AgreementResponse,
    summary="Cancel a pending agreement",
)
async def cancel_agreement(
    exchange_code: str,
    request: CancelAgreementRequest,
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> AgreementResponse:
    agreement = await _service(session, settings).cancel(exchange_code, request.user_id)
    return AgreementResponse.model_validate(agreement)
