"""Pydantic API schemas."""

from afritokeni_ussd.schemas.agents import (
    AgentEarningsResponse,
    AgentResponse,
    CreateAgentRequest,
)
from afritokeni_ussd.schemas.escrow import (
    AgreementEventResponse,
    AgreementResponse,
    CancelAgreementRequest,
    CreateAgreementRequest,
    FundAgreementRequest,
    VerifyAgreementRequest,
)
from afritokeni_ussd.schemas.health import ClearSessionsResponse, HealthResponse
from afritokeni_ussd.schemas.ussd import UssdRequest

__all__ = [
    "AgentEarningsResponse",
    "AgentResponse",
    "AgreementEventResponse",
    "AgreementResponse",
    "CancelAgreementRequest",
    "ClearSessionsResponse",
    "CreateAgentRequest",
    "CreateAgreementRequest",
    "FundAgreementRequest",
    "HealthResponse",
    "UssdRequest",
    "VerifyAgreementRequest",
]
