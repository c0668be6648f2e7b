"""Pydantic schemas for the agent-facing escrow API.

These schemas define the request/response shapes for the REST API. They are
separate from the ORM models to keep the API and database layers apart.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from afritokeni_ussd.domain.enums import AssetType, ExchangeDirection

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class CreateAgreementRequest(BaseModel):
    """Request body for opening an exchange agreement."""

    initiator_user_id: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Ledger principal of the user opening the exchange",
    )
    asset_type: AssetType = Field(..., examples=["ckBTC"])
    asset_amount: Decimal = Field(..., gt=0, decimal_places=8, examples=["0.0025"])
    local_amount: Decimal = Field(..., gt=0, decimal_places=2, examples=["500000"])
    currency: str = Field(..., min_length=3, max_length=3, examples=["UGX"])
    direction: ExchangeDirection = ExchangeDirection.CRYPTO_FOR_CASH
    agent_id: str | None = Field(
        default=None,
        description="Pre-assign the agreement to this agent. Unassigned agreements "
        "bind to the first agent whose verification succeeds.",
    )


class FundAgreementRequest(BaseModel):
    """Request body for recording the ledger transfer into escrow."""

    reference: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="Ledger transaction reference of the transfer",
    )


class VerifyAgreementRequest(BaseModel):
    """Request body for an agent redeeming an exchange code."""

    agent_id: str = Field(..., description="UUID of the verifying agent")


class CancelAgreementRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class AgreementResponse(BaseModel):
    """Response schema for an escrow agreement."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    exchange_code: str
    initiator_user_id: str
    assigned_agent_id: str | None
    direction: str
    asset_type: str
    asset_amount: Decimal
    local_currency_amount: Decimal
    currency: str
    funding_reference: str | None
    status: str
    created_at: datetime
    expires_at: datetime
    funded_at: datetime | None
    completed_at: datetime | None


class AgreementEventResponse(BaseModel):
    """Response schema for an audit event."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    agreement_id: uuid.UUID
    event_type: str
    old_status: str | None
    new_status: str
    actor: str
    metadata: dict | None = Field(default=None, validation_alias="metadata_json")
    created_at: datetime
