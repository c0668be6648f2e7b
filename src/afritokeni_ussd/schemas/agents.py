"""Pydantic schemas for the agent registry API."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class CreateAgentRequest(BaseModel):
    business_name: str = Field(..., min_length=2, max_length=120, examples=["Kampala Central Agent"])
    phone_number: str = Field(..., examples=["+256700123456"])
    city: str = Field(..., min_length=2, max_length=80, examples=["Kampala"])
    address: str = Field(default="", max_length=200)
    principal_id: str = Field(..., min_length=1, max_length=64)
    commission_rate: Decimal | None = Field(
        default=None,
        ge=0,
        lt=1,
        description="Fraction of each exchange the agent earns. Defaults to the configured rate.",
    )


class AgentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    business_name: str
    phone_number: str
    city: str
    address: str
    location: str
    principal_id: str
    commission_rate: Decimal
    is_active: bool
    completed_exchanges: int
    created_at: datetime


class AgentEarningsResponse(BaseModel):
    """Commission earned on completed exchanges."""

    model_config = ConfigDict(from_attributes=True)

    agent_id: str
    commission_rate: Decimal
    completed_exchanges: int
    local_by_currency: dict[str, Decimal]
    asset_by_type: dict[str, Decimal]
