"""Gateway-facing USSD request schema."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class UssdRequest(BaseModel):
    """One gateway turn. Field names follow the gateway's camelCase payload."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., min_length=1, max_length=128, alias="sessionId")
    phone_number: str = Field(..., min_length=1, max_length=32, alias="phoneNumber")
    service_code: str | None = Field(default=None, alias="serviceCode")
    text: str = Field(
        default="",
        description="Everything typed this session, joined with '*'",
    )
