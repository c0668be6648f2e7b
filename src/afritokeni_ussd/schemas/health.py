"""Health and admin response schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    timestamp: datetime
    uptime_seconds: float
    active_sessions: int
    database: str = "unknown"
    redis: str = "unknown"


class ClearSessionsResponse(BaseModel):
    cleared: int
