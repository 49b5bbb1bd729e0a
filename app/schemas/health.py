"""Health check payload. Deliberately outside the ApiResponse envelope."""

from typing import Literal

from pydantic import BaseModel, Field

HealthStatus = Literal["ok", "degraded"]


class HealthResponse(BaseModel):
    status: HealthStatus = Field(description="'degraded' when the store is unreachable")
    service: str = "parish-office-api"
    version: str
    environment: str = Field(description="APP_ENV (dev or prod)")
    database: Literal["connected", "disconnected"]
