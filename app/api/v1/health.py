"""Liveness/readiness check for load balancers."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import check_db_connected, get_db
from app.schemas.health import HealthResponse

router = APIRouter()

SERVICE_VERSION = "0.1.0"


@router.get("/", response_model=HealthResponse)
def get_health(db: Annotated[Session, Depends(get_db)], response: Response) -> HealthResponse:
    """503 with status 'degraded' when SELECT 1 fails, so the instance is taken out of rotation."""
    connected = check_db_connected(db)
    if not connected:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return HealthResponse(
        status="ok" if connected else "degraded",
        version=SERVICE_VERSION,
        environment=settings.APP_ENV,
        database="connected" if connected else "disconnected",
    )
