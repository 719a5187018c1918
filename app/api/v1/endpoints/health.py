"""Liveness and readiness probes of the agenda service."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from app.config import settings
from app.database import check_database_connection

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    """Readiness, with the store the agenda is booked against."""

    database: str
    timezone: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Service liveness",
)
async def health_check() -> HealthResponse:
    """The process is up and serving requests."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Service readiness",
)
async def detailed_health_check() -> DetailedHealthResponse:
    """
    Readiness for booking.

    ``degraded`` means the appointment store cannot be reached, so slot checks
    and bookings will fail until it is back.
    """
    db_ok = await check_database_connection()

    return DetailedHealthResponse(
        status="healthy" if db_ok else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database="healthy" if db_ok else "unhealthy",
        timezone=settings.clinic_timezone,
    )


@router.get("/ping", status_code=status.HTTP_200_OK, tags=["Health"], summary="Ping")
async def ping() -> dict[str, str]:
    return {"message": "pong"}
