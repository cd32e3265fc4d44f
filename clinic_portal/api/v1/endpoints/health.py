"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from clinic_portal.config import settings
from clinic_portal.core.redis_client import check_redis_connection
from clinic_portal.database import check_database_connection

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    """Health of the service and the stores it depends on."""

    database: str
    redis: str
    clinic_timezone: str


def _label(healthy: bool) -> str:
    return "healthy" if healthy else "unhealthy"


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """Basic liveness check."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Detailed health check",
)
async def detailed_health_check() -> DetailedHealthResponse:
    """
    Health check including the appointment database and Redis.

    The database is required for booking; a Redis outage only disables the
    doctor list cache, so it degrades the status rather than failing it.
    """
    db_healthy = await check_database_connection()
    redis_healthy = await check_redis_connection()

    if not db_healthy:
        overall = "unhealthy"
    elif not redis_healthy:
        overall = "degraded"
    else:
        overall = "healthy"

    return DetailedHealthResponse(
        status=overall,
        version=settings.app_version,
        environment=settings.environment,
        database=_label(db_healthy),
        redis=_label(redis_healthy),
        clinic_timezone=settings.clinic_timezone,
    )


@router.get("/ping", status_code=status.HTTP_200_OK, summary="Simple ping")
async def ping() -> dict[str, str]:
    """Simple ping endpoint."""
    return {"message": "pong"}
