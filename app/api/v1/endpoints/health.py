"""Health check endpoints."""

from fastapi import APIRouter, Request, status
from pydantic import BaseModel

from app.config import settings
from app.core.redis_client import check_redis_connection
from app.core.schedule import clinic_now
from app.database import check_database_connection

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    """Health of the database, cache and background jobs."""

    database: str
    redis: str
    email: str
    reminders: str
    clinic_time: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """Liveness check."""
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
async def detailed_health_check(request: Request) -> DetailedHealthResponse:
    """
    Detailed health check.

    Redis only backs the specialty cache, so an outage there reports
    ``degraded`` rather than ``unhealthy``.
    """
    db_healthy = await check_database_connection()
    redis_healthy = await check_redis_connection()
    scheduler = getattr(request.app.state, "reminder_scheduler", None)

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
        database="healthy" if db_healthy else "unhealthy",
        redis="healthy" if redis_healthy else "unhealthy",
        email="enabled" if settings.email_enabled else "disabled",
        reminders="running" if scheduler is not None else "stopped",
        clinic_time=clinic_now().isoformat(timespec="minutes"),
    )
