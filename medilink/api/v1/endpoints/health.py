"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from medilink.config import settings
from medilink.core.calendar_tokens import check_redis_connection
from medilink.core.firebase import get_firebase_app

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    """Detailed health check response model."""

    firebase: str
    token_cache: str


def _firebase_ready() -> bool:
    try:
        get_firebase_app()
        return True
    except RuntimeError:
        return False


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
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
    summary="Detailed health check",
)
async def detailed_health_check() -> DetailedHealthResponse:
    """
    Detailed health check with Firebase and token cache status.

    The token cache is only checked when it lives in Redis.
    """
    firebase_ok = _firebase_ready()
    if settings.calendar_token_backend == "redis":
        cache_ok = check_redis_connection(settings)
    else:
        cache_ok = True

    return DetailedHealthResponse(
        status="healthy" if firebase_ok and cache_ok else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        firebase="healthy" if firebase_ok else "unhealthy",
        token_cache="healthy" if cache_ok else "unhealthy",
    )


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    return {"message": "pong"}
