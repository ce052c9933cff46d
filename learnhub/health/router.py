"""Health check endpoints."""

from fastapi import APIRouter, Request

from learnhub.config import get_settings


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, str | bool]:
    """Readiness probe - ready once the progress services are wired."""
    settings = get_settings()
    database = getattr(request.app.state, "progress_service", None) is not None
    return {
        "status": "ready" if database else "degraded",
        "environment": settings.environment,
        "debug": settings.debug,
        "database": database,
    }


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
