"""FastAPI dependencies for learning analytics."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import AnalyticsService


async def get_analytics_service(request: Request) -> AnalyticsService:
    """Get analytics service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "analytics_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Analytics service not available",
        )
    return app_state.analytics_service


AnalyticsServiceDep = Annotated[AnalyticsService, Depends(get_analytics_service)]
