"""FastAPI dependencies for progress tracking.

Provides dependency injection for:
- Progress service
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from learnhub.core.exceptions import LearnHubError, status_code_for

from .service import ProgressService


async def get_progress_service(request: Request) -> ProgressService:
    """Get progress service from app state.

    Args:
        request: FastAPI request

    Returns:
        ProgressService instance
    """
    app_state = request.app.state
    if not getattr(app_state, "progress_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progress service not available",
        )
    return app_state.progress_service


# Type alias for dependency injection
ProgressServiceDep = Annotated[ProgressService, Depends(get_progress_service)]


def handle_progress_error(error: LearnHubError) -> HTTPException:
    """Convert domain errors to HTTP exceptions.

    Args:
        error: Domain error raised by the progress service

    Returns:
        HTTPException with appropriate status code
    """
    return HTTPException(
        status_code=status_code_for(error),
        detail=error.message,
    )
