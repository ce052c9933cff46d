"""FastAPI dependencies for course enrollments."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from learnhub.core.exceptions import LearnHubError, status_code_for

from .service import EnrollmentService


async def get_enrollment_service(request: Request) -> EnrollmentService:
    """Get enrollment service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "enrollment_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Enrollment service not available",
        )
    return app_state.enrollment_service


EnrollmentServiceDep = Annotated[EnrollmentService, Depends(get_enrollment_service)]


def handle_enrollment_error(error: LearnHubError) -> HTTPException:
    """Convert enrollment errors to HTTP exceptions."""
    return HTTPException(
        status_code=status_code_for(error),
        detail=error.message,
    )
