"""LearnHub API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from learnhub.analytics.router import router as analytics_router
from learnhub.analytics.service import AnalyticsService
from learnhub.catalog.service import CatalogService
from learnhub.config import get_settings
from learnhub.core.context import get_request_id
from learnhub.core.database import init_async_cassandra, shutdown_async_cassandra
from learnhub.core.exceptions import LearnHubError, status_code_for
from learnhub.core.logging import configure_structlog, get_logger
from learnhub.core.middleware import RequestContextMiddleware
from learnhub.enrollments.router import router as enrollments_router
from learnhub.enrollments.service import EnrollmentService
from learnhub.health import router as health_router
from learnhub.progress.router import router as progress_router
from learnhub.progress.service import ProgressService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


# Application state for dependency injection
class AppState:
    """Application state container."""

    cassandra_session: Any = None
    catalog_service: CatalogService | None = None
    enrollment_service: EnrollmentService | None = None
    progress_service: ProgressService | None = None
    analytics_service: AnalyticsService | None = None


app_state = AppState()


def build_services(app: FastAPI, session: Any) -> None:
    """Create the services on top of a Cassandra session.

    Services are stored on ``app_state`` and on ``app.state`` for dependency
    injection via ``request.app.state``.
    """
    settings = get_settings()
    keyspace = settings.cassandra_keyspace

    app_state.catalog_service = CatalogService(
        session=session,
        keyspace=keyspace,
        default_required_watch_percent=settings.progress_default_required_watch_percent,
        default_passing_score_percent=settings.progress_default_passing_score_percent,
    )
    app_state.enrollment_service = EnrollmentService(
        session=session,
        keyspace=keyspace,
        catalog=app_state.catalog_service,
    )
    app_state.progress_service = ProgressService(
        session=session,
        keyspace=keyspace,
        catalog=app_state.catalog_service,
        enrollments=app_state.enrollment_service,
        max_interactions=settings.progress_max_interactions,
    )
    app_state.analytics_service = AnalyticsService(
        catalog=app_state.catalog_service,
        enrollments=app_state.enrollment_service,
        progress=app_state.progress_service,
        default_window_days=settings.analytics_default_window_days,
    )

    app.state.catalog_service = app_state.catalog_service
    app.state.enrollment_service = app_state.enrollment_service
    app.state.progress_service = app_state.progress_service
    app.state.analytics_service = app_state.analytics_service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Initialize Cassandra (async)
    try:
        app_state.cassandra_session = await init_async_cassandra()
        logger.info("cassandra_initialized")

        build_services(app, app_state.cassandra_session)
        logger.info("progress_services_initialized")
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Keep debug off so Starlette never renders stack traces; the handlers
    # below log details and return safe messages
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Learning progress tracking API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": str(exc.detail)
                if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
                "status_code": exc.status_code,
                "request_id": request_id,
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(LearnHubError)
    async def domain_exception_handler(
        request: Request, exc: LearnHubError
    ) -> ORJSONResponse:
        """Domain errors that escaped a router keep their status mapping."""
        request_id = _get_request_id_safe(request)
        status_code = status_code_for(exc)

        logger.warning(
            "domain_error",
            code=exc.code,
            detail=exc.message,
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status_code,
            content={
                "error": True,
                "message": exc.message,
                "code": exc.code,
                "status_code": status_code,
                "request_id": request_id,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": 422,
                "request_id": request_id,
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        Details are logged internally; the response carries a generic message.
        """
        request_id = _get_request_id_safe(request)

        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "request_id": request_id,
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(enrollments_router)
    app.include_router(progress_router)
    app.include_router(analytics_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "LearnHub API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
