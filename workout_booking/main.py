"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order
- Can create multiple app instances if needed (e.g., for testing)

For local development:
    uvicorn workout_booking.main:app --reload

For production:
    gunicorn workout_booking.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.dependencies import get_session_factory
from .api.routes import coaches, feedbacks, health, workouts
from .config.settings import get_settings
from .core.booking.errors import (
    BookingError,
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
)
from .infrastructure.scheduler import LifecycleScheduler

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=get_settings().log_level.upper(),
)

logger = logging.getLogger(__name__)

# Domain error -> HTTP status
ERROR_STATUS: dict[type[BookingError], int] = {
    InvalidInputError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    InvalidStateError: status.HTTP_400_BAD_REQUEST,
    ConflictError: status.HTTP_409_CONFLICT,
}


def status_for(exc: BookingError) -> int:
    for error_type, code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    On startup: validate configuration, create tables, and start the
    lifecycle sweep if one is configured. On shutdown: stop the sweep.
    """
    # Startup
    settings = get_settings()

    logger.info(
        "Workout Booking API starting",
        extra={
            "version": settings.api_version,
            "mock_mode": settings.database_mock_mode,
        }
    )

    # Validate configuration
    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )
        # For development, we log the error but continue

    factory = get_session_factory(settings)

    scheduler = None
    if settings.lifecycle_sweep_minutes > 0:
        scheduler = LifecycleScheduler(factory, settings.lifecycle_sweep_minutes)
        scheduler.start()

    yield

    # Shutdown
    if scheduler is not None:
        scheduler.shutdown()
    logger.info("Workout Booking API shutting down")


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    This function is called once at startup (in production) or
    multiple times (in tests with different configurations).
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Coach/client workout booking.

        ## Workflow

        1. **Find a coach**: `GET /api/v1/coaches/{coach_id}/available-slots/{date}`
           or `GET /api/v1/workouts/available?date=...&time=...`
        2. **Book**: `POST /api/v1/workouts`
        3. **Track**: `GET /api/v1/workouts`
        4. **Review**: `POST /api/v1/feedbacks` once the session has ended

        ## Authentication

        Booking, listing, cancelling and feedback require a Bearer token
        issued by the identity provider.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    # Configure allowed origins via CORS_ORIGINS environment variable
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        coaches.router,
        prefix="/api/v1/coaches",
        tags=["Coaches"],
    )

    app.include_router(
        workouts.router,
        prefix="/api/v1/workouts",
        tags=["Workouts"],
    )

    app.include_router(
        feedbacks.router,
        prefix="/api/v1/feedbacks",
        tags=["Feedback"],
    )

    # Root endpoint
    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint - points at the docs."""
        return {
            "message": "Workout Booking API",
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, exc: BookingError):
        """Domain rule violations become 4xx responses with the rule's message."""
        code = status_for(exc)
        logger.warning(
            "Request rejected",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error_type": type(exc).__name__,
                "status_code": code,
                "error": exc.message,
            }
        )
        return JSONResponse(status_code=code, content={"detail": exc.message, "code": exc.code})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Malformed ids and bodies are invalid input like any other: 400."""
        errors = [
            {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in exc.errors()
        ]
        logger.warning(
            "Request validation failed",
            extra={"path": request.url.path, "errors": errors}
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Invalid request.", "errors": errors},
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """
        Catch-all exception handler.

        In production, this prevents stack traces from leaking to clients.
        We log the full error server-side but return a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error. Please contact support if this persists."
            }
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()


# For debugging/development
if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "workout_booking.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
