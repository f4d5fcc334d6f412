"""
Main FastAPI application entry point.
Configures logging, exception handlers, middleware, and routers.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from decision_engine.api.routers import filters_router, health_router, sessions_router
from decision_engine.config import get_settings
from decision_engine.config.logging import configure_logging
from decision_engine.core.exceptions import AppException
from decision_engine.core.telemetry import setup_telemetry


# =============================================================================
# Lifespan (Startup/Shutdown)
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    logger = logging.getLogger(__name__)
    settings = get_settings()

    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Default turn timeout: {settings.DEFAULT_TURN_TIMEOUT_MINUTES} minutes")
    if settings.RANDOM_SEED is not None:
        logger.warning(f"Random seed fixed to {settings.RANDOM_SEED}")

    yield

    # Shutdown
    logger.info("Shutting down application")


# =============================================================================
# Exception Handlers
# =============================================================================


async def app_exception_handler(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    """Handle custom application exceptions."""
    if exc.status_code >= 500:
        logging.getLogger(__name__).error(
            f"{exc.error_code}: {exc.message} details={exc.details}"
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle unexpected exceptions - return generic error."""
    logger = logging.getLogger(__name__)
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
            }
        },
    )


# =============================================================================
# Application Factory
# =============================================================================


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Configure structured logging
    configure_logging(debug=settings.DEBUG)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="""
        Group Decision Engine

        Helps a group pick one venue from a shared candidate pool.

        ## Features
        - Hard and priority-weighted soft filters, opening hours per venue timezone
        - Relaxation suggestions when filters leave nothing
        - KN+M parameter suggestions
        - Turn-based elimination with quick-skips, timeouts and catch-up
        - Random draw from the final set
        - Observability: JSON logs, Prometheus, OpenTelemetry
        """,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Register exception handlers
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Include routers
    app.include_router(health_router)
    app.include_router(filters_router)
    app.include_router(sessions_router)

    # Setup Telemetry (Metrics & Tracing)
    setup_telemetry(app)

    return app


# Create application instance
app = create_app()


# =============================================================================
# Development Entry Point
# =============================================================================


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "decision_engine.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
