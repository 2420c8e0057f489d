"""
Application factory for FastAPI.

Part of PT-102: Service wiring

This module provides a factory function for creating FastAPI application instances.
The factory pattern allows for:
- Easy testing with custom settings
- Multiple app instances with different configurations
- Clear separation of app creation from route definitions

Usage:
    from backend.main import create_app
    from backend.settings import Settings

    # Default app (uses get_settings())
    app = create_app()

    # Test app with custom settings
    test_settings = Settings(environment="test", _env_file=None)
    test_app = create_app(settings=test_settings)
"""

import logging
from typing import Optional

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from application.exceptions import (
    NotFoundError,
    PersistenceError,
    ProgressionConflictError,
    ValidationError,
)
from backend.settings import Settings, get_settings

logger = logging.getLogger(__name__)

# Engine exception -> HTTP status
EXCEPTION_STATUS_CODES = (
    (NotFoundError, 404),
    (ValidationError, 400),
    (ProgressionConflictError, 409),
    (PersistenceError, 503),
)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure a FastAPI application instance.

    Args:
        settings: Optional Settings instance. If not provided, uses get_settings()
                  which loads from environment variables.

    Returns:
        Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    _configure_logging(settings)

    # Initialize Sentry for error tracking
    _init_sentry(settings)

    app = FastAPI(
        title="Rehab Progression API",
        description="Exercise periodization and progression engine",
        version="1.0.0",
    )

    _configure_cors(app, settings)
    _register_exception_handlers(app)
    _include_routers(app)

    logger.info(f"Cell edit mode: {settings.cell_edit_mode.value}")

    return app


def _configure_logging(settings: Settings) -> None:
    """Set the root log level from settings."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger().setLevel(settings.log_level)


def _init_sentry(settings: Settings) -> None:
    """Initialize Sentry SDK if DSN is configured."""
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            traces_sample_rate=0.1,  # 10% of transactions for performance monitoring
            profiles_sample_rate=0.1,
        )
        logger.info("Sentry initialized for rehab-progression-api")


def _configure_cors(app: FastAPI, settings: Settings) -> None:
    """Configure CORS middleware for the application."""
    trusted_origins = [
        "http://localhost:3000",
        "http://localhost:3001",
    ]
    trusted_origins.extend(settings.cors_origins_list)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=trusted_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _register_exception_handlers(app: FastAPI) -> None:
    """Map engine exceptions to HTTP responses."""

    def make_handler(status_code: int):
        async def handler(request: Request, exc: Exception) -> JSONResponse:
            if status_code >= 500:
                logger.error(f"{request.method} {request.url.path} failed: {exc}")
            else:
                logger.info(f"{request.method} {request.url.path} -> {status_code}: {exc}")
            return JSONResponse(status_code=status_code, content={"detail": str(exc)})
        return handler

    for exc_class, status_code in EXCEPTION_STATUS_CODES:
        app.add_exception_handler(exc_class, make_handler(status_code))


def _include_routers(app: FastAPI) -> None:
    """Include all API routers in the application."""
    from api.routers import (
        health_router,
        blocks_router,
        periodization_router,
        flags_router,
    )

    # Health router (no prefix - /health at root)
    app.include_router(health_router)

    # Block schedules (PT-113)
    app.include_router(blocks_router)
    # Periodization cycles (PT-114)
    app.include_router(periodization_router)
    # Clinician flags (PT-115)
    app.include_router(flags_router)


# Default app instance for uvicorn
# This allows: uvicorn backend.main:app --reload
app = create_app()
