"""Delivery Tracker API service.

FastAPI application providing:
- Delivery lifecycle endpoints (create, list, claim, finish, delete)
- Dashboard counts by status
- Driver registration and login, administrator login
- Optional static file serving for a browser front end

This module provides the app factory pattern for creating configured
FastAPI instances suitable for testing and production deployment.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from deliverytrack.api.middleware import (
    ErrorHandlerMiddleware,
    RequestIDMiddleware,
    register_exception_handlers,
)
from deliverytrack.api.routers import auth_router, deliveries_router
from deliverytrack.core.settings import get_settings
from deliverytrack.db import (
    close_engine,
    create_engine_from_settings,
    create_session_factory,
    init_schema,
)
from deliverytrack.services.credentials import CredentialStore
from deliverytrack.services.lifecycle import DeliveryLifecycleService
from deliverytrack.services.store import DeliveryStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from deliverytrack.core.config import Settings

logger = logging.getLogger(__name__)

API_DESCRIPTION = """
Delivery tracking for a small courier team.

Deliveries move pending -> collected -> finished. Any number of drivers may
try to claim the same pending delivery; exactly one wins and the others get
409 Conflict.

## Documentation

- OpenAPI spec: `/api/openapi.json`
- Swagger UI: `/api/docs`
"""


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure a FastAPI application instance.

    The database engine, the delivery services and the credential store are
    built in the lifespan handler and stored in app.state, so nothing
    connects to the database until the server starts.

    Args:
        settings: Optional Settings instance. Loaded from the environment
            when omitted. Pass explicit settings for tests.

    Returns:
        Configured FastAPI application ready to serve requests.

    Example:
        settings = Settings(database=DatabaseSettings(url="sqlite+aiosqlite:///./t.db"))
        app = create_app(settings)
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=API_DESCRIPTION,
        version=settings.app_version,
        docs_url="/api/docs",
        redoc_url=None,
        openapi_url="/api/openapi.json",
        lifespan=_lifespan,
    )

    app.state.settings = settings

    register_exception_handlers(app)
    _add_middleware(app, settings)
    _mount_static_files(app, settings)
    _include_routers(app)

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, str]:
        """Liveness check."""
        return {"status": "healthy"}

    logger.info("%s API application created (version=%s)", settings.app_name, settings.app_version)

    return app


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the database and wire the services for the app's lifetime."""
    settings: Settings = app.state.settings

    engine = create_engine_from_settings(settings.database)
    await init_schema(engine)
    session_factory = create_session_factory(engine)

    app.state.lifecycle = DeliveryLifecycleService(
        DeliveryStore(session_factory),
        finish_policy=settings.lifecycle.finish_policy,
        default_page_size=settings.lifecycle.default_page_size,
        max_page_size=settings.lifecycle.max_page_size,
    )
    app.state.credentials = CredentialStore(
        session_factory,
        min_name_length=settings.credentials.min_name_length,
        min_password_length=settings.credentials.min_password_length,
        iterations=settings.credentials.hash_iterations,
    )

    if settings.admin.seed:
        await app.state.credentials.ensure_admin(
            settings.admin.username,
            settings.admin.password.get_secret_value(),
        )

    logger.info(
        "Database ready (finish_policy=%s)",
        settings.lifecycle.finish_policy.value,
    )
    try:
        yield
    finally:
        await close_engine(engine)
        logger.info("Database connections closed")


def _add_middleware(app: FastAPI, settings: Settings) -> None:
    """Add middleware to the application.

    Starlette wraps each new middleware around the previous ones, so the
    request ID middleware is added last to be outermost and visible to
    every error response.
    """
    app.add_middleware(ErrorHandlerMiddleware)

    allowed_origins = [] if settings.is_production else ["http://localhost:3000"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.add_middleware(RequestIDMiddleware)


def _mount_static_files(app: FastAPI, settings: Settings) -> None:
    """Serve the configured static directory at /static, if any."""
    if not settings.static_dir:
        return

    static_dir = Path(settings.static_dir)
    if not static_dir.is_dir():
        logger.warning("Static files directory not found: %s", static_dir)
        return

    app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")
    logger.info("Static files mounted from %s", static_dir)


def _include_routers(app: FastAPI) -> None:
    """Include the JSON API routers under /api."""
    app.include_router(deliveries_router, prefix="/api")
    app.include_router(auth_router, prefix="/api")
