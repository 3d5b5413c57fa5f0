# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI Application Factory.

This module provides the main application factory for the field service API.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from fieldservice import __version__
from fieldservice.api.dependencies import (
    close_services,
    get_notification_hub,
    get_plugin_manager,
    get_pool_manager,
    get_tenant_registry,
    init_services,
)
from fieldservice.api.errors import register_exception_handlers
from fieldservice.api.middleware.auth import AuthMiddleware
from fieldservice.api.middleware.rate_limit import (
    FailedLookupTracker,
    limiter,
    rate_limit_exceeded_handler,
)
from fieldservice.api.middleware.tenant import TenantMiddleware
from fieldservice.api.routes import health, notifications
from fieldservice.api.routes import router as api_router
from fieldservice.api.routes.plugins import plugin_access_dependency
from fieldservice.core.config import get_settings
from fieldservice.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Startup:
    - Central database, tenant pool manager, tenant registry
    - Plugin loading, catalog sync and route mounting
    - Notification heartbeat

    Shutdown closes the hub, every tenant pool and the central engine.

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings = get_settings()
    setup_logging(settings)
    logger.info(
        "Starting field service API",
        extra={"environment": settings.environment, "debug": settings.debug},
    )

    # =========================================================================
    # Startup
    # =========================================================================

    await init_services(settings)
    logger.info("Database connections initialized")

    plugins = get_plugin_manager()
    plugins.load_configured()
    try:
        await plugins.sync_catalog()
    except Exception as e:
        logger.warning("Failed to sync plugin catalog: %s", str(e))

    # Routes are mounted once per app; a restarted lifespan reuses them
    if not getattr(app.state, "plugin_routes_mounted", False):
        plugins.mount_routes(app, dependencies_for=plugin_access_dependency)
        app.state.plugin_routes_mounted = True

    get_notification_hub().start()

    yield

    # =========================================================================
    # Shutdown
    # =========================================================================

    try:
        await close_services()
        logger.info("Database connections closed")
    except Exception as e:
        logger.warning("Error closing services: %s", str(e))

    logger.info("Shutting down field service API")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Field Service API",
        description="Multi-tenant field service management backend",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        # Disable automatic redirects from /path to /path/
        # This prevents 307 redirects that lose Authorization headers
        redirect_slashes=False,
    )

    # =========================================================================
    # State
    # =========================================================================
    app.state.limiter = limiter

    # =========================================================================
    # Exception handlers
    # =========================================================================
    register_exception_handlers(app)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # =========================================================================
    # Middleware (order matters - last added is first executed)
    # =========================================================================

    # Auth middleware - validates JWT tokens
    app.add_middleware(AuthMiddleware)

    # Tenant middleware - resolves tenant and attaches its pool
    app.add_middleware(
        TenantMiddleware,
        get_registry=get_tenant_registry,
        get_pools=get_pool_manager,
        settings=settings.tenant,
        failures=FailedLookupTracker(
            max_failures=settings.tenant.lookup_max_failures,
            window=float(settings.tenant.lookup_failure_window),
        ),
    )

    # CORS middleware (should be last to execute first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins_list,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
    )

    # =========================================================================
    # Routes
    # =========================================================================
    app.include_router(health.router, tags=["Health"])
    app.include_router(api_router)
    app.include_router(notifications.websocket_router, tags=["Notifications"])

    return app
