# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get database sessions (central and tenant)
- Get authenticated users
- Get tenant context
- Get the process-wide services (pools, registry, plugins, notifications)

Example:
    @router.get("/tickets")
    async def list_tickets(
        db: TenantDB,
        tenant: Tenant,
        current_user: AuthUser,
    ):
        ...
"""

import logging
from typing import Annotated, AsyncGenerator

from fastapi import Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from fieldservice.api.errors import ApiError
from fieldservice.api.middleware.auth import CurrentUser, extract_bearer_token, get_current_user
from fieldservice.api.middleware.tenant import get_tenant_from_request
from fieldservice.core.config import Settings, get_settings
from fieldservice.domains.activity.service import ActivityLogService, RequestOrigin
from fieldservice.domains.auth.jwt import JWTManager
from fieldservice.domains.tenant.registry import (
    TenantContext,
    TenantRegistry,
    normalize_tenant_code,
)
from fieldservice.infrastructure.database.connection import (
    close_central_database,
    create_central_schema,
    get_central_session,
    init_central_database,
)
from fieldservice.infrastructure.database.seeds import seed_default_tenant
from fieldservice.infrastructure.database.tenant_manager import TenantPoolManager
from fieldservice.infrastructure.notifications import NotificationHub
from fieldservice.plugins.manager import PluginManager

logger = logging.getLogger(__name__)

# Process-wide singletons, created by init_services
_pool_manager: TenantPoolManager | None = None
_tenant_registry: TenantRegistry | None = None
_plugin_manager: PluginManager | None = None
_notification_hub: NotificationHub | None = None


async def init_services(settings: Settings) -> None:
    """Initialize the central database and the process-wide services."""
    global _pool_manager, _tenant_registry, _plugin_manager, _notification_hub

    await init_central_database(settings)
    if settings.central_db.auto_create_schema:
        await create_central_schema()

    if settings.seed_default_tenant:
        async with get_central_session() as session:
            await seed_default_tenant(session, settings.tenant.default_code)

    _pool_manager = TenantPoolManager(settings)
    _tenant_registry = TenantRegistry(
        get_central_session,
        cache_ttl=settings.tenant.config_cache_ttl,
    )
    _plugin_manager = PluginManager(settings.plugins, _pool_manager, get_central_session)
    _notification_hub = NotificationHub(ping_interval=settings.notifications.ping_interval)


async def close_services() -> None:
    """Stop the notification hub and close every database connection."""
    global _pool_manager, _tenant_registry, _plugin_manager, _notification_hub

    if _notification_hub:
        await _notification_hub.stop()
        _notification_hub = None

    if _pool_manager:
        await _pool_manager.close_all()
        _pool_manager = None

    await close_central_database()

    _tenant_registry = None
    _plugin_manager = None


def _not_ready(name: str) -> ApiError:
    return ApiError(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        f"{name} not initialized",
        "SERVICE_UNAVAILABLE",
    )


def get_pool_manager() -> TenantPoolManager:
    """Get the tenant pool manager."""
    if _pool_manager is None:
        raise _not_ready("Tenant pool manager")
    return _pool_manager


def get_tenant_registry() -> TenantRegistry:
    """Get the tenant registry."""
    if _tenant_registry is None:
        raise _not_ready("Tenant registry")
    return _tenant_registry


def get_plugin_manager() -> PluginManager:
    """Get the plugin manager."""
    if _plugin_manager is None:
        raise _not_ready("Plugin manager")
    return _plugin_manager


def get_notification_hub() -> NotificationHub:
    """Get the notification hub."""
    if _notification_hub is None:
        raise _not_ready("Notification hub")
    return _notification_hub


def get_jwt_manager() -> JWTManager:
    """Get a JWT manager for the configured secrets."""
    return JWTManager(get_settings().jwt)


# =========================================================================
# Database Dependencies
# =========================================================================


async def get_central_db() -> AsyncGenerator[AsyncSession, None]:
    """Get central database session.

    Dependency for endpoints that need central database access.

    Yields:
        AsyncSession for central database.
    """
    async with get_central_session() as session:
        yield session


async def get_tenant_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get a session from the pool the tenant middleware attached.

    Args:
        request: HTTP request with tenant context.

    Yields:
        AsyncSession for the tenant database.

    Raises:
        ApiError: If no tenant was resolved for the request.
    """
    pool = getattr(request.state, "tenant_db", None)
    if get_tenant_from_request(request) is None or pool is None:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "Tenant context required",
            "TENANT_CODE_MISSING",
        )

    async with pool() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# =========================================================================
# Tenant Dependencies
# =========================================================================


def require_tenant(request: Request) -> TenantContext:
    """Get the resolved tenant.

    Raises:
        ApiError: If no tenant was resolved for the request.
    """
    tenant = get_tenant_from_request(request)
    if tenant is None:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "Tenant context required",
            "TENANT_CODE_MISSING",
        )
    return tenant


# =========================================================================
# Authentication Dependencies
# =========================================================================


def require_auth(request: Request) -> CurrentUser:
    """Require authenticated user.

    When a tenant is resolved, the token must have been issued for it.

    Raises:
        ApiError: 401 without a valid token, 403 on a tenant mismatch.
    """
    user = get_current_user(request)
    if user is None:
        if extract_bearer_token(request) is None:
            raise ApiError(
                status.HTTP_401_UNAUTHORIZED,
                "Authentication required",
                "TOKEN_MISSING",
                headers={"WWW-Authenticate": "Bearer"},
            )
        raise ApiError(
            status.HTTP_401_UNAUTHORIZED,
            getattr(request.state, "auth_error", None) or "Invalid token",
            "TOKEN_INVALID",
            headers={"WWW-Authenticate": "Bearer"},
        )

    tenant = get_tenant_from_request(request)
    if tenant is not None and user.tenant_code and user.tenant_code != tenant.code:
        logger.warning(
            "User %s with a %s token tried to access tenant %s",
            user.id,
            user.tenant_code,
            tenant.code,
        )
        raise ApiError(
            status.HTTP_403_FORBIDDEN,
            "Token was not issued for this tenant",
            "TENANT_TOKEN_MISMATCH",
        )
    return user


def require_admin(request: Request) -> CurrentUser:
    """Require an administrator of the tenant.

    Raises:
        ApiError: If not authenticated or not an admin.
    """
    user = require_auth(request)
    if not user.is_admin:
        raise ApiError(
            status.HTTP_403_FORBIDDEN,
            "Admin access required",
            "INSUFFICIENT_PERMISSIONS",
        )
    return user


def require_company_admin(
    code: str,
    user: Annotated[CurrentUser, Depends(require_auth)],
) -> CurrentUser:
    """Require a system admin, or an admin of the company named in the path.

    Company endpoints are outside tenant resolution, so the company is taken
    from the ``code`` path parameter instead of the tenant header.

    Raises:
        ApiError: 401 without a valid token, 403 for anyone else.
    """
    if user.is_system_admin:
        return user
    if user.is_admin and user.tenant_code == normalize_tenant_code(code):
        return user
    raise ApiError(
        status.HTTP_403_FORBIDDEN,
        "Company administrator access required",
        "INSUFFICIENT_PERMISSIONS",
    )


def get_request_origin(request: Request) -> RequestOrigin:
    """Client details recorded in the activity log."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        ip_address = forwarded.split(",")[0].strip()
    else:
        ip_address = request.client.host if request.client else None
    return RequestOrigin(
        ip_address=ip_address,
        user_agent=request.headers.get("User-Agent"),
        user_timezone=request.headers.get("X-User-Timezone"),
    )


def get_activity_log(
    db: Annotated[AsyncSession, Depends(get_tenant_db)],
    tenant: Annotated[TenantContext, Depends(require_tenant)],
) -> ActivityLogService:
    """Activity log for the resolved tenant, sharing the request session."""
    return ActivityLogService(db, tenant.code)


# Annotated aliases
CentralDB = Annotated[AsyncSession, Depends(get_central_db)]
TenantDB = Annotated[AsyncSession, Depends(get_tenant_db)]
Tenant = Annotated[TenantContext, Depends(require_tenant)]
AuthUser = Annotated[CurrentUser, Depends(require_auth)]
AdminUser = Annotated[CurrentUser, Depends(require_admin)]
CompanyAdmin = Annotated[CurrentUser, Depends(require_company_admin)]
Origin = Annotated[RequestOrigin, Depends(get_request_origin)]
Activity = Annotated[ActivityLogService, Depends(get_activity_log)]
Pools = Annotated[TenantPoolManager, Depends(get_pool_manager)]
Registry = Annotated[TenantRegistry, Depends(get_tenant_registry)]
Plugins = Annotated[PluginManager, Depends(get_plugin_manager)]
Hub = Annotated[NotificationHub, Depends(get_notification_hub)]
Jwt = Annotated[JWTManager, Depends(get_jwt_manager)]
