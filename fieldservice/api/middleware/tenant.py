# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant resolution middleware.

This middleware resolves the tenant from:
1. X-Tenant-Code header
2. X-Company-Code header (older clients)
3. ?company= or ?tenant= query parameter
4. Subdomain of the configured base domain (e.g., acme.fieldservice.io)

A resolved tenant is stored in request.state.tenant and its connection pool
in request.state.tenant_db. Requests to non-public paths that cannot be
resolved are rejected with the error envelope.

Example:
    # Request with header
    GET /api/tickets
    X-Tenant-Code: DCPSP

    # Request with subdomain
    GET https://dcpsp.fieldservice.io/api/tickets
"""

import logging
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from fieldservice.api.errors import error_response
from fieldservice.api.middleware.rate_limit import FailedLookupTracker
from fieldservice.core.config.settings import TenantSettings
from fieldservice.domains.tenant.registry import (
    TenantContext,
    TenantRegistry,
    is_valid_tenant_code,
    normalize_tenant_code,
)
from fieldservice.infrastructure.database.tenant_manager import (
    TenantConnectionError,
    TenantNotFoundError,
    TenantPoolManager,
)
from fieldservice.utils.logging import bind_context, clear_context

logger = logging.getLogger(__name__)

TENANT_HEADER = "X-Tenant-Code"
LEGACY_TENANT_HEADER = "X-Company-Code"
TENANT_QUERY_PARAMS = ("company", "tenant")

# Paths that don't require tenant context
PUBLIC_PATHS = frozenset({
    "/",
    "/health",
    "/ready",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/api/service-requests/submit",
    "/api/notifications/user",
    "/api/notifications/status",
    "/api/tenant/status",
    "/ws/notifications",
})

# Path prefixes that don't require tenant context
PUBLIC_PATH_PREFIXES = (
    "/api/companies",
    "/docs/",
)


def is_public_path(path: str) -> bool:
    """Check if path is public (no tenant required)."""
    if path in PUBLIC_PATHS:
        return True
    return any(path.startswith(prefix) for prefix in PUBLIC_PATH_PREFIXES)


class TenantMiddleware(BaseHTTPMiddleware):
    """Middleware for resolving the tenant of each request.

    The registry and pool manager are created during application startup,
    after middleware is built, so they are passed as getters.

    Attributes:
        _get_registry: Returns the tenant registry.
        _get_pools: Returns the tenant pool manager.
        _settings: Tenant resolution settings.
        _failures: Failed lookups per client IP.
    """

    def __init__(
        self,
        app: ASGIApp,
        get_registry: Callable[[], TenantRegistry],
        get_pools: Callable[[], TenantPoolManager],
        settings: TenantSettings,
        failures: FailedLookupTracker | None = None,
    ) -> None:
        """Initialize the tenant middleware.

        Args:
            app: ASGI application.
            get_registry: Callable returning the tenant registry.
            get_pools: Callable returning the pool manager.
            settings: Tenant resolution settings.
            failures: Failed lookup tracker; one is created from settings
                when omitted.
        """
        super().__init__(app)
        self._get_registry = get_registry
        self._get_pools = get_pools
        self._settings = settings
        self._base_domain = settings.base_domain.lower() if settings.base_domain else None
        self._failures = failures or FailedLookupTracker(
            max_failures=settings.lookup_max_failures,
            window=settings.lookup_failure_window,
        )

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        """Resolve the tenant, then hand over to the next handler."""
        request.state.tenant = None
        request.state.tenant_db = None

        if request.method == "OPTIONS" or is_public_path(request.url.path):
            return await call_next(request)

        code = self._extract_tenant_code(request)
        if not code:
            if not self._settings.allow_default:
                return error_response(
                    400,
                    "Tenant code is required. Send it in the X-Tenant-Code header.",
                    "TENANT_CODE_MISSING",
                )
            code = self._settings.default_code

        client = request.client.host if request.client else "unknown"
        retry_after = self._failures.retry_after(client)
        if retry_after is not None:
            logger.warning("Tenant lookups blocked for %s", client)
            return error_response(
                429,
                "Too many failed tenant lookups. Please try again later.",
                "RATE_LIMITED",
                headers={"Retry-After": str(retry_after)},
                retryAfter=retry_after,
            )

        if not is_valid_tenant_code(code):
            self._failures.record_failure(client)
            return error_response(400, "Invalid tenant code format", "INVALID_TENANT_CODE_FORMAT")

        try:
            tenant = await self._get_registry().get(code)
        except TenantNotFoundError:
            self._failures.record_failure(client)
            logger.warning("Tenant not found: %s", code)
            return error_response(404, f"Tenant not found: {code}", "TENANT_NOT_FOUND")

        if not tenant.is_active:
            return error_response(403, "Tenant is not active", "TENANT_INACTIVE")

        try:
            pool = await self._get_pools().get_pool(tenant.connection_info)
        except TenantConnectionError as e:
            logger.error("Tenant database unavailable for %s: %s", tenant.code, e.reason)
            return error_response(
                503,
                "Tenant database is unavailable",
                "TENANT_CONNECTION_FAILED",
            )

        request.state.tenant = tenant
        request.state.tenant_db = pool
        bind_context(tenant_code=tenant.code)
        try:
            response = await call_next(request)
        finally:
            clear_context()
        response.headers[TENANT_HEADER] = tenant.code
        return response

    def _extract_tenant_code(self, request: Request) -> str | None:
        """Extract the tenant code from the request, upper-cased."""
        for header in (TENANT_HEADER, LEGACY_TENANT_HEADER):
            value = request.headers.get(header)
            if value and value.strip():
                return normalize_tenant_code(value)

        for param in TENANT_QUERY_PARAMS:
            value = request.query_params.get(param)
            if value and value.strip():
                return normalize_tenant_code(value)

        subdomain = self._extract_subdomain(request.headers.get("host", ""))
        if subdomain:
            return normalize_tenant_code(subdomain)

        return None

    def _extract_subdomain(self, host: str) -> str | None:
        """Extract subdomain from host.

        Examples:
            acme.fieldservice.io -> acme
            fieldservice.io -> None
            localhost:8000 -> None
        """
        if not host or not self._base_domain:
            return None

        host = host.split(":")[0].lower()
        if not host.endswith("." + self._base_domain):
            return None

        subdomain = host[: -(len(self._base_domain) + 1)]
        if subdomain and subdomain != "www":
            return subdomain
        return None


def get_tenant_from_request(request: Request) -> TenantContext | None:
    """Get tenant context from request state."""
    return getattr(request.state, "tenant", None)
