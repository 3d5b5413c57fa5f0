# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API middleware components.

This package provides middleware for request processing:
- TenantMiddleware: Resolves the tenant and attaches its connection pool.
- AuthMiddleware: JWT authentication.
- rate_limit: slowapi limiter and failed tenant lookup tracking.

Exports:
    TenantMiddleware: Tenant resolution middleware.
    AuthMiddleware: JWT authentication middleware.
    CurrentUser: Authenticated user from the token.
"""

from fieldservice.api.middleware.auth import AuthMiddleware, CurrentUser
from fieldservice.api.middleware.tenant import TenantMiddleware

__all__ = [
    "TenantMiddleware",
    "AuthMiddleware",
    "CurrentUser",
]
