# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure.

- connection: central (registry) database engine and sessions
- tenant_manager: lazily created per-tenant connection pools
- models: SQLAlchemy models for both databases
"""

from fieldservice.infrastructure.database.connection import (
    DatabaseError,
    check_central_database_connection,
    close_central_database,
    create_central_schema,
    get_central_session,
    init_central_database,
)
from fieldservice.infrastructure.database.tenant_manager import (
    TenantConnectionError,
    TenantConnectionInfo,
    TenantNotFoundError,
    TenantPoolManager,
)

__all__ = [
    "DatabaseError",
    "init_central_database",
    "create_central_schema",
    "close_central_database",
    "get_central_session",
    "check_central_database_connection",
    "TenantPoolManager",
    "TenantConnectionInfo",
    "TenantNotFoundError",
    "TenantConnectionError",
]
