# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy models for the central and tenant databases."""

from fieldservice.infrastructure.database.models.base import CentralBase, TenantBase, new_uuid
from fieldservice.infrastructure.database.models.central import (
    Plugin,
    Tenant,
    TenantPluginInstallation,
)
from fieldservice.infrastructure.database.models.tenant import (
    ActivityLog,
    Customer,
    CustomerAccount,
    ServiceRequest,
    Site,
    Ticket,
    TicketNote,
    TimeClockEntry,
    User,
)

__all__ = [
    "CentralBase",
    "TenantBase",
    "new_uuid",
    # Central
    "Tenant",
    "Plugin",
    "TenantPluginInstallation",
    # Tenant
    "User",
    "Customer",
    "Site",
    "Ticket",
    "TicketNote",
    "ServiceRequest",
    "ActivityLog",
    "CustomerAccount",
    "TimeClockEntry",
]
