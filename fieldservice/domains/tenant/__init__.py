# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant domain: registry lookups and company management."""

from fieldservice.domains.tenant.registry import (
    TenantContext,
    TenantRegistry,
    is_valid_tenant_code,
    normalize_tenant_code,
)
from fieldservice.domains.tenant.service import CompanyService

__all__ = [
    "TenantContext",
    "TenantRegistry",
    "CompanyService",
    "is_valid_tenant_code",
    "normalize_tenant_code",
]
