# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Company (tenant) registration and management models."""

from datetime import datetime

from fieldservice.models.common import CamelModel


class CompanyCreateRequest(CamelModel):
    """Register a company together with its first administrator.

    Every field is optional at the model level; the service reports all
    missing required fields in one 400 response.
    """

    company_code: str | None = None
    company_name: str | None = None
    admin_username: str | None = None
    admin_password: str | None = None
    admin_email: str | None = None
    admin_full_name: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    address: str | None = None
    subscription_tier: str = "standard"
    database_url: str | None = None


class CompanyUpdateRequest(CamelModel):
    """Mutable company fields."""

    company_name: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    address: str | None = None
    subscription_tier: str | None = None
    allow_service_requests: bool | None = None
    features: list[str] | None = None
    status: str | None = None


class CompanyResponse(CamelModel):
    """Company as exposed by the API. Connection details are never returned."""

    id: str
    company_code: str
    company_name: str
    status: str
    subscription_tier: str
    allow_service_requests: bool
    features: list[str] = []
    contact_email: str | None = None
    contact_phone: str | None = None
    address: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AdminUserResponse(CamelModel):
    """Administrator created with a company."""

    id: str
    username: str
    email: str
    full_name: str
    role: str


class CompanyCreateResponse(CamelModel):
    """Result of company registration."""

    success: bool = True
    company: CompanyResponse
    admin_user: AdminUserResponse
