# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant user management models."""

from datetime import datetime

from fieldservice.models.common import CamelModel


class UserCreateRequest(CamelModel):
    """Create a tenant user."""

    username: str | None = None
    email: str | None = None
    full_name: str | None = None
    role: str | None = None
    vendor: str | None = None
    password: str | None = None
    is_active: bool = True


class UserUpdateRequest(CamelModel):
    """Update a tenant user. Omitted fields are left unchanged."""

    username: str | None = None
    email: str | None = None
    full_name: str | None = None
    role: str | None = None
    vendor: str | None = None
    is_active: bool | None = None


class UserResponse(CamelModel):
    """Tenant user."""

    id: str
    username: str
    email: str
    full_name: str
    role: str
    vendor: str | None = None
    is_active: bool
    company_code: str
    created_at: datetime | None = None
    last_login_at: datetime | None = None
