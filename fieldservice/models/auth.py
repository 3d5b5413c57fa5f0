# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication request and response models."""

from datetime import datetime

from fieldservice.models.common import CamelModel


class LoginRequest(CamelModel):
    """Staff login. Fields are optional so missing ones map to a 400."""

    username: str | None = None
    password: str | None = None
    tenant_code: str | None = None


class AuthenticatedUser(CamelModel):
    """User summary returned at login and by /me."""

    id: str
    username: str
    email: str | None = None
    full_name: str | None = None
    role: str | None = None
    is_system_admin: bool = False
    is_tenant_admin: bool = False
    last_login_at: datetime | None = None


class TenantSummary(CamelModel):
    """Tenant summary returned at login and by /tenant-info."""

    id: str
    code: str
    name: str
    status: str
    subscription_tier: str
    features: list[str] = []


class LoginResponse(CamelModel):
    """Successful login."""

    success: bool = True
    token: str
    expires_in: int
    user: AuthenticatedUser
    tenant: TenantSummary


class ChangePasswordRequest(CamelModel):
    """Change the caller's own password."""

    current_password: str | None = None
    new_password: str | None = None


class ResetPasswordRequest(CamelModel):
    """Set another user's password (admin) or one's own."""

    user_id: str | None = None
    new_password: str | None = None
