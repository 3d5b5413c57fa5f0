# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for the field service platform.

Example:
    >>> from fieldservice.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.tenant.header)
    'X-Tenant-Code'
"""

from fieldservice.core.config.settings import (
    CentralDatabaseSettings,
    CORSSettings,
    JWTSettings,
    NotificationSettings,
    PluginSettings,
    RateLimitSettings,
    Settings,
    TenantDatabaseSettings,
    TenantSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "CentralDatabaseSettings",
    "TenantDatabaseSettings",
    "TenantSettings",
    "JWTSettings",
    "RateLimitSettings",
    "CORSSettings",
    "PluginSettings",
    "NotificationSettings",
]
