# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Plugin catalog and installation models."""

from datetime import datetime
from typing import Any

from fieldservice.models.common import CamelModel


class PluginCatalogEntry(CamelModel):
    """Loaded plugin with the caller tenant's install state."""

    name: str
    display_name: str
    description: str | None = None
    version: str
    route_prefix: str
    installed: bool = False
    is_enabled: bool = False


class PluginInstallationResponse(CamelModel):
    """A tenant's installation of a plugin."""

    plugin_name: str
    tenant_code: str
    is_enabled: bool
    config: dict[str, Any] = {}
    installed_version: str | None = None
    installed_by: str | None = None
    installed_at: datetime
    last_activated_at: datetime | None = None
    last_deactivated_at: datetime | None = None


class PluginInstallRequest(CamelModel):
    """Install options."""

    config: dict[str, Any] = {}


class PluginConfigureRequest(CamelModel):
    """Replace a plugin's tenant configuration."""

    config: dict[str, Any]


class PluginActionResponse(CamelModel):
    """Result of a lifecycle action."""

    success: bool = True
    message: str
    installation: PluginInstallationResponse | None = None


class TicketTabResponse(CamelModel):
    """Ticket detail tab contributed by a plugin."""

    id: str
    label: str
    component_id: str
    icon: str | None = None
    roles: list[str] = []
    plugin_name: str


class ReportComponentResponse(CamelModel):
    """Report contributed by a plugin."""

    component_id: str
    label: str
    icon: str | None = None
    plugin_name: str


class NavTabResponse(CamelModel):
    """Navigation entry contributed by a plugin."""

    id: str
    label: str
    component_id: str
    icon: str | None = None
    roles: list[str] = []
    plugin_name: str
