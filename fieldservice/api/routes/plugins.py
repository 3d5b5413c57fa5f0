# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Plugin management API endpoints.

Catalog and UI contributions for the current tenant:
- GET /plugins - Loaded plugins with the tenant's install state
- GET /plugins/installed - The tenant's installations
- GET /plugins/ticket-tabs - Ticket tabs of enabled plugins
- GET /plugins/report-components - Report components of enabled plugins
- GET /plugins/nav-tabs - Navigation tabs of enabled plugins

Administration (admin only):
- POST /plugins/{name}/install
- POST /plugins/{name}/uninstall
- POST /plugins/{name}/enable
- POST /plugins/{name}/disable
- GET /plugins/{name}/config
- PUT /plugins/{name}/configure

Plugin routes themselves are mounted by the PluginManager under
/api/plugins/<name> with plugin_access_dependency guarding them.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, status

from fieldservice.api.dependencies import (
    AdminUser,
    AuthUser,
    Plugins,
    Tenant,
    get_plugin_manager,
    require_auth,
    require_tenant,
)
from fieldservice.api.errors import ApiError
from fieldservice.models.plugin import (
    NavTabResponse,
    PluginActionResponse,
    PluginCatalogEntry,
    PluginConfigureRequest,
    PluginInstallationResponse,
    PluginInstallRequest,
    ReportComponentResponse,
    TicketTabResponse,
)
from fieldservice.plugins.base import Plugin
from fieldservice.plugins.manager import PluginHookError, PluginNotInstalledError
from fieldservice.plugins.registry import PluginNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter()


def _plugin_error(e: Exception) -> ApiError:
    if isinstance(e, PluginNotFoundError):
        return ApiError(
            status.HTTP_404_NOT_FOUND,
            f"Plugin not found: {e.plugin_name}",
            "PLUGIN_NOT_FOUND",
        )
    if isinstance(e, PluginNotInstalledError):
        return ApiError(status.HTTP_400_BAD_REQUEST, str(e), "PLUGIN_NOT_INSTALLED")
    return ApiError(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        str(e),
        "PLUGIN_HOOK_FAILED",
    )


def plugin_access_dependency(plugin: Plugin) -> list[Any]:
    """Route dependencies for a mounted plugin router.

    Requests need a resolved tenant, a valid token for it, and the plugin
    enabled for that tenant.
    """

    async def check_plugin_access(request: Request) -> None:
        tenant = require_tenant(request)
        require_auth(request)
        manager = get_plugin_manager()
        if not await manager.is_enabled(tenant.code, plugin.name):
            raise ApiError(
                status.HTTP_403_FORBIDDEN,
                f"Plugin '{plugin.name}' is not enabled for this company",
                "PLUGIN_NOT_ENABLED",
                plugin=plugin.name,
            )

    return [Depends(check_plugin_access)]


@router.get("", response_model=list[PluginCatalogEntry], summary="Plugin catalog")
async def list_plugins(
    current_user: AuthUser,
    tenant: Tenant,
    plugins: Plugins,
) -> list[PluginCatalogEntry]:
    return await plugins.list_catalog(tenant.code)


@router.get(
    "/installed",
    response_model=list[PluginInstallationResponse],
    summary="Installed plugins",
)
async def list_installed_plugins(
    current_user: AuthUser,
    tenant: Tenant,
    plugins: Plugins,
) -> list[PluginInstallationResponse]:
    return await plugins.list_installed(tenant.code)


@router.get("/ticket-tabs", response_model=list[TicketTabResponse], summary="Ticket tabs")
async def get_ticket_tabs(
    current_user: AuthUser,
    tenant: Tenant,
    plugins: Plugins,
) -> list[TicketTabResponse]:
    return await plugins.get_ticket_tabs(tenant.code)


@router.get(
    "/report-components",
    response_model=list[ReportComponentResponse],
    summary="Report components",
)
async def get_report_components(
    current_user: AuthUser,
    tenant: Tenant,
    plugins: Plugins,
) -> list[ReportComponentResponse]:
    return await plugins.get_report_components(tenant.code)


@router.get("/nav-tabs", response_model=list[NavTabResponse], summary="Navigation tabs")
async def get_nav_tabs(
    current_user: AuthUser,
    tenant: Tenant,
    plugins: Plugins,
) -> list[NavTabResponse]:
    return await plugins.get_nav_tabs(tenant.code)


@router.post(
    "/{name}/install",
    response_model=PluginActionResponse,
    summary="Install plugin",
    description="Install and enable a plugin for the tenant, running its lifecycle hooks.",
)
async def install_plugin(
    name: str,
    current_user: AdminUser,
    tenant: Tenant,
    plugins: Plugins,
    data: PluginInstallRequest | None = None,
) -> PluginActionResponse:
    try:
        installation = await plugins.install(
            tenant,
            name,
            config=data.config if data else None,
            installed_by=current_user.username,
        )
    except (PluginNotFoundError, PluginHookError) as e:
        raise _plugin_error(e)

    return PluginActionResponse(
        message=f"Plugin '{name}' installed",
        installation=installation,
    )


@router.post("/{name}/uninstall", response_model=PluginActionResponse, summary="Uninstall plugin")
async def uninstall_plugin(
    name: str,
    current_user: AdminUser,
    tenant: Tenant,
    plugins: Plugins,
) -> PluginActionResponse:
    try:
        await plugins.uninstall(tenant, name)
    except (PluginNotFoundError, PluginNotInstalledError, PluginHookError) as e:
        raise _plugin_error(e)
    return PluginActionResponse(message=f"Plugin '{name}' uninstalled")


@router.post("/{name}/enable", response_model=PluginActionResponse, summary="Enable plugin")
async def enable_plugin(
    name: str,
    current_user: AdminUser,
    tenant: Tenant,
    plugins: Plugins,
) -> PluginActionResponse:
    try:
        installation = await plugins.enable(tenant, name)
    except (PluginNotFoundError, PluginNotInstalledError, PluginHookError) as e:
        raise _plugin_error(e)
    return PluginActionResponse(message=f"Plugin '{name}' enabled", installation=installation)


@router.post("/{name}/disable", response_model=PluginActionResponse, summary="Disable plugin")
async def disable_plugin(
    name: str,
    current_user: AdminUser,
    tenant: Tenant,
    plugins: Plugins,
) -> PluginActionResponse:
    try:
        installation = await plugins.disable(tenant, name)
    except (PluginNotFoundError, PluginNotInstalledError, PluginHookError) as e:
        raise _plugin_error(e)
    return PluginActionResponse(message=f"Plugin '{name}' disabled", installation=installation)


@router.get("/{name}/config", response_model=dict[str, Any], summary="Plugin configuration")
async def get_plugin_config(
    name: str,
    current_user: AdminUser,
    tenant: Tenant,
    plugins: Plugins,
) -> dict[str, Any]:
    if not plugins.registry.has(name):
        raise _plugin_error(PluginNotFoundError(name, plugins.registry.list_names()))
    return await plugins.get_config(tenant.code, name)


@router.put("/{name}/configure", response_model=PluginActionResponse, summary="Configure plugin")
async def configure_plugin(
    name: str,
    data: PluginConfigureRequest,
    current_user: AdminUser,
    tenant: Tenant,
    plugins: Plugins,
) -> PluginActionResponse:
    try:
        installation = await plugins.configure(tenant.code, name, data.config)
    except (PluginNotFoundError, PluginNotInstalledError) as e:
        raise _plugin_error(e)
    return PluginActionResponse(message=f"Plugin '{name}' configured", installation=installation)
