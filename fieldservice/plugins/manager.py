# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Plugin lifecycle and per-tenant state.

The PluginManager:
- Loads configured plugin modules into the process-wide PluginRegistry
- Mounts plugin routers under /api/plugins/<name>
- Keeps the global plugin catalog in the central database in sync
- Installs, uninstalls, enables, disables and configures plugins per tenant,
  running the plugin's lifecycle hooks with the tenant's pool
- Runs event hooks of the plugins a tenant has enabled

Example:
    >>> manager = PluginManager(settings.plugins, pool_manager, get_central_session)
    >>> manager.load_configured()
    >>> await manager.sync_catalog()
    >>> await manager.install(tenant, "time-clock", installed_by="admin")
    >>> payload = await manager.execute_hook("ticket.created", {"ticket": ...}, "ACME")
"""

import logging
from contextlib import AbstractAsyncContextManager
from typing import Any, Callable, Sequence

from fastapi import FastAPI
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldservice.core.config.settings import PluginSettings
from fieldservice.domains.tenant.registry import TenantContext
from fieldservice.infrastructure.database.models.central import (
    Plugin as PluginRecord,
    TenantPluginInstallation,
)
from fieldservice.infrastructure.database.tenant_manager import TenantPoolManager
from fieldservice.models.plugin import (
    NavTabResponse,
    PluginCatalogEntry,
    PluginInstallationResponse,
    ReportComponentResponse,
    TicketTabResponse,
)
from fieldservice.plugins.base import Plugin
from fieldservice.plugins.loader import PluginLoadError, load_plugin_module
from fieldservice.plugins.registry import PluginNotFoundError, PluginRegistry
from fieldservice.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class PluginHookError(Exception):
    """Raised when a lifecycle hook fails.

    Attributes:
        plugin_name: Plugin whose hook failed.
        hook: Lifecycle hook name.
    """

    def __init__(self, plugin_name: str, hook: str, reason: str) -> None:
        super().__init__(f"Plugin '{plugin_name}' {hook} failed: {reason}")
        self.plugin_name = plugin_name
        self.hook = hook


class PluginNotInstalledError(Exception):
    """Raised when acting on a plugin the tenant has not installed."""

    def __init__(self, plugin_name: str, tenant_code: str) -> None:
        super().__init__(f"Plugin '{plugin_name}' is not installed for {tenant_code}")
        self.plugin_name = plugin_name
        self.tenant_code = tenant_code


class PluginManager:
    """Coordinates loaded plugins with tenant installation state.

    Attributes:
        registry: Loaded plugins.
    """

    def __init__(
        self,
        settings: PluginSettings,
        pools: TenantPoolManager,
        get_central_db: Callable[[], AbstractAsyncContextManager[AsyncSession]],
        registry: PluginRegistry | None = None,
    ) -> None:
        self._settings = settings
        self._pools = pools
        self._get_central_db = get_central_db
        self.registry = registry or PluginRegistry()

    # =========================================================================
    # Loading
    # =========================================================================

    def load(self, module_path: str) -> Plugin:
        """Load one plugin module and register it.

        Raises:
            PluginLoadError: If the module cannot be loaded.
            ValueError: If a plugin with the same name is loaded.
        """
        plugin = load_plugin_module(module_path)
        self.registry.register(plugin)
        logger.info("Loaded plugin %s v%s", plugin.name, plugin.version)
        return plugin

    def load_configured(self, module_paths: Sequence[str] | None = None) -> list[str]:
        """Load every configured plugin module.

        A plugin that fails to load is logged and skipped.

        Returns:
            Names of the plugins loaded.
        """
        loaded = []
        for path in module_paths if module_paths is not None else self._settings.modules_list:
            try:
                loaded.append(self.load(path).name)
            except (PluginLoadError, ValueError) as e:
                logger.error("Skipping plugin %s: %s", path, str(e))
        logger.info("Loaded %d plugin(s): %s", len(loaded), ", ".join(loaded) or "none")
        return loaded

    def mount_routes(
        self,
        app: FastAPI,
        dependencies_for: Callable[[Plugin], list[Any]] | None = None,
    ) -> None:
        """Mount each loaded plugin's router at /api/plugins/<name>.

        Args:
            app: Application to mount on.
            dependencies_for: Builds the route dependencies (access checks)
                for a plugin.
        """
        for plugin in self.registry.all():
            if plugin.router is None:
                continue
            app.include_router(
                plugin.router,
                prefix=plugin.route_prefix,
                tags=[f"plugin:{plugin.name}"],
                dependencies=dependencies_for(plugin) if dependencies_for else None,
            )
            logger.info("Mounted plugin routes at %s", plugin.route_prefix)

    async def sync_catalog(self) -> None:
        """Upsert loaded plugins into the global catalog."""
        async with self._get_central_db() as db:
            result = await db.execute(select(PluginRecord))
            existing = {row.name: row for row in result.scalars().all()}

            for plugin in self.registry.all():
                record = existing.get(plugin.name)
                if record is None:
                    db.add(
                        PluginRecord(
                            name=plugin.name,
                            display_name=plugin.title,
                            description=plugin.description,
                            version=plugin.version,
                            module_path=plugin.module_path,
                            is_active=True,
                        )
                    )
                else:
                    record.display_name = plugin.title
                    record.description = plugin.description
                    record.version = plugin.version
                    record.module_path = plugin.module_path
                    record.is_active = True

            for name, record in existing.items():
                if not self.registry.has(name):
                    record.is_active = False

        logger.info("Synced plugin catalog (%d loaded)", len(self.registry))

    # =========================================================================
    # Tenant state
    # =========================================================================

    async def _get_installation(
        self,
        db: AsyncSession,
        tenant_code: str,
        plugin_name: str,
    ) -> TenantPluginInstallation | None:
        result = await db.execute(
            select(TenantPluginInstallation).where(
                TenantPluginInstallation.tenant_code == tenant_code,
                TenantPluginInstallation.plugin_name == plugin_name,
            )
        )
        return result.scalar_one_or_none()

    async def _run_lifecycle(self, plugin: Plugin, hook: str, tenant: TenantContext) -> None:
        callback = plugin.hooks.get(hook)
        if callback is None:
            return
        pool = await self._pools.get_pool(tenant.connection_info)
        try:
            await callback(tenant.code, pool)
        except Exception as e:
            logger.error("Plugin %s %s failed for %s: %s", plugin.name, hook, tenant.code, str(e))
            raise PluginHookError(plugin.name, hook, str(e)) from e
        logger.info("Plugin %s %s completed for %s", plugin.name, hook, tenant.code)

    async def install(
        self,
        tenant: TenantContext,
        plugin_name: str,
        config: dict[str, Any] | None = None,
        installed_by: str | None = None,
    ) -> PluginInstallationResponse:
        """Install (or re-enable) a plugin for a tenant.

        Runs on_install, then on_enable.

        Raises:
            PluginNotFoundError: If the plugin is not loaded.
            PluginHookError: If a lifecycle hook fails.
        """
        plugin = self.registry.get(plugin_name)
        now = utc_now()

        async with self._get_central_db() as db:
            installation = await self._get_installation(db, tenant.code, plugin.name)
            if installation is None:
                installation = TenantPluginInstallation(
                    tenant_code=tenant.code,
                    plugin_name=plugin.name,
                    installed_version=plugin.version,
                    installed_by=installed_by,
                    installed_at=now,
                    config={},
                )
                db.add(installation)
            installation.is_enabled = True
            installation.config = dict(config or {})
            installation.last_activated_at = now
            await db.flush()
            response = PluginInstallationResponse.model_validate(installation)

        await self._run_lifecycle(plugin, "on_install", tenant)
        await self._run_lifecycle(plugin, "on_enable", tenant)
        logger.info("Installed plugin %s for %s", plugin.name, tenant.code)
        return response

    async def uninstall(self, tenant: TenantContext, plugin_name: str) -> None:
        """Uninstall a plugin for a tenant.

        Runs on_disable when the plugin was enabled, then on_uninstall, then
        deletes the installation.

        Raises:
            PluginNotFoundError: If the plugin is not loaded.
            PluginNotInstalledError: If the tenant has not installed it.
            PluginHookError: If a lifecycle hook fails.
        """
        plugin = self.registry.get(plugin_name)

        async with self._get_central_db() as db:
            installation = await self._get_installation(db, tenant.code, plugin.name)
            if installation is None:
                raise PluginNotInstalledError(plugin.name, tenant.code)
            was_enabled = installation.is_enabled

        if was_enabled:
            await self._run_lifecycle(plugin, "on_disable", tenant)
        await self._run_lifecycle(plugin, "on_uninstall", tenant)

        async with self._get_central_db() as db:
            installation = await self._get_installation(db, tenant.code, plugin.name)
            if installation is not None:
                await db.delete(installation)

        logger.info("Uninstalled plugin %s for %s", plugin.name, tenant.code)

    async def _set_enabled(
        self,
        tenant: TenantContext,
        plugin_name: str,
        enabled: bool,
    ) -> PluginInstallationResponse:
        plugin = self.registry.get(plugin_name)

        async with self._get_central_db() as db:
            installation = await self._get_installation(db, tenant.code, plugin.name)
            if installation is None:
                raise PluginNotInstalledError(plugin.name, tenant.code)
            installation.is_enabled = enabled
            if enabled:
                installation.last_activated_at = utc_now()
            else:
                installation.last_deactivated_at = utc_now()
            await db.flush()
            response = PluginInstallationResponse.model_validate(installation)

        await self._run_lifecycle(plugin, "on_enable" if enabled else "on_disable", tenant)
        logger.info(
            "%s plugin %s for %s",
            "Enabled" if enabled else "Disabled",
            plugin.name,
            tenant.code,
        )
        return response

    async def enable(self, tenant: TenantContext, plugin_name: str) -> PluginInstallationResponse:
        """Enable an installed plugin and run on_enable.

        Raises:
            PluginNotFoundError: If the plugin is not loaded.
            PluginNotInstalledError: If the tenant has not installed it.
            PluginHookError: If on_enable fails.
        """
        return await self._set_enabled(tenant, plugin_name, True)

    async def disable(self, tenant: TenantContext, plugin_name: str) -> PluginInstallationResponse:
        """Disable an installed plugin and run on_disable."""
        return await self._set_enabled(tenant, plugin_name, False)

    async def configure(
        self,
        tenant_code: str,
        plugin_name: str,
        config: dict[str, Any],
    ) -> PluginInstallationResponse:
        """Replace a tenant's plugin configuration.

        Raises:
            PluginNotFoundError: If the plugin is not loaded.
            PluginNotInstalledError: If the tenant has not installed it.
        """
        plugin = self.registry.get(plugin_name)
        async with self._get_central_db() as db:
            installation = await self._get_installation(db, tenant_code, plugin.name)
            if installation is None:
                raise PluginNotInstalledError(plugin.name, tenant_code)
            installation.config = dict(config)
            await db.flush()
            return PluginInstallationResponse.model_validate(installation)

    async def get_config(self, tenant_code: str, plugin_name: str) -> dict[str, Any]:
        """A tenant's plugin configuration, empty when not installed."""
        async with self._get_central_db() as db:
            installation = await self._get_installation(db, tenant_code, plugin_name)
            return dict(installation.config or {}) if installation else {}

    async def is_enabled(self, tenant_code: str, plugin_name: str) -> bool:
        """Check whether a tenant has the plugin installed and enabled."""
        if not self.registry.has(plugin_name):
            return False
        async with self._get_central_db() as db:
            installation = await self._get_installation(db, tenant_code, plugin_name)
            return installation is not None and installation.is_enabled

    async def list_installed(self, tenant_code: str) -> list[PluginInstallationResponse]:
        """A tenant's installations, by plugin name."""
        async with self._get_central_db() as db:
            result = await db.execute(
                select(TenantPluginInstallation)
                .where(TenantPluginInstallation.tenant_code == tenant_code)
                .order_by(TenantPluginInstallation.plugin_name)
            )
            return [PluginInstallationResponse.model_validate(i) for i in result.scalars().all()]

    async def list_catalog(self, tenant_code: str) -> list[PluginCatalogEntry]:
        """Loaded plugins with the tenant's install state."""
        installed = {i.plugin_name: i for i in await self.list_installed(tenant_code)}
        return [
            PluginCatalogEntry(
                name=plugin.name,
                display_name=plugin.title,
                description=plugin.description,
                version=plugin.version,
                route_prefix=plugin.route_prefix,
                installed=plugin.name in installed,
                is_enabled=plugin.name in installed and installed[plugin.name].is_enabled,
            )
            for plugin in self.registry.all()
        ]

    async def enabled_plugins(self, tenant_code: str) -> list[Plugin]:
        """Loaded plugins the tenant has enabled, by name."""
        async with self._get_central_db() as db:
            result = await db.execute(
                select(TenantPluginInstallation.plugin_name).where(
                    TenantPluginInstallation.tenant_code == tenant_code,
                    TenantPluginInstallation.is_enabled.is_(True),
                )
            )
            names = set(result.scalars().all())
        return [p for p in self.registry.all() if p.name in names]

    # =========================================================================
    # Events and UI contributions
    # =========================================================================

    async def execute_hook(
        self,
        hook_name: str,
        data: dict[str, Any],
        tenant_code: str,
    ) -> dict[str, Any]:
        """Run the tenant's enabled event handlers for a hook.

        Handlers run in priority order (lower first, ties by plugin name).
        Each receives the previous handler's result; a handler returning None
        leaves the payload unchanged. A failing handler is logged and skipped.

        Returns:
            The final payload.
        """
        handlers = []
        for plugin in await self.enabled_plugins(tenant_code):
            hook = plugin.event_hooks.get(hook_name)
            if hook is None:
                continue
            priority = hook.priority
            if priority is None:
                priority = self._settings.hook_priority_default
            handlers.append((priority, plugin.name, hook.handler))

        result = data
        for _, plugin_name, handler in sorted(handlers, key=lambda h: (h[0], h[1])):
            try:
                replacement = await handler(result)
            except Exception as e:
                logger.error(
                    "Hook %s of plugin %s failed for %s: %s",
                    hook_name,
                    plugin_name,
                    tenant_code,
                    str(e),
                )
                continue
            if replacement is not None:
                result = replacement
        return result

    async def get_ticket_tabs(self, tenant_code: str) -> list[TicketTabResponse]:
        """Ticket tabs of the tenant's enabled plugins."""
        return [
            TicketTabResponse(
                id=tab.id,
                label=tab.label,
                component_id=tab.component_id,
                icon=tab.icon,
                roles=list(tab.roles),
                plugin_name=plugin.name,
            )
            for plugin in await self.enabled_plugins(tenant_code)
            for tab in plugin.ticket_tabs
        ]

    async def get_report_components(self, tenant_code: str) -> list[ReportComponentResponse]:
        """Report components of the tenant's enabled plugins."""
        return [
            ReportComponentResponse(
                component_id=component.component_id,
                label=component.label,
                icon=component.icon,
                plugin_name=plugin.name,
            )
            for plugin in await self.enabled_plugins(tenant_code)
            for component in plugin.report_components
        ]

    async def get_nav_tabs(self, tenant_code: str) -> list[NavTabResponse]:
        """Navigation tabs of the tenant's enabled plugins."""
        return [
            NavTabResponse(
                id=tab.id,
                label=tab.label,
                component_id=tab.component_id,
                icon=tab.icon,
                roles=list(tab.roles),
                plugin_name=plugin.name,
            )
            for plugin in await self.enabled_plugins(tenant_code)
            for tab in plugin.nav_tabs
        ]


__all__ = [
    "PluginManager",
    "PluginHookError",
    "PluginNotInstalledError",
    "PluginNotFoundError",
]
