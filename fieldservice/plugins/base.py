# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Plugin definition types.

A plugin is an importable module exposing a module-level ``plugin`` object:

    from fastapi import APIRouter
    from fieldservice.plugins.base import Plugin, PluginHooks, TicketTab

    router = APIRouter()

    @router.get("/status")
    async def status():
        return {"status": "active"}

    plugin = Plugin(
        name="my-plugin",
        version="1.0.0",
        router=router,
        ticket_tabs=[TicketTab(id="my-tab", label="Mine", component_id="my-plugin-tab")],
        hooks=PluginHooks(on_install=create_tables),
        event_hooks={"ticket.created": on_ticket_created},
    )

Routes are mounted under ``/api/plugins/<name>``. Lifecycle hooks receive the
tenant code and the tenant's sessionmaker. Event hooks receive the event
payload and may return a replacement payload.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from fastapi import APIRouter
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

TenantPool = async_sessionmaker[AsyncSession]
LifecycleHook = Callable[[str, TenantPool], Awaitable[None]]
EventHandler = Callable[[dict[str, Any]], Awaitable[dict[str, Any] | None]]

LIFECYCLE_HOOKS = ("on_install", "on_uninstall", "on_enable", "on_disable")


@dataclass(frozen=True)
class TicketTab:
    """Tab shown in the ticket detail view."""

    id: str
    label: str
    component_id: str
    icon: str | None = None
    roles: tuple[str, ...] = ()


@dataclass(frozen=True)
class ReportComponent:
    """Report shown on the reports page."""

    component_id: str
    label: str
    icon: str | None = None


@dataclass(frozen=True)
class NavTab:
    """Entry in the main navigation."""

    id: str
    label: str
    component_id: str
    icon: str | None = None
    roles: tuple[str, ...] = ()


@dataclass(frozen=True)
class EventHook:
    """Handler for a named event. Lower priority runs first."""

    handler: EventHandler
    priority: int | None = None


@dataclass(frozen=True)
class PluginHooks:
    """Per-tenant lifecycle callbacks."""

    on_install: LifecycleHook | None = None
    on_uninstall: LifecycleHook | None = None
    on_enable: LifecycleHook | None = None
    on_disable: LifecycleHook | None = None

    def get(self, name: str) -> LifecycleHook | None:
        """Look up a lifecycle hook by name."""
        if name not in LIFECYCLE_HOOKS:
            raise ValueError(f"Unknown lifecycle hook: {name}")
        return getattr(self, name)


@dataclass
class Plugin:
    """A loadable plugin.

    ``report_component`` is accepted for plugins contributing a single
    report and is folded into ``report_components``. Event hook values may be
    bare handlers or EventHook instances.

    Attributes:
        name: Unique plugin name, used in the route prefix.
        version: Plugin version.
        description: Short description for the catalog.
        display_name: Catalog label; defaults to the name.
        router: Routes mounted under /api/plugins/<name>.
        ticket_tabs: Ticket detail tabs.
        report_components: Reports.
        nav_tabs: Navigation entries.
        hooks: Lifecycle callbacks.
        event_hooks: Event name to handler.
    """

    name: str
    version: str = "1.0.0"
    description: str = ""
    display_name: str | None = None
    router: APIRouter | None = None
    ticket_tabs: list[TicketTab] = field(default_factory=list)
    report_components: list[ReportComponent] = field(default_factory=list)
    report_component: ReportComponent | None = None
    nav_tabs: list[NavTab] = field(default_factory=list)
    hooks: PluginHooks = field(default_factory=PluginHooks)
    event_hooks: dict[str, EventHook | EventHandler] = field(default_factory=dict)
    module_path: str = ""

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Plugin name is required")
        if self.report_component is not None:
            self.report_components = [self.report_component, *self.report_components]
            self.report_component = None
        self.event_hooks = {
            event: hook if isinstance(hook, EventHook) else EventHook(handler=hook)
            for event, hook in self.event_hooks.items()
        }

    @property
    def title(self) -> str:
        """Human-readable name for the catalog."""
        return self.display_name or self.name

    @property
    def route_prefix(self) -> str:
        """URL prefix of the plugin's routes."""
        return f"/api/plugins/{self.name}"
