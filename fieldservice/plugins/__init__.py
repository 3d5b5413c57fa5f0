# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Plugin system.

Plugins are importable modules exposing a ``plugin`` object. They contribute
REST routes under /api/plugins/<name>, ticket tabs, report components and
navigation tabs, and react to lifecycle and ticket events. Each tenant
installs and enables plugins independently.

Key Components:
- Plugin: plugin definition (base)
- load_plugin_module: import and validate a plugin module (loader)
- PluginRegistry: loaded plugins by name (registry)
- PluginManager: per-tenant lifecycle, hooks and UI aggregation (manager)
"""

from fieldservice.plugins.base import (
    EventHook,
    NavTab,
    Plugin,
    PluginHooks,
    ReportComponent,
    TicketTab,
)
from fieldservice.plugins.loader import PluginLoadError, load_plugin_module
from fieldservice.plugins.manager import PluginHookError, PluginManager, PluginNotInstalledError
from fieldservice.plugins.registry import PluginNotFoundError, PluginRegistry

__all__ = [
    "Plugin",
    "PluginHooks",
    "TicketTab",
    "ReportComponent",
    "NavTab",
    "EventHook",
    "load_plugin_module",
    "PluginLoadError",
    "PluginRegistry",
    "PluginNotFoundError",
    "PluginManager",
    "PluginHookError",
    "PluginNotInstalledError",
]
