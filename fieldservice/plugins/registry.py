# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Process-wide registry of loaded plugins.

The registry only knows which plugins the process has loaded. Whether a
tenant has installed or enabled one lives in the central database and is
handled by PluginManager.
"""

import logging
from typing import Iterator

from fieldservice.plugins.base import Plugin

logger = logging.getLogger(__name__)


class PluginNotFoundError(KeyError):
    """Raised when a requested plugin is not loaded.

    Attributes:
        plugin_name: Name of the plugin that was not found.
        available: Names of loaded plugins.
    """

    def __init__(self, plugin_name: str, available: list[str]):
        self.plugin_name = plugin_name
        self.available = available
        super().__init__(
            f"Plugin '{plugin_name}' not found. Available: {', '.join(available) or 'none'}"
        )

    def __str__(self) -> str:
        return self.args[0]


class PluginRegistry:
    """Loaded plugins by name.

    Example:
        registry = PluginRegistry()
        registry.register(load_plugin_module("fieldservice.plugins.builtin.example"))
        plugin = registry.get("example-plugin")
    """

    def __init__(self) -> None:
        self._plugins: dict[str, Plugin] = {}

    def register(self, plugin: Plugin) -> None:
        """Register a plugin.

        Raises:
            ValueError: If a plugin with the same name is registered.
        """
        if plugin.name in self._plugins:
            raise ValueError(f"Plugin '{plugin.name}' is already registered")
        self._plugins[plugin.name] = plugin
        logger.debug("Registered plugin: %s", plugin.name)

    def unregister(self, name: str) -> Plugin:
        """Remove a plugin.

        Raises:
            PluginNotFoundError: If the plugin is not registered.
        """
        if name not in self._plugins:
            raise PluginNotFoundError(name, self.list_names())
        logger.debug("Unregistered plugin: %s", name)
        return self._plugins.pop(name)

    def get(self, name: str) -> Plugin:
        """Get a plugin by name.

        Raises:
            PluginNotFoundError: If the plugin is not registered.
        """
        if name not in self._plugins:
            raise PluginNotFoundError(name, self.list_names())
        return self._plugins[name]

    def get_optional(self, name: str) -> Plugin | None:
        """Get a plugin by name, or None."""
        return self._plugins.get(name)

    def has(self, name: str) -> bool:
        """Check if a plugin is registered."""
        return name in self._plugins

    def list_names(self) -> list[str]:
        """Registered plugin names, sorted."""
        return sorted(self._plugins)

    def all(self) -> list[Plugin]:
        """Registered plugins, sorted by name."""
        return [self._plugins[name] for name in self.list_names()]

    def __len__(self) -> int:
        return len(self._plugins)

    def __iter__(self) -> Iterator[Plugin]:
        return iter(self.all())

    def __contains__(self, name: str) -> bool:
        return name in self._plugins
