# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Plugin module loader.

Plugins are referenced by import path, either ``package.module`` (the module
must define ``plugin``) or ``package.module:attribute``.
"""

import importlib
import logging

from fieldservice.plugins.base import Plugin

logger = logging.getLogger(__name__)

DEFAULT_ATTRIBUTE = "plugin"


class PluginLoadError(Exception):
    """Raised when a plugin module cannot be imported or is malformed.

    Attributes:
        module_path: The import path that failed.
    """

    def __init__(self, module_path: str, reason: str) -> None:
        super().__init__(f"Failed to load plugin '{module_path}': {reason}")
        self.module_path = module_path
        self.reason = reason


def load_plugin_module(path: str) -> Plugin:
    """Import a plugin from its path.

    Args:
        path: "module.path" or "module.path:attribute".

    Returns:
        The plugin object, with module_path recorded.

    Raises:
        PluginLoadError: If the import fails or the object is not a Plugin.

    Example:
        plugin = load_plugin_module("fieldservice.plugins.builtin.time_clock")
    """
    module_path, _, attribute = path.partition(":")
    attribute = attribute or DEFAULT_ATTRIBUTE

    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        raise PluginLoadError(path, str(e)) from e

    obj = getattr(module, attribute, None)
    if obj is None:
        raise PluginLoadError(path, f"module has no attribute '{attribute}'")
    if not isinstance(obj, Plugin):
        raise PluginLoadError(path, f"'{attribute}' is {type(obj).__name__}, not Plugin")

    obj.module_path = path
    logger.debug("Loaded plugin %s from %s", obj.name, path)
    return obj
