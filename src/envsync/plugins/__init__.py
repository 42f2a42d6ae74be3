"""Plugin system for envsync.

This package provides the plugin definitions, dependency resolution,
and the registry and loader used to find plugins by name.

Plugin Interfaces:
    - PluginDefinition: A named unit of work with dependencies, secrets and hooks
    - SecretStore: Base class for secret store capabilities

Resolution:
    - resolve_plugins: Load plugins and their dependencies in dependency order

Registry:
    - PluginRegistry: Registry of built-in and entry point plugins
    - PluginLoader: ``load(name)`` implementation backed by a registry and imports

Example:
    from envsync.plugins import PluginLoader, PluginRegistry, resolve_plugins

    registry = PluginRegistry()
    registry.register_builtin_plugins()
    plugins = await resolve_plugins(["env", "deploy"], PluginLoader(".", registry=registry))
"""

from envsync.plugins.base import (
    PluginDefinition,
    PluginRef,
    ResolvedPluginSet,
    SecretStore,
    loaded_plugins,
)
from envsync.plugins.loader import PluginLoader, normalize_plugin_name
from envsync.plugins.registry import PluginRegistry
from envsync.plugins.resolver import PluginOrder, resolve_plugins

__all__ = [
    "PluginDefinition",
    "PluginLoader",
    "PluginOrder",
    "PluginRef",
    "PluginRegistry",
    "ResolvedPluginSet",
    "SecretStore",
    "loaded_plugins",
    "normalize_plugin_name",
    "resolve_plugins",
]
