"""Plugin registry for discovering and managing plugins.

This module provides the PluginRegistry class that handles:
- Registration of plugin definitions
- Discovery of plugins via Python entry points
- Lookup of plugins by name

A registry is an explicit value, scoped to one sync invocation. There is no
process-wide registry.

Entry Points:
    Third-party packages can register plugins via entry points in pyproject.toml:

    [project.entry-points."envsync.plugins"]
    vault = "mypackage.vault:plugin"

    The entry point must resolve to a PluginDefinition.

Example Usage:
    registry = PluginRegistry()
    registry.register_builtin_plugins()
    registry.discover_plugins()

    env = registry.get("env")
"""

from __future__ import annotations

from envsync.constants import PLUGIN_ENTRY_POINT
from envsync.logging import get_logger
from envsync.plugins.base import PluginDefinition

logger = get_logger(__name__)


class PluginRegistry:
    """Registry mapping plugin names to plugin definitions."""

    def __init__(self) -> None:
        """Initialize an empty plugin registry."""
        self._plugins: dict[str, PluginDefinition] = {}

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def register(self, plugin: PluginDefinition) -> None:
        """Register a plugin definition.

        Args:
            plugin: The plugin to register.

        Raises:
            TypeError: If plugin isn't a PluginDefinition.
            ValueError: If another plugin is already registered under the name.
        """
        if not isinstance(plugin, PluginDefinition):
            raise TypeError(f"Expected a PluginDefinition, got {type(plugin).__name__}")

        existing = self._plugins.get(plugin.name)
        if existing is not None:
            if existing is not plugin:
                raise ValueError(f"Plugin '{plugin.name}' already registered")
            return  # Already registered same definition

        self._plugins[plugin.name] = plugin
        logger.debug(f"Registered plugin: {plugin.name}")

    def register_builtin_plugins(self) -> None:
        """Register the built-in plugins (env, settings-secrets).

        Safe to call more than once.
        """
        # Import here to avoid circular imports
        from envsync.plugins.builtin import builtin_plugins

        for plugin in builtin_plugins():
            if plugin.name not in self._plugins:
                self.register(plugin)

        logger.debug("Registered all built-in plugins")

    # =========================================================================
    # DISCOVERY
    # =========================================================================

    def discover_plugins(self) -> None:
        """Discover and register plugins from the envsync.plugins entry points.

        Errors during discovery are logged but don't stop the process.
        """
        from importlib.metadata import entry_points

        for ep in entry_points(group=PLUGIN_ENTRY_POINT):
            try:
                self.register(ep.load())
                logger.info(f"Discovered plugin via entry point: {ep.name}")
            except Exception as e:
                logger.warning(
                    f"Failed to load plugin from entry point {ep.name}: {e}",
                    extra={"entry_point": ep.name, "group": PLUGIN_ENTRY_POINT},
                )

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def get(self, name: str) -> PluginDefinition | None:
        """Get a registered plugin.

        Args:
            name: The plugin name.

        Returns:
            The plugin, or None if not registered.
        """
        return self._plugins.get(name)

    def list_plugins(self) -> list[str]:
        """List all registered plugin names."""
        return list(self._plugins.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._plugins
