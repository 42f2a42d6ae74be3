"""Loading plugins by name.

The dependency resolver only needs a ``load(name)`` callable returning a
PluginDefinition or None. PluginLoader is the implementation used by the CLI.
It looks a name up in this order:

1. The plugin registry (built-ins and entry point plugins).
2. Local paths, for names starting with ``.``: a ``.py`` file or a package
   directory, relative to the config's base directory.
3. Importable modules, named ``envsync_plugin_<name>`` (dashes become
   underscores).

Plugin modules expose their definition as a module-level ``plugin``
attribute.

Example:
    loader = PluginLoader(Path("."), registry=registry)
    plugin = loader("./plugins/deploy.py")
"""

from __future__ import annotations

import importlib
import importlib.util
import posixpath
import sys
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING

from envsync.constants import PLUGIN_MODULE_ATTRIBUTE, PLUGIN_MODULE_PREFIX
from envsync.logging import get_logger
from envsync.plugins.base import PluginDefinition

if TYPE_CHECKING:
    from envsync.plugins.registry import PluginRegistry

logger = get_logger(__name__)


def normalize_plugin_name(plugin_name: str, *, prefix: str | None = None) -> str:
    """Normalize a plugin name into a local path or a module name.

    Args:
        plugin_name: Name as written in the config.
        prefix: Prefix added to module names that don't already have it.

    Returns:
        ``./``-prefixed normalized path for local plugins, module name otherwise.

    Raises:
        TypeError: If plugin_name isn't a non-empty string.
        ValueError: If a local path escapes its base directory.

    Examples:
        >>> normalize_plugin_name("./foo/../bar/")
        './bar'
        >>> normalize_plugin_name("vault", prefix="envsync_plugin_")
        'envsync_plugin_vault'
        >>> normalize_plugin_name("envsync-plugin-vault", prefix="envsync_plugin_")
        'envsync_plugin_vault'
    """
    if not isinstance(plugin_name, str) or not plugin_name:
        raise TypeError("Invalid plugin_name, expected a non-empty string")

    normalized_path = posixpath.normpath(plugin_name)

    if normalized_path == ".." or normalized_path.startswith("../"):
        raise ValueError(f'Plugin name attempts directory traversal: "{plugin_name}"')

    if plugin_name.startswith("."):
        return "./" + normalized_path

    module_name = plugin_name.replace("-", "_")

    if not prefix or module_name.startswith(prefix):
        return module_name

    return prefix + module_name


class PluginLoader:
    """Loads plugin definitions by name.

    Loaded modules are cached, so every reference to a plugin yields the same
    PluginDefinition object.
    """

    def __init__(
        self,
        base_dir: Path | str,
        *,
        registry: PluginRegistry | None = None,
        prefix: str | None = PLUGIN_MODULE_PREFIX,
    ) -> None:
        """Initialize the loader.

        Args:
            base_dir: Directory local plugin paths are relative to.
            registry: Registry consulted before anything is imported.
            prefix: Prefix for plugin module names.
        """
        if not isinstance(base_dir, (str, Path)) or not str(base_dir):
            raise TypeError("Invalid base_dir, expected a non-empty path")

        self._base_dir = Path(base_dir)
        self._registry = registry
        self._prefix = prefix
        self._cache: dict[str, PluginDefinition | None] = {}

    def __call__(self, plugin_name: str) -> PluginDefinition | None:
        """Load a plugin.

        Returns:
            The plugin, or None if no plugin exists under that name.

        Raises:
            TypeError: If the plugin module has no valid ``plugin`` attribute.
            Exception: Whatever importing the plugin module raised.
        """
        if self._registry is not None:
            registered = self._registry.get(plugin_name)
            if registered is not None:
                return registered

        normalized = normalize_plugin_name(plugin_name, prefix=self._prefix)
        if normalized in self._cache:
            return self._cache[normalized]

        if normalized.startswith("./"):
            module = self._import_local(normalized)
        else:
            module = self._import_module(normalized)

        plugin = None if module is None else self._plugin_from_module(plugin_name, module)
        self._cache[normalized] = plugin
        return plugin

    def _plugin_from_module(self, plugin_name: str, module: ModuleType) -> PluginDefinition:
        plugin = getattr(module, PLUGIN_MODULE_ATTRIBUTE, None)
        if not isinstance(plugin, PluginDefinition):
            raise TypeError(
                f"Plugin module for '{plugin_name}' must define a "
                f"'{PLUGIN_MODULE_ATTRIBUTE}' PluginDefinition"
            )
        logger.debug(f"Loaded plugin module: {module.__name__}")
        return plugin

    def _import_module(self, module_name: str) -> ModuleType | None:
        try:
            return importlib.import_module(module_name)
        except ModuleNotFoundError as e:
            # Only a missing plugin module means "not found", not a missing
            # import inside the plugin
            if e.name and (module_name == e.name or module_name.startswith(e.name + ".")):
                logger.debug(f"No plugin module named {module_name}")
                return None
            raise

    def _import_local(self, relative_path: str) -> ModuleType | None:
        path = self._base_dir / relative_path
        candidates = [path, path.with_name(path.name + ".py"), path / "__init__.py"]
        source = next((c for c in candidates if c.is_file() and c.suffix == ".py"), None)

        if source is None:
            logger.debug(f"No local plugin at {path}")
            return None

        module_name = "envsync_local_plugin_" + "_".join(
            part.replace("-", "_").replace(".", "_") for part in Path(relative_path).parts
        )
        search_locations = [str(source.parent)] if source.name == "__init__.py" else None
        spec = importlib.util.spec_from_file_location(
            module_name,
            source,
            submodule_search_locations=search_locations,
        )
        if spec is None or spec.loader is None:
            return None

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(module_name, None)
            raise

        return module
