"""Dependency resolution for plugins.

Turns a list of requested plugin names into an execution order where every
plugin comes after all of its (loaded) dependencies. Transitive dependencies
are loaded even when they were never requested directly, and every distinct
plugin name is loaded at most once.

Example:
    plugins = await resolve_plugins(["deploy", "vault?"], loader)
    for plugin in loaded_plugins(plugins):
        print(plugin.name)
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from envsync.exceptions import (
    InvalidInputError,
    MissingPluginsError,
    PluginAddError,
    PluginLoadError,
)
from envsync.logging import get_logger
from envsync.plugins.base import PluginRef
from envsync.utils import maybe_await

if TYPE_CHECKING:
    from envsync.plugins.base import PluginSlot, ResolvedPluginSet

logger = get_logger(__name__)

# load(name) -> PluginDefinition | None, plain or coroutine function
LoaderFn = Callable[[str], Any]


class PluginOrder:
    """Incrementally built ordering of plugins.

    Each node is added with the names it must come after. Names no node
    carries are ignored. The order is recomputed on every add, so a node
    that makes the constraints unsatisfiable is rejected on the spot.

    Among the nodes whose constraints are met, the earliest added one
    always goes first, which keeps the order deterministic.
    """

    def __init__(self) -> None:
        self._names: list[str] = []
        self._items: list[PluginSlot] = []
        self._after: list[tuple[str, ...]] = []
        self._order: list[int] = []

    def add(self, name: str, item: PluginSlot, after: Sequence[str] = ()) -> None:
        """Add a node.

        Args:
            name: Name other nodes refer to this node by.
            item: The plugin, or False for a missing optional plugin.
            after: Names this node must come after.

        Raises:
            PluginAddError: If the node creates a dependency cycle.
        """
        self._names.append(name)
        self._items.append(item)
        self._after.append(tuple(after))

        order = self._sort()
        if order is None:
            self._names.pop()
            self._items.pop()
            self._after.pop()
            raise PluginAddError(name, details={"after": list(after)})

        self._order = order

    @property
    def nodes(self) -> ResolvedPluginSet:
        """The items in their current order."""
        return [self._items[index] for index in self._order]

    def __len__(self) -> int:
        return len(self._items)

    def _sort(self) -> list[int] | None:
        known = set(self._names)
        emitted: set[str] = set()
        remaining = list(range(len(self._names)))
        order: list[int] = []

        while remaining:
            for index in remaining:
                if all(dep in emitted or dep not in known for dep in self._after[index]):
                    break
            else:
                return None

            remaining.remove(index)
            order.append(index)
            emitted.add(self._names[index])

        return order


async def resolve_plugins(
    names: Sequence[str],
    load: LoaderFn,
    *,
    allow_optional: bool = True,
) -> ResolvedPluginSet:
    """Load plugins and their dependencies in dependency order.

    Args:
        names: Requested plugin names. A trailing ``?`` marks a plugin optional.
        load: Loader returning a PluginDefinition, or None when not found.
            May be a coroutine function.
        allow_optional: When False, unresolved optional plugins are reported
            as missing like any other plugin.

    Returns:
        The resolved plugins. A missing optional plugin is represented by a
        False placeholder at its position.

    Raises:
        InvalidInputError: If names isn't a sequence of strings or load isn't callable.
        PluginLoadError: If the loader raised for a plugin.
        PluginAddError: If a plugin creates a dependency cycle.
        MissingPluginsError: If any required plugin could not be found.
    """
    if (
        isinstance(names, str)
        or not isinstance(names, Sequence)
        or not all(isinstance(name, str) for name in names)
    ):
        raise InvalidInputError("Expected plugins to be a sequence of strings")
    if not callable(load):
        raise InvalidInputError("Expected load to be callable")

    visited: set[str] = set()
    missing: list[str] = []
    order = PluginOrder()

    await _expand(
        [PluginRef.parse(name) for name in names],
        load,
        allow_optional=allow_optional,
        visited=visited,
        missing=missing,
        order=order,
    )

    if missing:
        raise MissingPluginsError(missing)

    resolved = order.nodes
    logger.debug(
        "Resolved plugins",
        extra={"order": [slot.name if slot else None for slot in resolved]},
    )
    return resolved


async def _expand(
    refs: list[PluginRef],
    load: LoaderFn,
    *,
    allow_optional: bool,
    visited: set[str],
    missing: list[str],
    order: PluginOrder,
) -> None:
    """Depth-first expansion of plugin references."""
    for ref in refs:
        if ref.name in visited:
            continue
        visited.add(ref.name)

        try:
            plugin = await maybe_await(load(ref.name))
        except Exception as e:
            raise PluginLoadError(ref.name) from e

        if plugin is None:
            if ref.optional and allow_optional:
                logger.debug(f"Optional plugin not found: {ref.name}")
                order.add(ref.name, False)
            else:
                missing.append(ref.name)
            continue

        dependencies = plugin.dependency_refs
        order.add(ref.name, plugin, after=[dep.name for dep in dependencies])
        logger.debug(f"Loaded plugin: {ref.name}")

        await _expand(
            dependencies,
            load,
            allow_optional=allow_optional,
            visited=visited,
            missing=missing,
            order=order,
        )
