"""Base plugin definitions for envsync.

A plugin is a named unit of work. It may:

- depend on other plugins (``dependencies``), which are resolved and ordered
  before it;
- require secrets (``secrets``), and provide a human description for the
  secrets it is responsible for (``secret_providers``);
- look up secret values from some backing mechanism (``secret_store``);
- validate secret values (``test_secret``);
- do work once per sync (``run``) and once per repository (``run_on_repo``).

References in ``dependencies`` and ``secrets`` may end with ``?`` to mark
them optional. The marker is a parsing concern only: it is turned into a
PluginRef right away and never travels through the engine.

All hooks and store methods may be plain functions or coroutine functions.

Example:
    async def run_on_repo(*, repo, settings, env_data, **_):
        await publish_token(repo, env_data.secrets["ci-token"])

    plugin = PluginDefinition(
        name="ci",
        dependencies=["env"],
        secrets=["ci-token"],
        secret_providers={"ci-token": "Provide a CI API token"},
        run_on_repo=run_on_repo,
    )
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field

from envsync.constants import OPTIONAL_MARKER


class PluginRef(BaseModel):
    """A parsed reference to a plugin or secret.

    Attributes:
        name: The referenced name, without any optional marker.
        optional: Whether an unresolved reference is tolerated.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Referenced name without the optional marker")
    optional: bool = Field(default=False, description="Whether the reference is optional")

    @classmethod
    def parse(cls, reference: str) -> PluginRef:
        """Parse a ``name`` or ``name?`` reference."""
        if reference.endswith(OPTIONAL_MARKER):
            return cls(name=reference[: -len(OPTIONAL_MARKER)], optional=True)
        return cls(name=reference)


class SecretStore(ABC):
    """Abstract base class for secret stores.

    A secret store looks up (and optionally persists) secret values. The
    ``settings`` argument is the owning plugin's settings entry, as a private
    copy the store may freely modify.

    Example:
        class KeychainStore(SecretStore):
            async def get(self, secret_name, settings=None):
                return keyring.get_password("envsync", secret_name)
    """

    @abstractmethod
    async def get(self, secret_name: str, settings: Any = None) -> str | None:
        """Look up a secret value.

        Args:
            secret_name: The secret to look up.
            settings: The owning plugin's settings, if any.

        Returns:
            The value, or None if this store doesn't know the secret.
        """
        ...

    async def set(self, secret_name: str, value: str, settings: Any = None) -> None:
        """Persist a secret value. Optional, not every store can write."""
        raise NotImplementedError(f"{type(self).__name__} can't store secrets")

    async def remove(self, secret_name: str, settings: Any = None) -> None:
        """Remove a secret value. Optional, not every store can write."""
        raise NotImplementedError(f"{type(self).__name__} can't remove secrets")


class PluginDefinition(BaseModel):
    """A loaded plugin.

    Immutable once created, and only held for the duration of one sync.

    Attributes:
        name: Unique plugin name.
        dependencies: Plugin names to run before this one (``name?`` = optional).
        secrets: Secret names this plugin needs (``name?`` = optional).
        secret_providers: Secrets this plugin is responsible for, mapped to a
            human-readable description used when prompting.
        secret_store: Optional store capability.
        test_secret: Optional validation hook, called with ``secret_name`` and
            ``secret_value`` keyword arguments. Returning ``False`` rejects
            the value.
        run: Optional hook run once per sync.
        run_on_repo: Optional hook run once per repository.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Unique plugin name")
    dependencies: list[str] = Field(default_factory=list, description="Plugin dependencies")
    secrets: list[str] = Field(default_factory=list, description="Secrets this plugin needs")
    secret_providers: dict[str, str] = Field(
        default_factory=dict,
        description="Secrets provided by this plugin, with descriptions",
    )
    secret_store: SecretStore | None = Field(default=None, description="Secret store capability")
    test_secret: Callable[..., Any] | None = Field(default=None, description="Validation hook")
    run: Callable[..., Any] | None = Field(default=None, description="Global hook")
    run_on_repo: Callable[..., Any] | None = Field(default=None, description="Per-repo hook")

    @property
    def dependency_refs(self) -> list[PluginRef]:
        """Parsed dependency references."""
        return [PluginRef.parse(name) for name in self.dependencies]

    @property
    def secret_refs(self) -> list[PluginRef]:
        """Parsed secret references."""
        return [PluginRef.parse(name) for name in self.secrets]


# Placeholder for an optional dependency that could not be loaded
PluginSlot: TypeAlias = PluginDefinition | Literal[False]

# Dependencies always come before their dependents
ResolvedPluginSet: TypeAlias = list[PluginSlot]


def loaded_plugins(plugins: ResolvedPluginSet) -> list[PluginDefinition]:
    """Return the plugins of a resolved set, without placeholders."""
    return [plugin for plugin in plugins if plugin is not False]
