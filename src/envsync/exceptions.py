"""Custom exceptions for envsync.

This module defines a hierarchy of exceptions used throughout envsync.
All exceptions inherit from EnvSyncError, making it easy to catch
all envsync-related errors in one place.

Aggregate errors (missing plugins, provider conflicts, invalid secrets...)
always carry every offending name, never just the first one found.

Exception Hierarchy:
    EnvSyncError (base)
    ├── InvalidInputError - Bad arguments passed to the engine (also a TypeError)
    ├── ConfigError - Configuration loading/validation failures
    ├── PluginError (base for single-plugin failures)
    │   ├── PluginLoadError - The loader raised while loading a plugin
    │   └── PluginAddError - A plugin's ordering constraints can't be satisfied
    ├── MissingPluginsError - Required plugins that could not be found
    ├── SecretError (base for secret failures)
    │   ├── DuplicateProviderError
    │   ├── MissingProviderError
    │   ├── InvalidSecretsError
    │   └── MissingRequiredSecretsError
    └── SyncError - One or more targets failed to sync
"""

from collections.abc import Iterable
from typing import Any


def _quoted(names: Iterable[str]) -> str:
    return ", ".join(f'"{name}"' for name in names)


class EnvSyncError(Exception):
    """Base exception for all envsync errors.

    Args:
        message: Human-readable error message.
        details: Optional dictionary with additional error context.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class InvalidInputError(EnvSyncError, TypeError):
    """Raised when the engine itself is called with invalid arguments.

    This is a programmer error, so it also subclasses TypeError.
    """


class ConfigError(EnvSyncError):
    """Raised when configuration loading or validation fails.

    Examples:
        - Invalid YAML syntax in .envsync.yaml
        - Unknown or mistyped configuration keys
        - No configuration file found
    """


class PluginError(EnvSyncError):
    """Base exception for errors tied to a single plugin.

    Args:
        message: Human-readable error message.
        plugin_name: Name of the offending plugin.
        details: Optional dictionary with additional error context.
    """

    def __init__(
        self,
        message: str,
        plugin_name: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.plugin_name = plugin_name

    def __str__(self) -> str:
        base = f"[{self.plugin_name}] {self.message}"
        if self.details:
            return f"{base} | Details: {self.details}"
        return base


class PluginLoadError(PluginError):
    """Raised when the plugin loader fails for a plugin.

    The original exception is available as ``__cause__``.
    """

    def __init__(self, plugin_name: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(f'Failed to load plugin "{plugin_name}"', plugin_name, details)


class PluginAddError(PluginError):
    """Raised when a plugin can't be placed in the resolution order.

    Examples:
        - A depends on B and B depends on A
    """

    def __init__(self, plugin_name: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            f'Plugin "{plugin_name}" creates a dependency cycle', plugin_name, details
        )


class MissingPluginsError(EnvSyncError):
    """Raised when one or more required plugins could not be found."""

    def __init__(self, names: Iterable[str]) -> None:
        self.names = list(names)
        plural = "s" if len(self.names) > 1 else ""
        super().__init__(f"Plugin{plural} missing: {_quoted(self.names)}")


class SecretError(EnvSyncError):
    """Base exception for secret-related errors."""


class DuplicateProviderError(SecretError):
    """Raised when more than one plugin provides the same secret.

    Args:
        providers: Mapping of secret name to the names of every plugin
            providing it.
    """

    def __init__(self, providers: dict[str, list[str]]) -> None:
        self.providers = providers
        listing = ", ".join(
            f'"{secret}" (provided by {_quoted(names)})' for secret, names in providers.items()
        )
        super().__init__(f"Duplicate secret providers for: {listing}")


class MissingProviderError(SecretError):
    """Raised when required secrets have no providing plugin."""

    def __init__(self, names: Iterable[str]) -> None:
        self.names = list(names)
        super().__init__(
            f"Missing secret providers for required secrets: {_quoted(self.names)}"
        )


class InvalidSecretsError(SecretError):
    """Raised when required secrets fail their provider's validation."""

    def __init__(self, names: Iterable[str]) -> None:
        self.names = list(names)
        super().__init__("Invalid secrets: " + ", ".join(self.names))


class MissingRequiredSecretsError(SecretError):
    """Raised when a target is synced without all of its required secrets."""

    def __init__(self, names: Iterable[str]) -> None:
        self.names = list(names)
        super().__init__("Missing required secrets: " + ", ".join(self.names))


class SyncError(EnvSyncError):
    """Raised when one or more targets failed to sync.

    Args:
        failures: List of (target name, exception) pairs, in target order.
    """

    def __init__(self, failures: list[tuple[str, BaseException]]) -> None:
        self.failures = failures
        listing = "; ".join(f"{name}: {error}" for name, error in failures)
        plural = "s" if len(failures) > 1 else ""
        super().__init__(f"{len(failures)} target{plural} failed to sync: {listing}")
