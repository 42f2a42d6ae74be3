"""Pydantic models for envsync.

This module contains the data models used throughout envsync.
Plugin definitions themselves live in ``envsync.plugins.base``.

Models are organized by domain:
- Config models (BaseConfig, TargetConfig, EnvSyncConfig)
- Secret models (SecretRequirement, PromptRequest, EnvData)
- Sync models (TargetSettings, SyncTarget, EnvSyncBase, EnvSyncSetup)
"""

from __future__ import annotations

from pathlib import Path  # noqa: TC003 - Required at runtime for Pydantic
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from envsync.plugins.base import PluginDefinition, ResolvedPluginSet  # noqa: TC001

# =============================================================================
# CONFIG MODELS
# =============================================================================


class BaseConfig(BaseModel):
    """Plugins and plugin settings, shared by the top level and targets."""

    model_config = ConfigDict(extra="forbid")

    plugins: list[str] = Field(default_factory=list, description="Plugins to run")
    settings: dict[str, Any] = Field(
        default_factory=dict,
        description="Plugin-specific settings, keyed by plugin name",
    )


class TargetConfig(BaseModel):
    """A configured group of repositories."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, description="Target name used in output")
    repos: list[str] = Field(default_factory=list, description="Repository identifiers")
    config: BaseConfig = Field(default_factory=BaseConfig, description="Target-only config")


class EnvSyncConfig(BaseConfig):
    """Root configuration, as read from .envsync.yaml."""

    target: TargetConfig | list[TargetConfig] | None = Field(
        default=None,
        description="One target or a list of targets",
    )
    base_dir: Path | None = Field(
        default=None,
        description="Directory local plugins are loaded from",
    )

    @property
    def targets(self) -> list[TargetConfig]:
        """All configured targets as a list."""
        if self.target is None:
            return []
        if isinstance(self.target, list):
            return list(self.target)
        return [self.target]


# =============================================================================
# SECRET MODELS
# =============================================================================


class SecretRequirement(BaseModel):
    """A secret needed by a resolved plugin set."""

    model_config = ConfigDict(frozen=True)

    required: bool = Field(..., description="Whether a sync may run without it")
    provider: PluginDefinition = Field(..., description="The single providing plugin")


class PromptRequest(BaseModel):
    """One question in a batched interactive prompt."""

    name: str = Field(..., description="Secret name the answer is stored under")
    message: str = Field(..., description="Text shown to the user")


class EnvData(BaseModel):
    """Resolved environment data handed to a sync."""

    secrets: dict[str, str] = Field(default_factory=dict, description="Resolved secret values")


# =============================================================================
# SYNC MODELS
# =============================================================================


class TargetSettings(BaseModel):
    """A target's config after merging it with the top-level config.

    Every ``settings`` entry is the ordered list of that plugin's settings
    across config layers (top level first).
    """

    base_dir: Path | None = Field(default=None, description="Local plugin directory")
    plugins: list[str] = Field(default_factory=list, description="Merged plugin names")
    settings: dict[str, list[Any]] = Field(
        default_factory=dict,
        description="Layered plugin settings",
    )


class SyncTarget(BaseModel):
    """A fully resolved target, ready to sync. Read-only during a run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str | None = Field(default=None, description="Target name used in output")
    repos: list[str] = Field(default_factory=list, description="Repository identifiers")
    plugins: ResolvedPluginSet = Field(default_factory=list, description="Ordered plugins")
    secrets: dict[str, SecretRequirement] = Field(
        default_factory=dict,
        description="Secrets needed by the plugins",
    )
    config: TargetSettings = Field(default_factory=TargetSettings, description="Merged config")

    @property
    def display_name(self) -> str:
        """Name used in logs and status output."""
        return self.name or "unnamed"


class EnvSyncBase(BaseModel):
    """The top-level plugin set, used for secret stores."""

    plugins: ResolvedPluginSet = Field(default_factory=list, description="Ordered plugins")
    secrets: dict[str, SecretRequirement] = Field(
        default_factory=dict,
        description="Secrets needed by the top-level plugins",
    )


class EnvSyncSetup(BaseModel):
    """Everything needed to resolve secrets and run a sync."""

    base: EnvSyncBase = Field(..., description="Top-level plugin set")
    targets: list[SyncTarget] = Field(default_factory=list, description="Resolved targets")
    secrets: dict[str, SecretRequirement] = Field(
        default_factory=dict,
        description="Union of every target's secrets",
    )
