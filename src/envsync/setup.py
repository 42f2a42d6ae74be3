"""Turning a configuration into resolved, ready-to-sync targets.

Every target's plugin list (top-level plugins plus the target's own) is
resolved and its secret requirements worked out. Targets are resolved
concurrently; they share nothing but the read-only config and the loader.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from envsync.config import merge_target_and_base_config
from envsync.exceptions import InvalidInputError
from envsync.logging import get_logger
from envsync.models import EnvSyncBase, EnvSyncConfig, EnvSyncSetup, SecretRequirement, SyncTarget
from envsync.plugins.resolver import resolve_plugins
from envsync.secrets import resolve_needed_secrets

if TYPE_CHECKING:
    from envsync.models import TargetConfig
    from envsync.plugins.resolver import LoaderFn

logger = get_logger(__name__)


async def init_target(
    target_config: TargetConfig,
    config: EnvSyncConfig,
    load: LoaderFn,
) -> SyncTarget:
    """Resolve a single target."""
    merged = merge_target_and_base_config(target_config, config)
    plugins = await resolve_plugins(merged.plugins, load) if merged.plugins else []

    return SyncTarget(
        name=target_config.name,
        repos=list(target_config.repos),
        plugins=plugins,
        secrets=resolve_needed_secrets(plugins),
        config=merged,
    )


async def init_base(config: EnvSyncConfig, load: LoaderFn) -> EnvSyncBase:
    """Resolve the top-level plugins, which supply the secret stores."""
    plugins = await resolve_plugins(config.plugins, load) if config.plugins else []
    return EnvSyncBase(plugins=plugins, secrets=resolve_needed_secrets(plugins))


async def init_env_sync(config: EnvSyncConfig, load: LoaderFn) -> EnvSyncSetup:
    """Resolve the top-level plugins and every target.

    Args:
        config: Loaded configuration.
        load: Plugin loader.

    Returns:
        The setup, including the union of every target's secrets. When two
        targets need the same secret, the later target's requirement wins.

    Raises:
        InvalidInputError: If config isn't an EnvSyncConfig.
        EnvSyncError: Any resolution error of the top level or a target.
    """
    if not isinstance(config, EnvSyncConfig):
        raise InvalidInputError("Expected config to be an EnvSyncConfig")

    targets = list(
        await asyncio.gather(
            *(init_target(target_config, config, load) for target_config in config.targets)
        )
    )

    secrets: dict[str, SecretRequirement] = {}
    for target in targets:
        secrets.update(target.secrets)

    base = await init_base(config, load)

    logger.info(
        "Sync setup initiated",
        extra={"targets": len(targets), "secrets": len(secrets)},
    )

    return EnvSyncSetup(base=base, targets=targets, secrets=secrets)
