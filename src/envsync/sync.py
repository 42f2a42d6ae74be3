"""Sync orchestration.

Runs the hooks of a resolved target in a fixed, linear sequence:

    global-start
        run / run-complete             (each plugin with a run hook)
    global-done
    repos-start
        run-on-repo / run-on-repo-complete   (each repo, each plugin with a run_on_repo hook)
    repos-done

Every transition is reported through the status callback, which may be a
coroutine function and is awaited before the sync moves on. A failing hook
aborts the target's sync right away and its error propagates unchanged.

Several targets can be synced concurrently with sync_targets(); a failure in
one target never cancels the others.

Example:
    async def on_status(step, message, data=None):
        print(message)

    await sync_targets(setup.targets, EnvData(secrets=values), on_status)
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from envsync.constants import (
    STEP_GLOBAL_DONE,
    STEP_GLOBAL_START,
    STEP_REPOS_DONE,
    STEP_REPOS_START,
    STEP_RUN,
    STEP_RUN_COMPLETE,
    STEP_RUN_ON_REPO,
    STEP_RUN_ON_REPO_COMPLETE,
)
from envsync.exceptions import MissingRequiredSecretsError, SyncError
from envsync.logging import get_logger
from envsync.models import EnvData
from envsync.plugins.base import loaded_plugins
from envsync.utils import maybe_await

if TYPE_CHECKING:
    from envsync.models import SyncTarget

logger = get_logger(__name__)

# status_callback(step, message, data) -> None, plain or coroutine function
StatusCallback = Callable[[str, str, dict[str, Any] | None], Any]


async def _noop_status(step: str, message: str, data: dict[str, Any] | None = None) -> None:
    return None


def find_missing_secrets(target: SyncTarget, env_data: EnvData) -> list[str]:
    """Return the required secrets of a target that have no value."""
    return [
        name
        for name, requirement in target.secrets.items()
        if requirement.required and not env_data.secrets.get(name)
    ]


async def sync_target(
    target: SyncTarget,
    env_data: EnvData | None = None,
    status_callback: StatusCallback | None = None,
) -> None:
    """Sync a single target.

    Args:
        target: The resolved target.
        env_data: Resolved secret values.
        status_callback: Receives (step, message, data) for every transition.

    Raises:
        MissingRequiredSecretsError: If required secrets are missing. Checked
            before any hook runs.
        Exception: Whatever a plugin hook raised.
    """
    env_data = env_data or EnvData()
    status = status_callback or _noop_status

    missing = find_missing_secrets(target, env_data)
    if missing:
        raise MissingRequiredSecretsError(missing)

    plugins = loaded_plugins(target.plugins)
    repos = target.repos
    settings = target.config.settings

    logger.info(
        "Syncing target",
        extra={"target": target.display_name, "plugins": len(plugins), "repos": len(repos)},
    )

    await maybe_await(
        status(STEP_GLOBAL_START, "Syncing global environment...", {"count": len(repos)})
    )

    for plugin in plugins:
        if plugin.run is None:
            continue

        data = {"plugin": plugin.name}
        await maybe_await(status(STEP_RUN, f"Running {plugin.name} globally...", data))
        await maybe_await(
            plugin.run(
                config=target,
                env_data=env_data,
                status_callback=status,
                settings=settings.get(plugin.name),
            )
        )
        await maybe_await(
            status(STEP_RUN_COMPLETE, f"...completed {plugin.name} globally.", data)
        )

    await maybe_await(status(STEP_GLOBAL_DONE, "...completed global environment.", None))
    await maybe_await(
        status(STEP_REPOS_START, f"Syncing {len(repos)} repos...", {"count": len(repos)})
    )

    for repo in repos:
        for plugin in plugins:
            if plugin.run_on_repo is None:
                continue

            data = {"repo": repo, "plugin": plugin.name}
            await maybe_await(
                status(STEP_RUN_ON_REPO, f"Running {plugin.name} on {repo}...", data)
            )
            await maybe_await(
                plugin.run_on_repo(
                    config=target,
                    env_data=env_data,
                    status_callback=status,
                    settings=settings.get(plugin.name),
                    repo=repo,
                )
            )
            await maybe_await(
                status(STEP_RUN_ON_REPO_COMPLETE, f"...completed {plugin.name} on {repo}.", data)
            )

    await maybe_await(status(STEP_REPOS_DONE, "...completed repos.", None))

    logger.info("Target synced", extra={"target": target.display_name})


async def sync_targets(
    targets: list[SyncTarget],
    env_data: EnvData | None = None,
    status_callback: StatusCallback | None = None,
) -> None:
    """Sync several targets concurrently.

    Every target runs to completion or failure, regardless of its siblings.
    The status callback gets each event's target name as ``data["target"]``.

    Args:
        targets: The resolved targets.
        env_data: Resolved secret values, shared by all targets.
        status_callback: Receives (step, message, data) for every transition.

    Raises:
        SyncError: If any target failed, listing every failure.
    """
    status = status_callback or _noop_status

    def for_target(target: SyncTarget) -> StatusCallback:
        async def callback(step: str, message: str, data: dict[str, Any] | None = None) -> None:
            tagged = {**(data or {}), "target": target.display_name}
            await maybe_await(status(step, message, tagged))

        return callback

    results = await asyncio.gather(
        *(sync_target(target, env_data, for_target(target)) for target in targets),
        return_exceptions=True,
    )

    failures = [
        (target.display_name, result)
        for target, result in zip(targets, results, strict=True)
        if isinstance(result, BaseException)
    ]
    if not failures:
        return

    for name, error in failures:
        logger.error(f"Sync failed for target {name}: {error}")

    raise SyncError(failures) from failures[0][1]
