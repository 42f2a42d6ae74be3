"""Secret requirements and secret value resolution.

Two steps happen between plugin resolution and a sync:

1. resolve_needed_secrets() works out, from the resolved plugins, which
   secrets are needed, whether each one is required, and which single
   plugin provides it.
2. resolve_secret_values() looks each needed secret up in the secret stores,
   asks the user for the rest in one batched prompt, and validates the result.

Example:
    needed = resolve_needed_secrets(plugins)
    values = await resolve_secret_values(needed, plugins, settings, prompt)
    await sync_target(target, EnvData(secrets=values))
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from envsync.exceptions import DuplicateProviderError, InvalidSecretsError, MissingProviderError
from envsync.logging import get_logger
from envsync.models import PromptRequest, SecretRequirement
from envsync.plugins.base import loaded_plugins
from envsync.utils import clone_structured, maybe_await

if TYPE_CHECKING:
    from envsync.plugins.base import PluginDefinition, ResolvedPluginSet, SecretStore

logger = get_logger(__name__)

# prompt(requests) -> {secret name: answer}, plain or coroutine function
PromptFn = Callable[[list[PromptRequest]], Any]


# =============================================================================
# NEEDED SECRETS
# =============================================================================


def resolve_secret_providers(plugins: ResolvedPluginSet) -> dict[str, PluginDefinition]:
    """Map every provided secret to the single plugin providing it.

    Args:
        plugins: Resolved plugins.

    Returns:
        Dict mapping secret names to their provider.

    Raises:
        DuplicateProviderError: Listing every secret with more than one provider.
    """
    providers: dict[str, PluginDefinition] = {}
    duplicates: dict[str, list[str]] = {}

    for plugin in loaded_plugins(plugins):
        for secret_name in plugin.secret_providers:
            existing = providers.get(secret_name)
            if existing is None:
                providers[secret_name] = plugin
                continue
            duplicates.setdefault(secret_name, [existing.name]).append(plugin.name)

    if duplicates:
        raise DuplicateProviderError(duplicates)

    return providers


def resolve_needed_secrets(plugins: ResolvedPluginSet) -> dict[str, SecretRequirement]:
    """Work out which secrets a set of plugins needs.

    A secret is required if at least one plugin references it without the
    optional marker. Optional secrets without a provider are left out.

    Args:
        plugins: Resolved plugins, in resolution order.

    Returns:
        Dict mapping secret names to requirements, in first-reference order.

    Raises:
        DuplicateProviderError: If any secret has more than one provider.
        MissingProviderError: If any required secret has no provider.
    """
    referenced: dict[str, bool] = {}
    for plugin in loaded_plugins(plugins):
        for ref in plugin.secret_refs:
            referenced[ref.name] = referenced.get(ref.name, False) or not ref.optional

    providers = resolve_secret_providers(plugins)

    missing = [name for name, required in referenced.items() if required and name not in providers]
    if missing:
        raise MissingProviderError(missing)

    return {
        name: SecretRequirement(required=required, provider=providers[name])
        for name, required in referenced.items()
        if name in providers
    }


# =============================================================================
# SECRET VALUES
# =============================================================================


async def resolve_secret_values(
    needed: Mapping[str, SecretRequirement],
    plugins: ResolvedPluginSet,
    settings: Mapping[str, Any] | None,
    prompt: PromptFn,
) -> dict[str, str]:
    """Resolve values for the needed secrets.

    Secret stores are consulted in plugin resolution order and the first
    value found wins. Secrets no store knows are asked for in a single
    prompt call. Every value is then checked with its provider's
    ``test_secret`` hook, if it has one.

    Args:
        needed: Output of resolve_needed_secrets().
        plugins: Resolved plugins whose secret stores are consulted.
        settings: Plugin settings, keyed by plugin name. Each store gets a
            private copy of its own entry.
        prompt: Called once with every unresolved secret as PromptRequests.

    Returns:
        Dict mapping secret names to values, for the secrets that resolved.

    Raises:
        InvalidSecretsError: Listing every required secret rejected by validation.
    """
    if not needed:
        return {}

    settings = settings or {}
    stores = [
        (plugin.name, plugin.secret_store)
        for plugin in loaded_plugins(plugins)
        if plugin.secret_store is not None
    ]
    resolved: dict[str, str] = {}
    prompts: list[PromptRequest] = []

    logger.debug(f"Resolving {len(needed)} secrets", extra={"stores": len(stores)})

    for secret_name, requirement in needed.items():
        value = await _lookup(secret_name, stores, settings)

        if value is not None:
            logger.debug(f"Found secret: {secret_name}")
            resolved[secret_name] = value
            continue

        logger.debug(f"Did not find secret: {secret_name}")
        prompts.append(
            PromptRequest(
                name=secret_name,
                message=requirement.provider.secret_providers[secret_name],
            )
        )

    if prompts:
        logger.info(f"Asking for {len(prompts)} secrets")
        answers = await maybe_await(prompt(prompts)) or {}
        asked = {request.name for request in prompts}
        resolved.update(
            {name: answer for name, answer in answers.items() if answer and name in asked}
        )

    invalid: list[str] = []

    for secret_name in list(resolved):
        requirement = needed.get(secret_name)
        if requirement is None or requirement.provider.test_secret is None:
            continue

        result = await maybe_await(
            requirement.provider.test_secret(
                secret_name=secret_name,
                secret_value=resolved[secret_name],
            )
        )
        if result is False:
            logger.warning(f"Secret failed validation: {secret_name}")
            del resolved[secret_name]
            if requirement.required:
                invalid.append(secret_name)

    if invalid:
        raise InvalidSecretsError(invalid)

    logger.debug("Used secrets: " + ", ".join(resolved))
    return resolved


async def _lookup(
    secret_name: str,
    stores: list[tuple[str, SecretStore]],
    settings: Mapping[str, Any],
) -> str | None:
    """Return the first value any store has for a secret."""
    for plugin_name, store in stores:
        plugin_settings = clone_structured(settings.get(plugin_name))
        value = await maybe_await(store.get(secret_name, plugin_settings))
        if value is not None:
            return value
    return None
