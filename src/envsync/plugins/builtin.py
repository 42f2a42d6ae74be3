"""Built-in secret store plugins.

- ``env``: reads secrets from ``ENVSYNC_SECRET_<NAME>`` environment variables.
- ``settings-secrets``: reads secrets from the plugin's own settings.

Settings reach plugins as the ordered list of their values across config
layers; for ``settings-secrets`` later layers win.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from typing import Any

from envsync.constants import ENV_SECRET_PREFIX, PLUGIN_ENV, PLUGIN_SETTINGS_SECRETS
from envsync.logging import get_logger
from envsync.plugins.base import PluginDefinition, SecretStore

logger = get_logger(__name__)

_NON_WORD = re.compile(r"\W+")


def env_variable_name(secret_name: str) -> str:
    """Environment variable a secret is read from.

    >>> env_variable_name("github-token")
    'ENVSYNC_SECRET_GITHUB_TOKEN'
    """
    return ENV_SECRET_PREFIX + _NON_WORD.sub("_", secret_name).upper()


class EnvSecretStore(SecretStore):
    """Secret store backed by the process environment."""

    async def get(self, secret_name: str, settings: Any = None) -> str | None:
        env_name = env_variable_name(secret_name)
        value = os.environ.get(env_name)

        if value is None:
            logger.debug(f"No secret found in env variable: {env_name}")
        else:
            logger.debug(f"Found secret in env variable: {env_name}")

        return value

    async def set(self, secret_name: str, value: str, settings: Any = None) -> None:
        os.environ[env_variable_name(secret_name)] = value

    async def remove(self, secret_name: str, settings: Any = None) -> None:
        os.environ.pop(env_variable_name(secret_name), None)


class SettingsSecretStore(SecretStore):
    """Secret store backed by plugin settings.

    Example config:
        settings:
          settings-secrets:
            ci-token: "${CI_TOKEN}"
    """

    async def get(self, secret_name: str, settings: Any = None) -> str | None:
        value = None
        for layer in _layers(settings):
            if secret_name in layer:
                value = layer[secret_name]

        if value is None:
            logger.debug(f"No secret found in settings for: {secret_name}")
            return None

        if not isinstance(value, str):
            raise TypeError(
                f'Invalid data type for secret "{secret_name}": {type(value).__name__}'
            )

        logger.debug(f"Found secret in settings for: {secret_name}")
        return value


def _layers(settings: Any) -> list[Mapping[str, Any]]:
    if isinstance(settings, Mapping):
        return [settings]
    if isinstance(settings, list):
        return [layer for layer in settings if isinstance(layer, Mapping)]
    return []


def builtin_plugins() -> list[PluginDefinition]:
    """Create the built-in plugin definitions."""
    return [
        PluginDefinition(name=PLUGIN_ENV, secret_store=EnvSecretStore()),
        PluginDefinition(name=PLUGIN_SETTINGS_SECRETS, secret_store=SettingsSecretStore()),
    ]
