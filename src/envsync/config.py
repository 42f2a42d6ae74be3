"""Configuration loader for envsync.

This module handles loading and parsing configuration from YAML files,
with support for environment variable expansion, and merging each target's
config with the top-level config.

Example .envsync.yaml:
    plugins:
      - env
      - settings-secrets
    settings:
      settings-secrets:
        ci-token: "${CI_TOKEN}"
    target:
      - name: backend
        repos: [org/api, org/worker]
        config:
          plugins: [./plugins/deploy.py]

Example:
    config = load_config(start_dir=Path("."))
    for target in config.targets:
        merged = merge_target_and_base_config(target, config)
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from envsync.constants import CONFIG_FILE_NAME
from envsync.exceptions import ConfigError, InvalidInputError
from envsync.models import EnvSyncConfig, TargetConfig, TargetSettings
from envsync.utils import clone_structured

# Pattern to match ${VAR_NAME} or $VAR_NAME
ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


def expand_env_vars(value: Any) -> Any:
    """Recursively expand environment variables in config values.

    Supports both ${VAR_NAME} and $VAR_NAME syntax.
    If the env var is not set, the placeholder is left unchanged.

    Args:
        value: The value to expand (can be str, dict, list, or primitive).

    Returns:
        The value with environment variables expanded.
    """
    if isinstance(value, str):

        def replace_env_var(match: re.Match[str]) -> str:
            # Group 1 is ${VAR}, group 2 is $VAR
            var_name = match.group(1) or match.group(2)
            return os.environ.get(var_name, match.group(0))

        return ENV_VAR_PATTERN.sub(replace_env_var, value)

    elif isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [expand_env_vars(item) for item in value]

    else:
        return value


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for .envsync.yaml in a directory and its parents.

    Args:
        start_dir: Directory to start from. Defaults to the working directory.

    Returns:
        Path to the config file if found, None otherwise.
    """
    current = (start_dir or Path.cwd()).resolve()

    for directory in [current, *current.parents]:
        config_file = directory / CONFIG_FILE_NAME
        if config_file.exists():
            return config_file

    return None


def load_config(
    config_path: Path | None = None,
    *,
    start_dir: Path | None = None,
    base_dir: Path | None = None,
) -> EnvSyncConfig:
    """Load configuration from a YAML file.

    Environment variables in the format ${VAR_NAME} or $VAR_NAME are expanded.

    Args:
        config_path: Path to config file. If None, searches for .envsync.yaml
                    from start_dir upwards.
        start_dir: Where to start searching when config_path isn't given.
        base_dir: Directory local plugins are loaded from. Defaults to the
                 config file's directory.

    Returns:
        Loaded configuration.

    Raises:
        ConfigError: If no config file is found, or it is invalid.
    """
    if config_path is None:
        config_path = find_config_file(start_dir)

    if config_path is None:
        raise ConfigError(f"Couldn't find a {CONFIG_FILE_NAME} config file")

    if not config_path.is_file():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping at the top of {config_path}")

    data = expand_env_vars(data)
    data["base_dir"] = base_dir or config_path.resolve().parent

    try:
        return EnvSyncConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {config_path}", details={"errors": e.errors()}) from e


def lossless_shallow_merge(*layers: dict[str, Any] | None) -> dict[str, list[Any]]:
    """Merge config layers without losing any value.

    Instead of later layers overwriting earlier ones, every key maps to the
    ordered list of its values across the layers. None layers and None values
    are skipped; dicts and lists are deep-copied.

    Args:
        *layers: Mappings, first layer first.

    Returns:
        Dict mapping every key to its values, in layer order.

    Example:
        >>> lossless_shallow_merge({"a": 1, "b": 2}, None, {"a": 3})
        {'a': [1, 3], 'b': [2]}
    """
    result: dict[str, list[Any]] = {}

    for layer in layers:
        if layer is None:
            continue
        for key, value in layer.items():
            values = result.setdefault(key, [])
            if value is not None:
                values.append(clone_structured(value))

    return result


def merge_target_and_base_config(
    target_config: TargetConfig,
    base_config: EnvSyncConfig,
) -> TargetSettings:
    """Merge a target's config with the top-level config.

    Top-level plugins come first, followed by the target's own plugins.
    Settings are merged with lossless_shallow_merge(). Neither input is
    modified.

    Raises:
        InvalidInputError: If either argument has the wrong type.
    """
    if not isinstance(target_config, TargetConfig):
        raise InvalidInputError("Expected target config to be a TargetConfig")
    if not isinstance(base_config, EnvSyncConfig):
        raise InvalidInputError("Expected base config to be an EnvSyncConfig")

    return TargetSettings(
        base_dir=base_config.base_dir,
        plugins=[*base_config.plugins, *target_config.config.plugins],
        settings=lossless_shallow_merge(base_config.settings, target_config.config.settings),
    )
