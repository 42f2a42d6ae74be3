"""Constants and configuration defaults for envsync.

This module contains all magic values, default configurations, and constants
used throughout the application. Import from here instead of hardcoding values.
"""

from typing import Final

# =============================================================================
# VERSION
# =============================================================================
VERSION: Final[str] = "0.1.0"

# =============================================================================
# CONFIG FILE
# =============================================================================
CONFIG_FILE_NAME: Final[str] = ".envsync.yaml"

# =============================================================================
# PLUGINS
# =============================================================================
PLUGIN_ENTRY_POINT: Final[str] = "envsync.plugins"
PLUGIN_MODULE_PREFIX: Final[str] = "envsync_plugin_"
PLUGIN_MODULE_ATTRIBUTE: Final[str] = "plugin"

# Suffix that marks a dependency or secret reference as optional ("vault?")
OPTIONAL_MARKER: Final[str] = "?"

# =============================================================================
# SECRETS
# =============================================================================
ENV_SECRET_PREFIX: Final[str] = "ENVSYNC_SECRET_"

# =============================================================================
# STATUS STEPS (emitted through the status callback during a sync)
# =============================================================================
STEP_GLOBAL_START: Final[str] = "global-start"
STEP_RUN: Final[str] = "run"
STEP_RUN_COMPLETE: Final[str] = "run-complete"
STEP_GLOBAL_DONE: Final[str] = "global-done"
STEP_REPOS_START: Final[str] = "repos-start"
STEP_RUN_ON_REPO: Final[str] = "run-on-repo"
STEP_RUN_ON_REPO_COMPLETE: Final[str] = "run-on-repo-complete"
STEP_REPOS_DONE: Final[str] = "repos-done"

# =============================================================================
# BUILT-IN PLUGIN NAMES
# =============================================================================
PLUGIN_ENV: Final[str] = "env"
PLUGIN_SETTINGS_SECRETS: Final[str] = "settings-secrets"

# =============================================================================
# LOGGING
# =============================================================================
LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"
