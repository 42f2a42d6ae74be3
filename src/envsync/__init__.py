"""envsync - sync configuration and secrets across repositories with plugins."""

from envsync.constants import VERSION

__version__ = VERSION
