"""Cached access to application settings.

Example:
    >>> from network_topology_cdk.settings import get_settings
    >>> get_settings().cdk.binary
    'cdk'
"""

from functools import lru_cache

from .config import Settings


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings instance.

    Environment variables win over the project-root .env file, which wins
    over the defaults in config.py. Tests that change the environment must
    call ``get_settings.cache_clear()`` first.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
