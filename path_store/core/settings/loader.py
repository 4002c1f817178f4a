"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the
process.

Testing:
    In tests, clear the cache to force reload:
    get_storage_settings.cache_clear()

    Or override with custom values:
    settings = StorageSettings(enabled=True, ...)
"""

from __future__ import annotations

from functools import lru_cache

from .logs import LoggingSettings
from .storage import StorageSettings


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings.

    Returns:
        Validated and frozen LoggingSettings instance.
    """
    return LoggingSettings()


@lru_cache(maxsize=1)
def get_storage_settings() -> StorageSettings:
    """Get cached object storage settings.

    Returns:
        Validated and frozen StorageSettings instance.
    """
    return StorageSettings()


def clear_all_caches() -> None:
    """Clear all settings caches (for testing)."""
    get_logging_settings.cache_clear()
    get_storage_settings.cache_clear()
