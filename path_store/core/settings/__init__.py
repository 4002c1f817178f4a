"""Pydantic Settings v2 configuration.

Import settings via cached loaders:
    from path_store.core.settings import get_storage_settings

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. Environment variables
    3. .env file
"""

from __future__ import annotations

from .loader import clear_all_caches, get_logging_settings, get_storage_settings
from .logs import LoggingSettings
from .storage import StorageBackendType, StorageSettings

__all__ = [
    "LoggingSettings",
    "StorageBackendType",
    "StorageSettings",
    "clear_all_caches",
    "get_logging_settings",
    "get_storage_settings",
]
