"""CLI utilities for running async storage actions and formatting output."""

from path_store.cli.utils.async_runner import storage_action
from path_store.cli.utils.formatters import (
    error,
    info,
    path_list,
    section,
    storage_failure,
    success,
    warning,
)

__all__ = [
    "error",
    "info",
    "path_list",
    "section",
    "storage_action",
    "storage_failure",
    "success",
    "warning",
]
