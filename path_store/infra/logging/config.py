"""Logging configuration setup.

Configures the root logger once via ``logging.config.dictConfig``. Library
modules only ever call ``logging.getLogger(__name__)``; handlers live on the
root logger and child loggers propagate.
"""

from __future__ import annotations

import logging
import logging.config
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from path_store.core.settings.logs import LoggingSettings

logger = logging.getLogger(__name__)
_LOGGING_INITIALIZED = False

_TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    force: bool = False,
    **configure_kwargs: Any,
) -> None:
    """Ensure logging is configured once across entrypoints.

    Args:
        log_settings: Optional logging settings instance. If omitted, settings
            are loaded via get_logging_settings().
        force: Reconfigure logging even if it was already initialized.
        **configure_kwargs: Explicit overrides for configure_logging().
    """
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED and not force:
        return

    settings_obj = log_settings
    if settings_obj is None:
        from path_store.core.settings import get_logging_settings

        settings_obj = get_logging_settings()

    log_config = {**settings_obj.to_logging_kwargs(), **configure_kwargs}
    configure_logging(**log_config)
    _LOGGING_INITIALIZED = True


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
    service_name: str = "path-store",
    capture_warnings: bool = True,
    quiet_loggers: tuple[str, ...] = ("botocore", "aiobotocore", "urllib3"),
) -> None:
    """Configure root logging with a single stderr handler.

    Args:
        log_level: Root logger level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_logs: Emit JSON Lines instead of human-readable text.
        service_name: Static ``service`` field added to JSON records.
        capture_warnings: Forward Python warnings to the logging system.
        quiet_loggers: Third-party loggers pinned to WARNING.
    """
    if capture_warnings:
        logging.captureWarnings(True)

    formatter: dict[str, Any]
    if json_logs:
        formatter = {
            "()": "path_store.infra.logging.formatters.JSONFormatter",
            "static": {"service": service_name},
        }
    else:
        formatter = {"format": _TEXT_FORMAT}

    config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": formatter},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {name: {"level": "WARNING"} for name in quiet_loggers},
        "root": {"level": log_level.upper(), "handlers": ["console"]},
    }

    logging.config.dictConfig(config)
    logger.debug(
        "Logging configured",
        extra={"log_level": log_level, "json_logs": json_logs},
    )
