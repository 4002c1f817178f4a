"""Logging infrastructure.

Basic usage:
    from path_store.infra.logging import setup_logging
    import logging

    setup_logging()
    logger = logging.getLogger(__name__)
    logger.info("Listing files", extra={"bucket": "bucket0"})
"""

from path_store.infra.logging.config import configure_logging, setup_logging
from path_store.infra.logging.formatters import JSONFormatter

__all__ = [
    "JSONFormatter",
    "configure_logging",
    "setup_logging",
]
