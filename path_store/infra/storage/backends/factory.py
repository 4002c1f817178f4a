"""Backend factory for creating storage backends dynamically."""

from __future__ import annotations

from typing import TYPE_CHECKING

from path_store.core.settings.storage import StorageBackendType
from path_store.infra.storage.exceptions import StorageNotConfiguredError

if TYPE_CHECKING:
    from path_store.core.settings.storage import StorageSettings

    from .protocol import RemoteObjectBackend


def create_storage_backend(settings: StorageSettings) -> RemoteObjectBackend:
    """Factory function to create the configured storage backend.

    Args:
        settings: Storage configuration settings

    Returns:
        Backend implementing RemoteObjectBackend (not yet started)

    Raises:
        StorageNotConfiguredError: If storage is disabled or the backend type is unsupported

    Example:
        backend = create_storage_backend(get_storage_settings())
        async with backend:
            store = PathStore(backend)
    """
    if not settings.is_configured:
        msg = "Storage not configured. Set STORAGE_ENABLED=true and provide credentials."
        raise StorageNotConfiguredError(msg)

    match settings.backend:
        case StorageBackendType.S3 | StorageBackendType.MINIO:
            # Both S3 and MinIO use the same S3-compatible backend
            from .s3.backend import S3Backend

            return S3Backend(settings)

        case _:
            msg = (
                f"Unsupported storage backend: {settings.backend}. "
                f"Supported backends: {', '.join(t.value for t in StorageBackendType)}"
            )
            raise StorageNotConfiguredError(msg)
