"""Object storage with "/"-rooted paths over S3-compatible backends.

Usage:
    from path_store.core.settings import get_storage_settings
    from path_store.infra.storage import PathStore, create_storage_backend

    async with create_storage_backend(get_storage_settings()) as backend:
        store = PathStore(backend)
        store.set_bucket_name("bucket0")
        await store.delete(["/dir"])
"""

from .backends import (
    BucketOptions,
    ObjectEntry,
    RemoteObjectBackend,
    RemovedObject,
    create_storage_backend,
)
from .exceptions import (
    BackendError,
    BucketNotSelectedError,
    InvalidInputError,
    InvalidPathError,
    StorageError,
    StorageErrorCode,
    StorageNotConfiguredError,
)
from .store import DEFAULT_MIME_TYPE, BucketSelection, PathStore

__all__ = [
    "DEFAULT_MIME_TYPE",
    "BackendError",
    "BucketNotSelectedError",
    "BucketOptions",
    "BucketSelection",
    "InvalidInputError",
    "InvalidPathError",
    "ObjectEntry",
    "PathStore",
    "RemoteObjectBackend",
    "RemovedObject",
    "StorageError",
    "StorageErrorCode",
    "StorageNotConfiguredError",
    "create_storage_backend",
]
