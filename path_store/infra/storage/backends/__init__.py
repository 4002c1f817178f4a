"""Storage backends package.

Provides protocol-based abstraction over remote object stores.
"""

from .factory import create_storage_backend
from .protocol import (
    BucketOptions,
    ObjectEntry,
    RemoteObjectBackend,
    RemovedObject,
    parse_file_size,
)

__all__ = [
    "BucketOptions",
    "ObjectEntry",
    "RemoteObjectBackend",
    "RemovedObject",
    "create_storage_backend",
    "parse_file_size",
]
