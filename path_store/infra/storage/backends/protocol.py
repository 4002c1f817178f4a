"""Storage backend protocol and normalized data structures.

This module defines:
- Protocol interface that all remote object backends must implement
- Normalized data structures exchanged between PathStore and a backend
"""

from __future__ import annotations

from dataclasses import dataclass
import math
import re
from typing import TYPE_CHECKING, Protocol, Self

if TYPE_CHECKING:
    from types import TracebackType

# ============================================================================
# Normalized Data Structures
# ============================================================================

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([KMGT]?B)?\s*$", re.IGNORECASE)
_SIZE_UNITS = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3, "TB": 1024**4}


def parse_file_size(value: int | float | str) -> int:
    """Convert a size limit (a number of bytes, or a string such as ``"50MB"``) to bytes.

    Fractional byte counts are truncated.

    Raises:
        ValueError: If the value is negative or cannot be parsed.
    """
    if isinstance(value, int | float):
        if value < 0 or not math.isfinite(value):
            raise ValueError(f"File size limit must be a non-negative finite number, got {value}")
        return int(value)
    if not isinstance(value, str):
        raise ValueError(f"Invalid file size limit: {value!r}")

    match = _SIZE_PATTERN.match(value)
    if match is None:
        raise ValueError(f"Invalid file size limit: {value!r}")
    amount, unit = match.groups()
    return int(float(amount) * _SIZE_UNITS[(unit or "B").upper()])


@dataclass(frozen=True)
class BucketOptions:
    """Options applied when a bucket is created or updated.

    Attributes:
        public: Whether objects are publicly readable
        file_size_limit: Maximum object size, in bytes or as a size string
        allowed_mime_types: MIME types accepted for uploads (None allows all)
    """

    public: bool = False
    file_size_limit: int | float | str | None = None
    allowed_mime_types: list[str] | None = None

    @property
    def file_size_limit_bytes(self) -> int | None:
        if self.file_size_limit is None:
            return None
        return parse_file_size(self.file_size_limit)


@dataclass(frozen=True)
class ObjectEntry:
    """A direct child returned by a listing (last path segment only)."""

    name: str


@dataclass(frozen=True)
class RemovedObject:
    """An object key reported as removed by the backend."""

    name: str


# ============================================================================
# Remote Object Backend Protocol
# ============================================================================


class RemoteObjectBackend(Protocol):
    """Protocol interface for remote object-storage backends.

    Every operation is addressed by bucket name and backend key (no leading
    "/"). Failures are raised as ``BackendError``; implementations never
    return error values.
    """

    @property
    def backend_name(self) -> str:
        """Name of the backend (e.g., 's3')."""
        ...

    # ========================================================================
    # Lifecycle Management
    # ========================================================================

    async def startup(self) -> None:
        """Initialize backend (create clients, connection pools, etc.)."""
        ...

    async def shutdown(self) -> None:
        """Gracefully shutdown backend (close connections, cleanup resources)."""
        ...

    async def __aenter__(self) -> Self: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None: ...

    # ========================================================================
    # Bucket Management
    # ========================================================================

    async def create_bucket(self, bucket: str, options: BucketOptions) -> None:
        """Create a bucket. Fails if it already exists."""
        ...

    async def update_bucket(self, bucket: str, options: BucketOptions) -> None:
        """Apply options to an existing bucket."""
        ...

    async def empty_bucket(self, bucket: str) -> None:
        """Remove every object in the bucket."""
        ...

    async def delete_bucket(self, bucket: str) -> None:
        """Delete an (empty) bucket."""
        ...

    def get_public_url(self, bucket: str, key: str) -> str:
        """Public URL for ``key``; an empty key yields the bucket's URL prefix."""
        ...

    # ========================================================================
    # Object Operations
    # ========================================================================

    async def list_objects(self, bucket: str, prefix: str) -> list[ObjectEntry]:
        """List the direct children of ``prefix`` (files and folders).

        An empty result does not distinguish a missing prefix, an empty
        folder and a plain object.
        """
        ...

    async def copy_object(self, bucket: str, old_key: str, new_key: str) -> str | None:
        """Copy an object and return the destination key."""
        ...

    async def remove_objects(self, bucket: str, keys: list[str]) -> list[RemovedObject]:
        """Remove objects in one batched call and report what was removed."""
        ...

    async def upload_object(
        self,
        bucket: str,
        key: str,
        content: bytes,
        *,
        content_type: str,
        upsert: bool,
    ) -> str | None:
        """Store ``content`` at ``key`` and return the stored key.

        With ``upsert=False`` an existing object is not overwritten and the
        call fails.
        """
        ...
