"""In-memory storage backend for testing.

``InMemoryBackend`` implements the ``RemoteObjectBackend`` protocol with
plain dictionaries, so ``PathStore`` can be exercised without S3, MinIO or
a mocking library.

Key Features:
    - Protocol-compliant (structural subtyping, no base class)
    - Listing follows S3 delimiter semantics: direct children only
    - Every backend call is recorded in ``calls``
    - Failures can be injected per operation with ``fail_on``

Usage:
    from path_store.infra.storage.testing import InMemoryBackend

    backend = InMemoryBackend()
    store = PathStore(backend)
    store.set_bucket_name("bucket0")
    await store.init_bucket()
    await store.upload(b"hello", "/dir/test.txt")

    assert backend.keys("bucket0") == ["dir/test.txt"]
    assert backend.call_count("upload_object") == 1

    # Make the next removal fail
    backend.fail_on("remove_objects")
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from .backends.protocol import BucketOptions, ObjectEntry, RemovedObject
from .exceptions import BackendError

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredObject:
    content: bytes
    content_type: str


class InMemoryBackend:
    """Dictionary-backed implementation of ``RemoteObjectBackend``.

    Attributes:
        buckets: Objects per bucket, keyed by backend key
        bucket_options: Options last applied to each bucket
        calls: ``(operation, *args)`` for every backend call, in order
        started: Whether ``startup`` has run without a matching ``shutdown``
    """

    def __init__(self, url_base: str = "https://storage.test") -> None:
        self.url_base = url_base.rstrip("/")
        self.buckets: dict[str, dict[str, StoredObject]] = {}
        self.bucket_options: dict[str, BucketOptions] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.started = False
        self._failures: dict[str, Exception] = {}

    @property
    def backend_name(self) -> str:
        return "memory"

    # ========================================================================
    # Test helpers
    # ========================================================================

    def fail_on(self, operation: str, error: Exception | None = None) -> None:
        """Raise ``error`` (a generic BackendError by default) on every call to ``operation``."""
        self._failures[operation] = error or BackendError(
            f"{operation} failed",
            metadata={"operation": operation, "aws_error_code": "InternalError"},
        )

    def clear_failures(self) -> None:
        self._failures.clear()

    def call_count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)

    def keys(self, bucket: str) -> list[str]:
        """All object keys stored in ``bucket``, sorted."""
        return sorted(self.buckets.get(bucket, {}))

    def put(self, bucket: str, key: str, content: bytes = b"data") -> None:
        """Seed an object directly, creating the bucket if needed."""
        self.buckets.setdefault(bucket, {})[key] = StoredObject(content, "application/octet-stream")

    def _record(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, *args))
        if operation in self._failures:
            raise self._failures[operation]

    def _objects(self, bucket: str) -> dict[str, StoredObject]:
        try:
            return self.buckets[bucket]
        except KeyError:
            raise BackendError(
                "The specified bucket does not exist",
                status_code=404,
                metadata={"aws_error_code": "NoSuchBucket", "bucket": bucket},
            ) from None

    # ========================================================================
    # Lifecycle Management
    # ========================================================================

    async def startup(self) -> None:
        self.started = True

    async def shutdown(self) -> None:
        self.started = False

    async def __aenter__(self) -> InMemoryBackend:
        await self.startup()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.shutdown()

    # ========================================================================
    # Bucket Management
    # ========================================================================

    async def create_bucket(self, bucket: str, options: BucketOptions) -> None:
        self._record("create_bucket", bucket, options)
        if bucket in self.buckets:
            raise BackendError(
                "The resource already exists",
                status_code=409,
                metadata={"aws_error_code": "BucketAlreadyOwnedByYou", "bucket": bucket},
            )
        self.buckets[bucket] = {}
        self.bucket_options[bucket] = options

    async def update_bucket(self, bucket: str, options: BucketOptions) -> None:
        self._record("update_bucket", bucket, options)
        self._objects(bucket)
        self.bucket_options[bucket] = options

    async def empty_bucket(self, bucket: str) -> None:
        self._record("empty_bucket", bucket)
        self._objects(bucket).clear()

    async def delete_bucket(self, bucket: str) -> None:
        self._record("delete_bucket", bucket)
        if self._objects(bucket):
            raise BackendError(
                "The bucket you tried to delete is not empty",
                status_code=409,
                metadata={"aws_error_code": "BucketNotEmpty", "bucket": bucket},
            )
        del self.buckets[bucket]
        self.bucket_options.pop(bucket, None)

    def get_public_url(self, bucket: str, key: str) -> str:
        self._record("get_public_url", bucket, key)
        return f"{self.url_base}/{bucket}/{quote(key)}"

    # ========================================================================
    # Object Operations
    # ========================================================================

    async def list_objects(self, bucket: str, prefix: str) -> list[ObjectEntry]:
        self._record("list_objects", bucket, prefix)
        folder = f"{prefix}/" if prefix else ""
        names = {
            key[len(folder) :].split("/", 1)[0]
            for key in self._objects(bucket)
            if key.startswith(folder) and len(key) > len(folder)
        }
        return [ObjectEntry(name=name) for name in sorted(names)]

    async def copy_object(self, bucket: str, old_key: str, new_key: str) -> str | None:
        self._record("copy_object", bucket, old_key, new_key)
        objects = self._objects(bucket)
        if old_key not in objects:
            raise BackendError(
                "The specified key does not exist.",
                status_code=404,
                metadata={"aws_error_code": "NoSuchKey", "key": old_key},
            )
        objects[new_key] = objects[old_key]
        return new_key

    async def remove_objects(self, bucket: str, keys: list[str]) -> list[RemovedObject]:
        self._record("remove_objects", bucket, list(keys))
        objects = self._objects(bucket)
        removed = []
        for key in keys:
            # Keys listed twice are reported twice, as S3 does
            if objects.pop(key, None) is not None or any(r.name == key for r in removed):
                removed.append(RemovedObject(name=key))
        return removed

    async def upload_object(
        self,
        bucket: str,
        key: str,
        content: bytes,
        *,
        content_type: str,
        upsert: bool,
    ) -> str | None:
        self._record("upload_object", bucket, key, content_type, upsert)
        objects = self._objects(bucket)
        if not upsert and key in objects:
            raise BackendError(
                "The resource already exists",
                status_code=409,
                metadata={"aws_error_code": "PreconditionFailed", "key": key},
            )
        objects[key] = StoredObject(bytes(content), content_type)
        logger.debug("Stored object in memory", extra={"bucket": bucket, "key": key})
        return key
