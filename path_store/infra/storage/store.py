"""PathStore: "/"-rooted paths, recursive listing and deletion over a backend.

PathStore adds three conventions on top of a ``RemoteObjectBackend``:

- Paths given to and returned from its public operations start with "/";
  the backend sees the same key without that slash.
- A key whose listing has no children is a file. The backend listing cannot
  tell an empty folder from an object, so "no children" is read as "leaf".
- Directories are expanded recursively, so ``delete(["/dir"])`` removes
  every object below ``dir``.

Example:
    ```python
    async with create_storage_backend(get_storage_settings()) as backend:
        store = PathStore(backend)
        store.set_bucket_name("bucket0")
        await store.init_bucket(BucketOptions(public=True))
        await store.upload(b"hello", "/test.txt", "text/plain")
        await store.copy("/test.txt", "/dir/test2.txt")
        await store.list_all_files("/dir")   # ["dir/test2.txt"]
        await store.delete(["/dir"])         # ["/dir/test2.txt"]
    ```
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, BinaryIO

from .backends.protocol import BucketOptions
from .exceptions import BackendError, BucketNotSelectedError, InvalidInputError
from .path import (
    join_key,
    require_user_path,
    to_backend_key,
    to_user_path,
    validate_user_paths,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .backends.protocol import RemoteObjectBackend

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "text/plain;charset=UTF-8"


@dataclass(frozen=True)
class BucketSelection:
    """The selected bucket and its public URL prefix, replaced together."""

    name: str
    url_prefix: str


class PathStore:
    """Path-oriented convenience layer over a remote object backend.

    The store starts with no bucket selected. Every bucket or object
    operation requires a selection and raises ``BucketNotSelectedError``
    before touching the backend otherwise.

    The backend is shared, not owned: starting and stopping it is the
    caller's job. Calling ``set_bucket_name`` while other operations are in
    flight gives no guarantee about which bucket those operations use.
    """

    def __init__(self, backend: RemoteObjectBackend) -> None:
        self._backend = backend
        self._selection: BucketSelection | None = None

    @property
    def backend(self) -> RemoteObjectBackend:
        return self._backend

    @property
    def selection(self) -> BucketSelection | None:
        return self._selection

    # ========================================================================
    # Bucket selection
    # ========================================================================

    def get_bucket_name(self) -> str | None:
        return self._selection.name if self._selection else None

    def get_bucket_url_prefix(self) -> str | None:
        return self._selection.url_prefix if self._selection else None

    def set_bucket_name(self, name: str) -> None:
        """Select ``name`` and derive its public URL prefix from the backend.

        The selection only changes once the prefix has been obtained; if the
        backend lookup fails the previous selection is kept.

        Raises:
            InvalidInputError: If ``name`` is empty
        """
        if not name:
            raise InvalidInputError("Bucket name must not be empty")

        url_prefix = self._backend.get_public_url(name, "")
        self._selection = BucketSelection(name=name, url_prefix=url_prefix)
        logger.debug(
            "Bucket selected",
            extra={"bucket": name, "url_prefix": url_prefix},
        )

    def reset_bucket(self) -> None:
        """Return to the unselected state."""
        self._selection = None

    def _require_bucket(self) -> str:
        if self._selection is None:
            raise BucketNotSelectedError()
        return self._selection.name

    # ========================================================================
    # Bucket lifecycle
    # ========================================================================

    async def init_bucket(self, options: BucketOptions | None = None) -> None:
        """Create the selected bucket, or update it if creation fails.

        Safe to call repeatedly: once the bucket exists, creation fails and
        the same options are applied through an update instead.

        Raises:
            BucketNotSelectedError: If no bucket is selected
            BackendError: If both the creation and the update fail
        """
        bucket = self._require_bucket()
        options = options or BucketOptions()

        try:
            await self._backend.create_bucket(bucket, options)
        except BackendError as e:
            logger.info(
                "Bucket creation failed, updating existing bucket",
                extra={"bucket": bucket, "reason": e.detail},
            )
            await self._backend.update_bucket(bucket, options)
            return

        logger.info("Bucket initialized", extra={"bucket": bucket, "public": options.public})

    async def destroy_bucket(self) -> None:
        """Empty the selected bucket, then delete it.

        The two steps are not atomic: if deletion fails the bucket is left
        empty but present. The local selection is kept; call
        ``reset_bucket`` to clear it.

        Raises:
            BucketNotSelectedError: If no bucket is selected
            BackendError: If either step fails
        """
        bucket = self._require_bucket()
        await self._backend.empty_bucket(bucket)
        await self._backend.delete_bucket(bucket)
        logger.info("Bucket destroyed", extra={"bucket": bucket})

    # ========================================================================
    # Object operations
    # ========================================================================

    async def copy(self, old_path: str, new_path: str) -> str:
        """Copy an object and return the destination as a user-facing path.

        Raises:
            InvalidPathError: If either path does not start with "/"
            BucketNotSelectedError: If no bucket is selected
            BackendError: If the backend fails or returns no result
        """
        old_key = require_user_path(old_path)
        new_key = require_user_path(new_path)
        bucket = self._require_bucket()

        copied = await self._backend.copy_object(bucket, old_key, new_key)
        if not copied:
            raise BackendError(
                "Copy returned no result",
                metadata={"bucket": bucket, "source_key": old_key, "dest_key": new_key},
            )
        return to_user_path(copied)

    async def upload(
        self,
        content: bytes | bytearray | memoryview | BinaryIO,
        upload_path: str,
        mime_type: str = DEFAULT_MIME_TYPE,
    ) -> str:
        """Upload ``content``, overwriting any existing object at the path.

        The leading "/" of ``upload_path`` is optional.

        Returns:
            The stored path, prefixed with "/"

        Raises:
            InvalidInputError: If ``content`` is missing or empty
            BucketNotSelectedError: If no bucket is selected
            BackendError: If the backend fails or returns no result
        """
        if content is None:
            raise InvalidInputError("File content is required")
        data = content.read() if hasattr(content, "read") else bytes(content)
        if not data:
            raise InvalidInputError("File content is empty", metadata={"path": upload_path})
        bucket = self._require_bucket()

        key = to_backend_key(upload_path)
        stored = await self._backend.upload_object(
            bucket,
            key,
            data,
            content_type=mime_type,
            upsert=True,
        )
        if not stored:
            raise BackendError(
                "Upload returned no result",
                metadata={"bucket": bucket, "key": key},
            )
        return to_user_path(stored)

    async def list_all_files(self, path: str) -> list[str]:
        """List every file under ``path``, descending into sub-folders.

        ``path`` may be given with or without its leading "/"; the result
        uses backend keys (no leading "/"). Folders are walked depth-first
        in the order the backend lists their children. A key with no
        children is returned as a file, so listing a plain object returns
        the object itself. An empty bucket root yields no files.

        Raises:
            BucketNotSelectedError: If no bucket is selected
            BackendError: If any listing fails; nothing partial is returned
        """
        bucket = self._require_bucket()
        files: list[str] = []
        pending = [to_backend_key(path)]

        while pending:
            key = pending.pop()
            children = await self._backend.list_objects(bucket, key)
            if not children:
                # The bucket root is never a leaf
                if key:
                    files.append(key)
                continue
            # Reversed so the first child is popped first
            pending.extend(join_key(key, child.name) for child in reversed(children))

        logger.debug(
            "Listed files",
            extra={"bucket": bucket, "path": path, "count": len(files)},
        )
        return files

    async def delete(self, paths: Sequence[str]) -> list[str]:
        """Delete files and folders, expanding folders recursively.

        Every path is expanded concurrently with ``list_all_files`` and the
        results are removed in a single batched backend call. Overlapping
        paths are not deduplicated.

        Returns:
            Paths the backend reported as removed, each prefixed with "/"

        Raises:
            BucketNotSelectedError: If no bucket is selected
            InvalidPathError: If any path does not start with "/"
            BackendError: If any listing or the removal fails
        """
        bucket = self._require_bucket()
        validate_user_paths(paths)
        if not paths:
            return []

        expanded = await asyncio.gather(*(self.list_all_files(path) for path in paths))
        keys = [key for files in expanded for key in files]
        if not keys:
            return []

        removed = await self._backend.remove_objects(bucket, keys)
        logger.info(
            "Deleted objects",
            extra={"bucket": bucket, "requested": len(keys), "count": len(removed)},
        )
        return [to_user_path(item.name) for item in removed]
