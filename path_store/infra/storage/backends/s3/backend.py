"""S3-compatible storage backend implementation.

Implements the RemoteObjectBackend protocol for AWS S3, MinIO, and other
S3-compatible services using aioboto3.

S3 has no native notion of per-bucket upload limits, so the size limit and
MIME allow-list from ``BucketOptions`` are stored as bucket tags and
enforced by ``upload_object`` before the object is written.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
import json
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import aioboto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from path_store.infra.storage.exceptions import (
    BackendError,
    InvalidInputError,
    StorageNotConfiguredError,
    map_boto_error,
)

from ..protocol import BucketOptions, ObjectEntry, RemovedObject

if TYPE_CHECKING:
    from types import TracebackType

    from path_store.core.settings.storage import StorageSettings

logger = logging.getLogger(__name__)

# DeleteObjects accepts at most 1000 keys per request
DELETE_BATCH_SIZE = 1000
LIST_PAGE_SIZE = 1000

TAG_FILE_SIZE_LIMIT = "path-store:file-size-limit"
TAG_ALLOWED_MIME_TYPES = "path-store:allowed-mime-types"
_MISSING_TAGS_CODES = {"NoSuchTagSet", "NoSuchTagSetError"}
_MISSING_POLICY_CODES = {"NoSuchBucketPolicy"}


def _public_read_policy(bucket: str) -> str:
    return json.dumps(
        {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Sid": "PublicRead",
                    "Effect": "Allow",
                    "Principal": "*",
                    "Action": ["s3:GetObject"],
                    "Resource": [f"arn:aws:s3:::{bucket}/*"],
                }
            ],
        }
    )


def _mime_type_allowed(content_type: str, allowed: list[str]) -> bool:
    """Match a content type against an allow-list supporting ``type/*`` wildcards."""
    base = content_type.split(";", 1)[0].strip().lower()
    for pattern in allowed:
        pattern = pattern.strip().lower()
        if pattern == base:
            return True
        if pattern.endswith("/*") and base.startswith(pattern[:-1]):
            return True
    return False


class S3Backend:
    """S3-compatible storage backend.

    Attributes:
        settings: Storage configuration settings
        backend_name: Name identifier for this backend ("s3")
        is_ready: Whether backend is initialized

    Example:
        async with S3Backend(settings) as backend:
            await backend.upload_object(
                "bucket0", "test.txt", b"hello",
                content_type="text/plain", upsert=True,
            )
    """

    def __init__(self, settings: StorageSettings) -> None:
        """Initialize S3 backend.

        Args:
            settings: Storage settings with S3 configuration

        Raises:
            StorageNotConfiguredError: If storage is not enabled
        """
        if not settings.is_configured:
            msg = "S3 backend not configured. Set STORAGE_ENABLED=true and provide credentials."
            raise StorageNotConfiguredError(msg)

        self.settings = settings
        self._session = aioboto3.Session()
        self._client: Any = None
        self._client_context: Any = None

    @property
    def backend_name(self) -> str:
        """Backend name identifier."""
        return "s3"

    @property
    def is_ready(self) -> bool:
        """Check if backend is initialized and ready."""
        return self._client is not None

    # ========================================================================
    # Lifecycle Management
    # ========================================================================

    async def startup(self) -> None:
        """Initialize S3 client and connection pool."""
        if self._client is not None:
            logger.debug("S3 backend already initialized")
            return

        logger.info(
            "Initializing S3 backend",
            extra={"endpoint": self.settings.endpoint, "region": self.settings.region},
        )

        # Retries and timeouts are delegated to botocore
        boto_config = Config(
            retries={
                "max_attempts": self.settings.max_retries,
                "mode": self.settings.retry_mode,
            },
            connect_timeout=self.settings.timeout,
            read_timeout=self.settings.timeout,
            max_pool_connections=self.settings.max_pool_connections,
        )

        try:
            self._client_context = self._session.client(
                "s3",
                **self.settings.get_boto3_config(),
                config=boto_config,
            )
            self._client = await self._client_context.__aenter__()
        except (BotoCoreError, ValueError) as e:
            self._client_context = None
            logger.exception("Failed to initialize S3 backend", extra={"error": str(e)})
            raise StorageNotConfiguredError(
                f"Failed to initialize S3 backend: {e}",
                metadata={"endpoint": self.settings.endpoint},
            ) from e

        logger.info("S3 backend initialized successfully")

    async def shutdown(self) -> None:
        """Shutdown S3 client gracefully."""
        if self._client_context is None:
            logger.debug("S3 backend not initialized, nothing to shutdown")
            return

        logger.info("Shutting down S3 backend")
        try:
            await self._client_context.__aexit__(None, None, None)
        finally:
            self._client = None
            self._client_context = None

    async def __aenter__(self) -> S3Backend:
        await self.startup()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.shutdown()

    def _ensure_client(self) -> Any:
        """Return the initialized client.

        Raises:
            StorageNotConfiguredError: If client not initialized
        """
        if self._client is None:
            msg = "S3 backend not initialized. Call startup() first."
            raise StorageNotConfiguredError(msg)
        return self._client

    @contextmanager
    def _backend_errors(
        self,
        operation: str,
        bucket: str,
        key: str | None = None,
    ) -> Iterator[None]:
        """Translate botocore failures raised inside the block into BackendError."""
        try:
            yield
        except ClientError as e:
            logger.exception(
                f"S3 {operation} failed",
                extra={"bucket": bucket, "key": key, "error": str(e)},
            )
            raise map_boto_error(e, operation=operation, key=key, bucket=bucket) from e
        except BotoCoreError as e:
            logger.exception(
                f"S3 {operation} failed",
                extra={"bucket": bucket, "key": key, "error": str(e)},
            )
            raise BackendError(
                f"{operation.capitalize()} failed: {e}",
                metadata={
                    "operation": operation,
                    "bucket": bucket,
                    "key": key,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            ) from e

    # ========================================================================
    # Bucket Management
    # ========================================================================

    @staticmethod
    def _bucket_tags(bucket: str, options: BucketOptions) -> list[dict[str, str]]:
        """Encode upload limits as a bucket TagSet.

        Raises:
            InvalidInputError: If the file size limit cannot be parsed
        """
        try:
            size_limit = options.file_size_limit_bytes
        except ValueError as e:
            raise InvalidInputError(
                str(e),
                metadata={"bucket": bucket, "file_size_limit": options.file_size_limit},
            ) from e

        tags: list[dict[str, str]] = []
        if size_limit is not None:
            tags.append({"Key": TAG_FILE_SIZE_LIMIT, "Value": str(size_limit)})
        if options.allowed_mime_types:
            tags.append(
                {
                    "Key": TAG_ALLOWED_MIME_TYPES,
                    "Value": " ".join(options.allowed_mime_types),
                }
            )
        return tags

    async def create_bucket(self, bucket: str, options: BucketOptions) -> None:
        """Create a bucket and apply its options.

        Raises:
            BackendError: If the bucket already exists or creation fails
        """
        client = self._ensure_client()
        self._bucket_tags(bucket, options)
        kwargs: dict[str, Any] = {"Bucket": bucket}

        # S3 requires CreateBucketConfiguration for regions other than us-east-1
        region = self.settings.region
        if region and region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": region}

        with self._backend_errors("create_bucket", bucket):
            await client.create_bucket(**kwargs)

        logger.info("Bucket created in S3", extra={"bucket": bucket, "region": region})
        await self.update_bucket(bucket, options)

    async def update_bucket(self, bucket: str, options: BucketOptions) -> None:
        """Apply public access and upload limits to an existing bucket."""
        client = self._ensure_client()
        tags = self._bucket_tags(bucket, options)

        with self._backend_errors("update_bucket", bucket):
            if options.public:
                if not self.settings.is_minio:
                    # New AWS buckets block public policies by default
                    await client.delete_public_access_block(Bucket=bucket)
                await client.put_bucket_policy(
                    Bucket=bucket, Policy=_public_read_policy(bucket)
                )
            else:
                await self._delete_bucket_policy(bucket)

            if tags:
                await client.put_bucket_tagging(
                    Bucket=bucket, Tagging={"TagSet": tags}
                )
            else:
                await client.delete_bucket_tagging(Bucket=bucket)

        logger.info(
            "Bucket options applied",
            extra={
                "bucket": bucket,
                "public": options.public,
                "file_size_limit": options.file_size_limit,
                "allowed_mime_types": options.allowed_mime_types,
            },
        )

    async def _delete_bucket_policy(self, bucket: str) -> None:
        try:
            await self._ensure_client().delete_bucket_policy(Bucket=bucket)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") not in _MISSING_POLICY_CODES:
                raise

    async def empty_bucket(self, bucket: str) -> None:
        """Remove every object in the bucket, one page at a time."""
        client = self._ensure_client()
        continuation_token: str | None = None
        removed = 0

        while True:
            kwargs: dict[str, Any] = {"Bucket": bucket, "MaxKeys": LIST_PAGE_SIZE}
            if continuation_token:
                kwargs["ContinuationToken"] = continuation_token

            with self._backend_errors("empty_bucket", bucket):
                response = await client.list_objects_v2(**kwargs)

            keys = [item["Key"] for item in response.get("Contents", [])]
            if keys:
                removed += len(await self.remove_objects(bucket, keys))

            continuation_token = response.get("NextContinuationToken")
            if not response.get("IsTruncated") or continuation_token is None:
                break

        logger.info("Bucket emptied", extra={"bucket": bucket, "count": removed})

    async def delete_bucket(self, bucket: str) -> None:
        client = self._ensure_client()
        with self._backend_errors("delete_bucket", bucket):
            await client.delete_bucket(Bucket=bucket)
        logger.info("Bucket deleted from S3", extra={"bucket": bucket})

    def get_public_url(self, bucket: str, key: str) -> str:
        """Build the public URL of ``key``.

        Uses ``public_url_base`` when configured, a path-style URL for custom
        endpoints (MinIO/LocalStack), and a virtual-hosted AWS URL otherwise.
        """
        if self.settings.public_url_base:
            base = f"{self.settings.public_url_base}/{bucket}"
        elif self.settings.endpoint:
            base = f"{self.settings.endpoint}/{bucket}"
        else:
            base = f"https://{bucket}.s3.{self.settings.region}.amazonaws.com"
        return f"{base}/{quote(key)}"

    async def _get_upload_limits(self, bucket: str) -> tuple[int | None, list[str] | None]:
        client = self._ensure_client()
        try:
            response = await client.get_bucket_tagging(Bucket=bucket)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _MISSING_TAGS_CODES:
                return None, None
            raise map_boto_error(e, operation="get_bucket_tagging", bucket=bucket) from e
        except BotoCoreError as e:
            raise BackendError(
                f"Get_bucket_tagging failed: {e}",
                metadata={"operation": "get_bucket_tagging", "bucket": bucket},
            ) from e

        tags = {tag["Key"]: tag["Value"] for tag in response.get("TagSet", [])}
        size_limit = tags.get(TAG_FILE_SIZE_LIMIT)
        mime_types = tags.get(TAG_ALLOWED_MIME_TYPES)
        return (
            int(size_limit) if size_limit else None,
            mime_types.split() if mime_types else None,
        )

    # ========================================================================
    # Object Operations
    # ========================================================================

    async def list_objects(self, bucket: str, prefix: str) -> list[ObjectEntry]:
        """List the direct children of ``prefix``.

        Sub-folders (common prefixes) and objects are merged and returned in
        name order. Folder marker objects (keys ending in "/") are skipped.
        """
        client = self._ensure_client()
        folder = f"{prefix}/" if prefix else ""
        names: dict[str, None] = {}
        continuation_token: str | None = None

        while True:
            kwargs: dict[str, Any] = {
                "Bucket": bucket,
                "Prefix": folder,
                "Delimiter": "/",
                "MaxKeys": LIST_PAGE_SIZE,
            }
            if continuation_token:
                kwargs["ContinuationToken"] = continuation_token

            with self._backend_errors("list", bucket, key=prefix):
                response = await client.list_objects_v2(**kwargs)

            for common_prefix in response.get("CommonPrefixes", []):
                name = common_prefix["Prefix"][len(folder) :].rstrip("/")
                if name:
                    names[name] = None
            for item in response.get("Contents", []):
                name = item["Key"][len(folder) :]
                if name:
                    names[name] = None

            continuation_token = response.get("NextContinuationToken")
            if not response.get("IsTruncated") or continuation_token is None:
                break

        logger.debug(
            "Listed children from S3",
            extra={"bucket": bucket, "prefix": prefix, "count": len(names)},
        )
        return [ObjectEntry(name=name) for name in sorted(names)]

    async def copy_object(self, bucket: str, old_key: str, new_key: str) -> str | None:
        client = self._ensure_client()
        with self._backend_errors("copy", bucket, key=old_key):
            await client.copy_object(
                CopySource={"Bucket": bucket, "Key": old_key},
                Bucket=bucket,
                Key=new_key,
            )

        logger.info(
            "Object copied in S3",
            extra={"bucket": bucket, "source_key": old_key, "dest_key": new_key},
        )
        return new_key

    async def remove_objects(self, bucket: str, keys: list[str]) -> list[RemovedObject]:
        """Remove objects with DeleteObjects, batching 1000 keys per request.

        Raises:
            BackendError: If the request fails or S3 reports per-key errors
        """
        client = self._ensure_client()
        removed: list[RemovedObject] = []

        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            batch = keys[start : start + DELETE_BATCH_SIZE]
            with self._backend_errors("remove", bucket):
                response = await client.delete_objects(
                    Bucket=bucket,
                    Delete={"Objects": [{"Key": key} for key in batch], "Quiet": False},
                )

            errors = response.get("Errors", [])
            if errors:
                logger.error(
                    "S3 reported errors removing objects",
                    extra={"bucket": bucket, "errors": errors},
                )
                raise BackendError(
                    f"Remove failed for {len(errors)} object(s)",
                    metadata={"operation": "remove", "bucket": bucket, "errors": errors},
                )
            removed.extend(
                RemovedObject(name=item["Key"]) for item in response.get("Deleted", [])
            )

        logger.info(
            "Objects removed from S3",
            extra={"bucket": bucket, "count": len(removed)},
        )
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
        """Upload an object after checking the bucket's upload limits.

        Raises:
            BackendError: If the object violates the bucket's limits, already
                exists (``upsert=False``), or the upload fails
        """
        client = self._ensure_client()
        size_limit, allowed_mime_types = await self._get_upload_limits(bucket)

        if size_limit is not None and len(content) > size_limit:
            raise BackendError(
                "The object exceeded the maximum allowed size",
                status_code=413,
                metadata={
                    "bucket": bucket,
                    "key": key,
                    "size_bytes": len(content),
                    "file_size_limit": size_limit,
                },
            )
        if allowed_mime_types and not _mime_type_allowed(content_type, allowed_mime_types):
            raise BackendError(
                f"mime type {content_type} is not supported",
                status_code=415,
                metadata={
                    "bucket": bucket,
                    "key": key,
                    "content_type": content_type,
                    "allowed_mime_types": allowed_mime_types,
                },
            )

        extra_args: dict[str, Any] = {"ContentType": content_type}
        if not upsert:
            extra_args["IfNoneMatch"] = "*"

        with self._backend_errors("upload", bucket, key=key):
            await client.put_object(Bucket=bucket, Key=key, Body=content, **extra_args)

        logger.info(
            "Object uploaded to S3",
            extra={
                "bucket": bucket,
                "key": key,
                "size_bytes": len(content),
                "content_type": content_type,
                "upsert": upsert,
            },
        )
        return key
