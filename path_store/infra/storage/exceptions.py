"""Storage-specific exceptions.

Every error raised by ``PathStore`` or a storage backend is a
``StorageError``. The ``code`` attribute names the error kind and
``metadata`` carries an open set of diagnostic fields; for backend failures
those are the fields the remote service reported, passed through untouched.

Example:
    ```python
    from path_store.infra.storage.exceptions import BackendError, map_boto_error

    try:
        await client.copy_object(...)
    except ClientError as e:
        raise map_boto_error(e, operation="copy", key=key) from e
    except BackendError as e:
        logger.error(f"Copy failed: {e.detail}", extra=e.metadata)
    ```
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any

from path_store.core.exceptions import AppException

if TYPE_CHECKING:
    from botocore.exceptions import ClientError


class StorageErrorCode(StrEnum):
    """Kinds of storage errors."""

    BUCKET_NOT_SELECTED = "BUCKET_NOT_SELECTED"
    INVALID_PATH = "INVALID_PATH"
    INVALID_INPUT = "INVALID_INPUT"
    BACKEND_ERROR = "BACKEND_ERROR"
    NOT_CONFIGURED = "STORAGE_NOT_CONFIGURED"


class StorageError(AppException):
    """Base exception for all storage-related errors.

    Attributes:
        code: Error kind for programmatic handling.
        message: Human-readable error message.
        metadata: Additional context-specific information about the error.
    """

    def __init__(
        self,
        message: str,
        code: StorageErrorCode,
        status_code: int = 500,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Initialize storage error.

        Args:
            message: Human-readable error message.
            code: Error kind.
            status_code: HTTP-style status code (default: 500).
            metadata: Additional error context.
        """
        self.code = code
        self.message = message
        super().__init__(
            status_code=status_code,
            detail=message,
            type=code.lower().replace("_", "-"),
            extra=metadata or {},
        )

    @property
    def metadata(self) -> dict[str, Any]:
        return self.extra


class BucketNotSelectedError(StorageError):
    """Raised before any backend call when no bucket has been selected."""

    def __init__(
        self,
        message: str = "Bucket name is not set",
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=StorageErrorCode.BUCKET_NOT_SELECTED,
            status_code=412,
            metadata=metadata,
        )


class InvalidPathError(StorageError):
    """Raised when a user-facing path does not start with "/"."""

    def __init__(
        self,
        message: str = "Path must start with /",
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=StorageErrorCode.INVALID_PATH,
            status_code=400,
            metadata=metadata,
        )


class InvalidInputError(StorageError):
    """Raised for missing or malformed arguments, such as empty upload content."""

    def __init__(
        self,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=StorageErrorCode.INVALID_INPUT,
            status_code=400,
            metadata=metadata,
        )


class BackendError(StorageError):
    """Wraps a failure reported by the remote storage backend.

    ``metadata`` preserves whatever fields the backend supplied (error code,
    message, request id, raw error payload) for diagnostics.

    Example:
        ```python
        raise BackendError(
            "Copy failed: The specified key does not exist.",
            status_code=404,
            metadata={"aws_error_code": "NoSuchKey", "key": "test.txt"},
        )
        ```
    """

    def __init__(
        self,
        message: str,
        status_code: int = 502,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=StorageErrorCode.BACKEND_ERROR,
            status_code=status_code,
            metadata=metadata,
        )

    @property
    def backend_code(self) -> str | None:
        """Error code reported by the backend, if any."""
        return self.metadata.get("aws_error_code")


class StorageNotConfiguredError(StorageError):
    """Raised when storage is disabled or its backend cannot be built."""

    def __init__(
        self,
        message: str = "Storage is not configured or enabled",
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=StorageErrorCode.NOT_CONFIGURED,
            status_code=503,
            metadata=metadata,
        )


# Backend error codes grouped by the status they surface as.
_STATUS_BY_AWS_CODE: dict[str, int] = {
    **dict.fromkeys({"NoSuchKey", "NoSuchBucket", "NotFound", "404"}, 404),
    **dict.fromkeys(
        {
            "AccessDenied",
            "ExpiredToken",
            "InvalidAccessKeyId",
            "SignatureDoesNotMatch",
            "InvalidToken",
        },
        403,
    ),
    **dict.fromkeys(
        {
            "BucketAlreadyExists",
            "BucketAlreadyOwnedByYou",
            "BucketNotEmpty",
            "OperationAborted",
        },
        409,
    ),
    **dict.fromkeys({"PreconditionFailed"}, 412),
    **dict.fromkeys({"RequestTimeout", "SlowDown"}, 504),
    **dict.fromkeys(
        {
            "InvalidRequest",
            "InvalidArgument",
            "MalformedXML",
            "MalformedPolicy",
            "InvalidBucketName",
            "KeyTooLongError",
            "EntityTooLarge",
        },
        400,
    ),
}


def map_boto_error(
    error: ClientError,
    operation: str,
    key: str | None = None,
    bucket: str | None = None,
) -> BackendError:
    """Map a botocore ClientError to a ``BackendError``.

    Args:
        error: The botocore ClientError to map.
        operation: The storage operation being performed (e.g., "copy", "list").
        key: Optional object key or prefix being operated on.
        bucket: Optional bucket name being operated on.

    Returns:
        BackendError carrying the backend's code, message, request id and the
        raw error fields.
    """
    error_fields = dict(error.response.get("Error", {}))
    error_code = error_fields.get("Code", "Unknown")
    error_message = error_fields.get("Message", str(error))

    metadata: dict[str, Any] = {
        "operation": operation,
        "aws_error_code": error_code,
        "aws_error_message": error_message,
        "request_id": error.response.get("ResponseMetadata", {}).get("RequestId"),
        "backend_error": error_fields,
    }
    if key is not None:
        metadata["key"] = key
    if bucket is not None:
        metadata["bucket"] = bucket
    elif "BucketName" in error_fields:
        metadata["bucket"] = error_fields["BucketName"]

    return BackendError(
        message=f"{operation.capitalize()} failed: {error_message}",
        status_code=_STATUS_BY_AWS_CODE.get(error_code, 502),
        metadata=metadata,
    )
