"""Unit tests for the S3 backend with a mocked aioboto3 client."""

import json
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import urlparse

from botocore.exceptions import ClientError, EndpointConnectionError
import pytest

from path_store.core.settings.storage import StorageSettings
from path_store.infra.storage.backends import BucketOptions, ObjectEntry, RemovedObject
from path_store.infra.storage.backends.s3.backend import (
    TAG_ALLOWED_MIME_TYPES,
    TAG_FILE_SIZE_LIMIT,
    S3Backend,
)
from path_store.infra.storage.exceptions import (
    BackendError,
    InvalidInputError,
    StorageNotConfiguredError,
)


def _client_error(code: str, operation: str = "Operation") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


def _settings(**overrides) -> StorageSettings:
    values = {
        "enabled": True,
        "access_key": "test-key",
        "secret_key": "test-secret",
    }
    values.update(overrides)
    return StorageSettings(**values)


@pytest.fixture
def s3_client():
    """Mocked aioboto3 S3 client with no upload limits on any bucket."""
    client = AsyncMock()
    client.get_bucket_tagging.side_effect = _client_error("NoSuchTagSet")
    return client


@pytest.fixture
def s3_backend(s3_client):
    """S3Backend with the mocked client already attached."""
    backend = S3Backend(_settings())
    backend._client = s3_client
    return backend


class TestLifecycle:
    """Test client startup and shutdown."""

    def test_requires_enabled_storage(self):
        with pytest.raises(StorageNotConfiguredError):
            S3Backend(StorageSettings(enabled=False))

    @pytest.mark.asyncio
    async def test_operations_require_startup(self):
        backend = S3Backend(_settings())

        with pytest.raises(StorageNotConfiguredError, match="startup"):
            await backend.list_objects("bucket0", "")

    @pytest.mark.asyncio
    async def test_context_manager_opens_and_closes_client(self):
        client = AsyncMock()
        client_context = MagicMock()
        client_context.__aenter__ = AsyncMock(return_value=client)
        client_context.__aexit__ = AsyncMock(return_value=None)

        backend = S3Backend(_settings(endpoint="http://localhost:9000"))
        backend._session = MagicMock()
        backend._session.client.return_value = client_context

        async with backend:
            assert backend.is_ready
            assert backend._client is client

        assert not backend.is_ready
        client_context.__aexit__.assert_awaited_once()
        kwargs = backend._session.client.call_args.kwargs
        assert kwargs["endpoint_url"] == "http://localhost:9000"
        assert kwargs["aws_access_key_id"] == "test-key"
        assert kwargs["config"].retries == {"max_attempts": 3, "mode": "adaptive"}

    @pytest.mark.asyncio
    async def test_startup_failure_is_not_configured(self):
        backend = S3Backend(_settings())
        backend._session = MagicMock()
        backend._session.client.side_effect = ValueError("Invalid endpoint")

        with pytest.raises(StorageNotConfiguredError, match="Invalid endpoint"):
            await backend.startup()

        assert not backend.is_ready


class TestPublicUrl:
    """Test public URL construction."""

    def test_aws_virtual_hosted_url(self):
        backend = S3Backend(_settings(region="eu-west-1"))
        assert (
            backend.get_public_url("bucket0", "dir/a b.txt")
            == "https://bucket0.s3.eu-west-1.amazonaws.com/dir/a%20b.txt"
        )

    def test_endpoint_path_style_url(self):
        backend = S3Backend(_settings(endpoint="http://localhost:9000/"))
        assert backend.get_public_url("bucket0", "") == "http://localhost:9000/bucket0/"

    def test_public_url_base_wins(self):
        backend = S3Backend(
            _settings(endpoint="http://localhost:9000", public_url_base="https://cdn.test")
        )
        assert backend.get_public_url("bucket0", "a.txt") == "https://cdn.test/bucket0/a.txt"

    @pytest.mark.parametrize(
        ("overrides", "netloc"),
        [
            ({}, "bucket0.s3.us-east-1.amazonaws.com"),
            ({"endpoint": "http://localhost:9000"}, "localhost:9000"),
            ({"public_url_base": "https://cdn.test"}, "cdn.test"),
        ],
    )
    def test_bucket_prefix_is_absolute_url(self, overrides, netloc):
        """The empty-key URL used as the bucket prefix parses as an absolute URL."""
        prefix = S3Backend(_settings(**overrides)).get_public_url("bucket0", "")
        parsed = urlparse(prefix)

        assert parsed.scheme in {"http", "https"}
        assert parsed.netloc == netloc
        assert parsed.path.endswith("/")


class TestListObjects:
    """Test delimiter listing."""

    @pytest.mark.asyncio
    async def test_merges_folders_and_objects(self, s3_backend, s3_client):
        s3_client.list_objects_v2.return_value = {
            "CommonPrefixes": [{"Prefix": "dir/sub/"}],
            "Contents": [{"Key": "dir/b.txt"}, {"Key": "dir/"}, {"Key": "dir/a.txt"}],
            "IsTruncated": False,
        }

        entries = await s3_backend.list_objects("bucket0", "dir")

        assert entries == [ObjectEntry("a.txt"), ObjectEntry("b.txt"), ObjectEntry("sub")]
        kwargs = s3_client.list_objects_v2.call_args.kwargs
        assert kwargs["Prefix"] == "dir/"
        assert kwargs["Delimiter"] == "/"

    @pytest.mark.asyncio
    async def test_root_uses_empty_prefix(self, s3_backend, s3_client):
        s3_client.list_objects_v2.return_value = {"Contents": [{"Key": "a.txt"}]}

        assert await s3_backend.list_objects("bucket0", "") == [ObjectEntry("a.txt")]
        assert s3_client.list_objects_v2.call_args.kwargs["Prefix"] == ""

    @pytest.mark.asyncio
    async def test_follows_continuation_tokens(self, s3_backend, s3_client):
        s3_client.list_objects_v2.side_effect = [
            {"Contents": [{"Key": "d/1"}], "IsTruncated": True, "NextContinuationToken": "t1"},
            {"Contents": [{"Key": "d/2"}], "IsTruncated": False},
        ]

        entries = await s3_backend.list_objects("bucket0", "d")

        assert entries == [ObjectEntry("1"), ObjectEntry("2")]
        assert s3_client.list_objects_v2.call_args.kwargs["ContinuationToken"] == "t1"

    @pytest.mark.asyncio
    async def test_file_key_has_no_children(self, s3_backend, s3_client):
        s3_client.list_objects_v2.return_value = {"KeyCount": 0, "IsTruncated": False}
        assert await s3_backend.list_objects("bucket0", "dir/a.txt") == []

    @pytest.mark.asyncio
    async def test_client_error_is_mapped(self, s3_backend, s3_client):
        s3_client.list_objects_v2.side_effect = _client_error("NoSuchBucket")

        with pytest.raises(BackendError) as exc_info:
            await s3_backend.list_objects("bucket0", "dir")

        assert exc_info.value.status_code == 404
        assert exc_info.value.metadata["key"] == "dir"

    @pytest.mark.asyncio
    async def test_connection_error_is_backend_error(self, s3_backend, s3_client):
        s3_client.list_objects_v2.side_effect = EndpointConnectionError(
            endpoint_url="http://localhost:9000"
        )

        with pytest.raises(BackendError) as exc_info:
            await s3_backend.list_objects("bucket0", "dir")

        assert exc_info.value.metadata["error_type"] == "EndpointConnectionError"


class TestObjectOperations:
    """Test copy, remove and upload."""

    @pytest.mark.asyncio
    async def test_copy_object(self, s3_backend, s3_client):
        result = await s3_backend.copy_object("bucket0", "test.txt", "dir/test2.txt")

        assert result == "dir/test2.txt"
        s3_client.copy_object.assert_awaited_once_with(
            CopySource={"Bucket": "bucket0", "Key": "test.txt"},
            Bucket="bucket0",
            Key="dir/test2.txt",
        )

    @pytest.mark.asyncio
    async def test_copy_missing_source(self, s3_backend, s3_client):
        s3_client.copy_object.side_effect = _client_error("NoSuchKey", "CopyObject")

        with pytest.raises(BackendError) as exc_info:
            await s3_backend.copy_object("bucket0", "missing.txt", "b.txt")

        assert exc_info.value.backend_code == "NoSuchKey"

    @pytest.mark.asyncio
    async def test_remove_objects_batches_by_thousand(self, s3_backend, s3_client):
        keys = [f"k{i}" for i in range(1500)]
        s3_client.delete_objects.side_effect = lambda Bucket, Delete: {
            "Deleted": [{"Key": obj["Key"]} for obj in Delete["Objects"]]
        }

        removed = await s3_backend.remove_objects("bucket0", keys)

        assert len(removed) == 1500
        assert removed[0] == RemovedObject("k0")
        batches = [call.kwargs["Delete"]["Objects"] for call in s3_client.delete_objects.call_args_list]
        assert [len(batch) for batch in batches] == [1000, 500]

    @pytest.mark.asyncio
    async def test_remove_objects_reports_per_key_errors(self, s3_backend, s3_client):
        errors = [{"Key": "a.txt", "Code": "AccessDenied", "Message": "Access Denied"}]
        s3_client.delete_objects.return_value = {"Deleted": [], "Errors": errors}

        with pytest.raises(BackendError) as exc_info:
            await s3_backend.remove_objects("bucket0", ["a.txt"])

        assert exc_info.value.metadata["errors"] == errors

    @pytest.mark.asyncio
    async def test_upload_without_limits(self, s3_backend, s3_client):
        result = await s3_backend.upload_object(
            "bucket0", "a.txt", b"hello", content_type="text/plain", upsert=True
        )

        assert result == "a.txt"
        s3_client.put_object.assert_awaited_once_with(
            Bucket="bucket0", Key="a.txt", Body=b"hello", ContentType="text/plain"
        )

    @pytest.mark.asyncio
    async def test_upload_without_upsert_is_conditional(self, s3_backend, s3_client):
        await s3_backend.upload_object(
            "bucket0", "a.txt", b"hello", content_type="text/plain", upsert=False
        )
        assert s3_client.put_object.call_args.kwargs["IfNoneMatch"] == "*"

    @pytest.mark.asyncio
    async def test_upload_over_size_limit(self, s3_backend, s3_client):
        s3_client.get_bucket_tagging.side_effect = None
        s3_client.get_bucket_tagging.return_value = {
            "TagSet": [{"Key": TAG_FILE_SIZE_LIMIT, "Value": "4"}]
        }

        with pytest.raises(BackendError) as exc_info:
            await s3_backend.upload_object(
                "bucket0", "a.txt", b"hello", content_type="text/plain", upsert=True
            )

        assert exc_info.value.status_code == 413
        s3_client.put_object.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("content_type", "allowed"),
        [
            ("image/png", True),
            ("image/jpeg; charset=binary", True),
            ("application/json", True),
            ("text/plain;charset=UTF-8", False),
        ],
    )
    async def test_upload_mime_allow_list(self, s3_backend, s3_client, content_type, allowed):
        s3_client.get_bucket_tagging.side_effect = None
        s3_client.get_bucket_tagging.return_value = {
            "TagSet": [{"Key": TAG_ALLOWED_MIME_TYPES, "Value": "image/* application/json"}]
        }

        if allowed:
            await s3_backend.upload_object(
                "bucket0", "a", b"x", content_type=content_type, upsert=True
            )
            s3_client.put_object.assert_awaited_once()
        else:
            with pytest.raises(BackendError) as exc_info:
                await s3_backend.upload_object(
                    "bucket0", "a", b"x", content_type=content_type, upsert=True
                )
            assert exc_info.value.status_code == 415
            s3_client.put_object.assert_not_awaited()


class TestBucketManagement:
    """Test bucket create, update, empty and delete."""

    @pytest.mark.asyncio
    async def test_create_private_bucket(self, s3_backend, s3_client):
        s3_client.delete_bucket_policy.side_effect = _client_error("NoSuchBucketPolicy")

        await s3_backend.create_bucket("bucket0", BucketOptions())

        s3_client.create_bucket.assert_awaited_once_with(Bucket="bucket0")
        s3_client.put_bucket_policy.assert_not_awaited()
        s3_client.delete_bucket_tagging.assert_awaited_once_with(Bucket="bucket0")

    @pytest.mark.asyncio
    async def test_create_outside_us_east_1_sets_location(self, s3_client):
        backend = S3Backend(_settings(region="eu-west-1"))
        backend._client = s3_client

        await backend.create_bucket("bucket0", BucketOptions())

        assert s3_client.create_bucket.call_args.kwargs["CreateBucketConfiguration"] == {
            "LocationConstraint": "eu-west-1"
        }

    @pytest.mark.asyncio
    async def test_create_existing_bucket_fails(self, s3_backend, s3_client):
        s3_client.create_bucket.side_effect = _client_error("BucketAlreadyOwnedByYou")

        with pytest.raises(BackendError) as exc_info:
            await s3_backend.create_bucket("bucket0", BucketOptions())

        assert exc_info.value.status_code == 409
        s3_client.put_bucket_tagging.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_float_size_limit_is_tagged_in_bytes(self, s3_backend, s3_client):
        await s3_backend.create_bucket("bucket0", BucketOptions(file_size_limit=1.5e6))

        tags = s3_client.put_bucket_tagging.call_args.kwargs["Tagging"]["TagSet"]
        assert tags == [{"Key": TAG_FILE_SIZE_LIMIT, "Value": "1500000"}]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [-1.0, float("nan"), float("inf")])
    async def test_unusable_float_limit_is_invalid_input(self, s3_backend, s3_client, limit):
        with pytest.raises(InvalidInputError):
            await s3_backend.create_bucket("bucket0", BucketOptions(file_size_limit=limit))

        s3_client.create_bucket.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_size_limit_rejected_before_create(self, s3_backend, s3_client):
        with pytest.raises(InvalidInputError):
            await s3_backend.create_bucket("bucket0", BucketOptions(file_size_limit="huge"))

        s3_client.create_bucket.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_public_bucket_on_aws(self, s3_backend, s3_client):
        options = BucketOptions(
            public=True, file_size_limit="1KB", allowed_mime_types=["image/*", "text/plain"]
        )

        await s3_backend.update_bucket("bucket0", options)

        s3_client.delete_public_access_block.assert_awaited_once_with(Bucket="bucket0")
        policy = json.loads(s3_client.put_bucket_policy.call_args.kwargs["Policy"])
        assert policy["Statement"][0]["Resource"] == ["arn:aws:s3:::bucket0/*"]
        tags = s3_client.put_bucket_tagging.call_args.kwargs["Tagging"]["TagSet"]
        assert {"Key": TAG_FILE_SIZE_LIMIT, "Value": "1024"} in tags
        assert {"Key": TAG_ALLOWED_MIME_TYPES, "Value": "image/* text/plain"} in tags

    @pytest.mark.asyncio
    async def test_public_bucket_on_minio_keeps_access_block(self, s3_client):
        backend = S3Backend(_settings(endpoint="http://localhost:9000"))
        backend._client = s3_client

        await backend.update_bucket("bucket0", BucketOptions(public=True))

        s3_client.delete_public_access_block.assert_not_awaited()
        s3_client.put_bucket_policy.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_policy_failure_is_mapped(self, s3_backend, s3_client):
        s3_client.delete_bucket_policy.side_effect = _client_error("AccessDenied")

        with pytest.raises(BackendError) as exc_info:
            await s3_backend.update_bucket("bucket0", BucketOptions())

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_empty_bucket_removes_every_page(self, s3_backend, s3_client):
        s3_client.list_objects_v2.side_effect = [
            {"Contents": [{"Key": "a"}, {"Key": "b"}], "IsTruncated": True, "NextContinuationToken": "t"},
            {"Contents": [{"Key": "c"}], "IsTruncated": False},
        ]
        s3_client.delete_objects.side_effect = lambda Bucket, Delete: {
            "Deleted": [{"Key": obj["Key"]} for obj in Delete["Objects"]]
        }

        await s3_backend.empty_bucket("bucket0")

        assert s3_client.delete_objects.await_count == 2
        assert "Delimiter" not in s3_client.list_objects_v2.call_args.kwargs

    @pytest.mark.asyncio
    async def test_delete_bucket(self, s3_backend, s3_client):
        await s3_backend.delete_bucket("bucket0")
        s3_client.delete_bucket.assert_awaited_once_with(Bucket="bucket0")
