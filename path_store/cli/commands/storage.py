"""Storage commands for "/"-rooted object paths.

This module provides CLI commands over PathStore:
- Configuration information
- Recursive listing and deletion
- Upload and copy
- Bucket provisioning and teardown
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import mimetypes
from pathlib import Path
import sys

import click

from path_store.cli.utils import error, info, path_list, section, storage_action, success, warning
from path_store.core.settings import get_storage_settings
from path_store.infra.storage import (
    DEFAULT_MIME_TYPE,
    BucketOptions,
    PathStore,
    create_storage_backend,
)


@asynccontextmanager
async def _open_store(bucket: str | None) -> AsyncIterator[PathStore]:
    """Start the configured backend and yield a store with the bucket selected."""
    settings = get_storage_settings()
    bucket = bucket or settings.bucket
    if not bucket:
        error("No bucket given. Pass --bucket or set STORAGE_BUCKET.")
        sys.exit(1)

    async with create_storage_backend(settings) as backend:
        store = PathStore(backend)
        store.set_bucket_name(bucket)
        yield store


@click.group(name="storage")
@click.option(
    "--bucket",
    envvar="STORAGE_BUCKET",
    default=None,
    help="Bucket to operate on (default: STORAGE_BUCKET)",
)
@click.pass_context
def storage(ctx: click.Context, bucket: str | None) -> None:
    """Object storage commands.

    Paths are "/"-rooted: /dir/file.txt refers to key dir/file.txt.
    """
    ctx.ensure_object(dict)
    ctx.obj["bucket"] = bucket


@storage.command(name="info")
@click.pass_context
def info_cmd(ctx: click.Context) -> None:
    """Show storage configuration."""
    settings = get_storage_settings()

    section(
        "Storage Configuration",
        {
            "Enabled": settings.enabled,
            "Backend": settings.backend.value,
            "Endpoint": settings.endpoint or "AWS S3 (default)",
            "Region": settings.region,
            "Bucket": ctx.obj.get("bucket") or settings.bucket or "(not set)",
            "Use SSL": settings.use_ssl,
            "Max Retries": f"{settings.max_retries} ({settings.retry_mode})",
        },
    )

    if not settings.is_configured:
        warning("Storage is disabled. Set STORAGE_ENABLED=true to enable it.")


@storage.command(name="ls")
@click.argument("path", default="/")
@click.pass_context
@storage_action("Listing")
async def list_files(ctx: click.Context, path: str) -> None:
    """List every file under PATH, recursively.

    Examples:
        path-store storage ls /dir
        path-store storage --bucket bucket0 ls
    """
    async with _open_store(ctx.obj.get("bucket")) as store:
        files = await store.list_all_files(path)

    if not files:
        warning(f"No files found under {path}")
        return
    count = path_list(files, prefix="/")
    success(f"{count} file(s)")


@storage.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("path")
@click.option(
    "--mime-type",
    default=None,
    help="Content type (default: guessed from FILE, else text/plain;charset=UTF-8)",
)
@click.pass_context
@storage_action("Upload")
async def upload(ctx: click.Context, file: Path, path: str, mime_type: str | None) -> None:
    """Upload FILE to PATH, overwriting any existing object."""
    content_type = mime_type or mimetypes.guess_type(file.name)[0] or DEFAULT_MIME_TYPE
    async with _open_store(ctx.obj.get("bucket")) as store:
        stored = await store.upload(file.read_bytes(), path, content_type)
    success(f"Uploaded {file} to {stored}")


@storage.command(name="cp")
@click.argument("old_path")
@click.argument("new_path")
@click.pass_context
@storage_action("Copy")
async def copy(ctx: click.Context, old_path: str, new_path: str) -> None:
    """Copy the object at OLD_PATH to NEW_PATH."""
    async with _open_store(ctx.obj.get("bucket")) as store:
        copied = await store.copy(old_path, new_path)
    success(f"Copied {old_path} to {copied}")


@storage.command(name="rm")
@click.argument("paths", nargs=-1, required=True)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
@storage_action("Delete")
async def remove(ctx: click.Context, paths: tuple[str, ...], yes: bool) -> None:
    """Delete PATHS; folders are deleted with everything under them."""
    if not yes:
        click.confirm(f"Delete {', '.join(paths)} recursively?", abort=True)

    async with _open_store(ctx.obj.get("bucket")) as store:
        removed = await store.delete(list(paths))
    count = path_list(removed)
    success(f"Deleted {count} file(s)")


@storage.command(name="bucket-init")
@click.option("--public", is_flag=True, help="Make objects publicly readable")
@click.option(
    "--file-size-limit",
    default=None,
    help="Maximum object size, in bytes or with a unit (e.g. 50MB)",
)
@click.option(
    "--allowed-mime-type",
    "allowed_mime_types",
    multiple=True,
    help="Allowed upload content type (repeatable, supports type/*)",
)
@click.pass_context
@storage_action("Bucket initialization")
async def bucket_init(
    ctx: click.Context,
    public: bool,
    file_size_limit: str | None,
    allowed_mime_types: tuple[str, ...],
) -> None:
    """Create the bucket, or update its options if it already exists."""
    limit: int | str | None = file_size_limit
    if file_size_limit is not None and file_size_limit.isdigit():
        limit = int(file_size_limit)

    options = BucketOptions(
        public=public,
        file_size_limit=limit,
        allowed_mime_types=list(allowed_mime_types) or None,
    )
    async with _open_store(ctx.obj.get("bucket")) as store:
        await store.init_bucket(options)

    success(f"Bucket {store.get_bucket_name()} ready")
    if public:
        info(f"Public URL prefix: {store.get_bucket_url_prefix()}")


@storage.command(name="bucket-destroy")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
@storage_action("Bucket deletion")
async def bucket_destroy(ctx: click.Context, yes: bool) -> None:
    """Empty the bucket and delete it."""
    if not yes:
        click.confirm("Delete the bucket and everything in it?", abort=True)

    async with _open_store(ctx.obj.get("bucket")) as store:
        await store.destroy_bucket()
    success(f"Bucket {store.get_bucket_name()} destroyed")
