"""Run async storage actions from synchronous click commands."""

import asyncio
from collections.abc import Awaitable, Callable
from functools import wraps
import sys
from typing import Any, TypeVar

import click

from path_store.cli.utils.formatters import storage_failure
from path_store.infra.storage import StorageError

T = TypeVar("T")


def storage_action(action: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., T]]:
    """Decorator that runs an async command body in a fresh event loop.

    A ``StorageError`` escaping the body is reported as "<action> failed"
    together with its metadata, and the command exits with status 1.
    Ctrl-C aborts the command the way click does.

    Usage:
        @storage.command(name="ls")
        @storage_action("Listing")
        async def list_files(path):
            ...
    """

    def decorator(f: Callable[..., Awaitable[T]]) -> Callable[..., T]:
        @wraps(f)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return asyncio.run(f(*args, **kwargs))
            except StorageError as e:
                storage_failure(action, e)
                sys.exit(1)
            except KeyboardInterrupt:
                raise click.Abort() from None

        return wrapper

    return decorator
