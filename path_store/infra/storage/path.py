"""Conversions between user-facing paths and backend keys.

User-facing paths always begin with "/" (``/dir/file.txt``); backend keys are
the same string without that leading slash (``dir/file.txt``). Nothing else
is normalized: trailing slashes and repeated slashes are passed through as
given.

Example:
    ```python
    to_backend_key("/dir/file.txt")   # "dir/file.txt"
    to_user_path("dir/file.txt")      # "/dir/file.txt"
    require_user_path("dir")          # raises InvalidPathError
    ```
"""

from __future__ import annotations

from collections.abc import Iterable

from .exceptions import InvalidPathError

PATH_SEPARATOR = "/"


def is_user_path(path: str) -> bool:
    return path.startswith(PATH_SEPARATOR)


def require_user_path(path: str) -> str:
    """Validate a user-facing path and return its backend key.

    Raises:
        InvalidPathError: If the path does not start with "/".
    """
    if not is_user_path(path):
        raise InvalidPathError(metadata={"path": path})
    return path[1:]


def validate_user_paths(paths: Iterable[str]) -> None:
    """Raise InvalidPathError for the first path lacking the leading "/"."""
    for path in paths:
        if not is_user_path(path):
            raise InvalidPathError(metadata={"path": path})


def to_backend_key(path: str) -> str:
    """Strip one leading "/" if present."""
    return path[1:] if is_user_path(path) else path


def to_user_path(key: str) -> str:
    return PATH_SEPARATOR + key


def join_key(parent: str, child: str) -> str:
    """Join a child name onto a backend key; the bucket root has no prefix."""
    return f"{parent}{PATH_SEPARATOR}{child}" if parent else child
