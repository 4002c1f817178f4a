"""Output formatting for storage CLI commands.

Status lines go through ``success``/``error``/``warning``/``info``; errors
are written to stderr so listings on stdout stay pipeable.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import click

if TYPE_CHECKING:
    from path_store.infra.storage import StorageError


def success(message: str) -> None:
    click.secho(f"✓ {message}", fg="green")


def error(message: str) -> None:
    click.secho(f"✗ {message}", fg="red", err=True)


def warning(message: str) -> None:
    click.secho(f"⚠ {message}", fg="yellow")


def info(message: str) -> None:
    click.secho(f"ℹ {message}", fg="blue")


def section(title: str, fields: dict[str, Any]) -> None:
    """Print a titled block of ``name: value`` lines."""
    click.echo("\n" + "=" * 60)
    click.secho(title, fg="cyan", bold=True)
    click.echo("=" * 60)
    click.echo()
    for name, value in fields.items():
        click.echo(f"{name}: {value}")
    click.echo()


def path_list(paths: Iterable[str], *, prefix: str = "") -> int:
    """Echo one path per line and return how many were printed."""
    count = 0
    for path in paths:
        click.echo(f"{prefix}{path}")
        count += 1
    return count


def storage_failure(action: str, exc: StorageError) -> None:
    """Report a failed storage action with the backend's diagnostic fields."""
    error(f"{action} failed: {exc.detail}")
    for name, value in exc.metadata.items():
        click.secho(f"  {name}: {value}", dim=True, err=True)
