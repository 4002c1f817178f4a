"""Main CLI entry point for path-store commands."""

import click

from path_store import __version__
from path_store.cli.commands import storage
from path_store.infra.logging.config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="path-store")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """path-store CLI - "/"-rooted paths over S3-compatible object storage.

    \b
    Quick Start:
      path-store storage --bucket bucket0 bucket-init --public
      path-store storage --bucket bucket0 upload ./test.txt /test.txt
      path-store storage --bucket bucket0 ls /
      path-store storage --bucket bucket0 rm /dir
    """
    setup_logging()
    ctx.ensure_object(dict)


cli.add_command(storage.storage)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
