"""CLI entrypoint."""

import click

from snackpack import __version__

from .commands.bundle import bundle


@click.group()
@click.version_option(version=__version__, prog_name="snackpack")
def cli():
    """snackpack CLI - Bundle npm packages for iOS, Android and web."""
    pass


cli.add_command(bundle)


if __name__ == "__main__":
    cli()
