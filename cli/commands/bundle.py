"""Bundle command."""

import asyncio
import sys
from pathlib import Path
from typing import Tuple

import click
from loguru import logger

from snackpack import Bundler, BundlerError, __version__
from snackpack.bundle import write_result
from snackpack.config import PLATFORMS


def configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


@click.command()
@click.argument("identifier")
@click.option(
    "--platform",
    "platforms",
    multiple=True,
    type=click.Choice(PLATFORMS),
    help="Target platform (repeatable, defaults to all)",
)
@click.option("--worklets", is_flag=True, help="Run the worklet transform before compiling")
@click.option("--output", type=click.Path(file_okay=False, path_type=Path), help="Directory to write bundles to")
@click.option("--archive", is_flag=True, help="Also zip the written bundles")
@click.option("--verbose", is_flag=True, help="Log resolution details")
def bundle(identifier: str, platforms: Tuple[str, ...], worklets: bool, output: Path, archive: bool, verbose: bool):
    """Bundle IDENTIFIER (name[/subpath][@version])."""
    configure_logging(verbose)
    click.echo(f"📦 Bundling {identifier}")

    try:
        result = asyncio.run(Bundler().bundle(identifier, platforms or None, worklets))
    except BundlerError as e:
        click.echo(f"❌ {e}", err=True)
        raise click.Abort()

    click.echo(f"  ✅ {result.name}@{result.version}")
    for platform, platform_bundle in result.files.items():
        if platform_bundle.code is None:
            click.echo(f"     {platform.value}: no entry point")
            continue
        click.echo(
            f"     {platform.value}: {platform_bundle.size} bytes, {len(platform_bundle.externals)} externals"
        )
    if result.peer_dependencies:
        peers = ", ".join(f"{name}@{spec}" for name, spec in sorted(result.peer_dependencies.items()))
        click.echo(f"     peerDependencies: {peers}")

    if output:
        path = write_result(result, output, tool_version=__version__, archive=archive)
        click.echo(f"  ✅ Written: {path}")
