"""CLI interface for assetstage.

Build-time command for syncing and embedding the front-end asset bundle.
"""

import logging
import sys
from pathlib import Path
from typing import NoReturn

import click

from assetstage.config import Config
from assetstage.core.integrity import DEFAULT_ALGORITHM, SUPPORTED_ALGORITHMS
from assetstage.errors import AssetStageError

_config_option = click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to configuration file (default: auto-discover assetstage.toml)",
)

_output_dir_option = click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Build output directory (overrides config)",
)


@click.group()
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output (show pipeline progress)",
)
def cli(verbose: bool) -> None:
    """assetstage - keep the embedded front-end bundle in sync."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@_config_option
@_output_dir_option
@click.option(
    "--force",
    is_flag=True,
    help="Refetch the bundle even if the cache is up to date",
)
def sync(config_path: Path | None, output_dir: Path | None, force: bool) -> None:
    """Fetch, verify, materialize and package the bundle if it is stale."""
    from assetstage.pipeline import run_pipeline

    try:
        config = Config.load(config_path).with_overrides(output_dir=output_dir)
        result = run_pipeline(config, force=force)
    except AssetStageError as e:
        _fail(e)

    name = config.bundle.name
    if result.skipped:
        click.echo(f"Bundle {name} is disabled, nothing to do")
        return
    if not result.fetched:
        click.echo(f"Bundle {name} is up to date ({result.digest})")
        return

    click.echo(
        click.style(f"Bundle {name} refreshed", fg="green", bold=True),
    )
    click.echo(f"Directory: {result.bundle_dir}")
    if result.registry is not None:
        click.echo(f"Files: {len(result.registry)}")
    if result.module_path is not None:
        click.echo(f"Module: {result.module_path}")


@cli.command()
@_config_option
@_output_dir_option
def status(config_path: Path | None, output_dir: Path | None) -> None:
    """Show whether the bundle on disk matches the configured digest."""
    from assetstage.core.cache import SentinelCache

    try:
        config = Config.load(config_path).with_overrides(output_dir=output_dir)
    except AssetStageError as e:
        _fail(e)

    bundle = config.bundle
    cache = SentinelCache(config.output.dir, bundle.name)
    recorded = cache.read()

    click.echo(f"Bundle: {bundle.name}")
    click.echo(f"Expected digest: {bundle.expected_digest}")
    click.echo(f"Recorded digest: {recorded if recorded is not None else '(none)'}")
    click.echo(f"Directory: {cache.bundle_dir}")
    if cache.is_up_to_date(bundle.expected_digest):
        click.echo(click.style("Up to date", fg="green"))
    else:
        click.echo(click.style("Stale", fg="yellow"))


@cli.command()
@click.argument(
    "file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--algorithm",
    "-a",
    type=click.Choice(SUPPORTED_ALGORITHMS),
    default=DEFAULT_ALGORITHM,
    show_default=True,
    help="Digest algorithm",
)
def digest(file: Path, algorithm: str) -> None:
    """Print the digest of a bundle archive."""
    from assetstage.core.integrity import digest_file

    try:
        click.echo(digest_file(file, algorithm))
    except OSError as e:
        click.echo(click.style(f"Error (filesystem): {e}", fg="red"), err=True)
        sys.exit(1)


@cli.command()
@click.argument(
    "directory",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the packaged resources as a Python module",
)
def package(directory: Path, output: Path | None) -> None:
    """Package an existing bundle directory."""
    from assetstage.core.packager import package as package_directory

    try:
        registry = package_directory(directory)
        if output is not None:
            registry.write_module(output)
    except AssetStageError as e:
        _fail(e)

    click.echo(f"Packaged {len(registry)} files ({registry.total_size()} bytes)")
    for path in sorted(registry):
        click.echo(f"  {path}")
    if output is not None:
        click.echo(f"Module: {output}")


def _fail(error: AssetStageError) -> NoReturn:
    """Report a fatal error and exit with status 1."""
    click.echo(click.style(f"Error ({error.stage}): {error}", fg="red"), err=True)
    sys.exit(1)


if __name__ == "__main__":
    cli()
