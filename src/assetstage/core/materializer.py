"""Placement of an unpacked bundle at its final location."""

import logging
import shutil
from pathlib import Path

from assetstage.errors import FilesystemError

logger = logging.getLogger(__name__)


def copy_tree(source: Path, destination: Path) -> None:
    """Recursively copy ``source`` into ``destination``.

    Destination directories are created as needed and existing files are
    overwritten. Modification times are carried over from ``source``. Files
    already in ``destination`` but absent from ``source`` are left alone.

    Args:
        source: Directory to copy from
        destination: Directory to copy into

    Raises:
        FilesystemError: If any directory or file operation fails. The
            destination is then in an indeterminate state.
    """
    try:
        _copy_tree(source, destination)
    except OSError as e:
        raise FilesystemError(
            f"Could not copy {source} to {destination}: {e}",
            path=Path(e.filename) if e.filename else source,
        ) from e


def _copy_tree(source: Path, destination: Path) -> None:
    destination.mkdir(parents=True, exist_ok=True)
    for entry in source.iterdir():
        target = destination / entry.name
        if entry.is_dir():
            _copy_tree(entry, target)
        else:
            shutil.copy2(entry, target)
            logger.debug(f"Copied {entry} -> {target}")


def materialize(staging: Path, bundle_dir: Path, *, clean: bool = False) -> None:
    """Place a staged bundle at ``bundle_dir``.

    Args:
        staging: Root of the unpacked bundle
        bundle_dir: Final bundle directory
        clean: Remove an existing ``bundle_dir`` before copying

    Raises:
        FilesystemError: If removing or copying fails
    """
    if clean and bundle_dir.exists():
        logger.info(f"Removing previous bundle at {bundle_dir}")
        try:
            shutil.rmtree(bundle_dir)
        except OSError as e:
            raise FilesystemError(
                f"Could not remove {bundle_dir}: {e}",
                path=bundle_dir,
            ) from e

    copy_tree(staging, bundle_dir)
    logger.info(f"Materialized bundle at {bundle_dir}")
