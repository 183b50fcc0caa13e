"""Unpacking of downloaded bundle archives into a staging directory.

Zip and tar archives (plain, gzip, bzip2, xz) are recognised by content,
not by URL suffix. Tar is tried first: a tar may end with a zip member, which
would make the whole tar look like a zip to ``zipfile.is_zipfile``.

Unpacked files keep the modification times stored in the archive, so
packaging the same bundle twice yields the same resources.
"""

import io
import logging
import os
import tarfile
import time
import zipfile
import zlib
from pathlib import Path

from assetstage.errors import FilesystemError

logger = logging.getLogger(__name__)

_UNPACK_ERRORS = (
    OSError,
    EOFError,
    zlib.error,
    zipfile.BadZipFile,
    tarfile.TarError,
    # zipfile: encrypted members and unsupported compression methods
    RuntimeError,
    NotImplementedError,
)


def extract_archive(data: bytes, destination: Path) -> None:
    """Unpack an archive held in memory.

    Args:
        data: Archive bytes
        destination: Directory to unpack into (created if missing)

    Raises:
        FilesystemError: If the format is unknown, a member would land
            outside ``destination``, or unpacking fails
    """
    try:
        destination.mkdir(parents=True, exist_ok=True)
        tar = _open_tar(data)
        if tar is not None:
            with tar:
                _extract_tar(tar, destination)
            return

        buffer = io.BytesIO(data)
        if not zipfile.is_zipfile(buffer):
            raise FilesystemError(
                "Bundle is neither a zip nor a tar archive",
                path=destination,
            )
        buffer.seek(0)
        _extract_zip(buffer, destination)
    except _UNPACK_ERRORS as e:
        raise FilesystemError(
            f"Could not unpack bundle into {destination}: {e}",
            path=destination,
        ) from e


def _open_tar(data: bytes) -> tarfile.TarFile | None:
    """Open ``data`` as a tar archive, or return None if it is not one."""
    try:
        return tarfile.open(fileobj=io.BytesIO(data), mode="r:*")
    except tarfile.TarError:
        return None


def _extract_zip(buffer: io.BytesIO, destination: Path) -> None:
    """Extract a zip archive, rejecting members that escape ``destination``."""
    with zipfile.ZipFile(buffer) as archive:
        members = archive.infolist()
        for info in members:
            _check_member(info.filename, destination)
        archive.extractall(destination)
        for info in members:
            if info.is_dir():
                continue
            timestamp = time.mktime(info.date_time + (0, 0, -1))
            os.utime(destination / info.filename, (timestamp, timestamp))
        logger.debug(f"Unpacked {len(members)} zip members")


def _extract_tar(tar: tarfile.TarFile, destination: Path) -> None:
    """Extract a tar archive, rejecting members that escape ``destination``."""
    members = tar.getmembers()
    for member in members:
        _check_member(member.name, destination)
    tar.extractall(destination, filter="data")
    logger.debug(f"Unpacked {len(members)} tar members")


def _check_member(name: str, destination: Path) -> None:
    """Raise if an archive member would resolve outside ``destination``."""
    root = destination.resolve()
    target = (root / name).resolve()
    if target != root and root not in target.parents:
        raise FilesystemError(
            f"Archive member escapes bundle directory: {name}",
            path=destination,
        )


def staged_root(directory: Path) -> Path:
    """Locate the bundle root inside an unpacked archive.

    Archives often wrap their contents in one top-level folder
    (``dist/``, ``build/``). That folder is treated as the root.

    Args:
        directory: Directory the archive was unpacked into

    Returns:
        The single top-level subdirectory, or ``directory`` itself
    """
    entries = list(directory.iterdir())
    if len(entries) == 1 and entries[0].is_dir():
        return entries[0]
    return directory
