"""Sentinel-based cache for the materialized bundle.

Output directory layout:
    <output_dir>/
    ├── .<name>.digest      # Digest of the last materialized bundle
    └── <name>/             # Materialized asset tree

The sentinel is the only record consulted. Bundle contents are not re-hashed,
so a tampered bundle directory with a matching sentinel is trusted.
"""

import logging
from pathlib import Path

from assetstage.errors import FilesystemError

logger = logging.getLogger(__name__)


class SentinelCache:
    """Tracks which bundle digest was last materialized into an output directory."""

    def __init__(self, output_dir: Path, bundle_name: str) -> None:
        """Initialize cache for one bundle.

        Args:
            output_dir: Build output directory owning the bundle
            bundle_name: Name of the bundle directory
        """
        self._output_dir = output_dir
        self._bundle_name = bundle_name
        self._sentinel_path = output_dir / f".{bundle_name}.digest"
        self._bundle_dir = output_dir / bundle_name

    @property
    def output_dir(self) -> Path:
        """Build output directory."""
        return self._output_dir

    @property
    def sentinel_path(self) -> Path:
        """Path of the digest sentinel file."""
        return self._sentinel_path

    @property
    def bundle_dir(self) -> Path:
        """Path of the materialized bundle directory."""
        return self._bundle_dir

    def read(self) -> str | None:
        """Read the recorded digest.

        Returns:
            Sentinel contents, or None if missing or unreadable
        """
        try:
            return self._sentinel_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None

    def is_up_to_date(self, expected_digest: str) -> bool:
        """Check whether the bundle on disk matches the expected digest.

        Args:
            expected_digest: Digest declared by the bundle descriptor

        Returns:
            True only if the sentinel equals ``expected_digest`` and the
            bundle directory exists
        """
        recorded = self.read()
        if recorded is None:
            logger.debug(f"No readable sentinel at {self._sentinel_path}")
            return False

        if recorded != expected_digest:
            logger.debug(
                f"Sentinel digest {recorded} differs from expected {expected_digest}",
            )
            return False

        if not self._bundle_dir.is_dir():
            logger.debug(f"Bundle directory missing: {self._bundle_dir}")
            return False

        return True

    def record(self, digest: str) -> None:
        """Write the digest of a verified, materialized bundle.

        Must only be called after the bundle directory is complete.

        Args:
            digest: Hex digest to record

        Raises:
            FilesystemError: If the sentinel cannot be written
        """
        try:
            self._output_dir.mkdir(parents=True, exist_ok=True)
            self._sentinel_path.write_text(digest, encoding="utf-8")
        except OSError as e:
            raise FilesystemError(
                f"Could not write sentinel {self._sentinel_path}: {e}",
                path=self._sentinel_path,
            ) from e
        logger.debug(f"Recorded digest {digest} in {self._sentinel_path}")

    def invalidate(self) -> None:
        """Remove the sentinel so the next check reports stale.

        Raises:
            FilesystemError: If an existing sentinel cannot be removed
        """
        try:
            self._sentinel_path.unlink(missing_ok=True)
        except OSError as e:
            raise FilesystemError(
                f"Could not remove sentinel {self._sentinel_path}: {e}",
                path=self._sentinel_path,
            ) from e


def is_up_to_date(
    output_dir: Path,
    bundle_name: str,
    expected_digest: str,
) -> bool:
    """Check a bundle's cache state without keeping a SentinelCache around."""
    return SentinelCache(output_dir, bundle_name).is_up_to_date(
        expected_digest,
    )


def record(
    output_dir: Path,
    bundle_name: str,
    digest: str,
) -> None:
    """Record a bundle digest without keeping a SentinelCache around."""
    SentinelCache(output_dir, bundle_name).record(digest)
