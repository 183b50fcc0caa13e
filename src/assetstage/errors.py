"""Error kinds raised by the asset pipeline.

Every error is fatal to the build. The ``stage`` attribute names the part of
the pipeline that failed so the CLI can report it.
"""

from pathlib import Path


class AssetStageError(Exception):
    """Base class for all pipeline failures."""

    stage = "pipeline"


class ConfigError(AssetStageError):
    """Descriptor or configuration is missing or malformed."""

    stage = "config"


class FetchError(AssetStageError):
    """Bundle could not be downloaded."""

    stage = "network"

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")


class IntegrityMismatch(AssetStageError):
    """Downloaded bytes do not match the expected digest."""

    stage = "integrity"

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Digest mismatch: expected {expected}, got {actual}",
        )


class FilesystemError(AssetStageError):
    """Creating, copying, reading or writing files failed."""

    stage = "filesystem"

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.path = path
        super().__init__(message)


class PackagingError(AssetStageError):
    """Materialized bundle could not be walked for packaging."""

    stage = "packaging"
