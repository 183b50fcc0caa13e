"""Digest computation and verification for downloaded bundles."""

import hashlib
from pathlib import Path

from assetstage.errors import ConfigError, IntegrityMismatch

DEFAULT_ALGORITHM = "sha1"
SUPPORTED_ALGORITHMS = ("sha1", "sha256")

_CHUNK_SIZE = 64 * 1024


def _new_hasher(algorithm: str) -> "hashlib._Hash":
    if algorithm not in SUPPORTED_ALGORITHMS:
        raise ConfigError(
            f"Unsupported digest algorithm: {algorithm} "
            f"(expected one of {', '.join(SUPPORTED_ALGORITHMS)})",
        )
    return hashlib.new(algorithm)


def digest(data: bytes, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """Compute the hex digest of a byte buffer.

    Args:
        data: Bytes to hash
        algorithm: Hash algorithm name ("sha1" or "sha256")

    Returns:
        Lowercase hex digest

    Raises:
        ConfigError: If the algorithm is not supported
    """
    hasher = _new_hasher(algorithm)
    hasher.update(data)
    return hasher.hexdigest()


def digest_file(path: Path, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """Compute the hex digest of a file without loading it whole.

    Args:
        path: File to hash
        algorithm: Hash algorithm name

    Returns:
        Lowercase hex digest
    """
    hasher = _new_hasher(algorithm)
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def verify(data: bytes, expected: str, algorithm: str = DEFAULT_ALGORITHM) -> None:
    """Check that ``data`` hashes to ``expected``.

    Hex comparison is case-insensitive.

    Args:
        data: Downloaded bytes
        expected: Expected hex digest
        algorithm: Hash algorithm name

    Raises:
        IntegrityMismatch: If the computed digest differs from ``expected``
    """
    actual = digest(data, algorithm)
    if actual != expected.strip().lower():
        raise IntegrityMismatch(expected=expected, actual=actual)
