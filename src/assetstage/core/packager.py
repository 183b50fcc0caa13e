"""Packaging of a materialized bundle into a static-resource registry.

The registry maps POSIX-style relative paths to file contents. It can be
rendered as a Python module so a downstream build step can embed the assets
and serve them without reading the bundle directory.
"""

import logging
import mimetypes
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from assetstage.errors import FilesystemError, PackagingError

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"

_MODULE_HEADER = '''"""Embedded static resources.

Generated by assetstage. Do not edit.
"""

'''


@dataclass(frozen=True)
class StaticResource:
    """One packaged file."""

    data: bytes
    modified: int
    mime_type: str


class StaticResourceRegistry:
    """Mapping of relative path to packaged file."""

    def __init__(self, resources: dict[str, StaticResource] | None = None) -> None:
        self._resources: dict[str, StaticResource] = dict(resources or {})

    def __len__(self) -> int:
        return len(self._resources)

    def __iter__(self) -> Iterator[str]:
        return iter(self._resources)

    def __contains__(self, path: object) -> bool:
        return path in self._resources

    def __getitem__(self, path: str) -> StaticResource:
        return self._resources[path]

    def get(self, path: str) -> StaticResource | None:
        """Return the resource at ``path`` or None."""
        return self._resources.get(path)

    def paths(self) -> set[str]:
        """Return all registered relative paths."""
        return set(self._resources)

    def contents(self) -> dict[str, bytes]:
        """Return a plain path-to-bytes mapping."""
        return {path: resource.data for path, resource in self._resources.items()}

    def total_size(self) -> int:
        """Return the combined size of all resources in bytes."""
        return sum(len(resource.data) for resource in self._resources.values())

    def to_module_source(self) -> str:
        """Render the registry as Python source.

        Entries are sorted by path so identical bundles produce identical
        modules. The module defines ``RESOURCES`` and a ``generate()`` function
        returning it, each value a ``(data, modified, mime_type)`` tuple.

        Returns:
            Python module source
        """
        lines = [_MODULE_HEADER, "RESOURCES = {"]
        for path in sorted(self._resources):
            resource = self._resources[path]
            lines.append(
                f"    {path!r}: ({resource.data!r}, {resource.modified}, "
                f"{resource.mime_type!r}),",
            )
        lines.append("}")
        lines.append("")
        lines.append("")
        lines.append("def generate():")
        lines.append("    return RESOURCES")
        lines.append("")
        return "\n".join(lines)

    def write_module(self, path: Path) -> None:
        """Write the registry as a Python module.

        Args:
            path: Destination file

        Raises:
            FilesystemError: If the module cannot be written
        """
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(self.to_module_source(), encoding="utf-8")
        except OSError as e:
            raise FilesystemError(
                f"Could not write resource module {path}: {e}",
                path=path,
            ) from e
        logger.info(f"Wrote {len(self)} resources to {path}")


def package(directory: Path) -> StaticResourceRegistry:
    """Build a registry from every regular file under ``directory``.

    Args:
        directory: Materialized bundle directory

    Returns:
        Registry keyed by POSIX relative path

    Raises:
        PackagingError: If the directory is missing or cannot be read
    """
    if not directory.is_dir():
        raise PackagingError(f"Bundle directory does not exist: {directory}")

    resources: dict[str, StaticResource] = {}
    try:
        for file_path in directory.rglob("*"):
            if not file_path.is_file():
                continue
            relative = file_path.relative_to(directory).as_posix()
            resources[relative] = StaticResource(
                data=file_path.read_bytes(),
                modified=int(file_path.stat().st_mtime),
                mime_type=_guess_mime_type(file_path),
            )
    except OSError as e:
        raise PackagingError(f"Could not package {directory}: {e}") from e

    logger.info(f"Packaged {len(resources)} files from {directory}")
    return StaticResourceRegistry(resources)


def _guess_mime_type(path: Path) -> str:
    mime_type, _ = mimetypes.guess_type(path.name)
    return mime_type or DEFAULT_MIME_TYPE
