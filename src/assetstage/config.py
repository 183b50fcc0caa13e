"""Configuration management for assetstage.

The bundle descriptor and output settings are read from ``assetstage.toml``
or from the ``[tool.assetstage]`` table of ``pyproject.toml``.
"""

from __future__ import annotations

import re
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path

from assetstage.core.integrity import DEFAULT_ALGORITHM, SUPPORTED_ALGORITHMS
from assetstage.errors import ConfigError

CONFIG_FILENAME = "assetstage.toml"
PYPROJECT_FILENAME = "pyproject.toml"
DEFAULT_GENERATED_MODULE = "generated_assets.py"

HEX_RE = re.compile(r"[0-9a-fA-F]+")


@dataclass(frozen=True)
class BundleDescriptor:
    """Where a bundle comes from and which version is expected."""

    name: str
    source_url: str
    expected_digest: str
    algorithm: str = DEFAULT_ALGORITHM


@dataclass
class OutputConfig:
    """Output configuration."""

    dir: Path
    generated_module: str | None = DEFAULT_GENERATED_MODULE
    clean: bool = False

    @property
    def generated_module_path(self) -> Path | None:
        """Absolute path of the generated resource module, if enabled."""
        if not self.generated_module:
            return None
        return self.dir / self.generated_module


@dataclass
class Config:
    """Pipeline configuration."""

    bundle: BundleDescriptor
    output: OutputConfig
    enabled: bool = True
    config_path: Path | None = None

    @classmethod
    def load(cls, config_path: Path | None = None) -> Config:
        """Load configuration from file.

        If config_path is provided, loads from that file. Otherwise, searches
        the current directory and its parents for assetstage.toml, or a
        pyproject.toml with a [tool.assetstage] table.

        Args:
            config_path: Optional explicit path to config file

        Returns:
            Config instance

        Raises:
            ConfigError: If no configuration is found or it is invalid
        """
        if config_path is not None:
            if not config_path.exists():
                raise ConfigError(f"Configuration file not found: {config_path}")
            return cls._load_from_file(config_path)

        discovered_path = cls._discover_config(Path.cwd())
        if discovered_path is None:
            raise ConfigError(
                f"No {CONFIG_FILENAME} or {PYPROJECT_FILENAME} with "
                "[tool.assetstage] found",
            )
        return cls._load_from_file(discovered_path)

    @classmethod
    def _discover_config(cls, start: Path) -> Path | None:
        """Search for a config file in ``start`` and its parents.

        Returns:
            Path to config file or None if not found
        """
        current = start
        while True:
            candidate = current / CONFIG_FILENAME
            if candidate.exists():
                return candidate
            pyproject = current / PYPROJECT_FILENAME
            if pyproject.exists() and cls._has_tool_table(pyproject):
                return pyproject
            parent = current.parent
            if parent == current:
                return None
            current = parent

    @classmethod
    def _has_tool_table(cls, path: Path) -> bool:
        try:
            data = cls._read_toml(path)
        except ConfigError:
            return False
        return isinstance(data.get("tool", {}).get("assetstage"), dict)

    @classmethod
    def _read_toml(cls, path: Path) -> dict:
        try:
            with path.open("rb") as f:
                return tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Could not read {path}: {e}") from e

    @classmethod
    def _load_from_file(cls, path: Path) -> Config:
        """Load configuration from a specific file.

        Args:
            path: Path to assetstage.toml or pyproject.toml

        Returns:
            Config instance

        Raises:
            ConfigError: If configuration is invalid
        """
        data = cls._read_toml(path)

        if path.name == PYPROJECT_FILENAME:
            data = data.get("tool", {}).get("assetstage")
            if not isinstance(data, dict):
                raise ConfigError(f"No [tool.assetstage] table in {path}")

        return cls.from_dict(data, path.parent, config_path=path)

    @classmethod
    def from_dict(
        cls,
        data: dict,
        base_dir: Path,
        *,
        config_path: Path | None = None,
    ) -> Config:
        """Build configuration from parsed TOML data.

        Args:
            data: Parsed configuration table
            base_dir: Directory relative paths are resolved against
            config_path: File the data was read from, if any

        Returns:
            Config instance

        Raises:
            ConfigError: If configuration is invalid
        """
        enabled = data.get("enabled", True)
        if not isinstance(enabled, bool):
            raise ConfigError("enabled must be a boolean")

        return cls(
            bundle=cls._parse_bundle(data.get("bundle")),
            output=cls._parse_output(data.get("output"), base_dir),
            enabled=enabled,
            config_path=config_path,
        )

    @classmethod
    def _parse_bundle(cls, data: object) -> BundleDescriptor:
        """Parse bundle section.

        Args:
            data: Raw bundle section data

        Returns:
            BundleDescriptor instance
        """
        if data is None:
            raise ConfigError("bundle section is required")

        if not isinstance(data, dict):
            raise ConfigError("bundle section must be a dictionary")

        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise ConfigError("bundle.name must be a non-empty string")
        if "/" in name or "\\" in name or name in (".", ".."):
            raise ConfigError("bundle.name must be a plain directory name")

        url = data.get("url")
        if not isinstance(url, str) or not url:
            raise ConfigError("bundle.url must be a non-empty string")

        digest = data.get("digest")
        if not isinstance(digest, str) or not digest:
            raise ConfigError("bundle.digest must be a non-empty string")
        if not HEX_RE.fullmatch(digest):
            raise ConfigError("bundle.digest must be a hex string")

        algorithm = data.get("algorithm", DEFAULT_ALGORITHM)
        if algorithm not in SUPPORTED_ALGORITHMS:
            raise ConfigError(
                f"bundle.algorithm must be one of {', '.join(SUPPORTED_ALGORITHMS)}",
            )

        return BundleDescriptor(
            name=name,
            source_url=url,
            expected_digest=digest,
            algorithm=algorithm,
        )

    @classmethod
    def _parse_output(cls, data: object, base_dir: Path) -> OutputConfig:
        """Parse output section.

        Args:
            data: Raw output section data
            base_dir: Directory containing config file (for relative paths)

        Returns:
            OutputConfig instance
        """
        if data is None:
            return OutputConfig(dir=base_dir / "build" / "assetstage")

        if not isinstance(data, dict):
            raise ConfigError("output section must be a dictionary")

        output_dir = data.get("dir", "build/assetstage")
        if not isinstance(output_dir, str):
            raise ConfigError("output.dir must be a string")

        generated_module = data.get("generated_module", DEFAULT_GENERATED_MODULE)
        if not isinstance(generated_module, str):
            raise ConfigError("output.generated_module must be a string")

        clean = data.get("clean", False)
        if not isinstance(clean, bool):
            raise ConfigError("output.clean must be a boolean")

        return OutputConfig(
            dir=base_dir / output_dir,
            generated_module=generated_module or None,
            clean=clean,
        )

    def with_overrides(
        self,
        *,
        output_dir: Path | None = None,
        enabled: bool | None = None,
    ) -> Config:
        """Create a new Config with CLI overrides applied.

        Only non-None values override the existing config.

        Args:
            output_dir: Override output.dir
            enabled: Override enabled

        Returns:
            New Config instance with overrides applied
        """
        output = self.output
        if output_dir is not None:
            output = replace(self.output, dir=output_dir)

        return replace(
            self,
            output=output,
            enabled=enabled if enabled is not None else self.enabled,
        )
