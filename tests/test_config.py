"""Tests for configuration loading."""

from pathlib import Path

import pytest
from assetstage.config import (
    DEFAULT_GENERATED_MODULE,
    BundleDescriptor,
    Config,
    OutputConfig,
)
from assetstage.errors import ConfigError

DIGEST = "0123456789abcdef0123456789abcdef01234567"
SHA256_DIGEST = "a" * 64

MINIMAL = f"""
[bundle]
name = "dashboard"
url = "https://example.test/bundle.tar"
digest = "{DIGEST}"
"""


class TestConfigLoad:
    """Tests for Config.load()."""

    def test__minimal_file__defaults(self, tmp_path: Path) -> None:
        """Bundle section alone yields default output settings."""
        config_file = tmp_path / "assetstage.toml"
        config_file.write_text(MINIMAL)

        config = Config.load(config_file)

        assert config.bundle == BundleDescriptor(
            name="dashboard",
            source_url="https://example.test/bundle.tar",
            expected_digest=DIGEST,
            algorithm="sha1",
        )
        assert config.enabled is True
        assert config.output.dir == tmp_path / "build" / "assetstage"
        assert config.output.generated_module == DEFAULT_GENERATED_MODULE
        assert config.output.clean is False
        assert config.config_path == config_file

    def test__full_file(self, tmp_path: Path) -> None:
        """All keys are read and paths resolved against the config file."""
        config_file = tmp_path / "assetstage.toml"
        config_file.write_text(
            f"""
enabled = false

[bundle]
name = "dashboard"
url = "https://example.test/bundle.zip"
digest = "{SHA256_DIGEST}"
algorithm = "sha256"

[output]
dir = "target/out"
generated_module = ""
clean = true
""",
        )

        config = Config.load(config_file)

        assert config.enabled is False
        assert config.bundle.algorithm == "sha256"
        assert config.output.dir == tmp_path / "target" / "out"
        assert config.output.generated_module is None
        assert config.output.generated_module_path is None
        assert config.output.clean is True

    def test__pyproject_tool_table(self, tmp_path: Path) -> None:
        """Descriptor can live in pyproject.toml."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text(
            f"""
[project]
name = "app"

[tool.assetstage.bundle]
name = "dashboard"
url = "https://example.test/bundle.tar"
digest = "{DIGEST}"
""",
        )

        config = Config.load(pyproject)

        assert config.bundle.name == "dashboard"

    def test__pyproject_without_table__raises(self, tmp_path: Path) -> None:
        """pyproject.toml must carry [tool.assetstage] when given explicitly."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text('[project]\nname = "app"\n')

        with pytest.raises(ConfigError, match=r"No \[tool.assetstage\]"):
            Config.load(pyproject)

    def test__missing_explicit_file__raises(self, tmp_path: Path) -> None:
        """Explicit path must exist."""
        with pytest.raises(ConfigError, match="not found"):
            Config.load(tmp_path / "missing.toml")

    def test__invalid_toml__raises(self, tmp_path: Path) -> None:
        """Malformed TOML is a config error."""
        config_file = tmp_path / "assetstage.toml"
        config_file.write_text("[bundle\nname = ")

        with pytest.raises(ConfigError, match="Could not read"):
            Config.load(config_file)

    def test__discovers_in_parent(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Config is found by walking up from the working directory."""
        (tmp_path / "assetstage.toml").write_text(MINIMAL)
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)

        config = Config.load()

        assert config.config_path == tmp_path / "assetstage.toml"

    def test__discovery_skips_pyproject_without_table(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """An unrelated pyproject.toml does not stop discovery."""
        (tmp_path / "assetstage.toml").write_text(MINIMAL)
        nested = tmp_path / "pkg"
        nested.mkdir()
        (nested / "pyproject.toml").write_text('[project]\nname = "pkg"\n')
        monkeypatch.chdir(nested)

        config = Config.load()

        assert config.config_path == tmp_path / "assetstage.toml"


class TestConfigValidation:
    """Tests for section validation."""

    @pytest.mark.parametrize(
        ("data", "message"),
        [
            ({}, "bundle section is required"),
            ({"bundle": "dashboard"}, "bundle section must be a dictionary"),
            (
                {"bundle": {"url": "https://x", "digest": DIGEST}},
                "bundle.name",
            ),
            (
                {"bundle": {"name": "../up", "url": "https://x", "digest": DIGEST}},
                "plain directory name",
            ),
            (
                {"bundle": {"name": "d", "digest": DIGEST}},
                "bundle.url",
            ),
            (
                {"bundle": {"name": "d", "url": "https://x"}},
                "bundle.digest must be a non-empty string",
            ),
            (
                {"bundle": {"name": "d", "url": "https://x", "digest": "xyz"}},
                "bundle.digest must be a hex string",
            ),
            (
                {
                    "bundle": {
                        "name": "d",
                        "url": "https://x",
                        "digest": DIGEST,
                        "algorithm": "md5",
                    },
                },
                "bundle.algorithm",
            ),
        ],
    )
    def test__invalid_bundle__raises(
        self,
        tmp_path: Path,
        data: dict,
        message: str,
    ) -> None:
        """Malformed descriptors are rejected with the offending key."""
        with pytest.raises(ConfigError, match=message):
            Config.from_dict(data, tmp_path)

    def test__invalid_enabled__raises(self, tmp_path: Path) -> None:
        """enabled must be a boolean."""
        with pytest.raises(ConfigError, match="enabled must be a boolean"):
            Config.from_dict({"enabled": "yes"}, tmp_path)

    @pytest.mark.parametrize(
        ("output", "message"),
        [
            ("build", "output section must be a dictionary"),
            ({"dir": 1}, "output.dir"),
            ({"generated_module": False}, "output.generated_module"),
            ({"clean": "yes"}, "output.clean"),
        ],
    )
    def test__invalid_output__raises(
        self,
        tmp_path: Path,
        output: object,
        message: str,
    ) -> None:
        """Malformed output sections are rejected."""
        data = {
            "bundle": {"name": "d", "url": "https://x", "digest": DIGEST},
            "output": output,
        }

        with pytest.raises(ConfigError, match=message):
            Config.from_dict(data, tmp_path)


class TestConfigOverrides:
    """Tests for Config.with_overrides()."""

    def test__output_dir_override(self, tmp_path: Path) -> None:
        """Override replaces output.dir and keeps other fields."""
        config = Config(
            bundle=BundleDescriptor("d", "https://x", DIGEST),
            output=OutputConfig(dir=tmp_path / "a", clean=True),
        )

        result = config.with_overrides(output_dir=tmp_path / "b")

        assert result.output.dir == tmp_path / "b"
        assert result.output.clean is True
        assert config.output.dir == tmp_path / "a"

    def test__none_keeps_values(self, tmp_path: Path) -> None:
        """None values leave the config unchanged."""
        config = Config(
            bundle=BundleDescriptor("d", "https://x", DIGEST),
            output=OutputConfig(dir=tmp_path),
            enabled=False,
        )

        result = config.with_overrides()

        assert result == config

    def test__enabled_override(self, tmp_path: Path) -> None:
        """Toggle can be flipped from the command line."""
        config = Config(
            bundle=BundleDescriptor("d", "https://x", DIGEST),
            output=OutputConfig(dir=tmp_path),
            enabled=False,
        )

        assert config.with_overrides(enabled=True).enabled is True
