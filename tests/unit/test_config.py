"""
Unit tests for buildmanifest.core.config module.
"""

import pytest

from buildmanifest.core.config import (
    DEFAULT_CONFIG,
    Config,
    create_default_config_file,
    find_config_file,
    get_config,
    get_default_config,
    load_config,
    load_toml,
    save_toml,
    set_config,
)
from buildmanifest.core.exceptions import ConfigError


class TestConfig:
    """Tests for Config class."""

    def test_default_config(self):
        """Test getting default configuration."""
        config = get_default_config()

        assert isinstance(config, Config)
        assert config.output.get("indent") == 2
        assert config.build.get("runner") == "org.osbuild.linux"
        assert config.source is None

    def test_config_get(self):
        """Test Config.get method."""
        config = get_default_config()

        assert config.get("platform", "arch") == "x86_64"
        assert config.get("platform", "nonexistent", "default") == "default"
        assert config.get("nosection", "key", "default") == "default"

    def test_config_set(self):
        """Test Config.set method."""
        config = get_default_config()

        config.set("output", "indent", 4)
        assert config.get("output", "indent") == 4

    def test_defaults_not_shared(self):
        """Test changing one config leaves the defaults untouched."""
        config = get_default_config()
        config.set("output", "indent", 8)

        assert DEFAULT_CONFIG["output"]["indent"] == 2
        assert get_default_config().get("output", "indent") == 2

    def test_config_to_dict(self):
        """Test Config.to_dict method."""
        d = get_default_config().to_dict()

        assert set(d) == {"output", "logging", "build", "platform"}
        assert d["logging"]["level"] == "WARNING"

    def test_config_from_dict(self):
        """Test Config.from_dict method."""
        config = Config.from_dict({"output": {"sort_keys": True}}, source="custom.toml")

        assert config.output["sort_keys"] is True
        assert config.build == {}
        assert config.source == "custom.toml"


class TestTOMLOperations:
    """Tests for TOML load/save operations."""

    def test_save_and_load(self, temp_dir):
        """Test saving and loading a TOML file."""
        config = {
            "output": {"indent": 4, "sort_keys": True},
            "build": {"runner": "org.osbuild.fedora39"},
        }

        filepath = temp_dir / "test.toml"
        result = save_toml(config, str(filepath))

        assert result == str(filepath)
        assert load_toml(filepath) == config

    def test_load_missing(self, temp_dir):
        """Test loading a missing file."""
        with pytest.raises(FileNotFoundError):
            load_toml(temp_dir / "missing.toml")

    def test_load_invalid(self, temp_dir):
        """Test loading broken TOML raises ConfigError."""
        filepath = temp_dir / "broken.toml"
        filepath.write_text("[output\nindent = ")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_toml(filepath)


class TestConfigLoading:
    """Tests for finding and loading configuration files."""

    def test_find_explicit(self, temp_dir):
        """Test an explicit path is used when it exists."""
        filepath = temp_dir / "custom.toml"
        filepath.write_text("")

        assert find_config_file(str(filepath)) == filepath

    def test_find_explicit_missing(self, temp_dir):
        """Test a missing explicit path gives None."""
        assert find_config_file(str(temp_dir / "missing.toml")) is None

    def test_find_none(self, mocker):
        """Test no file in the standard locations gives None."""
        mocker.patch("buildmanifest.core.config.CONFIG_LOCATIONS", [])

        assert find_config_file() is None

    def test_find_standard_location(self, mocker, temp_dir):
        """Test the first existing standard location wins."""
        first = temp_dir / "first.toml"
        second = temp_dir / "second.toml"
        second.write_text("")
        first.write_text("")
        mocker.patch("buildmanifest.core.config.CONFIG_LOCATIONS", [temp_dir / "none.toml", first, second])

        assert find_config_file() == first

    def test_load_merges_defaults(self, temp_dir):
        """Test file values override defaults and keep the rest."""
        filepath = temp_dir / "custom.toml"
        filepath.write_text('[output]\nindent = 4\n\n[platform]\narch = "aarch64"\n')

        config = load_config(str(filepath))

        assert config.get("output", "indent") == 4
        assert config.get("output", "sort_keys") is False
        assert config.get("platform", "arch") == "aarch64"
        assert config.source == str(filepath)

    def test_load_invalid_falls_back(self, temp_dir):
        """Test a broken file falls back to the defaults."""
        filepath = temp_dir / "broken.toml"
        filepath.write_text("[output\n")

        config = load_config(str(filepath))

        assert config.to_dict() == DEFAULT_CONFIG
        assert config.source is None

    def test_create_default_config_file(self, temp_dir):
        """Test the default file loads back as the defaults."""
        filepath = temp_dir / "buildmanifest.toml"

        create_default_config_file(str(filepath))

        assert load_toml(filepath) == DEFAULT_CONFIG

    def test_active_config(self, mocker):
        """Test the active config is loaded once and can be replaced."""
        mocker.patch("buildmanifest.core.config.CONFIG_LOCATIONS", [])

        config = get_config()
        assert get_config() is config

        replacement = get_default_config()
        set_config(replacement)
        assert get_config() is replacement
