"""
Configuration Management
========================

This module provides TOML-based configuration file support for buildmanifest.

Configuration files are searched in the following order (highest to lowest priority):
1. Path specified via --config option
2. ./buildmanifest.toml (current directory)
3. ~/.config/buildmanifest/config.toml (user config)
4. /etc/buildmanifest/config.toml (system config)
5. Built-in defaults

Example configuration file (buildmanifest.toml):

    [output]
    indent = 2
    sort_keys = false

    [logging]
    level = "WARNING"

    [build]
    runner = "org.osbuild.fedora39"

    [platform]
    arch = "x86_64"
"""

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from buildmanifest.core.exceptions import ConfigError
from buildmanifest.core.logger import get_logger

logger = get_logger(__name__)

# Use tomli for Python < 3.11, tomllib for Python >= 3.11
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    "output": {
        "indent": 2,
        "sort_keys": False,
    },
    "logging": {
        "level": "WARNING",
    },
    "build": {
        "runner": "org.osbuild.linux",
    },
    "platform": {
        "arch": "x86_64",
    },
}

# Standard config file locations
CONFIG_LOCATIONS = [
    Path("buildmanifest.toml"),
    Path("~/.config/buildmanifest/config.toml").expanduser(),
    Path("/etc/buildmanifest/config.toml"),
]


@dataclass
class Config:
    """
    Configuration container for buildmanifest settings.

    Attributes:
        output: Manifest document output settings
        logging: Logging settings
        build: Defaults for build root pipelines
        platform: Defaults for the target platform
        _source: Path to the config file that was loaded
    """

    output: Dict[str, Any] = field(default_factory=dict)
    logging: Dict[str, Any] = field(default_factory=dict)
    build: Dict[str, Any] = field(default_factory=dict)
    platform: Dict[str, Any] = field(default_factory=dict)
    _source: Optional[str] = None

    @property
    def source(self) -> Optional[str]:
        return self._source

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        section_dict = getattr(self, section, {})
        if section_dict is None:
            return default
        return section_dict.get(key, default)

    def set(self, section: str, key: str, value: Any) -> None:
        """Set a configuration value."""
        section_dict = getattr(self, section, None)
        if section_dict is not None:
            section_dict[key] = value

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "output": self.output,
            "logging": self.logging,
            "build": self.build,
            "platform": self.platform,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: Optional[str] = None) -> "Config":
        """Create Config from dictionary."""
        return cls(
            output=data.get("output", {}),
            logging=data.get("logging", {}),
            build=data.get("build", {}),
            platform=data.get("platform", {}),
            _source=source,
        )


def load_toml(filepath: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a TOML configuration file.

    Args:
        filepath: Path to the TOML file

    Returns:
        Dictionary with configuration values

    Raises:
        FileNotFoundError: If file doesn't exist
        ConfigError: If TOML parsing fails
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {filepath}")

    with open(path, "rb") as f:
        try:
            return tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {filepath}: {e}") from e


def save_toml(config: Dict[str, Any], filepath: Union[str, Path]) -> str:
    """
    Save configuration to a TOML file.

    Args:
        config: Configuration dictionary
        filepath: Path to save the file

    Returns:
        Path to the saved file
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)

    lines = []
    for section, values in config.items():
        if isinstance(values, dict) and values:
            lines.append(f"[{section}]")
            for key, value in values.items():
                if isinstance(value, str):
                    lines.append(f'{key} = "{value}"')
                elif isinstance(value, bool):
                    lines.append(f"{key} = {str(value).lower()}")
                elif isinstance(value, (int, float)):
                    lines.append(f"{key} = {value}")
                elif isinstance(value, list):
                    items = ", ".join(f'"{v}"' if isinstance(v, str) else str(v) for v in value)
                    lines.append(f"{key} = [{items}]")
            lines.append("")

    with open(path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines))

    return str(path)


def find_config_file(config_path: Optional[str] = None) -> Optional[Path]:
    """
    Find the configuration file to use.

    Args:
        config_path: Explicit path to config file (highest priority)

    Returns:
        Path to config file, or None if not found
    """
    if config_path:
        path = Path(config_path)
        if path.exists():
            return path
        logger.warning(f"Specified config file not found: {config_path}")
        return None

    for location in CONFIG_LOCATIONS:
        if location.exists():
            return location

    return None


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from file or use defaults.

    Args:
        config_path: Optional explicit path to config file

    Returns:
        Config object with merged settings
    """
    config_data = _deep_copy_dict(DEFAULT_CONFIG)

    config_file = find_config_file(config_path)

    if config_file:
        try:
            file_config = load_toml(config_file)
        except (OSError, ConfigError) as e:
            logger.warning(f"Error loading config file {config_file}: {e}")
            return Config.from_dict(config_data)
        config_data = _merge_dicts(config_data, file_config)
        logger.info(f"Loaded configuration from {config_file}")
        return Config.from_dict(config_data, source=str(config_file))

    return Config.from_dict(config_data)


def get_default_config() -> Config:
    """Get the default configuration."""
    return Config.from_dict(_deep_copy_dict(DEFAULT_CONFIG))


def create_default_config_file(filepath: Optional[str] = None) -> str:
    """
    Create a default configuration file.

    Args:
        filepath: Path to create the file (default: ./buildmanifest.toml)

    Returns:
        Path to the created file
    """
    if filepath is None:
        filepath = "buildmanifest.toml"

    return save_toml(DEFAULT_CONFIG, filepath)


_config: Optional[Config] = None


def get_config() -> Config:
    """Get the active configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Optional[Config]) -> None:
    """Replace the active configuration (None forces a reload on next use)."""
    global _config
    _config = config


def _deep_copy_dict(d: Dict[str, Any]) -> Dict[str, Any]:
    """Create a deep copy of a dictionary."""
    result = {}
    for key, value in d.items():
        if isinstance(value, dict):
            result[key] = _deep_copy_dict(value)
        elif isinstance(value, list):
            result[key] = value.copy()
        else:
            result[key] = value
    return result


def _merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge two dictionaries, with override taking precedence."""
    result = _deep_copy_dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dicts(result[key], value)
        else:
            result[key] = value
    return result
