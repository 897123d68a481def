"""
Configuration management with YAML loading and environment variable support.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .constants import DEFAULT_CHUNK_SIZE, ENV_CONFIG, ENV_LOG_LEVEL
from .errors import ConfigError
from .profile import Profile, new_profile
from .registry import ProfileRegistry, builtin_registry


@dataclass
class ProfileConfig:
    """A user-defined profile as written in the config file."""

    mimetype: str
    ext: str
    bitrate: int
    ffcmd: str

    @classmethod
    def from_dict(cls, name: str, data: Mapping) -> "ProfileConfig":
        """Validate one entry of the `profiles` section."""
        if not isinstance(data, Mapping):
            raise ConfigError(f"profile {name!r}: expected a mapping, got {type(data).__name__}")

        ffcmd = data.get("ffcmd")
        if not isinstance(ffcmd, str):
            raise ConfigError(f"profile {name!r}: 'ffcmd' must be a string")

        bitrate = data.get("bitrate", 0)
        if isinstance(bitrate, bool) or not isinstance(bitrate, int) or bitrate < 0:
            raise ConfigError(f"profile {name!r}: 'bitrate' must be a non-negative integer, got {bitrate!r}")

        return cls(
            mimetype=str(data.get("mimetype", "application/octet-stream")),
            ext=str(data.get("ext", "")),
            bitrate=bitrate,
            ffcmd=ffcmd,
        )

    def to_profile(self) -> Profile:
        return new_profile(self.mimetype, self.ext, self.bitrate, self.ffcmd)


@dataclass
class TranscodeConfig:
    default_profile: str = "mp3"
    timeout: float = 0  # seconds, 0 = no limit
    chunk_size: int = DEFAULT_CHUNK_SIZE


@dataclass
class LoggingConfig:
    level: str = field(default_factory=lambda: os.environ.get(ENV_LOG_LEVEL, "WARNING"))
    file: Path | None = None


@dataclass
class AppConfig:
    transcode: TranscodeConfig = field(default_factory=TranscodeConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    profiles: dict[str, ProfileConfig] = field(default_factory=dict)

    @classmethod
    def from_yaml(cls, path: Path) -> "AppConfig":
        """Load configuration from YAML file."""
        if not path.exists():
            return cls()

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"{path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"{path}: top level must be a mapping")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "AppConfig":
        """Create config from dictionary."""
        config = cls()

        if "transcode" in data:
            for key, value in (data["transcode"] or {}).items():
                if hasattr(config.transcode, key):
                    setattr(config.transcode, key, value)

        if "logging" in data:
            for key, value in (data["logging"] or {}).items():
                if hasattr(config.logging, key):
                    setattr(config.logging, key, Path(value) if key == "file" and value else value)

        for name, entry in (data.get("profiles") or {}).items():
            config.profiles[str(name)] = ProfileConfig.from_dict(str(name), entry)

        # Environment wins over the file
        if level := os.environ.get(ENV_LOG_LEVEL):
            config.logging.level = level

        return config

    def user_profiles(self) -> dict[str, Profile]:
        """Profiles defined in the config file, keyed by name."""
        return {name: entry.to_profile() for name, entry in self.profiles.items()}

    def registry(self, base: ProfileRegistry | None = None) -> ProfileRegistry:
        """Built-in (or given) profiles merged with the user's profiles."""
        if base is None:
            base = builtin_registry()
        return base.merge(self.user_profiles())


def _get_default_config_dir() -> Path:
    """Get default config directory."""
    # Check XDG config home
    if xdg_config := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_config) / "audio-transcoder"

    # Fall back to ~/.config
    return Path.home() / ".config" / "audio-transcoder"


def find_config_file() -> Path | None:
    """Search standard locations for a config file."""
    if env_path := os.environ.get(ENV_CONFIG):
        return Path(env_path)

    search_paths = [
        _get_default_config_dir() / "config.yaml",
        Path.cwd() / "atc.yaml",
    ]
    for path in search_paths:
        if path.exists():
            return path
    return None


def load_config(config_path: Path | None = None) -> AppConfig:
    """
    Load configuration.

    Args:
        config_path: Path to config file (default: searches standard locations)

    Returns:
        AppConfig (defaults if no file is found)

    Raises:
        ConfigError: The file exists but is invalid
    """
    if config_path is None:
        config_path = find_config_file()

    return AppConfig.from_yaml(config_path) if config_path else AppConfig()
