"""
Configuration File Support for sslexpiry.

Provides TOML-based configuration management:
- Default config location (~/.sslexpiry/config.toml)
- Project-level config (.sslexpiry.toml)
- Environment variable overrides
- Config validation and error messages

by BitSpectreLabs
"""

import logging
import os
import tomllib
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional, Dict, Any, List

from sslexpiry.core.exceptions import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class CheckConfig:
    """Certificate check defaults."""
    days: int = 30
    timeout: float = 30.0
    ignore_chain: bool = False
    blocklist: List[str] = field(default_factory=list)
    client_name: str = "mail.example.com"
    ca_file: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CheckConfig":
        """Create from dictionary."""
        return cls(
            days=data.get("days", 30),
            timeout=data.get("timeout", 30.0),
            ignore_chain=data.get("ignore_chain", False),
            blocklist=list(data.get("blocklist", [])),
            client_name=data.get("client_name", "mail.example.com"),
            ca_file=data.get("ca_file"),
        )


@dataclass
class OutputConfig:
    """Output configuration."""
    color_enabled: bool = True
    verbose: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OutputConfig":
        """Create from dictionary."""
        return cls(
            color_enabled=data.get("color_enabled", True),
            verbose=data.get("verbose", False),
        )


@dataclass
class AdvancedConfig:
    """Advanced configuration."""
    log_level: str = "WARNING"
    log_file: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AdvancedConfig":
        """Create from dictionary."""
        return cls(
            log_level=data.get("log_level", "WARNING"),
            log_file=data.get("log_file"),
        )


@dataclass
class SSLExpiryConfig:
    """
    Complete sslexpiry configuration.

    Contains all configuration sections.
    """
    check: CheckConfig = field(default_factory=CheckConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    advanced: AdvancedConfig = field(default_factory=AdvancedConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "check": self.check.to_dict(),
            "output": self.output.to_dict(),
            "advanced": self.advanced.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SSLExpiryConfig":
        """Create from dictionary."""
        return cls(
            check=CheckConfig.from_dict(data.get("check", {})),
            output=OutputConfig.from_dict(data.get("output", {})),
            advanced=AdvancedConfig.from_dict(data.get("advanced", {})),
        )

    def get_value(self, key_path: str) -> Any:
        """
        Get a configuration value by dot-separated path.

        Args:
            key_path: Dot-separated path (e.g., "check.days")

        Returns:
            Configuration value
        """
        obj: Any = self.to_dict()
        for part in key_path.split("."):
            if not isinstance(obj, dict) or part not in obj:
                raise KeyError(f"Configuration key not found: {key_path}")
            obj = obj[part]
        return obj


def _parse_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class ConfigManager:
    """
    Configuration file manager.

    Handles loading configuration from multiple sources:
    1. Built-in defaults
    2. User config (~/.sslexpiry/config.toml)
    3. Project config (.sslexpiry.toml)
    4. Environment variables (SSLEXPIRY_*)
    5. CLI arguments (highest priority, applied by the caller)
    """

    DEFAULT_USER_CONFIG = Path.home() / ".sslexpiry" / "config.toml"
    PROJECT_CONFIG_NAME = ".sslexpiry.toml"
    ENV_PREFIX = "SSLEXPIRY_"

    def __init__(
        self,
        user_config_path: Optional[Path] = None,
        project_config_path: Optional[Path] = None,
        load_env: bool = True
    ):
        """
        Initialize ConfigManager.

        Args:
            user_config_path: Custom user config path
            project_config_path: Custom project config path
            load_env: Whether to load from environment variables
        """
        self.user_config_path = user_config_path or self.DEFAULT_USER_CONFIG
        self.project_config_path = project_config_path
        self.load_env = load_env

        self._config = SSLExpiryConfig()
        self._loaded_sources: List[str] = ["defaults"]

    def load(self) -> SSLExpiryConfig:
        """
        Load configuration from all sources.

        Returns:
            Merged SSLExpiryConfig

        Raises:
            ConfigError: if a config file cannot be read or parsed
        """
        self._config = SSLExpiryConfig()
        self._loaded_sources = ["defaults"]

        if self.user_config_path.exists():
            try:
                self._load_toml_file(self.user_config_path)
            except (OSError, tomllib.TOMLDecodeError) as e:
                raise ConfigError(f"Error loading user config: {e}") from e
            self._loaded_sources.append(f"user:{self.user_config_path}")

        project_config = self._find_project_config()
        if project_config and project_config.exists():
            try:
                self._load_toml_file(project_config)
            except (OSError, tomllib.TOMLDecodeError) as e:
                raise ConfigError(f"Error loading project config: {e}") from e
            self._loaded_sources.append(f"project:{project_config}")

        if self.load_env:
            self._load_environment()

        logger.debug("Configuration loaded from %s", ", ".join(self._loaded_sources))
        return self._config

    def get_config(self) -> SSLExpiryConfig:
        """Get current configuration."""
        return self._config

    def get_loaded_sources(self) -> List[str]:
        """Get list of loaded configuration sources."""
        return self._loaded_sources.copy()

    def get_value(self, key_path: str) -> Any:
        """Get a configuration value by dot-separated path."""
        return self._config.get_value(key_path)

    def validate(self) -> List[str]:
        """
        Validate current configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if self._config.check.days < 0:
            errors.append("check.days must not be negative")
        if self._config.check.timeout <= 0:
            errors.append("check.timeout must be positive")
        if not self._config.check.client_name:
            errors.append("check.client_name must not be empty")
        if self._config.check.ca_file and not Path(self._config.check.ca_file).expanduser().exists():
            errors.append(f"check.ca_file does not exist: {self._config.check.ca_file}")

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self._config.advanced.log_level.upper() not in valid_log_levels:
            errors.append(f"advanced.log_level must be one of: {', '.join(valid_log_levels)}")

        return errors

    def _find_project_config(self) -> Optional[Path]:
        """Find project config file by walking up directory tree."""
        if self.project_config_path:
            return self.project_config_path

        current = Path.cwd()
        while current != current.parent:
            config_path = current / self.PROJECT_CONFIG_NAME
            if config_path.exists():
                return config_path
            current = current.parent

        return None

    def _load_toml_file(self, path: Path) -> None:
        """Load and merge a TOML config file."""
        with open(path, "rb") as f:
            data = tomllib.load(f)

        self._merge_config(data)

    def _merge_config(self, data: Dict[str, Any]) -> None:
        """Merge loaded config data into current config."""
        if "check" in data:
            self._config.check = CheckConfig.from_dict({
                **self._config.check.to_dict(),
                **data["check"]
            })

        if "output" in data:
            self._config.output = OutputConfig.from_dict({
                **self._config.output.to_dict(),
                **data["output"]
            })

        if "advanced" in data:
            self._config.advanced = AdvancedConfig.from_dict({
                **self._config.advanced.to_dict(),
                **data["advanced"]
            })

    def _load_environment(self) -> None:
        """Load configuration from environment variables."""
        env_mappings = {
            # Check settings
            f"{self.ENV_PREFIX}DAYS": ("check", "days", int),
            f"{self.ENV_PREFIX}TIMEOUT": ("check", "timeout", float),
            f"{self.ENV_PREFIX}IGNORE_CHAIN": ("check", "ignore_chain", self._parse_bool),
            f"{self.ENV_PREFIX}BLOCKLIST": ("check", "blocklist", _parse_list),
            f"{self.ENV_PREFIX}CLIENT_NAME": ("check", "client_name", str),
            f"{self.ENV_PREFIX}CA_FILE": ("check", "ca_file", str),

            # Output
            f"{self.ENV_PREFIX}COLOR": ("output", "color_enabled", self._parse_bool),
            f"{self.ENV_PREFIX}VERBOSE": ("output", "verbose", self._parse_bool),

            # Advanced
            f"{self.ENV_PREFIX}LOG_LEVEL": ("advanced", "log_level", str),
            f"{self.ENV_PREFIX}LOG_FILE": ("advanced", "log_file", str),
        }

        for env_var, (section, key, converter) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is None:
                continue
            try:
                converted = converter(value)
            except (ValueError, TypeError):
                logger.warning("Ignoring invalid value for %s: %r", env_var, value)
                continue
            setattr(getattr(self._config, section), key, converted)
            if "environment" not in self._loaded_sources:
                self._loaded_sources.append("environment")

    @staticmethod
    def _parse_bool(value: str) -> bool:
        """Parse boolean from string."""
        return value.lower() in ("true", "1", "yes", "on")
