"""
Tests for sslexpiry configuration
by BitSpectreLabs
"""

import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from sslexpiry.core.config import (
    CheckConfig,
    ConfigManager,
    SSLExpiryConfig,
)
from sslexpiry.core.exceptions import ConfigError


class TestSSLExpiryConfig:
    """Tests for the configuration dataclasses."""

    def test_default_values(self):
        """Test defaults."""
        config = SSLExpiryConfig()
        assert config.check.days == 30
        assert config.check.timeout == 30.0
        assert config.check.ignore_chain is False
        assert config.check.blocklist == []
        assert config.check.client_name == "mail.example.com"
        assert config.output.color_enabled is True
        assert config.advanced.log_level == "WARNING"

    def test_round_trip_dict(self):
        """Test to_dict and from_dict agree."""
        config = SSLExpiryConfig(check=CheckConfig(days=14, blocklist=["ABC"]))
        restored = SSLExpiryConfig.from_dict(config.to_dict())
        assert restored == config

    def test_get_value(self):
        """Test dotted lookup."""
        config = SSLExpiryConfig()
        assert config.get_value("check.days") == 30
        with pytest.raises(KeyError):
            config.get_value("check.nope")


class TestConfigManager:
    """Tests for ConfigManager class."""

    @pytest.fixture
    def temp_dir(self):
        """Create temporary directory for config files."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    @pytest.fixture
    def manager(self, temp_dir):
        """Create config manager with temp directory."""
        return ConfigManager(
            user_config_path=temp_dir / "config.toml",
            project_config_path=temp_dir / ".sslexpiry.toml",
            load_env=False,
        )

    def test_load_defaults(self, manager):
        """Test loading with defaults only."""
        config = manager.load()
        assert config.check.days == 30
        assert manager.get_loaded_sources() == ["defaults"]

    def test_load_toml_file(self, manager, temp_dir):
        """Test loading the user config file."""
        (temp_dir / "config.toml").write_text(
            '[check]\ndays = 14\nblocklist = ["0A:BC"]\n\n[output]\nverbose = true\n'
        )
        config = manager.load()
        assert config.check.days == 14
        assert config.check.blocklist == ["0A:BC"]
        assert config.check.timeout == 30.0
        assert config.output.verbose is True
        assert any(s.startswith("user:") for s in manager.get_loaded_sources())

    def test_project_overrides_user(self, manager, temp_dir):
        """Test the project file wins over the user file."""
        (temp_dir / "config.toml").write_text("[check]\ndays = 14\ntimeout = 5.0\n")
        (temp_dir / ".sslexpiry.toml").write_text("[check]\ndays = 7\n")
        config = manager.load()
        assert config.check.days == 7
        assert config.check.timeout == 5.0

    def test_invalid_toml(self, manager, temp_dir):
        """Test a broken file raises ConfigError."""
        (temp_dir / "config.toml").write_text("[check\ndays = ")
        with pytest.raises(ConfigError, match="user config"):
            manager.load()

    def test_find_project_config(self, temp_dir, monkeypatch):
        """Test the project file is found in a parent directory."""
        (temp_dir / ".sslexpiry.toml").write_text("[check]\nignore_chain = true\n")
        nested = temp_dir / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)
        manager = ConfigManager(user_config_path=temp_dir / "config.toml", load_env=False)
        assert manager.load().check.ignore_chain is True

    def test_environment_variables(self, temp_dir):
        """Test loading from environment variables."""
        env = {
            "SSLEXPIRY_DAYS": "10",
            "SSLEXPIRY_TIMEOUT": "2.5",
            "SSLEXPIRY_IGNORE_CHAIN": "yes",
            "SSLEXPIRY_BLOCKLIST": "AB, CD,,",
            "SSLEXPIRY_COLOR": "0",
        }
        with patch.dict("os.environ", env):
            manager = ConfigManager(
                user_config_path=temp_dir / "config.toml",
                project_config_path=temp_dir / ".sslexpiry.toml",
                load_env=True,
            )
            config = manager.load()

        assert config.check.days == 10
        assert config.check.timeout == 2.5
        assert config.check.ignore_chain is True
        assert config.check.blocklist == ["AB", "CD"]
        assert config.output.color_enabled is False
        assert "environment" in manager.get_loaded_sources()

    def test_invalid_environment_value_ignored(self, temp_dir):
        """Test an unparsable variable keeps the previous value."""
        with patch.dict("os.environ", {"SSLEXPIRY_DAYS": "soon"}):
            manager = ConfigManager(
                user_config_path=temp_dir / "config.toml",
                project_config_path=temp_dir / ".sslexpiry.toml",
                load_env=True,
            )
            config = manager.load()
        assert config.check.days == 30

    def test_validate_defaults(self, manager):
        """Test the defaults are valid."""
        manager.load()
        assert manager.validate() == []

    def test_validate_invalid_values(self, manager):
        """Test validation catches bad values."""
        manager.load()
        manager._config.check.days = -1
        manager._config.check.timeout = 0
        manager._config.check.ca_file = "/nonexistent/ca.pem"
        manager._config.advanced.log_level = "LOUD"

        errors = manager.validate()
        assert any("days" in e for e in errors)
        assert any("timeout" in e for e in errors)
        assert any("ca_file" in e for e in errors)
        assert any("log_level" in e for e in errors)
