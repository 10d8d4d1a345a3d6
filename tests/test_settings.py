"""Tests for settings management."""

import json

import pytest

from config.exceptions import ConfigurationError
from storage.settings import MonitorSettings, SettingsManager, get_settings_manager


class TestMonitorSettings:
    """Tests for MonitorSettings dataclass."""

    def test_default_values(self):
        """Test default settings values."""
        settings = MonitorSettings()
        assert settings.ping_host == "google.com"
        assert settings.auto_start_monitoring is True
        assert settings.speedtest_enabled is True
        assert settings.speedtest_interval_minutes == 15
        assert settings.ping_retention_days == 7
        assert settings.speedtest_retention_days == 30

    def test_to_dict(self):
        """Test conversion to dictionary."""
        data = MonitorSettings(ping_host="1.1.1.1").to_dict()
        assert data["ping_host"] == "1.1.1.1"
        assert "speedtest_interval_minutes" in data

    def test_from_dict_ignores_unknown_keys(self):
        """Keys from other versions are dropped."""
        settings = MonitorSettings.from_dict({"ping_host": "example.com", "theme": "dark"})
        assert settings.ping_host == "example.com"

    @pytest.mark.parametrize("field_name, value", [
        ("ping_host", ""),
        ("ping_host", "-f"),
        ("speedtest_interval_minutes", 0),
        ("ping_retention_days", -1),
        ("speedtest_retention_days", True),
    ])
    def test_validate_rejects(self, field_name, value):
        """Unusable values raise ConfigurationError."""
        settings = MonitorSettings(**{field_name: value})
        with pytest.raises(ConfigurationError):
            settings.validate()


class TestSettingsManager:
    """Tests for SettingsManager class."""

    @pytest.fixture
    def settings_manager(self, temp_data_dir):
        """Create a SettingsManager with temporary directory."""
        return SettingsManager(temp_data_dir)

    def test_init_uses_defaults(self, settings_manager):
        """A missing file means default settings."""
        assert settings_manager.settings == MonitorSettings()

    def test_update_persists(self, settings_manager, temp_data_dir):
        """Updates are saved and reloaded."""
        settings_manager.update(ping_host="1.1.1.1", speedtest_interval_minutes=30)

        reloaded = SettingsManager(temp_data_dir)
        assert reloaded.get("ping_host") == "1.1.1.1"
        assert reloaded.get("speedtest_interval_minutes") == 30

    def test_update_unknown_name(self, settings_manager):
        """Unknown settings are rejected."""
        with pytest.raises(ConfigurationError):
            settings_manager.update(colour="blue")

    def test_update_invalid_value_not_saved(self, settings_manager, temp_data_dir):
        """An invalid update leaves the current settings untouched."""
        with pytest.raises(ConfigurationError):
            settings_manager.update(ping_retention_days=0)

        assert settings_manager.get("ping_retention_days") == 7
        assert not (temp_data_dir / "settings.json").exists() or \
            json.loads((temp_data_dir / "settings.json").read_text())["ping_retention_days"] == 7

    def test_settings_returns_copy(self, settings_manager):
        """Mutating the returned settings does not change the manager."""
        copy = settings_manager.settings
        copy.ping_host = "changed.example"
        assert settings_manager.get("ping_host") == "google.com"

    def test_corrupt_file_falls_back(self, temp_data_dir):
        """An unreadable settings file means defaults."""
        (temp_data_dir / "settings.json").write_text("{not json")
        assert SettingsManager(temp_data_dir).settings == MonitorSettings()

    def test_invalid_file_values_fall_back(self, temp_data_dir):
        """A settings file with invalid values means defaults."""
        (temp_data_dir / "settings.json").write_text(json.dumps({"speedtest_interval_minutes": -5}))
        assert SettingsManager(temp_data_dir).get("speedtest_interval_minutes") == 15

    def test_get_settings_manager(self, temp_data_dir):
        """The factory builds a manager for the directory."""
        manager = get_settings_manager(temp_data_dir)
        assert manager.data_dir == temp_data_dir
