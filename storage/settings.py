"""Persisted user settings for Link Monitor."""
import json
import threading
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Optional

from config import NETWORK, STORAGE, INTERVALS, get_logger
from config.exceptions import ConfigurationError

logger = get_logger(__name__)


@dataclass
class MonitorSettings:
    """Monitoring settings."""
    ping_host: str = NETWORK.DEFAULT_PING_HOST
    auto_start_monitoring: bool = True
    speedtest_enabled: bool = True
    speedtest_interval_minutes: int = int(INTERVALS.SPEEDTEST_INTERVAL_SECONDS // 60)

    # Retention (days)
    ping_retention_days: int = STORAGE.PING_RETENTION_DAYS
    speedtest_retention_days: int = STORAGE.SPEEDTEST_RETENTION_DAYS

    def validate(self) -> None:
        """Raise ConfigurationError if any value is unusable."""
        if not self.ping_host or not isinstance(self.ping_host, str):
            raise ConfigurationError("Ping host must be a non-empty string", {"value": self.ping_host})
        if self.ping_host.startswith("-"):
            raise ConfigurationError("Ping host must not look like an option", {"value": self.ping_host})
        for name in ("speedtest_interval_minutes", "ping_retention_days", "speedtest_retention_days"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive integer", {"value": value})

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'MonitorSettings':
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


class SettingsManager:
    """Loads, validates and saves MonitorSettings as JSON."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.settings_file = self.data_dir / STORAGE.SETTINGS_FILE
        self._lock = threading.Lock()
        self._settings: MonitorSettings = MonitorSettings()
        self._load()

    def _load(self) -> None:
        """Load settings from file, falling back to defaults."""
        if not self.settings_file.exists():
            self._settings = MonitorSettings()
            return
        try:
            with open(self.settings_file, 'r') as f:
                settings = MonitorSettings.from_dict(json.load(f))
            settings.validate()
            self._settings = settings
        except (json.JSONDecodeError, OSError, TypeError, ConfigurationError) as e:
            logger.warning(f"Could not load settings, using defaults: {e}")
            self._settings = MonitorSettings()

    def _save(self) -> None:
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with open(self.settings_file, 'w') as f:
                json.dump(self._settings.to_dict(), f, indent=2)
        except OSError as e:
            logger.error(f"Error saving settings: {e}")

    @property
    def settings(self) -> MonitorSettings:
        """A copy of the current settings."""
        return MonitorSettings(**self._settings.to_dict())

    def get(self, name: str) -> Any:
        return getattr(self._settings, name)

    def update(self, **changes: Any) -> MonitorSettings:
        """Apply and persist changes.

        Raises:
            ConfigurationError: On unknown names or invalid values; nothing
                is saved in that case.
        """
        with self._lock:
            data = self._settings.to_dict()
            unknown = set(changes) - set(data)
            if unknown:
                raise ConfigurationError("Unknown settings", {"names": sorted(unknown)})
            data.update(changes)
            candidate = MonitorSettings(**data)
            candidate.validate()
            self._settings = candidate
            self._save()
        logger.info(f"Settings updated: {', '.join(sorted(changes))}")
        return self.settings


def get_settings_manager(data_dir: Optional[Path] = None) -> SettingsManager:
    """Create a settings manager for the data directory."""
    if data_dir is None:
        data_dir = Path.home() / STORAGE.DATA_DIR_NAME
    return SettingsManager(data_dir)
