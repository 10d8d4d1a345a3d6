"""Centralized constants and configuration for Link Monitor.

This module contains all magic numbers, strings, and configuration values
used by the monitoring engine. Centralizing them makes the code easier to
maintain and configure.

Usage:
    from config.constants import INTERVALS, THRESHOLDS, STORAGE

    # Access values
    tick = INTERVALS.WATCHDOG_TICK_SECONDS
    gap_threshold = THRESHOLDS.GAP_THRESHOLD_SECONDS
"""
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Intervals:
    """Time intervals for various operations (in seconds).

    All interval values are in seconds unless otherwise specified.
    """
    # Ping watchdog
    WATCHDOG_TICK_SECONDS: float = 1.0
    SILENCE_THRESHOLD_SECONDS: float = 1.5   # Silence longer than this = timeout marker

    # Speedtest scheduling
    SPEEDTEST_INTERVAL_SECONDS: float = 900.0   # 15 minutes
    SPEEDTEST_WARMUP_SECONDS: float = 10.0      # First run after scheduler start
    SPEEDTEST_TIMEOUT_SECONDS: float = 120.0

    # Retention sweep
    RETENTION_INTERVAL_SECONDS: float = 3600.0  # Hourly
    RETENTION_INITIAL_DELAY_SECONDS: float = 5.0

    # Subprocess timeouts
    SUBPROCESS_TIMEOUT_SECONDS: float = 5.0
    PROCESS_TERMINATE_TIMEOUT_SECONDS: float = 2.0


@dataclass(frozen=True)
class Thresholds:
    """Threshold values for detection and history sizes."""
    # Wall-clock gap between two real ping replies (strictly greater = gap event)
    GAP_THRESHOLD_SECONDS: int = 2

    # History sizes
    PING_HISTORY_MAX_POINTS: int = 120
    GAP_HISTORY_MAX_BUCKETS: int = 60
    SPEEDTEST_HISTORY_MAX_POINTS: int = 20
    RECENT_SAMPLES_DEFAULT: int = 10
    RECENT_ISSUES_DEFAULT: int = 20

    # Window used to correlate a speedtest with the ping average
    SPEEDTEST_PING_WINDOW_MINUTES: int = 5


@dataclass(frozen=True)
class StorageConfig:
    """Storage and file-related configuration."""
    # Directory and file names
    DATA_DIR_NAME: str = ".link-monitor"
    SETTINGS_FILE: str = "settings.json"
    LOG_FILE: str = "link_monitor.log"

    # SQLite database
    DATABASE_FILE: str = "link_monitor.db"

    # Data retention (days)
    PING_RETENTION_DAYS: int = 7
    SPEEDTEST_RETENTION_DAYS: int = 30

    # Log rotation
    LOG_MAX_BYTES: int = 5_000_000  # 5MB
    LOG_BACKUP_COUNT: int = 3


@dataclass(frozen=True)
class NetworkConfig:
    """Network probe configuration."""
    DEFAULT_PING_HOST: str = "google.com"
    SPEEDTEST_COMMAND: Tuple[str, ...] = ("speedtest-cli", "--csv")


APP_NAME = "Link Monitor"
APP_VERSION = "1.0.0"


# Global instances - import these
INTERVALS = Intervals()
THRESHOLDS = Thresholds()
STORAGE = StorageConfig()
NETWORK = NetworkConfig()


# Allowed commands for subprocess safety
ALLOWED_SUBPROCESS_COMMANDS = frozenset({
    'ping',
    'speedtest-cli',
    'speedtest',
})
