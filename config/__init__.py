"""Configuration module for Link Monitor.

Provides centralized configuration, logging, exceptions, and subprocess helpers.
"""
from config.constants import (
    ALLOWED_SUBPROCESS_COMMANDS,
    APP_NAME,
    APP_VERSION,
    INTERVALS,
    NETWORK,
    STORAGE,
    THRESHOLDS,
    Intervals,
    NetworkConfig,
    StorageConfig,
    Thresholds,
)
from config.exceptions import (
    ConfigurationError,
    LinkMonitorError,
    ProbeError,
    SpeedtestParseError,
    StorageError,
    SubprocessError,
)
from config.logging_config import get_logger, setup_logging
from config.subprocess_utils import LineProcess, safe_run, spawn_line_process

__all__ = [
    # Constants
    "INTERVALS",
    "THRESHOLDS",
    "STORAGE",
    "NETWORK",
    "Intervals",
    "Thresholds",
    "StorageConfig",
    "NetworkConfig",
    "ALLOWED_SUBPROCESS_COMMANDS",
    "APP_NAME",
    "APP_VERSION",
    # Exceptions
    "LinkMonitorError",
    "StorageError",
    "ConfigurationError",
    "SubprocessError",
    "ProbeError",
    "SpeedtestParseError",
    # Logging
    "setup_logging",
    "get_logger",
    # Subprocess
    "LineProcess",
    "safe_run",
    "spawn_line_process",
]
