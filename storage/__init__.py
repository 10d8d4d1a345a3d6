"""Data persistence components."""

from .records import GapEvent, IssueKind, IssueLogEntry, PingSample, RecordKind, SpeedtestRecord
from .settings import MonitorSettings, SettingsManager, get_settings_manager
from .sqlite_store import TimeSeriesStore

__all__ = [
    "GapEvent",
    "IssueKind",
    "IssueLogEntry",
    "MonitorSettings",
    "PingSample",
    "RecordKind",
    "SettingsManager",
    "SpeedtestRecord",
    "TimeSeriesStore",
    "get_settings_manager",
]
