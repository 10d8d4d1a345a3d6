"""Network monitoring components.

This package provides the probes that feed the time-series store and the
statistics computed over it.

Modules:
    ping: Continuous ping supervision, gap and packet loss detection
    speed_test: Scheduled speedtest-cli runs
    statistics: Windowed aggregates and chart history
    retention: Periodic purge of aged records
    issues: Diagnostic issue trail

Example:
    >>> from monitor import StatisticsEngine
    >>> engine = StatisticsEngine(store)
    >>> loss = engine.packet_loss()
    >>> print(f"Lost {loss.lost} of {loss.expected} today")
"""
from .issues import IssueLog
from .ping import PingSupervisor, parse_ping_line
from .retention import RetentionSweeper
from .speed_test import SpeedtestScheduler, parse_speedtest_csv
from .statistics import (
    GapHistoryPoint,
    GapStats,
    PacketLoss,
    PingHistoryPoint,
    PingStats,
    SpeedtestHistoryPoint,
    SpeedtestStats,
    StatisticsEngine,
)

__all__ = [
    # Probes
    "PingSupervisor",
    "SpeedtestScheduler",
    "parse_ping_line",
    "parse_speedtest_csv",
    # Statistics
    "StatisticsEngine",
    "PingStats",
    "PacketLoss",
    "GapStats",
    "SpeedtestStats",
    "PingHistoryPoint",
    "SpeedtestHistoryPoint",
    "GapHistoryPoint",
    # Maintenance
    "RetentionSweeper",
    "IssueLog",
]
