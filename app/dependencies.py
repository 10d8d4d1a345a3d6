"""Dependency injection container for Link Monitor.

Provides a centralized way to create and wire application components,
making them easier to test and swap out.

Usage:
    from app.dependencies import create_dependencies

    # Create all dependencies
    deps = create_dependencies()

    # Access individual components
    deps.ping_supervisor.start()
    deps.statistics.ping_stats(window_minutes=5)
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from config import STORAGE, get_logger

logger = get_logger(__name__)


@dataclass
class AppDependencies:
    """Container for all application dependencies.

    Using a dataclass makes dependencies explicit and easy to replace in
    tests. Each field represents a component that can be injected.
    """

    # Storage components
    store: "TimeSeriesStore"
    settings: "SettingsManager"

    # Monitoring components
    issue_log: "IssueLog"
    statistics: "StatisticsEngine"
    ping_supervisor: "PingSupervisor"
    speedtest_scheduler: "SpeedtestScheduler"
    retention_sweeper: "RetentionSweeper"

    # Event bus (shared by all producers)
    event_bus: "EventBus"

    data_dir: Optional[Path] = None

    def __post_init__(self):
        """Log dependency creation."""
        logger.debug("AppDependencies container created")


def create_dependencies(
    data_dir: Optional[Path] = None, event_bus: Optional["EventBus"] = None
) -> AppDependencies:
    """Create all application dependencies.

    Factory function that instantiates all required components and wires
    them to one store and one event bus, configured from the persisted
    settings.

    Args:
        data_dir: Override the default data directory.
        event_bus: Provide an existing event bus, or one will be created.

    Returns:
        AppDependencies container with all components.

    Example:
        >>> deps = create_dependencies(Path("/tmp/linkmon"))
        >>> deps.speedtest_scheduler.run()
    """
    # Import here to avoid circular imports
    from app.events import EventBus
    from monitor.issues import IssueLog
    from monitor.ping import PingSupervisor
    from monitor.retention import RetentionSweeper
    from monitor.speed_test import SpeedtestScheduler
    from monitor.statistics import StatisticsEngine
    from storage.settings import get_settings_manager
    from storage.sqlite_store import TimeSeriesStore

    logger.info("Creating application dependencies...")

    # Resolve data directory
    if data_dir is None:
        data_dir = Path.home() / STORAGE.DATA_DIR_NAME

    if event_bus is None:
        event_bus = EventBus()

    # Create storage first (everything else writes to or reads from it)
    store = TimeSeriesStore(data_dir=data_dir)
    settings = get_settings_manager(data_dir)
    current = settings.settings

    issue_log = IssueLog(store)
    statistics = StatisticsEngine(store)

    ping_supervisor = PingSupervisor(store, issue_log, event_bus, host=current.ping_host)
    speedtest_scheduler = SpeedtestScheduler(
        store,
        statistics,
        issue_log,
        event_bus,
        interval_seconds=current.speedtest_interval_minutes * 60,
    )
    retention_sweeper = RetentionSweeper(
        store,
        ping_retention_days=current.ping_retention_days,
        speedtest_retention_days=current.speedtest_retention_days,
    )

    deps = AppDependencies(
        store=store,
        settings=settings,
        issue_log=issue_log,
        statistics=statistics,
        ping_supervisor=ping_supervisor,
        speedtest_scheduler=speedtest_scheduler,
        retention_sweeper=retention_sweeper,
        event_bus=event_bus,
        data_dir=data_dir,
    )

    logger.info("All dependencies created successfully")
    return deps
