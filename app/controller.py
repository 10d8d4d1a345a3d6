"""Application controller for Link Monitor.

Orchestrates the monitoring components and exposes the control surface
used by whatever presents the data. Every query returns plain dicts and
lists so callers can serialize them directly.

Usage:
    from app.controller import MonitorController
    from app.dependencies import create_dependencies

    deps = create_dependencies()
    controller = MonitorController(deps)
    controller.start()
"""
import platform
from typing import List, Optional

from config import APP_NAME, APP_VERSION, THRESHOLDS, get_logger
from app.dependencies import AppDependencies
from app.events import EventBus, EventType

logger = get_logger(__name__)


class MonitorController:
    """Central controller that orchestrates application logic.

    The controller:
    - Starts and stops the ping supervisor, speedtest schedule and
      retention sweep as one lifecycle
    - Forwards on-demand commands (start/stop monitoring, run a speedtest)
    - Serves statistics and chart history from the statistics engine

    Attributes:
        deps: The dependency container with all components.
        event_bus: Event bus for publishing state changes.
    """

    def __init__(self, deps: AppDependencies, event_bus: Optional[EventBus] = None):
        """Initialize the controller with dependencies.

        Args:
            deps: AppDependencies container with all required components.
            event_bus: Optional event bus (uses the container's if not provided).
        """
        self.deps = deps
        self.event_bus = event_bus or deps.event_bus
        self._running = False

        logger.info("MonitorController initialized")

    @property
    def is_running(self) -> bool:
        return self._running

    # === Lifecycle ===

    def start(self) -> None:
        """Start background monitoring according to the saved settings."""
        if self._running:
            return
        logger.info("Starting MonitorController...")
        self._running = True

        self.event_bus.publish(EventType.APP_STARTING)

        settings = self.deps.settings.settings
        if settings.auto_start_monitoring:
            self.deps.ping_supervisor.start()
        if settings.speedtest_enabled:
            self.deps.speedtest_scheduler.start()
        self.deps.retention_sweeper.start()

        logger.info("MonitorController started")

    def stop(self) -> None:
        """Stop all background work and flush the store."""
        if not self._running:
            return
        logger.info("Stopping MonitorController...")
        self._running = False

        self.deps.ping_supervisor.stop()
        self.deps.speedtest_scheduler.stop()
        self.deps.retention_sweeper.stop()

        # A run already in flight records its result before the final flush
        if not self.deps.speedtest_scheduler.wait_until_idle():
            logger.warning("Speedtest still running at shutdown; its result may be lost")

        # Flush data
        self.deps.store.flush()

        self.event_bus.publish(EventType.APP_STOPPING)

        logger.info("MonitorController stopped")

    # === Monitoring control ===

    def start_monitoring(self) -> dict:
        started = self.deps.ping_supervisor.start()
        return {"success": started, "running": self.deps.ping_supervisor.is_running}

    def stop_monitoring(self) -> dict:
        self.deps.ping_supervisor.stop()
        return {"success": True, "running": self.deps.ping_supervisor.is_running}

    def monitoring_status(self) -> dict:
        supervisor = self.deps.ping_supervisor
        return {"running": supervisor.is_running, "host": supervisor.host}

    # === Speedtest control ===

    def run_speedtest(self) -> dict:
        """Run a speedtest now, on the caller's thread.

        Returns:
            {"success": True, "result": {...}} or {"success": False, "error": msg}
        """
        return self.deps.speedtest_scheduler.run()

    def speedtest_status(self) -> dict:
        return {"running": self.deps.speedtest_scheduler.is_running}

    # === Statistics ===

    def ping_stats(self, window_minutes: float) -> dict:
        return self.deps.statistics.ping_stats(window_minutes).to_dict()

    def packet_loss(self, window_minutes: Optional[float] = None) -> dict:
        """Packet loss estimate; today's when no window is given."""
        return self.deps.statistics.packet_loss(window_minutes).to_dict()

    def gap_stats(self, window_minutes: Optional[float] = None) -> dict:
        """Gap aggregates; today's when no window is given."""
        return self.deps.statistics.gap_stats(window_minutes).to_dict()

    def speedtest_stats(self, window_minutes: float) -> dict:
        return self.deps.statistics.speedtest_stats(window_minutes).to_dict()

    def recent_samples(self, count: int = THRESHOLDS.RECENT_SAMPLES_DEFAULT) -> List[dict]:
        return [sample.to_dict() for sample in self.deps.statistics.recent_samples(count)]

    # === Chart history ===

    def ping_history(self, window_minutes: float, interval_seconds: int) -> List[dict]:
        points = self.deps.statistics.ping_history(window_minutes, interval_seconds)
        return [point.to_dict() for point in points]

    def speedtest_history(self, window_minutes: float) -> List[dict]:
        return [point.to_dict() for point in self.deps.statistics.speedtest_history(window_minutes)]

    def gap_history(self, window_minutes: float, group_by: str = "minute") -> List[dict]:
        """Gap history per minute or hour.

        Raises:
            ValueError: If group_by is not "minute" or "hour".
        """
        points = self.deps.statistics.gap_history(window_minutes, group_by)
        return [point.to_dict() for point in points]

    def last_speedtest(self) -> Optional[dict]:
        record = self.deps.statistics.last_speedtest()
        return record.to_dict() if record is not None else None

    # === Diagnostics ===

    def recent_issues(self, count: int = THRESHOLDS.RECENT_ISSUES_DEFAULT) -> List[dict]:
        return [entry.to_dict() for entry in self.deps.issue_log.get_recent_issues(count)]

    def app_info(self) -> dict:
        """Version, platform and storage details."""
        return {
            "name": APP_NAME,
            "version": APP_VERSION,
            "platform": platform.platform(),
            "python": platform.python_version(),
            "data_dir": str(self.deps.data_dir) if self.deps.data_dir else None,
            "database": self.deps.store.get_database_stats(),
            "monitoring": self.monitoring_status(),
        }
