"""Periodic purge of aged monitoring records."""
import time
from typing import Callable, Dict, Optional

from app.timer import PeriodicTimer
from config import INTERVALS, STORAGE, get_logger
from config.exceptions import StorageError
from config.logging_config import LogContext
from storage.records import RecordKind
from storage.sqlite_store import TimeSeriesStore

logger = get_logger(__name__)

SECONDS_PER_DAY = 86400


class RetentionSweeper:
    """Deletes records older than their kind's retention period.

    Ping samples and gap events are kept for ping_retention_days; speedtest
    results and the issue trail for speedtest_retention_days.
    """

    def __init__(
        self,
        store: TimeSeriesStore,
        ping_retention_days: int = STORAGE.PING_RETENTION_DAYS,
        speedtest_retention_days: int = STORAGE.SPEEDTEST_RETENTION_DAYS,
        interval_seconds: float = INTERVALS.RETENTION_INTERVAL_SECONDS,
        initial_delay_seconds: float = INTERVALS.RETENTION_INITIAL_DELAY_SECONDS,
        clock: Callable[[], float] = time.time,
        timer_factory: Callable[..., PeriodicTimer] = PeriodicTimer,
    ):
        self._store = store
        self._retention_days = {
            RecordKind.PING: ping_retention_days,
            RecordKind.GAP: ping_retention_days,
            RecordKind.SPEEDTEST: speedtest_retention_days,
            RecordKind.ISSUE: speedtest_retention_days,
        }
        self._interval = interval_seconds
        self._initial_delay = initial_delay_seconds
        self._clock = clock
        self._timer_factory = timer_factory
        self._timer: Optional[PeriodicTimer] = None

    @property
    def retention_days(self) -> Dict[RecordKind, int]:
        return dict(self._retention_days)

    def sweep(self) -> Dict[RecordKind, int]:
        """Purge every kind once.

        Returns:
            Number of deleted records per kind. A kind whose purge failed
            reports 0; the other kinds are still purged.
        """
        now = self._clock()
        deleted: Dict[RecordKind, int] = {}

        with LogContext(logger, "Retention sweep"):
            for kind, days in self._retention_days.items():
                try:
                    deleted[kind] = self._store.purge_older_than(kind, now - days * SECONDS_PER_DAY)
                except StorageError as e:
                    logger.error(f"Retention purge of {kind.value} records failed: {e}")
                    deleted[kind] = 0

        total = sum(deleted.values())
        if total:
            logger.info(
                "Retention sweep removed "
                + ", ".join(f"{count} {kind.value}" for kind, count in deleted.items() if count)
            )
        return deleted

    def start(self) -> None:
        """Sweep shortly after start, then every interval."""
        if self._timer is not None:
            return
        self._timer = self._timer_factory(
            self.sweep,
            interval=self._interval,
            initial_delay=self._initial_delay,
            name="RetentionSweeper",
        )
        self._timer.start()

    def stop(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.stop()
