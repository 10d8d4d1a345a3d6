"""Network issue logging.

Every anomaly the monitors notice (gaps, packet loss, probe failures,
speedtest failures) is written to the issue table as an audit trail and
mirrored to the application log.
"""
import time
from typing import Callable, List, Optional

from config import THRESHOLDS, get_logger
from config.exceptions import StorageError
from storage.records import IssueKind, IssueLogEntry, RecordKind
from storage.sqlite_store import TimeSeriesStore

logger = get_logger(__name__)


class IssueLog:
    """Writes IssueLogEntry records.

    Storage failures are logged and swallowed so that reporting an issue
    can never take down the monitor that noticed it.
    """

    def __init__(self, store: TimeSeriesStore, clock: Callable[[], float] = time.time):
        self._store = store
        self._clock = clock

    def log(self, kind: IssueKind, message: str, timestamp: Optional[float] = None) -> IssueLogEntry:
        """Record an issue.

        Args:
            kind: Issue category.
            message: Human-readable description.
            timestamp: Defaults to now.

        Returns:
            The entry that was (or failed to be) stored.
        """
        entry = IssueLogEntry(
            timestamp=self._clock() if timestamp is None else timestamp,
            kind=kind,
            message=message,
        )
        logger.warning(f"{kind.name}: {message}")
        try:
            self._store.insert(entry)
        except StorageError as e:
            logger.error(f"Failed to store issue {kind.name}: {e}")
        return entry

    def get_recent_issues(self, count: int = THRESHOLDS.RECENT_ISSUES_DEFAULT) -> List[IssueLogEntry]:
        """Get the most recent issues, oldest first."""
        return self._store.recent(RecordKind.ISSUE, count)
