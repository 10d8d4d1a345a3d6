"""SQLite-based time-series store for monitoring records.

This module persists ping samples, gap events, speedtest results and the
issue trail. Writes are append-only; reads are windowed by timestamp.

Features:
- One table per record kind with an indexed epoch-seconds timestamp
- Window queries ordered by timestamp, ties broken by insertion order
- Retention purge by cutoff timestamp
- Database statistics and WAL checkpointing
"""
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, List, Optional, Union

from config import STORAGE, get_logger
from config.exceptions import StorageError
from storage.records import (
    GapEvent,
    IssueKind,
    IssueLogEntry,
    PingSample,
    RecordKind,
    SpeedtestRecord,
)

logger = get_logger(__name__)


# Schema version for migrations
SCHEMA_VERSION = 1

Record = Union[PingSample, GapEvent, SpeedtestRecord, IssueLogEntry]

_TABLES = {
    RecordKind.PING: "pings",
    RecordKind.GAP: "gaps",
    RecordKind.SPEEDTEST: "speedtests",
    RecordKind.ISSUE: "issues",
}

_COLUMNS = {
    RecordKind.PING: ("timestamp", "latency_ms", "sequence", "ttl", "is_timeout"),
    RecordKind.GAP: ("timestamp", "gap_seconds", "seq_from", "seq_to"),
    RecordKind.SPEEDTEST: (
        "timestamp", "server", "latency_ms", "download_mbps", "upload_mbps", "ping_avg_ms",
    ),
    RecordKind.ISSUE: ("timestamp", "kind", "message"),
}


def _kind_of(record: Record) -> RecordKind:
    if isinstance(record, PingSample):
        return RecordKind.PING
    if isinstance(record, GapEvent):
        return RecordKind.GAP
    if isinstance(record, SpeedtestRecord):
        return RecordKind.SPEEDTEST
    if isinstance(record, IssueLogEntry):
        return RecordKind.ISSUE
    raise StorageError(f"Unsupported record type: {type(record).__name__}")


def _to_row(kind: RecordKind, record: Record) -> tuple:
    if kind is RecordKind.PING:
        return (record.timestamp, record.latency_ms, record.sequence, record.ttl,
                1 if record.is_timeout else 0)
    if kind is RecordKind.GAP:
        return (record.timestamp, record.gap_seconds, record.seq_from, record.seq_to)
    if kind is RecordKind.SPEEDTEST:
        return (record.timestamp, record.server, record.latency_ms, record.download_mbps,
                record.upload_mbps, record.ping_avg_ms)
    return (record.timestamp, record.kind.value, record.message)


def _from_row(kind: RecordKind, row: sqlite3.Row) -> Record:
    if kind is RecordKind.PING:
        return PingSample(
            timestamp=row["timestamp"],
            latency_ms=row["latency_ms"],
            sequence=row["sequence"],
            ttl=row["ttl"],
            is_timeout=bool(row["is_timeout"]),
        )
    if kind is RecordKind.GAP:
        return GapEvent(
            timestamp=row["timestamp"],
            gap_seconds=row["gap_seconds"],
            seq_from=row["seq_from"],
            seq_to=row["seq_to"],
        )
    if kind is RecordKind.SPEEDTEST:
        return SpeedtestRecord(
            timestamp=row["timestamp"],
            server=row["server"],
            latency_ms=row["latency_ms"],
            download_mbps=row["download_mbps"],
            upload_mbps=row["upload_mbps"],
            ping_avg_ms=row["ping_avg_ms"],
        )
    return IssueLogEntry(
        timestamp=row["timestamp"],
        kind=IssueKind(row["kind"]),
        message=row["message"],
    )


class TimeSeriesStore:
    """Append-only store for the four monitoring record kinds.

    Each operation opens its own short-lived connection; writes are
    serialized with a lock so inserts from one producer keep their order.
    """

    DEFAULT_DATA_DIR = Path.home() / STORAGE.DATA_DIR_NAME
    DEFAULT_DB_FILE = STORAGE.DATABASE_FILE

    # SQL schema for database tables
    SCHEMA = """
    -- Ping replies and synthetic timeout markers
    CREATE TABLE IF NOT EXISTS pings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp REAL NOT NULL,
        latency_ms REAL,
        sequence INTEGER,
        ttl INTEGER,
        is_timeout INTEGER NOT NULL DEFAULT 0
    );

    -- Wall-clock gaps between real replies
    CREATE TABLE IF NOT EXISTS gaps (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp REAL NOT NULL,
        gap_seconds INTEGER NOT NULL,
        seq_from INTEGER,
        seq_to INTEGER
    );

    -- Bandwidth probe attempts (throughput NULL on failure)
    CREATE TABLE IF NOT EXISTS speedtests (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp REAL NOT NULL,
        server TEXT,
        latency_ms REAL,
        download_mbps REAL,
        upload_mbps REAL,
        ping_avg_ms REAL
    );

    -- Diagnostic issue trail
    CREATE TABLE IF NOT EXISTS issues (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp REAL NOT NULL,
        kind TEXT NOT NULL,
        message TEXT NOT NULL
    );

    -- Schema version tracking
    CREATE TABLE IF NOT EXISTS schema_info (
        key TEXT PRIMARY KEY,
        value TEXT
    );

    CREATE INDEX IF NOT EXISTS idx_pings_timestamp ON pings(timestamp);
    CREATE INDEX IF NOT EXISTS idx_gaps_timestamp ON gaps(timestamp);
    CREATE INDEX IF NOT EXISTS idx_speedtests_timestamp ON speedtests(timestamp);
    CREATE INDEX IF NOT EXISTS idx_issues_timestamp ON issues(timestamp);
    """

    def __init__(self, data_dir: Optional[Path] = None):
        """Initialize the store.

        Args:
            data_dir: Directory for database file. Defaults to ~/.link-monitor/
        """
        self.data_dir = Path(data_dir) if data_dir else self.DEFAULT_DATA_DIR
        self.db_path = self.data_dir / self.DEFAULT_DB_FILE
        self._lock = threading.Lock()

        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._init_db()

        logger.info(f"TimeSeriesStore initialized at {self.db_path}")

    @contextmanager
    def _connection(self):
        """Context manager for database connections.

        Uses WAL mode so readers don't block the 1 Hz ping writer.
        """
        conn = sqlite3.connect(
            self.db_path,
            timeout=30.0,
            isolation_level=None  # Autocommit mode
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        try:
            yield conn
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Initialize database schema."""
        try:
            with self._connection() as conn:
                conn.executescript(self.SCHEMA)
                conn.execute(
                    "INSERT OR IGNORE INTO schema_info (key, value) VALUES (?, ?)",
                    ("version", str(SCHEMA_VERSION))
                )
            logger.debug("Database schema initialized")
        except sqlite3.Error as e:
            logger.error(f"Failed to initialize database: {e}")
            raise StorageError(f"Database initialization failed: {e}")

    # === Writes ===

    def insert(self, record: Record) -> int:
        """Append a record to the table for its kind.

        Returns:
            The row id of the new record.

        Raises:
            StorageError: On unsupported record types or database failure.
        """
        kind = _kind_of(record)
        table = _TABLES[kind]
        columns = _COLUMNS[kind]
        placeholders = ", ".join("?" for _ in columns)

        with self._lock:
            try:
                with self._connection() as conn:
                    cursor = conn.execute(
                        f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
                        _to_row(kind, record),
                    )
                    return cursor.lastrowid
            except sqlite3.Error as e:
                logger.error(f"Failed to insert into {table}: {e}")
                raise StorageError(f"Failed to insert {kind.value} record: {e}", {"table": table})

    def purge_older_than(self, kind: RecordKind, cutoff: float) -> int:
        """Delete records of one kind strictly older than cutoff.

        Records at or after the cutoff are never touched, so the purge is
        idempotent and safe to interleave with new inserts.

        Returns:
            Number of records deleted.
        """
        table = _TABLES[kind]
        with self._lock:
            try:
                with self._connection() as conn:
                    cursor = conn.execute(f"DELETE FROM {table} WHERE timestamp < ?", (cutoff,))
                    deleted = cursor.rowcount
            except sqlite3.Error as e:
                logger.error(f"Purge of {table} failed: {e}")
                raise StorageError(f"Failed to purge {kind.value} records: {e}", {"table": table})

        if deleted:
            logger.debug(f"Purged {deleted} rows from {table}")
        return deleted

    # === Reads ===

    def query_window(self, kind: RecordKind, since: float) -> List[Record]:
        """Get records with timestamp >= since, oldest first.

        Ties on timestamp keep insertion order.
        """
        table = _TABLES[kind]
        try:
            with self._connection() as conn:
                cursor = conn.execute(
                    f"SELECT * FROM {table} WHERE timestamp >= ? ORDER BY timestamp, id",
                    (since,)
                )
                return [_from_row(kind, row) for row in cursor]
        except sqlite3.Error as e:
            logger.error(f"Window query on {table} failed: {e}")
            return []

    def recent(self, kind: RecordKind, count: int) -> List[Record]:
        """Get the last `count` records by insertion order, oldest first."""
        if count <= 0:
            return []
        table = _TABLES[kind]
        try:
            with self._connection() as conn:
                cursor = conn.execute(
                    f"SELECT * FROM {table} ORDER BY id DESC LIMIT ?", (count,)
                )
                rows = [_from_row(kind, row) for row in cursor]
        except sqlite3.Error as e:
            logger.error(f"Recent query on {table} failed: {e}")
            return []
        rows.reverse()
        return rows

    def last_speedtest(self) -> Optional[SpeedtestRecord]:
        """Get the most recent speedtest that produced a download value."""
        try:
            with self._connection() as conn:
                row = conn.execute("""
                    SELECT * FROM speedtests
                    WHERE download_mbps IS NOT NULL
                    ORDER BY id DESC
                    LIMIT 1
                """).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Failed to get last speedtest: {e}")
            return None
        return _from_row(RecordKind.SPEEDTEST, row) if row else None

    def count(self, kind: RecordKind) -> int:
        """Number of stored records of one kind."""
        table = _TABLES[kind]
        try:
            with self._connection() as conn:
                return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
        except sqlite3.Error as e:
            logger.error(f"Count on {table} failed: {e}")
            return 0

    # === Utility Methods ===

    def flush(self) -> None:
        """Checkpoint the WAL into the main database file."""
        try:
            with self._connection() as conn:
                conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            logger.debug("Database flushed")
        except sqlite3.Error as e:
            logger.error(f"Flush failed: {e}")

    def get_data_file_path(self) -> str:
        """Get the path to the database file."""
        return str(self.db_path)

    def get_database_stats(self) -> Dict:
        """Get statistics about the database.

        Returns:
            Dict with record counts per kind, time range of ping samples,
            and file size
        """
        try:
            with self._connection() as conn:
                counts = {
                    f"{kind.value}_count": conn.execute(
                        f"SELECT COUNT(*) FROM {table}"
                    ).fetchone()[0]
                    for kind, table in _TABLES.items()
                }
                time_range = conn.execute(
                    "SELECT MIN(timestamp) AS oldest, MAX(timestamp) AS newest FROM pings"
                ).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Failed to get database stats: {e}")
            return {}

        file_size = self.db_path.stat().st_size if self.db_path.exists() else 0
        return {
            **counts,
            "oldest_ping": time_range["oldest"],
            "newest_ping": time_range["newest"],
            "file_size_bytes": file_size,
            "file_size_mb": round(file_size / (1024 * 1024), 2),
        }
