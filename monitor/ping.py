"""Continuous reachability monitoring via a long-running ping process.

The supervisor owns the ping subprocess, turns each reply line into a
PingSample and runs two independent timeout mechanisms:

- gap-on-arrival: when a real reply arrives more than
  THRESHOLDS.GAP_THRESHOLD_SECONDS after the previous one, a GapEvent is
  recorded;
- watchdog-on-silence: every INTERVALS.WATCHDOG_TICK_SECONDS, if nothing
  has arrived for INTERVALS.SILENCE_THRESHOLD_SECONDS, a synthetic timeout
  marker is recorded. The watchdog does not touch the arrival clock, so a
  long outage yields one marker per tick, which keeps the realtime chart
  populated.

Sequence discontinuities are reported as packet loss regardless of timing.

Example:
    >>> supervisor = PingSupervisor(store, issue_log, event_bus)
    >>> supervisor.start()
    >>> ...
    >>> supervisor.stop()
"""
import math
import re
import threading
import time
from typing import Callable, List, Optional

from app.events import EventBus, EventType
from app.timer import PeriodicTimer
from config import INTERVALS, NETWORK, THRESHOLDS, get_logger
from config.exceptions import ProbeError, StorageError, SubprocessError
from config.subprocess_utils import LineProcess, spawn_line_process
from monitor.issues import IssueLog
from storage.records import GapEvent, IssueKind, PingSample
from storage.sqlite_store import TimeSeriesStore

logger = get_logger(__name__)

# "64 bytes from 142.250.1.1: icmp_seq=7 ttl=117 time=15.2 ms"
PING_LINE_PATTERN = re.compile(r'icmp_seq=(\d+).*ttl=(\d+).*time[=<]([\d.]+)')


def parse_ping_line(line: str) -> Optional[PingSample]:
    """Parse one line of ping output.

    Returns:
        A PingSample with timestamp 0 (the caller stamps it), or None for
        headers, summaries and anything else that isn't a reply.
    """
    match = PING_LINE_PATTERN.search(line)
    if not match:
        return None
    return PingSample(
        timestamp=0.0,
        latency_ms=float(match.group(3)),
        sequence=int(match.group(1)),
        ttl=int(match.group(2)),
    )


class PingSupervisor:
    """Runs the ping process and records what it reports.

    All state changes happen under one re-entrant lock, so lines, watchdog
    ticks, process exit and start/stop are handled strictly one at a time.
    """

    def __init__(
        self,
        store: TimeSeriesStore,
        issue_log: IssueLog,
        event_bus: EventBus,
        host: str = NETWORK.DEFAULT_PING_HOST,
        clock: Callable[[], float] = time.time,
        process_factory: Callable[[List[str]], LineProcess] = spawn_line_process,
        timer_factory: Callable[..., PeriodicTimer] = PeriodicTimer,
    ):
        self._store = store
        self._issue_log = issue_log
        self._event_bus = event_bus
        self._host = host
        self._clock = clock
        self._process_factory = process_factory
        self._timer_factory = timer_factory

        self._lock = threading.RLock()
        self._running = False
        self._process: Optional[LineProcess] = None
        self._reader: Optional[threading.Thread] = None
        self._watchdog: Optional[PeriodicTimer] = None

        self._last_arrival: float = 0.0
        self._has_real_arrival = False
        self._last_sequence = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def host(self) -> str:
        return self._host

    @property
    def last_sequence(self) -> int:
        return self._last_sequence

    def start(self) -> bool:
        """Launch the ping process and arm the watchdog.

        Returns:
            True if monitoring was started, False if it was already running
            or the process could not be spawned.
        """
        with self._lock:
            if self._running:
                return False

            self._last_arrival = self._clock()
            self._has_real_arrival = False
            self._last_sequence = 0

            try:
                process = self._spawn()
            except ProbeError as e:
                self._issue_log.log(IssueKind.PROBE_ERROR, e.message)
                return False

            self._process = process
            self._running = True
            self._watchdog = self._timer_factory(
                self._watchdog_tick,
                interval=INTERVALS.WATCHDOG_TICK_SECONDS,
                name="PingWatchdog",
            )
            self._watchdog.start()
            self._reader = threading.Thread(
                target=self._read_output, args=(process,), daemon=True, name="PingReader"
            )
            self._reader.start()

            self._event_bus.publish(EventType.MONITORING_STARTED, {"host": self._host})
            logger.info(f"Ping monitoring started for {self._host}")
            return True

    def _spawn(self) -> LineProcess:
        command = ['ping', self._host]
        try:
            return self._process_factory(command)
        except SubprocessError as e:
            raise ProbeError(f"Failed to start ping: {e.message}", {"host": self._host}) from e

    def stop(self) -> None:
        """Stop monitoring. Safe to call repeatedly."""
        with self._lock:
            if not self._running:
                return
            # Flip state first: any tick waiting on the lock will see Stopped.
            self._running = False
            watchdog, self._watchdog = self._watchdog, None
            process, self._process = self._process, None
            self._reader = None

        if watchdog is not None:
            watchdog.stop()
        if process is not None:
            process.terminate()

        self._event_bus.publish(EventType.MONITORING_STOPPED, {"host": self._host})
        logger.info("Ping monitoring stopped")

    # === Output handling ===

    def _read_output(self, process: LineProcess) -> None:
        """Reader thread: feed each output line to handle_line()."""
        error: Optional[str] = None
        try:
            for line in process.lines():
                self._handle_process_line(process, line)
        except (OSError, ValueError) as e:
            error = f"Ping output stream failed: {e}"
        self._on_process_exit(process, error)

    def _handle_process_line(self, process: LineProcess, line: str) -> Optional[PingSample]:
        with self._lock:
            # output still draining from a process that stop() replaced
            if self._process is not process:
                return None
            return self.handle_line(line)

    def handle_line(self, line: str) -> Optional[PingSample]:
        """Process one line of ping output.

        Returns:
            The stored sample, or None if the line was not a reply or
            monitoring is stopped.
        """
        parsed = parse_ping_line(line)
        if parsed is None:
            return None

        with self._lock:
            if not self._running:
                return None

            now = self._clock()
            sample = PingSample(
                timestamp=now,
                latency_ms=parsed.latency_ms,
                sequence=parsed.sequence,
                ttl=parsed.ttl,
            )
            self._insert(sample)

            if self._has_real_arrival:
                gap = math.floor(now) - math.floor(self._last_arrival)
                if gap > THRESHOLDS.GAP_THRESHOLD_SECONDS:
                    self._record_gap(now, gap, sample.sequence)

            if self._last_sequence > 0 and sample.sequence > self._last_sequence + 1:
                self._record_packet_loss(sample.sequence)

            self._last_arrival = now
            self._has_real_arrival = True
            self._last_sequence = sample.sequence

            self._event_bus.publish(EventType.PING_SAMPLE, sample.to_dict(), source="ping")
            return sample

    def _record_gap(self, now: float, gap: int, sequence: int) -> None:
        event = GapEvent(timestamp=now, gap_seconds=gap, seq_from=self._last_sequence, seq_to=sequence)
        self._insert(event)
        self._issue_log.log(
            IssueKind.TIMEOUT,
            f"Gap {gap}s (seq {self._last_sequence}->{sequence})",
            timestamp=now,
        )
        self._event_bus.publish(EventType.GAP_DETECTED, {
            "gap_seconds": gap,
            "seq_from": self._last_sequence,
            "seq_to": sequence,
        }, source="ping")

    def _record_packet_loss(self, sequence: int) -> None:
        lost = sequence - (self._last_sequence + 1)
        self._issue_log.log(
            IssueKind.PACKET_LOSS,
            f"{lost} packets lost (seq {self._last_sequence}->{sequence})",
        )
        self._event_bus.publish(EventType.PACKET_LOSS_DETECTED, {
            "lost": lost,
            "seq_from": self._last_sequence,
            "seq_to": sequence,
        }, source="ping")

    def _watchdog_tick(self) -> Optional[PingSample]:
        """Insert a timeout marker if the line has been silent too long."""
        with self._lock:
            if not self._running:
                return None
            now = self._clock()
            if now - self._last_arrival <= INTERVALS.SILENCE_THRESHOLD_SECONDS:
                return None

            marker = PingSample.timeout_marker(now)
            self._insert(marker)
            self._event_bus.publish(EventType.PING_SAMPLE, marker.to_dict(), source="watchdog")
            return marker

    def _on_process_exit(self, process: LineProcess, error: Optional[str] = None) -> None:
        """Called by the reader thread once the process output ends."""
        with self._lock:
            if not self._running or self._process is not process:
                # stop() already tore this process down
                return
            self._running = False
            watchdog, self._watchdog = self._watchdog, None
            self._process = None
            self._reader = None

            message = error or f"Ping process exited with code {process.returncode}"
            self._issue_log.log(IssueKind.PROBE_ERROR, message)

        if watchdog is not None:
            watchdog.stop()
        self._event_bus.publish(EventType.MONITORING_STOPPED, {"host": self._host, "error": message})

    def _insert(self, record) -> None:
        try:
            self._store.insert(record)
        except StorageError as e:
            logger.error(f"Dropping {type(record).__name__}: {e}")
