"""Windowed statistics and chart history over the time-series store.

Everything here is read-only: each call loads a window of records from the
store and reduces it with numpy. "Now" comes from an injectable clock so
windows are deterministic in tests.

Example:
    >>> engine = StatisticsEngine(store)
    >>> stats = engine.ping_stats(window_minutes=5)
    >>> if stats.has_data:
    ...     print(f"median {stats.median:.1f} ms")
"""
from __future__ import annotations

import math
import time
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from config import THRESHOLDS, get_logger
from storage.records import GapEvent, PingSample, RecordKind, SpeedtestRecord
from storage.sqlite_store import TimeSeriesStore

logger = get_logger(__name__)

GROUP_BY_SECONDS = {"minute": 60, "hour": 3600}
_GROUP_BY_LABELS = {"minute": "%H:%M", "hour": "%H:00"}


@dataclass(frozen=True)
class PingStats:
    """Latency aggregates over real samples in a window.

    All fields but count are None when the window holds no real samples.
    """
    count: int
    avg: Optional[float] = None
    median: Optional[float] = None
    std: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None

    @classmethod
    def no_data(cls) -> PingStats:
        return cls(count=0)

    @property
    def has_data(self) -> bool:
        return self.count > 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PacketLoss:
    """Sequence-based loss estimate over real samples in a window."""
    first_sequence: int = 0
    last_sequence: int = 0
    actual_count: int = 0
    expected: int = 0
    lost: int = 0
    percent: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class GapStats:
    """Aggregates over gap events in a window; all zero when there are none."""
    count: int = 0
    total_seconds: int = 0
    avg: float = 0.0
    min: int = 0
    max: int = 0
    median: float = 0.0
    std: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class SpeedtestStats:
    """Means (and spread) over successful speedtests in a window."""
    count: int
    download: Optional[float] = None
    upload: Optional[float] = None
    latency: Optional[float] = None
    download_min: Optional[float] = None
    download_max: Optional[float] = None
    download_median: Optional[float] = None
    download_std: Optional[float] = None
    upload_min: Optional[float] = None
    upload_max: Optional[float] = None
    upload_median: Optional[float] = None
    upload_std: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PingHistoryPoint:
    """One point of the latency chart.

    In realtime mode a point is a single sample (timeouts = 1 for markers);
    in aggregated mode it is a bucket starting at `timestamp`.
    """
    timestamp: float
    time: str
    avg: float
    min: float
    max: float
    count: int
    timeouts: int
    timeout: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class SpeedtestHistoryPoint:
    timestamp: float
    time: str
    download: float
    upload: Optional[float]
    latency: Optional[float]

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class GapHistoryPoint:
    timestamp: float
    time: str
    count: int
    total_seconds: int

    def to_dict(self) -> dict:
        return asdict(self)


def bucket_start(timestamp: float, interval_seconds: int) -> int:
    """Start of the epoch-aligned bucket containing timestamp."""
    return int(math.floor(timestamp / interval_seconds) * interval_seconds)


def _label(timestamp: float, fmt: str) -> str:
    return datetime.fromtimestamp(timestamp).strftime(fmt)


def _describe(values: Sequence[float]) -> Dict[str, float]:
    """Mean, standard median, population std, min and max of values."""
    arr = np.asarray(values, dtype=float)
    return {
        "avg": float(arr.mean()),
        "median": float(np.median(arr)),
        "std": float(arr.std()),
        "min": float(arr.min()),
        "max": float(arr.max()),
    }


class StatisticsEngine:
    """Computes statistics and history for the presentation layer."""

    def __init__(self, store: TimeSeriesStore, clock: Callable[[], float] = time.time):
        self._store = store
        self._clock = clock

    # === Windows ===

    def _since(self, window_minutes: Optional[float]) -> float:
        """Window start; None means since local midnight."""
        now = self._clock()
        if window_minutes is None:
            midnight = datetime.fromtimestamp(now).replace(hour=0, minute=0, second=0, microsecond=0)
            return midnight.timestamp()
        return now - window_minutes * 60

    def _real_samples(self, window_minutes: Optional[float]) -> List[PingSample]:
        samples = self._store.query_window(RecordKind.PING, self._since(window_minutes))
        return [s for s in samples if not s.is_timeout]

    def _successful_speedtests(self, window_minutes: float) -> List[SpeedtestRecord]:
        records = self._store.query_window(RecordKind.SPEEDTEST, self._since(window_minutes))
        return [r for r in records if r.succeeded]

    # === Aggregates ===

    def ping_stats(self, window_minutes: float) -> PingStats:
        """Latency statistics over real samples in the last window_minutes."""
        latencies = [s.latency_ms for s in self._real_samples(window_minutes)]
        if not latencies:
            return PingStats.no_data()
        return PingStats(count=len(latencies), **_describe(latencies))

    def average_latency(self, window_minutes: float) -> Optional[float]:
        """Mean real latency in the window, or None without samples."""
        stats = self.ping_stats(window_minutes)
        return stats.avg if stats.has_data else None

    def packet_loss(self, window_minutes: Optional[float] = None) -> PacketLoss:
        """Estimate loss from the sequence range of real samples.

        Args:
            window_minutes: Window length; None (default) means today.
        """
        sequences = [s.sequence for s in self._real_samples(window_minutes)]
        if not sequences:
            return PacketLoss()

        first, last = min(sequences), max(sequences)
        expected = last - first + 1
        lost = max(0, expected - len(sequences))
        percent = lost / expected * 100 if expected > 0 else 0.0
        return PacketLoss(
            first_sequence=first,
            last_sequence=last,
            actual_count=len(sequences),
            expected=expected,
            lost=lost,
            percent=percent,
        )

    def gap_stats(self, window_minutes: Optional[float] = None) -> GapStats:
        """Gap event aggregates; None (default) means today."""
        gaps: List[GapEvent] = self._store.query_window(RecordKind.GAP, self._since(window_minutes))
        if not gaps:
            return GapStats()

        seconds = [g.gap_seconds for g in gaps]
        total = sum(seconds)
        described = _describe(seconds)
        return GapStats(
            count=len(seconds),
            total_seconds=total,
            avg=total / len(seconds),
            min=min(seconds),
            max=max(seconds),
            median=described["median"],
            std=described["std"],
        )

    def speedtest_stats(self, window_minutes: float) -> SpeedtestStats:
        """Averages over speedtests in the window that produced a download value."""
        records = self._successful_speedtests(window_minutes)
        if not records:
            return SpeedtestStats(count=0)

        downloads = _describe([r.download_mbps for r in records])
        uploads = [r.upload_mbps for r in records if r.upload_mbps is not None]
        latencies = [r.latency_ms for r in records if r.latency_ms is not None]
        upload_desc = _describe(uploads) if uploads else {}

        return SpeedtestStats(
            count=len(records),
            download=downloads["avg"],
            upload=upload_desc.get("avg"),
            latency=float(np.mean(latencies)) if latencies else None,
            download_min=downloads["min"],
            download_max=downloads["max"],
            download_median=downloads["median"],
            download_std=downloads["std"],
            upload_min=upload_desc.get("min"),
            upload_max=upload_desc.get("max"),
            upload_median=upload_desc.get("median"),
            upload_std=upload_desc.get("std"),
        )

    # === History ===

    def ping_history(self, window_minutes: float, interval_seconds: int) -> List[PingHistoryPoint]:
        """Latency chart data.

        interval_seconds <= 1 returns the most recent raw samples (realtime
        mode); larger intervals return epoch-aligned buckets. Either way at
        most THRESHOLDS.PING_HISTORY_MAX_POINTS points, oldest first.
        """
        limit = THRESHOLDS.PING_HISTORY_MAX_POINTS
        samples = self._store.query_window(RecordKind.PING, self._since(window_minutes))

        if interval_seconds <= 1:
            return [self._raw_point(s) for s in samples[-limit:]]

        buckets: Dict[int, List[PingSample]] = {}
        for sample in samples:
            buckets.setdefault(bucket_start(sample.timestamp, interval_seconds), []).append(sample)

        points = []
        for start in sorted(buckets)[-limit:]:
            members = buckets[start]
            latencies = np.asarray(
                [s.latency_ms for s in members if not s.is_timeout], dtype=float
            )
            has_real = latencies.size > 0
            points.append(PingHistoryPoint(
                timestamp=start,
                time=_label(start, "%H:%M:%S"),
                avg=float(latencies.mean()) if has_real else 0.0,
                min=float(latencies.min()) if has_real else 0.0,
                max=float(latencies.max()) if has_real else 0.0,
                count=len(members),
                timeouts=sum(1 for s in members if s.is_timeout),
            ))
        return points

    @staticmethod
    def _raw_point(sample: PingSample) -> PingHistoryPoint:
        latency = 0.0 if sample.is_timeout else sample.latency_ms
        return PingHistoryPoint(
            timestamp=sample.timestamp,
            time=_label(sample.timestamp, "%H:%M:%S"),
            avg=latency,
            min=latency,
            max=latency,
            count=1,
            timeouts=1 if sample.is_timeout else 0,
            timeout=sample.is_timeout,
        )

    def speedtest_history(self, window_minutes: float) -> List[SpeedtestHistoryPoint]:
        """Successful speedtests in the window, most recent 20, oldest first."""
        records = self._successful_speedtests(window_minutes)
        return [
            SpeedtestHistoryPoint(
                timestamp=r.timestamp,
                time=_label(r.timestamp, "%H:%M"),
                download=r.download_mbps,
                upload=r.upload_mbps,
                latency=r.latency_ms,
            )
            for r in records[-THRESHOLDS.SPEEDTEST_HISTORY_MAX_POINTS:]
        ]

    def gap_history(self, window_minutes: float, group_by: str = "minute") -> List[GapHistoryPoint]:
        """Gap counts and durations per minute or hour bucket.

        Raises:
            ValueError: If group_by is not "minute" or "hour".
        """
        if group_by not in GROUP_BY_SECONDS:
            raise ValueError(f"group_by must be one of {sorted(GROUP_BY_SECONDS)}, got {group_by!r}")
        interval = GROUP_BY_SECONDS[group_by]

        totals: Dict[int, List[int]] = {}
        for gap in self._store.query_window(RecordKind.GAP, self._since(window_minutes)):
            bucket = totals.setdefault(bucket_start(gap.timestamp, interval), [0, 0])
            bucket[0] += 1
            bucket[1] += gap.gap_seconds

        return [
            GapHistoryPoint(
                timestamp=start,
                time=_label(start, _GROUP_BY_LABELS[group_by]),
                count=totals[start][0],
                total_seconds=totals[start][1],
            )
            for start in sorted(totals)[-THRESHOLDS.GAP_HISTORY_MAX_BUCKETS:]
        ]

    # === Point lookups ===

    def recent_samples(self, count: int = THRESHOLDS.RECENT_SAMPLES_DEFAULT) -> List[PingSample]:
        """The last `count` ping samples (including markers), oldest first."""
        return self._store.recent(RecordKind.PING, count)

    def last_speedtest(self) -> Optional[SpeedtestRecord]:
        """The most recent successful speedtest, if any."""
        return self._store.last_speedtest()
