"""Record types held by the time-series store.

Four kinds of records are written by the monitors and never modified
afterwards; the retention sweep is the only thing that removes them.
"""
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Optional


class RecordKind(Enum):
    """Record kinds, one table each."""
    PING = "ping"
    GAP = "gap"
    SPEEDTEST = "speedtest"
    ISSUE = "issue"


class IssueKind(Enum):
    """Categories in the diagnostic issue trail."""
    TIMEOUT = "timeout"
    PACKET_LOSS = "packet_loss"
    PROBE_ERROR = "probe_error"
    SPEEDTEST_FAILURE = "speedtest_failure"
    SPEEDTEST_PARSE_ERROR = "speedtest_parse_error"


@dataclass(frozen=True)
class PingSample:
    """A single ping reply, or a synthetic timeout marker.

    Attributes:
        timestamp: Arrival wall-clock time (epoch seconds).
        latency_ms: Round-trip time; None for timeout markers.
        sequence: icmp_seq of the reply; None for timeout markers.
        ttl: TTL of the reply; None for timeout markers.
        is_timeout: True for markers inserted by the silence watchdog.
    """
    timestamp: float
    latency_ms: Optional[float] = None
    sequence: Optional[int] = None
    ttl: Optional[int] = None
    is_timeout: bool = False

    def __post_init__(self):
        if self.is_timeout and (
            self.latency_ms is not None or self.sequence is not None or self.ttl is not None
        ):
            raise ValueError("Timeout markers carry no latency, sequence or ttl")

    @classmethod
    def timeout_marker(cls, timestamp: float) -> 'PingSample':
        return cls(timestamp=timestamp, is_timeout=True)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class GapEvent:
    """Wall-clock delay between two real replies that exceeded the threshold."""
    timestamp: float
    gap_seconds: int
    seq_from: int
    seq_to: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class SpeedtestRecord:
    """Outcome of one bandwidth probe attempt.

    Failed attempts keep ping_avg_ms but have no server, latency or throughput.
    """
    timestamp: float
    server: Optional[str] = None
    latency_ms: Optional[float] = None
    download_mbps: Optional[float] = None
    upload_mbps: Optional[float] = None
    ping_avg_ms: Optional[float] = None

    @property
    def succeeded(self) -> bool:
        return self.download_mbps is not None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class IssueLogEntry:
    """One line of the diagnostic trail."""
    timestamp: float
    kind: IssueKind
    message: str

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "kind": self.kind.value,
            "message": self.message,
        }
