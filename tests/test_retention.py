"""Tests for the retention sweeper."""

import pytest

from config.exceptions import StorageError
from monitor.retention import SECONDS_PER_DAY, RetentionSweeper
from storage.records import (
    GapEvent,
    IssueKind,
    IssueLogEntry,
    PingSample,
    RecordKind,
    SpeedtestRecord,
)


@pytest.fixture
def sweeper(store, fake_clock, timer_factory):
    return RetentionSweeper(store, clock=fake_clock, timer_factory=timer_factory)


def days_ago(clock, days):
    return clock.now - days * SECONDS_PER_DAY


def populate(store, clock):
    """One record of each kind at 6, 8, 29 and 31 days old."""
    for age in (6, 8, 29, 31):
        ts = days_ago(clock, age)
        store.insert(PingSample(timestamp=ts, latency_ms=10.0, sequence=age, ttl=57))
        store.insert(GapEvent(timestamp=ts, gap_seconds=3, seq_from=age, seq_to=age + 1))
        store.insert(SpeedtestRecord(timestamp=ts, ping_avg_ms=10.0))
        store.insert(IssueLogEntry(timestamp=ts, kind=IssueKind.TIMEOUT, message=f"{age}d"))


class TestRetentionSweeper:
    """Tests for RetentionSweeper."""

    def test_sweep_applies_thresholds(self, sweeper, store, fake_clock):
        """Pings and gaps live 7 days, speedtests and issues 30."""
        populate(store, fake_clock)

        deleted = sweeper.sweep()

        assert deleted == {
            RecordKind.PING: 3,
            RecordKind.GAP: 3,
            RecordKind.SPEEDTEST: 1,
            RecordKind.ISSUE: 1,
        }
        assert [p.sequence for p in store.query_window(RecordKind.PING, 0)] == [6]
        assert store.count(RecordKind.GAP) == 1
        assert store.count(RecordKind.SPEEDTEST) == 3
        assert store.count(RecordKind.ISSUE) == 3

    def test_sweep_is_idempotent(self, sweeper, store, fake_clock):
        """A second sweep deletes nothing."""
        populate(store, fake_clock)
        sweeper.sweep()

        assert sum(sweeper.sweep().values()) == 0

    def test_empty_store(self, sweeper):
        """Sweeping an empty store returns zero counts."""
        assert set(sweeper.sweep().values()) == {0}

    def test_custom_retention(self, store, fake_clock, timer_factory):
        """Retention days come from the constructor."""
        sweeper = RetentionSweeper(store, ping_retention_days=1, speedtest_retention_days=2,
                                   clock=fake_clock, timer_factory=timer_factory)
        store.insert(PingSample.timeout_marker(days_ago(fake_clock, 1.5)))
        store.insert(SpeedtestRecord(timestamp=days_ago(fake_clock, 1.5)))

        deleted = sweeper.sweep()
        assert deleted[RecordKind.PING] == 1
        assert deleted[RecordKind.SPEEDTEST] == 0

    def test_gaps_and_issues_follow_paired_periods(self, store, fake_clock, timer_factory):
        """Gaps share the ping period and issues share the speedtest period."""
        sweeper = RetentionSweeper(store, ping_retention_days=3, speedtest_retention_days=12,
                                   clock=fake_clock, timer_factory=timer_factory)

        assert sweeper.retention_days == {
            RecordKind.PING: 3,
            RecordKind.GAP: 3,
            RecordKind.SPEEDTEST: 12,
            RecordKind.ISSUE: 12,
        }

    def test_failed_purge_continues(self, sweeper, store, fake_clock, monkeypatch):
        """A failing kind reports 0 and the others are still purged."""
        populate(store, fake_clock)
        original = store.purge_older_than

        def purge(kind, cutoff):
            if kind is RecordKind.GAP:
                raise StorageError("locked")
            return original(kind, cutoff)

        monkeypatch.setattr(store, "purge_older_than", purge)
        deleted = sweeper.sweep()

        assert deleted[RecordKind.GAP] == 0
        assert deleted[RecordKind.PING] == 3

    def test_start_schedules_sweeps(self, sweeper, timer_factory):
        """The first sweep runs after 5 s, then hourly."""
        sweeper.start()
        [timer] = timer_factory.timers

        assert timer.initial_delay == 5
        assert timer.interval == 3600
        assert timer.started

        sweeper.start()
        assert len(timer_factory.timers) == 1

    def test_stop(self, sweeper, timer_factory):
        """stop cancels the timer."""
        sweeper.start()
        sweeper.stop()
        assert timer_factory.timers[0].stopped
