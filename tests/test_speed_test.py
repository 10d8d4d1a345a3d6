"""Tests for speedtest scheduling and parsing."""

import threading

import pytest

from app.events import EventType
from config.exceptions import SpeedtestParseError, SubprocessError
from monitor.speed_test import SpeedtestScheduler, parse_speedtest_csv
from monitor.statistics import StatisticsEngine
from storage.records import IssueKind, PingSample, RecordKind
from tests.mocks import completed_process, speedtest_csv_line


class FakeRunner:
    """Stands in for safe_run; returns a canned result or raises."""

    def __init__(self, result=None, error=None):
        self.result = result if result is not None else completed_process(stdout=speedtest_csv_line() + "\n")
        self.error = error
        self.calls = []

    def __call__(self, cmd, timeout=None):
        self.calls.append((cmd, timeout))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def scheduler(store, issue_log, sync_event_bus, fake_clock, runner, timer_factory):
    """A scheduler with a fake runner and fake timers."""
    return SpeedtestScheduler(
        store,
        StatisticsEngine(store, clock=fake_clock),
        issue_log,
        sync_event_bus,
        runner=runner,
        clock=fake_clock,
        timer_factory=timer_factory,
    )


def statuses(events):
    return [e.data["status"] for e in events if e.event_type is EventType.SPEEDTEST_STATUS_CHANGED]


class TestParseSpeedtestCsv:
    """Tests for parse_speedtest_csv."""

    def test_parses_result_line(self):
        """Throughput is converted to Mbps and rounded."""
        parsed = parse_speedtest_csv(speedtest_csv_line(server="Example ISP", ping=12.5,
                                                        download_bps=94_123_456.0,
                                                        upload_bps=18_500_000.0))
        assert parsed == {
            "server": "Example ISP",
            "latency_ms": 12.5,
            "download_mbps": 94.12,
            "upload_mbps": 18.5,
        }

    def test_uses_last_line(self):
        """Only the last non-empty line is parsed."""
        output = "Retrieving configuration...\n" + speedtest_csv_line(server="Last") + "\n\n"
        assert parse_speedtest_csv(output)["server"] == "Last"

    def test_quoted_server_name(self):
        """Server names containing commas are handled by the csv reader."""
        line = '1234,Sponsor,"Frankfurt, DE",2026-01-20T12:00:00Z,10.5,8.0,50000000,10000000,,1.2.3.4'
        assert parse_speedtest_csv(line)["server"] == "Frankfurt, DE"

    def test_missing_server(self):
        """An empty server name becomes Unknown."""
        assert parse_speedtest_csv(speedtest_csv_line(server=""))["server"] == "Unknown"

    def test_empty_output(self):
        """Empty output is a parse error."""
        with pytest.raises(SpeedtestParseError):
            parse_speedtest_csv("  \n")

    def test_too_few_fields(self):
        """Short rows are a parse error."""
        with pytest.raises(SpeedtestParseError):
            parse_speedtest_csv("1234,Sponsor,Server,2026-01-20,10.5")

    def test_non_numeric(self):
        """Non-numeric throughput is a parse error."""
        with pytest.raises(SpeedtestParseError):
            parse_speedtest_csv("1234,Sponsor,Server,2026-01-20,10.5,8.0,fast,slow")


class TestSpeedtestRun:
    """Tests for SpeedtestScheduler.run."""

    def test_success(self, scheduler, store, runner, recorded_events):
        """A successful run is stored, published and returned."""
        result = scheduler.run()

        assert result["success"] is True
        assert result["result"]["download_mbps"] == 94.12
        assert result["result"]["server"] == "Example ISP"
        [record] = store.query_window(RecordKind.SPEEDTEST, 0)
        assert record.succeeded
        assert runner.calls == [(["speedtest-cli", "--csv"], 120)]
        assert statuses(recorded_events) == ["running", "completed"]
        assert not scheduler.is_running

    def test_records_recent_ping_average(self, scheduler, store, fake_clock):
        """The last five minutes of latency are stored with the result."""
        store.insert(PingSample(timestamp=fake_clock.now - 600, latency_ms=100.0, sequence=1, ttl=57))
        store.insert(PingSample(timestamp=fake_clock.now - 20, latency_ms=10.0, sequence=2, ttl=57))
        store.insert(PingSample(timestamp=fake_clock.now - 10, latency_ms=15.0, sequence=3, ttl=57))

        scheduler.run()

        [record] = store.query_window(RecordKind.SPEEDTEST, 0)
        assert record.ping_avg_ms == 12.5

    def test_subprocess_failure(self, scheduler, store, runner, recorded_events):
        """A timeout records a failed attempt and a SPEEDTEST_FAILURE issue."""
        runner.error = SubprocessError("Command timed out after 120s")

        result = scheduler.run()

        assert result == {"success": False, "error": "Command timed out after 120s"}
        [record] = store.query_window(RecordKind.SPEEDTEST, 0)
        assert not record.succeeded
        [issue] = store.query_window(RecordKind.ISSUE, 0)
        assert issue.kind is IssueKind.SPEEDTEST_FAILURE
        assert statuses(recorded_events) == ["running", "failed"]

    def test_nonzero_exit(self, scheduler, store, runner):
        """A non-zero exit is a failure carrying stderr."""
        runner.result = completed_process(returncode=1, stderr="Cannot retrieve speedtest configuration")

        result = scheduler.run()

        assert result["success"] is False
        assert "Cannot retrieve" in result["error"]
        [issue] = store.query_window(RecordKind.ISSUE, 0)
        assert issue.kind is IssueKind.SPEEDTEST_FAILURE

    def test_parse_failure(self, scheduler, store, runner, fake_clock):
        """Unparseable output records a failed attempt with the ping average."""
        store.insert(PingSample(timestamp=fake_clock.now - 5, latency_ms=20.0, sequence=1, ttl=57))
        runner.result = completed_process(stdout="not,a,result\n")

        result = scheduler.run()

        assert result["success"] is False
        [record] = store.query_window(RecordKind.SPEEDTEST, 0)
        assert record.download_mbps is None
        assert record.ping_avg_ms == 20.0
        [issue] = store.query_window(RecordKind.ISSUE, 0)
        assert issue.kind is IssueKind.SPEEDTEST_PARSE_ERROR

    def test_refuses_concurrent_run(self, scheduler, runner, store):
        """A run requested while one is in flight is refused."""
        nested = {}

        def reentrant(cmd, timeout=None):
            nested.update(scheduler.run())
            return completed_process(stdout=speedtest_csv_line())

        scheduler._runner = reentrant

        assert scheduler.run()["success"] is True
        assert nested == {"success": False, "error": "already running"}
        assert store.count(RecordKind.SPEEDTEST) == 1

    def test_refuses_run_from_other_thread(self, scheduler, store):
        """Only one of two simultaneous runs executes."""
        started = threading.Event()
        release = threading.Event()

        def slow(cmd, timeout=None):
            started.set()
            release.wait(2.0)
            return completed_process(stdout=speedtest_csv_line())

        scheduler._runner = slow
        results = []
        worker = threading.Thread(target=lambda: results.append(scheduler.run()))
        worker.start()
        assert started.wait(2.0)

        assert scheduler.is_running
        assert scheduler.run() == {"success": False, "error": "already running"}

        release.set()
        worker.join(2.0)
        assert results[0]["success"] is True
        assert store.count(RecordKind.SPEEDTEST) == 1

    def test_wait_until_idle(self, scheduler, store):
        """wait_until_idle blocks while a run is in flight."""
        assert scheduler.wait_until_idle(timeout=0)

        started = threading.Event()
        release = threading.Event()

        def slow(cmd, timeout=None):
            started.set()
            release.wait(2.0)
            return completed_process(stdout=speedtest_csv_line())

        scheduler._runner = slow
        worker = threading.Thread(target=scheduler.run)
        worker.start()
        assert started.wait(2.0)

        assert not scheduler.wait_until_idle(timeout=0.05)
        release.set()
        assert scheduler.wait_until_idle(timeout=2.0)
        assert store.count(RecordKind.SPEEDTEST) == 1
        worker.join(2.0)

    def test_guard_released_after_failure(self, scheduler, runner):
        """A failed run does not block the next one."""
        runner.error = SubprocessError("boom")
        scheduler.run()
        runner.error = None

        assert scheduler.run()["success"] is True


class TestSchedule:
    """Tests for the warm-up and periodic timers."""

    def test_start_creates_timers(self, scheduler, timer_factory):
        """start arms a one-shot warm-up and a 15 minute schedule."""
        scheduler.start()

        warmup = timer_factory.by_name("SpeedtestWarmup")
        periodic = timer_factory.by_name("SpeedtestSchedule")
        assert warmup.interval == 10
        assert warmup.repeat is False
        assert periodic.interval == 900
        assert periodic.repeat is True
        assert warmup.started and periodic.started
        assert scheduler.is_scheduled

    def test_timer_fires_run(self, scheduler, timer_factory, store):
        """A timer tick runs a speedtest."""
        scheduler.start()
        timer_factory.by_name("SpeedtestSchedule").fire()
        assert store.count(RecordKind.SPEEDTEST) == 1

    def test_start_twice(self, scheduler, timer_factory):
        """start is idempotent."""
        scheduler.start()
        scheduler.start()
        assert len(timer_factory.timers) == 2

    def test_stop(self, scheduler, timer_factory):
        """stop cancels both timers."""
        scheduler.start()
        scheduler.stop()
        assert all(t.stopped for t in timer_factory.timers)
        assert not scheduler.is_scheduled
