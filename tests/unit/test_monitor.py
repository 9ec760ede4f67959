"""Unit tests for the health monitor and the file-backed history."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from agentledger.audit import AuditEventType
from agentledger.config import MonitorConfig
from agentledger.errors import Unavailable
from agentledger.ledger import InMemoryLedger
from agentledger.models import AgentRecord
from agentledger.monitor import FileHistoryStore
from agentledger.monitor import HealthMonitor
from agentledger.monitor import HealthSample
from agentledger.monitor import HealthWarningKind
from agentledger.monitor import HistoryStore
from agentledger.monitor import window_stats

OWNER = "0xA11CE"
ACTOR = "executor"


def _sample(timestamp: float, active: int = 1, recent: int = 0) -> HealthSample:
    return HealthSample(
        timestamp=timestamp,
        total_agents=active,
        active_agents=active,
        recent_executions=recent,
    )


class ListHistory:
    """History store kept in a plain list."""

    def __init__(self) -> None:
        self.items: list[HealthSample] = []

    async def append(self, sample: HealthSample) -> None:
        self.items.append(sample)

    async def samples(self) -> list[HealthSample]:
        return list(self.items)


class BrokenHistory(ListHistory):
    async def append(self, sample: HealthSample) -> None:
        raise Unavailable("history offline")


class ReadFailingLedger(InMemoryLedger):
    def __init__(self, *, broken: set[str], **kwargs) -> None:
        super().__init__(**kwargs)
        self.broken = broken

    async def read_agent(self, agent_id):
        if agent_id in self.broken:
            raise Unavailable("read failed")
        return await super().read_agent(agent_id)


class PageFailingLedger(InMemoryLedger):
    def __init__(self, *, fail_from: int, **kwargs) -> None:
        super().__init__(**kwargs)
        self.fail_from = fail_from

    async def read_registry_page(self, offset, limit):
        if offset >= self.fail_from:
            raise Unavailable("page lost")
        return await super().read_registry_page(offset, limit)


# ---------------------------------------------------------------------------
# Window aggregation
# ---------------------------------------------------------------------------


class TestWindowStats:
    def test_selects_samples_inside_window(self):
        samples = [_sample(100.0, 2, 1), _sample(3000.0, 4, 2), _sample(3500.0, 6, 3)]
        stats = window_stats(samples, now=3700.0, window_seconds=3600.0)
        assert stats.count == 2
        assert stats.avg_active_agents == 5.0
        assert stats.total_recent_executions == 5

    def test_empty_window_average_is_undefined(self):
        stats = window_stats([_sample(0.0)], now=10_000.0, window_seconds=3600.0)
        assert stats.count == 0
        assert stats.avg_active_agents is None
        assert stats.total_recent_executions == 0


# ---------------------------------------------------------------------------
# File history
# ---------------------------------------------------------------------------


class TestFileHistoryStore:
    def test_satisfies_protocol(self, tmp_path: Path):
        assert isinstance(FileHistoryStore(tmp_path / "h.json"), HistoryStore)

    def test_rejects_bad_cap(self, tmp_path: Path):
        with pytest.raises(ValueError):
            FileHistoryStore(tmp_path / "h.json", cap=0)

    async def test_missing_file_is_empty(self, tmp_path: Path):
        assert await FileHistoryStore(tmp_path / "h.json").samples() == []

    async def test_cap_evicts_oldest_first(self, tmp_path: Path):
        store = FileHistoryStore(tmp_path / "h.json", cap=3)
        for ts in range(5):
            await store.append(_sample(float(ts)))

        samples = await store.samples()
        assert [s.timestamp for s in samples] == [2.0, 3.0, 4.0]
        on_disk = json.loads((tmp_path / "h.json").read_text())
        assert len(on_disk) == 3

    async def test_persists_across_instances(self, tmp_path: Path):
        await FileHistoryStore(tmp_path / "h.json").append(_sample(1.0))
        reopened = FileHistoryStore(tmp_path / "h.json")
        assert [s.timestamp for s in await reopened.samples()] == [1.0]

    async def test_corrupt_file_moved_aside_before_rewrite(self, tmp_path: Path):
        path = tmp_path / "h.json"
        path.write_text("{not json", encoding="utf-8")
        store = FileHistoryStore(path)
        assert await store.samples() == []

        await store.append(_sample(5.0))
        assert [s.timestamp for s in await store.samples()] == [5.0]
        assert (tmp_path / "h.json.corrupt").read_text(encoding="utf-8") == "{not json"


# ---------------------------------------------------------------------------
# Health checks
# ---------------------------------------------------------------------------


class TestCheckAgentHealth:
    def _monitor(self, ledger, clock, **config) -> HealthMonitor:
        return HealthMonitor(
            ledger, ListHistory(), config=MonitorConfig(**config), clock=clock
        )

    def test_healthy_agent(self, ledger, clock):
        rec = AgentRecord(owner=OWNER, goal="g", execution_count=1, last_execution_time=clock.now)
        assert self._monitor(ledger, clock).check_agent_health(rec, clock.now) == []

    def test_stale_agent(self, ledger, clock):
        rec = AgentRecord(
            owner=OWNER,
            goal="g",
            execution_count=2,
            last_execution_time=clock.now - 7 * 3600,
        )
        warnings = self._monitor(ledger, clock).check_agent_health(rec, clock.now)
        assert [w.kind for w in warnings] == [HealthWarningKind.stale]
        assert "7 hours" in warnings[0].message

    def test_never_executed_agent_is_not_stale(self, ledger, clock):
        rec = AgentRecord(owner=OWNER, goal="g")
        assert self._monitor(ledger, clock).check_agent_health(rec, clock.now) == []

    def test_volume_and_memory_thresholds(self, ledger, clock):
        rec = AgentRecord(
            owner=OWNER,
            goal="g",
            execution_count=4,
            last_execution_time=clock.now,
        )
        for i in range(3):
            rec.store_memory(OWNER, f"k{i}", "v", now=clock.now)
        monitor = self._monitor(
            ledger, clock, high_execution_threshold=3, high_memory_threshold=2
        )
        kinds = [w.kind for w in monitor.check_agent_health(rec, clock.now)]
        assert kinds == [
            HealthWarningKind.high_execution_volume,
            HealthWarningKind.high_memory_usage,
        ]


# ---------------------------------------------------------------------------
# Sampling
# ---------------------------------------------------------------------------


class TestSample:
    async def test_aggregates_counts(self, ledger, clock, audit_logger):
        a = await ledger.submit_registration(OWNER, "a")
        b = await ledger.submit_registration(OWNER, "b")
        c = await ledger.submit_registration(OWNER, "c")
        await ledger.submit_result_commit(ACTOR, a.id, "r1")
        await ledger.submit_result_commit(ACTOR, a.id, "r2")
        clock.advance(2 * 3600)
        await ledger.submit_result_commit(ACTOR, b.id, "r1")
        await ledger.submit_activation(OWNER, c.id, False)

        history = ListHistory()
        monitor = HealthMonitor(ledger, history, audit_logger=audit_logger, clock=clock)
        report = await monitor.sample()

        sample = report.sample
        assert sample.timestamp == clock.now
        assert sample.total_agents == 3
        assert sample.active_agents == 2
        assert sample.total_executions == 3
        # Only b executed within the last hour.
        assert sample.recent_executions == 1
        assert report.scanned == 3
        assert history.items == [sample]

        events = await audit_logger.read_events(event_type=AuditEventType.HEALTH_SAMPLED)
        assert len(events) == 1
        assert events[0].payload["total_agents"] == 3

    async def test_empty_registry(self, ledger, clock):
        report = await HealthMonitor(ledger, ListHistory(), clock=clock).sample()
        assert report.sample.total_agents == 0
        assert report.scanned == 0

    async def test_read_errors_counted_and_skipped(self, clock):
        ledger = ReadFailingLedger(broken=set(), commit_actor=ACTOR, clock=clock)
        await ledger.submit_registration(OWNER, "ok")
        bad = await ledger.submit_registration(OWNER, "bad")
        ledger.broken.add(bad.id)

        report = await HealthMonitor(ledger, ListHistory(), clock=clock).sample()
        assert report.errors == 1
        assert report.sample.total_agents == 2
        assert report.sample.active_agents == 1

    async def test_page_failure_keeps_partial_scan(self, clock):
        ledger = PageFailingLedger(fail_from=2, commit_actor=ACTOR, clock=clock)
        for i in range(5):
            await ledger.submit_registration(OWNER, f"g{i}")
        history = ListHistory()
        monitor = HealthMonitor(
            ledger, history, config=MonitorConfig(page_size=2), clock=clock
        )

        report = await monitor.sample()
        assert report.scan_error == "page lost"
        assert report.errors == 1
        assert report.scanned == 2
        assert report.sample.total_agents == 5
        assert report.sample.active_agents == 2
        assert history.items == [report.sample]

    async def test_history_failure_does_not_raise(self, ledger, clock):
        await ledger.submit_registration(OWNER, "a")
        report = await HealthMonitor(ledger, BrokenHistory(), clock=clock).sample()
        assert report.sample.total_agents == 1

    async def test_max_agents_bounds_scan(self, ledger, clock):
        for i in range(5):
            await ledger.submit_registration(OWNER, f"g{i}")
        monitor = HealthMonitor(
            ledger,
            ListHistory(),
            config=MonitorConfig(page_size=2, max_agents=3),
            clock=clock,
        )
        report = await monitor.sample()
        assert report.scanned == 3
        assert report.sample.total_agents == 5

    async def test_warnings_reported(self, ledger, clock):
        rec = await ledger.submit_registration(OWNER, "a")
        await ledger.submit_result_commit(ACTOR, rec.id, "r")
        clock.advance(7 * 3600)
        report = await HealthMonitor(ledger, ListHistory(), clock=clock).sample()
        assert [w.kind for w in report.warnings] == [HealthWarningKind.stale]

    async def test_monitor_never_mutates_agents(self, ledger, clock):
        rec = await ledger.submit_registration(OWNER, "a")
        before = await ledger.read_agent(rec.id)
        await HealthMonitor(ledger, ListHistory(), clock=clock).sample()
        assert await ledger.read_agent(rec.id) == before


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


class TestStats:
    async def test_no_data(self, ledger, clock):
        stats = await HealthMonitor(ledger, ListHistory(), clock=clock).stats()
        assert stats.current is None
        assert stats.hourly.count == 0
        assert stats.daily.avg_active_agents is None
        assert stats.history == []

    async def test_windows_relative_to_now(self, ledger, clock):
        history = ListHistory()
        now = clock.now
        history.items = [
            _sample(now - 2 * 86400, active=9),
            _sample(now - 5 * 3600, active=4, recent=1),
            _sample(now - 600, active=2, recent=2),
        ]
        monitor = HealthMonitor(ledger, history, clock=clock)
        stats = await monitor.stats()

        assert stats.current == history.items[-1]
        assert stats.hourly.count == 1
        assert stats.hourly.avg_active_agents == 2.0
        assert stats.daily.count == 2
        assert stats.daily.avg_active_agents == 3.0
        assert stats.daily.total_recent_executions == 3
        assert await monitor.last() == history.items[-1]

    async def test_history_preview_is_last_n(self, ledger, clock):
        history = ListHistory()
        history.items = [_sample(float(i)) for i in range(30)]
        monitor = HealthMonitor(
            ledger, history, config=MonitorConfig(history_preview=24), clock=clock
        )
        stats = await monitor.stats()
        assert len(stats.history) == 24
        assert stats.history[0].timestamp == 6.0
