"""Unit tests for in-process latency observability helpers."""

from __future__ import annotations

import pytest

from agentledger.observability import latency_metrics_snapshot
from agentledger.observability import record_latency
from agentledger.observability import reset_latency_metrics
from agentledger.observability import timed


class TestObservabilityLatency:
    def setup_method(self):
        reset_latency_metrics()

    def teardown_method(self):
        reset_latency_metrics()

    def test_records_latency_aggregates(self):
        record_latency(operation="mcp.get_agent", duration_ms=10.0, ok=True)
        record_latency(operation="mcp.get_agent", duration_ms=30.0, ok=False)

        metrics = latency_metrics_snapshot()["mcp.get_agent"]
        assert metrics["count"] == 2
        assert metrics["error_count"] == 1
        assert metrics["avg_ms"] == 20.0
        assert metrics["min_ms"] == 10.0
        assert metrics["max_ms"] == 30.0
        assert metrics["last_ms"] == 30.0

    def test_negative_duration_clamped(self):
        record_latency(operation="scheduler.tick", duration_ms=-5.0)
        assert latency_metrics_snapshot()["scheduler.tick"]["min_ms"] == 0.0

    def test_timed_counts_error_unless_marked_ok(self):
        with timed("monitor.sample"):
            pass
        with timed("monitor.sample") as timer:
            timer.ok = True

        metrics = latency_metrics_snapshot()["monitor.sample"]
        assert metrics["count"] == 2
        assert metrics["error_count"] == 1

    def test_timed_records_on_exception(self):
        with pytest.raises(RuntimeError):
            with timed("scheduler.agent"):
                raise RuntimeError("boom")
        assert latency_metrics_snapshot()["scheduler.agent"]["error_count"] == 1

    def test_reset_clears_all_metrics(self):
        record_latency(operation="scheduler.tick", duration_ms=12.0)
        reset_latency_metrics()
        assert latency_metrics_snapshot() == {}
