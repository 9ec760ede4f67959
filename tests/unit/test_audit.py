"""Unit tests for the audit logger."""

from __future__ import annotations

import json
from pathlib import Path

from agentledger.audit import AuditEvent
from agentledger.audit import AuditEventType
from agentledger.audit import AuditLogger
from agentledger.config import AuditConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_event(
    event_type: AuditEventType = AuditEventType.RESULT_COMMITTED,
    timestamp: float = 1000.0,
    agent_id: str | None = "agent_1",
    payload: dict | None = None,
) -> AuditEvent:
    return AuditEvent(
        timestamp=timestamp,
        event_type=event_type,
        agent_id=agent_id,
        payload=payload or {},
    )


def _config(tmp_path: Path, *, enabled: bool = True) -> AuditConfig:
    return AuditConfig(file_path=str(tmp_path / "test_audit.jsonl"), enabled=enabled)


# ---------------------------------------------------------------------------
# Write
# ---------------------------------------------------------------------------


class TestAuditLogWrite:
    async def test_log_event_writes_jsonl_line(self, tmp_path: Path):
        logger = AuditLogger(_config(tmp_path))
        await logger.log(_make_event(payload={"execution_count": 3}))

        lines = Path(logger.config.file_path).read_text().strip().splitlines()
        assert len(lines) == 1
        data = json.loads(lines[0])
        assert data["event_type"] == "RESULT_COMMITTED"
        assert data["agent_id"] == "agent_1"
        assert data["payload"] == {"execution_count": 3}

    async def test_emit_builds_event(self, tmp_path: Path):
        logger = AuditLogger(_config(tmp_path))
        await logger.emit(AuditEventType.TICK_COMPLETED, scanned=4, committed=2)

        events = await logger.read_events()
        assert len(events) == 1
        assert events[0].agent_id is None
        assert events[0].payload == {"scanned": 4, "committed": 2}

    async def test_disabled_logger_writes_nothing(self, tmp_path: Path):
        logger = AuditLogger(_config(tmp_path, enabled=False))
        await logger.log(_make_event())
        assert not Path(logger.config.file_path).exists()


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------


class TestAuditLogRead:
    async def test_missing_file_reads_empty(self, tmp_path: Path):
        assert await AuditLogger(_config(tmp_path)).read_events() == []

    async def test_filters(self, tmp_path: Path):
        logger = AuditLogger(_config(tmp_path))
        await logger.log(_make_event(AuditEventType.AGENT_REGISTERED, 100.0, "a"))
        await logger.log(_make_event(AuditEventType.RESULT_COMMITTED, 200.0, "a"))
        await logger.log(_make_event(AuditEventType.RESULT_COMMITTED, 300.0, "b"))

        by_type = await logger.read_events(event_type=AuditEventType.RESULT_COMMITTED)
        assert [e.agent_id for e in by_type] == ["a", "b"]
        by_agent = await logger.read_events(agent_id="a")
        assert len(by_agent) == 2
        since = await logger.read_events(since=250.0)
        assert [e.timestamp for e in since] == [300.0]

    async def test_malformed_lines_skipped(self, tmp_path: Path):
        logger = AuditLogger(_config(tmp_path))
        await logger.log(_make_event())
        with open(logger.config.file_path, "a", encoding="utf-8") as fh:
            fh.write("not json\n")
        await logger.log(_make_event(timestamp=2000.0))

        events = await logger.read_events()
        assert [e.timestamp for e in events] == [1000.0, 2000.0]
