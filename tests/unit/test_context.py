"""Unit tests for AppContext wiring and the CLI entry point."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from agentledger.cli import main
from agentledger.config import AppConfig
from agentledger.config import AuditConfig
from agentledger.config import LedgerConfig
from agentledger.config import LLMConfig
from agentledger.config import MonitorConfig
from agentledger.context import AppContext
from agentledger.ledger import RetryingLedger
from agentledger.reasoning import EchoReasoningAdapter
from agentledger.scheduler import AgentOutcome

OWNER = "0xA11CE"


def _config(tmp_path: Path, **ledger) -> AppConfig:
    return AppConfig(
        ledger=LedgerConfig(**ledger),
        llm=LLMConfig(provider="echo"),
        monitor=MonitorConfig(history_path=str(tmp_path / "history.json")),
        audit=AuditConfig(file_path=str(tmp_path / "audit.jsonl")),
    )


class TestBuild:
    async def test_default_wiring(self, tmp_path: Path, clock):
        ctx = AppContext.build(_config(tmp_path), clock=clock)
        try:
            assert isinstance(ctx.ledger, RetryingLedger)
            assert isinstance(ctx.reasoning, EchoReasoningAdapter)
            assert ctx.redis is None

            rec = await ctx.service.create_agent(OWNER, "Track BTC price")
            report = await ctx.scheduler.tick()
            assert report.outcomes[rec.id] is AgentOutcome.committed

            sample = await ctx.monitor.sample()
            assert sample.sample.total_executions == 1
            assert (tmp_path / "history.json").exists()
        finally:
            await ctx.close()

    def test_unsupported_backend(self, tmp_path: Path):
        with pytest.raises(ValueError, match="Unsupported ledger backend"):
            AppContext.build(_config(tmp_path, backend="sqlite"))

    def test_openai_without_key(self, tmp_path: Path):
        cfg = AppConfig(
            llm=LLMConfig(provider="openai", api_key=None),
            audit=AuditConfig(file_path=str(tmp_path / "audit.jsonl")),
        )
        with pytest.raises(ValueError, match="api_key is required"):
            AppContext.build(cfg)

    async def test_start_and_close_loops(self, tmp_path: Path, clock):
        ctx = AppContext.build(_config(tmp_path), clock=clock)
        ctx.start()
        assert len(ctx.tasks) == 2
        assert all(task.running for task in ctx.tasks)
        await ctx.close()
        assert ctx.tasks == []


class TestCli:
    @pytest.fixture()
    def env(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("AGENTLEDGER_LLM_PROVIDER", "echo")
        monkeypatch.setenv("AGENTLEDGER_LEDGER_BACKEND", "memory")
        monkeypatch.setenv("AGENTLEDGER_HISTORY_BACKEND", "file")
        monkeypatch.setenv("AGENTLEDGER_HISTORY_PATH", str(tmp_path / "history.json"))
        monkeypatch.setenv("AGENTLEDGER_AUDIT_PATH", str(tmp_path / "audit.jsonl"))
        return tmp_path

    def test_stats_without_data(self, env, capsys):
        assert main(["stats"]) == 1
        assert "No monitoring data" in capsys.readouterr().out

    def test_run_once_then_stats(self, env, capsys):
        assert main(["run", "--once"]) == 0
        capsys.readouterr()

        assert main(["stats"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["current"]["total_agents"] == 0
