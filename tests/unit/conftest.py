"""Unit test fixtures: in-memory ledger, audit log and FastMCP client."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastmcp import Client

from agentledger.audit import AuditLogger
from agentledger.config import AuditConfig
from agentledger.ledger import InMemoryLedger
from agentledger.server import build_server
from agentledger.service import AgentService

COMMIT_ACTOR = "executor"
OWNER = "0xA11CE"
OTHER = "0xB0B"


@pytest.fixture()
def audit_logger(tmp_path: Path) -> AuditLogger:
    return AuditLogger(AuditConfig(file_path=str(tmp_path / "audit.jsonl")))


@pytest.fixture()
def ledger(clock, audit_logger) -> InMemoryLedger:
    return InMemoryLedger(
        commit_actor=COMMIT_ACTOR,
        audit_logger=audit_logger,
        clock=clock,
    )


@pytest.fixture()
def service(ledger) -> AgentService:
    return AgentService(ledger)


@pytest.fixture()
async def mcp_client(service):
    """Yield a FastMCP Client wired to a server over the in-memory ledger."""
    async with Client(build_server(service)) as client:
        yield client
