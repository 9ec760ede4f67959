"""Pydantic result envelopes for the MCP tool surface.

Every tool returns one of these models instead of raising: ``status`` is
``"ok"`` or ``"error"`` and failures carry ``error_code`` (an
``ErrorKind`` value) plus a human-readable ``message``.
FastMCP v2 serializes Pydantic models automatically.
"""

from __future__ import annotations

from pydantic import BaseModel
from pydantic import Field

from agentledger.models.agent import AgentRecord
from agentledger.models.agent import ExecutionEntry
from agentledger.models.agent import MemoryEntry
from agentledger.monitor.schemas import MonitoringStats


class ToolResult(BaseModel):
    status: str = Field(default="ok", description="'ok' or 'error'.")
    error_code: str | None = Field(
        default=None,
        description="Error kind when status is 'error'.",
    )
    message: str | None = None


class AgentResult(ToolResult):
    agent: AgentRecord | None = None


class AgentListResult(ToolResult):
    agents: list[AgentRecord] = Field(default_factory=list)
    offset: int = 0
    total_count: int = 0
    has_more: bool = False


class MemoryResult(ToolResult):
    agent_id: str = ""
    memory: MemoryEntry | None = None


class ExecutionHistoryResult(ToolResult):
    agent_id: str = ""
    executions: list[ExecutionEntry] = Field(default_factory=list)
    count: int = 0


class StatsResult(ToolResult):
    stats: MonitoringStats | None = None
