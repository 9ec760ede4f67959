"""FastMCP tool surface over ``AgentService``.

``build_server(service, monitor=...)`` returns a ready ``FastMCP``
instance; nothing is configured through module globals. Tools never
raise: failures come back as result envelopes with an ``error_code``.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from collections.abc import Callable
from typing import TypeVar

from fastmcp import FastMCP
from pydantic import ValidationError

from agentledger.errors import AgentLedgerError
from agentledger.errors import ErrorKind
from agentledger.models.schemas import AgentListResult
from agentledger.models.schemas import AgentResult
from agentledger.models.schemas import ExecutionHistoryResult
from agentledger.models.schemas import MemoryResult
from agentledger.models.schemas import StatsResult
from agentledger.models.schemas import ToolResult
from agentledger.monitor import HealthMonitor
from agentledger.observability import timed
from agentledger.service import AgentService

logger = logging.getLogger(__name__)

_R = TypeVar("_R", bound=ToolResult)


def _validation_message(exc: ValidationError) -> str:
    err = exc.errors()[0] if exc.errors() else {}
    return str(err.get("msg", "Invalid input"))


async def _run_tool(
    name: str,
    result_type: type[_R],
    call: Callable[[], Awaitable[_R]],
    **error_fields: object,
) -> _R:
    """Run *call*, mapping every failure to an error envelope."""
    with timed(f"mcp.{name}") as timer:
        try:
            result = await call()
        except AgentLedgerError as exc:
            return result_type(status="error", **exc.to_payload(), **error_fields)
        except ValidationError as exc:
            return result_type(
                status="error",
                error_code=ErrorKind.invalid_argument.value,
                message=_validation_message(exc),
                **error_fields,
            )
        except Exception:
            logger.exception("Tool %s failed unexpectedly", name)
            return result_type(
                status="error",
                error_code=ErrorKind.internal.value,
                message=f"{name} failed with an internal error.",
                **error_fields,
            )
        timer.ok = True
        return result


def build_server(
    service: AgentService,
    *,
    monitor: HealthMonitor | None = None,
    name: str = "AgentLedger",
) -> FastMCP:
    """Create a FastMCP server exposing the agent operations as tools."""
    mcp = FastMCP(name)

    # -- reads --

    @mcp.tool
    async def get_agent(agent_id: str) -> AgentResult:
        """Return the full snapshot of one agent."""

        async def call() -> AgentResult:
            return AgentResult(agent=await service.get_agent(agent_id))

        return await _run_tool("get_agent", AgentResult, call)

    @mcp.tool
    async def list_agents(offset: int = 0, limit: int = 100) -> AgentListResult:
        """Page through agents in creation order.

        Args:
            offset: Index of the first agent to return.
            limit: Maximum number of agents to return.
        """

        async def call() -> AgentListResult:
            agents, page = await service.list_agents(offset, limit)
            return AgentListResult(
                agents=agents,
                offset=page.offset,
                total_count=page.total_count,
                has_more=page.has_more,
            )

        return await _run_tool("list_agents", AgentListResult, call, offset=offset)

    @mcp.tool
    async def list_agents_by_owner(owner: str) -> AgentListResult:
        """List the agents an identity created, oldest first."""

        async def call() -> AgentListResult:
            agents = await service.list_agents_by_owner(owner)
            return AgentListResult(agents=agents, total_count=len(agents))

        return await _run_tool("list_agents_by_owner", AgentListResult, call)

    @mcp.tool
    async def get_memory(agent_id: str, key: str) -> MemoryResult:
        """Return one memory entry by key."""

        async def call() -> MemoryResult:
            memory = await service.get_memory(agent_id, key)
            return MemoryResult(agent_id=agent_id, memory=memory)

        return await _run_tool("get_memory", MemoryResult, call, agent_id=agent_id)

    @mcp.tool
    async def get_execution_history(agent_id: str) -> ExecutionHistoryResult:
        """Return the agent's execution memories, newest first."""

        async def call() -> ExecutionHistoryResult:
            executions = await service.get_execution_history(agent_id)
            return ExecutionHistoryResult(
                agent_id=agent_id,
                executions=executions,
                count=len(executions),
            )

        return await _run_tool(
            "get_execution_history",
            ExecutionHistoryResult,
            call,
            agent_id=agent_id,
        )

    # -- writes --

    @mcp.tool
    async def create_agent(caller: str, goal: str) -> AgentResult:
        """Register a new agent owned by *caller*.

        Args:
            caller: Identity that will own the agent.
            goal: Free-form objective for the agent.
        """

        async def call() -> AgentResult:
            return AgentResult(agent=await service.create_agent(caller, goal))

        return await _run_tool("create_agent", AgentResult, call)

    @mcp.tool
    async def update_goal(caller: str, agent_id: str, goal: str) -> AgentResult:
        """Replace an agent's goal. Owner only."""

        async def call() -> AgentResult:
            return AgentResult(agent=await service.update_goal(caller, agent_id, goal))

        return await _run_tool("update_goal", AgentResult, call)

    @mcp.tool
    async def store_memory(
        caller: str,
        agent_id: str,
        key: str,
        value: str,
    ) -> AgentResult:
        """Insert or update one memory. Owner or commit actor only."""

        async def call() -> AgentResult:
            agent = await service.store_memory(caller, agent_id, key, value)
            return AgentResult(agent=agent)

        return await _run_tool("store_memory", AgentResult, call)

    @mcp.tool
    async def set_active(caller: str, agent_id: str, active: bool) -> AgentResult:
        """Activate or deactivate an agent. Owner only."""

        async def call() -> AgentResult:
            agent = await service.set_active(caller, agent_id, active)
            return AgentResult(agent=agent)

        return await _run_tool("set_active", AgentResult, call)

    @mcp.tool
    async def transfer_ownership(
        caller: str,
        agent_id: str,
        new_owner: str,
    ) -> AgentResult:
        """Hand an agent over to another identity. Owner only."""

        async def call() -> AgentResult:
            agent = await service.transfer_ownership(caller, agent_id, new_owner)
            return AgentResult(agent=agent)

        return await _run_tool("transfer_ownership", AgentResult, call)

    if monitor is not None:

        @mcp.tool
        async def get_monitoring_stats() -> StatsResult:
            """Latest health sample plus hourly and daily aggregates."""

            async def call() -> StatsResult:
                return StatsResult(stats=await monitor.stats())

            return await _run_tool("get_monitoring_stats", StatsResult, call)

    return mcp
