"""Agent operations exposed to the request layer.

Thin, validated pass-through to the ledger. Every method returns a full
snapshot (or a derived view) and raises ``AgentLedgerError`` subclasses
for failures.
"""

from __future__ import annotations

import logging

from agentledger.ledger import LedgerGateway
from agentledger.models import AgentRecord
from agentledger.models import ExecutionEntry
from agentledger.models import MemoryEntry
from agentledger.models import RegistryPage

logger = logging.getLogger(__name__)


class AgentService:
    def __init__(self, ledger: LedgerGateway) -> None:
        self._ledger = ledger

    # -- reads --

    async def get_agent(self, agent_id: str) -> AgentRecord:
        return await self._ledger.read_agent(agent_id)

    async def list_agents(
        self, offset: int = 0, limit: int = 100
    ) -> tuple[list[AgentRecord], RegistryPage]:
        """Return one page of snapshots together with the page metadata."""
        page = await self._ledger.read_registry_page(offset, limit)
        agents = [await self._ledger.read_agent(agent_id) for agent_id in page.ids]
        return agents, page

    async def list_agents_by_owner(self, owner: str) -> list[AgentRecord]:
        ids = await self._ledger.read_owner_agents(owner)
        return [await self._ledger.read_agent(agent_id) for agent_id in ids]

    async def get_memory(self, agent_id: str, key: str) -> MemoryEntry:
        record = await self._ledger.read_agent(agent_id)
        return record.get_memory(key)

    async def get_execution_history(self, agent_id: str) -> list[ExecutionEntry]:
        record = await self._ledger.read_agent(agent_id)
        return record.execution_history()

    # -- writes --

    async def create_agent(self, caller: str, goal: str) -> AgentRecord:
        record = await self._ledger.submit_registration(caller, goal)
        logger.info("Created agent %s for %s", record.id, caller)
        return record

    async def update_goal(self, caller: str, agent_id: str, goal: str) -> AgentRecord:
        return await self._ledger.submit_goal_update(caller, agent_id, goal)

    async def store_memory(
        self, caller: str, agent_id: str, key: str, value: str
    ) -> AgentRecord:
        return await self._ledger.submit_memory_update(caller, agent_id, key, value)

    async def set_active(self, caller: str, agent_id: str, active: bool) -> AgentRecord:
        return await self._ledger.submit_activation(caller, agent_id, active)

    async def transfer_ownership(
        self, caller: str, agent_id: str, new_owner: str
    ) -> AgentRecord:
        return await self._ledger.submit_ownership_transfer(caller, agent_id, new_owner)
