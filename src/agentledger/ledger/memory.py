"""In-process ledger backed by ``AgentRegistry``.

All operations run under one ``asyncio.Lock`` so the ledger is
linearizable within the process. Reads and submits return deep copies;
callers never hold a reference to live state.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable

from agentledger.audit import AuditEventType
from agentledger.audit import AuditLogger
from agentledger.ledger.base import LedgerEventsMixin
from agentledger.models import AgentRecord
from agentledger.models import AgentRegistry
from agentledger.models import RegistryPage


class InMemoryLedger(LedgerEventsMixin):
    """Trusted in-process ledger with owner-checked writes."""

    def __init__(
        self,
        *,
        commit_actor: str | None = None,
        audit_logger: AuditLogger | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._registry = AgentRegistry()
        self._commit_actor = commit_actor
        self._audit = audit_logger
        self._clock = clock
        self._lock = asyncio.Lock()

    # -- reads --

    async def read_agent(self, agent_id: str) -> AgentRecord:
        async with self._lock:
            return self._registry.get(agent_id).model_copy(deep=True)

    async def read_registry_page(self, offset: int, limit: int) -> RegistryPage:
        async with self._lock:
            return self._registry.list_page(offset, limit)

    async def read_owner_agents(self, owner: str) -> list[str]:
        async with self._lock:
            return self._registry.list_by_owner(owner)

    async def is_registered(self, agent_id: str) -> bool:
        async with self._lock:
            return self._registry.contains(agent_id)

    # -- submits --

    async def submit_registration(self, caller: str, goal: str) -> AgentRecord:
        async with self._lock:
            agent_id = self._registry.register(caller, goal, now=self._clock())
            snapshot = self._registry.get(agent_id).model_copy(deep=True)
        await self._emit(AuditEventType.AGENT_REGISTERED, agent_id, owner=caller)
        return snapshot

    async def submit_goal_update(
        self, caller: str, agent_id: str, goal: str
    ) -> AgentRecord:
        async with self._lock:
            record = self._registry.get(agent_id)
            record.update_goal(caller, goal)
            snapshot = record.model_copy(deep=True)
        await self._emit(AuditEventType.GOAL_UPDATED, agent_id, goal=goal)
        return snapshot

    async def submit_memory_update(
        self, caller: str, agent_id: str, key: str, value: str
    ) -> AgentRecord:
        async with self._lock:
            record = self._registry.get(agent_id)
            appended = record.store_memory(
                caller,
                key,
                value,
                commit_actor=self._commit_actor,
                now=self._clock(),
            )
            snapshot = record.model_copy(deep=True)
        await self._emit(
            AuditEventType.MEMORY_STORED, agent_id, key=key, appended=appended
        )
        return snapshot

    async def submit_result_commit(
        self, caller: str, agent_id: str, text: str
    ) -> AgentRecord:
        async with self._lock:
            record = self._registry.get(agent_id)
            record.commit_result(
                caller,
                text,
                commit_actor=self._commit_actor,
                now=self._clock(),
            )
            snapshot = record.model_copy(deep=True)
        await self._emit(
            AuditEventType.RESULT_COMMITTED,
            agent_id,
            execution_count=snapshot.execution_count,
        )
        return snapshot

    async def submit_activation(
        self, caller: str, agent_id: str, active: bool
    ) -> AgentRecord:
        async with self._lock:
            record = self._registry.get(agent_id)
            changed = record.set_active(caller, active)
            snapshot = record.model_copy(deep=True)
        await self._emit_activation(snapshot, changed)
        return snapshot

    async def submit_ownership_transfer(
        self, caller: str, agent_id: str, new_owner: str
    ) -> AgentRecord:
        async with self._lock:
            record = self._registry.get(agent_id)
            previous = record.transfer_ownership(caller, new_owner)
            snapshot = record.model_copy(deep=True)
        await self._emit(
            AuditEventType.OWNERSHIP_TRANSFERRED,
            agent_id,
            previous_owner=previous,
            new_owner=new_owner,
        )
        return snapshot

    async def close(self) -> None:
        return None
