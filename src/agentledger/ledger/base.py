"""Ledger gateway contract.

The ledger is the single source of truth for agent state. Every
``submit_*`` call returns only once the change is durably ordered, or
raises an authorization/validation error. Submits are independent
units: nothing makes two of them atomic.
"""

from __future__ import annotations

import logging
from typing import Protocol
from typing import runtime_checkable

from agentledger.audit import AuditEventType
from agentledger.audit import AuditLogger
from agentledger.models import AgentRecord
from agentledger.models import RegistryPage

logger = logging.getLogger(__name__)


@runtime_checkable
class LedgerGateway(Protocol):
    """Logical reads and writes of agent records and the registry."""

    async def read_agent(self, agent_id: str) -> AgentRecord: ...

    async def read_registry_page(self, offset: int, limit: int) -> RegistryPage: ...

    async def read_owner_agents(self, owner: str) -> list[str]: ...

    async def is_registered(self, agent_id: str) -> bool: ...

    async def submit_registration(self, caller: str, goal: str) -> AgentRecord: ...

    async def submit_goal_update(
        self, caller: str, agent_id: str, goal: str
    ) -> AgentRecord: ...

    async def submit_memory_update(
        self, caller: str, agent_id: str, key: str, value: str
    ) -> AgentRecord: ...

    async def submit_result_commit(
        self, caller: str, agent_id: str, text: str
    ) -> AgentRecord: ...

    async def submit_activation(
        self, caller: str, agent_id: str, active: bool
    ) -> AgentRecord: ...

    async def submit_ownership_transfer(
        self, caller: str, agent_id: str, new_owner: str
    ) -> AgentRecord: ...

    async def close(self) -> None: ...


class LedgerEventsMixin:
    """Emit one audit event per confirmed ledger mutation."""

    _audit: AuditLogger | None

    async def _emit(
        self,
        event_type: AuditEventType,
        agent_id: str,
        **payload: object,
    ) -> None:
        if self._audit is None:
            return
        try:
            await self._audit.emit(event_type, agent_id=agent_id, **payload)
        except OSError:
            # Mutation already confirmed; log and carry on.
            logger.warning(
                "Failed to write %s event for agent %s",
                event_type.value,
                agent_id,
                exc_info=True,
            )

    async def _emit_activation(self, record: AgentRecord, changed: bool) -> None:
        event_type = (
            AuditEventType.AGENT_ACTIVATED
            if record.is_active
            else AuditEventType.AGENT_DEACTIVATED
        )
        await self._emit(event_type, record.id, changed=changed)
