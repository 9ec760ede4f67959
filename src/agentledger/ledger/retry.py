"""Timeout and retry wrapper around any ``LedgerGateway``.

Every call is bounded by ``asyncio.wait_for``; a timeout is reported as
``Unavailable`` exactly like a backend failure. Reads and idempotent
submits (goal update, memory upsert, activation) are retried on
``Unavailable`` with exponential jitter. Result commits, registrations
and ownership transfers are attempted once: if the ledger applied one
but the confirmation was lost, a retry would apply it twice.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from collections.abc import Callable
from typing import TypeVar

from tenacity import AsyncRetrying
from tenacity import retry_if_exception_type
from tenacity import stop_after_attempt
from tenacity import wait_exponential_jitter

from agentledger.errors import Unavailable
from agentledger.ledger.base import LedgerGateway
from agentledger.models import AgentRecord
from agentledger.models import RegistryPage

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class RetryingLedger:
    """``LedgerGateway`` decorator adding caller-side timeouts and retries."""

    def __init__(
        self,
        inner: LedgerGateway,
        *,
        timeout_seconds: float = 10.0,
        max_attempts: int = 3,
        initial_wait: float = 0.25,
        max_wait: float = 5.0,
    ) -> None:
        self._inner = inner
        self._timeout = timeout_seconds
        self._max_attempts = max(1, max_attempts)
        self._initial_wait = initial_wait
        self._max_wait = max_wait

    @property
    def inner(self) -> LedgerGateway:
        return self._inner

    # -- plumbing --

    async def _bounded(self, operation: str, fn: Callable[[], Awaitable[_T]]) -> _T:
        try:
            return await asyncio.wait_for(fn(), timeout=self._timeout)
        except TimeoutError as exc:
            raise Unavailable(
                f"ledger {operation} timed out after {self._timeout:.1f}s"
            ) from exc

    async def _once(self, operation: str, fn: Callable[[], Awaitable[_T]]) -> _T:
        return await self._bounded(operation, fn)

    async def _retried(self, operation: str, fn: Callable[[], Awaitable[_T]]) -> _T:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(Unavailable),
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential_jitter(initial=self._initial_wait, max=self._max_wait),
            before_sleep=lambda state: logger.warning(
                "ledger %s unavailable (attempt %d/%d), retrying",
                operation,
                state.attempt_number,
                self._max_attempts,
            ),
            reraise=True,
        )
        return await retrying(self._bounded, operation, fn)

    # -- reads --

    async def read_agent(self, agent_id: str) -> AgentRecord:
        return await self._retried(
            "read_agent", lambda: self._inner.read_agent(agent_id)
        )

    async def read_registry_page(self, offset: int, limit: int) -> RegistryPage:
        return await self._retried(
            "read_registry_page",
            lambda: self._inner.read_registry_page(offset, limit),
        )

    async def read_owner_agents(self, owner: str) -> list[str]:
        return await self._retried(
            "read_owner_agents", lambda: self._inner.read_owner_agents(owner)
        )

    async def is_registered(self, agent_id: str) -> bool:
        return await self._retried(
            "is_registered", lambda: self._inner.is_registered(agent_id)
        )

    # -- idempotent submits --

    async def submit_goal_update(
        self, caller: str, agent_id: str, goal: str
    ) -> AgentRecord:
        return await self._retried(
            "submit_goal_update",
            lambda: self._inner.submit_goal_update(caller, agent_id, goal),
        )

    async def submit_memory_update(
        self, caller: str, agent_id: str, key: str, value: str
    ) -> AgentRecord:
        return await self._retried(
            "submit_memory_update",
            lambda: self._inner.submit_memory_update(caller, agent_id, key, value),
        )

    async def submit_activation(
        self, caller: str, agent_id: str, active: bool
    ) -> AgentRecord:
        return await self._retried(
            "submit_activation",
            lambda: self._inner.submit_activation(caller, agent_id, active),
        )

    # -- single-shot submits --

    async def submit_registration(self, caller: str, goal: str) -> AgentRecord:
        return await self._once(
            "submit_registration",
            lambda: self._inner.submit_registration(caller, goal),
        )

    async def submit_result_commit(
        self, caller: str, agent_id: str, text: str
    ) -> AgentRecord:
        return await self._once(
            "submit_result_commit",
            lambda: self._inner.submit_result_commit(caller, agent_id, text),
        )

    async def submit_ownership_transfer(
        self, caller: str, agent_id: str, new_owner: str
    ) -> AgentRecord:
        return await self._once(
            "submit_ownership_transfer",
            lambda: self._inner.submit_ownership_transfer(caller, agent_id, new_owner),
        )

    async def close(self) -> None:
        await self._inner.close()
