"""Redis-backed ledger.

Records are stored as JSON strings keyed by ``{prefix}:agent:{id}``.
A list ``{prefix}:registry`` holds every id in creation order and
lists ``{prefix}:owner:{owner}`` hold the ids each identity created.
Registration is a single MULTI/EXEC transaction; mutations are
optimistic WATCH/MULTI read-modify-write cycles retried on conflict.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from collections.abc import Iterator
from contextlib import contextmanager

from redis.asyncio import Redis  # type: ignore[import-untyped]
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from redis.exceptions import WatchError

from agentledger.audit import AuditEventType
from agentledger.audit import AuditLogger
from agentledger.errors import NotFound
from agentledger.errors import Unavailable
from agentledger.ledger.base import LedgerEventsMixin
from agentledger.models import AgentRecord
from agentledger.models import page_bounds
from agentledger.models import RegistryPage
from agentledger.models.registry import validate_registration

logger = logging.getLogger(__name__)

_MAX_WATCH_RETRIES = 50


def _decode(raw: bytes | str) -> str:
    return raw.decode() if isinstance(raw, bytes) else raw


@contextmanager
def _redis_errors() -> Iterator[None]:
    """Translate connection-level Redis failures into ``Unavailable``."""
    try:
        yield
    except (RedisConnectionError, RedisTimeoutError) as exc:
        raise Unavailable(f"ledger backend unavailable: {exc}") from exc


class RedisLedger(LedgerEventsMixin):
    """Ledger persisted in Redis."""

    def __init__(
        self,
        redis: Redis,
        *,
        commit_actor: str | None = None,
        key_prefix: str = "agentledger",
        audit_logger: AuditLogger | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._redis = redis
        self._commit_actor = commit_actor
        self._prefix = key_prefix
        self._audit = audit_logger
        self._clock = clock

    # -- keys --

    def _agent_key(self, agent_id: str) -> str:
        return f"{self._prefix}:agent:{agent_id}"

    @property
    def _registry_key(self) -> str:
        return f"{self._prefix}:registry"

    def _owner_key(self, owner: str) -> str:
        return f"{self._prefix}:owner:{owner}"

    # -- reads --

    async def read_agent(self, agent_id: str) -> AgentRecord:
        with _redis_errors():
            raw = await self._redis.get(self._agent_key(agent_id))
        if raw is None:
            raise NotFound(f"Agent {agent_id} not found.")
        return AgentRecord.model_validate_json(raw)

    async def read_registry_page(self, offset: int, limit: int) -> RegistryPage:
        with _redis_errors():
            total = await self._redis.llen(self._registry_key)
            start, end = page_bounds(offset, limit, total)
            raw_ids = (
                await self._redis.lrange(self._registry_key, start, end - 1)
                if end > start
                else []
            )
        return RegistryPage(
            ids=[_decode(raw) for raw in raw_ids],
            offset=offset,
            total_count=total,
        )

    async def read_owner_agents(self, owner: str) -> list[str]:
        with _redis_errors():
            raw_ids = await self._redis.lrange(self._owner_key(owner), 0, -1)
        return [_decode(raw) for raw in raw_ids]

    async def is_registered(self, agent_id: str) -> bool:
        with _redis_errors():
            return bool(await self._redis.exists(self._agent_key(agent_id)))

    # -- submits --

    async def submit_registration(self, caller: str, goal: str) -> AgentRecord:
        validate_registration(caller, goal)
        with _redis_errors():
            async with self._redis.pipeline(transaction=True) as pipe:
                while True:
                    record = AgentRecord(
                        owner=caller, goal=goal, created_at=self._clock()
                    )
                    key = self._agent_key(record.id)
                    try:
                        await pipe.watch(key)
                        if await pipe.exists(key):
                            await pipe.unwatch()
                            continue
                        pipe.multi()
                        pipe.set(key, record.model_dump_json())
                        pipe.rpush(self._registry_key, record.id)
                        pipe.rpush(self._owner_key(caller), record.id)
                        await pipe.execute()
                        break
                    except WatchError:
                        continue
        await self._emit(AuditEventType.AGENT_REGISTERED, record.id, owner=caller)
        return record

    async def submit_goal_update(
        self, caller: str, agent_id: str, goal: str
    ) -> AgentRecord:
        record, _ = await self._mutate(
            agent_id, lambda rec: rec.update_goal(caller, goal)
        )
        await self._emit(AuditEventType.GOAL_UPDATED, agent_id, goal=goal)
        return record

    async def submit_memory_update(
        self, caller: str, agent_id: str, key: str, value: str
    ) -> AgentRecord:
        record, appended = await self._mutate(
            agent_id,
            lambda rec: rec.store_memory(
                caller,
                key,
                value,
                commit_actor=self._commit_actor,
                now=self._clock(),
            ),
        )
        await self._emit(
            AuditEventType.MEMORY_STORED, agent_id, key=key, appended=appended
        )
        return record

    async def submit_result_commit(
        self, caller: str, agent_id: str, text: str
    ) -> AgentRecord:
        record, _ = await self._mutate(
            agent_id,
            lambda rec: rec.commit_result(
                caller,
                text,
                commit_actor=self._commit_actor,
                now=self._clock(),
            ),
        )
        await self._emit(
            AuditEventType.RESULT_COMMITTED,
            agent_id,
            execution_count=record.execution_count,
        )
        return record

    async def submit_activation(
        self, caller: str, agent_id: str, active: bool
    ) -> AgentRecord:
        record, changed = await self._mutate(
            agent_id, lambda rec: rec.set_active(caller, active)
        )
        await self._emit_activation(record, bool(changed))
        return record

    async def submit_ownership_transfer(
        self, caller: str, agent_id: str, new_owner: str
    ) -> AgentRecord:
        record, previous = await self._mutate(
            agent_id, lambda rec: rec.transfer_ownership(caller, new_owner)
        )
        await self._emit(
            AuditEventType.OWNERSHIP_TRANSFERRED,
            agent_id,
            previous_owner=previous,
            new_owner=new_owner,
        )
        return record

    async def close(self) -> None:
        # The client belongs to whoever created it.
        return None

    # -- internal --

    async def _mutate(
        self,
        agent_id: str,
        apply: Callable[[AgentRecord], object],
    ) -> tuple[AgentRecord, object]:
        """Apply *apply* to the stored record atomically.

        The record key is WATCHed; a concurrent write aborts EXEC and the
        cycle restarts from a fresh read. Authorization and validation
        errors raised by *apply* propagate without writing.
        """
        key = self._agent_key(agent_id)
        with _redis_errors():
            async with self._redis.pipeline(transaction=True) as pipe:
                for _ in range(_MAX_WATCH_RETRIES):
                    try:
                        await pipe.watch(key)
                        raw = await pipe.get(key)
                        if raw is None:
                            raise NotFound(f"Agent {agent_id} not found.")
                        record = AgentRecord.model_validate_json(raw)
                        outcome = apply(record)
                        pipe.multi()
                        pipe.set(key, record.model_dump_json())
                        await pipe.execute()
                        return record, outcome
                    except WatchError:
                        logger.debug("Write conflict on %s, retrying", key)
                        continue
        raise Unavailable(f"too many concurrent writes to agent {agent_id}.")
