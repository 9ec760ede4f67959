"""Process-wide wiring, built once and passed by reference.

``AppContext.build(config)`` constructs every component from an
``AppConfig``; collaborators can be injected for tests. The context owns
the backend clients and the periodic tasks and releases them on
``close()``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from dataclasses import field

from redis.asyncio import Redis  # type: ignore[import-untyped]

from agentledger.audit import AuditLogger
from agentledger.config import AppConfig
from agentledger.ledger import InMemoryLedger
from agentledger.ledger import LedgerGateway
from agentledger.ledger import RedisLedger
from agentledger.ledger import RetryingLedger
from agentledger.monitor import FileHistoryStore
from agentledger.monitor import HealthMonitor
from agentledger.monitor import HistoryStore
from agentledger.monitor import RedisHistoryStore
from agentledger.reasoning import build_reasoning_adapter
from agentledger.reasoning import ReasoningGateway
from agentledger.scheduler import PeriodicTask
from agentledger.scheduler import ReconciliationScheduler
from agentledger.service import AgentService

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    config: AppConfig
    ledger: LedgerGateway
    reasoning: ReasoningGateway
    audit: AuditLogger
    scheduler: ReconciliationScheduler
    monitor: HealthMonitor
    service: AgentService
    redis: Redis | None = None
    tasks: list[PeriodicTask] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        config: AppConfig | None = None,
        *,
        ledger: LedgerGateway | None = None,
        reasoning: ReasoningGateway | None = None,
        history: HistoryStore | None = None,
        redis: Redis | None = None,
        clock: Callable[[], float] = time.time,
    ) -> AppContext:
        cfg = config or AppConfig()
        audit = AuditLogger(cfg.audit)

        backend = cfg.ledger.backend.strip().lower()
        uses_redis = backend == "redis" or cfg.monitor.history_backend == "redis"
        if redis is None and uses_redis:
            redis = Redis.from_url(cfg.ledger.redis_url)

        if ledger is None:
            if backend == "memory":
                base: LedgerGateway = InMemoryLedger(
                    commit_actor=cfg.ledger.commit_actor,
                    audit_logger=audit,
                    clock=clock,
                )
            elif backend == "redis":
                base = RedisLedger(
                    redis,
                    commit_actor=cfg.ledger.commit_actor,
                    key_prefix=cfg.ledger.key_prefix,
                    audit_logger=audit,
                    clock=clock,
                )
            else:
                raise ValueError(
                    f"Unsupported ledger backend '{cfg.ledger.backend}'. "
                    "Supported backends: memory, redis."
                )
            ledger = RetryingLedger(
                base,
                timeout_seconds=cfg.ledger.timeout_seconds,
                max_attempts=cfg.ledger.max_attempts,
            )

        if reasoning is None:
            reasoning = build_reasoning_adapter(cfg.llm)

        if history is None:
            if cfg.monitor.history_backend == "redis":
                history = RedisHistoryStore(
                    redis,
                    key=f"{cfg.ledger.key_prefix}:monitor:history",
                    cap=cfg.monitor.history_cap,
                )
            else:
                history = FileHistoryStore(
                    cfg.monitor.history_path, cap=cfg.monitor.history_cap
                )

        scheduler = ReconciliationScheduler(
            ledger,
            reasoning,
            commit_actor=cfg.ledger.commit_actor,
            config=cfg.scheduler,
            reasoning_timeout=cfg.llm.timeout_seconds,
            audit_logger=audit,
            clock=clock,
        )
        monitor = HealthMonitor(
            ledger,
            history,
            config=cfg.monitor,
            audit_logger=audit,
            clock=clock,
        )
        return cls(
            config=cfg,
            ledger=ledger,
            reasoning=reasoning,
            audit=audit,
            scheduler=scheduler,
            monitor=monitor,
            service=AgentService(ledger),
            redis=redis,
        )

    def start(self, *, scheduler: bool = True, monitor: bool = True) -> None:
        """Start the periodic loops on the running event loop."""
        if scheduler:
            self.tasks.append(self.scheduler.periodic_task())
        if monitor:
            self.tasks.append(self.monitor.periodic_task())
        for task in self.tasks:
            task.start()

    async def close(self) -> None:
        """Stop loops (letting in-flight work finish) and close clients."""
        for task in self.tasks:
            await task.stop()
        self.tasks.clear()
        await self.ledger.close()
        if self.redis is not None:
            await self.redis.aclose()
