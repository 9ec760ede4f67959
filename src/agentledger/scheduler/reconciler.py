"""Reconciliation loop: discover, filter, generate, commit.

Each tick pages through the registry, reads every agent, skips the
inactive and the cooling ones, and for each due agent calls the
reasoning gateway and commits the result followed by a derived
``execution_<n>`` memory. The two submits are independent: a failed
memory write leaves the committed result in place.

Per-agent failures are caught at the agent boundary and recorded in the
``TickReport``; they never abort the rest of the tick.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import datetime
from datetime import timezone
from enum import Enum

from pydantic import BaseModel
from pydantic import computed_field
from pydantic import Field

from agentledger.audit import AuditEventType
from agentledger.audit import AuditLogger
from agentledger.config import SchedulerConfig
from agentledger.errors import AgentLedgerError
from agentledger.errors import OutOfRange
from agentledger.errors import Unavailable
from agentledger.ledger import LedgerGateway
from agentledger.models import EXECUTION_KEY_PREFIX
from agentledger.observability import timed
from agentledger.reasoning import build_agent_prompt
from agentledger.reasoning import ReasoningGateway
from agentledger.scheduler.periodic import PeriodicTask

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Report models
# ---------------------------------------------------------------------------


class AgentOutcome(str, Enum):
    """What happened to one agent during one tick."""

    committed = "committed"
    inactive = "inactive"
    cooling = "cooling"
    read_failed = "read_failed"
    generation_failed = "generation_failed"
    commit_failed = "commit_failed"
    # The result was committed but the derived memory was not.
    memory_failed = "memory_failed"
    internal_error = "internal_error"


_COMMITTED = {AgentOutcome.committed, AgentOutcome.memory_failed}
_FAILED = {
    AgentOutcome.read_failed,
    AgentOutcome.generation_failed,
    AgentOutcome.commit_failed,
    AgentOutcome.memory_failed,
    AgentOutcome.internal_error,
}
_DUE = {
    AgentOutcome.committed,
    AgentOutcome.generation_failed,
    AgentOutcome.commit_failed,
    AgentOutcome.memory_failed,
}


class TickReport(BaseModel):
    """Summary of one reconciliation pass."""

    started_at: float
    finished_at: float = 0.0
    scanned: int = 0
    outcomes: dict[str, AgentOutcome] = Field(default_factory=dict)
    discovery_error: str | None = None

    def _count(self, kinds: set[AgentOutcome]) -> int:
        return sum(1 for outcome in self.outcomes.values() if outcome in kinds)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def due(self) -> int:
        return self._count(_DUE)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def committed(self) -> int:
        return self._count(_COMMITTED)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def skipped_inactive(self) -> int:
        return self._count({AgentOutcome.inactive})

    @computed_field  # type: ignore[prop-decorator]
    @property
    def skipped_cooling(self) -> int:
        return self._count({AgentOutcome.cooling})

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failed(self) -> int:
        return self._count(_FAILED)


def _iso(timestamp: float) -> str:
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------


class ReconciliationScheduler:
    """Periodically advance every due, active agent."""

    def __init__(
        self,
        ledger: LedgerGateway,
        reasoning: ReasoningGateway,
        *,
        commit_actor: str,
        config: SchedulerConfig | None = None,
        reasoning_timeout: float = 30.0,
        audit_logger: AuditLogger | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ledger = ledger
        self._reasoning = reasoning
        self._commit_actor = commit_actor
        self._config = config or SchedulerConfig()
        self._reasoning_timeout = reasoning_timeout
        self._audit = audit_logger
        self._clock = clock
        self._semaphore = asyncio.Semaphore(max(1, self._config.max_concurrency))
        self.last_report: TickReport | None = None

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    def periodic_task(self) -> PeriodicTask:
        return PeriodicTask(
            "reconciliation",
            self.tick,
            interval_seconds=self._config.interval_seconds,
            run_immediately=self._config.run_immediately,
        )

    # -- discovery --

    async def discover(self) -> tuple[list[str], str | None]:
        """Page through the registry up to ``max_scan_size`` ids.

        Returns the ids gathered and the message of the error that stopped
        paging, if any. Ids from pages read before the failure are kept.
        """
        ids: list[str] = []
        offset = 0
        limit = self._config.max_scan_size
        while offset < limit:
            try:
                page = await self._ledger.read_registry_page(
                    offset, min(self._config.page_size, limit - offset)
                )
            except OutOfRange:
                break
            except AgentLedgerError as exc:
                logger.warning(
                    "Agent discovery stopped at offset %d: %s", offset, exc.message
                )
                return ids, exc.message
            ids.extend(page.ids)
            if not page.ids or not page.has_more:
                break
            offset += len(page.ids)
        return ids, None

    # -- tick --

    async def tick(self) -> TickReport:
        """Run one reconciliation pass and return its report."""
        report = TickReport(started_at=self._clock())
        with timed("scheduler.tick") as timer:
            agent_ids, report.discovery_error = await self.discover()

            report.scanned = len(agent_ids)
            now = report.started_at
            outcomes = await asyncio.gather(
                *(self._guarded_advance(agent_id, now) for agent_id in agent_ids)
            )
            report.outcomes = dict(zip(agent_ids, outcomes))
            report.finished_at = self._clock()
            timer.ok = report.discovery_error is None

        logger.info(
            "Tick complete: scanned=%d due=%d committed=%d inactive=%d "
            "cooling=%d failed=%d",
            report.scanned,
            report.due,
            report.committed,
            report.skipped_inactive,
            report.skipped_cooling,
            report.failed,
        )
        self.last_report = report
        await self._emit_tick(report)
        return report

    async def _guarded_advance(self, agent_id: str, now: float) -> AgentOutcome:
        async with self._semaphore:
            with timed("scheduler.agent") as timer:
                try:
                    outcome = await self.advance(agent_id, now)
                except Exception:
                    logger.exception("Unexpected error advancing agent %s", agent_id)
                    return AgentOutcome.internal_error
                timer.ok = outcome not in _FAILED
                return outcome

    # -- per agent --

    async def advance(self, agent_id: str, now: float) -> AgentOutcome:
        """Advance one agent if it is active and due at *now*.

        Ledger calls for the agent are issued strictly in order: read,
        commit, memory.
        """
        try:
            record = await self._ledger.read_agent(agent_id)
        except AgentLedgerError as exc:
            logger.warning("Could not read agent %s: %s", agent_id, exc.message)
            return AgentOutcome.read_failed

        if not record.is_active:
            return AgentOutcome.inactive
        if not record.is_due(now, self._config.min_interval_seconds):
            logger.debug(
                "Agent %s executed %.0fs ago, waiting",
                agent_id,
                now - record.last_execution_time,
            )
            return AgentOutcome.cooling

        prompt = build_agent_prompt(
            record, record.recent_memories(self._config.context_memories)
        )
        try:
            text = await self._generate(prompt)
        except Unavailable as exc:
            logger.warning("Generation failed for agent %s: %s", agent_id, exc.message)
            return AgentOutcome.generation_failed
        generated_at = self._clock()
        count_before = record.execution_count

        try:
            await self._ledger.submit_result_commit(self._commit_actor, agent_id, text)
        except AgentLedgerError as exc:
            logger.warning("Result commit failed for agent %s: %s", agent_id, exc.message)
            return AgentOutcome.commit_failed

        preview = text[: self._config.memory_preview_chars]
        try:
            await self._ledger.submit_memory_update(
                self._commit_actor,
                agent_id,
                f"{EXECUTION_KEY_PREFIX}{count_before}",
                f"{_iso(generated_at)}: {preview}",
            )
        except AgentLedgerError as exc:
            logger.warning(
                "Execution memory write failed for agent %s (result kept): %s",
                agent_id,
                exc.message,
            )
            return AgentOutcome.memory_failed

        logger.info("Agent %s advanced to execution %d", agent_id, count_before + 1)
        return AgentOutcome.committed

    async def _generate(self, prompt: str) -> str:
        try:
            return await asyncio.wait_for(
                self._reasoning.generate(prompt), timeout=self._reasoning_timeout
            )
        except TimeoutError as exc:
            raise Unavailable(
                f"reasoning timed out after {self._reasoning_timeout:.1f}s"
            ) from exc

    async def _emit_tick(self, report: TickReport) -> None:
        if self._audit is None:
            return
        try:
            await self._audit.emit(
                AuditEventType.TICK_COMPLETED,
                scanned=report.scanned,
                due=report.due,
                committed=report.committed,
                failed=report.failed,
                discovery_error=report.discovery_error,
            )
        except OSError:
            logger.warning("Failed to write tick event", exc_info=True)
