"""Fleet health sampler.

Read-only with respect to agent state: pages through the registry,
aggregates counts, runs advisory per-agent health checks and appends
one ``HealthSample`` to the history store per pass.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from agentledger.audit import AuditEventType
from agentledger.audit import AuditLogger
from agentledger.config import MonitorConfig
from agentledger.errors import AgentLedgerError
from agentledger.errors import OutOfRange
from agentledger.ledger import LedgerGateway
from agentledger.models import AgentRecord
from agentledger.monitor.history import HistoryStore
from agentledger.monitor.history import last_sample
from agentledger.monitor.history import window_stats
from agentledger.monitor.schemas import HealthSample
from agentledger.monitor.schemas import HealthWarning
from agentledger.monitor.schemas import HealthWarningKind
from agentledger.monitor.schemas import MonitoringStats
from agentledger.monitor.schemas import SampleReport
from agentledger.observability import timed
from agentledger.scheduler import PeriodicTask

logger = logging.getLogger(__name__)

_HOUR = 3600.0
_DAY = 86400.0


class HealthMonitor:
    """Periodic aggregate scan of every agent."""

    def __init__(
        self,
        ledger: LedgerGateway,
        history: HistoryStore,
        *,
        config: MonitorConfig | None = None,
        audit_logger: AuditLogger | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ledger = ledger
        self._history = history
        self._config = config or MonitorConfig()
        self._audit = audit_logger
        self._clock = clock

    def periodic_task(self) -> PeriodicTask:
        return PeriodicTask(
            "health-monitor",
            self.sample,
            interval_seconds=self._config.interval_seconds,
        )

    # -- sampling --

    async def sample(self) -> SampleReport:
        """Take one sample, persist it and return it with its warnings."""
        with timed("monitor.sample") as timer:
            now = self._clock()
            agent_ids, total_agents, scan_error = await self._scan_ids()
            report = SampleReport(
                sample=HealthSample(timestamp=now, total_agents=total_agents),
                scanned=len(agent_ids),
                scan_error=scan_error,
                errors=1 if scan_error else 0,
            )
            recent_threshold = now - self._config.recent_window_seconds

            for agent_id in agent_ids:
                try:
                    record = await self._ledger.read_agent(agent_id)
                except AgentLedgerError as exc:
                    report.errors += 1
                    logger.warning("Error checking agent %s: %s", agent_id, exc.message)
                    continue

                if record.is_active:
                    report.sample.active_agents += 1
                report.sample.total_executions += record.execution_count
                if (
                    record.execution_count > 0
                    and record.last_execution_time > recent_threshold
                ):
                    report.sample.recent_executions += 1

                try:
                    report.warnings.extend(self.check_agent_health(record, now))
                except Exception:
                    report.errors += 1
                    logger.exception("Health check failed for agent %s", agent_id)

            logger.info(
                "Summary: %d total, %d active, %d total executions, "
                "%d recent executions",
                report.sample.total_agents,
                report.sample.active_agents,
                report.sample.total_executions,
                report.sample.recent_executions,
            )
            await self._persist(report)
            timer.ok = report.scan_error is None
        return report

    async def _scan_ids(self) -> tuple[list[str], int, str | None]:
        ids: list[str] = []
        total = 0
        offset = 0
        limit = self._config.max_agents
        while offset < limit:
            try:
                page = await self._ledger.read_registry_page(
                    offset, min(self._config.page_size, limit - offset)
                )
            except OutOfRange:
                break
            except AgentLedgerError as exc:
                logger.warning(
                    "Registry scan stopped at offset %d: %s", offset, exc.message
                )
                return ids, total, exc.message
            total = page.total_count
            ids.extend(page.ids)
            if not page.ids or not page.has_more:
                break
            offset += len(page.ids)
        return ids, total, None

    async def _persist(self, report: SampleReport) -> None:
        try:
            await self._history.append(report.sample)
        except (AgentLedgerError, OSError) as exc:
            logger.warning("Error saving monitoring data: %s", exc)
        if self._audit is not None:
            try:
                await self._audit.emit(
                    AuditEventType.HEALTH_SAMPLED,
                    **report.sample.model_dump(),
                    warnings=len(report.warnings),
                )
            except OSError:
                logger.warning("Failed to write health sample event", exc_info=True)

    # -- health checks --

    def check_agent_health(self, record: AgentRecord, now: float) -> list[HealthWarning]:
        """Return advisory warnings for *record*; each is also logged."""
        cfg = self._config
        warnings: list[HealthWarning] = []

        idle = now - record.last_execution_time
        if record.is_active and record.execution_count > 0 and idle > cfg.stale_after_seconds:
            warnings.append(
                HealthWarning(
                    agent_id=record.id,
                    kind=HealthWarningKind.stale,
                    message=f"Agent {record.id} hasn't executed in {int(idle // 3600)} hours",
                )
            )
        if record.execution_count > cfg.high_execution_threshold:
            warnings.append(
                HealthWarning(
                    agent_id=record.id,
                    kind=HealthWarningKind.high_execution_volume,
                    message=(
                        f"Agent {record.id} has {record.execution_count} executions "
                        "(potential spam)"
                    ),
                )
            )
        if record.memory_count > cfg.high_memory_threshold:
            warnings.append(
                HealthWarning(
                    agent_id=record.id,
                    kind=HealthWarningKind.high_memory_usage,
                    message=(
                        f"Agent {record.id} has {record.memory_count} memory entries "
                        "(high usage)"
                    ),
                )
            )

        for warning in warnings:
            logger.warning(warning.message)
        return warnings

    # -- read access --

    async def last(self) -> HealthSample | None:
        return last_sample(await self._history.samples())

    async def stats(self, now: float | None = None) -> MonitoringStats:
        """Current sample plus hourly and daily windows ending at *now*."""
        samples = await self._history.samples()
        at = self._clock() if now is None else now
        preview = self._config.history_preview
        return MonitoringStats(
            current=last_sample(samples),
            hourly=window_stats(samples, now=at, window_seconds=_HOUR),
            daily=window_stats(samples, now=at, window_seconds=_DAY),
            history=samples[-preview:] if preview > 0 else [],
        )
