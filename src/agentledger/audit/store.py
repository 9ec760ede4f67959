"""JSONL event log for ledger mutations, ticks and health samples."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator
from pathlib import Path

from pydantic import ValidationError

from agentledger.audit.schemas import AuditEvent
from agentledger.audit.schemas import AuditEventType
from agentledger.config import AuditConfig

logger = logging.getLogger(__name__)


def _iter_events(path: Path) -> Iterator[AuditEvent]:
    with path.open(encoding="utf-8") as fh:
        for line_no, line in enumerate(fh, start=1):
            if not line.strip():
                continue
            try:
                yield AuditEvent.model_validate_json(line)
            except ValidationError:
                logger.warning(
                    "Skipping malformed audit event line %d in %s", line_no, path
                )


class AuditLogger:
    """Append-only event log, one JSON object per line.

    Writers and readers share an ``asyncio.Lock``; the file itself is
    touched only from worker threads.
    """

    def __init__(self, config: AuditConfig) -> None:
        self.config = config
        self.path = Path(config.file_path)
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def log(self, event: AuditEvent) -> None:
        if not self.config.enabled:
            return
        async with self._lock:
            await asyncio.to_thread(self._append, event.model_dump_json() + "\n")

    async def emit(
        self,
        event_type: AuditEventType,
        *,
        agent_id: str | None = None,
        **payload: object,
    ) -> None:
        """Build and log an event in one call."""
        await self.log(
            AuditEvent(event_type=event_type, agent_id=agent_id, payload=payload)
        )

    def _append(self, line: str) -> None:
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(line)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def read_events(
        self,
        *,
        event_type: AuditEventType | None = None,
        agent_id: str | None = None,
        since: float | None = None,
    ) -> list[AuditEvent]:
        """Return logged events in write order, optionally filtered."""

        def matches(evt: AuditEvent) -> bool:
            if event_type is not None and evt.event_type != event_type:
                return False
            if agent_id is not None and evt.agent_id != agent_id:
                return False
            return since is None or evt.timestamp >= since

        def load() -> list[AuditEvent]:
            if not self.path.exists():
                return []
            return [evt for evt in _iter_events(self.path) if matches(evt)]

        async with self._lock:
            return await asyncio.to_thread(load)
