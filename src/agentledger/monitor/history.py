"""Bounded, append-then-trim history of health samples.

Two stores share one contract: ``append`` adds a sample and evicts the
oldest beyond ``cap``; ``samples`` returns everything oldest first.
Writes are serialized (an ``asyncio.Lock`` for the file store, a
MULTI/EXEC transaction for the Redis store).
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from functools import partial
from pathlib import Path
from typing import Protocol
from typing import runtime_checkable

from pydantic import TypeAdapter
from pydantic import ValidationError
from redis.asyncio import Redis  # type: ignore[import-untyped]
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from agentledger.errors import Unavailable
from agentledger.monitor.schemas import HealthSample
from agentledger.monitor.schemas import WindowStats

logger = logging.getLogger(__name__)

_SAMPLES = TypeAdapter(list[HealthSample])


@runtime_checkable
class HistoryStore(Protocol):
    async def append(self, sample: HealthSample) -> None: ...

    async def samples(self) -> list[HealthSample]: ...


# ---------------------------------------------------------------------------
# Window helpers
# ---------------------------------------------------------------------------


def last_sample(samples: list[HealthSample]) -> HealthSample | None:
    return samples[-1] if samples else None


def window_stats(
    samples: list[HealthSample],
    *,
    now: float,
    window_seconds: float,
) -> WindowStats:
    """Aggregate the samples taken within ``window_seconds`` before *now*."""
    threshold = now - window_seconds
    selected = [sample for sample in samples if sample.timestamp > threshold]
    avg: float | None = None
    if selected:
        avg = sum(sample.active_agents for sample in selected) / len(selected)
    return WindowStats(
        samples=selected,
        count=len(selected),
        avg_active_agents=avg,
        total_recent_executions=sum(s.recent_executions for s in selected),
    )


# ---------------------------------------------------------------------------
# File store
# ---------------------------------------------------------------------------


class FileHistoryStore:
    """JSON-array file, rewritten atomically on every append."""

    def __init__(self, path: str | Path, *, cap: int = 1000) -> None:
        if cap < 1:
            raise ValueError("cap must be >= 1")
        self.path = Path(path)
        self._cap = cap
        self._lock = asyncio.Lock()

    async def append(self, sample: HealthSample) -> None:
        async with self._lock:
            await asyncio.to_thread(partial(self._append_sync, sample))

    async def samples(self) -> list[HealthSample]:
        async with self._lock:
            return await asyncio.to_thread(self._load)

    def _load(self) -> list[HealthSample]:
        if not self.path.exists():
            return []
        try:
            return _SAMPLES.validate_json(self.path.read_bytes())
        except (ValidationError, OSError) as exc:
            logger.warning("Ignoring unreadable monitor history %s: %s", self.path, exc)
            return []

    def _append_sync(self, sample: HealthSample) -> None:
        history: list[HealthSample] = []
        if self.path.exists():
            try:
                history = _SAMPLES.validate_json(self.path.read_bytes())
            except ValidationError as exc:
                # Keep the damaged file; the rewrite below starts a new history.
                aside = self.path.with_suffix(self.path.suffix + ".corrupt")
                os.replace(self.path, aside)
                logger.warning(
                    "Moved unreadable monitor history %s to %s: %s",
                    self.path,
                    aside,
                    exc,
                )
        history.append(sample)
        if len(history) > self._cap:
            history = history[-self._cap :]

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        payload = [item.model_dump() for item in history]
        tmp.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)


# ---------------------------------------------------------------------------
# Redis store
# ---------------------------------------------------------------------------


class RedisHistoryStore:
    """Redis list: RPUSH then LTRIM to the newest ``cap`` entries."""

    def __init__(
        self,
        redis: Redis,
        *,
        key: str = "agentledger:monitor:history",
        cap: int = 1000,
    ) -> None:
        if cap < 1:
            raise ValueError("cap must be >= 1")
        self._redis = redis
        self._key = key
        self._cap = cap

    async def append(self, sample: HealthSample) -> None:
        pipe = self._redis.pipeline(transaction=True)
        pipe.rpush(self._key, sample.model_dump_json())
        pipe.ltrim(self._key, -self._cap, -1)
        try:
            await pipe.execute()
        except (RedisConnectionError, RedisTimeoutError) as exc:
            raise Unavailable(f"history backend unavailable: {exc}") from exc

    async def samples(self) -> list[HealthSample]:
        try:
            raw_items = await self._redis.lrange(self._key, 0, -1)
        except (RedisConnectionError, RedisTimeoutError) as exc:
            raise Unavailable(f"history backend unavailable: {exc}") from exc

        results: list[HealthSample] = []
        for raw in raw_items:
            try:
                results.append(HealthSample.model_validate_json(raw))
            except ValidationError:
                logger.warning("Skipping malformed history entry in %s", self._key)
        return results
