"""Monitor data models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel
from pydantic import Field


class HealthSample(BaseModel):
    """One fleet-wide aggregate, as persisted in the history."""

    timestamp: float = Field(description="Unix epoch when the sample was taken.")
    total_agents: int = Field(description="Registry size at sample time.")
    active_agents: int = 0
    total_executions: int = Field(
        default=0,
        description="Sum of execution_count across scanned agents.",
    )
    recent_executions: int = Field(
        default=0,
        description="Agents whose last execution falls in the recent window.",
    )


class HealthWarningKind(str, Enum):
    stale = "stale"
    high_execution_volume = "high_execution_volume"
    high_memory_usage = "high_memory_usage"


class HealthWarning(BaseModel):
    """Advisory finding about one agent. Logged, never acted on."""

    agent_id: str
    kind: HealthWarningKind
    message: str


class SampleReport(BaseModel):
    sample: HealthSample
    scanned: int = 0
    errors: int = 0
    scan_error: str | None = Field(
        default=None,
        description="Why registry paging stopped early; counts cover the ids read before it.",
    )
    warnings: list[HealthWarning] = Field(default_factory=list)


class WindowStats(BaseModel):
    """Samples inside one trailing time window.

    ``avg_active_agents`` is ``None`` (undefined) when the window holds no
    samples; tool clients receive it as JSON ``null``.
    """

    samples: list[HealthSample] = Field(default_factory=list)
    count: int = 0
    avg_active_agents: float | None = None
    total_recent_executions: int = 0


class MonitoringStats(BaseModel):
    current: HealthSample | None = None
    hourly: WindowStats = Field(default_factory=WindowStats)
    daily: WindowStats = Field(default_factory=WindowStats)
    history: list[HealthSample] = Field(default_factory=list)
