"""Audit event types and data models."""

from __future__ import annotations

import time
from enum import Enum
from typing import Any

from pydantic import BaseModel
from pydantic import Field


class AuditEventType(str, Enum):
    """Categories of auditable events."""

    AGENT_REGISTERED = "AGENT_REGISTERED"
    GOAL_UPDATED = "GOAL_UPDATED"
    MEMORY_STORED = "MEMORY_STORED"
    RESULT_COMMITTED = "RESULT_COMMITTED"
    AGENT_ACTIVATED = "AGENT_ACTIVATED"
    AGENT_DEACTIVATED = "AGENT_DEACTIVATED"
    OWNERSHIP_TRANSFERRED = "OWNERSHIP_TRANSFERRED"
    TICK_COMPLETED = "TICK_COMPLETED"
    HEALTH_SAMPLED = "HEALTH_SAMPLED"


class AuditEvent(BaseModel):
    """A single immutable audit log entry."""

    model_config = {"frozen": True}

    timestamp: float = Field(
        default_factory=time.time,
        description="Unix epoch when the event occurred.",
    )
    event_type: AuditEventType = Field(
        description="Category of the audited action.",
    )
    agent_id: str | None = Field(
        default=None,
        description="Agent the event concerns, if any.",
    )
    payload: dict[str, Any] = Field(
        default_factory=dict,
        description="Event-specific data.",
    )
