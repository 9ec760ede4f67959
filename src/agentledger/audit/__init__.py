"""Audit subsystem: async JSONL log of ledger and loop events."""

from agentledger.audit.schemas import AuditEvent
from agentledger.audit.schemas import AuditEventType
from agentledger.audit.store import AuditLogger

__all__ = [
    "AuditEvent",
    "AuditEventType",
    "AuditLogger",
]
