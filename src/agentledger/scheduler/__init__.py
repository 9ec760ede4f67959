"""Scheduler: periodic reconciliation of agent state."""

from agentledger.scheduler.periodic import PeriodicTask
from agentledger.scheduler.reconciler import AgentOutcome
from agentledger.scheduler.reconciler import ReconciliationScheduler
from agentledger.scheduler.reconciler import TickReport

__all__ = [
    "AgentOutcome",
    "PeriodicTask",
    "ReconciliationScheduler",
    "TickReport",
]
