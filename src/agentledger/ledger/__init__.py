"""Ledger gateway: the durable, owner-checked store of agent state."""

from agentledger.ledger.base import LedgerGateway
from agentledger.ledger.memory import InMemoryLedger
from agentledger.ledger.redis import RedisLedger
from agentledger.ledger.retry import RetryingLedger

__all__ = [
    "InMemoryLedger",
    "LedgerGateway",
    "RedisLedger",
    "RetryingLedger",
]
