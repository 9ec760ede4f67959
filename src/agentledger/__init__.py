"""Ledger-backed registry of autonomous agents."""

from agentledger.config import AppConfig
from agentledger.context import AppContext
from agentledger.errors import AgentLedgerError
from agentledger.errors import ErrorKind
from agentledger.models import AgentRecord
from agentledger.server import build_server
from agentledger.service import AgentService

__all__ = [
    "AgentLedgerError",
    "AgentRecord",
    "AgentService",
    "AppConfig",
    "AppContext",
    "ErrorKind",
    "build_server",
]
