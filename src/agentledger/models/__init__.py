"""Agent state models and the append-only registry."""

from agentledger.models.agent import AgentRecord
from agentledger.models.agent import AgentState
from agentledger.models.agent import EXECUTION_KEY_PREFIX
from agentledger.models.agent import ExecutionEntry
from agentledger.models.agent import is_null_identity
from agentledger.models.agent import MemoryEntry
from agentledger.models.agent import ZERO_IDENTITY
from agentledger.models.registry import AgentRegistry
from agentledger.models.registry import page_bounds
from agentledger.models.registry import RegistryPage

__all__ = [
    "AgentRecord",
    "AgentRegistry",
    "AgentState",
    "EXECUTION_KEY_PREFIX",
    "ExecutionEntry",
    "MemoryEntry",
    "RegistryPage",
    "ZERO_IDENTITY",
    "is_null_identity",
    "page_bounds",
]
