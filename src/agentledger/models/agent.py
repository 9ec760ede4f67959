"""Agent state entity and its mutation rules.

An ``AgentRecord`` is pure data plus invariant checks: every mutating
method takes an explicit ``caller`` identity and is evaluated against
the stored ``owner`` and, where allowed, the trusted commit actor.
Records are never deleted; deactivation is the terminal state.
"""

from __future__ import annotations

import time
import uuid
from enum import Enum

from pydantic import BaseModel
from pydantic import computed_field
from pydantic import Field

from agentledger.errors import InvalidArgument
from agentledger.errors import NotFound
from agentledger.errors import Unauthorized

EXECUTION_KEY_PREFIX = "execution_"
ZERO_IDENTITY = "0x0000000000000000000000000000000000000000"


def is_null_identity(identity: str | None) -> bool:
    """Return True for missing, blank or all-zero identities."""
    if identity is None:
        return True
    normalized = identity.strip().lower()
    if not normalized:
        return True
    # ZERO_IDENTITY and any other all-zero spelling
    return set(normalized.removeprefix("0x")) <= {"0"}


def new_agent_id() -> str:
    return f"agent_{uuid.uuid4().hex}"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class AgentState(str, Enum):
    """Derived lifecycle state; never stored."""

    inactive = "inactive"
    cooling = "cooling"
    due = "due"


# ---------------------------------------------------------------------------
# Memory
# ---------------------------------------------------------------------------


class MemoryEntry(BaseModel):
    """One key/value memory with the time it was last written."""

    key: str = Field(description="Unique key within the agent's memory set.")
    value: str = Field(description="Stored value; overwritten on upsert.")
    timestamp: float = Field(description="Unix epoch of the last write.")


class ExecutionEntry(BaseModel):
    """A derived view of an ``execution_<n>`` memory."""

    execution_number: int
    result: str
    timestamp: float


# ---------------------------------------------------------------------------
# AgentRecord
# ---------------------------------------------------------------------------


class AgentRecord(BaseModel):
    """Persistent state of one agent."""

    id: str = Field(
        default_factory=new_agent_id,
        description="Ledger-assigned identifier, stable for the agent's lifetime.",
    )
    owner: str = Field(description="Identity with exclusive write authority.")
    goal: str = Field(description="Free-form objective, owner-mutable.")
    last_result: str = Field(
        default="",
        description="Most recent generated output.",
    )
    last_execution_time: float = Field(
        default=0.0,
        description="Unix epoch of the most recent result commit.",
    )
    execution_count: int = Field(
        default=0,
        description="Number of committed results.",
    )
    is_active: bool = Field(default=True)
    memories: list[MemoryEntry] = Field(
        default_factory=list,
        description="Key-deduplicated memories in insertion order.",
    )
    created_at: float = Field(default_factory=time.time)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def memory_count(self) -> int:
        return len(self.memories)

    # -- authorization --

    def require_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise Unauthorized(f"Only the owner of {self.id} can perform this action.")

    def require_writer(self, caller: str, commit_actor: str | None) -> None:
        """Allow the owner or the configured commit actor."""
        if caller == self.owner:
            return
        if commit_actor and caller == commit_actor:
            return
        raise Unauthorized(
            f"Only the owner or the commit actor can write results for {self.id}."
        )

    # -- owner-only mutations --

    def update_goal(self, caller: str, new_goal: str) -> None:
        self.require_owner(caller)
        if not new_goal or not new_goal.strip():
            raise InvalidArgument("goal must be a non-empty string.")
        self.goal = new_goal

    def set_active(self, caller: str, active: bool) -> bool:
        """Set the activation flag; return whether the value changed."""
        self.require_owner(caller)
        changed = self.is_active != active
        self.is_active = active
        return changed

    def transfer_ownership(self, caller: str, new_owner: str) -> str:
        """Replace the owner and return the previous one."""
        self.require_owner(caller)
        if is_null_identity(new_owner):
            raise InvalidArgument("new owner cannot be a null identity.")
        previous = self.owner
        self.owner = new_owner
        return previous

    # -- owner or commit actor --

    def store_memory(
        self,
        caller: str,
        key: str,
        value: str,
        *,
        commit_actor: str | None = None,
        now: float | None = None,
    ) -> bool:
        """Upsert *key*; return True when a new entry was appended.

        An existing key keeps its position and gets the new value and
        timestamp. A new key is appended at the end.
        """
        self.require_writer(caller, commit_actor)
        if not key or not key.strip():
            raise InvalidArgument("memory key must be a non-empty string.")
        stamp = time.time() if now is None else now

        for entry in self.memories:
            if entry.key == key:
                entry.value = value
                entry.timestamp = stamp
                return False

        self.memories.append(MemoryEntry(key=key, value=value, timestamp=stamp))
        return True

    def commit_result(
        self,
        caller: str,
        text: str,
        *,
        commit_actor: str | None = None,
        now: float | None = None,
    ) -> None:
        """Record a generated result. Memories are left untouched."""
        self.require_writer(caller, commit_actor)
        stamp = time.time() if now is None else now
        self.last_result = text
        self.last_execution_time = max(self.last_execution_time, stamp)
        self.execution_count += 1

    # -- reads --

    def get_memory(self, key: str) -> MemoryEntry:
        for entry in self.memories:
            if entry.key == key:
                return entry
        raise NotFound(f"Memory '{key}' not found for agent {self.id}.")

    def recent_memories(self, limit: int) -> list[MemoryEntry]:
        """Return up to *limit* most recently inserted entries, oldest first."""
        if limit <= 0:
            return []
        return list(self.memories[-limit:])

    def execution_history(self) -> list[ExecutionEntry]:
        """Return ``execution_<n>`` memories, newest first."""
        history: list[ExecutionEntry] = []
        for entry in self.memories:
            if not entry.key.startswith(EXECUTION_KEY_PREFIX):
                continue
            suffix = entry.key[len(EXECUTION_KEY_PREFIX) :]
            if not suffix.isdigit():
                continue
            history.append(
                ExecutionEntry(
                    execution_number=int(suffix),
                    result=entry.value,
                    timestamp=entry.timestamp,
                )
            )
        history.sort(key=lambda item: item.timestamp, reverse=True)
        return history

    # -- scheduling policy --

    def is_due(self, now: float, min_interval: float) -> bool:
        """Never-executed agents are always due; others after *min_interval*."""
        if self.execution_count == 0:
            return True
        return (now - self.last_execution_time) >= min_interval

    def state(self, now: float, min_interval: float) -> AgentState:
        if not self.is_active:
            return AgentState.inactive
        if self.is_due(now, min_interval):
            return AgentState.due
        return AgentState.cooling
