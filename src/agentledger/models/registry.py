"""Append-only agent registry with a per-owner index.

The flat sequence is the creation order of every agent id; ids are
never removed or reordered. The owner index records which ids each
identity created and is not rewritten by ownership transfers.
"""

from __future__ import annotations

import time

from pydantic import BaseModel
from pydantic import computed_field
from pydantic import Field

from agentledger.errors import InvalidArgument
from agentledger.errors import NotFound
from agentledger.errors import OutOfRange
from agentledger.models.agent import AgentRecord
from agentledger.models.agent import is_null_identity
from agentledger.models.agent import new_agent_id


class RegistryPage(BaseModel):
    """One page of agent ids from the flat registry sequence."""

    ids: list[str] = Field(default_factory=list)
    offset: int = 0
    total_count: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_more(self) -> bool:
        return self.offset + len(self.ids) < self.total_count


def page_bounds(offset: int, limit: int, total_count: int) -> tuple[int, int]:
    """Validate a page request and return the ``[start, end)`` slice.

    An empty collection yields an empty slice for any offset; otherwise an
    offset at or past the end is ``OutOfRange``.
    """
    if offset < 0:
        raise InvalidArgument("offset must be >= 0.")
    if limit < 1:
        raise InvalidArgument("limit must be >= 1.")
    if total_count == 0:
        return 0, 0
    if offset >= total_count:
        raise OutOfRange(f"offset {offset} is out of range for {total_count} agents.")
    return offset, min(offset + limit, total_count)


def validate_registration(owner: str, goal: str) -> None:
    if is_null_identity(owner):
        raise InvalidArgument("owner cannot be a null identity.")
    if not goal or not goal.strip():
        raise InvalidArgument("goal must be a non-empty string.")


class AgentRegistry:
    """In-process registry holding every ``AgentRecord``."""

    def __init__(self) -> None:
        self._ids: list[str] = []
        self._by_owner: dict[str, list[str]] = {}
        self._agents: dict[str, AgentRecord] = {}

    def register(self, owner: str, goal: str, *, now: float | None = None) -> str:
        """Create an agent for *owner* and return its id."""
        validate_registration(owner, goal)
        record = AgentRecord(
            owner=owner,
            goal=goal,
            created_at=time.time() if now is None else now,
        )
        while record.id in self._agents:
            record = record.model_copy(update={"id": new_agent_id()})

        self._agents[record.id] = record
        self._ids.append(record.id)
        self._by_owner.setdefault(owner, []).append(record.id)
        return record.id

    def get(self, agent_id: str) -> AgentRecord:
        """Return the live record (not a copy)."""
        try:
            return self._agents[agent_id]
        except KeyError:
            raise NotFound(f"Agent {agent_id} not found.") from None

    def contains(self, agent_id: str) -> bool:
        return agent_id in self._agents

    def count(self) -> int:
        return len(self._ids)

    def list_by_owner(self, owner: str) -> list[str]:
        return list(self._by_owner.get(owner, ()))

    def list_page(self, offset: int, limit: int) -> RegistryPage:
        start, end = page_bounds(offset, limit, len(self._ids))
        return RegistryPage(
            ids=self._ids[start:end],
            offset=offset,
            total_count=len(self._ids),
        )
