"""Prompt assembly for one agent advancement."""

from __future__ import annotations

from agentledger.models import AgentRecord
from agentledger.models import MemoryEntry


def build_agent_prompt(record: AgentRecord, memories: list[MemoryEntry]) -> str:
    """Build the user prompt from the agent's goal, last result and memories.

    *memories* are rendered in the order given (oldest first), one
    ``key: value`` line each.
    """
    lines = [
        f'You are an autonomous AI agent. Your goal is: "{record.goal}"',
        "",
        f"Previous response: {record.last_result or 'None'}",
        f"Execution count: {record.execution_count}",
    ]
    if memories:
        lines.append("")
        lines.append("Previous memories:")
        lines.extend(f"{memory.key}: {memory.value}" for memory in memories)

    lines.append("")
    lines.append(
        "Please provide a response that helps achieve your goal. Be concise "
        "and actionable. If this is a recurring task, provide an update or "
        "summary."
    )
    return "\n".join(lines)
