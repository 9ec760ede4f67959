"""Reasoning gateway contract.

A single-turn, stateless text generator. Implementations raise
``Unavailable`` for provider failures; retries belong to the caller.
"""

from __future__ import annotations

from typing import Protocol
from typing import runtime_checkable


@runtime_checkable
class ReasoningGateway(Protocol):
    """Turn an agent's context prompt into generated text."""

    async def generate(self, prompt: str) -> str: ...
