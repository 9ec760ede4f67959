"""Reasoning gateway: external text generation for agent advancement."""

from agentledger.reasoning.adapters import build_reasoning_adapter
from agentledger.reasoning.adapters import EchoReasoningAdapter
from agentledger.reasoning.adapters import OpenAICompatibleReasoningAdapter
from agentledger.reasoning.base import ReasoningGateway
from agentledger.reasoning.prompt import build_agent_prompt

__all__ = [
    "EchoReasoningAdapter",
    "OpenAICompatibleReasoningAdapter",
    "ReasoningGateway",
    "build_agent_prompt",
    "build_reasoning_adapter",
]
