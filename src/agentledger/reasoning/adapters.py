"""Concrete reasoning adapters and factory helpers."""

from __future__ import annotations

import asyncio
import hashlib
import json
from urllib.error import HTTPError
from urllib.error import URLError
from urllib.request import Request
from urllib.request import urlopen

from agentledger.config import LLMConfig
from agentledger.errors import Unavailable
from agentledger.reasoning.base import ReasoningGateway


class EchoReasoningAdapter:
    """Deterministic offline adapter.

    Returns a short acknowledgement derived from the prompt so that the
    loop can run end to end without a provider.
    """

    async def generate(self, prompt: str) -> str:
        digest = hashlib.sha256(prompt.encode("utf-8")).hexdigest()[:12]
        first_line = prompt.strip().splitlines()[0] if prompt.strip() else ""
        return f"[echo {digest}] {first_line}"


class OpenAICompatibleReasoningAdapter:
    """OpenAI-compatible chat-completions adapter."""

    def __init__(
        self,
        *,
        model: str,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        system_prompt: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._system_prompt = system_prompt
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout_seconds = timeout_seconds

    async def generate(self, prompt: str) -> str:
        return await asyncio.to_thread(self._generate_sync, prompt)

    def _messages(self, prompt: str) -> list[dict[str, str]]:
        messages = []
        if self._system_prompt:
            messages.append({"role": "system", "content": self._system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages

    def _generate_sync(self, prompt: str) -> str:
        payload = {
            "model": self._model,
            "messages": self._messages(prompt),
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
        }
        request = Request(
            url=f"{self._base_url}/chat/completions",
            data=json.dumps(payload).encode("utf-8"),
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            method="POST",
        )
        try:
            with urlopen(request, timeout=self._timeout_seconds) as response:
                raw = response.read().decode("utf-8")
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise Unavailable(f"provider HTTP {exc.code}: {detail[:200]}") from exc
        except URLError as exc:
            raise Unavailable(f"provider network error: {exc.reason}") from exc
        except OSError as exc:
            # Includes socket timeouts.
            raise Unavailable(f"provider IO error: {exc}") from exc

        try:
            data = json.loads(raw)
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise Unavailable(
                "provider response missing choices[0].message.content"
            ) from exc

        if isinstance(content, str) and content.strip():
            return content
        raise Unavailable("provider returned an empty completion")


def build_reasoning_adapter(config: LLMConfig) -> ReasoningGateway:
    """Create a concrete adapter from ``LLMConfig``."""

    provider = config.provider.strip().lower()
    if provider == "openai":
        if not config.api_key:
            raise ValueError("llm_config.api_key is required when provider='openai'")
        return OpenAICompatibleReasoningAdapter(
            model=config.model,
            api_key=config.api_key,
            base_url=config.base_url,
            system_prompt=config.system_prompt,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout_seconds=config.timeout_seconds,
        )
    if provider == "echo":
        return EchoReasoningAdapter()
    raise ValueError(
        f"Unsupported llm_config.provider '{config.provider}'. "
        "Supported providers: openai, echo."
    )
