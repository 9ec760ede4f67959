"""Application configuration dataclasses.

Frozen dataclasses with defaults for each subsystem. Environment
variables are read only by the CLI (``agentledger.cli.config_from_env``);
library code takes these objects as constructor arguments.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field

_DEFAULT_SYSTEM_PROMPT = (
    "You are an autonomous AI agent whose state is recorded on a ledger. "
    "Provide helpful, concise responses that help achieve the given goal."
)


@dataclass(frozen=True)
class LedgerConfig:
    """Ledger backend selection and call bounds."""

    backend: str = "memory"
    redis_url: str = "redis://localhost:6379"
    key_prefix: str = "agentledger"
    # Identity allowed to commit results and memories on an owner's behalf.
    commit_actor: str = "executor"
    timeout_seconds: float = 10.0
    max_attempts: int = 3


@dataclass(frozen=True)
class LLMConfig:
    """Reasoning provider settings used by the scheduler."""

    provider: str = "openai"
    model: str = "gpt-4"
    api_key: str | None = None
    base_url: str = "https://api.openai.com/v1"
    temperature: float = 0.7
    max_tokens: int = 500
    timeout_seconds: float = 30.0
    system_prompt: str = _DEFAULT_SYSTEM_PROMPT


@dataclass(frozen=True)
class SchedulerConfig:
    """Cadence and rate-limit policy for the reconciliation loop."""

    interval_seconds: float = 60.0
    page_size: int = 100
    max_scan_size: int = 10_000
    min_interval_seconds: float = 3600.0
    context_memories: int = 5
    memory_preview_chars: int = 200
    max_concurrency: int = 4
    run_immediately: bool = True


@dataclass(frozen=True)
class MonitorConfig:
    """Sampling cadence, health thresholds and history retention."""

    interval_seconds: float = 30.0
    page_size: int = 100
    max_agents: int = 1000
    recent_window_seconds: float = 3600.0
    # Health check thresholds
    stale_after_seconds: float = 21600.0
    high_execution_threshold: int = 1000
    high_memory_threshold: int = 100
    # History
    history_cap: int = 1000
    history_backend: str = "file"
    history_path: str = "agentledger_monitor.json"
    history_preview: int = 24


@dataclass(frozen=True)
class AuditConfig:
    """Settings for the JSONL ledger event log."""

    file_path: str = "agentledger_audit.jsonl"
    enabled: bool = True


@dataclass(frozen=True)
class AppConfig:
    """Top-level configuration handed to ``AppContext.build``."""

    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    audit: AuditConfig = field(default_factory=AuditConfig)
