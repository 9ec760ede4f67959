"""Process entry point.

Usage:
    agentledger run              # scheduler + monitor until SIGINT/SIGTERM
    agentledger run --once       # one tick and one sample, then exit
    agentledger serve            # loops plus the MCP tool server on stdio
    agentledger stats            # print monitoring stats as JSON

Settings come from ``AGENTLEDGER_*`` environment variables (and
``OPENAI_API_KEY``), optionally loaded from a ``.env`` file.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
from dataclasses import replace

from dotenv import load_dotenv

from agentledger.config import AppConfig
from agentledger.config import AuditConfig
from agentledger.config import LedgerConfig
from agentledger.config import LLMConfig
from agentledger.config import MonitorConfig
from agentledger.config import SchedulerConfig
from agentledger.context import AppContext
from agentledger.server import build_server

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------


def _env_str(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    stripped = raw.strip()
    return stripped if stripped else None


def _env_float(name: str) -> float | None:
    raw = _env_str(name)
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _overrides(**values: object) -> dict[str, object]:
    return {key: value for key, value in values.items() if value is not None}


def config_from_env() -> AppConfig:
    """Build an ``AppConfig`` from environment variables over the defaults."""
    ledger = replace(
        LedgerConfig(),
        **_overrides(
            backend=_env_str("AGENTLEDGER_LEDGER_BACKEND"),
            redis_url=_env_str("AGENTLEDGER_REDIS_URL"),
            key_prefix=_env_str("AGENTLEDGER_KEY_PREFIX"),
            commit_actor=_env_str("AGENTLEDGER_COMMIT_ACTOR"),
            timeout_seconds=_env_float("AGENTLEDGER_LEDGER_TIMEOUT"),
        ),
    )
    llm = replace(
        LLMConfig(),
        **_overrides(
            provider=_env_str("AGENTLEDGER_LLM_PROVIDER"),
            model=_env_str("AGENTLEDGER_LLM_MODEL"),
            api_key=_env_str("OPENAI_API_KEY"),
            base_url=_env_str("AGENTLEDGER_LLM_BASE_URL"),
            timeout_seconds=_env_float("AGENTLEDGER_LLM_TIMEOUT"),
        ),
    )
    scheduler = replace(
        SchedulerConfig(),
        **_overrides(
            interval_seconds=_env_float("AGENTLEDGER_EXECUTION_INTERVAL"),
            min_interval_seconds=_env_float("AGENTLEDGER_MIN_INTERVAL"),
        ),
    )
    monitor = replace(
        MonitorConfig(),
        **_overrides(
            interval_seconds=_env_float("AGENTLEDGER_MONITOR_INTERVAL"),
            history_backend=_env_str("AGENTLEDGER_HISTORY_BACKEND"),
            history_path=_env_str("AGENTLEDGER_HISTORY_PATH"),
        ),
    )
    audit = replace(
        AuditConfig(),
        **_overrides(file_path=_env_str("AGENTLEDGER_AUDIT_PATH")),
    )
    return AppConfig(
        ledger=ledger,
        llm=llm,
        scheduler=scheduler,
        monitor=monitor,
        audit=audit,
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _install_stop_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops
            pass


async def _run(ctx: AppContext, args: argparse.Namespace) -> int:
    if args.once:
        if not args.no_scheduler:
            await ctx.scheduler.tick()
        if not args.no_monitor:
            await ctx.monitor.sample()
        return 0

    stop = asyncio.Event()
    _install_stop_handlers(stop)
    ctx.start(scheduler=not args.no_scheduler, monitor=not args.no_monitor)
    await stop.wait()
    logger.info("Shutdown requested, waiting for in-flight work")
    return 0


async def _serve(ctx: AppContext, args: argparse.Namespace) -> int:
    ctx.start(scheduler=not args.no_scheduler, monitor=not args.no_monitor)
    mcp = build_server(ctx.service, monitor=ctx.monitor)
    await mcp.run_async(transport=args.transport)
    return 0


async def _stats(ctx: AppContext, args: argparse.Namespace) -> int:
    del args
    stats = await ctx.monitor.stats()
    if stats.current is None:
        print('{"error": "No monitoring data available"}')
        return 1
    print(stats.model_dump_json(indent=2))
    return 0


_COMMANDS = {"run": _run, "serve": _serve, "stats": _stats}


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="agentledger")
    parser.add_argument("--log-level", default=os.getenv("AGENTLEDGER_LOG_LEVEL", "INFO"))
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run the scheduler and monitor loops.")
    run.add_argument("--once", action="store_true")
    run.add_argument("--no-scheduler", action="store_true")
    run.add_argument("--no-monitor", action="store_true")

    serve = sub.add_parser("serve", help="Run the loops and the MCP tool server.")
    serve.add_argument("--transport", default="stdio")
    serve.add_argument("--no-scheduler", action="store_true")
    serve.add_argument("--no-monitor", action="store_true")

    sub.add_parser("stats", help="Print monitoring stats.")
    return parser.parse_args(argv)


async def _main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx = AppContext.build(config_from_env())
    try:
        return await _COMMANDS[args.command](ctx, args)
    finally:
        await ctx.close()


def main(argv: list[str] | None = None) -> int:
    load_dotenv(override=False)
    return asyncio.run(_main(argv))


if __name__ == "__main__":
    raise SystemExit(main())
