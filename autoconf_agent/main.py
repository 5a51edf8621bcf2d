from __future__ import annotations

import argparse
import asyncio
import os
from typing import List, Optional

from .agent import DecisionLoop, DecisionPort, LLMDecisionPort, RuleDecisionPort, SimulatedCpuMetrics
from .config import config_to_dict, default_agent_config, load_agent_config, validate_agent_config
from .errors import InitializationError
from .llm import LLMError, create_llm_client
from .plugins.mcp_server import build_service
from .trace import NullTraceEmitter, TraceEmitter, TraceEmitterWriter, TraceWriter
from .transport import LocalToolTransport, McpToolTransport, ToolTransport
from .types import AgentConfig
from .utils import LOG_LEVELS, load_env_file, set_log_level, setup_logger


logger = setup_logger("autoconf.cli")


def build_decision_port(config: AgentConfig) -> DecisionPort:
    settings = config.llm
    provider = settings.provider.lower()
    if provider in ("rules", "none"):
        return RuleDecisionPort(config.rules)
    api_key = os.getenv(settings.api_key_env)
    if not api_key:
        raise LLMError(f"Set the {settings.api_key_env} environment variable")
    llm = create_llm_client(
        provider,
        settings.model,
        api_key=api_key,
        base_url=settings.base_url,
        timeout_s=settings.timeout_s,
    )
    return LLMDecisionPort(
        llm,
        max_tokens=settings.max_tokens,
        temperature=settings.temperature,
        timeout_s=settings.timeout_s,
    )


def build_transport(config: AgentConfig, local: bool = False) -> ToolTransport:
    if local:
        return LocalToolTransport(build_service(config.service.state_file))
    return McpToolTransport(
        config.tool_endpoint,
        client_name=config.loop.client_name,
        client_version=config.loop.client_version,
        handshake_timeout_s=config.loop.handshake_timeout_s,
    )


async def run_agent(config: AgentConfig, port: DecisionPort, transport: ToolTransport, trace: TraceEmitter) -> int:
    loop = DecisionLoop(
        metrics=SimulatedCpuMetrics(seed=config.seed),
        port=port,
        transport=transport,
        interval_s=config.loop.interval_s,
        decision_timeout_s=config.loop.decision_timeout_s,
        tool_timeout_s=config.loop.tool_timeout_s,
        trace=trace,
    )
    try:
        return await loop.run(max_ticks=config.loop.max_ticks)
    finally:
        await transport.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run the auto decision agent.")
    parser.add_argument("--config", help="Path to agent config JSON.")
    parser.add_argument(
        "--provider",
        default=None,
        help="Decision provider (openai-compatible, openai, rules).",
    )
    parser.add_argument("--model", default=None, help="LLM model name.")
    parser.add_argument("--endpoint", default=None, help="MCP endpoint of the tool service.")
    parser.add_argument("--interval", type=float, default=None, help="Seconds between ticks.")
    parser.add_argument("--max-ticks", type=int, default=None, help="Stop after this many ticks.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the simulated metrics.")
    parser.add_argument("--audit-log", default=None, help="Append tick events to this JSONL file.")
    parser.add_argument(
        "--local",
        action="store_true",
        help="Apply changes in-process instead of calling the MCP service.",
    )
    parser.add_argument("--state-file", default=None, help="Threshold state file for --local runs.")
    parser.add_argument(
        "--env-file",
        default=".env.local",
        help="Optional env file to load API keys from (default: .env.local).",
    )
    parser.add_argument("--log-level", choices=LOG_LEVELS, default=None, help="Override $AUTOCONF_LOG_LEVEL.")
    args = parser.parse_args(argv)

    if args.log_level:
        set_log_level(args.log_level)
    loaded = load_env_file(args.env_file)
    if loaded:
        logger.debug("Loaded %s from %s", ", ".join(sorted(loaded)), args.env_file)

    try:
        config = load_agent_config(args.config) if args.config else default_agent_config()
    except (OSError, ValueError) as exc:
        logger.error("Cannot load agent config: %s", exc)
        return 2
    if args.provider:
        config.llm.provider = args.provider
    if args.model:
        config.llm.model = args.model
    if args.endpoint:
        config.endpoint = args.endpoint
    if args.interval is not None:
        config.loop.interval_s = args.interval
    if args.max_ticks is not None:
        config.loop.max_ticks = args.max_ticks
    if args.seed is not None:
        config.seed = args.seed
    if args.audit_log:
        config.audit_log = args.audit_log
    if args.state_file:
        config.service.state_file = args.state_file
    errors = validate_agent_config(config)
    if errors:
        parser.error(", ".join(errors))
    logger.debug("Agent config: %s", config_to_dict(config))

    try:
        port = build_decision_port(config)
    except (LLMError, ValueError) as exc:
        logger.error("Cannot start agent: %s", exc)
        return 2

    transport = build_transport(config, local=args.local)
    writer = TraceWriter(config.audit_log) if config.audit_log else None
    trace: TraceEmitter = TraceEmitterWriter(writer) if writer else NullTraceEmitter()
    try:
        ticks = asyncio.run(run_agent(config, port, transport, trace))
    except InitializationError as exc:
        logger.error("Cannot establish tool session: %s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Decision agent stopped")
        return 0
    finally:
        if writer is not None:
            writer.close()
    logger.info("Decision agent finished after %d tick(s)", ticks)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
