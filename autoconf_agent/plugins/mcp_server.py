"""MCP tool-execution service for the CPU alert threshold.

Run with: autoconf-server [--port 9001] [--state-file config.json]
"""
import argparse
import asyncio
import copy
from typing import Annotated, Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from ..config import default_agent_config, load_agent_config
from ..store import ThresholdStore
from ..tools.schemas import ADJUST_THRESHOLD_SPEC, VALUE_DESCRIPTION
from ..tools.threshold import ThresholdToolService
from ..types import ServiceSettings
from ..utils import LOG_LEVELS, load_env_file, set_log_level, setup_logger


logger = setup_logger("autoconf.server")

# Advertised as a number; the service itself decides what counts as one so
# rejections carry its own error kinds instead of a framework validation error.
ThresholdValue = Annotated[Any, Field(description=VALUE_DESCRIPTION)]


def create_mcp_app(service: ThresholdToolService, settings: Optional[ServiceSettings] = None) -> FastMCP:
    settings = settings or ServiceSettings()
    app = FastMCP(
        settings.server_name,
        host=settings.host,
        port=settings.port,
        streamable_http_path=settings.path,
    )

    @app.tool(name=ADJUST_THRESHOLD_SPEC.name, description=ADJUST_THRESHOLD_SPEC.description)
    async def adjust_threshold(value: ThresholdValue = None) -> Dict[str, Any]:
        arguments = {} if value is None else {"value": value}
        return await asyncio.to_thread(service.run, arguments)

    # the optional parameter lets an absent value reach the service; clients
    # still see it as required
    registered = app._tool_manager.get_tool(ADJUST_THRESHOLD_SPEC.name)
    registered.parameters = copy.deepcopy(ADJUST_THRESHOLD_SPEC.parameters)
    return app


def build_service(state_file: Optional[str] = None) -> ThresholdToolService:
    store = ThresholdStore(state_file) if state_file else ThresholdStore()
    logger.info("Threshold state file: %s", store.path)
    return ThresholdToolService(store)


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Serve the adjust_threshold tool over MCP.")
    parser.add_argument("--config", help="Path to agent config JSON.")
    parser.add_argument("--host", default=None, help="Bind host (default: localhost).")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default: 9001).")
    parser.add_argument("--path", default=None, help="Streamable HTTP path (default: /mcp).")
    parser.add_argument("--state-file", default=None, help="Threshold state file (default: config.json next to the program).")
    parser.add_argument(
        "--env-file",
        default=".env.local",
        help="Optional env file to load settings from (default: .env.local).",
    )
    parser.add_argument("--log-level", choices=LOG_LEVELS, default=None, help="Override $AUTOCONF_LOG_LEVEL.")
    args = parser.parse_args(argv)

    if args.log_level:
        set_log_level(args.log_level)
    loaded = load_env_file(args.env_file)
    if loaded:
        logger.debug("Loaded %s from %s", ", ".join(sorted(loaded)), args.env_file)

    config = load_agent_config(args.config) if args.config else default_agent_config()
    settings = config.service
    if args.host:
        settings.host = args.host
    if args.port is not None:
        settings.port = args.port
    if args.path:
        settings.path = args.path
    if args.state_file:
        settings.state_file = args.state_file

    service = build_service(settings.state_file)
    app = create_mcp_app(service, settings)
    logger.info("MCP server listening on %s", settings.endpoint)
    app.run(transport="streamable-http")


if __name__ == "__main__":
    main()
