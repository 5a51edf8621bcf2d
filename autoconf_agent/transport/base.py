from __future__ import annotations

import asyncio
from typing import Any, Dict, Mapping, Optional

from ..errors import TransportError, error_from_payload
from ..tools.base import Tool
from ..types import STATUS_SUCCESS, ActionResult


class ToolTransport:
    """Request/response channel to the tool service.

    ``initialize`` runs the one-time handshake and raises InitializationError
    on failure. ``call`` raises TransportError for channel failures and the
    service's own error types for rejected invocations.
    """

    async def initialize(self) -> None:
        raise NotImplementedError

    async def call(self, name: str, arguments: Mapping[str, Any]) -> ActionResult:
        raise NotImplementedError

    async def close(self) -> None:
        return None

    async def __aenter__(self) -> "ToolTransport":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


def parse_tool_payload(payload: Any) -> ActionResult:
    if not isinstance(payload, dict):
        raise TransportError(f"malformed tool response: {payload!r}")
    if payload.get("status") != STATUS_SUCCESS:
        raise error_from_payload(payload)
    try:
        return ActionResult.from_dict(payload)
    except (KeyError, TypeError, ValueError) as exc:
        raise TransportError(f"malformed tool response: {payload!r}") from exc


class LocalToolTransport(ToolTransport):
    """In-process transport; runs tools in a worker thread like the MCP server does."""

    def __init__(self, *tools: Tool) -> None:
        self.tools: Dict[str, Tool] = {tool.name: tool for tool in tools}
        self._ready = False

    async def initialize(self) -> None:
        self._ready = True

    async def call(self, name: str, arguments: Mapping[str, Any]) -> ActionResult:
        if not self._ready:
            raise TransportError("session not initialized")
        tool: Optional[Tool] = self.tools.get(name)
        if tool is None:
            raise TransportError(f"unknown tool: {name}")
        payload = await asyncio.to_thread(tool.run, dict(arguments))
        return parse_tool_payload(payload)

    async def close(self) -> None:
        self._ready = False
