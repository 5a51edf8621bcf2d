from .base import LocalToolTransport, ToolTransport, parse_tool_payload
from .mcp_client import McpToolTransport

__all__ = [
    "LocalToolTransport",
    "McpToolTransport",
    "ToolTransport",
    "parse_tool_payload",
]
