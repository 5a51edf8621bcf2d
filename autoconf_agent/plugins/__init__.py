from .mcp_server import build_service, create_mcp_app

__all__ = [
    "build_service",
    "create_mcp_app",
]
