"""MCP server package initialization"""

from readlater.server.app import create_mcp_server, run_server

__all__ = ["create_mcp_server", "run_server"]
