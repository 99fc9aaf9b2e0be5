"""readlater - MCP Server

This module builds the FastMCP server with multi-transport support (STDIO,
SSE and Streamable HTTP) and applies the logging and exception-handling
decorators to every article tool.
"""

import logging
import os
from typing import Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.transport_security import TransportSecuritySettings

from readlater.config import ServerConfig, get_config
from readlater.decorators import exception_handler, tool_logger
from readlater.logging_config import setup_logging
from readlater.runtime import ReadLaterRuntime
from readlater.tools.article_tools import build_article_tools

logger = logging.getLogger(__name__)


def create_mcp_server(
    config: Optional[ServerConfig] = None,
    runtime: Optional[ReadLaterRuntime] = None,
) -> FastMCP:
    """Create and configure the MCP server with decorators.

    Args:
        config: Optional server configuration
        runtime: Optional runtime (built from config when omitted)

    Returns:
        Configured FastMCP server instance
    """
    if config is None:
        config = get_config()

    setup_logging(config)

    if runtime is None:
        runtime = ReadLaterRuntime(config, background_sync=True)

    # Configure DNS rebinding protection (disabled by default for development)
    dns_protection = os.getenv("MCP_DNS_REBINDING_PROTECTION", "false").lower() == "true"
    allowed_hosts_env = os.getenv("MCP_ALLOWED_HOSTS", "")
    allowed_hosts = [h.strip() for h in allowed_hosts_env.split(",") if h.strip()]

    logger.info(f"DNS rebinding protection: {'enabled' if dns_protection else 'disabled'}")

    mcp_server = FastMCP(
        config.name or "readlater",
        transport_security=TransportSecuritySettings(
            enable_dns_rebinding_protection=dns_protection,
            allowed_hosts=allowed_hosts,
        ),
    )

    register_tools(mcp_server, runtime)
    return mcp_server


def register_tools(mcp_server: FastMCP, runtime: ReadLaterRuntime) -> None:
    """Register all article tools with the server.

    Decorated functions are registered directly so MCP can introspect the
    original signatures.
    """
    tools = build_article_tools(runtime)
    for tool_func in tools:
        # Apply decorator chain: exception_handler -> tool_logger
        decorated_func = exception_handler(tool_logger(tool_func))
        mcp_server.tool(name=tool_func.__name__)(decorated_func)
        logger.debug(f"Registered tool: {tool_func.__name__}")

    logger.info(f"Server '{mcp_server.name}' initialized with {len(tools)} tools")


async def run_server(
    transport: str,
    host: str = "127.0.0.1",
    port: int = 3001,
    config: Optional[ServerConfig] = None,
) -> None:
    """Run the MCP server until it stops, then release the runtime."""
    if config is None:
        config = get_config()

    runtime = ReadLaterRuntime(config, background_sync=True)
    server = create_mcp_server(config, runtime)

    try:
        if transport == "stdio":
            logger.info("Starting server with STDIO transport")
            await server.run_stdio_async()
        elif transport == "sse":
            logger.info(f"Starting server with SSE transport on {host}:{port}")
            server.settings.host = host
            server.settings.port = port
            await server.run_sse_async()
        elif transport == "streamable-http":
            logger.info(f"Starting server with Streamable HTTP transport on {host}:{port}")
            server.settings.host = host
            server.settings.port = port
            server.settings.streamable_http_path = "/mcp"
            await server.run_streamable_http_async()
        else:
            raise ValueError(f"Unknown transport: {transport}")
    finally:
        await runtime.close()
