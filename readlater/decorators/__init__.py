"""Decorators applied to every MCP tool."""

from readlater.decorators.exception_handler import exception_handler
from readlater.decorators.tool_logger import tool_logger

__all__ = ["exception_handler", "tool_logger"]
