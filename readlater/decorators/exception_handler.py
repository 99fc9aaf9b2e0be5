"""Uniform error results for MCP tools.

An unexpected exception becomes the same {"success": False, "error": ...}
shape the tools return for expected failures.
"""

import functools
import logging

from readlater.decorators.tool_logger import ToolFunc

logger = logging.getLogger("readlater.tools")


def exception_handler(func: ToolFunc) -> ToolFunc:
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            logger.error(f"Tool {func.__name__} failed: {e}", exc_info=True)
            return {
                "success": False,
                "error": f"{type(e).__name__}: {e}",
            }

    return wrapper
