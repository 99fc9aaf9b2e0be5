"""Call and duration logging for MCP tools."""

import functools
import logging
import time
from typing import Any, Awaitable, Callable, Dict

logger = logging.getLogger("readlater.tools")

ToolFunc = Callable[..., Awaitable[Dict[str, Any]]]

# Injected by FastMCP; not a tool argument
_HIDDEN_ARGS = {"ctx"}


def tool_logger(func: ToolFunc) -> ToolFunc:
    """Log each tool call with its arguments and how long it took."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        start = time.perf_counter()
        shown = {k: v for k, v in kwargs.items() if k not in _HIDDEN_ARGS}
        logger.info(f"Tool {func.__name__} called with {shown}")
        try:
            return await func(*args, **kwargs)
        finally:
            elapsed = (time.perf_counter() - start) * 1000
            logger.info(f"Tool {func.__name__} finished in {elapsed:.1f}ms")

    return wrapper
