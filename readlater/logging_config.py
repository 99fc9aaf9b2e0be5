"""Logging setup for readlater."""

import logging
import sys
from typing import Optional

from readlater.config import ServerConfig

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger("readlater")


def setup_logging(config: Optional[ServerConfig] = None) -> logging.Logger:
    """Configure the readlater logger.

    Logs go to stderr so the STDIO transport's stdout stays clean. A file
    handler is added when config.log_file is set.

    Args:
        config: Server configuration (level and optional log file)

    Returns:
        The package logger
    """
    level_name = config.log_level if config else "INFO"
    level = getattr(logging, level_name.upper(), logging.INFO)

    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if config and config.log_file:
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
