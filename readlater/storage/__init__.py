"""Storage layer for readlater."""

from .database import (
    ArticleCache,
    close_database,
    init_database,
    open_database,
)
from .pending import PendingWriteQueue
from .preferences import Preferences, SERVER_URL_KEY

__all__ = [
    "ArticleCache",
    "PendingWriteQueue",
    "Preferences",
    "SERVER_URL_KEY",
    "close_database",
    "init_database",
    "open_database",
]
