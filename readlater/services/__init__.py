"""Services for readlater."""

from .projector import ArticleListView
from .sync import SyncCoordinator

__all__ = [
    "ArticleListView",
    "SyncCoordinator",
]
