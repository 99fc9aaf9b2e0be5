"""Explicitly owned object graph for one running readlater client.

ReadLaterRuntime opens the database, builds the cache, queue, remote client
and coordinator, and closes them again. One instance per process; it is
passed to whoever needs it rather than reached through module globals.
"""

import asyncio
import logging
from typing import Optional

import aiosqlite
import httpx

from readlater.api.client import RemoteClient
from readlater.config import ServerConfig, ServerSettings, normalize_server_url
from readlater.services.projector import ArticleListView
from readlater.services.sync import SyncCoordinator
from readlater.storage.database import ArticleCache, close_database, open_database
from readlater.storage.pending import PendingWriteQueue
from readlater.storage.preferences import SERVER_URL_KEY, Preferences

logger = logging.getLogger(__name__)


class ReadLaterRuntime:
    """Lazily opened container for the client components."""

    def __init__(
        self,
        config: ServerConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        background_sync: bool = False,
    ):
        self.config = config
        self.settings = ServerSettings(config.server_url)
        self._transport = transport
        self._background_sync = background_sync
        self._open_lock = asyncio.Lock()
        self._db: Optional[aiosqlite.Connection] = None

        self.cache: Optional[ArticleCache] = None
        self.queue: Optional[PendingWriteQueue] = None
        self.preferences: Optional[Preferences] = None
        self.remote: Optional[RemoteClient] = None
        self.coordinator: Optional[SyncCoordinator] = None

    @property
    def is_open(self) -> bool:
        return self._db is not None

    async def open(self) -> "ReadLaterRuntime":
        """Open the database and build the components (idempotent)."""
        async with self._open_lock:
            if self._db is not None:
                return self

            db = await open_database(self.config.db_path)
            self.preferences = Preferences(db)

            saved_url = await self.preferences.get(SERVER_URL_KEY)
            if saved_url:
                self.settings.server_url = saved_url

            self.cache = ArticleCache(db)
            self.queue = PendingWriteQueue(db, max_attempts=self.config.max_attempts)
            self.remote = RemoteClient(
                self.settings,
                timeout=self.config.request_timeout,
                transport=self._transport,
            )
            self.coordinator = SyncCoordinator(self.remote, self.cache, self.queue)
            self._db = db

            if self._background_sync and self.config.sync_interval > 0:
                self.coordinator.start_background_sync(self.config.sync_interval)

            logger.info(
                f"Opened {self.config.db_path} against {self.settings.server_url}"
            )
            return self

    async def close(self) -> None:
        if self._db is None:
            return

        await self.coordinator.stop_background_sync()
        await self.remote.aclose()
        await close_database(self._db)
        self._db = None
        self.cache = self.queue = self.preferences = None
        self.remote = self.coordinator = None

    async def __aenter__(self) -> "ReadLaterRuntime":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def list_view(
        self, archived_only: bool = False, search_query: str = "", tag: str = ""
    ) -> ArticleListView:
        view = ArticleListView(self.cache)
        view.set_filter(archived_only=archived_only, search_query=search_query, tag=tag)
        return view

    async def set_server_url(self, url: str, verify: bool = True) -> str:
        """Switch to another server and remember the choice.

        Args:
            url: New server URL
            verify: Ping the server before switching

        Returns:
            The normalized URL now in use

        Raises:
            ValueError: If the URL is invalid
            NetworkError: If verify is set and the server is unreachable
            RemoteError: If verify is set and the server rejects the ping
        """
        await self.open()
        url = normalize_server_url(url)

        if verify:
            await self.remote.ping(url)

        await self.preferences.set(SERVER_URL_KEY, url)
        self.settings.server_url = url
        logger.info(f"Server URL set to {url}")
        return url
