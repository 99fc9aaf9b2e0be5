"""Sync coordinator.

Reconciles the local article cache with the remote. Reads fall back to cached
data on any remote failure. Archive, mark-read, delete and tag changes touch
the cache only after the remote confirmed them. A save that fails on connectivity is queued and
replayed later.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

from readlater.api.client import RemoteClient
from readlater.errors import NetworkError, RemoteError
from readlater.models.schemas import (
    Article,
    DrainReport,
    SaveOutcome,
    SaveStatus,
    Tag,
    WriteResult,
)
from readlater.storage.database import ArticleCache
from readlater.storage.pending import PendingWriteQueue

logger = logging.getLogger(__name__)

REMOTE_ERRORS = (NetworkError, RemoteError)


class SyncCoordinator:
    """Orchestrates the remote client, the cache and the pending-write queue."""

    def __init__(
        self,
        remote: RemoteClient,
        cache: ArticleCache,
        queue: PendingWriteQueue,
    ):
        self.remote = remote
        self.cache = cache
        self.queue = queue
        self.online = True
        self._background_task: Optional[asyncio.Task] = None

    def _mark(self, error: Optional[Exception] = None) -> None:
        if error is None:
            self.online = True
        elif isinstance(error, NetworkError):
            self.online = False
        else:
            # The server answered, so it is reachable
            self.online = True

    async def refresh(
        self,
        archived: Optional[bool] = None,
        limit: int = 50,
        offset: int = 0,
        tag: Optional[str] = None,
    ) -> Optional[int]:
        """Fetch a page of articles and store it in the cache.

        Records outside the fetched page are left alone. Remote failures are
        logged and swallowed so the cache keeps serving the last-known state.

        Args:
            archived: Archived filter passed to the remote (None for all)
            limit: Page size
            offset: Page offset
            tag: Only fetch articles carrying this tag

        Returns:
            Number of articles stored, or None if the remote call failed
        """
        try:
            articles = await self.remote.list_articles(
                archived=archived, limit=limit, offset=offset, tag=tag
            )
        except REMOTE_ERRORS as e:
            self._mark(e)
            logger.warning(f"Refresh failed, keeping cached articles: {e}")
            return None

        self._mark()
        if tag:
            # List replies carry no tags; membership is implied by the filter
            for article in articles:
                if tag not in article.tags:
                    article.tags.append(tag)

        stored = await self.cache.upsert_many(articles)
        logger.info(f"Refreshed {stored} articles (archived={archived}, tag={tag})")
        return stored

    async def get_article_detail(self, article_id: int) -> Optional[Article]:
        """Get the full article, falling back to the cached copy.

        Returns:
            The remote record (now cached), the cached record if the remote
            failed, or None if neither has it
        """
        try:
            article = await self.remote.get_article(article_id)
        except REMOTE_ERRORS as e:
            self._mark(e)
            logger.warning(f"Fetching article {article_id} failed, using cache: {e}")
            return await self.cache.get(article_id)

        self._mark()
        await self.cache.upsert(article)
        return article

    async def save_article(self, url: str) -> SaveOutcome:
        """Save a URL on the remote.

        Returns:
            SaveOutcome with status saved, queued (remote unreachable, will be
            retried) or failed (remote rejected the URL)
        """
        if not url:
            return SaveOutcome(status=SaveStatus.FAILED, error="URL is required")

        try:
            article = await self.remote.create_article(url)
        except NetworkError as e:
            self._mark(e)
            pending = await self.queue.enqueue(url)
            return SaveOutcome(status=SaveStatus.QUEUED, pending=pending, error=str(e))
        except RemoteError as e:
            self._mark(e)
            logger.info(f"Save rejected for {url}: {e.message}")
            return SaveOutcome(status=SaveStatus.FAILED, error=e.message)

        self._mark()
        await self.cache.upsert(article)
        return SaveOutcome(status=SaveStatus.SAVED, article=article)

    async def archive_article(self, article_id: int, archived: bool) -> WriteResult:
        """Set the archived flag remotely, then in the cache."""
        try:
            await self.remote.update_article(article_id, archived=archived)
        except REMOTE_ERRORS as e:
            self._mark(e)
            return WriteResult(success=False, error=str(e))

        self._mark()
        article = await self.cache.set_archived(article_id, archived)
        return WriteResult(success=True, article=article)

    async def mark_read(self, article_id: int) -> WriteResult:
        """Mark an article read remotely, then stamp read_at in the cache.

        The server keeps its own timestamp; the cached one is local time of
        the confirmation and is replaced by the next fetch.
        """
        try:
            await self.remote.update_article(article_id, mark_read=True)
        except REMOTE_ERRORS as e:
            self._mark(e)
            return WriteResult(success=False, error=str(e))

        self._mark()
        read_at = datetime.now(timezone.utc).isoformat()
        article = await self.cache.set_read(article_id, read_at)
        return WriteResult(success=True, article=article)

    async def delete_article(self, article_id: int) -> WriteResult:
        """Delete an article remotely, then from the cache."""
        try:
            await self.remote.delete_article(article_id)
        except REMOTE_ERRORS as e:
            self._mark(e)
            return WriteResult(success=False, error=str(e))

        self._mark()
        await self.cache.delete(article_id)
        return WriteResult(success=True)

    async def search(self, query: str, limit: int = 20) -> List[Article]:
        """Search on the remote, falling back to a local substring match."""
        try:
            articles = await self.remote.search(query, limit=limit)
        except REMOTE_ERRORS as e:
            self._mark(e)
            logger.warning(f"Remote search failed, searching cache: {e}")
            return (await self.cache.query_by_substring(query))[:limit]

        self._mark()
        await self.cache.upsert_many(articles)
        return articles

    async def list_tags(self) -> List[Tag]:
        try:
            tags = await self.remote.list_tags()
        except REMOTE_ERRORS as e:
            self._mark(e)
            logger.warning(f"Listing tags failed: {e}")
            return []

        self._mark()
        return tags

    async def add_tag(self, article_id: int, tag: str) -> WriteResult:
        try:
            await self.remote.add_tag(article_id, tag)
        except REMOTE_ERRORS as e:
            self._mark(e)
            return WriteResult(success=False, error=str(e))

        self._mark()
        article = await self.cache.get(article_id)
        if article is not None and tag not in article.tags:
            article = await self.cache.set_tags(article_id, article.tags + [tag])
        return WriteResult(success=True, article=article)

    async def remove_tag(self, article_id: int, tag: str) -> WriteResult:
        try:
            await self.remote.remove_tag(article_id, tag)
        except REMOTE_ERRORS as e:
            self._mark(e)
            return WriteResult(success=False, error=str(e))

        self._mark()
        article = await self.cache.get(article_id)
        if article is not None and tag in article.tags:
            article = await self.cache.set_tags(
                article_id, [t for t in article.tags if t != tag]
            )
        return WriteResult(success=True, article=article)

    async def sync_pending(self) -> DrainReport:
        """Replay queued saves and cache the articles they create."""
        report = await self.queue.drain(self.remote, on_replayed=self.cache.upsert)
        if report.skipped:
            return report

        if report.offline:
            self.online = False
        elif report.replayed or report.stopped_error is not None:
            self.online = True

        return report

    async def on_connectivity_restored(self) -> DrainReport:
        """Handle a connectivity-restored signal by draining the queue."""
        self.online = True
        return await self.sync_pending()

    async def clear_cache(self, include_queue: bool = False) -> int:
        """Remove cached articles, and optionally queued saves.

        Returns:
            Number of cached articles removed
        """
        removed = await self.cache.clear()
        if include_queue:
            dropped = await self.queue.clear()
            logger.info(f"Dropped {dropped} queued saves")
        return removed

    def start_background_sync(self, interval: float) -> asyncio.Task:
        """Drain the queue every interval seconds until stopped."""
        if self._background_task is not None and not self._background_task.done():
            return self._background_task

        async def _loop() -> None:
            while True:
                await asyncio.sleep(interval)
                try:
                    await self.sync_pending()
                except Exception as e:
                    logger.error(f"Background sync failed: {e}", exc_info=True)

        self._background_task = asyncio.create_task(_loop())
        logger.info(f"Background sync every {interval:.0f}s")
        return self._background_task

    async def stop_background_sync(self) -> None:
        task = self._background_task
        self._background_task = None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
