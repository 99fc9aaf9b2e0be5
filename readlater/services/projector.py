"""Article list view derived from the cache and the active filter.

watch() is a live view: it yields the current list right away and yields
again every time the cache changes or the filter is updated.
"""

import asyncio
import logging
from typing import AsyncIterator, List, Optional, Set

from readlater.models.schemas import Article, ViewFilter
from readlater.storage.database import ArticleCache

logger = logging.getLogger(__name__)


class ArticleListView:
    """Projects cached articles through a ViewFilter."""

    def __init__(self, cache: ArticleCache, view_filter: Optional[ViewFilter] = None):
        self.cache = cache
        self._filter = view_filter or ViewFilter()
        self._waiters: Set[asyncio.Event] = set()

    @property
    def filter(self) -> ViewFilter:
        return self._filter

    def set_filter(
        self,
        archived_only: Optional[bool] = None,
        search_query: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> ViewFilter:
        """Update the filter; unspecified fields keep their value."""
        self._filter = ViewFilter(
            archived_only=self._filter.archived_only if archived_only is None else archived_only,
            search_query=self._filter.search_query if search_query is None else search_query,
            tag=self._filter.tag if tag is None else tag,
        )
        self._invalidate()
        return self._filter

    def _invalidate(self) -> None:
        for event in self._waiters:
            event.set()

    async def current(self) -> List[Article]:
        view_filter = self._filter
        if view_filter.is_search:
            return await self.cache.query_by_substring(view_filter.search_query)
        if view_filter.is_tag:
            return await self.cache.query_by_tag(view_filter.tag)
        return await self.cache.query_by_archived(view_filter.archived_only)

    async def watch(self) -> AsyncIterator[List[Article]]:
        """Yield the article list now and after every dependency change.

        Changes arriving while the consumer is busy collapse into a single
        recomputation. The iterator never ends on its own; close it with
        aclose() or by leaving the async for loop.
        """
        changed = asyncio.Event()
        self._waiters.add(changed)
        unsubscribe = self.cache.subscribe(changed.set)
        try:
            while True:
                changed.clear()
                yield await self.current()
                await changed.wait()
        finally:
            unsubscribe()
            self._waiters.discard(changed)
