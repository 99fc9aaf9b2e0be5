"""Unit tests for the article list view."""

import pytest

from readlater.models.schemas import ViewFilter
from readlater.services.projector import ArticleListView


pytestmark = pytest.mark.anyio


class TestCurrent:
    """Tests for one-shot projection."""

    async def test_defaults_to_unread(self, cache, make_article):
        await cache.upsert_many([make_article(1), make_article(2, archived=True)])
        view = ArticleListView(cache)

        assert [a.id for a in await view.current()] == [1]

    async def test_archived_only(self, cache, make_article):
        await cache.upsert_many([make_article(1), make_article(2, archived=True)])
        view = ArticleListView(cache, ViewFilter(archived_only=True))

        assert [a.id for a in await view.current()] == [2]

    async def test_search_takes_precedence(self, cache, make_article):
        await cache.upsert_many([
            make_article(1, title="Python"),
            make_article(2, title="Python archived", archived=True),
            make_article(3, title="Other"),
        ])
        view = ArticleListView(cache)

        view.set_filter(archived_only=False, search_query="Python")

        assert [a.id for a in await view.current()] == [2, 1]

    async def test_tag_overrides_archived_flag(self, cache, make_article):
        await cache.upsert_many([
            make_article(1, tags=["go"]),
            make_article(2, tags=["go"], archived=True),
            make_article(3, title="go", tags=["rust"]),
        ])
        view = ArticleListView(cache)

        view.set_filter(tag="go")
        assert [a.id for a in await view.current()] == [2, 1]

        view.set_filter(search_query="go")
        assert [a.id for a in await view.current()] == [3]

    async def test_set_filter_keeps_unspecified_fields(self, cache):
        view = ArticleListView(cache, ViewFilter(archived_only=True))

        updated = view.set_filter(search_query="x")

        assert updated == ViewFilter(archived_only=True, search_query="x")


class TestWatch:
    """Tests for the live view."""

    async def test_yields_initial_list(self, cache, make_article):
        await cache.upsert(make_article(1))
        view = ArticleListView(cache)
        updates = view.watch()

        first = await updates.__anext__()

        assert [a.id for a in first] == [1]
        await updates.aclose()

    async def test_recomputes_on_cache_change(self, cache, make_article):
        view = ArticleListView(cache)
        updates = view.watch()
        assert await updates.__anext__() == []

        await cache.upsert(make_article(5))
        second = await updates.__anext__()

        await cache.set_archived(5, True)
        third = await updates.__anext__()

        assert [a.id for a in second] == [5]
        assert third == []
        await updates.aclose()

    async def test_recomputes_on_filter_change(self, cache, make_article):
        await cache.upsert_many([make_article(1), make_article(2, archived=True)])
        view = ArticleListView(cache)
        updates = view.watch()
        assert [a.id for a in await updates.__anext__()] == [1]

        view.set_filter(archived_only=True)

        assert [a.id for a in await updates.__anext__()] == [2]
        await updates.aclose()

    async def test_burst_of_changes_coalesces(self, cache, make_article):
        view = ArticleListView(cache)
        updates = view.watch()
        await updates.__anext__()

        await cache.upsert(make_article(1))
        await cache.upsert(make_article(2))
        await cache.upsert(make_article(3))

        assert [a.id for a in await updates.__anext__()] == [3, 2, 1]
        await updates.aclose()

    async def test_close_unsubscribes(self, cache, make_article):
        view = ArticleListView(cache)
        updates = view.watch()
        await updates.__anext__()

        await updates.aclose()

        assert cache._listeners == []
        assert view._waiters == set()

    async def test_restartable(self, cache, make_article):
        view = ArticleListView(cache)
        first = view.watch()
        await first.__anext__()
        await first.aclose()

        await cache.upsert(make_article(1))
        second = view.watch()

        assert [a.id for a in await second.__anext__()] == [1]
        await second.aclose()
