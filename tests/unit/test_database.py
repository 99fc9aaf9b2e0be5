"""Unit tests for the article cache.

Tests for the storage layer using in-memory SQLite.
"""

import pytest

from readlater.errors import StorageFault
from readlater.models.schemas import Article
from readlater.storage.database import ArticleCache, init_database, open_database


# Mark all tests as async
pytestmark = pytest.mark.anyio


class TestDatabaseInitialization:
    """Tests for database schema initialization."""

    async def test_init_creates_tables(self, in_memory_db):
        """Test that initialization creates the required tables."""
        cursor = await in_memory_db.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        )
        tables = [row[0] for row in await cursor.fetchall()]

        assert "articles" in tables
        assert "pending_writes" in tables
        assert "dead_letters" in tables
        assert "preferences" in tables

    async def test_init_is_idempotent(self, in_memory_db):
        """Test that calling init multiple times doesn't cause errors."""
        await init_database(in_memory_db)
        await init_database(in_memory_db)

    async def test_open_database_creates_parent_directory(self, tmp_path):
        """Test that opening a file database creates its directory."""
        path = tmp_path / "nested" / "readlater.db"

        db = await open_database(str(path))
        try:
            assert path.parent.exists()
        finally:
            await db.close()


class TestUpsertAndGet:
    """Tests for storing and reading single records."""

    async def test_upsert_then_get_returns_same_record(self, cache):
        article = Article(
            id=42,
            url="https://example.com/x",
            title="X",
            excerpt="short",
            content="<p>body</p>",
            author="Ann",
            image="https://example.com/x.png",
            archived=False,
            created_at="2024-05-01T10:00:00Z",
            read_at="2024-05-02T08:00:00Z",
            tags=["tech", "long read"],
        )

        await cache.upsert(article)

        assert await cache.get(42) == article

    async def test_upsert_replaces_whole_record(self, cache):
        """Test last-write-wins without merging old fields."""
        await cache.upsert(Article(id=1, url="https://a", title="Old", content="full body"))
        await cache.upsert(Article(id=1, url="https://a", title="New"))

        stored = await cache.get(1)

        assert stored.title == "New"
        assert stored.content is None

    async def test_upsert_without_id_raises(self, cache):
        with pytest.raises(ValueError, match="without an id"):
            await cache.upsert(Article(url="https://pending.example.com"))

    async def test_get_missing_returns_none(self, cache):
        assert await cache.get(999) is None

    async def test_upsert_many(self, cache, make_article):
        stored = await cache.upsert_many([make_article(1), make_article(2), make_article(3)])

        assert stored == 3
        assert await cache.count() == 3

    async def test_upsert_many_empty(self, cache):
        assert await cache.upsert_many([]) == 0


class TestQueries:
    """Tests for archived and substring queries."""

    async def test_query_by_archived_filters_and_orders(self, cache, make_article):
        await cache.upsert_many([
            make_article(3, archived=False),
            make_article(1, archived=False),
            make_article(2, archived=True),
            make_article(5, archived=False),
        ])

        unread = await cache.query_by_archived(False)
        archived = await cache.query_by_archived(True)

        assert [a.id for a in unread] == [5, 3, 1]
        assert all(not a.archived for a in unread)
        assert [a.id for a in archived] == [2]
        assert all(a.archived for a in archived)

    async def test_query_by_substring_matches_title_or_excerpt(self, cache, make_article):
        await cache.upsert_many([
            make_article(1, title="Python tips"),
            make_article(2, title="Cooking", excerpt="A Python recipe"),
            make_article(3, title="Gardening", excerpt="Tomatoes"),
            make_article(4, title="Archived Python", archived=True),
        ])

        results = await cache.query_by_substring("Python")

        assert [a.id for a in results] == [4, 2, 1]

    async def test_query_by_substring_is_case_sensitive(self, cache, make_article):
        await cache.upsert(make_article(1, title="Python tips"))

        assert await cache.query_by_substring("python") == []

    async def test_query_by_substring_handles_null_excerpt(self, cache, make_article):
        await cache.upsert(make_article(1, title="Title", excerpt=None))

        assert await cache.query_by_substring("nothing") == []

    async def test_query_by_substring_rejects_empty_text(self, cache):
        with pytest.raises(ValueError):
            await cache.query_by_substring("")

    async def test_query_by_tag_matches_exact_name(self, cache, make_article):
        await cache.upsert_many([
            make_article(1, tags=["tech"]),
            make_article(2, tags=["technology"]),
            make_article(3, tags=["go", "tech"], archived=True),
            make_article(4),
        ])

        results = await cache.query_by_tag("tech")

        assert [a.id for a in results] == [3, 1]

    async def test_query_by_tag_rejects_empty_tag(self, cache):
        with pytest.raises(ValueError):
            await cache.query_by_tag("")


class TestMutations:
    """Tests for archive flag updates, deletes and change notifications."""

    async def test_set_archived_only_changes_flag(self, cache, make_article):
        await cache.upsert(make_article(7, title="Keep me", content="body"))

        updated = await cache.set_archived(7, True)

        assert updated.archived is True
        assert updated.title == "Keep me"
        assert updated.content == "body"

    async def test_set_archived_missing_returns_none(self, cache):
        assert await cache.set_archived(7, True) is None

    async def test_set_read_only_changes_read_at(self, cache, make_article):
        await cache.upsert(make_article(7, content="body", tags=["tech"]))

        updated = await cache.set_read(7, "2024-06-01T12:00:00+00:00")

        assert updated.read_at == "2024-06-01T12:00:00+00:00"
        assert updated.content == "body"
        assert updated.tags == ["tech"]

    async def test_set_tags_replaces_list(self, cache, make_article):
        await cache.upsert(make_article(7, tags=["a"]))

        updated = await cache.set_tags(7, ["b", "c"])

        assert updated.tags == ["b", "c"]
        assert await cache.set_tags(99, ["x"]) is None

    async def test_delete(self, cache, make_article):
        await cache.upsert(make_article(1))

        assert await cache.delete(1) is True
        assert await cache.get(1) is None
        assert await cache.delete(1) is False

    async def test_clear(self, cache, make_article):
        await cache.upsert_many([make_article(1), make_article(2)])

        removed = await cache.clear()

        assert removed == 2
        assert await cache.count() == 0

    async def test_listeners_called_after_mutations(self, cache, make_article):
        calls = []
        unsubscribe = cache.subscribe(lambda: calls.append(1))

        await cache.upsert(make_article(1))
        await cache.upsert_many([make_article(2)])
        await cache.set_archived(1, True)
        await cache.delete(2)
        await cache.clear()

        assert len(calls) == 5

        unsubscribe()
        await cache.upsert(make_article(3))

        assert len(calls) == 5

    async def test_reads_do_not_notify(self, cache, make_article):
        calls = []
        cache.subscribe(lambda: calls.append(1))

        await cache.get(1)
        await cache.query_by_archived(False)

        assert calls == []


class TestStorageFaults:
    """Tests that database failures surface as StorageFault."""

    async def test_query_on_missing_table_raises_storage_fault(self, in_memory_db):
        await in_memory_db.execute("DROP TABLE articles")
        cache = ArticleCache(in_memory_db)

        with pytest.raises(StorageFault):
            await cache.query_by_archived(False)

    async def test_write_on_missing_table_raises_storage_fault(self, in_memory_db, make_article):
        await in_memory_db.execute("DROP TABLE articles")
        cache = ArticleCache(in_memory_db)

        with pytest.raises(StorageFault):
            await cache.upsert(make_article(1))
