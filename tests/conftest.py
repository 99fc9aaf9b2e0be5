"""Shared fixtures for readlater tests."""

import aiosqlite
import pytest

from readlater.models.schemas import Article
from readlater.storage.database import ArticleCache, init_database
from readlater.storage.pending import PendingWriteQueue


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def in_memory_db():
    """Create an in-memory database for testing."""
    db = await aiosqlite.connect(":memory:")
    db.row_factory = aiosqlite.Row
    await init_database(db)
    yield db
    await db.close()


@pytest.fixture
async def cache(in_memory_db):
    return ArticleCache(in_memory_db)


@pytest.fixture
async def queue(in_memory_db):
    return PendingWriteQueue(in_memory_db, max_attempts=3)


@pytest.fixture
def make_article():
    """Factory for articles with predictable urls and titles."""

    def _make(article_id, title="", archived=False, excerpt=None, content=None, tags=None):
        return Article(
            id=article_id,
            url=f"https://example.com/{article_id}",
            title=title or f"Article {article_id}",
            excerpt=excerpt,
            content=content,
            archived=archived,
            tags=list(tags or []),
        )

    return _make
