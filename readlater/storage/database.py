"""Database storage for readlater.

This module provides the async SQLite connection, the schema, and the local
article cache. The cache holds the last-known record for each article id and
is refreshed wholesale from the remote.
Database location: ServerConfig.db_path (READLATER_DB_PATH env var)
"""

import json
import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional

import aiosqlite

from readlater.errors import StorageFault
from readlater.models.schemas import Article

logger = logging.getLogger(__name__)

ChangeListener = Callable[[], None]


async def open_database(path: str) -> aiosqlite.Connection:
    """Open a database connection and make sure the schema exists.

    Args:
        path: Database file, or ":memory:"

    Returns:
        Active database connection
    """
    if path != ":memory:":
        # Ensure directory exists
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    try:
        db = await aiosqlite.connect(path)
    except aiosqlite.Error as e:
        raise StorageFault(f"Cannot open database at {path}: {e}") from e

    db.row_factory = aiosqlite.Row
    await init_database(db)
    return db


async def init_database(db: aiosqlite.Connection) -> None:
    """Initialize database tables if they don't exist.

    Args:
        db: Database connection
    """
    await db.execute("""
        CREATE TABLE IF NOT EXISTS articles (
            id INTEGER PRIMARY KEY,
            url TEXT NOT NULL,
            title TEXT NOT NULL DEFAULT '',
            excerpt TEXT,
            content TEXT,
            author TEXT,
            image TEXT,
            archived BOOLEAN NOT NULL DEFAULT FALSE,
            created_at TEXT,
            read_at TEXT,
            tags TEXT NOT NULL DEFAULT '[]'
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS pending_writes (
            seq INTEGER PRIMARY KEY AUTOINCREMENT,
            url TEXT NOT NULL,
            enqueued_at TEXT NOT NULL,
            attempts INTEGER NOT NULL DEFAULT 0,
            last_error TEXT
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS dead_letters (
            seq INTEGER PRIMARY KEY,
            url TEXT NOT NULL,
            enqueued_at TEXT NOT NULL,
            attempts INTEGER NOT NULL,
            last_error TEXT,
            failed_at TEXT NOT NULL
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS preferences (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS idx_articles_archived ON articles(archived)
    """)

    await db.commit()


def _row_to_article(row: aiosqlite.Row) -> Article:
    return Article(
        id=row["id"],
        url=row["url"],
        title=row["title"],
        excerpt=row["excerpt"],
        content=row["content"],
        author=row["author"],
        image=row["image"],
        archived=bool(row["archived"]),
        created_at=row["created_at"],
        read_at=row["read_at"],
        tags=json.loads(row["tags"] or "[]"),
    )


def _article_params(article: Article) -> tuple:
    if article.id is None:
        raise ValueError(f"Cannot cache an article without an id: {article.url}")
    return (
        article.id,
        article.url,
        article.title or "",
        article.excerpt,
        article.content,
        article.author,
        article.image,
        article.archived,
        article.created_at,
        article.read_at,
        json.dumps(article.tags),
    )


_UPSERT_SQL = """
    INSERT OR REPLACE INTO articles
        (id, url, title, excerpt, content, author, image, archived, created_at,
         read_at, tags)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""


class ArticleCache:
    """Local cache of article records keyed by remote id.

    Writes are last-write-wins; a record is always replaced whole. Listeners
    registered with subscribe() are called after every committed mutation.
    """

    def __init__(self, db: aiosqlite.Connection):
        self.db = db
        self._listeners: List[ChangeListener] = []

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener.

        Args:
            listener: Called with no arguments after each mutation

        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    async def _fetch_all(self, query: str, params: tuple = ()) -> List[Article]:
        try:
            cursor = await self.db.execute(query, params)
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StorageFault(f"Cache query failed: {e}") from e
        return [_row_to_article(row) for row in rows]

    async def _write(self, query: str, params: tuple = ()) -> int:
        try:
            cursor = await self.db.execute(query, params)
            await self.db.commit()
        except aiosqlite.Error as e:
            raise StorageFault(f"Cache write failed: {e}") from e
        self._notify()
        return cursor.rowcount

    async def upsert(self, article: Article) -> None:
        """Store an article, replacing any record with the same id.

        Raises:
            ValueError: If the article has no id
            StorageFault: If the write fails
        """
        await self._write(_UPSERT_SQL, _article_params(article))

    async def upsert_many(self, articles: Iterable[Article]) -> int:
        """Store several articles in one transaction.

        Returns:
            Number of records written
        """
        params = [_article_params(article) for article in articles]
        if not params:
            return 0

        try:
            await self.db.executemany(_UPSERT_SQL, params)
            await self.db.commit()
        except aiosqlite.Error as e:
            raise StorageFault(f"Cache write failed: {e}") from e

        self._notify()
        return len(params)

    async def get(self, article_id: int) -> Optional[Article]:
        """Get a cached article.

        Args:
            article_id: Remote id of the article

        Returns:
            Article if cached, None otherwise
        """
        articles = await self._fetch_all(
            "SELECT * FROM articles WHERE id = ?", (article_id,)
        )
        return articles[0] if articles else None

    async def query_by_archived(self, archived: bool) -> List[Article]:
        """List cached articles with the given archived flag, newest id first."""
        return await self._fetch_all(
            "SELECT * FROM articles WHERE archived = ? ORDER BY id DESC",
            (1 if archived else 0,),
        )

    async def query_by_substring(self, text: str) -> List[Article]:
        """List cached articles whose title or excerpt contains text.

        Matching is a case-sensitive substring test, not full-text search.

        Args:
            text: Non-empty search text

        Returns:
            Matching articles, newest id first

        Raises:
            ValueError: If text is empty
        """
        if not text:
            raise ValueError("Search text must not be empty")

        return await self._fetch_all(
            """
            SELECT * FROM articles
            WHERE instr(title, ?) > 0 OR instr(COALESCE(excerpt, ''), ?) > 0
            ORDER BY id DESC
            """,
            (text, text),
        )

    async def query_by_tag(self, tag: str) -> List[Article]:
        """List cached articles carrying tag (exact name), newest id first.

        Raises:
            ValueError: If tag is empty
        """
        if not tag:
            raise ValueError("Tag must not be empty")

        return await self._fetch_all(
            """
            SELECT * FROM articles
            WHERE EXISTS (SELECT 1 FROM json_each(articles.tags) WHERE value = ?)
            ORDER BY id DESC
            """,
            (tag,),
        )

    async def set_read(self, article_id: int, read_at: str) -> Optional[Article]:
        """Record when a cached article was read.

        Returns:
            Updated Article if cached, None otherwise
        """
        await self._write(
            "UPDATE articles SET read_at = ? WHERE id = ?", (read_at, article_id)
        )
        return await self.get(article_id)

    async def set_tags(self, article_id: int, tags: List[str]) -> Optional[Article]:
        """Replace the tag list of a cached article.

        Returns:
            Updated Article if cached, None otherwise
        """
        await self._write(
            "UPDATE articles SET tags = ? WHERE id = ?", (json.dumps(tags), article_id)
        )
        return await self.get(article_id)

    async def set_archived(self, article_id: int, archived: bool) -> Optional[Article]:
        """Update the archived flag of a cached article.

        Returns:
            Updated Article if cached, None otherwise
        """
        await self._write(
            "UPDATE articles SET archived = ? WHERE id = ?",
            (1 if archived else 0, article_id),
        )
        return await self.get(article_id)

    async def delete(self, article_id: int) -> bool:
        """Delete a cached article.

        Returns:
            True if a record was removed
        """
        return await self._write("DELETE FROM articles WHERE id = ?", (article_id,)) > 0

    async def clear(self) -> int:
        """Remove every cached article.

        Returns:
            Number of records removed
        """
        removed = await self._write("DELETE FROM articles")
        logger.info(f"Cleared {removed} cached articles")
        return removed

    async def count(self) -> int:
        try:
            cursor = await self.db.execute("SELECT COUNT(*) AS count FROM articles")
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StorageFault(f"Cache query failed: {e}") from e
        return row["count"]


async def close_database(db: aiosqlite.Connection) -> None:
    """Close a database connection."""
    await db.close()
