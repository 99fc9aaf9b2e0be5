"""Pending-write queue for readlater.

Saves that failed on connectivity are stored here and replayed in FIFO order
once the remote is reachable again. An entry leaves the queue only after the
remote confirms the create, or when it is moved to the dead-letter table after
the server rejected it (4xx) max_attempts times.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional

import aiosqlite

from readlater.errors import NetworkError, RemoteError, StorageFault
from readlater.models.schemas import Article, DrainReport, PendingWrite

logger = logging.getLogger(__name__)

ReplayCallback = Callable[[Article], Awaitable[None]]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_pending(row: aiosqlite.Row) -> PendingWrite:
    return PendingWrite(
        seq=row["seq"],
        url=row["url"],
        enqueued_at=row["enqueued_at"],
        attempts=row["attempts"],
        last_error=row["last_error"],
    )


class PendingWriteQueue:
    """Durable FIFO of create-article requests."""

    def __init__(self, db: aiosqlite.Connection, max_attempts: int = 3):
        self.db = db
        self.max_attempts = max_attempts
        self._drain_lock = asyncio.Lock()

    async def _execute(self, query: str, params: tuple = ()) -> aiosqlite.Cursor:
        try:
            cursor = await self.db.execute(query, params)
            await self.db.commit()
        except aiosqlite.Error as e:
            raise StorageFault(f"Pending queue write failed: {e}") from e
        return cursor

    async def _select(self, query: str, params: tuple = ()) -> List[PendingWrite]:
        try:
            cursor = await self.db.execute(query, params)
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StorageFault(f"Pending queue query failed: {e}") from e
        return [_row_to_pending(row) for row in rows]

    async def enqueue(self, url: str) -> PendingWrite:
        """Append a URL to the queue.

        Args:
            url: URL whose save failed on connectivity

        Returns:
            The stored queue entry
        """
        if not url:
            raise ValueError("url is required")

        enqueued_at = _now()
        cursor = await self._execute(
            "INSERT INTO pending_writes (url, enqueued_at) VALUES (?, ?)",
            (url, enqueued_at),
        )
        logger.info(f"Queued save for later: {url}")
        return PendingWrite(seq=cursor.lastrowid, url=url, enqueued_at=enqueued_at)

    async def peek(self) -> Optional[PendingWrite]:
        entries = await self._select(
            "SELECT * FROM pending_writes ORDER BY seq LIMIT 1"
        )
        return entries[0] if entries else None

    async def dequeue_on_success(self, seq: int) -> bool:
        """Remove an entry after the remote confirmed it.

        Returns:
            True if the entry existed
        """
        cursor = await self._execute("DELETE FROM pending_writes WHERE seq = ?", (seq,))
        return cursor.rowcount > 0

    async def list(self) -> List[PendingWrite]:
        return await self._select("SELECT * FROM pending_writes ORDER BY seq")

    async def count(self) -> int:
        return len(await self.list())

    async def clear(self) -> int:
        cursor = await self._execute("DELETE FROM pending_writes")
        return cursor.rowcount

    async def list_dead_letters(self) -> List[PendingWrite]:
        return await self._select("SELECT * FROM dead_letters ORDER BY seq")

    async def clear_dead_letters(self) -> int:
        cursor = await self._execute("DELETE FROM dead_letters")
        return cursor.rowcount

    async def _record_failure(self, entry: PendingWrite, error: str) -> PendingWrite:
        entry.attempts += 1
        entry.last_error = error
        await self._execute(
            "UPDATE pending_writes SET attempts = ?, last_error = ? WHERE seq = ?",
            (entry.attempts, entry.last_error, entry.seq),
        )
        return entry

    async def _move_to_dead_letters(self, entry: PendingWrite) -> None:
        try:
            await self.db.execute(
                """
                INSERT OR REPLACE INTO dead_letters
                    (seq, url, enqueued_at, attempts, last_error, failed_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (entry.seq, entry.url, entry.enqueued_at, entry.attempts,
                 entry.last_error, _now()),
            )
            await self.db.execute("DELETE FROM pending_writes WHERE seq = ?", (entry.seq,))
            await self.db.commit()
        except aiosqlite.Error as e:
            raise StorageFault(f"Pending queue write failed: {e}") from e

    async def drain(
        self,
        remote,
        on_replayed: Optional[ReplayCallback] = None,
    ) -> DrainReport:
        """Replay queued saves in order against the remote.

        Stops at the first failure. A network failure or a 5xx reply never
        drops an entry. A 4xx rejection drops the entry into the dead-letter
        table once it has failed max_attempts times, and the drain moves on to
        the next one.
        Only one drain runs at a time; a concurrent call returns immediately
        with skipped=True.

        Args:
            remote: Object providing create_article(url)
            on_replayed: Awaited with each article created by the replay

        Returns:
            DrainReport for this pass
        """
        if self._drain_lock.locked():
            logger.debug("Drain already in progress, skipping")
            return DrainReport(skipped=True, remaining=await self.count())

        async with self._drain_lock:
            report = DrainReport()

            while True:
                entry = await self.peek()
                if entry is None:
                    break

                try:
                    article = await remote.create_article(entry.url)
                except NetworkError as e:
                    await self._record_failure(entry, str(e))
                    report.stopped_error = str(e)
                    report.offline = True
                    logger.info(f"Drain stopped, remote unreachable: {e}")
                    break
                except RemoteError as e:
                    await self._record_failure(entry, e.message)
                    if e.is_permanent and entry.attempts >= self.max_attempts:
                        await self._move_to_dead_letters(entry)
                        report.dead_lettered.append(entry)
                        logger.warning(
                            f"Giving up on {entry.url} after {entry.attempts} attempts: {e.message}"
                        )
                        continue
                    report.stopped_error = e.message
                    logger.info(f"Drain stopped on {entry.url}: {e.message}")
                    break

                await self.dequeue_on_success(entry.seq)
                report.replayed.append(article)
                logger.info(f"Replayed queued save: {entry.url}")

                if on_replayed is not None:
                    await on_replayed(article)

            report.remaining = await self.count()
            return report
