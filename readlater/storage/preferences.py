"""User preferences persisted next to the article cache."""

from typing import Optional

import aiosqlite

from readlater.errors import StorageFault

SERVER_URL_KEY = "server_url"


class Preferences:
    """Key/value settings stored in the preferences table."""

    def __init__(self, db: aiosqlite.Connection):
        self.db = db

    async def get(self, key: str) -> Optional[str]:
        try:
            cursor = await self.db.execute(
                "SELECT value FROM preferences WHERE key = ?", (key,)
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StorageFault(f"Preference read failed: {e}") from e
        return row["value"] if row else None

    async def set(self, key: str, value: str) -> None:
        try:
            await self.db.execute(
                "INSERT OR REPLACE INTO preferences (key, value) VALUES (?, ?)",
                (key, value),
            )
            await self.db.commit()
        except aiosqlite.Error as e:
            raise StorageFault(f"Preference write failed: {e}") from e
