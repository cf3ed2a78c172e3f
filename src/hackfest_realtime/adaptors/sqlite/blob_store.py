import logging
from typing import Optional

import aiosqlite


class SQLiteBlobStore:
    """
    A concrete implementation of the `BlobStore` protocol for SQLite.

    One row per key; `put` replaces the whole blob in a single statement, so a
    reader never sees a partially written document.
    """

    def __init__(self, conn: aiosqlite.Connection):
        self.conn = conn

    async def create_schema(self):
        await self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value BLOB NOT NULL
            )
        """
        )
        await self.conn.commit()

    async def get(self, key: str) -> Optional[bytes]:
        async with self.conn.execute("SELECT value FROM kv WHERE key = ?", (key,)) as cursor:
            row = await cursor.fetchone()
            return row[0] if row else None

    async def put(self, key: str, data: bytes) -> None:
        try:
            await self.conn.execute("INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", (key, data))
            await self.conn.commit()
        except Exception as e:
            await self.conn.rollback()
            logging.error(f"Failed to write {key!r} to SQLite: {e}")
            raise

    async def delete(self, key: str) -> None:
        await self.conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        await self.conn.commit()
