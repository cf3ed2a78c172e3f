import asyncio
import json
import logging
import secrets
from typing import Any, Dict, Optional

import aiosqlite

from hackfest_realtime.protocols import ChannelListener


class SQLiteBroadcastChannel:
    """
    A broadcast channel shared by several processes through one SQLite file.

    Posting never blocks: messages go to an outbox that a writer task appends
    to the ``broadcasts`` table in post order. A polling task picks up rows
    written by other channel instances since attach time and hands them to the
    listener. Rows written before attaching are never delivered.
    """

    def __init__(self, conn: aiosqlite.Connection, name: str, polling_interval: float = 0.2):
        self.name = name
        self._conn = conn
        self._polling_interval = polling_interval
        self._instance_id = secrets.token_hex(8)
        self._listener: Optional[ChannelListener] = None
        self._outbox: asyncio.Queue = asyncio.Queue()
        self._last_id = 0
        self._poll_task: Optional[asyncio.Task] = None
        self._write_task: Optional[asyncio.Task] = None

    @property
    def attached(self) -> bool:
        return self._listener is not None

    async def _create_schema(self):
        await self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS broadcasts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                channel TEXT NOT NULL,
                origin TEXT NOT NULL,
                message TEXT NOT NULL
            )
        """
        )
        await self._conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_broadcast_channel ON broadcasts (channel, id)"
        )
        await self._conn.commit()

    async def attach(self, listener: ChannelListener) -> None:
        if self._poll_task:
            self._listener = listener
            return
        await self._create_schema()
        async with self._conn.execute("SELECT MAX(id) FROM broadcasts") as cursor:
            row = await cursor.fetchone()
            self._last_id = row[0] if row and row[0] is not None else 0
        self._listener = listener
        self._write_task = asyncio.create_task(self._write_outbox())
        self._poll_task = asyncio.create_task(self._poll_for_messages())
        logging.info(f"Channel {self.name} attached, polling from ID {self._last_id}")

    async def detach(self) -> None:
        if self._write_task:
            # Let already posted messages reach the table first.
            await self._outbox.join()
        for task in (self._poll_task, self._write_task):
            if task:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._poll_task = None
        self._write_task = None
        self._listener = None
        logging.info(f"Channel {self.name} detached")

    def post(self, message: Dict[str, Any]) -> None:
        if not self.attached:
            logging.debug(f"Channel {self.name} is detached, dropping outgoing message")
            return
        self._outbox.put_nowait(json.dumps(message))

    async def _write_outbox(self):
        while True:
            message = await self._outbox.get()
            try:
                await self._conn.execute(
                    "INSERT INTO broadcasts (channel, origin, message) VALUES (?, ?, ?)",
                    (self.name, self._instance_id, message),
                )
                await self._conn.commit()
            except Exception as e:
                logging.error(f"Channel {self.name} failed to write message: {e}")
            finally:
                self._outbox.task_done()

    async def _poll_for_messages(self):
        while True:
            try:
                query = "SELECT id, origin, message FROM broadcasts WHERE channel = ? AND id > ? ORDER BY id"
                # Drain the cursor before delivering; listeners may write on the same connection.
                async with self._conn.execute(query, (self.name, self._last_id)) as cursor:
                    rows = await cursor.fetchall()
                for _id, origin, message in rows:
                    self._last_id = _id
                    if origin == self._instance_id:
                        continue
                    self._deliver(_id, message)
            except Exception as e:
                logging.error(f"Channel {self.name} poll loop error: {e}")
            await asyncio.sleep(self._polling_interval)

    def _deliver(self, row_id: int, message: str):
        listener = self._listener
        if listener is None:
            return
        try:
            listener(json.loads(message))
        except Exception as e:
            logging.warning(f"Channel {self.name} skipping message row {row_id}: {e}")
