"""
This module implements the factory for creating simulated client contexts.

`hackfest_factory` captures the shared resources for a configuration (the
backing blob store and the broadcast transport) and yields an `open_context`
function bound to them. Each context is one "tab": its own bus, store facade
and time tracker. No module-level singletons are kept; everything is released
when the factory exits.
"""
import logging
import os
import urllib.parse
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Dict, Optional

from .adaptors.sqlite import SQLiteBlobStore, SQLiteBroadcastChannel, connect
from .bus import EventBus
from .channels import MemoryBroadcastHub
from .models import utcnow
from .storage import MemoryBlobStore
from .store import DomainStore
from .timetracking import TimeTracker

DEFAULT_CHANNEL = "hackfest_realtime"


@dataclass
class Context:
    bus: EventBus
    store: DomainStore
    tracker: TimeTracker

    @property
    def origin_id(self) -> str:
        return self.bus.origin_id


def _sqlite_target(url: str):
    parsed = urllib.parse.urlparse(url)
    db_path = parsed.path
    if os.name == "nt" and db_path.startswith("/") and not db_path.startswith("//"):
        db_path = db_path[1:]
    if not db_path or db_path == "/":
        return "file:hackfest_memdb?mode=memory&cache=shared", True
    return db_path, False


@asynccontextmanager
async def hackfest_factory(config: Optional[Dict] = None) -> AsyncIterator[Callable]:
    """
    Config keys: ``url`` (``memory://`` by default, or ``sqlite:///path`` /
    ``sqlite://`` for an in-memory database), ``key`` (Fernet key encrypting
    the stored document), ``channel`` (broadcast topic name),
    ``polling_interval`` (seconds, SQLite transport only) and ``clock``.
    """
    config = dict(config or {})
    url = config.get("url") or "memory://"
    scheme = url.split("://", 1)[0] if "://" in url else ""
    key = config.get("key")
    channel_name = config.get("channel", DEFAULT_CHANNEL)
    polling_interval = config.get("polling_interval", 0.2)
    clock = config.get("clock", utcnow)
    conn = None

    if scheme == "memory":
        blobs = MemoryBlobStore()
        hub = MemoryBroadcastHub()

        def make_channel():
            return hub.channel(channel_name)

    elif scheme == "sqlite":
        db_connect_string, is_memory_db = _sqlite_target(url)
        conn = await connect(db_connect_string, uri=is_memory_db)
        blobs = SQLiteBlobStore(conn)
        await blobs.create_schema()

        def make_channel():
            return SQLiteBroadcastChannel(conn, channel_name, polling_interval=polling_interval)

    else:
        raise ValueError(f"Unsupported scheme: {scheme}. Only 'memory' and 'sqlite' are supported.")

    @asynccontextmanager
    async def open_context(origin_id: Optional[str] = None) -> AsyncIterator[Context]:
        bus = EventBus(make_channel(), origin_id=origin_id, clock=clock)
        store = DomainStore(blobs, bus, key=key, clock=clock)
        context = Context(bus=bus, store=store, tracker=TimeTracker(store, clock=clock))
        await bus.open()
        try:
            yield context
        finally:
            await bus.close()

    try:
        yield open_context
    finally:
        if conn is not None:
            await conn.close()
        logging.info(f"Factory for {url} shut down")
