"""
This module defines the abstract protocols for the backing store, the cross-context
channel and the notification sink.

The bus, store and bridge only talk to these interfaces, so a transport can be
an in-process hub in tests and a SQLite loopback queue across processes without
changing any of the core classes.
"""
from typing import Any, Callable, Dict, Optional, Protocol

from .models import NotificationOptions

ChannelListener = Callable[[Dict[str, Any]], None]


class BlobStore(Protocol):
    """
    Key-value store holding opaque blobs. Writes replace the whole value.
    """

    async def get(self, key: str) -> Optional[bytes]:
        ...

    async def put(self, key: str, data: bytes) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...


class BroadcastChannel(Protocol):
    """
    A named cross-context channel. A posted message reaches every other attached
    channel of the same name, in post order, and never the poster itself.
    """

    name: str

    async def attach(self, listener: ChannelListener) -> None:
        ...

    async def detach(self) -> None:
        ...

    def post(self, message: Dict[str, Any]) -> None:
        ...


class NotificationSink(Protocol):
    """Renders a user-facing notification. Fire-and-forget."""

    def show_notification(self, title: str, options: NotificationOptions) -> None:
        ...
