from .blob_store import SQLiteBlobStore
from .channel import SQLiteBroadcastChannel
from .connection import connect

__all__ = ["SQLiteBlobStore", "SQLiteBroadcastChannel", "connect"]
