"""
Blob storage for the domain document.

`DocumentCodec` turns the document into bytes (JSON, optionally Fernet
encrypted) and back. `MemoryBlobStore` keeps blobs in a dict shared by every
context created from the same factory, the way tabs of one browser share
localStorage.
"""
import json
import logging
from typing import Any, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken

from .errors import DocumentCorruptError


class DocumentCodec:
    def __init__(self, key: Optional[bytes] = None):
        self.fernet = Fernet(key) if key else None

    def encode(self, document: Dict[str, Any]) -> bytes:
        data = json.dumps(document, separators=(",", ":")).encode("utf-8")
        if self.fernet:
            data = self.fernet.encrypt(data)
        return data

    def decode(self, key: str, data: bytes) -> Dict[str, Any]:
        if self.fernet:
            try:
                data = self.fernet.decrypt(data)
            except InvalidToken:
                logging.error(f"Could not decrypt stored document {key!r}, wrong key?")
                raise DocumentCorruptError(key, "decryption failed")
        try:
            return json.loads(data.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DocumentCorruptError(key, str(e))


class MemoryBlobStore:
    def __init__(self):
        self._blobs: Dict[str, bytes] = {}

    async def get(self, key: str) -> Optional[bytes]:
        return self._blobs.get(key)

    async def put(self, key: str, data: bytes) -> None:
        self._blobs[key] = data

    async def delete(self, key: str) -> None:
        self._blobs.pop(key, None)
