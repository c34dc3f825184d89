"""In-memory blob store for development and tests."""
from __future__ import annotations

from typing import Dict, Tuple
import threading


class InMemoryBlobStore:
    def __init__(self, base_url: str = "memory://blobs") -> None:
        self._base_url = base_url.rstrip("/")
        self._objects: Dict[str, Tuple[bytes, str]] = {}
        self._lock = threading.Lock()

    def upload(self, *, key: str, data: bytes, content_type: str) -> str:
        with self._lock:
            self._objects[key] = (bytes(data), content_type)
        return f"{self._base_url}/{key}"

    def get(self, key: str) -> Tuple[bytes, str] | None:
        with self._lock:
            return self._objects.get(key)

    def __len__(self) -> int:
        return len(self._objects)
