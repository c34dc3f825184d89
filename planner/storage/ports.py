"""
Blob storage ports used by the assignment and identity services.

Keep these small and framework-agnostic so tests can supply simple fakes.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

MAX_UPLOAD_BYTES = 20 * 1024 * 1024


@dataclass(frozen=True)
class UploadedFile:
    """Raw bytes received from a multipart form, detached from the framework."""

    filename: str | None
    content_type: str | None
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class BlobStoreProtocol(Protocol):
    """Write an object and return a stable URL that can be stored and redirected to.

    Permissions:
        Implementations must enforce bucket/key ACLs; callers only pass keys
        built by `planner.storage.keys`.
    """

    def upload(self, *, key: str, data: bytes, content_type: str) -> str: ...


class BlobStoreError(Exception):
    """Raised by adapters when the object could not be stored."""


__all__ = ["MAX_UPLOAD_BYTES", "UploadedFile", "BlobStoreProtocol", "BlobStoreError"]
