"""
Supabase Storage adapter for uploaded artifacts.

Uses the Storage REST API directly through `requests`:

- POST {SUPABASE_URL}/storage/v1/object/{bucket}/{key}   (upload, x-upsert=false)
- Public URL: {SUPABASE_URL}/storage/v1/object/public/{bucket}/{key}

Security:
- The service role key is sent only as a bearer token; it is never logged.
- The bucket must be configured for public reads of the URLs we hand out, or
  a proxy must sign them; this adapter only returns the canonical URL.
"""
from __future__ import annotations

import logging
from urllib.parse import quote

import requests

from .ports import BlobStoreError

LOG = logging.getLogger(__name__)


class SupabaseBlobStore:
    def __init__(self, *, base_url: str, service_role_key: str, bucket: str, timeout: float = 15.0) -> None:
        if not base_url or not service_role_key:
            raise ValueError("supabase_not_configured")
        self._base_url = base_url.rstrip("/")
        self._key = service_role_key
        self._bucket = bucket
        self._timeout = timeout

    def _headers(self, content_type: str) -> dict:
        return {
            "Authorization": f"Bearer {self._key}",
            "apikey": self._key,
            "Content-Type": content_type or "application/octet-stream",
            "x-upsert": "false",
        }

    def _object_path(self, key: str) -> str:
        norm_key = key.lstrip("/")
        prefix = f"{self._bucket}/"
        if norm_key.startswith(prefix):
            norm_key = norm_key[len(prefix):]
        return f"{self._bucket}/{quote(norm_key)}"

    def upload(self, *, key: str, data: bytes, content_type: str) -> str:
        path = self._object_path(key)
        url = f"{self._base_url}/storage/v1/object/{path}"
        try:
            resp = requests.post(url, data=data, headers=self._headers(content_type), timeout=self._timeout)
        except requests.RequestException as exc:
            LOG.warning("Supabase upload failed: %s", exc.__class__.__name__)
            raise BlobStoreError("storage_unreachable") from exc
        if resp.status_code not in (200, 201):
            LOG.warning("Supabase upload rejected (status=%s)", resp.status_code)
            raise BlobStoreError("storage_upload_failed")
        return f"{self._base_url}/storage/v1/object/public/{path}"


__all__ = ["SupabaseBlobStore"]
