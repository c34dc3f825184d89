"""Multipart helpers: detach uploads from Starlette before they reach services."""

from __future__ import annotations

from typing import Optional

from starlette.datastructures import FormData, UploadFile

from planner.errors import ValidationError
from planner.storage.ports import MAX_UPLOAD_BYTES, UploadedFile


def form_text(form: FormData, name: str) -> Optional[str]:
    value = form.get(name)
    return value if isinstance(value, str) else None


async def form_file(form: FormData, name: str) -> Optional[UploadedFile]:
    """Read one file field; None when absent or empty. Oversized uploads are refused."""
    value = form.get(name)
    if not isinstance(value, UploadFile):
        return None
    data = await value.read(MAX_UPLOAD_BYTES + 1)
    await value.close()
    if not data:
        return None
    if len(data) > MAX_UPLOAD_BYTES:
        raise ValidationError(f"{name}_too_large")
    return UploadedFile(filename=value.filename, content_type=value.content_type, data=data)
