"""
Object keys for uploaded artifacts.

Shapes:
    - Student submissions: assignments/{student}/{epoch_ms}-{uuid}{.ext}
    - Tutor certificates:  tutor_certificates/{epoch_ms}-{uuid}{.ext}

Client-supplied names never reach a key verbatim: the student segment is
folded to ASCII and reduced to [A-Za-z0-9._-], and only a lowercased
alphanumeric extension survives from the uploaded filename.
"""
from __future__ import annotations

from pathlib import PurePosixPath
import re
import unicodedata

_UNSAFE_RUN = re.compile(r"[^A-Za-z0-9._-]+")


def _safe_segment(raw: str | None, fallback: str) -> str:
    folded = unicodedata.normalize("NFKD", raw or "").encode("ascii", "ignore").decode("ascii")
    cleaned = _UNSAFE_RUN.sub("-", folded).strip("-_.")
    return cleaned or fallback


def _extension(filename: str | None) -> str:
    if not filename:
        return ""
    suffix = PurePosixPath(filename.replace("\\", "/")).suffix.lower()
    kept = "".join(ch for ch in suffix[1:] if ch.isalnum())
    return f".{kept}" if kept else ""


def _stem(epoch_ms: int, uuid_hex: str | None) -> str:
    return f"{int(epoch_ms)}-{(uuid_hex or '').strip() or 'file'}"


def make_submission_key(*, student_id: str, filename: str | None, epoch_ms: int, uuid_hex: str) -> str:
    student = _safe_segment(student_id, "student")
    return f"assignments/{student}/{_stem(epoch_ms, uuid_hex)}{_extension(filename)}"


def make_certificate_key(*, filename: str | None, epoch_ms: int, uuid_hex: str) -> str:
    return f"tutor_certificates/{_stem(epoch_ms, uuid_hex)}{_extension(filename)}"


__all__ = ["make_submission_key", "make_certificate_key"]
