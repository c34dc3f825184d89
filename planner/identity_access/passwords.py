"""Password hashing helpers on top of `werkzeug.security`.

Stored hashes use werkzeug's self-describing `method$salt$hash` format, so the
work factor can change without migrating existing rows.
"""
from __future__ import annotations

from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash


def hash_password(password: str, *, iterations: Optional[int] = None) -> str:
    """Hash with werkzeug's default method, or PBKDF2-SHA256 at `iterations` rounds."""
    if iterations is None:
        return generate_password_hash(password)
    return generate_password_hash(password, method=f"pbkdf2:sha256:{int(iterations)}")


def verify_password(password: str, encoded: str) -> bool:
    if not encoded:
        return False
    try:
        return check_password_hash(encoded, password)
    except ValueError:
        # Unknown or malformed method prefix in a stored hash.
        return False
