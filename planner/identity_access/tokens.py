"""
Session token helpers for the identity_access bounded context.

Why: Keep cryptographic issuance and validation of the session credential
outside the web adapter so we can unit test it independently.

Security: Tokens are HS256 JWTs signed with SESSION_SECRET and carry only the
subject, role, email and (for tutors) the program specialty. Signature,
expiry and the role claim are validated on every request.
"""
from __future__ import annotations

from typing import Dict
import time

from jose import jwt
from jose.exceptions import JOSEError

from .domain import AdminPrincipal, Principal, Role, StudentPrincipal, TutorPrincipal

ALGORITHM = "HS256"
MAX_CLOCK_SKEW_SECONDS = 5  # Allow minimal skew between servers


class SessionTokenError(Exception):
    """Raised when the session token fails verification."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


def issue_session_token(principal: Principal, *, secret: str, ttl_seconds: int = 3600, now: float | None = None) -> str:
    """Sign a short-lived session token for the given principal."""
    issued = int(now if now is not None else time.time())
    claims: Dict[str, object] = {
        "sub": principal.user_id,
        "role": principal.role.value,
        "email": principal.email,
        "iat": issued,
        "exp": issued + int(ttl_seconds),
    }
    if isinstance(principal, TutorPrincipal) and principal.specialty:
        claims["specialty"] = principal.specialty
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def verify_session_token(token: str, *, secret: str, now: float | None = None) -> Principal:
    """Validate a session token and return the principal it names.

    Raises
    ------
    SessionTokenError:
        When the token is malformed, badly signed, expired, or names an
        unknown role.
    """
    if not token or not isinstance(token, str):
        raise SessionTokenError("missing_token")
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            options={"verify_exp": False, "verify_iat": False, "verify_aud": False},
        )
    except JOSEError as exc:
        raise SessionTokenError("invalid_token") from exc

    _validate_temporal_claims(claims, now=now)
    return _principal_from_claims(claims)


def _validate_temporal_claims(claims: Dict[str, object], *, now: float | None = None) -> None:
    current = now if now is not None else time.time()
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        raise SessionTokenError("invalid_token")
    if exp + MAX_CLOCK_SKEW_SECONDS < current:
        raise SessionTokenError("token_expired")
    iat = claims.get("iat")
    if isinstance(iat, (int, float)) and iat - MAX_CLOCK_SKEW_SECONDS > current:
        raise SessionTokenError("invalid_token")


def _principal_from_claims(claims: Dict[str, object]) -> Principal:
    sub = claims.get("sub")
    email = claims.get("email")
    if not isinstance(sub, str) or not sub or not isinstance(email, str):
        raise SessionTokenError("invalid_token")
    try:
        role = Role(str(claims.get("role")))
    except ValueError as exc:
        raise SessionTokenError("invalid_role") from exc
    if role is Role.ADMIN:
        return AdminPrincipal(email=email)
    if role is Role.TUTOR:
        specialty = claims.get("specialty")
        return TutorPrincipal(user_id=sub, email=email, specialty=specialty if isinstance(specialty, str) else None)
    return StudentPrincipal(user_id=sub, email=email)
