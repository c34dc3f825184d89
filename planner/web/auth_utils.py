"""
Shared authentication utilities for the web adapters.

Why:
    Avoid duplicating the session cookie policy and the caller lookup across
    routers. `cookie_opts` stays pure: it takes an environment string and
    returns the cookie flags.
"""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from planner.errors import Forbidden, Unauthenticated
from planner.identity_access.domain import Principal, Role

SESSION_COOKIE_NAME = "planner_session"


def cookie_opts(environment: str) -> dict:
    """Return hardened cookie flags (dev = prod).

    Returns a mapping with keys:
      - secure: True
      - samesite: "lax"
    """
    return {"secure": True, "samesite": "lax"}


def set_session_cookie(response: Response, token: str, *, environment: str, max_age: int) -> None:
    opts = cookie_opts(environment)
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=opts["secure"],
        samesite=opts["samesite"],
        path="/",
        max_age=max_age,
    )


def clear_session_cookie(response: Response, *, environment: str) -> None:
    opts = cookie_opts(environment)
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        path="/",
        secure=opts["secure"],
        httponly=True,
        samesite=opts["samesite"],
    )


def require_roles(request: Request, *roles: Role) -> Principal:
    """Return the caller set by the auth middleware, restricted to `roles`."""
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise Unauthenticated("unauthenticated")
    if roles and principal.role not in roles:
        raise Forbidden("role_not_allowed")
    return principal


def private_json(payload, *, status_code: int = 200) -> JSONResponse:
    """JSON with caching disabled; every role-scoped response goes through here."""
    return JSONResponse(content=payload, status_code=status_code, headers={"Cache-Control": "private, no-store"})
