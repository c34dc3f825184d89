"""
A+ Planner web application (FastAPI).

Request flow:
    auth_enforcement middleware (session cookie → principal)
    → router role check → lifecycle / query / payment service
    → PlannerError handler (one JSON error shape)

Security:
    - Every non-public path requires a valid session token; the token's user
      is re-checked against the store on each request so deletions take
      effect immediately.
    - Role-scoped responses carry `Cache-Control: private, no-store`.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
import logging
import os
import sys

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from planner.config import ensure_secure_config_on_startup, load_settings
from planner.errors import PlannerError
from planner.identity_access.tokens import SessionTokenError, verify_session_token
from planner.web.auth_utils import SESSION_COOKIE_NAME, private_json
from planner.web.routes.admin import admin_router
from planner.web.routes.assignments import assignments_router
from planner.web.routes.auth import auth_router
from planner.web.routes.payments import payments_router
from planner.web.wiring import get_services

logger = logging.getLogger("planner.web")


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via PLANNER_ENABLE_DOTENV (default true outside pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("PLANNER_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


try:
    from dotenv import load_dotenv

    if _should_load_dotenv():
        load_dotenv()
except ImportError:
    pass

# Minimal production safety checks (fail-fast on insecure config)
ensure_secure_config_on_startup(load_settings())


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Flush queued notifications before the worker thread dies with the process.
    get_services().close()


app = FastAPI(
    title="A+ Planner",
    description="Assignment marketplace: students submit, tutors price and complete, payment releases the solution.",
    version="1.0.0",
    lifespan=lifespan,
)

# --- Auth Middleware -----------------------------------------------------------

_PUBLIC_EXACT = {"/health", "/admin/login", "/openapi.json", "/favicon.ico"}
_AUTH_PROTECTED = {"/auth/me", "/auth/logout"}


def _is_public_path(path: str) -> bool:
    if path in _PUBLIC_EXACT:
        return True
    if path.startswith("/docs") or path.startswith("/redoc"):
        return True
    return path.startswith("/auth/") and path not in _AUTH_PROTECTED


def _unauthenticated(detail: str) -> JSONResponse:
    return JSONResponse(
        {"error": "unauthenticated", "detail": detail},
        status_code=401,
        headers={"Cache-Control": "private, no-store"},
    )


@app.middleware("http")
async def auth_enforcement(request: Request, call_next):
    path = request.url.path
    if _is_public_path(path):
        return await call_next(request)

    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        return _unauthenticated("missing_token")
    services = get_services()
    try:
        principal = verify_session_token(token, secret=services.settings.session_secret)
    except SessionTokenError as exc:
        return _unauthenticated(exc.code)
    try:
        principal = await asyncio.to_thread(services.accounts.resolve_active, principal)
    except PlannerError as exc:
        logger.info("Session rejected for inactive principal (%s)", exc.detail)
        return _unauthenticated(exc.detail)

    # Read-only caller context for downstream handlers.
    request.state.principal = principal
    return await call_next(request)


# --- Security Headers Middleware ----------------------------------------------


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
    # HSTS: always on (dev = prod)
    response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response


# --- Error Handlers ------------------------------------------------------------


@app.exception_handler(PlannerError)
async def planner_error_handler(request: Request, exc: PlannerError):
    if exc.status_code >= 500:
        logger.warning("Upstream failure on %s %s (%s)", request.method, request.url.path, exc.detail)
    return private_json(exc.to_payload(), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        if loc:
            fields.append(".".join(loc))
    detail = f"invalid_{fields[0]}" if fields else "invalid_request"
    return private_json({"error": "bad_request", "detail": detail}, status_code=400)


# --- Routers -------------------------------------------------------------------

app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(assignments_router)
app.include_router(payments_router)


@app.get("/health")
async def health_check():
    # Security: include no-store to avoid caching any runtime status.
    return JSONResponse({"status": "ok"}, headers={"Cache-Control": "private, no-store"})
