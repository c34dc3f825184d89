"""
Configuration parsing and startup security checks for the planner backend.

Intent:
    Provide a single place to read environment variables that control backend
    selection (memory vs. Postgres, blob and email adapters), session token
    policy, the static admin identity and the payment gateway.

Why:
    Centralising configuration keeps defaults and validation explicit and lets
    tests exercise config behaviour without booting the web app.
"""
from __future__ import annotations

from dataclasses import dataclass
import os
import re
from urllib.parse import urlparse


DEFAULT_ADMIN_EMAIL = "admin@aplusplanner.com"
DEFAULT_ADMIN_PASSWORD = "Admin123!"
_DEV_SESSION_SECRET = "dev-only-session-secret-change-me"


@dataclass(frozen=True)
class Settings:
    environment: str
    store_backend: str  # "memory" | "db"
    database_url: str | None
    session_secret: str
    session_ttl_seconds: int
    admin_email: str
    admin_password: str
    blob_backend: str  # "memory" | "supabase"
    supabase_url: str | None
    supabase_service_role_key: str | None
    storage_bucket: str
    email_backend: str  # "log" | "smtp"
    smtp_host: str
    smtp_port: int
    smtp_username: str
    smtp_password: str
    sender_email: str
    outbox_max_size: int
    paystack_secret_key: str | None
    paystack_base_url: str
    payment_currency: str
    base_url: str


def is_prod_like(env: str | None) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def _int_env(name: str, default: int, *, low: int, high: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {raw!r}")
    if value < low or value > high:
        raise ValueError(f"{name} out of range ({low}..{high}), got: {value}")
    return value


def _choice_env(name: str, default: str, allowed: set[str]) -> str:
    value = (os.getenv(name) or default).strip().lower()
    if value not in allowed:
        raise ValueError(f"{name} must be one of {sorted(allowed)}, got: {value!r}")
    return value


def _validate_http_url(name: str, url: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(f"{name} must be an http(s) URL")
    return url.rstrip("/")


def load_settings() -> Settings:
    """
    Parse and validate configuration from environment variables.

    Behavior:
        - `PLANNER_STORE` selects the repositories: "memory" (default) or "db".
          "db" requires `DATABASE_URL`.
        - `BLOB_BACKEND=supabase` requires `SUPABASE_URL` and
          `SUPABASE_SERVICE_ROLE_KEY`.
        - Numeric values are range-checked; malformed values raise ValueError.
    """
    environment = (os.getenv("PLANNER_ENV") or "dev").strip().lower()
    store_backend = _choice_env("PLANNER_STORE", "memory", {"memory", "db"})
    database_url = (os.getenv("DATABASE_URL") or "").strip() or None
    if store_backend == "db" and not database_url:
        raise ValueError("PLANNER_STORE=db requires DATABASE_URL")

    blob_backend = _choice_env("BLOB_BACKEND", "memory", {"memory", "supabase"})
    supabase_url = (os.getenv("SUPABASE_URL") or "").strip() or None
    supabase_key = (os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "").strip() or None
    if blob_backend == "supabase":
        if not supabase_url or not supabase_key:
            raise ValueError("BLOB_BACKEND=supabase requires SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY")
        supabase_url = _validate_http_url("SUPABASE_URL", supabase_url)

    bucket = (os.getenv("STORAGE_BUCKET") or "assignments").strip()
    if not re.match(r"^[a-z0-9][a-z0-9._-]{1,62}$", bucket):
        raise ValueError("STORAGE_BUCKET must be a lowercase bucket name")

    return Settings(
        environment=environment,
        store_backend=store_backend,
        database_url=database_url,
        session_secret=os.getenv("SESSION_SECRET") or _DEV_SESSION_SECRET,
        session_ttl_seconds=_int_env("SESSION_TTL_SECONDS", 3600, low=60, high=7 * 24 * 3600),
        admin_email=(os.getenv("ADMIN_EMAIL") or DEFAULT_ADMIN_EMAIL).strip().lower(),
        admin_password=os.getenv("ADMIN_PASSWORD") or DEFAULT_ADMIN_PASSWORD,
        blob_backend=blob_backend,
        supabase_url=supabase_url,
        supabase_service_role_key=supabase_key,
        storage_bucket=bucket,
        email_backend=_choice_env("EMAIL_BACKEND", "log", {"log", "smtp"}),
        smtp_host=os.getenv("SMTP_HOST", "smtp.gmail.com"),
        smtp_port=_int_env("SMTP_PORT", 587, low=1, high=65535),
        smtp_username=os.getenv("SMTP_USERNAME", ""),
        smtp_password=os.getenv("SMTP_PASSWORD", ""),
        sender_email=os.getenv("SENDER_EMAIL") or os.getenv("SMTP_USERNAME") or "no-reply@aplusplanner.com",
        outbox_max_size=_int_env("NOTIFY_OUTBOX_MAX", 1000, low=1, high=100_000),
        paystack_secret_key=(os.getenv("PAYSTACK_SECRET_KEY") or "").strip() or None,
        paystack_base_url=_validate_http_url(
            "PAYSTACK_BASE_URL", os.getenv("PAYSTACK_BASE_URL") or "https://api.paystack.co"
        ),
        payment_currency=(os.getenv("PAYMENT_CURRENCY") or "GHS").strip().upper(),
        base_url=_validate_http_url("BASE_URL", os.getenv("BASE_URL") or "http://localhost:8000"),
    )


def ensure_secure_config_on_startup(settings: Settings | None = None) -> None:
    """Fail fast on insecure production configuration.

    Intent: Abort process startup when obviously insecure settings are detected
    in production/staging. Development remains permissive for convenience.

    Checks:
    - SESSION_SECRET must be set explicitly and be at least 32 characters.
    - ADMIN_PASSWORD must not be the built-in default.
    - Repositories and blob store must not be the in-memory implementations.
    - DATABASE_URL must not explicitly disable TLS.
    - PAYSTACK_SECRET_KEY must be configured.
    """
    cfg = settings or load_settings()
    if not is_prod_like(cfg.environment):
        return

    if cfg.session_secret == _DEV_SESSION_SECRET or len(cfg.session_secret) < 32:
        raise SystemExit(
            "Refusing to start: SESSION_SECRET is unset or shorter than 32 characters in production."
        )
    if cfg.admin_password == DEFAULT_ADMIN_PASSWORD:
        raise SystemExit("Refusing to start: ADMIN_PASSWORD is the built-in default in production.")
    if cfg.store_backend != "db":
        raise SystemExit("Refusing to start: PLANNER_STORE=memory is not allowed in production/staging.")
    if cfg.blob_backend == "memory":
        raise SystemExit("Refusing to start: BLOB_BACKEND=memory is not allowed in production/staging.")
    if cfg.database_url and "sslmode=disable" in cfg.database_url:
        raise SystemExit(
            "Refusing to start: DATABASE_URL contains sslmode=disable in production. Use sslmode=require."
        )
    if not cfg.paystack_secret_key:
        raise SystemExit("Refusing to start: PAYSTACK_SECRET_KEY is unset in production.")
